"""
storecheck/tabular/report_writer.py

CSV report serialization.

Layout
------
    <header row>
    <one row per classified record>
    <skipped input rows, classification columns left empty>

    Total Stores: N
    ...
    Processing Time: X seconds

Booleans are written as ``true`` / ``false``.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from storecheck.domain.store_check import RunMetrics, RunReport
from storecheck.probing.logging_utils import log_event

logger = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def _format_cell(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return value


def _format_timestamp(value: datetime) -> str:
    return value.strftime(_TIMESTAMP_FORMAT).strip()


def format_metrics(metrics: RunMetrics) -> list[str]:
    lines = [
        f"Total Stores: {metrics.total_stores}",
        f"Shopify Stores: {metrics.shopify_stores}",
        f"Active Stores: {metrics.active_stores}",
        f"Inactive Stores: {metrics.inactive_stores}",
        f"Inactive Shopify Stores: {metrics.shopify_inactive_stores}",
        f"Password Protected Stores: {metrics.password_protected_stores}",
        f"Percentage Active: {metrics.percentage_active:.2f}%",
        f"Percentage Inactive: {metrics.percentage_inactive:.2f}%",
    ]
    if metrics.skipped_rows:
        lines.append(f"Skipped Rows: {metrics.skipped_rows}")
    lines.extend(
        [
            f"Start Time: {_format_timestamp(metrics.started_at)}",
            f"End Time: {_format_timestamp(metrics.finished_at)}",
            f"Processing Time: {metrics.processing_seconds:.3f} seconds",
        ]
    )
    return lines


def render_report(report: RunReport) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=report.fields,
        extrasaction="ignore",
        lineterminator="\n",
    )
    writer.writeheader()
    for row in report.rows:
        writer.writerow({key: _format_cell(value) for key, value in row.items()})
    for row in report.skipped_rows:
        writer.writerow({key: _format_cell(value) for key, value in row.items()})

    return buffer.getvalue() + "\n" + "\n".join(format_metrics(report.metrics)) + "\n"


def write_report(path: str | Path, report: RunReport) -> Path:
    """
    Replace the file at `path` with the rendered report.
    """

    output_path = Path(path)
    if output_path.exists():
        output_path.unlink()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_report(report), encoding="utf-8")

    log_event(
        logger,
        logging.INFO,
        "report_written",
        path=str(output_path),
        rows=len(report.rows),
        skipped_rows=len(report.skipped_rows),
    )
    return output_path
