"""
storecheck/tabular/csv_input.py

Turns CSV input rows into classification tasks.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, TextIO

from storecheck.config import FieldMapping
from storecheck.domain.store_check import Task
from storecheck.probing.logging_utils import log_event

logger = logging.getLogger(__name__)


class StoreCheckInputError(ValueError):
    """
    Raised when the input file cannot be turned into tasks.
    """


def parse_tasks(
    stream: TextIO,
    mapping: FieldMapping,
) -> tuple[list[Task], list[dict[str, Any]]]:
    """
    Read rows from `stream` and split them into tasks and skipped rows.

    Rows with an empty identifier or URL are returned unchanged in the
    skipped list so the report can carry them through unclassified.
    """

    try:
        reader = csv.DictReader(stream)
        headers = reader.fieldnames or []
        if not headers:
            raise StoreCheckInputError("CSV header row is missing.")

        missing = [
            column
            for column in (mapping.id_field, mapping.url_field)
            if column not in headers
        ]
        if missing:
            raise StoreCheckInputError(
                f"CSV header is missing mapped column(s): {', '.join(missing)}. "
                f"Found: {', '.join(headers)}."
            )

        tasks: list[Task] = []
        skipped: list[dict[str, Any]] = []
        for row_number, raw_row in enumerate(reader, start=2):
            row = {key: value for key, value in raw_row.items() if key is not None}
            row_id = (row.get(mapping.id_field) or "").strip()
            url = (row.get(mapping.url_field) or "").strip()
            if not row_id or not url:
                skipped.append(row)
                log_event(
                    logger,
                    logging.WARNING,
                    "input_row_skipped",
                    row_number=row_number,
                    missing_id=not row_id,
                    missing_url=not url,
                )
                continue

            passthrough = {
                key: value
                for key, value in row.items()
                if key not in (mapping.id_field, mapping.url_field)
            }
            tasks.append(Task(index=len(tasks), row_id=row_id, url=url, passthrough=passthrough))
    except UnicodeDecodeError as exc:
        raise StoreCheckInputError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise StoreCheckInputError(f"Invalid CSV format: {exc}") from exc

    return tasks, skipped


def read_tasks(
    path: str | Path,
    mapping: FieldMapping,
) -> tuple[list[Task], list[dict[str, Any]]]:
    input_path = Path(path)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    with input_path.open("r", encoding="utf-8-sig", newline="") as stream:
        return parse_tasks(stream, mapping)
