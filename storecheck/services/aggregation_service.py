"""
storecheck/services/aggregation_service.py

Reduces classified records into run metrics and report rows.

Metric definitions
------------------
    total_stores              – classified rows (skipped rows excluded)
    shopify_stores            – rows with is_shopify
    active_stores             – rows with is_active (always Shopify rows)
    inactive_stores           – total_stores - active_stores, i.e. every row
                                not confirmed active, Shopify or not
    shopify_inactive_stores   – shopify_stores - active_stores
    password_protected_stores – rows with is_password_protected

Percentages are taken over total_stores and rounded to two decimals; an empty
run reports 0.0.

No network or concurrency happens here.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Final

from storecheck.config import FieldMapping
from storecheck.domain.store_check import Record, RunMetrics, RunReport

COLUMN_IS_SHOPIFY: Final[str] = "isShopify"
COLUMN_IS_ACTIVE: Final[str] = "isActive"
COLUMN_IS_PASSWORD_PROTECTED: Final[str] = "isPasswordProtected"

RESULT_COLUMNS: Final[tuple[str, ...]] = (
    COLUMN_IS_SHOPIFY,
    COLUMN_IS_ACTIVE,
    COLUMN_IS_PASSWORD_PROTECTED,
)


def _percentage(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(part / total * 100, 2)


class AggregationService:
    """
    Builds `RunMetrics` and merged output rows from scheduler records.
    """

    def __init__(self, *, mapping: FieldMapping) -> None:
        self._mapping = mapping

    def aggregate(
        self,
        records: Sequence[Record],
        *,
        started_at: datetime,
        finished_at: datetime | None = None,
        skipped_rows: Sequence[dict[str, Any]] = (),
    ) -> RunReport:
        finished = finished_at or datetime.now(timezone.utc)
        metrics = self.compute_metrics(
            records,
            started_at=started_at,
            finished_at=finished,
            skipped_rows=len(skipped_rows),
        )
        fields = self.output_fields(records, skipped_rows)
        rows = [self.merge_row(record) for record in records]
        return RunReport(
            metrics=metrics,
            fields=fields,
            rows=rows,
            skipped_rows=[dict(row) for row in skipped_rows],
        )

    @staticmethod
    def compute_metrics(
        records: Sequence[Record],
        *,
        started_at: datetime,
        finished_at: datetime,
        skipped_rows: int = 0,
    ) -> RunMetrics:
        total = len(records)
        shopify = sum(1 for record in records if record.result.is_shopify)
        active = sum(1 for record in records if record.result.is_active)
        protected = sum(1 for record in records if record.result.is_password_protected)
        inactive = total - active

        return RunMetrics(
            total_stores=total,
            shopify_stores=shopify,
            active_stores=active,
            inactive_stores=inactive,
            shopify_inactive_stores=shopify - active,
            password_protected_stores=protected,
            percentage_active=_percentage(active, total),
            percentage_inactive=_percentage(inactive, total),
            started_at=started_at,
            finished_at=finished_at,
            processing_seconds=max(0.0, (finished_at - started_at).total_seconds()),
            skipped_rows=skipped_rows,
        )

    def merge_row(self, record: Record) -> dict[str, Any]:
        """
        Passthrough fields + identifier/URL columns + classification columns.
        """

        row = {
            key: value
            for key, value in record.task.passthrough.items()
            if self._keeps(key)
        }
        row[self._mapping.id_field] = record.task.row_id
        row[self._mapping.url_field] = record.task.url
        row[COLUMN_IS_SHOPIFY] = record.result.is_shopify
        row[COLUMN_IS_ACTIVE] = record.result.is_active
        row[COLUMN_IS_PASSWORD_PROTECTED] = record.result.is_password_protected
        return row

    def output_fields(
        self,
        records: Sequence[Record],
        skipped_rows: Sequence[dict[str, Any]] = (),
    ) -> list[str]:
        """
        Identifier and URL first, then passthrough columns in first-seen order.
        Skipped rows keep every column they carry.
        """

        fields = [self._mapping.id_field, self._mapping.url_field]
        for record in records:
            for key in record.task.passthrough:
                if key not in fields and key not in RESULT_COLUMNS and self._keeps(key):
                    fields.append(key)
        for row in skipped_rows:
            for key in row:
                if key not in fields and key not in RESULT_COLUMNS:
                    fields.append(key)
        fields.extend(RESULT_COLUMNS)
        return fields

    def _keeps(self, key: str) -> bool:
        allowed = self._mapping.passthrough_fields
        return allowed is None or key in allowed
