"""
storecheck/services/store_check_service.py

End-to-end store check run: CSV input -> scheduler -> aggregation -> report.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

from storecheck.config import StoreCheckSettings, get_store_check_settings
from storecheck.domain.store_check import RunReport, Task
from storecheck.probing.classifier import StoreClassifier, Transport
from storecheck.probing.context import RunContext
from storecheck.probing.logging_utils import log_event
from storecheck.probing.scheduler import BoundedScheduler
from storecheck.probing.transport import HttpTransport
from storecheck.services.aggregation_service import AggregationService
from storecheck.tabular.csv_input import read_tasks
from storecheck.tabular.report_writer import write_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreCheckOutcome:
    """
    Result of one service run.
    """

    report: RunReport
    output_path: Path | None
    peak_in_flight: int


class StoreCheckService:
    """
    Wires transport, classifier, scheduler and aggregation for one run.
    """

    def __init__(
        self,
        *,
        settings: StoreCheckSettings | None = None,
        transport: Transport | None = None,
        diagnostics: logging.Logger | None = None,
    ) -> None:
        self._settings = settings or get_store_check_settings()
        self._context = RunContext.from_settings(self._settings, diagnostics=diagnostics)
        self._transport = transport

    @property
    def settings(self) -> StoreCheckSettings:
        return self._settings

    def with_overrides(self, **overrides: Any) -> "StoreCheckService":
        """
        Copy of this service with selected settings replaced; `None` values are ignored.
        """

        changes = {key: value for key, value in overrides.items() if value is not None}
        return StoreCheckService(
            settings=replace(self._settings, **changes),
            transport=self._transport,
            diagnostics=self._context.logger,
        )

    def run(
        self,
        *,
        input_path: str | Path | None = None,
        output_path: str | Path | None = None,
        write: bool = True,
    ) -> StoreCheckOutcome:
        mapping = self._settings.field_mapping
        tasks, skipped = read_tasks(input_path or self._settings.input_path, mapping)
        outcome = self.check(tasks, skipped_rows=skipped)
        if not write:
            return outcome

        written = write_report(output_path or self._settings.output_path, outcome.report)
        return replace(outcome, output_path=written)

    def check(
        self,
        tasks: Sequence[Task],
        *,
        skipped_rows: Sequence[dict[str, Any]] = (),
    ) -> StoreCheckOutcome:
        started_at = datetime.now(timezone.utc)

        transport = self._transport
        owned: HttpTransport | None = None
        if transport is None:
            owned = HttpTransport(context=self._context)
            transport = owned

        try:
            classifier = StoreClassifier(transport=transport, context=self._context)
            scheduler = BoundedScheduler(classifier=classifier, context=self._context)
            records = scheduler.run(tasks)
        finally:
            if owned is not None:
                owned.close()

        report = AggregationService(mapping=self._settings.field_mapping).aggregate(
            records,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            skipped_rows=skipped_rows,
        )
        metrics = report.metrics
        log_event(
            logger,
            logging.INFO,
            "store_check_completed",
            total_stores=metrics.total_stores,
            shopify_stores=metrics.shopify_stores,
            active_stores=metrics.active_stores,
            password_protected_stores=metrics.password_protected_stores,
            skipped_rows=metrics.skipped_rows,
            processing_seconds=round(metrics.processing_seconds, 3),
        )
        return StoreCheckOutcome(
            report=report,
            output_path=None,
            peak_in_flight=scheduler.peak_in_flight,
        )


@lru_cache(maxsize=1)
def get_store_check_service() -> StoreCheckService:
    """
    Build and cache the store check service from environment settings.
    """

    return StoreCheckService()
