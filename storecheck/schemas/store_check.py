"""
storecheck/schemas/store_check.py

Summary schemas for store check runs.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from storecheck.domain.store_check import RunMetrics


class RunMetricsResponse(BaseModel):
    """
    Serializable view of `RunMetrics`.
    """

    total_stores: int = Field(..., ge=0)
    shopify_stores: int = Field(..., ge=0)
    active_stores: int = Field(..., ge=0)
    inactive_stores: int = Field(..., ge=0)
    shopify_inactive_stores: int = Field(..., ge=0)
    password_protected_stores: int = Field(..., ge=0)
    percentage_active: float = Field(..., ge=0.0, le=100.0)
    percentage_inactive: float = Field(..., ge=0.0, le=100.0)
    skipped_rows: int = Field(0, ge=0)
    started_at: datetime
    finished_at: datetime
    processing_seconds: float = Field(..., ge=0.0)

    @classmethod
    def from_metrics(cls, metrics: RunMetrics) -> "RunMetricsResponse":
        return cls(
            total_stores=metrics.total_stores,
            shopify_stores=metrics.shopify_stores,
            active_stores=metrics.active_stores,
            inactive_stores=metrics.inactive_stores,
            shopify_inactive_stores=metrics.shopify_inactive_stores,
            password_protected_stores=metrics.password_protected_stores,
            percentage_active=metrics.percentage_active,
            percentage_inactive=metrics.percentage_inactive,
            skipped_rows=metrics.skipped_rows,
            started_at=metrics.started_at,
            finished_at=metrics.finished_at,
            processing_seconds=metrics.processing_seconds,
        )


class StoreCheckSummaryResponse(BaseModel):
    """
    Summary printed after a command-line run.
    """

    output_path: str | None = None
    concurrency: int = Field(..., ge=1)
    strategy: str
    peak_in_flight: int = Field(..., ge=0)
    metrics: RunMetricsResponse
