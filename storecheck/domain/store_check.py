"""
storecheck/domain/store_check.py

Domain models for store classification runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

StageStatus = Literal["detected", "not_detected", "unreachable"]

STAGE_PLATFORM = "platform"
STAGE_LIVENESS = "liveness"
STAGE_PASSWORD_GATE = "password_gate"


@dataclass(frozen=True)
class StageOutcome:
    """
    Tagged outcome of one classification stage.

    ``unreachable`` keeps the failure reason around for logs and tests while
    still collapsing to ``False`` at the classifier boundary.
    """

    stage: str
    status: StageStatus
    reason: str | None = None
    signal: str | None = None

    @property
    def detected(self) -> bool:
        return self.status == "detected"

    @classmethod
    def hit(cls, stage: str, *, signal: str | None = None) -> "StageOutcome":
        return cls(stage=stage, status="detected", signal=signal)

    @classmethod
    def miss(cls, stage: str, *, reason: str | None = None) -> "StageOutcome":
        return cls(stage=stage, status="not_detected", reason=reason)

    @classmethod
    def unreachable(cls, stage: str, *, reason: str) -> "StageOutcome":
        return cls(stage=stage, status="unreachable", reason=reason)


@dataclass(frozen=True)
class ProbeResult:
    """
    Classification of one store URL.
    """

    is_shopify: bool = False
    is_active: bool = False
    is_password_protected: bool = False
    stages: tuple[StageOutcome, ...] = ()


@dataclass(frozen=True)
class Task:
    """
    One input row scheduled for classification.
    """

    index: int
    row_id: str
    url: str
    passthrough: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Record:
    """
    A task paired with its classification result.
    """

    task: Task
    result: ProbeResult


@dataclass(frozen=True)
class RunMetrics:
    """
    Summary metrics for one run.

    ``inactive_stores`` counts every row not confirmed active, so
    ``active_stores + inactive_stores == total_stores`` always holds.
    ``shopify_inactive_stores`` narrows that to Shopify rows.
    """

    total_stores: int
    shopify_stores: int
    active_stores: int
    inactive_stores: int
    shopify_inactive_stores: int
    password_protected_stores: int
    percentage_active: float
    percentage_inactive: float
    started_at: datetime
    finished_at: datetime
    processing_seconds: float
    skipped_rows: int = 0


@dataclass(frozen=True)
class RunReport:
    """
    Aggregated output of one run, ready for serialization.
    """

    metrics: RunMetrics
    fields: list[str]
    rows: list[dict[str, Any]]
    skipped_rows: list[dict[str, Any]] = field(default_factory=list)
