"""
Domain models for store checks.
"""

from storecheck.domain.store_check import (
    ProbeResult,
    Record,
    RunMetrics,
    RunReport,
    StageOutcome,
    Task,
)

__all__ = [
    "ProbeResult",
    "Record",
    "RunMetrics",
    "RunReport",
    "StageOutcome",
    "Task",
]
