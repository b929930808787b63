"""
Run context shared by the transport, classifier and scheduler.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from storecheck.config import StoreCheckSettings

logger = logging.getLogger("storecheck.probing")


@dataclass(frozen=True)
class RunContext:
    """
    Explicit per-run state: limits, retry parameters and the diagnostics sink.
    """

    concurrency: int = 10
    strategy: str = "gate"
    timeout_seconds: float = 15.0
    max_attempts: int = 2
    backoff_seconds: float = 3.0
    max_redirects: int = 5
    user_agent: str = "StoreCheckBot/1.0"
    logger: logging.Logger = field(default=logger)
    sleep: Callable[[float], None] = field(default=time.sleep)

    @classmethod
    def from_settings(
        cls,
        settings: StoreCheckSettings,
        *,
        diagnostics: logging.Logger | None = None,
    ) -> "RunContext":
        return cls(
            concurrency=max(1, settings.concurrency),
            strategy=settings.strategy,
            timeout_seconds=settings.timeout_seconds,
            max_attempts=max(1, settings.max_attempts),
            backoff_seconds=settings.backoff_seconds,
            max_redirects=settings.max_redirects,
            user_agent=settings.user_agent,
            logger=diagnostics or logger,
        )
