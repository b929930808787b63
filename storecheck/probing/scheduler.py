"""
Bounded-concurrency driver for store classification.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Protocol

from storecheck.domain.store_check import ProbeResult, Record, Task
from storecheck.probing.context import RunContext
from storecheck.probing.logging_utils import log_event


class Classifier(Protocol):
    def classify(self, url: str) -> ProbeResult: ...


class AdmissionGate:
    """
    Counting gate that admits at most `capacity` holders at once.

    Tracks the current and peak number of holders.
    """

    def __init__(self, capacity: int) -> None:
        self.capacity = max(1, capacity)
        self._semaphore = threading.BoundedSemaphore(self.capacity)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak

    def __enter__(self) -> "AdmissionGate":
        self._semaphore.acquire()
        with self._lock:
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)
        return self

    def __exit__(self, *_: object) -> None:
        with self._lock:
            self._in_flight -= 1
        self._semaphore.release()


class _RecordCollector:
    """
    Append-only, thread-safe record sink.
    """

    def __init__(self) -> None:
        self._records: list[Record] = []
        self._lock = threading.Lock()

    def append(self, record: Record) -> int:
        with self._lock:
            self._records.append(record)
            return len(self._records)

    def records(self) -> list[Record]:
        with self._lock:
            return sorted(self._records, key=lambda record: record.task.index)


class BoundedScheduler:
    """
    Runs `classify` for every task with at most `context.concurrency` in flight.

    Strategies:

    - ``gate``: a slot frees as soon as any task completes and the next
      task starts immediately.
    - ``batch``: tasks run in fixed batches of `concurrency`; each batch
      drains fully before the next one starts.

    Classification failures are absorbed by the classifier, so every task
    yields exactly one `Record`. Records come back in input order.
    """

    def __init__(self, *, classifier: Classifier, context: RunContext) -> None:
        self._classifier = classifier
        self._context = context
        self._last_gate: AdmissionGate | None = None

    @property
    def peak_in_flight(self) -> int:
        """
        Highest number of concurrent classifications seen in the last run.
        """

        return self._last_gate.peak if self._last_gate is not None else 0

    def run(self, tasks: Sequence[Task]) -> list[Record]:
        pending = list(tasks)
        gate = AdmissionGate(self._context.concurrency)
        self._last_gate = gate
        collector = _RecordCollector()
        if not pending:
            return []

        started = time.monotonic()
        workers = min(gate.capacity, len(pending))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="storecheck") as executor:
            if self._context.strategy == "batch":
                for offset in range(0, len(pending), gate.capacity):
                    batch = pending[offset : offset + gate.capacity]
                    futures = [
                        executor.submit(self._execute, task, gate, collector, len(pending))
                        for task in batch
                    ]
                    for future in as_completed(futures):
                        future.result()
            else:
                futures = [
                    executor.submit(self._execute, task, gate, collector, len(pending))
                    for task in pending
                ]
                for future in as_completed(futures):
                    future.result()

        records = collector.records()
        log_event(
            self._context.logger,
            logging.INFO,
            "run_completed",
            tasks=len(records),
            strategy=self._context.strategy,
            concurrency=gate.capacity,
            peak_in_flight=gate.peak,
            elapsed_seconds=round(time.monotonic() - started, 3),
        )
        return records

    def _execute(
        self,
        task: Task,
        gate: AdmissionGate,
        collector: _RecordCollector,
        total: int,
    ) -> None:
        with gate:
            result = self._classifier.classify(task.url)
        completed = collector.append(Record(task=task, result=result))
        log_event(
            self._context.logger,
            logging.DEBUG,
            "task_completed",
            row_id=task.row_id,
            url=task.url,
            completed=completed,
            total=total,
            is_shopify=result.is_shopify,
            is_active=result.is_active,
            is_password_protected=result.is_password_protected,
        )
