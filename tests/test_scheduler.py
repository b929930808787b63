from __future__ import annotations

import threading
import time

import pytest

from fakes import FakeTransport, http_error, make_response
from storecheck.domain.store_check import ProbeResult, Task
from storecheck.probing.classifier import StoreClassifier
from storecheck.probing.context import RunContext
from storecheck.probing.scheduler import AdmissionGate, BoundedScheduler


class _SlowClassifier:
    """
    Sleeps briefly per URL and records how many calls overlap.
    """

    def __init__(self, delay: float = 0.01) -> None:
        self._delay = delay
        self._lock = threading.Lock()
        self._active = 0
        self.peak = 0

    def classify(self, url: str) -> ProbeResult:
        with self._lock:
            self._active += 1
            self.peak = max(self.peak, self._active)
        time.sleep(self._delay)
        with self._lock:
            self._active -= 1
        return ProbeResult(is_shopify=url.endswith("0.example.com"))


def _tasks(count: int) -> list[Task]:
    return [
        Task(index=i, row_id=f"id-{i}", url=f"http://store{i}.example.com", passthrough={"n": str(i)})
        for i in range(count)
    ]


class TestAdmissionGate:
    def test_tracks_in_flight_and_peak(self) -> None:
        gate = AdmissionGate(2)
        with gate:
            assert gate.in_flight == 1
            with gate:
                assert gate.in_flight == 2
        assert gate.in_flight == 0
        assert gate.peak == 2

    def test_capacity_is_at_least_one(self) -> None:
        assert AdmissionGate(0).capacity == 1

    def test_blocks_beyond_capacity(self) -> None:
        gate = AdmissionGate(1)
        entered = threading.Event()

        def _second() -> None:
            with gate:
                entered.set()

        with gate:
            worker = threading.Thread(target=_second)
            worker.start()
            assert not entered.wait(0.05)
        worker.join(timeout=1)
        assert entered.is_set()
        assert gate.peak == 1


@pytest.mark.parametrize("strategy", ["gate", "batch"])
class TestBoundedScheduler:
    def test_never_exceeds_concurrency_limit(self, strategy: str) -> None:
        classifier = _SlowClassifier()
        scheduler = BoundedScheduler(
            classifier=classifier,
            context=RunContext(concurrency=3, strategy=strategy),
        )

        records = scheduler.run(_tasks(20))

        assert len(records) == 20
        assert classifier.peak <= 3
        assert 1 <= scheduler.peak_in_flight <= 3

    def test_every_task_yields_one_record_in_input_order(self, strategy: str) -> None:
        tasks = _tasks(12)
        scheduler = BoundedScheduler(
            classifier=_SlowClassifier(delay=0.0),
            context=RunContext(concurrency=4, strategy=strategy),
        )

        records = scheduler.run(tasks)

        assert [record.task for record in records] == tasks
        assert [record.result.is_shopify for record in records] == [
            task.url.endswith("0.example.com") for task in tasks
        ]

    def test_empty_input(self, strategy: str) -> None:
        scheduler = BoundedScheduler(
            classifier=_SlowClassifier(),
            context=RunContext(strategy=strategy),
        )
        assert scheduler.run([]) == []
        assert scheduler.peak_in_flight == 0


def test_concurrency_level_does_not_change_outcomes() -> None:
    meta_page = '<meta name="shopify-checkout-api-token" content="x">'
    script = {
        "store0.example.com": [make_response(200, meta_page, url="http://store0.example.com/")],
        "store1.example.com": [http_error(404, url="http://store1.example.com")],
        "store2.example.com": [
            make_response(200, meta_page, url="http://store2.example.com/password"),
            make_response(200, meta_page, url="http://store2.example.com/password"),
            make_response(
                200,
                '<input type="password">',
                url="http://store2.example.com/password",
            ),
        ],
        "store3.example.com": [make_response(200, "<html></html>")],
    }
    tasks = [Task(index=i, row_id=str(i), url=f"store{i}.example.com") for i in range(5)]

    def _outcomes(concurrency: int) -> list[tuple[bool, bool, bool]]:
        context = RunContext(concurrency=concurrency, sleep=lambda _: None)
        classifier = StoreClassifier(transport=FakeTransport(script), context=context)
        records = BoundedScheduler(classifier=classifier, context=context).run(tasks)
        return [
            (
                record.result.is_shopify,
                record.result.is_active,
                record.result.is_password_protected,
            )
            for record in records
        ]

    serial = _outcomes(1)
    parallel = _outcomes(20)

    assert serial == parallel
    assert serial == [
        (True, True, False),
        (False, False, False),
        (True, True, True),
        (False, False, False),
        (False, False, False),
    ]


@pytest.mark.parametrize("strategy", ["gate", "batch"])
def test_malformed_url_does_not_abort_the_run(strategy: str) -> None:
    good = "store0.example.com"
    script = {good: [make_response(200, "<html></html>", url=f"http://{good}/")]}
    tasks = [
        Task(index=0, row_id="good", url=good),
        Task(index=1, row_id="broken", url="http://[broken"),
        Task(index=2, row_id="ipv6", url="[::1"),
    ]
    context = RunContext(concurrency=2, strategy=strategy, sleep=lambda _: None)
    classifier = StoreClassifier(transport=FakeTransport(script), context=context)

    records = BoundedScheduler(classifier=classifier, context=context).run(tasks)

    assert [record.task.row_id for record in records] == ["good", "broken", "ipv6"]
    assert all(not record.result.is_shopify for record in records)
    assert [record.result.stages[0].status for record in records[1:]] == ["unreachable", "unreachable"]
