"""
Test doubles for sessions, responses and transports.
"""

from __future__ import annotations

import threading
from typing import Any

import requests
from requests.structures import CaseInsensitiveDict

from storecheck.probing.transport import (
    DEFAULT_FETCH_OPTIONS,
    FetchOptions,
    TransportError,
    normalize_url,
)


def make_response(
    status: int = 200,
    body: str = "",
    *,
    headers: dict[str, str] | None = None,
    url: str = "http://example.com/",
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict(headers or {})
    response.url = url
    return response


def http_error(
    status: int,
    *,
    url: str = "http://example.com/",
    headers: dict[str, str] | None = None,
    body: str = "",
) -> TransportError:
    return TransportError(
        f"Request to {url} returned status={status}",
        url=url,
        response=make_response(status, body, headers=headers, url=url),
    )


def network_error(url: str = "http://example.com/") -> TransportError:
    return TransportError(f"Request to {url} failed: connection refused", url=url)


class FakeSession:
    """
    Plays back scripted responses or exceptions in order.
    """

    def __init__(self, outcomes: list[Any]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.max_redirects = 30
        self.closed = False

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append((url, kwargs))
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """
    Per-URL scripted transport. The last scripted outcome repeats.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None) -> None:
        self._script = {normalize_url(url): list(outcomes) for url, outcomes in (script or {}).items()}
        self._lock = threading.Lock()
        self.calls: list[tuple[str, FetchOptions]] = []

    def fetch(
        self,
        url: str,
        options: FetchOptions = DEFAULT_FETCH_OPTIONS,
    ) -> requests.Response:
        target = normalize_url(url)
        with self._lock:
            self.calls.append((target, options))
            outcomes = self._script.get(target)
            if not outcomes:
                outcome: Any = network_error(target)
            elif len(outcomes) > 1:
                outcome = outcomes.pop(0)
            else:
                outcome = outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def calls_for(self, url: str) -> list[FetchOptions]:
        target = normalize_url(url)
        with self._lock:
            return [options for called, options in self.calls if called == target]
