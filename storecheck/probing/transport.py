"""
HTTP transport with a bounded attempt count and linear backoff.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

import requests

from storecheck.probing.context import RunContext
from storecheck.probing.logging_utils import log_event


def accept_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def accept_below_400(status_code: int) -> bool:
    return status_code < 400


def normalize_url(url: str) -> str:
    """
    Prefix `http://` when the URL carries no http(s) scheme.
    """

    stripped = url.strip()
    if stripped.lower().startswith(("http://", "https://")):
        return stripped
    return f"http://{stripped}"


class TransportError(RuntimeError):
    """
    Raised when a request fails after all allowed attempts.

    ``response`` is set when the server answered with a status the caller
    did not accept; it is ``None`` for network errors and timeouts.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str,
        response: requests.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.response = response

    @property
    def status_code(self) -> int | None:
        if self.response is None:
            return None
        return self.response.status_code


@dataclass(frozen=True)
class FetchOptions:
    """
    Per-call request policy.

    ``attempts`` of ``None`` uses the run context's attempt cap.
    """

    accept_status: Callable[[int], bool] = accept_success
    follow_redirects: bool = True
    attempts: int | None = None


DEFAULT_FETCH_OPTIONS = FetchOptions()


class HttpTransport:
    """
    Issues GET requests with timeout, redirect cap and retry/backoff.

    Each worker thread gets its own `requests.Session` unless a shared
    session is injected.
    """

    def __init__(
        self,
        *,
        context: RunContext,
        session: requests.Session | None = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self._context = context
        self._shared_session = self._prepare(session) if session is not None else None
        self._session_factory = session_factory
        self._local = threading.local()
        self._owned_sessions: list[requests.Session] = []
        self._lock = threading.Lock()

    def fetch(
        self,
        url: str,
        options: FetchOptions = DEFAULT_FETCH_OPTIONS,
    ) -> requests.Response:
        """
        GET `url`, retrying failed attempts up to the configured cap.

        The wait before attempt ``i + 1`` is ``backoff_seconds * i``. Once the
        cap is reached the last `TransportError` is raised.
        """

        target = normalize_url(url)
        attempts = max(1, options.attempts or self._context.max_attempts)

        for attempt in range(1, attempts + 1):
            try:
                return self._request_once(target, options)
            except TransportError as exc:
                if attempt >= attempts:
                    raise
                wait_seconds = self._context.backoff_seconds * attempt
                log_event(
                    self._context.logger,
                    logging.WARNING,
                    "request_retry",
                    url=target,
                    attempt=attempt,
                    max_attempts=attempts,
                    wait_seconds=wait_seconds,
                    error=exc,
                )
                self._context.sleep(wait_seconds)

        raise AssertionError("unreachable")

    def close(self) -> None:
        with self._lock:
            sessions, self._owned_sessions = self._owned_sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _request_once(self, url: str, options: FetchOptions) -> requests.Response:
        try:
            response = self._session().get(
                url,
                headers={"User-Agent": self._context.user_agent},
                timeout=self._context.timeout_seconds,
                allow_redirects=options.follow_redirects,
            )
        except requests.RequestException as exc:
            raise TransportError(
                f"Request to {url} failed: {exc}",
                url=url,
                response=exc.response,
            ) from exc
        except ValueError as exc:
            raise TransportError(f"Invalid URL {url}: {exc}", url=url) from exc

        if not options.accept_status(response.status_code):
            raise TransportError(
                f"Request to {url} returned status={response.status_code}",
                url=url,
                response=response,
            )
        return response

    def _session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session

        session = getattr(self._local, "session", None)
        if session is None:
            session = self._prepare(self._session_factory())
            self._local.session = session
            with self._lock:
                self._owned_sessions.append(session)
        return session

    def _prepare(self, session: requests.Session) -> requests.Session:
        session.max_redirects = self._context.max_redirects
        return session
