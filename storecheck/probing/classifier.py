"""
Three-stage Shopify storefront classifier.

Stages run strictly in order and short-circuit:

    platform       — is the URL a Shopify storefront?
    liveness       — only for Shopify stores: does it answer 200?
    password_gate  — only for active stores: does it redirect to /password
                     and render a password form?

Each stage returns a `StageOutcome`; failures become ``not_detected`` or
``unreachable`` outcomes and are logged. `StoreClassifier.classify` collapses
them into a `ProbeResult` and never lets a transport failure escape.
"""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import urlparse

import requests

from storecheck.domain.store_check import (
    STAGE_LIVENESS,
    STAGE_PASSWORD_GATE,
    STAGE_PLATFORM,
    ProbeResult,
    StageOutcome,
)
from storecheck.probing.context import RunContext
from storecheck.probing.html_inspection import (
    PASSWORD_INPUT,
    SHOPIFY_CHECKOUT_META,
    SHOPIFY_SCRIPT,
    HTMLInspector,
)
from storecheck.probing.logging_utils import describe_error, log_event
from storecheck.probing.transport import (
    DEFAULT_FETCH_OPTIONS,
    FetchOptions,
    TransportError,
    accept_below_400,
    normalize_url,
)

PLATFORM_DOMAIN_MARKERS = (".myshopify.com", "shopify.com")
PLATFORM_HEADER = "powered-by"
PLATFORM_HEADER_TOKEN = "Shopify"
PASSWORD_GATE_PATH = "/password"
PLATFORM_BODY_SIGNALS = (
    (SHOPIFY_CHECKOUT_META, "checkout_meta_tag"),
    (SHOPIFY_SCRIPT, "shopify_script"),
)

PASSWORD_CHECK_OPTIONS = FetchOptions(accept_status=accept_below_400, attempts=1)


class Transport(Protocol):
    def fetch(
        self,
        url: str,
        options: FetchOptions = DEFAULT_FETCH_OPTIONS,
    ) -> requests.Response: ...


def is_redirect_status(status_code: int | None) -> bool:
    return status_code is not None and 300 <= status_code < 400


def has_platform_marker(url: str) -> bool:
    try:
        host = (urlparse(normalize_url(url)).hostname or "").lower()
    except ValueError:
        # Malformed host, e.g. an unbalanced IPv6 bracket; left to the transport.
        return False
    return any(marker in host for marker in PLATFORM_DOMAIN_MARKERS)


def has_platform_header(response: requests.Response | None) -> bool:
    if response is None:
        return False
    value = response.headers.get(PLATFORM_HEADER) or ""
    return PLATFORM_HEADER_TOKEN in value


class StoreClassifier:
    """
    Classifies one store URL through the platform, liveness and password stages.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        context: RunContext,
        inspector: HTMLInspector | None = None,
    ) -> None:
        self._transport = transport
        self._context = context
        self._inspector = inspector or HTMLInspector()

    def classify(self, url: str) -> ProbeResult:
        target = normalize_url(url)

        platform = self.detect_shopify(target)
        if not platform.detected:
            return ProbeResult(stages=(platform,))

        liveness = self.check_active(target)
        if not liveness.detected:
            return ProbeResult(is_shopify=True, stages=(platform, liveness))

        password_gate = self.check_password_protection(target)
        return ProbeResult(
            is_shopify=True,
            is_active=True,
            is_password_protected=password_gate.detected,
            stages=(platform, liveness, password_gate),
        )

    def detect_shopify(self, url: str) -> StageOutcome:
        if has_platform_marker(url):
            return StageOutcome.hit(STAGE_PLATFORM, signal="domain_marker")

        try:
            response = self._transport.fetch(url)
        except TransportError as exc:
            if has_platform_header(exc.response):
                return StageOutcome.hit(STAGE_PLATFORM, signal="powered_by_header")
            if exc.status_code == 404:
                log_event(self._context.logger, logging.ERROR, "url_not_found", url=url)
                return StageOutcome.miss(STAGE_PLATFORM, reason="not_found")
            log_event(
                self._context.logger,
                logging.ERROR,
                "shopify_detection_failed",
                url=url,
                status=exc.status_code,
                error=exc,
            )
            return StageOutcome.unreachable(STAGE_PLATFORM, reason=describe_error(exc))

        if has_platform_header(response):
            return StageOutcome.hit(STAGE_PLATFORM, signal="powered_by_header")

        signals = dict(PLATFORM_BODY_SIGNALS)
        matched = self._inspector.first_match(response.text, list(signals))
        if matched is not None:
            return StageOutcome.hit(STAGE_PLATFORM, signal=signals[matched])
        return StageOutcome.miss(STAGE_PLATFORM, reason="no_platform_signal")

    def check_active(self, url: str) -> StageOutcome:
        try:
            response = self._transport.fetch(url)
        except TransportError as exc:
            if has_platform_header(exc.response):
                # Shopify store that is currently down.
                return StageOutcome.miss(STAGE_LIVENESS, reason="platform_down")
            if exc.status_code == 404:
                log_event(self._context.logger, logging.ERROR, "url_not_found", url=url)
                return StageOutcome.miss(STAGE_LIVENESS, reason="not_found")
            log_event(
                self._context.logger,
                logging.ERROR,
                "liveness_check_failed",
                url=url,
                status=exc.status_code,
                error=exc,
            )
            return StageOutcome.unreachable(STAGE_LIVENESS, reason=describe_error(exc))

        if response.status_code == 200:
            return StageOutcome.hit(STAGE_LIVENESS, signal="status_200")
        return StageOutcome.miss(STAGE_LIVENESS, reason=f"status_{response.status_code}")

    def check_password_protection(self, url: str) -> StageOutcome:
        try:
            response = self._transport.fetch(url, PASSWORD_CHECK_OPTIONS)
        except TransportError as exc:
            status = exc.status_code
            log_event(
                self._context.logger,
                logging.INFO,
                "password_check_failed",
                url=url,
                status=status,
                error=exc,
            )
            if is_redirect_status(status):
                return StageOutcome.miss(STAGE_PASSWORD_GATE, reason="redirect_error")
            if status == 404:
                return StageOutcome.miss(STAGE_PASSWORD_GATE, reason="not_found")
            return StageOutcome.unreachable(STAGE_PASSWORD_GATE, reason=describe_error(exc))

        log_event(
            self._context.logger,
            logging.DEBUG,
            "password_check_response",
            url=url,
            status=response.status_code,
            final_url=response.url,
        )

        final_url = response.url
        if not final_url:
            log_event(
                self._context.logger,
                logging.ERROR,
                "password_check_failed",
                url=url,
                error="final URL is undefined",
            )
            return StageOutcome.miss(STAGE_PASSWORD_GATE, reason="final_url_unknown")

        try:
            final_path = urlparse(final_url).path
        except ValueError:
            return StageOutcome.miss(STAGE_PASSWORD_GATE, reason="final_url_unknown")
        if not final_path.endswith(PASSWORD_GATE_PATH):
            return StageOutcome.miss(STAGE_PASSWORD_GATE, reason="no_gate_redirect")

        if self._inspector.has_match(response.text, PASSWORD_INPUT):
            return StageOutcome.hit(STAGE_PASSWORD_GATE, signal="password_input")
        return StageOutcome.miss(STAGE_PASSWORD_GATE, reason="gate_without_password_input")
