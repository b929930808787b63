from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from storecheck.config import (
    StoreCheckSettings,
    get_store_check_settings,
    load_env_files,
    resolve_field_mapping,
)
from storecheck.probing.context import RunContext


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_store_check_settings.cache_clear()
    yield
    get_store_check_settings.cache_clear()


def test_defaults_match_wire_contract(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "STORE_CHECK_CONCURRENCY",
        "STORE_CHECK_TIMEOUT_SECONDS",
        "STORE_CHECK_MAX_ATTEMPTS",
        "STORE_CHECK_BACKOFF_SECONDS",
        "STORE_CHECK_MAX_REDIRECTS",
        "STORE_CHECK_STRATEGY",
        "STORE_CHECK_SCHEMA",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_store_check_settings()

    assert settings.concurrency == 10
    assert settings.timeout_seconds == 15.0
    assert settings.max_attempts == 2
    assert settings.backoff_seconds == 3.0
    assert settings.max_redirects == 5
    assert settings.strategy == "gate"


def test_environment_overrides_and_clamping(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORE_CHECK_CONCURRENCY", "0")
    monkeypatch.setenv("STORE_CHECK_MAX_ATTEMPTS", "not-a-number")
    monkeypatch.setenv("STORE_CHECK_STRATEGY", "BATCH")
    monkeypatch.setenv("STORE_CHECK_SCHEMA", "record")
    monkeypatch.setenv("STORE_CHECK_URL_FIELD", "Homepage")

    settings = get_store_check_settings()

    assert settings.concurrency == 1
    assert settings.max_attempts == 2
    assert settings.strategy == "batch"
    assert settings.field_mapping.id_field == "Record ID"
    assert settings.field_mapping.url_field == "Homepage"


def test_unknown_schema_is_rejected() -> None:
    with pytest.raises(ValueError):
        resolve_field_mapping("spreadsheet")


def test_run_context_from_settings() -> None:
    context = RunContext.from_settings(
        StoreCheckSettings(concurrency=15, max_attempts=3, backoff_seconds=1.5)
    )

    assert context.concurrency == 15
    assert context.max_attempts == 3
    assert context.backoff_seconds == 1.5
    assert context.logger.name == "storecheck.probing"


def test_env_files_fill_unset_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text(
        "# defaults\n"
        "STORE_CHECK_CONCURRENCY=4\n"
        "export STORE_CHECK_STRATEGY='batch'\n"
        'STORE_CHECK_USER_AGENT="ShopAudit/2.0"\n'
        "not a pair\n"
        "=orphan\n",
        encoding="utf-8",
    )
    (tmp_path / ".env.local").write_text("STORE_CHECK_CONCURRENCY=8\n", encoding="utf-8")
    for name in ("STORE_CHECK_CONCURRENCY", "STORE_CHECK_STRATEGY"):
        # setenv first so the values loaded from disk are undone after the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("STORE_CHECK_USER_AGENT", "FromShell/1.0")

    applied = load_env_files(tmp_path)

    assert applied == {"STORE_CHECK_CONCURRENCY": "8", "STORE_CHECK_STRATEGY": "batch"}
    assert get_store_check_settings().concurrency == 8
    assert get_store_check_settings().user_agent == "FromShell/1.0"


def test_missing_env_files_are_ignored(tmp_path: Path) -> None:
    assert load_env_files(tmp_path) == {}
