"""
storecheck/config.py

Environment-driven configuration for store check runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_ALLOWED_STRATEGIES = {"gate", "batch"}


ENV_FILENAMES = (".env", ".env.local")


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None

    key, value = (part.strip() for part in line.split("=", 1))
    if not key:
        return None
    return key, value.strip("\"'")


def load_env_files(directory: Path | None = None) -> dict[str, str]:
    """
    Load KEY=VALUE pairs from `.env` then `.env.local` in `directory`.

    Defaults to the project root. Variables already set in the process
    environment win and `.env.local` overrides `.env`; returns the pairs
    that were applied.
    """

    root = directory or Path(__file__).resolve().parents[1]
    applied: dict[str, str] = {}
    for filename in ENV_FILENAMES:
        env_path = root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is None:
                continue
            key, value = parsed
            if key in os.environ and key not in applied:
                continue
            os.environ[key] = value
            applied[key] = value
    return applied


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class FieldMapping:
    """
    Column names used to pull the identifier and URL out of an input row.

    ``passthrough_fields`` of ``None`` carries every input column to the report.
    """

    id_field: str
    url_field: str
    passthrough_fields: tuple[str, ...] | None = None


FIELD_MAPPING_PRESETS: dict[str, FieldMapping] = {
    "client": FieldMapping(id_field="ClientId", url_field="URL"),
    "record": FieldMapping(id_field="Record ID", url_field="Website URL"),
}


def resolve_field_mapping(
    schema: str,
    *,
    id_field: str | None = None,
    url_field: str | None = None,
) -> FieldMapping:
    """
    Return the preset mapping for `schema` with optional column overrides.
    """

    normalized = schema.strip().lower()
    preset = FIELD_MAPPING_PRESETS.get(normalized)
    if preset is None:
        raise ValueError(
            f"Unknown input schema '{schema}'. "
            f"Allowed values: {sorted(FIELD_MAPPING_PRESETS)}."
        )
    return FieldMapping(
        id_field=id_field or preset.id_field,
        url_field=url_field or preset.url_field,
        passthrough_fields=preset.passthrough_fields,
    )


@dataclass(frozen=True)
class StoreCheckSettings:
    """
    Runtime settings for one store check run.
    """

    input_path: str = "data/client_data.csv"
    output_path: str = "updated_client_data.csv"
    schema: str = "client"
    id_field: str | None = None
    url_field: str | None = None
    concurrency: int = 10
    strategy: str = "gate"
    timeout_seconds: float = 15.0
    max_attempts: int = 2
    backoff_seconds: float = 3.0
    max_redirects: int = 5
    user_agent: str = "StoreCheckBot/1.0"

    @property
    def field_mapping(self) -> FieldMapping:
        return resolve_field_mapping(
            self.schema,
            id_field=self.id_field,
            url_field=self.url_field,
        )


@lru_cache(maxsize=1)
def get_store_check_settings() -> StoreCheckSettings:
    """
    Return cached store check settings from environment variables.
    """

    load_env_files()
    strategy = _get_str_env("STORE_CHECK_STRATEGY", "gate").lower()
    if strategy not in _ALLOWED_STRATEGIES:
        strategy = "gate"
    schema = _get_str_env("STORE_CHECK_SCHEMA", "client").lower()
    if schema not in FIELD_MAPPING_PRESETS:
        schema = "client"

    return StoreCheckSettings(
        input_path=_get_str_env("STORE_CHECK_INPUT_PATH", "data/client_data.csv"),
        output_path=_get_str_env("STORE_CHECK_OUTPUT_PATH", "updated_client_data.csv"),
        schema=schema,
        id_field=os.getenv("STORE_CHECK_ID_FIELD") or None,
        url_field=os.getenv("STORE_CHECK_URL_FIELD") or None,
        concurrency=max(1, _get_int_env("STORE_CHECK_CONCURRENCY", 10)),
        strategy=strategy,
        timeout_seconds=max(1.0, _get_float_env("STORE_CHECK_TIMEOUT_SECONDS", 15.0)),
        max_attempts=max(1, _get_int_env("STORE_CHECK_MAX_ATTEMPTS", 2)),
        backoff_seconds=max(0.0, _get_float_env("STORE_CHECK_BACKOFF_SECONDS", 3.0)),
        max_redirects=max(0, _get_int_env("STORE_CHECK_MAX_REDIRECTS", 5)),
        user_agent=_get_str_env("STORE_CHECK_USER_AGENT", "StoreCheckBot/1.0"),
    )
