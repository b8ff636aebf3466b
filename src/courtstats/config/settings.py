"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path


logger = logging.getLogger(__name__)

_DB_PATH_ENV = "COURTSTATS_DB_PATH"
_BLOB_DIR_ENV = "COURTSTATS_BLOB_DIR"
_BLOB_BASE_URL_ENV = "COURTSTATS_BLOB_BASE_URL"
_REQUEST_TIMEOUT_ENV = "COURTSTATS_REQUEST_TIMEOUT"
_BATCH_DELAY_ENV = "COURTSTATS_BATCH_DELAY"
_MAX_CONCURRENCY_ENV = "COURTSTATS_MAX_CONCURRENCY"
_CACHE_TTL_ENV = "COURTSTATS_CACHE_TTL"
_GROWTH_FACTOR_ENV = "COURTSTATS_GROWTH_FACTOR"
_DISABLED_SOURCES_ENV = "COURTSTATS_DISABLED_SOURCES"

_REQUEST_TIMEOUT_DEFAULT = 15.0
_BATCH_DELAY_DEFAULT = 0.3
_MAX_CONCURRENCY_DEFAULT = 4
_CACHE_TTL_DEFAULT = 6 * 60 * 60
_GROWTH_FACTOR_DEFAULT = 1.01


def _env_float(name: str, default: float, *, clamp_min: float | None = None, clamp_max: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    if clamp_max is not None:
        value = min(clamp_max, value)
    return value


def _env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_list(name: str) -> frozenset[str]:
    raw = os.getenv(name, "")
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    db_path: Path = Path("courtstats.sqlite")
    blob_dir: Path = Path("blobs")
    blob_base_url: str = "http://localhost:8000/blobs"
    request_timeout: float = _REQUEST_TIMEOUT_DEFAULT
    batch_delay: float = _BATCH_DELAY_DEFAULT
    max_concurrency: int = _MAX_CONCURRENCY_DEFAULT
    cache_ttl: int = _CACHE_TTL_DEFAULT
    growth_factor: float = _GROWTH_FACTOR_DEFAULT
    pct_floor: float = 0.20
    pct_ceiling: float = 0.70
    disabled_sources: frozenset[str] = field(default_factory=frozenset)
    balldontlie_api_key: str = ""
    sportsdb_api_key: str = "3"

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)


def load_settings() -> Settings:
    """Build settings from ``COURTSTATS_*`` environment variables."""

    return Settings(
        db_path=Path(os.getenv(_DB_PATH_ENV, "courtstats.sqlite")),
        blob_dir=Path(os.getenv(_BLOB_DIR_ENV, "blobs")),
        blob_base_url=os.getenv(_BLOB_BASE_URL_ENV, "http://localhost:8000/blobs").rstrip("/"),
        request_timeout=_env_float(_REQUEST_TIMEOUT_ENV, _REQUEST_TIMEOUT_DEFAULT, clamp_min=0.1),
        batch_delay=_env_float(_BATCH_DELAY_ENV, _BATCH_DELAY_DEFAULT, clamp_min=0.0),
        max_concurrency=_env_int(_MAX_CONCURRENCY_ENV, _MAX_CONCURRENCY_DEFAULT, min_value=1),
        cache_ttl=_env_int(_CACHE_TTL_ENV, _CACHE_TTL_DEFAULT, min_value=0),
        growth_factor=_env_float(_GROWTH_FACTOR_ENV, _GROWTH_FACTOR_DEFAULT, clamp_min=0.0),
        disabled_sources=_env_list(_DISABLED_SOURCES_ENV),
        balldontlie_api_key=os.getenv("BALLDONTLIE_API_KEY", ""),
        sportsdb_api_key=os.getenv("SPORTSDB_API_KEY", "3"),
    )
