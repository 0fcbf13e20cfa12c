from __future__ import annotations

from backend.config_base import (
    _cap_float_min,
    _cap_int,
    _get_env_float,
    _get_env_int,
    _get_env_str,
)

# ============================================================
# Catálogo del host (fuente primaria de metadatos de personas)
# ============================================================

CATALOG_BASE_URL: str = (_get_env_str("CATALOG_BASE_URL", "http://localhost:8096") or "http://localhost:8096").rstrip("/")
CATALOG_API_KEY: str | None = _get_env_str("CATALOG_API_KEY", None)

CATALOG_HTTP_TIMEOUT_SECONDS: float = _cap_float_min(
    "CATALOG_HTTP_TIMEOUT_SECONDS",
    _get_env_float("CATALOG_HTTP_TIMEOUT_SECONDS", 8.0),
    min_v=0.5,
)
CATALOG_HTTP_RETRY_TOTAL: int = _cap_int(
    "CATALOG_HTTP_RETRY_TOTAL",
    _get_env_int("CATALOG_HTTP_RETRY_TOTAL", 2),
    min_v=0,
    max_v=10,
)
CATALOG_HTTP_RETRY_BACKOFF_FACTOR: float = _cap_float_min(
    "CATALOG_HTTP_RETRY_BACKOFF_FACTOR",
    _get_env_float("CATALOG_HTTP_RETRY_BACKOFF_FACTOR", 0.3),
    min_v=0.0,
)

CATALOG_CB_FAILURE_THRESHOLD: int = _cap_int(
    "CATALOG_CB_FAILURE_THRESHOLD",
    _get_env_int("CATALOG_CB_FAILURE_THRESHOLD", 5),
    min_v=1,
    max_v=1000,
)
CATALOG_CB_OPEN_SECONDS: float = _cap_float_min(
    "CATALOG_CB_OPEN_SECONDS",
    _get_env_float("CATALOG_CB_OPEN_SECONDS", 20.0),
    min_v=0.1,
)

CATALOG_HTTP_USER_AGENT: str = _get_env_str("CATALOG_HTTP_USER_AGENT", "ActorLens/1.0 (local)") or "ActorLens/1.0 (local)"
