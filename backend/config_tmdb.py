from __future__ import annotations

from backend.config_base import (
    _cap_float_min,
    _cap_int,
    _get_env_bool,
    _get_env_float,
    _get_env_int,
    _get_env_str,
)

# ============================================================
# TMDb (enriquecimiento externo, opcional)
# ============================================================

USE_EXTERNAL_FALLBACK: bool = _get_env_bool("USE_EXTERNAL_FALLBACK", False)
TMDB_API_KEY: str | None = _get_env_str("TMDB_API_KEY", None)
TMDB_BASE_URL: str = (_get_env_str("TMDB_BASE_URL", "https://api.themoviedb.org/3") or "https://api.themoviedb.org/3").rstrip("/")

TMDB_DEBUG: bool = _get_env_bool("TMDB_DEBUG", False)

TMDB_HTTP_TIMEOUT_SECONDS: float = _cap_float_min(
    "TMDB_HTTP_TIMEOUT_SECONDS",
    _get_env_float("TMDB_HTTP_TIMEOUT_SECONDS", 15.0),
    min_v=0.5,
)
TMDB_HTTP_RETRY_TOTAL: int = _cap_int(
    "TMDB_HTTP_RETRY_TOTAL",
    _get_env_int("TMDB_HTTP_RETRY_TOTAL", 2),
    min_v=0,
    max_v=10,
)
TMDB_HTTP_RETRY_BACKOFF_FACTOR: float = _cap_float_min(
    "TMDB_HTTP_RETRY_BACKOFF_FACTOR",
    _get_env_float("TMDB_HTTP_RETRY_BACKOFF_FACTOR", 0.5),
    min_v=0.0,
)

TMDB_CB_FAILURE_THRESHOLD: int = _cap_int(
    "TMDB_CB_FAILURE_THRESHOLD",
    _get_env_int("TMDB_CB_FAILURE_THRESHOLD", 5),
    min_v=1,
    max_v=1000,
)
TMDB_CB_OPEN_SECONDS: float = _cap_float_min(
    "TMDB_CB_OPEN_SECONDS",
    _get_env_float("TMDB_CB_OPEN_SECONDS", 60.0),
    min_v=0.1,
)

TMDB_HTTP_USER_AGENT: str = _get_env_str("TMDB_HTTP_USER_AGENT", "ActorLens/1.0 (local)") or "ActorLens/1.0 (local)"
