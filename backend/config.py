from __future__ import annotations

"""
backend/config.py

Punto único de configuración del proyecto (fachada sobre config_*.py).

🎯 Principios
-------------
1) "Config as data":
   - Este módulo SOLO re-exporta constantes ya parseadas y validadas.
   - La lógica de parseo vive en config_base.py (helpers _get_env_* / _cap_*).

2) Robusto ante entornos “sucios”:
   - Si una env var viene mal (p.ej. "abc" donde se esperaba int), no rompe.
   - Emite warning always=True (visible incluso en modo SILENT).

3) Logging coherente con backend/logger.py:
   - backend/logger.py lee DEBUG_MODE/SILENT_MODE/LOG_LEVEL/LOGGER_FILE_* desde aquí
     vía sys.modules (sin import directo).
   - dump de config solo si DEBUG_MODE y NO SILENT_MODE.
"""

from backend.config_attributes import (  # noqa: F401
    ATTR_CACHE_PATH,
    ATTR_CACHE_TTL_DAYS,
    ATTR_NEGATIVE_CACHE_ENABLED,
    ATTR_NEGATIVE_CACHE_TTL_SECONDS,
    ATTR_RESOLVE_MAX_CONCURRENCY,
    ATTR_STORE_FLUSH_DEBOUNCE_SECONDS,
    CATALOG_SCHEMA,
    ENABLE_HOVER_CAST_MENU,
    ENABLE_HOVER_FILMOGRAPHY,
    HOVER_CAST_LIMIT,
    HOVER_FILMOGRAPHY_LIMIT,
    OVERLAY_ENABLED,
    RANDOMIZE_HOVER_FILMOGRAPHY,
    SHOW_AGE_AT_DEATH,
    SHOW_AGE_AT_RELEASE,
    SHOW_AGE_ICONS,
    SHOW_BIRTH_COUNTRY_FLAG,
    SHOW_BIRTH_PLACE_TEXT,
    SHOW_DECEASED_OVERLAY,
)
from backend.config_base import (  # noqa: F401
    BASE_DIR,
    DATA_DIR,
    DEBUG_MODE,
    HTTP_DEBUG,
    LOG_LEVEL,
    LOGGER_FILE_DIR,
    LOGGER_FILE_ENABLED,
    LOGGER_FILE_INCLUDE_PID,
    LOGGER_FILE_PATH,
    LOGGER_FILE_PREFIX,
    PACKAGE_DATA_DIR,
    PROJECT_DIR,
    SILENT_MODE,
    _log_config_debug as _log_config_debug_base,
)
from backend.config_catalog import (  # noqa: F401
    CATALOG_API_KEY,
    CATALOG_BASE_URL,
    CATALOG_CB_FAILURE_THRESHOLD,
    CATALOG_CB_OPEN_SECONDS,
    CATALOG_HTTP_RETRY_BACKOFF_FACTOR,
    CATALOG_HTTP_RETRY_TOTAL,
    CATALOG_HTTP_TIMEOUT_SECONDS,
    CATALOG_HTTP_USER_AGENT,
)
from backend.config_tmdb import (  # noqa: F401
    TMDB_API_KEY,
    TMDB_BASE_URL,
    TMDB_CB_FAILURE_THRESHOLD,
    TMDB_CB_OPEN_SECONDS,
    TMDB_DEBUG,
    TMDB_HTTP_RETRY_BACKOFF_FACTOR,
    TMDB_HTTP_RETRY_TOTAL,
    TMDB_HTTP_TIMEOUT_SECONDS,
    TMDB_HTTP_USER_AGENT,
    USE_EXTERNAL_FALLBACK,
)


def _log_config_debug(label: str, value: object) -> None:
    _log_config_debug_base(label, value, debug_mode=DEBUG_MODE, silent_mode=SILENT_MODE)


# ============================================================
# Dump de configuración (solo DEBUG_MODE y no SILENT)
# ============================================================

_log_config_debug("DEBUG_MODE", DEBUG_MODE)
_log_config_debug("SILENT_MODE", SILENT_MODE)
_log_config_debug("LOG_LEVEL", LOG_LEVEL)
_log_config_debug("HTTP_DEBUG", HTTP_DEBUG)

_log_config_debug("ATTR_CACHE_PATH", str(ATTR_CACHE_PATH))
_log_config_debug("ATTR_CACHE_TTL_DAYS", ATTR_CACHE_TTL_DAYS)
_log_config_debug("ATTR_STORE_FLUSH_DEBOUNCE_SECONDS", ATTR_STORE_FLUSH_DEBOUNCE_SECONDS)
_log_config_debug("ATTR_NEGATIVE_CACHE_ENABLED", ATTR_NEGATIVE_CACHE_ENABLED)
_log_config_debug("ATTR_NEGATIVE_CACHE_TTL_SECONDS", ATTR_NEGATIVE_CACHE_TTL_SECONDS)
_log_config_debug("ATTR_RESOLVE_MAX_CONCURRENCY", ATTR_RESOLVE_MAX_CONCURRENCY)
_log_config_debug("CATALOG_SCHEMA", CATALOG_SCHEMA)

_log_config_debug("OVERLAY_ENABLED", OVERLAY_ENABLED)
_log_config_debug("SHOW_AGE_AT_DEATH", SHOW_AGE_AT_DEATH)
_log_config_debug("SHOW_AGE_AT_RELEASE", SHOW_AGE_AT_RELEASE)
_log_config_debug("SHOW_BIRTH_COUNTRY_FLAG", SHOW_BIRTH_COUNTRY_FLAG)
_log_config_debug("SHOW_BIRTH_PLACE_TEXT", SHOW_BIRTH_PLACE_TEXT)
_log_config_debug("SHOW_DECEASED_OVERLAY", SHOW_DECEASED_OVERLAY)
_log_config_debug("ENABLE_HOVER_FILMOGRAPHY", ENABLE_HOVER_FILMOGRAPHY)
_log_config_debug("HOVER_FILMOGRAPHY_LIMIT", HOVER_FILMOGRAPHY_LIMIT)
_log_config_debug("ENABLE_HOVER_CAST_MENU", ENABLE_HOVER_CAST_MENU)
_log_config_debug("HOVER_CAST_LIMIT", HOVER_CAST_LIMIT)

_log_config_debug("CATALOG_BASE_URL", CATALOG_BASE_URL)
_log_config_debug("CATALOG_API_KEY", "****" if CATALOG_API_KEY else None)
_log_config_debug("CATALOG_HTTP_TIMEOUT_SECONDS", CATALOG_HTTP_TIMEOUT_SECONDS)

_log_config_debug("USE_EXTERNAL_FALLBACK", USE_EXTERNAL_FALLBACK)
_log_config_debug("TMDB_API_KEY", "****" if TMDB_API_KEY else None)
_log_config_debug("TMDB_BASE_URL", TMDB_BASE_URL)
_log_config_debug("TMDB_HTTP_TIMEOUT_SECONDS", TMDB_HTTP_TIMEOUT_SECONDS)

_log_config_debug("LOGGER_FILE_ENABLED", LOGGER_FILE_ENABLED)
_log_config_debug("LOGGER_FILE_DIR", str(LOGGER_FILE_DIR))
_log_config_debug("LOGGER_FILE_PREFIX", LOGGER_FILE_PREFIX)
