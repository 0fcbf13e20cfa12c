from __future__ import annotations

from pathlib import Path
from typing import Final

from backend.config_base import (
    DATA_DIR,
    _cap_float_min,
    _cap_int,
    _get_env_bool,
    _get_env_enum_str,
    _get_env_float,
    _get_env_int,
    _get_env_str,
    _resolve_path,
)

# ============================================================
# Attribute store (persistencia + TTL + flush)
# ============================================================

ATTR_CACHE_PATH: Final[Path] = _resolve_path(
    _get_env_str("ATTR_CACHE_PATH", "birthdates_cache.json") or "birthdates_cache.json",
    base=DATA_DIR,
)

# Solo aplica a registros de origen externo; catálogo/cache no caducan.
ATTR_CACHE_TTL_DAYS: int = _cap_int(
    "ATTR_CACHE_TTL_DAYS",
    _get_env_int("ATTR_CACHE_TTL_DAYS", 30),
    min_v=1,
    max_v=3650,
)

ATTR_STORE_FLUSH_DEBOUNCE_SECONDS: float = _cap_float_min(
    "ATTR_STORE_FLUSH_DEBOUNCE_SECONDS",
    _get_env_float("ATTR_STORE_FLUSH_DEBOUNCE_SECONDS", 2.0),
    min_v=0.0,
)

# Cache negativo (NotFound): desactivado por defecto.
ATTR_NEGATIVE_CACHE_ENABLED: bool = _get_env_bool("ATTR_NEGATIVE_CACHE_ENABLED", False)
ATTR_NEGATIVE_CACHE_TTL_SECONDS: int = _cap_int(
    "ATTR_NEGATIVE_CACHE_TTL_SECONDS",
    _get_env_int("ATTR_NEGATIVE_CACHE_TTL_SECONDS", 60 * 60 * 6),
    min_v=60,
    max_v=60 * 60 * 24 * 365,
)

ATTR_RESOLVE_MAX_CONCURRENCY: int = _cap_int(
    "ATTR_RESOLVE_MAX_CONCURRENCY",
    _get_env_int("ATTR_RESOLVE_MAX_CONCURRENCY", 8),
    min_v=1,
    max_v=64,
)

# Variante de esquema del catálogo (se elige UNA vez al arrancar).
CATALOG_SCHEMA: str = _get_env_enum_str(
    "CATALOG_SCHEMA",
    default="auto",
    allowed={"auto", "v10", "legacy"},
)

# ============================================================
# Display flags (expuestos al cliente vía /people/status)
# ============================================================

OVERLAY_ENABLED: bool = _get_env_bool("OVERLAY_ENABLED", True)

SHOW_AGE_AT_DEATH: bool = _get_env_bool("SHOW_AGE_AT_DEATH", True)
SHOW_AGE_AT_RELEASE: bool = _get_env_bool("SHOW_AGE_AT_RELEASE", True)
SHOW_AGE_ICONS: bool = _get_env_bool("SHOW_AGE_ICONS", False)

SHOW_BIRTH_COUNTRY_FLAG: bool = _get_env_bool("SHOW_BIRTH_COUNTRY_FLAG", True)
SHOW_BIRTH_PLACE_TEXT: bool = _get_env_bool("SHOW_BIRTH_PLACE_TEXT", False)
SHOW_DECEASED_OVERLAY: bool = _get_env_bool("SHOW_DECEASED_OVERLAY", False)

ENABLE_HOVER_FILMOGRAPHY: bool = _get_env_bool("ENABLE_HOVER_FILMOGRAPHY", False)
RANDOMIZE_HOVER_FILMOGRAPHY: bool = _get_env_bool("RANDOMIZE_HOVER_FILMOGRAPHY", False)
HOVER_FILMOGRAPHY_LIMIT: int = _cap_int(
    "HOVER_FILMOGRAPHY_LIMIT",
    _get_env_int("HOVER_FILMOGRAPHY_LIMIT", 12),
    min_v=1,
    max_v=100,
)

ENABLE_HOVER_CAST_MENU: bool = _get_env_bool("ENABLE_HOVER_CAST_MENU", False)
HOVER_CAST_LIMIT: int = _cap_int(
    "HOVER_CAST_LIMIT",
    _get_env_int("HOVER_CAST_LIMIT", 12),
    min_v=1,
    max_v=100,
)
