from __future__ import annotations

"""
frontend/config_front_base.py

Config base del motor de presentación (cliente).

Objetivos:
- Cargar variables de entorno desde .env.front (y, si falta una clave, del entorno del proceso).
- Proveer defaults razonables: tiempos de batch/scan/hover, TTLs y URLs.

Notas:
- Los tiempos se expresan en segundos (float).
- Los flags de presentación NO viven aquí: se leen del servidor (/people/status).
"""

import os
from pathlib import Path
from typing import Final

from dotenv import dotenv_values

# ---------------------------------------------------------------------
# Ubicación del proyecto (asumimos frontend/ como carpeta dentro de repo)
# ---------------------------------------------------------------------

FRONTEND_DIR: Final[Path] = Path(__file__).resolve().parent
PROJECT_DIR: Final[Path] = FRONTEND_DIR.parent

_ENV_FRONT_PATH: Final[Path] = PROJECT_DIR / ".env.front"

_ENV: Final[dict[str, str]] = {
    k: v for k, v in (dotenv_values(_ENV_FRONT_PATH).items() if _ENV_FRONT_PATH.exists() else []) if v is not None
}


# ---------------------------------------------------------------------
# Helpers defensivos
# ---------------------------------------------------------------------

_TRUE_SET: Final[set[str]] = {"1", "true", "t", "yes", "y", "on"}
_FALSE_SET: Final[set[str]] = {"0", "false", "f", "no", "n", "off"}


def _clean(v: object | None) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    if not s:
        return None
    if len(s) >= 2 and (s[0] == s[-1]) and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s or None


def _get_env_str(name: str, default: str | None = None) -> str | None:
    # Prioridad: .env.front -> env real del proceso -> default
    v = _clean(_ENV.get(name))
    if v is not None:
        return v
    v2 = _clean(os.getenv(name))
    if v2 is not None:
        return v2
    return default


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env_str(name, None)
    if raw is None:
        return default
    s = raw.lower()
    if s in _TRUE_SET:
        return True
    if s in _FALSE_SET:
        return False
    return default


def _get_env_int(name: str, default: int, *, min_v: int | None = None, max_v: int | None = None) -> int:
    raw = _get_env_str(name, None)
    try:
        v = int(raw) if raw is not None else default
    except ValueError:
        v = default
    if min_v is not None:
        v = max(min_v, v)
    if max_v is not None:
        v = min(max_v, v)
    return v


def _get_env_float(name: str, default: float, *, min_v: float = 0.0) -> float:
    raw = _get_env_str(name, None)
    try:
        v = float(raw) if raw is not None else default
    except ValueError:
        v = default
    return max(min_v, v)


# ---------------------------------------------------------------------
# Flags / endpoints
# ---------------------------------------------------------------------

FRONT_DEBUG: bool = _get_env_bool("FRONT_DEBUG", False)

ACTORLENS_API_BASE_URL: Final[str] = (
    _get_env_str("ACTORLENS_API_BASE_URL", "http://127.0.0.1:8000") or "http://127.0.0.1:8000"
)
FRONT_API_TIMEOUT_S: Final[float] = _get_env_float("FRONT_API_TIMEOUT_S", 10.0, min_v=0.5)

# Catálogo del host (touch de personas, contexto de página, filmografía, reparto)
FRONT_CATALOG_BASE_URL: Final[str] = (
    _get_env_str("FRONT_CATALOG_BASE_URL", "http://localhost:8096") or "http://localhost:8096"
)
FRONT_CATALOG_API_KEY: Final[str | None] = _get_env_str("FRONT_CATALOG_API_KEY", None)
FRONT_CATALOG_USER_ID: Final[str | None] = _get_env_str("FRONT_CATALOG_USER_ID", None)

TWEMOJI_FLAG_BASE: Final[str] = (
    _get_env_str("TWEMOJI_FLAG_BASE", "https://cdnjs.cloudflare.com/ajax/libs/twemoji/14.0.2/svg/")
    or "https://cdnjs.cloudflare.com/ajax/libs/twemoji/14.0.2/svg/"
)

# ---------------------------------------------------------------------
# Tiempos (segundos)
# ---------------------------------------------------------------------

STATUS_TTL_S: Final[float] = _get_env_float("FRONT_STATUS_TTL_S", 10.0)

BATCH_DEBOUNCE_S: Final[float] = _get_env_float("FRONT_BATCH_DEBOUNCE_S", 0.12)
# No debe superar el API_BATCH_MAX_IDS del servidor.
BATCH_MAX_IDS: Final[int] = _get_env_int("FRONT_BATCH_MAX_IDS", 200, min_v=1)
TOUCH_COOLDOWN_S: Final[float] = _get_env_float("FRONT_TOUCH_COOLDOWN_S", 600.0)
TOUCH_MAX_PER_FLUSH: Final[int] = _get_env_int("FRONT_TOUCH_MAX_PER_FLUSH", 25, min_v=0)
TOUCH_CONCURRENCY: Final[int] = _get_env_int("FRONT_TOUCH_CONCURRENCY", 4, min_v=1)
TOUCH_TIMEOUT_S: Final[float] = _get_env_float("FRONT_TOUCH_TIMEOUT_S", 4.0, min_v=0.1)

PERIODIC_SCAN_S: Final[float] = _get_env_float("FRONT_PERIODIC_SCAN_S", 1.2, min_v=0.1)
SCROLL_DEBOUNCE_S: Final[float] = _get_env_float("FRONT_SCROLL_DEBOUNCE_S", 0.18)
IDLE_SCAN_TIMEOUT_S: Final[float] = _get_env_float("FRONT_IDLE_SCAN_TIMEOUT_S", 0.6)
NAV_RESCAN_DELAY_S: Final[float] = _get_env_float("FRONT_NAV_RESCAN_DELAY_S", 0.4)
CONTEXT_REFRESH_DELAY_S: Final[float] = _get_env_float("FRONT_CONTEXT_REFRESH_DELAY_S", 0.12)

HOVER_FILMOGRAPHY_SHOW_DELAY_S: Final[float] = _get_env_float("FRONT_HOVER_FILMOGRAPHY_SHOW_DELAY_S", 0.22)
HOVER_CAST_SHOW_DELAY_S: Final[float] = _get_env_float("FRONT_HOVER_CAST_SHOW_DELAY_S", 0.24)
HOVER_HIDE_DELAY_S: Final[float] = _get_env_float("FRONT_HOVER_HIDE_DELAY_S", 0.2)

FILMOGRAPHY_TTL_S: Final[float] = _get_env_float("FRONT_FILMOGRAPHY_TTL_S", 600.0)
FILMOGRAPHY_TOTAL_TTL_S: Final[float] = _get_env_float("FRONT_FILMOGRAPHY_TOTAL_TTL_S", 6 * 60 * 60.0)
CAST_TTL_S: Final[float] = _get_env_float("FRONT_CAST_TTL_S", 600.0)
