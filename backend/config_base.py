"""
backend/config_base.py

- Carga .env UNA vez
- Define PATHS base (BASE_DIR/DATA_DIR) temprano
- Helpers defensivos (_get_env_*, _cap_*)
- Flags globales (DEBUG_MODE/SILENT_MODE/LOG_LEVEL/HTTP_DEBUG)
- LOGGER_FILE_* + congelado de LOGGER_FILE_PATH

Este módulo NO debe importar config_*.py para evitar ciclos.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

# En producción suele ser deseable NO sobre-escribir env vars ya definidas.
load_dotenv(override=False)

# Import tardío para minimizar riesgo de ciclos
from backend import logger as _logger  # noqa: E402


# ============================================================
# Paths base (DEBEN definirse pronto)
# ============================================================

# Directorio del módulo backend/
BASE_DIR: Final[Path] = Path(__file__).resolve().parent

# Raíz del proyecto (un nivel por encima de backend/)
PROJECT_DIR: Final[Path] = BASE_DIR.parent

# data/ en la raíz del proyecto (estado persistido: caché de atributos)
_DATA_DIR_RAW: Final[str] = (os.getenv("DATA_DIR") or "data").strip() or "data"
_DATA_DIR_CANDIDATE = Path(_DATA_DIR_RAW)
DATA_DIR: Final[Path] = (
    _DATA_DIR_CANDIDATE if _DATA_DIR_CANDIDATE.is_absolute() else (PROJECT_DIR / _DATA_DIR_CANDIDATE)
)

# Recursos empaquetados (tabla de países)
PACKAGE_DATA_DIR: Final[Path] = BASE_DIR / "data"


# ============================================================
# Helpers: parseo defensivo de env vars
# ============================================================

_TRUE_SET: Final[set[str]] = {"1", "true", "t", "yes", "y", "on"}
_FALSE_SET: Final[set[str]] = {"0", "false", "f", "no", "n", "off"}


def _clean_env_raw(v: object | None) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    if not s:
        return None
    if len(s) >= 2 and (s[0] == s[-1]) and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s or None


def _get_env_str(name: str, default: str | None = None) -> str | None:
    v = _clean_env_raw(os.getenv(name))
    return default if v is None else v


def _get_env_int(name: str, default: int) -> int:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    try:
        return int(v)
    except Exception:
        _logger.warning(f"Invalid int for {name!r}: {v!r}, using default {default}", always=True)
        return default


def _get_env_float(name: str, default: float) -> float:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    try:
        return float(v)
    except Exception:
        _logger.warning(f"Invalid float for {name!r}: {v!r}, using default {default}", always=True)
        return default


def _get_env_bool(name: str, default: bool) -> bool:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    s = v.strip().lower()
    if s in _TRUE_SET:
        return True
    if s in _FALSE_SET:
        return False
    _logger.warning(f"Invalid bool for {name!r}: {v!r}, using default {default}", always=True)
    return default


def _get_env_enum_str(
    name: str,
    *,
    default: str,
    allowed: set[str],
    normalize: bool = True,
) -> str:
    raw = _get_env_str(name, None)
    if raw is None:
        return default
    s = raw.strip()
    if normalize:
        s = s.lower()
    if s in allowed:
        return s
    _logger.warning(
        f"Invalid value for {name!r}: {raw!r}. Allowed={sorted(allowed)}. Using default {default!r}.",
        always=True,
    )
    return default


def _cap_int(name: str, value: int, *, min_v: int, max_v: int) -> int:
    if value < min_v:
        _logger.warning(f"{name} < {min_v}; forcing to {min_v}", always=True)
        return min_v
    if value > max_v:
        _logger.warning(f"{name} too high; capping to {max_v}", always=True)
        return max_v
    return value


def _cap_float_min(name: str, value: float, *, min_v: float) -> float:
    if value < min_v:
        _logger.warning(f"{name} < {min_v}; forcing to {min_v}", always=True)
        return min_v
    return value


def _resolve_path(raw: str, *, base: Path) -> Path:
    """Rutas relativas se resuelven contra `base` (nunca contra el cwd)."""
    p = Path(raw)
    return p if p.is_absolute() else (base / p)


def _log_config_debug(label: str, value: object, *, debug_mode: bool, silent_mode: bool) -> None:
    if not debug_mode or silent_mode:
        return
    try:
        _logger.info(f"{label}: {value}")
    except Exception:
        print(f"{label}: {value}")


# ============================================================
# MODO DE EJECUCIÓN
# ============================================================

DEBUG_MODE: bool = _get_env_bool("DEBUG_MODE", False)
SILENT_MODE: bool = _get_env_bool("SILENT_MODE", False)

HTTP_DEBUG: bool = _get_env_bool("HTTP_DEBUG", False)
LOG_LEVEL: str | None = _get_env_str("LOG_LEVEL", None)


# ============================================================
# LOGGER (persistencia opcional a fichero por proceso)
# ============================================================
# Logs se quedan dentro de backend/ (BASE_DIR) a propósito.

LOGGER_FILE_ENABLED: bool = _get_env_bool("LOGGER_FILE_ENABLED", False)

LOGGER_FILE_DIR: Final[Path] = _resolve_path(_get_env_str("LOGGER_FILE_DIR", "logs") or "logs", base=BASE_DIR)

LOGGER_FILE_PREFIX: Final[str] = _get_env_str("LOGGER_FILE_PREFIX", "actorlens") or "actorlens"
LOGGER_FILE_TIMESTAMP_FORMAT: Final[str] = (
    _get_env_str("LOGGER_FILE_TIMESTAMP_FORMAT", "%Y-%m-%d_%H-%M-%S") or "%Y-%m-%d_%H-%M-%S"
)
LOGGER_FILE_INCLUDE_PID: bool = _get_env_bool("LOGGER_FILE_INCLUDE_PID", True)


def _sanitize_filename_component(s: str) -> str:
    out_chars: list[str] = []
    for ch in (s or ""):
        if ch.isalnum() or ch in ("-", "_", ".", "@"):
            out_chars.append(ch)
        else:
            out_chars.append("_")
    cleaned = "".join(out_chars).strip("._-")
    return cleaned or "run"


def _build_logger_file_path() -> Path | None:
    """
    Calcula el fichero de log UNA vez y lo congela en os.environ["LOGGER_FILE_PATH"].

    Workers de uvicorn (procesos hijos) heredan el environment y reutilizan el mismo path.
    """
    if not LOGGER_FILE_ENABLED:
        return None

    try:
        env_path = _clean_env_raw(os.getenv("LOGGER_FILE_PATH"))
        if env_path:
            resolved = _resolve_path(env_path, base=BASE_DIR).resolve()
            os.environ["LOGGER_FILE_PATH"] = str(resolved)
            return resolved

        ts = _sanitize_filename_component(datetime.now().strftime(LOGGER_FILE_TIMESTAMP_FORMAT))
        prefix = _sanitize_filename_component(LOGGER_FILE_PREFIX)
        pid_part = f"_{os.getpid()}" if LOGGER_FILE_INCLUDE_PID else ""

        resolved = (LOGGER_FILE_DIR / f"{prefix}_{ts}{pid_part}.log").resolve()
        os.environ["LOGGER_FILE_PATH"] = str(resolved)
        return resolved

    except Exception as exc:
        _logger.warning(f"LOGGER_FILE_PATH build failed: {exc!r}", always=True)
        return None


LOGGER_FILE_PATH: Path | None = _build_logger_file_path()
