from __future__ import annotations

"""
frontend/front_logger.py

Logger del cliente: envoltorio fino sobre el facade del backend con prefijo [FRONT].
- log_debug solo emite con FRONT_DEBUG (además de DEBUG_MODE del backend).
- Los fallos de red del cliente se registran como warning, nunca se propagan a la UI.
"""

from backend import logger as _logger
from frontend.config_front_base import FRONT_DEBUG


def log_debug(msg: str) -> None:
    if FRONT_DEBUG:
        _logger.debug_ctx("FRONT", msg)


def log_info(msg: str) -> None:
    _logger.info(f"[FRONT] {msg}")


def log_warning(msg: str) -> None:
    _logger.warning(f"[FRONT] {msg}")
