from __future__ import annotations

"""
frontend/front_status.py

Flags de presentación leídos de /people/status, con re-comprobación cada STATUS_TTL_S.

Si la petición falla se conservan los flags anteriores; si nunca se cargaron, el motor
queda desactivado (enabled=False).
"""

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from frontend.config_front_base import STATUS_TTL_S
from frontend.front_api_client import ApiClientError
from frontend.front_logger import log_warning

_LIMIT_MIN = 1
_LIMIT_MAX = 100
_LIMIT_DEFAULT = 12


def _pick(payload: Mapping[str, Any], camel: str) -> Any:
    pascal = camel[:1].upper() + camel[1:]
    if pascal in payload and payload[pascal] is not None:
        return payload[pascal]
    return payload.get(camel)


def _flag(payload: Mapping[str, Any], camel: str, default: bool) -> bool:
    v = _pick(payload, camel)
    return default if v is None else bool(v)


def _limit(payload: Mapping[str, Any], camel: str) -> int:
    v = _pick(payload, camel)
    if v is None:
        return _LIMIT_DEFAULT
    try:
        n = int(v)
    except (TypeError, ValueError):
        return _LIMIT_DEFAULT
    if n == 0:
        return _LIMIT_DEFAULT
    return max(_LIMIT_MIN, min(_LIMIT_MAX, n))


@dataclass(frozen=True)
class DisplayFlags:
    enabled: bool = False
    show_age_at_release: bool = True
    show_age_icons: bool = False
    show_birth_country_flag: bool = True
    show_birth_place_text: bool = False
    show_deceased_overlay: bool = False
    enable_hover_filmography: bool = False
    hover_filmography_limit: int = _LIMIT_DEFAULT
    randomize_hover_filmography: bool = False
    enable_hover_cast_menu: bool = False
    hover_cast_limit: int = _LIMIT_DEFAULT

    @classmethod
    def from_payload(cls, payload: object) -> "DisplayFlags":
        if not isinstance(payload, Mapping):
            return cls()
        return cls(
            enabled=_flag(payload, "enabled", False),
            show_age_at_release=_flag(payload, "showAgeAtRelease", True),
            show_age_icons=_flag(payload, "showAgeIcons", False),
            show_birth_country_flag=_flag(payload, "showBirthCountryFlag", True),
            show_birth_place_text=_flag(payload, "showBirthPlaceText", False),
            show_deceased_overlay=_flag(payload, "showDeceasedOverlay", False),
            enable_hover_filmography=_flag(payload, "enableHoverFilmography", False),
            hover_filmography_limit=_limit(payload, "hoverFilmographyLimit"),
            randomize_hover_filmography=_flag(payload, "randomizeHoverFilmography", False),
            enable_hover_cast_menu=_flag(payload, "enableHoverCastMenu", False),
            hover_cast_limit=_limit(payload, "hoverCastLimit"),
        )


class StatusLoader:
    def __init__(
        self,
        fetch_status: Callable[[], Awaitable[object]],
        *,
        ttl_s: float = STATUS_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch_status = fetch_status
        self.ttl_s = ttl_s
        self._clock = clock
        self._flags: DisplayFlags | None = None
        self._loaded_at = 0.0

    @property
    def flags(self) -> DisplayFlags:
        """Último valor conocido (desactivado si aún no hay ninguno)."""
        return self._flags or DisplayFlags()

    async def load(self) -> DisplayFlags:
        if self._flags is not None and (self._clock() - self._loaded_at) < self.ttl_s:
            return self._flags

        try:
            payload = await self._fetch_status()
        except ApiClientError as exc:
            log_warning(f"status request failed: {exc}")
            if self._flags is None:
                self._flags = DisplayFlags(enabled=False)
            return self._flags

        self._flags = DisplayFlags.from_payload(payload)
        self._loaded_at = self._clock()
        return self._flags
