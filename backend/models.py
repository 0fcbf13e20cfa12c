from __future__ import annotations

"""
backend/models.py

Modelos de dominio del resolver:

- PersonId: 32 hex en minúsculas sin separadores (acepta también GUID con guiones).
- AttributeRecord: registro inmutable persistido en la caché (fechas, lugar, ISO2, origen).
- AgeInfo: resultado de resolver un id (registro + edad derivada + cache_hit).

Formato persistido (una entrada por id):
    {"BirthDate": "yyyy-MM-dd", "DeathDate": ..., "BirthPlace": ..., "BirthCountryIso2": "ES",
     "UpdatedUtc": "2024-01-01T00:00:00+00:00", "Source": "catalog"}
"""

import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Final, Literal, Mapping

from backend.errors import MalformedPersonId

# ============================================================
# PersonId
# ============================================================

_HEX32_RE: Final[re.Pattern[str]] = re.compile(r"^[0-9a-f]{32}$")
_GUID_DASHED_RE: Final[re.Pattern[str]] = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)
_EMPTY_ID: Final[str] = "0" * 32


def normalize_person_id(raw: object) -> str:
    """Normaliza a 32 hex minúsculas. Lanza MalformedPersonId si no es válido."""
    if not isinstance(raw, str):
        raise MalformedPersonId(raw)

    s = raw.strip().lower()
    if s.startswith("{") and s.endswith("}"):
        s = s[1:-1]

    if _GUID_DASHED_RE.match(s):
        s = s.replace("-", "")

    if not _HEX32_RE.match(s) or s == _EMPTY_ID:
        raise MalformedPersonId(raw)
    return s


def try_normalize_person_id(raw: object) -> str | None:
    try:
        return normalize_person_id(raw)
    except MalformedPersonId:
        return None


# ============================================================
# Source (provenance)
# ============================================================

Source = Literal["cache", "catalog", "external", "none"]

_KNOWN_SOURCES: Final[frozenset[str]] = frozenset({"cache", "catalog", "external", "none"})

# Etiquetas heredadas de ficheros antiguos.
LEGACY_SOURCE_ALIASES: Final[dict[str, Source]] = {
    "jellyfin": "catalog",
    "tmdb": "external",
    "unknown": "cache",
}


def coerce_source(raw: object) -> Source:
    s = str(raw or "").strip().lower()
    if s in _KNOWN_SOURCES:
        return s  # type: ignore[return-value]
    return LEGACY_SOURCE_ALIASES.get(s, "cache")


# ============================================================
# Parseo tolerante de fechas
# ============================================================


def parse_iso_date(value: object) -> date | None:
    """
    Acepta date, datetime o str (prefijo yyyy-MM-dd, o ISO-8601 completo interpretado en UTC).
    Cualquier otra cosa -> None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None

    if len(s) >= 10:
        try:
            return date.fromisoformat(s[:10])
        except ValueError:
            pass

    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date()


def _parse_updated_at(value: object) -> datetime:
    if isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    # Sin timestamp legible: se trata como muy antiguo (caduca si es externo).
    return datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def _clean_iso2(value: object) -> str | None:
    s = _clean_text(value)
    if s is None or len(s) != 2 or not s.isalpha():
        return None
    return s.upper()


# ============================================================
# AttributeRecord
# ============================================================


@dataclass(frozen=True)
class AttributeRecord:
    birth_date: date | None = None
    death_date: date | None = None
    birth_place: str | None = None
    birth_country_iso2: str | None = None
    updated_at: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)
    source: Source = "cache"

    @classmethod
    def known_empty(cls, *, now: datetime | None = None) -> "AttributeRecord":
        """Marcador de cache negativo (solo si ATTR_NEGATIVE_CACHE_ENABLED)."""
        return cls(updated_at=now or utcnow(), source="none")

    @property
    def is_known_empty(self) -> bool:
        return self.source == "none"

    def has_any_data(self) -> bool:
        return (
            self.birth_date is not None
            or self.death_date is not None
            or self.birth_place is not None
            or self.birth_country_iso2 is not None
        )

    def is_expired(
        self,
        *,
        now: datetime,
        ttl_days: int,
        negative_ttl_seconds: int = 0,
    ) -> bool:
        """TTL solo para origen externo (y marcador negativo). Catálogo/cache nunca caducan."""
        if self.source == "external":
            return now - self.updated_at > timedelta(days=ttl_days)
        if self.source == "none":
            return now - self.updated_at > timedelta(seconds=negative_ttl_seconds)
        return False

    def with_missing_filled(
        self,
        *,
        birth_place: str | None = None,
        birth_country_iso2: str | None = None,
    ) -> "AttributeRecord":
        """Rellena SOLO campos vacíos; conserva updated_at y source."""
        return replace(
            self,
            birth_place=self.birth_place or _clean_text(birth_place),
            birth_country_iso2=self.birth_country_iso2 or _clean_iso2(birth_country_iso2),
        )

    def to_json(self) -> dict[str, str | None]:
        return {
            "BirthDate": self.birth_date.isoformat() if self.birth_date else None,
            "DeathDate": self.death_date.isoformat() if self.death_date else None,
            "BirthPlace": self.birth_place,
            "BirthCountryIso2": self.birth_country_iso2,
            "UpdatedUtc": self.updated_at.isoformat(),
            "Source": self.source,
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, object]) -> "AttributeRecord":
        return cls(
            birth_date=parse_iso_date(obj.get("BirthDate")),
            death_date=parse_iso_date(obj.get("DeathDate")),
            birth_place=_clean_text(obj.get("BirthPlace")),
            birth_country_iso2=_clean_iso2(obj.get("BirthCountryIso2")),
            updated_at=_parse_updated_at(obj.get("UpdatedUtc")),
            source=coerce_source(obj.get("Source")),
        )


# ============================================================
# AgeInfo (salida del resolver)
# ============================================================


@dataclass(frozen=True)
class AgeInfo:
    person_id: str
    birth_date: date | None
    death_date: date | None
    birth_place: str | None
    birth_country_iso2: str | None
    age_years: int | None
    is_deceased: bool
    source: Source
    cache_hit: bool

    @property
    def age_text(self) -> str | None:
        return None if self.age_years is None else str(self.age_years)
