from __future__ import annotations

"""
backend/metadata_providers.py

Variantes de esquema del catálogo del host para extraer atributos de una persona.

En lugar de "probar propiedades por nombre" en cada petición, cada variante declara
su lista ordenada de campos candidatos y se elige UNA vez al arrancar (CATALOG_SCHEMA):

- JellyfinV10Schema ("v10", y "auto"):
    birth:  PremiereDate -> BirthDate/DateOfBirth/Birthday -> ProductionYear (1850..2500 => 1-ene)
    death:  EndDate -> DeathDate/DateOfDeath/Deathday/Died
    place:  ProductionLocations (", ".join) -> BirthPlace/Birthplace/PlaceOfBirth/BirthLocation
- LegacyFlatSchema ("legacy"): solo los campos alternativos (sin Premiere/End/ProductionYear).
"""

from abc import ABC
from dataclasses import dataclass
from datetime import date
from typing import Final, Mapping, Sequence

from backend.models import parse_iso_date

_PRODUCTION_YEAR_MIN: Final[int] = 1850
_PRODUCTION_YEAR_MAX: Final[int] = 2500


@dataclass(frozen=True)
class CatalogPerson:
    """Atributos extraídos de un item del catálogo."""

    is_person: bool
    birth_date: date | None = None
    death_date: date | None = None
    birth_place: str | None = None
    tmdb_id: int | None = None

    def has_any_data(self) -> bool:
        return self.birth_date is not None or self.death_date is not None or self.birth_place is not None


def _first_date(item: Mapping[str, object], fields: Sequence[str]) -> date | None:
    for name in fields:
        d = parse_iso_date(item.get(name))
        if d is not None:
            return d
    return None


def _first_text(item: Mapping[str, object], fields: Sequence[str]) -> str | None:
    for name in fields:
        v = item.get(name)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def _join_locations(value: object) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (list, tuple)):
        parts = [str(p).strip() for p in value if isinstance(p, str) and p.strip()]
        return ", ".join(parts) or None
    return None


def _tmdb_id(item: Mapping[str, object]) -> int | None:
    ids = item.get("ProviderIds")
    if not isinstance(ids, Mapping):
        return None
    for key, raw in ids.items():
        if str(key).lower() != "tmdb":
            continue
        try:
            v = int(str(raw).strip())
        except (TypeError, ValueError):
            return None
        return v if v > 0 else None
    return None


class CatalogSchemaProvider(ABC):
    name: str = "base"

    birth_fields: Sequence[str] = ()
    death_fields: Sequence[str] = ()
    place_list_fields: Sequence[str] = ()
    place_fields: Sequence[str] = ()
    use_production_year: bool = False

    def is_person(self, item: Mapping[str, object]) -> bool:
        return str(item.get("Type") or "").strip().lower() == "person"

    def birth_date(self, item: Mapping[str, object]) -> date | None:
        d = _first_date(item, self.birth_fields)
        if d is not None or not self.use_production_year:
            return d

        year = item.get("ProductionYear")
        if isinstance(year, int) and not isinstance(year, bool) and _PRODUCTION_YEAR_MIN <= year <= _PRODUCTION_YEAR_MAX:
            return date(year, 1, 1)
        return None

    def death_date(self, item: Mapping[str, object]) -> date | None:
        return _first_date(item, self.death_fields)

    def birth_place(self, item: Mapping[str, object]) -> str | None:
        for name in self.place_list_fields:
            joined = _join_locations(item.get(name))
            if joined:
                return joined
        return _first_text(item, self.place_fields)

    def extract(self, item: Mapping[str, object]) -> CatalogPerson:
        if not self.is_person(item):
            return CatalogPerson(is_person=False)
        return CatalogPerson(
            is_person=True,
            birth_date=self.birth_date(item),
            death_date=self.death_date(item),
            birth_place=self.birth_place(item),
            tmdb_id=_tmdb_id(item),
        )


_ALT_BIRTH: Final[tuple[str, ...]] = ("BirthDate", "DateOfBirth", "Birthday")
_ALT_DEATH: Final[tuple[str, ...]] = ("DeathDate", "DateOfDeath", "Deathday", "Died")
_ALT_PLACE: Final[tuple[str, ...]] = ("BirthPlace", "Birthplace", "PlaceOfBirth", "BirthLocation")


class JellyfinV10Schema(CatalogSchemaProvider):
    name = "v10"
    birth_fields = ("PremiereDate",) + _ALT_BIRTH
    death_fields = ("EndDate",) + _ALT_DEATH
    place_list_fields = ("ProductionLocations",)
    place_fields = _ALT_PLACE
    use_production_year = True


class LegacyFlatSchema(CatalogSchemaProvider):
    name = "legacy"
    birth_fields = _ALT_BIRTH
    death_fields = _ALT_DEATH
    place_fields = _ALT_PLACE


_PROVIDERS: Final[dict[str, type[CatalogSchemaProvider]]] = {
    "auto": JellyfinV10Schema,
    "v10": JellyfinV10Schema,
    "legacy": LegacyFlatSchema,
}


def select_schema(name: str) -> CatalogSchemaProvider:
    cls = _PROVIDERS.get((name or "auto").strip().lower())
    if cls is None:
        raise ValueError(f"Unknown catalog schema: {name!r}")
    return cls()
