from __future__ import annotations

"""
frontend/attribute_cache.py

Caché del cliente por id de persona. La presencia de una clave significa "conocido".

Reglas:
- Solo se escribe un valor si viene en la respuesta (sin caché negativa): un id sin
  datos puede reintentarse en el siguiente scan.
- age_text se guarda ya formateado ("<n> y").
- is_deceased se guarda si la respuesta trae el campo (True o False).
"""

from typing import Any, Mapping

from frontend.front_status import DisplayFlags


def _pick(rec: Mapping[str, Any], camel: str) -> Any:
    pascal = camel[:1].upper() + camel[1:]
    v = rec.get(pascal)
    return rec.get(camel) if v is None else v


def _text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class ClientAttributeCache:
    def __init__(self) -> None:
        self.age_text: dict[str, str] = {}
        self.birth_date: dict[str, str] = {}
        self.birth_country_iso2: dict[str, str] = {}
        self.birth_place: dict[str, str] = {}
        self.is_deceased: dict[str, bool] = {}

    def apply_record(self, person_id: str, rec: Mapping[str, Any] | None) -> None:
        if not rec:
            return

        birth = _text(_pick(rec, "birthDate"))
        if birth:
            self.birth_date[person_id] = birth

        iso2 = _text(_pick(rec, "birthCountryIso2"))
        if iso2:
            self.birth_country_iso2[person_id] = iso2

        place = _text(_pick(rec, "birthPlace"))
        if place:
            self.birth_place[person_id] = place

        dec = _pick(rec, "isDeceased")
        if dec is not None:
            self.is_deceased[person_id] = bool(dec)

        age = _text(_pick(rec, "ageText"))
        if age is None:
            age = _text(_pick(rec, "ageYears"))
        if age:
            self.age_text[person_id] = f"{age} y"

    def apply_partial(self, person_id: str, rec: Mapping[str, Any] | None) -> None:
        """Solo país y lugar (prefetch del popup de reparto)."""
        if not rec:
            return
        iso2 = _text(_pick(rec, "birthCountryIso2"))
        if iso2:
            self.birth_country_iso2[person_id] = iso2
        place = _text(_pick(rec, "birthPlace"))
        if place:
            self.birth_place[person_id] = place

    def needs(self, person_id: str, flags: DisplayFlags) -> bool:
        if person_id not in self.age_text:
            return True
        if flags.show_age_at_release and person_id not in self.birth_date:
            return True
        if flags.show_birth_country_flag and person_id not in self.birth_country_iso2:
            return True
        if flags.show_birth_country_flag and flags.show_birth_place_text and person_id not in self.birth_place:
            return True
        if flags.show_deceased_overlay and person_id not in self.is_deceased:
            return True
        return False

    def knows_anything(self, person_id: str) -> bool:
        return (
            person_id in self.age_text
            or person_id in self.birth_date
            or person_id in self.birth_country_iso2
            or person_id in self.birth_place
            or person_id in self.is_deceased
        )
