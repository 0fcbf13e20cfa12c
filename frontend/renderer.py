from __future__ import annotations

"""
frontend/renderer.py

OverlayRenderer: pinta/retira los overlays de una persona sobre su elemento.

Overlays (hijos directos del elemento):
- actorlens-age-badge        edad (arriba-dcha). Doble línea si aplica la edad al estreno:
                             primaria = edad al estreno, secundaria = edad actual.
- actorlens-flag             bandera del país de nacimiento (Twemoji)
- actorlens-birthplace       bandera + texto del lugar (excluyente con la bandera sola)
- actorlens-deceased         marca ✝
- actorlens-deceased-mask    máscara gris

Todas las escrituras comparan antes de escribir: repintar con los mismos datos no
produce ninguna mutación.
"""

from dataclasses import dataclass
from datetime import date
from typing import Final

from backend.age import compute_age
from backend.models import parse_iso_date
from frontend.attribute_cache import ClientAttributeCache
from frontend.config_front_base import TWEMOJI_FLAG_BASE
from frontend.dom import Element
from frontend.front_status import DisplayFlags
from frontend.identity import iso2_to_twemoji_url

CONTAINER_CLASS: Final[str] = "actorlens-container"
AGE_BADGE_CLASS: Final[str] = "actorlens-age-badge"
FLAG_CLASS: Final[str] = "actorlens-flag"
BIRTHPLACE_CLASS: Final[str] = "actorlens-birthplace"
BIRTHPLACE_TEXT_CLASS: Final[str] = "actorlens-birthplace-text"
HAS_BIRTHPLACE_CLASS: Final[str] = "actorlens-has-birthplace"
DECEASED_CLASS: Final[str] = "actorlens-deceased"
DECEASED_MASK_CLASS: Final[str] = "actorlens-deceased-mask"

OVERLAY_CLASSES: Final[tuple[str, ...]] = (
    AGE_BADGE_CLASS,
    FLAG_CLASS,
    BIRTHPLACE_CLASS,
    DECEASED_CLASS,
    DECEASED_MASK_CLASS,
)

_KEY_ATTR: Final[str] = "data-actorlens-key"
_ISO2_ATTR: Final[str] = "data-iso2"
_DECEASED_MARK: Final[str] = "✝"
_ICON_CURRENT: Final[str] = "\U0001f382 "
_ICON_RELEASE: Final[str] = "\U0001f3ac "


@dataclass(frozen=True)
class DetailsContext:
    """Página de detalle actual (para la edad al estreno)."""

    item_id: str | None = None
    premiere: date | None = None
    is_person: bool = False


def _ensure_container(el: Element) -> None:
    if el.has_class(CONTAINER_CLASS):
        return
    el.add_class(CONTAINER_CLASS)
    if el.style.get("position", "static") == "static":
        el.set_style("position", "relative")


def _ensure_child(el: Element, cls: str, tag: str = "div") -> tuple[Element, bool]:
    child = el.child_by_class(cls)
    if child is not None:
        return child, False
    child = Element(tag, classes=[cls])
    el.append_child(child)
    return child, True


def _remove_child(el: Element, cls: str) -> None:
    child = el.child_by_class(cls)
    if child is not None:
        el.remove_child(child)


class OverlayRenderer:
    def __init__(self, cache: ClientAttributeCache, *, flag_base: str = TWEMOJI_FLAG_BASE) -> None:
        self.cache = cache
        self.flag_base = flag_base

    # ---------------- texts ----------------

    def release_age_text(
        self,
        person_id: str,
        flags: DisplayFlags,
        context: DetailsContext | None,
        route_id: str | None,
    ) -> str | None:
        if not flags.show_age_at_release or context is None or context.premiere is None:
            return None
        if context.is_person or route_id != context.item_id:
            return None
        birth = parse_iso_date(self.cache.birth_date.get(person_id))
        if birth is None:
            return None
        years = compute_age(birth, context.premiere)
        return None if years is None else f"{years} y"

    # ---------------- overlays ----------------

    def ensure_age_badge(self, el: Element, primary: str, secondary: str | None) -> None:
        _ensure_container(el)
        badge, _ = _ensure_child(el, AGE_BADGE_CLASS)
        key = f"{primary}\n{secondary}" if secondary else primary
        if badge.get_attr(_KEY_ATTR) == key:
            return
        badge.set_attr(_KEY_ATTR, key)
        badge.clear_children()
        badge.append_child(Element("div", classes=["actorlens-line", "actorlens-line-primary"], text=primary))
        if secondary:
            badge.append_child(Element("div", classes=["actorlens-line", "actorlens-line-secondary"], text=secondary))

    def _set_flag_img(self, img: Element, iso2: str, url: str) -> None:
        code = iso2.upper()
        if img.get_attr(_ISO2_ATTR) != code:
            img.set_attr(_ISO2_ATTR, code)
            img.set_attr("alt", code)
            img.set_attr("src", url)

    def ensure_flag(self, el: Element, iso2: str) -> None:
        url = iso2_to_twemoji_url(iso2, base=self.flag_base)
        if url is None:
            return
        _ensure_container(el)
        wrapper, _ = _ensure_child(el, FLAG_CLASS)
        img = wrapper.query("img")
        if img is None:
            img = wrapper.append_child(Element("img"))
        self._set_flag_img(img, iso2, url)

    def ensure_birthplace_line(self, el: Element, iso2: str, place: str) -> None:
        url = iso2_to_twemoji_url(iso2, base=self.flag_base)
        if url is None:
            return
        _ensure_container(el)
        wrapper, created = _ensure_child(el, BIRTHPLACE_CLASS)
        if created:
            wrapper.append_child(Element("img"))
            wrapper.append_child(Element("span", classes=[BIRTHPLACE_TEXT_CLASS]))

        img = wrapper.query("img")
        if img is not None:
            self._set_flag_img(img, iso2, url)

        span = wrapper.child_by_class(BIRTHPLACE_TEXT_CLASS)
        text = place.strip()
        if span is not None:
            span.set_text(text)
        wrapper.set_attr("title", text)

    def ensure_deceased(self, el: Element) -> None:
        _ensure_container(el)
        _ensure_child(el, DECEASED_MASK_CLASS)
        marker, created = _ensure_child(el, DECEASED_CLASS)
        if created:
            marker.set_text(_DECEASED_MARK)

    def remove_deceased(self, el: Element) -> None:
        _remove_child(el, DECEASED_CLASS)
        _remove_child(el, DECEASED_MASK_CLASS)

    # ---------------- API ----------------

    def apply(
        self,
        el: Element,
        person_id: str,
        flags: DisplayFlags,
        *,
        context: DetailsContext | None = None,
        route_id: str | None = None,
    ) -> None:
        cache = self.cache

        current = cache.age_text.get(person_id)
        if current:
            current_text = f"{_ICON_CURRENT}{current}" if flags.show_age_icons else current
            release = self.release_age_text(person_id, flags, context, route_id)
            if release:
                primary = f"{_ICON_RELEASE}{release}" if flags.show_age_icons else release
                self.ensure_age_badge(el, primary, current_text)
            else:
                self.ensure_age_badge(el, current_text, None)
        else:
            _remove_child(el, AGE_BADGE_CLASS)

        if flags.show_birth_country_flag:
            iso2 = cache.birth_country_iso2.get(person_id)
            place = cache.birth_place.get(person_id)
            if iso2 and flags.show_birth_place_text and place:
                self.ensure_birthplace_line(el, iso2, place)
                _remove_child(el, FLAG_CLASS)
                el.add_class(HAS_BIRTHPLACE_CLASS)
            else:
                _remove_child(el, BIRTHPLACE_CLASS)
                el.remove_class(HAS_BIRTHPLACE_CLASS)
                if iso2:
                    self.ensure_flag(el, iso2)
                else:
                    _remove_child(el, FLAG_CLASS)
        else:
            _remove_child(el, FLAG_CLASS)
            _remove_child(el, BIRTHPLACE_CLASS)
            el.remove_class(HAS_BIRTHPLACE_CLASS)

        if flags.show_deceased_overlay and cache.is_deceased.get(person_id) is True:
            self.ensure_deceased(el)
        else:
            self.remove_deceased(el)

    def teardown(self, el: Element) -> None:
        for cls in OVERLAY_CLASSES:
            _remove_child(el, cls)
        el.remove_class(HAS_BIRTHPLACE_CLASS)
