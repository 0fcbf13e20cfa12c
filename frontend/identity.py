from __future__ import annotations

"""
frontend/identity.py

Identificación de personas/obras a partir de la representación de un elemento.

Orden de extracción del id (extract_item_id):
1) data-id más cercano (32 hex)
2) href del enlace más cercano con `id=` (32..36 hex/guiones)
3) fondo inline `/Items/<32hex>/Images` (solo .listItemImage)
"""

import re
from typing import Final

from frontend.config_front_base import TWEMOJI_FLAG_BASE
from frontend.dom import Element

CAST_SECTION_SELECTOR: Final[str] = "#castContent, #cast, .castContent, .cast, .peopleSection, .detailsCast, .itemDetailsCast"
CARD_WRAPPER_SELECTOR: Final[str] = ".cardScalable, .cardBox, .card, .cardWrapper, .cardContainer"
PERSON_ICON_SELECTOR: Final[str] = "span.cardImageIcon.person, span.material-icons.person, .cardImageIcon.person"
CARD_ANCHOR_SELECTOR: Final[str] = "a.cardImageContainer, a.cardImageContainer-withZoom"
TARGET_SELECTOR: Final[str] = "a.cardImageContainer, a.cardImageContainer-withZoom, .listItemImage"
DETAIL_IMAGE_SELECTOR: Final[str] = ".detailImageContainer, .detailImage, .detailPrimaryImageContainer"

_HEX32_RE: Final[re.Pattern[str]] = re.compile(r"^[0-9a-f]{32}$", re.IGNORECASE)
_URL_ID_RE: Final[re.Pattern[str]] = re.compile(r"(?:\?|&)id=([0-9a-fA-F-]{32,36})", re.IGNORECASE)
_BG_ID_RE: Final[re.Pattern[str]] = re.compile(r"/Items/([a-f0-9]{32})/Images", re.IGNORECASE)
_DETAILS_HREF_RE: Final[re.Pattern[str]] = re.compile(r"#/details\?id=", re.IGNORECASE)
_PERSON_CLASS_RE: Final[re.Pattern[str]] = re.compile(r"personCard", re.IGNORECASE)

_REGIONAL_INDICATOR_A: Final[int] = 0x1F1E6


def normalize_id(raw: object) -> str:
    return str(raw or "").lower().replace("-", "")


def extract_id_from_url(url: str | None) -> str | None:
    if not url:
        return None
    m = _URL_ID_RE.search(url)
    return normalize_id(m.group(1)) if m else None


def extract_id_from_background(el: Element) -> str | None:
    m = _BG_ID_RE.search(el.get_attr("style") or "")
    if m:
        return normalize_id(m.group(1))
    m = _BG_ID_RE.search(el.style.get("background-image", ""))
    return normalize_id(m.group(1)) if m else None


def extract_item_id(el: Element | None) -> str | None:
    if el is None:
        return None

    with_data_id = el.closest("[data-id]")
    if with_data_id is not None:
        raw = with_data_id.get_attr("data-id") or ""
        if _HEX32_RE.match(raw):
            return normalize_id(raw)

    link = el.closest('a[href*="id="]') or (el if el.tag == "a" else None)
    if link is not None:
        found = extract_id_from_url(link.get_attr("href"))
        if found:
            return found

    if el.has_class("listItemImage"):
        return extract_id_from_background(el)
    return None


def in_cast_section(el: Element) -> bool:
    return el.closest(CAST_SECTION_SELECTOR) is not None


def _has_person_icon(el: Element | None) -> bool:
    return el is not None and el.query(PERSON_ICON_SELECTOR) is not None


def is_person_card_anchor(el: Element | None) -> bool:
    """
    Un cardImageContainer es tarjeta de persona si:
    - vive en una sección de reparto, o
    - hay icono de persona en su wrapper de tarjeta o en los hermanos adyacentes, o
    - lleva la clase personCard.
    """
    if el is None or el.tag != "a":
        return False
    if in_cast_section(el):
        return True

    wrapper = el.closest(CARD_WRAPPER_SELECTOR) or el.parent
    if _has_person_icon(wrapper):
        return True
    if _has_person_icon(el.previous_sibling) or _has_person_icon(el.next_sibling):
        return True

    return bool(_PERSON_CLASS_RE.search(" ".join(el.classes)))


def is_details_link(el: Element) -> bool:
    return bool(_DETAILS_HREF_RE.search(el.get_attr("href") or ""))


def iso2_to_twemoji_url(iso2: str | None, *, base: str = TWEMOJI_FLAG_BASE) -> str | None:
    code = (iso2 or "").strip().upper()
    if len(code) != 2 or not ("A" <= code[0] <= "Z" and "A" <= code[1] <= "Z"):
        return None
    a = _REGIONAL_INDICATOR_A + (ord(code[0]) - ord("A"))
    b = _REGIONAL_INDICATOR_A + (ord(code[1]) - ord("A"))
    return f"{base}{a:x}-{b:x}.svg"
