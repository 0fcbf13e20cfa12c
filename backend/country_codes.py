from __future__ import annotations

"""
backend/country_codes.py

Lugar de nacimiento (texto libre, multi-idioma) -> ISO 3166-1 alpha-2.

Algoritmo:
1) Se trocea por comas ("Ciudad, Región, País") y se recorren los segmentos
   de derecha a izquierda.
2) Cada segmento se normaliza; los que son regiones/continentes (stoplist) se saltan.
3) El primer segmento presente en la tabla gana.
4) Fallback: la cadena completa normalizada como nombre de país.

La tabla vive en backend/data/country_iso2_map.json; sus claves se normalizan al cargar.
"""

import json
import re
import threading
import unicodedata
from pathlib import Path
from typing import Final, Mapping

from backend import logger as _logger
from backend.config_base import PACKAGE_DATA_DIR

COUNTRY_MAP_PATH: Final[Path] = PACKAGE_DATA_DIR / "country_iso2_map.json"

_MULTI_SPACE_RE: Final[re.Pattern[str]] = re.compile(r"\s+")
_BRACKETS_QUOTES_RE: Final[re.Pattern[str]] = re.compile(r"[()\[\]{}\"'`]")

# Regiones/continentes que suelen aparecer al final de un birthplace.
REGION_STOPLIST: Final[frozenset[str]] = frozenset(
    {
        "africa", "asia", "europe", "oceania", "antarctica",
        "north america", "south america", "central america", "latin america", "america",
        "caribbean", "middle east", "eurasia",
        "eu", "e u", "european union",
        "cis", "commonwealth of independent states",
        "европа", "евросоюз", "ес", "африка", "азия", "океания", "антарктида",
        "северная америка", "южная америка", "центральная америка", "латинская америка",
        "америка", "карибы",
    }
)


def normalize_country_name(value: str | None) -> str:
    """
    - quita diacríticos (NFD + descarta marcas combinantes)
    - minúsculas, ё -> е
    - comillas/corchetes, puntos y guiones -> espacio; & -> " and "
    - colapsa espacios
    """
    t = value or ""
    if not t:
        return ""

    t = unicodedata.normalize("NFD", t)
    t = "".join(ch for ch in t if unicodedata.category(ch) != "Mn")
    t = unicodedata.normalize("NFC", t)

    t = t.lower().replace("ё", "е").replace("’", "'").replace("`", "'")
    t = _BRACKETS_QUOTES_RE.sub(" ", t)
    t = t.replace(".", " ")
    for dash in ("-", "–", "—"):
        t = t.replace(dash, " ")
    t = t.replace("&", " and ")
    return _MULTI_SPACE_RE.sub(" ", t).strip()


def load_country_map(path: Path = COUNTRY_MAP_PATH) -> dict[str, str]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        _logger.error(f"[COUNTRY] Cannot load country map {path}: {exc!r}")
        return {}

    if not isinstance(raw, Mapping):
        _logger.error(f"[COUNTRY] Country map {path} is not a JSON object")
        return {}

    out: dict[str, str] = {}
    for name, iso2 in raw.items():
        key = normalize_country_name(str(name))
        code = str(iso2 or "").strip().upper()
        if key and len(code) == 2:
            out[key] = code
    return out


class CountryCodeMapper:
    """Carga perezosa (una vez, thread-safe) de la tabla de países."""

    def __init__(self, table: Mapping[str, str] | None = None, *, path: Path = COUNTRY_MAP_PATH) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._table: dict[str, str] | None = (
            {normalize_country_name(k): v.upper() for k, v in table.items()} if table is not None else None
        )

    def _map(self) -> dict[str, str]:
        if self._table is None:
            with self._lock:
                if self._table is None:
                    self._table = load_country_map(self._path)
        return self._table

    def lookup(self, country_name: str | None) -> str | None:
        key = normalize_country_name(country_name)
        if not key or key in REGION_STOPLIST:
            return None
        return self._map().get(key)

    def birthplace_to_iso2(self, birth_place: str | None) -> str | None:
        raw = (birth_place or "").strip()
        if not raw:
            return None

        table = self._map()

        segments = [p.strip() for p in raw.split(",") if p.strip()]
        for seg in reversed(segments):
            key = normalize_country_name(seg)
            if not key or key in REGION_STOPLIST:
                continue
            iso2 = table.get(key)
            if iso2:
                return iso2

        full = normalize_country_name(raw)
        if full:
            return table.get(full)
        return None
