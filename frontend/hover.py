from __future__ import annotations

"""
frontend/hover.py

Popups de hover: filmografía (sobre una persona) y reparto (sobre una obra).

Fetchers
--------
- Caché con TTL propio por fetcher y coalescing de peticiones en vuelo: dos hovers
  simultáneos sobre la misma clave comparten UNA petición.
- FilmographyFetcher:
    * limit 1..100; TTL FILMOGRAPHY_TTL_S; total de títulos con TTL FILMOGRAPHY_TOTAL_TTL_S.
    * randomize y total <= limit => orden determinista (PremiereDate,SortName desc), cacheable.
    * randomize y total > limit  => muestra aleatoria en cada llamada, NUNCA se cachea;
      las llamadas concurrentes se coalescen igualmente por (id, "rnd", limit).
- CastFetcher: personas del item (actores/invitados primero), orden SortOrder y nombre.
- Los errores degradan a un resultado vacío que no se cachea.

Controlador
-----------
HoverPopupController: mostrar tras un retardo, ocultar tras otro; entrar de nuevo o cambiar
de objetivo cancela y reprograma; una respuesta que llega cuando el objetivo ya cambió
se descarta.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Hashable, Mapping, TypeVar

from backend.debounce import DebouncedTask
from frontend.attribute_cache import ClientAttributeCache
from frontend.config_front_base import (
    CAST_TTL_S,
    FILMOGRAPHY_TOTAL_TTL_S,
    FILMOGRAPHY_TTL_S,
    HOVER_HIDE_DELAY_S,
    TWEMOJI_FLAG_BASE,
)
from frontend.dom import Document, Element, Rect
from frontend.front_api_client import ApiClientError
from frontend.front_logger import log_debug
from frontend.identity import iso2_to_twemoji_url, normalize_id

T = TypeVar("T")

_LIMIT_MIN = 1
_LIMIT_MAX = 100
_LIMIT_DEFAULT = 12

_ACTOR_TYPES = frozenset({"actor", "gueststar", "guest star", "guest_star"})


def clamp_limit(value: object) -> int:
    try:
        n = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return _LIMIT_DEFAULT
    if n == 0:
        return _LIMIT_DEFAULT
    return max(_LIMIT_MIN, min(_LIMIT_MAX, n))


def _pick(obj: Mapping[str, Any], camel: str) -> Any:
    pascal = camel[:1].upper() + camel[1:]
    v = obj.get(pascal)
    return obj.get(camel) if v is None else v


# ============================================================
# Cachés y coalescing
# ============================================================


class TtlCache(Generic[T]):
    def __init__(self, ttl_s: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_s = ttl_s
        self._clock = clock
        self._data: dict[Hashable, tuple[T, float]] = {}

    def get(self, key: Hashable) -> T | None:
        hit = self._data.get(key)
        if hit is None:
            return None
        value, stored_at = hit
        if (self._clock() - stored_at) >= self.ttl_s:
            del self._data[key]
            return None
        return value

    def set(self, key: Hashable, value: T) -> None:
        self._data[key] = (value, self._clock())

    def __len__(self) -> int:
        return len(self._data)


class HoverDetailFetcher:
    """Base: coalescing de peticiones en vuelo por clave."""

    def __init__(self) -> None:
        self._in_flight: dict[Hashable, asyncio.Task[Any]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def _coalesce(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task

            def _done(t: asyncio.Task[Any], k: Hashable = key) -> None:
                if self._in_flight.get(k) is t:
                    del self._in_flight[k]

            task.add_done_callback(_done)
        return await asyncio.shield(task)


# ============================================================
# Filmografía
# ============================================================


@dataclass(frozen=True)
class FilmographyResult:
    items: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    randomized: bool = False


class FilmographyFetcher(HoverDetailFetcher):
    def __init__(
        self,
        catalog: Any,
        *,
        ttl_s: float = FILMOGRAPHY_TTL_S,
        total_ttl_s: float = FILMOGRAPHY_TOTAL_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self.catalog = catalog
        self.cache: TtlCache[FilmographyResult] = TtlCache(ttl_s, clock=clock)
        self.totals: TtlCache[int] = TtlCache(total_ttl_s, clock=clock)

    async def fetch_total(self, person_id: str) -> int:
        cached = self.totals.get(person_id)
        if cached is not None:
            return cached
        params = {
            "PersonIds": person_id,
            "IncludeItemTypes": "Movie,Series",
            "Recursive": "true",
            "Limit": "1",
            "StartIndex": "0",
            "EnableTotalRecordCount": "true",
        }
        try:
            payload = await self.catalog.query_items(params)
        except ApiClientError as exc:
            log_debug(f"filmography total failed for {person_id}: {exc}")
            return 0
        total = int(_pick(payload, "totalRecordCount") or 0)
        self.totals.set(person_id, total)
        return total

    async def fetch(self, person_id: str, limit: int, randomize: bool) -> FilmographyResult:
        pid = normalize_id(person_id)
        if not pid:
            return FilmographyResult()
        lim = clamp_limit(limit)

        cached = self.cache.get((pid, lim))
        if cached is not None and (not randomize or 0 < cached.total <= lim):
            return cached

        key = (pid, "rnd" if randomize else "norm", lim)
        return await self._coalesce(key, lambda: self._load(pid, lim, randomize))

    async def _load(self, pid: str, lim: int, randomize: bool) -> FilmographyResult:
        do_random = randomize
        if do_random:
            total = await self.fetch_total(pid)
            if 0 < total <= lim:
                do_random = False

        params: dict[str, str | int] = {
            "PersonIds": pid,
            "IncludeItemTypes": "Movie,Series",
            "Recursive": "true",
            "Limit": str(lim),
            "Fields": "ProductionYear",
            "EnableTotalRecordCount": "true",
        }
        if do_random:
            params["SortBy"] = "Random"
        else:
            params["SortBy"] = "PremiereDate,SortName"
            params["SortOrder"] = "Descending"

        try:
            payload = await self.catalog.query_items(params)
        except ApiClientError as exc:
            log_debug(f"filmography failed for {pid}: {exc}")
            return FilmographyResult()

        raw = _pick(payload, "items")
        items = [x for x in raw if isinstance(x, dict) and _pick(x, "id") and _pick(x, "name")] if isinstance(raw, list) else []
        total = int(_pick(payload, "totalRecordCount") or len(items))

        result = FilmographyResult(items=items, total=total, randomized=do_random)
        if not do_random:
            self.cache.set((pid, lim), result)
        return result


# ============================================================
# Reparto
# ============================================================


@dataclass(frozen=True)
class CastResult:
    title: str = ""
    people: list[dict[str, Any]] = field(default_factory=list)
    item_type: str = ""


def extract_cast_people(item: Mapping[str, Any] | None) -> list[dict[str, Any]]:
    if not item:
        return []
    raw = _pick(item, "people")
    people = [p for p in raw if isinstance(p, dict)] if isinstance(raw, list) else []
    if not people:
        return []

    actors = [p for p in people if str(_pick(p, "type") or "").lower() in _ACTOR_TYPES]
    chosen = actors or people

    def _order(p: dict[str, Any]) -> tuple[int, str]:
        so = _pick(p, "sortOrder")
        return (so if isinstance(so, int) else 9999, str(_pick(p, "name") or "").casefold())

    return sorted(chosen, key=_order)


class CastFetcher(HoverDetailFetcher):
    def __init__(self, catalog: Any, *, ttl_s: float = CAST_TTL_S, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self.catalog = catalog
        self.cache: TtlCache[CastResult] = TtlCache(ttl_s, clock=clock)

    async def fetch(self, item_id: str) -> CastResult:
        iid = str(item_id or "")
        if not iid:
            return CastResult()
        cached = self.cache.get(iid)
        if cached is not None:
            return cached
        return await self._coalesce((iid, "people"), lambda: self._load(iid))

    async def _load(self, iid: str) -> CastResult:
        try:
            item = await self.catalog.get_item(iid, fields="People")
        except ApiClientError as exc:
            log_debug(f"cast failed for {iid}: {exc}")
            return CastResult()

        item = item or {}
        result = CastResult(
            title=str(_pick(item, "name") or ""),
            people=extract_cast_people(item),
            item_type=str(_pick(item, "type") or "").lower(),
        )
        self.cache.set(iid, result)
        return result


# ============================================================
# Colocación
# ============================================================


@dataclass(frozen=True)
class PopupPlacement:
    left: int
    top: int
    width: int
    max_height: int


def position_popup(
    anchor: Rect,
    viewport_width: float,
    viewport_height: float,
    *,
    min_width: int = 260,
    max_width: int = 420,
    width_ratio: float = 0.30,
    max_height: int = 360,
    height_ratio: float = 0.55,
    pad: int = 10,
) -> PopupPlacement:
    """A la derecha del ancla; si no cabe, a la izquierda; en vertical se ajusta al viewport."""
    width = min(max_width, max(min_width, int(viewport_width * width_ratio)))

    left = anchor.right + pad
    top = anchor.top
    if left + width + pad > viewport_width:
        left = max(pad, anchor.left - width - pad)

    max_h = min(max_height, int(viewport_height * height_ratio))
    if top + max_h + pad > viewport_height:
        top = max(pad, viewport_height - max_h - pad)

    return PopupPlacement(left=round(left), top=round(top), width=width, max_height=max_h)


def position_cast_popup(anchor: Rect, viewport_width: float, viewport_height: float) -> PopupPlacement:
    return position_popup(
        anchor,
        viewport_width,
        viewport_height,
        max_width=520,
        width_ratio=0.34,
        max_height=420,
        height_ratio=0.60,
    )


# ============================================================
# Render de popups
# ============================================================


def _header(prefix: str, title: str, meta: str) -> Element:
    header = Element("div", classes=[f"{prefix}-header"])
    header.append_child(Element("div", classes=[f"{prefix}-title"], text=title))
    header.append_child(Element("div", classes=[f"{prefix}-metaheader"], text=meta))
    return header


def _thumb(prefix: str, url: str | None, alt: str) -> Element:
    thumb = Element("div", classes=[f"{prefix}-thumb"])
    if url:
        thumb.append_child(Element("img", attrs={"src": url, "alt": alt, "loading": "lazy"}))
    else:
        thumb.add_class("actorlens-thumb-missing")
    return thumb


def render_loading(popup: Element, prefix: str, title: str) -> None:
    popup.clear_children()
    popup.append_child(_header(prefix, title, ""))
    popup.append_child(Element("div", classes=[f"{prefix}-loading"], text="Loading…"))


def render_filmography(
    popup: Element,
    *,
    person_name: str,
    result: FilmographyResult,
    image_url: Callable[[str], str | None],
) -> None:
    prefix = "actorlens-filmography"
    title = f"Filmography: {person_name}" if person_name else "Filmography"
    meta = ""
    if result.total > 0:
        meta = f"Shown {len(result.items)} of {result.total}" + (" • random" if result.randomized else "")

    lst = Element("div", classes=[f"{prefix}-list"])
    if not result.items:
        lst.append_child(Element("div", classes=[f"{prefix}-empty"], text="Nothing found in the library."))
    for it in result.items:
        iid = str(_pick(it, "id") or "")
        name = str(_pick(it, "name") or "—")
        year = _pick(it, "productionYear")
        kind = "Series" if str(_pick(it, "type") or "").lower() == "series" else "Movie"

        row = Element("a", classes=[f"{prefix}-item"], attrs={"href": f"#/details?id={iid}"})
        row.append_child(_thumb(prefix, image_url(iid), name))
        body = Element("div", classes=[f"{prefix}-body"])
        body.append_child(Element("div", classes=[f"{prefix}-name"], text=name))
        body.append_child(Element("div", classes=[f"{prefix}-sub"], text=f"{kind} • {year}" if year else kind))
        row.append_child(body)
        lst.append_child(row)

    popup.clear_children()
    popup.append_child(_header(prefix, title, meta))
    popup.append_child(lst)


def render_cast(
    popup: Element,
    *,
    result: CastResult,
    limit: int,
    cache: ClientAttributeCache,
    image_url: Callable[[str], str | None],
    flag_base: str = TWEMOJI_FLAG_BASE,
) -> None:
    prefix = "actorlens-cast"
    lim = clamp_limit(limit)
    shown = result.people[:lim]
    total = len(result.people)
    title = f"Cast: {result.title}" if result.title else "Cast"
    meta = f"Shown {len(shown)} of {total}" if total else ""

    lst = Element("div", classes=[f"{prefix}-list"])
    if not shown:
        lst.append_child(Element("div", classes=[f"{prefix}-empty"], text="No cast data."))
    for p in shown:
        pid = str(_pick(p, "id") or "")
        name = str(_pick(p, "name") or "—")
        role = str(_pick(p, "role") or "")

        row = Element("a", classes=[f"{prefix}-item"], attrs={"href": f"#/details?id={pid}"} if pid else None)
        row.append_child(_thumb(prefix, image_url(pid) if pid else None, name))

        name_row = Element("div", classes=[f"{prefix}-name-row"])
        name_row.append_child(Element("span", classes=[f"{prefix}-name-text"], text=name))
        nid = normalize_id(pid)
        iso2 = cache.birth_country_iso2.get(nid)
        flag_url = iso2_to_twemoji_url(iso2, base=flag_base)
        if iso2 and flag_url:
            hint = cache.birth_place.get(nid) or iso2
            name_row.append_child(
                Element("img", classes=[f"{prefix}-flag"], attrs={"src": flag_url, "alt": iso2, "title": hint})
            )

        body = Element("div", classes=[f"{prefix}-body"])
        body.append_child(name_row)
        if role:
            body.append_child(Element("div", classes=[f"{prefix}-sub"], text=role))
        row.append_child(body)
        lst.append_child(row)

    popup.clear_children()
    popup.append_child(_header(prefix, title, meta))
    popup.append_child(lst)


# ============================================================
# Controlador de hover
# ============================================================

Placer = Callable[[Rect, float, float], PopupPlacement]


class HoverPopupController(Generic[T]):
    def __init__(
        self,
        document: Document,
        *,
        css_prefix: str,
        loading_title: str,
        show_delay_s: float,
        load: Callable[[Element], Awaitable[T | None]],
        render: Callable[[Element, Element, T], None],
        hide_delay_s: float = HOVER_HIDE_DELAY_S,
        place: Placer = position_popup,
    ) -> None:
        self.document = document
        self.css_prefix = css_prefix
        self.loading_title = loading_title
        self._load = load
        self._render = render
        self._place = place

        self.popup: Element | None = None
        self._target: Element | None = None
        self._pending: Element | None = None
        self._show_timer = DebouncedTask(show_delay_s, self._show_pending, name=f"{css_prefix}-show")
        self._hide_timer = DebouncedTask(hide_delay_s, self.hide, name=f"{css_prefix}-hide")

    @property
    def target(self) -> Element | None:
        return self._target

    @property
    def visible(self) -> bool:
        return self.popup is not None and self.popup.style.get("display") == "block"

    def _ensure_popup(self) -> Element:
        if self.popup is None:
            self.popup = Element("div", classes=[f"{self.css_prefix}-popup"], style={"display": "none"})
            self.document.body.append_child(self.popup)
        return self.popup

    def _position(self, anchor: Element) -> None:
        popup = self._ensure_popup()
        pl = self._place(anchor.rect, self.document.viewport_width, self.document.viewport_height)
        popup.set_style("width", f"{pl.width}px")
        popup.set_style("max-height", f"{pl.max_height}px")
        popup.set_style("left", f"{pl.left}px")
        popup.set_style("top", f"{pl.top}px")

    # ---------------- eventos ----------------

    def pointer_over(self, anchor: Element) -> None:
        if anchor is self._target:
            return
        self._target = anchor
        self._pending = anchor
        self._hide_timer.cancel()
        self._show_timer.schedule()

    def pointer_out(self, anchor: Element, related: Element | None = None) -> None:
        if anchor is not self._target:
            return
        if self.popup is None:
            # Primer hover: aún no hay popup, basta con anular el show pendiente.
            self._show_timer.cancel()
            self._target = None
            self._pending = None
            return
        if related is not None and self.popup.contains(related):
            return
        self.schedule_hide()

    def popup_enter(self) -> None:
        self._hide_timer.cancel()

    def popup_leave(self) -> None:
        self.schedule_hide()

    def schedule_hide(self) -> None:
        self._show_timer.cancel()
        self._hide_timer.schedule()

    def cancel(self) -> None:
        self._show_timer.cancel()
        self._hide_timer.cancel()

    # ---------------- show / hide ----------------

    async def _show_pending(self) -> None:
        anchor = self._pending
        self._pending = None
        if anchor is not None:
            await self.show(anchor)

    async def show(self, anchor: Element) -> bool:
        """True si se pintó el resultado; False si se descartó (objetivo cambiado o sin datos)."""
        self._hide_timer.cancel()
        popup = self._ensure_popup()
        render_loading(popup, self.css_prefix, self.loading_title)
        self._position(anchor)
        popup.set_style("display", "block")
        self._target = anchor

        payload = await self._load(anchor)
        if self._target is not anchor:
            return False
        if payload is None:
            self.hide()
            return False

        self._render(popup, anchor, payload)
        self._position(anchor)
        popup.set_style("display", "block")
        return True

    def hide(self) -> None:
        if self.popup is None:
            return
        self.popup.set_style("display", "none")
        self.popup.clear_children()
        self._target = None
