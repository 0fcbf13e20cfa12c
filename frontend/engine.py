from __future__ import annotations

"""
frontend/engine.py

PresentationEngine: orquesta el cliente completo sobre un Document.

Ciclo de vida
-------------
start():
    1) carga flags (/people/status). Si enabled=False el motor no hace nada más.
    2) resetea el contexto de la página de detalle y lo refresca en diferido.
    3) observa mutaciones del documento (scan incremental por nodo añadido).
    4) lanza el scan periódico (PERIODIC_SCAN_S) y un scan inicial.

Eventos que reenvía el adaptador del host:
    on_scroll()               -> rescan con debounce
    on_resize()               -> rescan
    on_visibility_change()    -> rescan al volver a ser visible
    on_navigation(url)        -> reset de contexto + refrescos escalonados + rescans forzados
    on_pointer_over(el)       -> popups de filmografía / reparto
    on_pointer_out(el, rel)

Flujo de datos
--------------
Scanner -> coalescer.request_attributes(id) -> batch /people/ages -> caché -> deliver(id)
        -> OverlayRenderer.apply() sobre cada elemento registrado para ese id.
"""

import asyncio
import time
from functools import partial
from typing import Any, Awaitable, Callable

from backend.debounce import DebouncedTask
from backend.models import parse_iso_date
from frontend.attribute_cache import ClientAttributeCache
from frontend.coalescer import BatchRequestCoalescer
from frontend.config_front_base import (
    CONTEXT_REFRESH_DELAY_S,
    HOVER_CAST_SHOW_DELAY_S,
    HOVER_FILMOGRAPHY_SHOW_DELAY_S,
    NAV_RESCAN_DELAY_S,
    PERIODIC_SCAN_S,
    SCROLL_DEBOUNCE_S,
    TWEMOJI_FLAG_BASE,
)
from frontend.dom import Document, Element
from frontend.front_api_client import ActorLensApiClient, ApiClientError, CatalogApiClient
from frontend.front_logger import log_debug, log_info
from frontend.front_status import StatusLoader
from frontend.hover import (
    CastFetcher,
    CastResult,
    FilmographyFetcher,
    FilmographyResult,
    HoverPopupController,
    position_cast_popup,
    render_cast,
    render_filmography,
)
from frontend.identity import (
    CARD_ANCHOR_SELECTOR,
    CARD_WRAPPER_SELECTOR,
    extract_id_from_url,
    extract_item_id,
    is_details_link,
    is_person_card_anchor,
    normalize_id,
)
from frontend.renderer import DetailsContext, OverlayRenderer
from frontend.scanner import IdleHook, ScanScheduler, Scanner, WaiterRegistry

_OWN_CLASS_PREFIX = "actorlens-"

# Reintentos del contexto tras navegar: el host puede tardar en pintar la ruta.
_CONTEXT_RETRY_DELAYS_S: tuple[float, ...] = (0.35, 1.2)

_THUMB_W = 80
_THUMB_H = 120


def _is_own_node(el: Element) -> bool:
    node: Element | None = el
    while node is not None:
        if any(c.startswith(_OWN_CLASS_PREFIX) for c in node.classes):
            return True
        node = node.parent
    return False


def _card_name(anchor: Element) -> str:
    for attr in ("title", "aria-label"):
        v = (anchor.get_attr(attr) or "").strip()
        if v:
            return v
    wrapper = anchor.closest(CARD_WRAPPER_SELECTOR) or anchor.parent
    if wrapper is not None:
        label = wrapper.query(".cardText")
        if label is not None and label.text.strip():
            return label.text.strip()
    return ""


def context_from_item(item_id: str, item: dict[str, Any] | None) -> DetailsContext:
    """Item del catálogo -> DetailsContext (PremiereDate o, si falta, 1 de enero del año)."""
    if not item:
        return DetailsContext(item_id=item_id)
    kind = str(item.get("Type") or item.get("type") or "").lower()
    premiere = parse_iso_date(item.get("PremiereDate") or item.get("premiereDate"))
    if premiere is None:
        year = item.get("ProductionYear") or item.get("productionYear")
        if isinstance(year, int) and year > 1800:
            premiere = parse_iso_date(f"{year:04d}-01-01")
    return DetailsContext(item_id=item_id, premiere=premiere, is_person=(kind == "person"))


class PresentationEngine:
    def __init__(
        self,
        document: Document,
        *,
        api: Any | None = None,
        catalog: Any | None = None,
        idle: IdleHook | None = None,
        clock: Callable[[], float] = time.monotonic,
        flag_base: str = TWEMOJI_FLAG_BASE,
        periodic_scan_s: float = PERIODIC_SCAN_S,
        scroll_debounce_s: float = SCROLL_DEBOUNCE_S,
        nav_rescan_delay_s: float = NAV_RESCAN_DELAY_S,
        context_refresh_delay_s: float = CONTEXT_REFRESH_DELAY_S,
    ) -> None:
        self.document = document
        self.api = api if api is not None else ActorLensApiClient()
        self.catalog = catalog if catalog is not None else CatalogApiClient()
        self.flag_base = flag_base
        self.periodic_scan_s = periodic_scan_s
        self.nav_rescan_delay_s = nav_rescan_delay_s
        self.context_refresh_delay_s = context_refresh_delay_s

        self.status = StatusLoader(self.api.fetch_status, clock=clock)
        self.cache = ClientAttributeCache()
        self.renderer = OverlayRenderer(self.cache, flag_base=flag_base)
        self.registry = WaiterRegistry(self.renderer.teardown)
        self.scanner = Scanner(document, self.registry, self._on_target, route_id=self.route_id)
        self.scheduler = ScanScheduler(document, self.scanner.scan, idle=idle)
        self.coalescer = BatchRequestCoalescer(
            fetch_ages=self.api.fetch_ages,
            cache=self.cache,
            flags=lambda: self.status.flags,
            deliver=self.deliver,
            touch=self._touch,
            clock=clock,
        )

        self.context: DetailsContext | None = None

        self.filmography = FilmographyFetcher(self.catalog, clock=clock)
        self.cast = CastFetcher(self.catalog, clock=clock)
        self.filmography_popup: HoverPopupController[tuple[str, FilmographyResult]] = HoverPopupController(
            document,
            css_prefix="actorlens-filmography",
            loading_title="Filmography",
            show_delay_s=HOVER_FILMOGRAPHY_SHOW_DELAY_S,
            load=self._load_filmography,
            render=self._render_filmography,
        )
        self.cast_popup: HoverPopupController[tuple[CastResult, int]] = HoverPopupController(
            document,
            css_prefix="actorlens-cast",
            loading_title="Cast",
            show_delay_s=HOVER_CAST_SHOW_DELAY_S,
            load=self._load_cast,
            render=self._render_cast,
            place=position_cast_popup,
        )

        self._scroll_timer = DebouncedTask(scroll_debounce_s, self.scheduler.schedule, name="SCROLL")
        self._periodic: asyncio.Task[None] | None = None
        self._handles: list[asyncio.TimerHandle] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def route_id(self) -> str | None:
        return extract_id_from_url(self.document.location)

    # ============================================================
    # Ciclo de vida
    # ============================================================

    async def start(self) -> bool:
        if self._started:
            return True
        flags = await self.status.load()
        if not flags.enabled:
            log_info("presentation disabled by server flags")
            return False

        self._started = True
        self.reset_context()
        self._later(self.context_refresh_delay_s, self.refresh_context)
        self.document.observe(self._on_mutations)
        self._periodic = asyncio.create_task(self._periodic_loop())
        self.scheduler.schedule()
        log_debug("engine started")
        return True

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        self.document.disconnect(self._on_mutations)

        for h in self._handles:
            h.cancel()
        self._handles.clear()

        self._scroll_timer.cancel()
        self.coalescer.close()
        for popup in (self.filmography_popup, self.cast_popup):
            popup.cancel()
            popup.hide()

        pending = list(self._tasks)
        if self._periodic is not None:
            pending.append(self._periodic)
            self._periodic = None
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        log_debug("engine stopped")

    async def _periodic_loop(self) -> None:
        while True:
            await asyncio.sleep(self.periodic_scan_s)
            await self.status.load()
            self.scheduler.schedule()

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _later_sync(self, delay_s: float, fn: Callable[[], object]) -> None:
        loop = asyncio.get_running_loop()
        # los ya vencidos sobran
        now = loop.time()
        self._handles = [h for h in self._handles if h.when() > now and not h.cancelled()]
        self._handles.append(loop.call_later(delay_s, fn))

    def _later(self, delay_s: float, coro_fn: Callable[[], Awaitable[Any]]) -> None:
        self._later_sync(delay_s, lambda: self._spawn(coro_fn()))

    # ============================================================
    # Contexto de la página de detalle
    # ============================================================

    def reset_context(self) -> None:
        self.context = None

    async def refresh_context(self) -> None:
        rid = self.route_id()
        if not rid:
            self.context = None
            return
        try:
            item = await self.catalog.get_item(rid)
        except ApiClientError as exc:
            log_debug(f"context refresh failed for {rid}: {exc}")
            return
        if self.route_id() != rid:
            return
        ctx = context_from_item(rid, item)
        if ctx != self.context:
            self.context = ctx
            self.scheduler.schedule(force=True)

    # ============================================================
    # Datos -> overlays
    # ============================================================

    def _on_target(self, person_id: str) -> None:
        self.coalescer.request_attributes(person_id)

    async def _touch(self, person_id: str) -> object:
        return await self.catalog.get_item(person_id)

    def deliver(self, person_id: str) -> None:
        flags = self.status.flags
        route_id = self.route_id()
        for el in self.registry.elements_for(person_id):
            self.renderer.apply(el, person_id, flags, context=self.context, route_id=route_id)

    # ============================================================
    # Eventos del host
    # ============================================================

    def _on_mutations(self, nodes: list[Element]) -> None:
        for node in nodes:
            if _is_own_node(node):
                continue
            self.scheduler.schedule(node)

    def on_scroll(self) -> None:
        self._scroll_timer.schedule()

    def on_resize(self) -> None:
        self.scheduler.schedule()

    def on_visibility_change(self) -> None:
        if not self.document.hidden:
            self.scheduler.schedule()

    def on_navigation(self, url: str) -> None:
        if url == self.document.location:
            return
        self.document.location = url
        self.reset_context()
        for popup in (self.filmography_popup, self.cast_popup):
            popup.cancel()
            popup.hide()

        self._later(self.context_refresh_delay_s, self.refresh_context)
        for delay in _CONTEXT_RETRY_DELAYS_S:
            self._later(delay, self.refresh_context)

        self.scheduler.schedule(force=True)
        self._later_sync(self.nav_rescan_delay_s, partial(self.scheduler.schedule, force=True))

    def _popup_for(self, el: Element) -> HoverPopupController[Any] | None:
        for ctrl in (self.filmography_popup, self.cast_popup):
            if ctrl.popup is not None and ctrl.popup.contains(el):
                return ctrl
        return None

    def on_pointer_over(self, el: Element) -> None:
        owner = self._popup_for(el)
        if owner is not None:
            owner.popup_enter()
            return

        flags = self.status.flags
        if not flags.enabled:
            return
        anchor = el if el.tag == "a" else el.closest("a")
        if anchor is None or not extract_item_id(anchor):
            return

        if flags.enable_hover_filmography and anchor.matches(CARD_ANCHOR_SELECTOR) and is_person_card_anchor(anchor):
            self.filmography_popup.pointer_over(anchor)
            return
        if flags.enable_hover_cast_menu and is_details_link(anchor) and not is_person_card_anchor(anchor):
            self.cast_popup.pointer_over(anchor)

    def on_pointer_out(self, el: Element, related: Element | None = None) -> None:
        owner = self._popup_for(el)
        if owner is not None:
            if related is None or not owner.popup.contains(related):  # type: ignore[union-attr]
                owner.popup_leave()
            return

        anchor = el if el.tag == "a" else el.closest("a")
        if anchor is None:
            return
        self.filmography_popup.pointer_out(anchor, related)
        self.cast_popup.pointer_out(anchor, related)

    # ============================================================
    # Popups
    # ============================================================

    def _image_url(self, item_id: str) -> str | None:
        return self.catalog.primary_image_url(item_id, width=_THUMB_W, height=_THUMB_H)

    async def _load_filmography(self, anchor: Element) -> tuple[str, FilmographyResult] | None:
        flags = await self.status.load()
        if not flags.enabled or not flags.enable_hover_filmography:
            return None
        pid = extract_item_id(anchor)
        if not pid:
            return None
        result = await self.filmography.fetch(
            pid, flags.hover_filmography_limit, flags.randomize_hover_filmography
        )
        return _card_name(anchor), result

    def _render_filmography(self, popup: Element, anchor: Element, payload: tuple[str, FilmographyResult]) -> None:
        name, result = payload
        render_filmography(popup, person_name=name, result=result, image_url=self._image_url)

    async def _load_cast(self, anchor: Element) -> tuple[CastResult, int] | None:
        flags = await self.status.load()
        if not flags.enabled or not flags.enable_hover_cast_menu:
            return None
        item_id = extract_item_id(anchor)
        if not item_id:
            return None
        result = await self.cast.fetch(item_id)

        if flags.show_birth_country_flag:
            shown = [normalize_id(p.get("Id") or p.get("id")) for p in result.people[: flags.hover_cast_limit]]
            missing = [pid for pid in shown if pid and pid not in self.cache.birth_country_iso2]
            if missing:
                try:
                    by_id = await self.api.fetch_ages(missing)
                except ApiClientError as exc:
                    log_debug(f"cast prefetch failed: {exc}")
                else:
                    for pid in missing:
                        self.cache.apply_partial(pid, by_id.get(pid))

        return result, flags.hover_cast_limit

    def _render_cast(self, popup: Element, anchor: Element, payload: tuple[CastResult, int]) -> None:
        result, limit = payload
        render_cast(
            popup,
            result=result,
            limit=limit,
            cache=self.cache,
            image_url=self._image_url,
            flag_base=self.flag_base,
        )
