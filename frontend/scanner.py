from __future__ import annotations

"""
frontend/scanner.py

Descubrimiento de elementos que representan personas y seguimiento de su reutilización.

- WaiterRegistry: id -> elementos que esperan datos, y elemento -> id actual.
  La pertenencia es exclusiva: si un elemento reciclado pasa a representar otro id,
  sale del conjunto anterior y se le retiran TODOS los overlays antes de unirse al nuevo.
  Referencias débiles: un elemento eliminado del documento desaparece solo.
- Scanner: recorre un subárbol, filtra tarjetas de persona y registra (id, elemento).
- ScanScheduler: coalesce peticiones de scan; "idle-first" con timeout de respaldo y
  sin escanear mientras el documento está oculto.
"""

import asyncio
import weakref
from typing import Callable

from frontend.config_front_base import IDLE_SCAN_TIMEOUT_S
from frontend.dom import Document, Element
from frontend.identity import (
    DETAIL_IMAGE_SELECTOR,
    TARGET_SELECTOR,
    extract_item_id,
    in_cast_section,
    is_person_card_anchor,
)

IdleHook = Callable[[Callable[[], None], float], None]


class WaiterRegistry:
    def __init__(self, on_evict: Callable[[Element], None]) -> None:
        self._on_evict = on_evict
        self._element_id: "weakref.WeakKeyDictionary[Element, str]" = weakref.WeakKeyDictionary()
        self._waiters: dict[str, "weakref.WeakSet[Element]"] = {}

    def __len__(self) -> int:
        return len(self._element_id)

    def id_of(self, el: Element) -> str | None:
        return self._element_id.get(el)

    def register(self, person_id: str, el: Element) -> None:
        prev = self._element_id.get(el)
        if prev is not None and prev != person_id:
            old = self._waiters.get(prev)
            if old is not None:
                old.discard(el)
                if not old:
                    del self._waiters[prev]
            self._on_evict(el)
        self._element_id[el] = person_id
        self._waiters.setdefault(person_id, weakref.WeakSet()).add(el)

    def elements_for(self, person_id: str) -> list[Element]:
        members = self._waiters.get(person_id)
        if not members:
            return []
        return [el for el in list(members) if self._element_id.get(el) == person_id]


class Scanner:
    def __init__(
        self,
        document: Document,
        registry: WaiterRegistry,
        on_target: Callable[[str], None],
        *,
        route_id: Callable[[], str | None],
    ) -> None:
        self.document = document
        self.registry = registry
        self._on_target = on_target
        self._route_id = route_id

    def _accept(self, el: Element) -> bool:
        if el.tag == "a":
            return is_person_card_anchor(el)
        # .listItemImage: solo dentro de secciones de reparto
        return in_cast_section(el)

    def scan(self, root: Element | None = None) -> int:
        """Devuelve el número de elementos registrados en esta pasada."""
        base = root or self.document.root
        candidates = base.query_all(TARGET_SELECTOR)
        if root is not None and root.matches(TARGET_SELECTOR):
            candidates.insert(0, root)

        found = 0
        for el in candidates:
            if not self._accept(el):
                continue
            pid = extract_item_id(el)
            if not pid:
                continue
            self.registry.register(pid, el)
            self._on_target(pid)
            found += 1

        route_id = self._route_id()
        if route_id:
            detail = self.document.query(DETAIL_IMAGE_SELECTOR)
            if detail is not None:
                self.registry.register(route_id, detail)
                self._on_target(route_id)
                found += 1
        return found


class ScanScheduler:
    def __init__(
        self,
        document: Document,
        run_scan: Callable[[Element | None], object],
        *,
        idle: IdleHook | None = None,
        idle_timeout_s: float = IDLE_SCAN_TIMEOUT_S,
    ) -> None:
        self.document = document
        self._run_scan = run_scan
        self._idle = idle
        self.idle_timeout_s = idle_timeout_s
        self._scheduled = False
        self._full = False
        self._roots: list[Element] = []

    @property
    def scheduled(self) -> bool:
        return self._scheduled

    def schedule(self, root: Element | None = None, *, force: bool = False) -> None:
        """root=None => documento completo. force descarta el scan ya programado y reprograma."""
        if root is None:
            self._full = True
        elif not any(r is root for r in self._roots):
            self._roots.append(root)

        if force:
            self._scheduled = False
        if self._scheduled:
            return
        self._scheduled = True

        if self._idle is not None:
            self._idle(self._run, self.idle_timeout_s)
        else:
            asyncio.get_running_loop().call_soon(self._run)

    def _run(self) -> None:
        if not self._scheduled:
            return
        self._scheduled = False
        full, roots = self._full, self._roots
        self._full, self._roots = False, []

        if self.document.hidden:
            return

        if full:
            self._run_scan(None)
            return
        for root in roots:
            if root.document is self.document:
                self._run_scan(root)

    def run_now(self) -> None:
        """Ejecuta lo pendiente sin esperar al loop (adaptadores síncronos y tests)."""
        if self._scheduled:
            self._run()
