from __future__ import annotations

"""
frontend/coalescer.py

BatchRequestCoalescer: agrupa peticiones de atributos por id en lotes temporizados.

Flujo
-----
request_attributes(id):
    - si la caché del cliente ya tiene todo lo que piden los flags -> deliver(id) inmediato
    - si no, se encola (sin duplicados) y se (re)inicia el debounce (BATCH_DEBOUNCE_S)

flush():
    1) UNA llamada batch con todos los ids pendientes (troceada en bloques de
       BATCH_MAX_IDS si hace falta); se aplican los resultados.
    2) deliver() para cada id con algún dato conocido.
    3) ids a los que aún les falta algo -> "touch" en el catálogo del host
       (cooldown por id, máx. por flush, concurrencia y timeout acotados) y
       UNA única re-consulta del subconjunto que faltaba.

Un fallo de la petición se registra y deja la caché intacta para ese bloque; el resto
de bloques se aplica. Los ids fallidos no se reintentan hasta que un scan los vuelva a pedir.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable

from backend.debounce import DebouncedTask
from frontend.attribute_cache import ClientAttributeCache
from frontend.config_front_base import (
    BATCH_DEBOUNCE_S,
    BATCH_MAX_IDS,
    TOUCH_CONCURRENCY,
    TOUCH_COOLDOWN_S,
    TOUCH_MAX_PER_FLUSH,
    TOUCH_TIMEOUT_S,
)
from frontend.front_api_client import ApiClientError
from frontend.front_logger import log_debug, log_warning
from frontend.front_status import DisplayFlags

FetchAges = Callable[[list[str]], Awaitable[dict[str, dict[str, Any]]]]
TouchFn = Callable[[str], Awaitable[object]]


class BatchRequestCoalescer:
    def __init__(
        self,
        *,
        fetch_ages: FetchAges,
        cache: ClientAttributeCache,
        flags: Callable[[], DisplayFlags],
        deliver: Callable[[str], None],
        touch: TouchFn | None = None,
        debounce_s: float = BATCH_DEBOUNCE_S,
        batch_max_ids: int = BATCH_MAX_IDS,
        touch_cooldown_s: float = TOUCH_COOLDOWN_S,
        touch_max_per_flush: int = TOUCH_MAX_PER_FLUSH,
        touch_concurrency: int = TOUCH_CONCURRENCY,
        touch_timeout_s: float = TOUCH_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch_ages = fetch_ages
        self.cache = cache
        self._flags = flags
        self._deliver = deliver
        self._touch = touch
        self.batch_max_ids = max(1, batch_max_ids)
        self.touch_cooldown_s = touch_cooldown_s
        self.touch_max_per_flush = max(0, touch_max_per_flush)
        self.touch_concurrency = max(1, touch_concurrency)
        self.touch_timeout_s = touch_timeout_s
        self._clock = clock

        self._queued: dict[str, None] = {}
        self._touched_at: dict[str, float] = {}
        self._timer = DebouncedTask(debounce_s, self.flush, name="BATCH")

    @property
    def pending_ids(self) -> list[str]:
        return list(self._queued)

    def request_attributes(self, person_id: str) -> None:
        if not person_id:
            return
        if not self.cache.needs(person_id, self._flags()):
            self._deliver(person_id)
            return
        if person_id in self._queued:
            return
        self._queued[person_id] = None
        self._timer.schedule()

    def close(self) -> None:
        self._timer.cancel()
        self._queued.clear()

    async def wait_idle(self) -> None:
        await self._timer.wait_idle()

    # ---------------- flush ----------------

    def _apply_and_deliver(self, ids: list[str], by_id: dict[str, dict[str, Any]]) -> None:
        for pid in ids:
            self.cache.apply_record(pid, by_id.get(pid))
        for pid in ids:
            if self.cache.knows_anything(pid):
                self._deliver(pid)

    async def _fetch_in_chunks(self, ids: list[str], what: str) -> tuple[list[str], dict[str, dict[str, Any]]]:
        """Pide los ids en bloques de batch_max_ids. Devuelve (ids respondidos, resultados)."""
        answered: list[str] = []
        by_id: dict[str, dict[str, Any]] = {}
        for start in range(0, len(ids), self.batch_max_ids):
            chunk = ids[start : start + self.batch_max_ids]
            try:
                by_id.update(await self._fetch_ages(chunk))
            except ApiClientError as exc:
                log_warning(f"{what} failed ({len(chunk)} ids): {exc}")
                continue
            answered.extend(chunk)
        return answered, by_id

    async def flush(self) -> None:
        self._timer.cancel()
        ids = list(self._queued)
        self._queued.clear()
        if not ids:
            return

        answered, by_id = await self._fetch_in_chunks(ids, "batch request")
        if not answered:
            return
        self._apply_and_deliver(answered, by_id)

        flags = self._flags()
        missing = [pid for pid in answered if self.cache.needs(pid, flags)]
        if not missing:
            return

        await self._touch_missing(missing)

        answered, by_id = await self._fetch_in_chunks(missing, "re-query")
        if answered:
            self._apply_and_deliver(answered, by_id)

    # ---------------- touch ----------------

    def _select_touch_candidates(self, ids: list[str]) -> list[str]:
        now = self._clock()
        todo: list[str] = []
        for pid in ids:
            if len(todo) >= self.touch_max_per_flush:
                break
            last = self._touched_at.get(pid)
            if last is not None and (now - last) < self.touch_cooldown_s:
                continue
            self._touched_at[pid] = now
            todo.append(pid)
        return todo

    async def _touch_one(self, touch: TouchFn, pid: str) -> None:
        try:
            await asyncio.wait_for(touch(pid), timeout=self.touch_timeout_s)
        except asyncio.TimeoutError:
            log_debug(f"touch timeout for {pid}")
        except ApiClientError as exc:
            log_debug(f"touch failed for {pid}: {exc}")

    async def _touch_missing(self, ids: list[str]) -> list[str]:
        touch = self._touch
        if touch is None:
            return []
        todo = self._select_touch_candidates(ids)
        if not todo:
            return []

        queue: asyncio.Queue[str] = asyncio.Queue()
        for pid in todo:
            queue.put_nowait(pid)

        async def worker() -> None:
            while not queue.empty():
                await self._touch_one(touch, queue.get_nowait())

        await asyncio.gather(*(worker() for _ in range(min(self.touch_concurrency, len(todo)))))
        return todo
