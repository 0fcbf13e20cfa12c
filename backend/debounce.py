from __future__ import annotations

"""
backend/debounce.py

DebouncedTask: acción diferida y cancelable sobre el event loop de asyncio.

- schedule(): (re)inicia el temporizador; cada llamada pospone la ejecución.
- cancel(): descarta la ejecución pendiente.
- flush_now(): cancela el temporizador y ejecuta la acción inmediatamente.
- wait_idle(): espera a que terminen las ejecuciones ya lanzadas.

Lo usan el flush de la caché de atributos y, en el cliente, el batch de ids,
el rescan por scroll y los temporizadores de hover.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Union

from backend import logger as _logger

Action = Callable[[], Union[Awaitable[None], None]]


class DebouncedTask:
    def __init__(self, delay_seconds: float, action: Action, *, name: str = "debounce") -> None:
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._action = action
        self._name = name
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def running(self) -> bool:
        return bool(self._running)

    def schedule(self, delay_seconds: float | None = None) -> None:
        """Requiere un loop en marcha (se llama desde corutinas/callbacks)."""
        loop = asyncio.get_running_loop()
        self.cancel()
        delay = self.delay_seconds if delay_seconds is None else max(0.0, float(delay_seconds))
        self._handle = loop.call_later(delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush_now(self) -> None:
        self.cancel()
        await self._run()

    async def wait_idle(self) -> None:
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._run())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self) -> None:
        try:
            out = self._action()
            if inspect.isawaitable(out):
                await out
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            _logger.error(f"[{self._name}] debounced action failed: {exc!r}")
