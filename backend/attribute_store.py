from __future__ import annotations

"""
backend/attribute_store.py

Caché persistente PersonId -> AttributeRecord con flush diferido (debounce).

Contrato
--------
- ensure_loaded(): carga el fichero UNA sola vez por instancia, aunque haya llamadas
  concurrentes (asyncio.Lock). Fichero ausente => tabla vacía. Fichero corrupto => warning
  + tabla vacía (en DEBUG se renombra a *.corrupt.<ts> para inspección).
- get()/set(): acceso O(1) en memoria. `set` reemplaza la referencia completa (los registros
  son inmutables), así que un lector nunca ve un registro a medias.
- Cada `set` marca dirty y reinicia el temporizador de flush (ATTR_STORE_FLUSH_DEBOUNCE_SECONDS).
- flush(): serializa la tabla completa y la escribe de forma atómica (temp + fsync + replace).
  Un único lock evita flushes solapados; si falla la escritura se loguea y el dirty se
  mantiene para reintentar en el siguiente flush.
- close(): cancela el temporizador y hace un último flush si hay cambios.
"""

import asyncio
import json
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Mapping

from backend import logger as _logger
from backend.config_attributes import ATTR_STORE_FLUSH_DEBOUNCE_SECONDS
from backend.debounce import DebouncedTask
from backend.errors import PersistenceError
from backend.models import AttributeRecord, try_normalize_person_id

TableWriter = Callable[[Path, Mapping[str, object]], None]


# ============================================================
# I/O (se ejecuta en hilos vía asyncio.to_thread)
# ============================================================


def save_table_atomic(path: Path, payload: Mapping[str, object]) -> None:
    """
    Escritura atómica:
    - temp file en el mismo directorio
    - fsync
    - replace

    Nota:
    - Best-effort con fsync: si falla en FS remotos, seguimos.
    """
    dirpath = path.parent
    temp_name: str | None = None
    try:
        dirpath.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(dirpath)) as tf:
            temp_name = tf.name
            json.dump(payload, tf, ensure_ascii=False, indent=2)
            tf.flush()
            try:
                os.fsync(tf.fileno())
            except OSError:
                pass

        os.replace(temp_name, str(path))
    except OSError as exc:
        raise PersistenceError(f"Cannot write {path}: {exc!r}") from exc
    finally:
        if temp_name and os.path.exists(temp_name):
            try:
                os.remove(temp_name)
            except OSError:
                pass


def _maybe_quarantine_corrupt_file(path: Path) -> None:
    """
    En DEBUG: renombra el fichero corrupto para inspección.
    En normal: se recrea en el siguiente flush (fail-safe).
    """
    if not _logger.is_debug_mode():
        return
    try:
        bad_path = path.with_name(f"{path.name}.corrupt.{int(time.time())}")
        os.replace(str(path), str(bad_path))
        _logger.debug_ctx("STORE", f"Quarantined corrupt cache file -> {bad_path.name}")
    except OSError:
        return


def load_table(path: Path) -> dict[str, AttributeRecord]:
    if not path.exists():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        _logger.warning(f"[STORE] Unreadable cache file {path}: {exc!r}; starting empty", always=True)
        _maybe_quarantine_corrupt_file(path)
        return {}

    if not isinstance(raw, Mapping):
        _logger.warning(f"[STORE] Cache file {path} is not a JSON object; starting empty", always=True)
        return {}

    out: dict[str, AttributeRecord] = {}
    skipped = 0
    for key, value in raw.items():
        pid = try_normalize_person_id(key)
        if pid is None or not isinstance(value, Mapping):
            skipped += 1
            continue
        out[pid] = AttributeRecord.from_json(value)

    if skipped:
        _logger.debug_ctx("STORE", f"skipped {skipped} invalid entries while loading {path.name}")
    return out


# ============================================================
# Store
# ============================================================


class AttributeStore:
    def __init__(
        self,
        path: Path,
        *,
        flush_debounce_seconds: float = ATTR_STORE_FLUSH_DEBOUNCE_SECONDS,
        writer: TableWriter = save_table_atomic,
    ) -> None:
        self.path = Path(path)
        self._writer = writer

        self._table: dict[str, AttributeRecord] = {}
        self._loaded = False
        self._load_lock = asyncio.Lock()
        self._flush_lock = asyncio.Lock()

        self._dirty = False
        self._version = 0

        self._debounce = DebouncedTask(flush_debounce_seconds, self.flush, name="attribute-store")

        self._metrics_lock = threading.Lock()
        self._metrics: dict[str, int] = {
            "store_loads_total": 0,
            "store_sets_total": 0,
            "store_flush_total": 0,
            "store_flush_errors_total": 0,
        }

    # ---------------- metrics ----------------

    def _m_inc(self, key: str, n: int = 1) -> None:
        with self._metrics_lock:
            self._metrics[key] = self._metrics.get(key, 0) + n

    def metrics_snapshot(self) -> dict[str, int]:
        with self._metrics_lock:
            out = dict(self._metrics)
        out["store_records"] = len(self._table)
        return out

    # ---------------- load ----------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def dirty(self) -> bool:
        return self._dirty

    async def ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            if self._loaded:
                return
            table = await asyncio.to_thread(load_table, self.path)
            # Escrituras hechas antes de cargar (no debería pasar) tienen prioridad.
            table.update(self._table)
            self._table = table
            self._loaded = True
            self._m_inc("store_loads_total")
            _logger.info(f"[STORE] Loaded {len(table)} records from {self.path}")

    # ---------------- access ----------------

    def get(self, person_id: str) -> AttributeRecord | None:
        return self._table.get(person_id)

    def set(self, person_id: str, record: AttributeRecord) -> None:
        self._table[person_id] = record
        self._dirty = True
        self._version += 1
        self._m_inc("store_sets_total")
        self.schedule_flush()

    def snapshot(self) -> dict[str, AttributeRecord]:
        return dict(self._table)

    def __len__(self) -> int:
        return len(self._table)

    # ---------------- flush ----------------

    def schedule_flush(self) -> None:
        self._debounce.schedule()

    async def flush(self) -> bool:
        """Devuelve True si se escribió el fichero."""
        async with self._flush_lock:
            if not self._dirty:
                return False

            version = self._version
            payload = {pid: rec.to_json() for pid, rec in sorted(self._table.items())}

            try:
                await asyncio.to_thread(self._writer, self.path, payload)
            except Exception as exc:
                self._m_inc("store_flush_errors_total")
                _logger.error(f"[STORE] Flush failed ({len(payload)} records): {exc!r}")
                return False

            # Si hubo sets durante la escritura, sigue dirty (ya hay un flush programado).
            if self._version == version:
                self._dirty = False
            self._m_inc("store_flush_total")
            _logger.debug_ctx("STORE", f"flushed {len(payload)} records -> {self.path.name}")
            return True

    async def close(self) -> None:
        self._debounce.cancel()
        await self._debounce.wait_idle()
        if self._dirty:
            await self.flush()
