import asyncio
import json
from datetime import date, datetime, timezone

import backend.attribute_store as store_mod
from backend.attribute_store import AttributeStore, load_table, save_table_atomic
from backend.errors import PersistenceError
from backend.models import AttributeRecord

PID_A = "a" * 32
PID_B = "b" * 32
PID_C = "c" * 32
TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _rec(year: int, source: str = "catalog") -> AttributeRecord:
    return AttributeRecord(birth_date=date(year, 1, 1), updated_at=TS, source=source)  # type: ignore[arg-type]


class RecordingWriter:
    def __init__(self, fail_times: int = 0) -> None:
        self.calls: list[dict] = []
        self.fail_times = fail_times

    def __call__(self, path, payload) -> None:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise PersistenceError("disk full")
        self.calls.append(dict(payload))


def test_ensure_loaded_runs_once_under_concurrency(tmp_path, monkeypatch):
    calls = []

    def fake_load(path):
        calls.append(path)
        return {PID_A: _rec(1970)}

    monkeypatch.setattr(store_mod, "load_table", fake_load)

    async def run():
        store = AttributeStore(tmp_path / "cache.json", writer=RecordingWriter())
        await asyncio.gather(*(store.ensure_loaded() for _ in range(10)))
        return store

    store = asyncio.run(run())

    assert len(calls) == 1
    assert store.loaded is True
    assert store.get(PID_A) == _rec(1970)


def test_rapid_sets_produce_single_flush(tmp_path):
    writer = RecordingWriter()

    async def run():
        store = AttributeStore(tmp_path / "cache.json", flush_debounce_seconds=0.05, writer=writer)
        await store.ensure_loaded()
        store.set(PID_A, _rec(1970))
        await asyncio.sleep(0.01)
        store.set(PID_B, _rec(1980))
        store.set(PID_C, _rec(1990))
        await asyncio.sleep(0.2)
        return store

    store = asyncio.run(run())

    assert len(writer.calls) == 1
    assert set(writer.calls[0]) == {PID_A, PID_B, PID_C}
    assert store.dirty is False


def test_flush_failure_keeps_memory_and_retries(tmp_path):
    writer = RecordingWriter(fail_times=1)

    async def run():
        store = AttributeStore(tmp_path / "cache.json", flush_debounce_seconds=60, writer=writer)
        await store.ensure_loaded()
        store.set(PID_A, _rec(1970))

        first = await store.flush()
        still_there = store.get(PID_A)
        dirty_after_failure = store.dirty
        second = await store.flush()
        await store.close()
        return store, first, still_there, dirty_after_failure, second

    store, first, still_there, dirty_after_failure, second = asyncio.run(run())

    assert first is False
    assert still_there == _rec(1970)
    assert dirty_after_failure is True
    assert second is True
    assert store.metrics_snapshot()["store_flush_errors_total"] == 1
    assert len(writer.calls) == 1


def test_flush_without_changes_is_noop(tmp_path):
    writer = RecordingWriter()

    async def run():
        store = AttributeStore(tmp_path / "cache.json", writer=writer)
        await store.ensure_loaded()
        return await store.flush()

    assert asyncio.run(run()) is False
    assert writer.calls == []


def test_close_flushes_pending_changes(tmp_path):
    writer = RecordingWriter()

    async def run():
        store = AttributeStore(tmp_path / "cache.json", flush_debounce_seconds=60, writer=writer)
        await store.ensure_loaded()
        store.set(PID_A, _rec(1970))
        await store.close()

    asyncio.run(run())

    assert len(writer.calls) == 1
    assert PID_A in writer.calls[0]


def test_atomic_save_and_load_roundtrip_with_legacy_tags(tmp_path):
    path = tmp_path / "nested" / "cache.json"
    save_table_atomic(
        path,
        {
            PID_A: {"BirthDate": "1970-01-01", "UpdatedUtc": "2024-01-01T00:00:00+00:00", "Source": "jellyfin"},
            PID_B.upper(): {"BirthDate": "1980-01-01", "UpdatedUtc": "2024-01-01T00:00:00Z", "Source": "tmdb"},
            "not-an-id": {"BirthDate": "1990-01-01"},
        },
    )

    table = load_table(path)

    assert set(table) == {PID_A, PID_B}
    assert table[PID_A].source == "catalog"
    assert table[PID_B].source == "external"
    assert [p.name for p in path.parent.iterdir()] == ["cache.json"]


def test_load_table_missing_and_corrupt(tmp_path):
    assert load_table(tmp_path / "missing.json") == {}

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert load_table(bad) == {}

    wrong = tmp_path / "list.json"
    wrong.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    assert load_table(wrong) == {}


def test_real_writer_persists_sorted_table(tmp_path):
    path = tmp_path / "cache.json"

    async def run():
        store = AttributeStore(path, flush_debounce_seconds=60)
        await store.ensure_loaded()
        store.set(PID_B, _rec(1980))
        store.set(PID_A, _rec(1970, source="external"))
        await store.close()

    asyncio.run(run())

    data = json.loads(path.read_text(encoding="utf-8"))
    assert list(data) == [PID_A, PID_B]
    assert data[PID_A]["Source"] == "external"
    assert data[PID_B]["BirthDate"] == "1980-01-01"
