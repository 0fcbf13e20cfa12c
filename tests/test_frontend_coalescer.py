from __future__ import annotations

import asyncio

from frontend.attribute_cache import ClientAttributeCache
from frontend.coalescer import BatchRequestCoalescer
from frontend.front_api_client import ApiClientError
from frontend.front_status import DisplayFlags

FLAGS = DisplayFlags(enabled=True, show_age_at_release=False, show_birth_country_flag=False)


def _full(pid: str) -> dict[str, object]:
    return {"ageText": "40"}


class FakeApi:
    def __init__(self, known: set[str] | None = None, *, fail: bool = False) -> None:
        self.known = set(known or ())
        self.fail = fail
        self.batches: list[list[str]] = []

    async def fetch_ages(self, ids):
        self.batches.append(list(ids))
        if self.fail:
            raise ApiClientError("down")
        return {pid: _full(pid) for pid in ids if pid in self.known}


def _make(api: FakeApi, *, touch=None, clock=lambda: 0.0, **kw):
    cache = ClientAttributeCache()
    delivered: list[str] = []
    coalescer = BatchRequestCoalescer(
        fetch_ages=api.fetch_ages,
        cache=cache,
        flags=lambda: FLAGS,
        deliver=delivered.append,
        touch=touch,
        debounce_s=0.01,
        clock=clock,
        **kw,
    )
    return coalescer, cache, delivered


def test_requests_are_grouped_into_one_batch() -> None:
    ids = [f"p{i:02d}" for i in range(50)]
    api = FakeApi(set(ids))
    coalescer, cache, delivered = _make(api)

    async def run():
        for pid in ids:
            coalescer.request_attributes(pid)
        coalescer.request_attributes("p00")
        assert coalescer.pending_ids == ids
        await asyncio.sleep(0.05)
        await coalescer.wait_idle()

    asyncio.run(run())

    assert api.batches == [ids]
    assert delivered == ids
    assert cache.age_text["p07"] == "40 y"


def test_large_pending_set_is_split_into_capped_batches() -> None:
    ids = [f"p{i:03d}" for i in range(250)]
    api = FakeApi(set(ids))
    coalescer, _, delivered = _make(api, batch_max_ids=200)

    async def run():
        for pid in ids:
            coalescer.request_attributes(pid)
        await coalescer.flush()

    asyncio.run(run())

    assert [len(b) for b in api.batches] == [200, 50]
    assert delivered == ids


def test_failed_chunk_does_not_discard_the_others() -> None:
    class HalfBrokenApi(FakeApi):
        async def fetch_ages(self, ids):
            self.batches.append(list(ids))
            if "b" in ids:
                raise ApiClientError("HTTP 413")
            return {pid: _full(pid) for pid in ids if pid in self.known}

    api = HalfBrokenApi({"a", "b", "c"})
    coalescer, cache, delivered = _make(api, batch_max_ids=1)

    async def run():
        for pid in ("a", "b", "c"):
            coalescer.request_attributes(pid)
        await coalescer.flush()

    asyncio.run(run())

    assert api.batches == [["a"], ["b"], ["c"]]
    assert delivered == ["a", "c"]
    assert not cache.knows_anything("b")


def test_cached_id_is_delivered_without_request() -> None:
    api = FakeApi()
    coalescer, cache, delivered = _make(api)
    cache.apply_record("a", {"ageText": "40"})

    async def run():
        coalescer.request_attributes("a")
        await asyncio.sleep(0.03)

    asyncio.run(run())

    assert delivered == ["a"]
    assert api.batches == []


def test_missing_ids_are_touched_and_requeried_once() -> None:
    api = FakeApi({"a"})
    touched: list[str] = []

    async def touch(pid: str) -> None:
        touched.append(pid)
        api.known.add(pid)

    coalescer, _, delivered = _make(api, touch=touch)

    async def run():
        coalescer.request_attributes("a")
        coalescer.request_attributes("b")
        await coalescer.flush()

    asyncio.run(run())

    assert api.batches == [["a", "b"], ["b"]]
    assert touched == ["b"]
    assert delivered == ["a", "b"]


def test_touch_cooldown_and_cap() -> None:
    api = FakeApi()
    touched: list[str] = []
    now = [0.0]

    async def touch(pid: str) -> None:
        touched.append(pid)

    coalescer, _, _ = _make(api, touch=touch, clock=lambda: now[0], touch_max_per_flush=2, touch_cooldown_s=600.0)

    async def run():
        for pid in ("a", "b", "c"):
            coalescer.request_attributes(pid)
        await coalescer.flush()
        for pid in ("a", "b", "c"):
            coalescer.request_attributes(pid)
        await coalescer.flush()
        now[0] = 601.0
        coalescer.request_attributes("a")
        await coalescer.flush()

    asyncio.run(run())

    assert touched == ["a", "b", "c", "a"]


def test_slow_touch_times_out() -> None:
    api = FakeApi()

    async def touch(pid: str) -> None:
        await asyncio.sleep(5)

    coalescer, _, _ = _make(api, touch=touch, touch_timeout_s=0.01)

    async def run():
        coalescer.request_attributes("a")
        await asyncio.wait_for(coalescer.flush(), timeout=1.0)

    asyncio.run(run())

    assert api.batches == [["a"], ["a"]]


def test_batch_failure_leaves_cache_untouched() -> None:
    api = FakeApi({"a"}, fail=True)
    coalescer, cache, delivered = _make(api)

    async def run():
        coalescer.request_attributes("a")
        await coalescer.flush()

    asyncio.run(run())

    assert delivered == []
    assert not cache.knows_anything("a")
    assert coalescer.pending_ids == []
