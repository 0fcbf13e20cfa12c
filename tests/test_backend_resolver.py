import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from backend.attribute_store import AttributeStore
from backend.country_codes import CountryCodeMapper
from backend.errors import MalformedPersonId, ResolutionCancelled, SourceUnavailable
from backend.metadata_providers import JellyfinV10Schema
from backend.models import AttributeRecord
from backend.resolver import ResolverOptions, SourceChainResolver
from backend.tmdb_client import TmdbPerson

PID = "0123456789abcdef0123456789abcdef"
PID2 = "fedcba9876543210fedcba9876543210"
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
TODAY = date(2024, 6, 1)

COUNTRIES = CountryCodeMapper({"spain": "ES", "usa": "US", "france": "FR"})


class FakeCatalog:
    def __init__(self, items=None, fail=False):
        self.items = dict(items or {})
        self.fail = fail
        self.calls: list[str] = []

    async def fetch_person_item(self, person_id):
        self.calls.append(person_id)
        if self.fail:
            raise SourceUnavailable("catalog", "boom")
        item = self.items.get(person_id)
        if isinstance(item, Exception):
            raise item
        return item


class FakeExternal:
    def __init__(self, people=None, configured=True, fail=False):
        self.people = dict(people or {})
        self.configured = configured
        self.fail = fail
        self.calls: list[int] = []

    async def fetch_person(self, tmdb_id):
        self.calls.append(tmdb_id)
        if self.fail:
            raise SourceUnavailable("tmdb", "boom")
        return self.people.get(tmdb_id)


def _writer(path, payload):
    return None


def _make(tmp_path, catalog, external=None, **opts):
    store = AttributeStore(tmp_path / "cache.json", flush_debounce_seconds=60, writer=_writer)
    resolver = SourceChainResolver(
        store=store,
        catalog=catalog,
        external=external or FakeExternal(configured=False),
        schema=JellyfinV10Schema(),
        countries=COUNTRIES,
        options=ResolverOptions(**opts),
        clock=lambda: NOW,
        today=lambda: TODAY,
    )
    return store, resolver


def _person(**fields):
    return {"Type": "Person", **fields}


def test_catalog_hit_is_cached_and_served_from_cache(tmp_path):
    catalog = FakeCatalog({PID: _person(PremiereDate="1980-06-15", ProductionLocations=["Madrid", "Spain"])})

    async def run():
        store, resolver = _make(tmp_path, catalog)
        first = await resolver.resolve(PID)
        second = await resolver.resolve(PID.upper())
        record = store.get(PID)
        await store.close()
        return first, second, record

    first, second, record = asyncio.run(run())

    assert first is not None and second is not None
    assert first.source == "catalog" and first.cache_hit is False
    assert first.age_years == 43
    assert first.birth_country_iso2 == "ES"
    assert second.cache_hit is True
    assert catalog.calls == [PID]
    assert record is not None and record.updated_at == NOW


def test_external_fallback(tmp_path):
    catalog = FakeCatalog({PID: _person(ProviderIds={"Tmdb": "287"})})
    external = FakeExternal({287: TmdbPerson(date(1963, 12, 18), None, "Shawnee, Oklahoma, USA")})

    async def run():
        store, resolver = _make(tmp_path, catalog, external)
        info = await resolver.resolve(PID)
        await store.close()
        return info, store.get(PID)

    info, record = asyncio.run(run())

    assert info is not None
    assert info.source == "external"
    assert info.birth_country_iso2 == "US"
    assert external.calls == [287]
    assert record is not None and record.source == "external"


def test_external_skipped_when_not_configured(tmp_path):
    catalog = FakeCatalog({PID: _person(ProviderIds={"Tmdb": "287"})})
    external = FakeExternal({287: TmdbPerson(date(1963, 12, 18), None, None)}, configured=False)

    async def run():
        store, resolver = _make(tmp_path, catalog, external)
        return await resolver.resolve(PID)

    assert asyncio.run(run()) is None
    assert external.calls == []


def test_stale_external_record_is_refreshed(tmp_path):
    catalog = FakeCatalog({PID: _person(PremiereDate="1970-01-01")})
    stale = AttributeRecord(birth_date=date(1960, 1, 1), updated_at=NOW - timedelta(days=31), source="external")

    async def run():
        store, resolver = _make(tmp_path, catalog, ttl_days=30)
        await store.ensure_loaded()
        store.set(PID, stale)
        info = await resolver.resolve(PID)
        await store.close()
        return info

    info = asyncio.run(run())

    assert catalog.calls == [PID]
    assert info is not None
    assert info.birth_date == date(1970, 1, 1)
    assert info.source == "catalog"


def test_old_catalog_record_never_expires(tmp_path):
    catalog = FakeCatalog()
    old = AttributeRecord(
        birth_date=date(1960, 1, 1),
        birth_place="Lyon, France",
        birth_country_iso2="FR",
        updated_at=NOW - timedelta(days=5000),
        source="catalog",
    )

    async def run():
        store, resolver = _make(tmp_path, catalog, ttl_days=30)
        await store.ensure_loaded()
        store.set(PID, old)
        info = await resolver.resolve(PID)
        await store.close()
        return info

    info = asyncio.run(run())

    assert catalog.calls == []
    assert info is not None and info.cache_hit is True


def test_stale_record_served_when_refresh_yields_nothing(tmp_path):
    catalog = FakeCatalog()
    stale = AttributeRecord(birth_date=date(1960, 1, 1), updated_at=NOW - timedelta(days=90), source="external")

    async def run():
        store, resolver = _make(tmp_path, catalog, ttl_days=30, show_birth_country_flag=False)
        await store.ensure_loaded()
        store.set(PID, stale)
        info = await resolver.resolve(PID)
        await store.close()
        return info, resolver.metrics_snapshot()

    info, metrics = asyncio.run(run())

    assert catalog.calls == [PID]
    assert info is not None and info.birth_date == date(1960, 1, 1)
    assert metrics["resolve_stale_served_total"] == 1


def test_not_found_is_not_cached_by_default(tmp_path):
    catalog = FakeCatalog()

    async def run():
        store, resolver = _make(tmp_path, catalog)
        a = await resolver.resolve(PID)
        b = await resolver.resolve(PID)
        return a, b, store.get(PID)

    a, b, record = asyncio.run(run())

    assert a is None and b is None
    assert record is None
    assert catalog.calls == [PID, PID]


def test_negative_cache_when_enabled(tmp_path):
    catalog = FakeCatalog()

    async def run():
        store, resolver = _make(tmp_path, catalog, negative_cache_enabled=True, negative_ttl_seconds=3600)
        a = await resolver.resolve(PID)
        b = await resolver.resolve(PID)
        record = store.get(PID)
        await store.close()
        return a, b, record

    a, b, record = asyncio.run(run())

    assert a is None and b is None
    assert record is not None and record.is_known_empty
    assert catalog.calls == [PID]


def test_source_failure_is_not_negatively_cached(tmp_path):
    catalog = FakeCatalog(fail=True)

    async def run():
        store, resolver = _make(tmp_path, catalog, negative_cache_enabled=True)
        info = await resolver.resolve(PID)
        return info, store.get(PID), resolver.metrics_snapshot()

    info, record, metrics = asyncio.run(run())

    assert info is None
    assert record is None
    assert metrics["resolve_source_errors_total"] == 1


def test_cancellation_stops_chain_without_caching(tmp_path):
    catalog = FakeCatalog({PID: _person(PremiereDate="1970-01-01")})

    async def run():
        store, resolver = _make(tmp_path, catalog, negative_cache_enabled=True)
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(ResolutionCancelled):
            await resolver.resolve(PID, cancel=cancel)
        return store.get(PID)

    assert asyncio.run(run()) is None
    assert catalog.calls == []


def test_malformed_id_raises(tmp_path):
    async def run():
        _, resolver = _make(tmp_path, FakeCatalog())
        await resolver.resolve("not-a-guid")

    with pytest.raises(MalformedPersonId):
        asyncio.run(run())


def test_enrichment_fills_missing_birthplace_keeping_provenance(tmp_path):
    catalog = FakeCatalog({PID: _person(ProductionLocations=["Sevilla", "Spain"])})
    ts = NOW - timedelta(days=3)
    cached = AttributeRecord(birth_date=date(1970, 1, 1), updated_at=ts, source="external")

    async def run():
        store, resolver = _make(tmp_path, catalog, show_birth_country_flag=True)
        await store.ensure_loaded()
        store.set(PID, cached)
        info = await resolver.resolve(PID)
        record = store.get(PID)
        await store.close()
        return info, record

    info, record = asyncio.run(run())

    assert info is not None and info.cache_hit is True
    assert info.birth_place == "Sevilla, Spain"
    assert info.birth_country_iso2 == "ES"
    assert record is not None
    assert record.updated_at == ts
    assert record.source == "external"


def test_enrichment_errors_are_ignored(tmp_path):
    catalog = FakeCatalog(fail=True)
    cached = AttributeRecord(birth_date=date(1970, 1, 1), updated_at=NOW, source="catalog")

    async def run():
        store, resolver = _make(tmp_path, catalog, show_birth_country_flag=True)
        await store.ensure_loaded()
        store.set(PID, cached)
        info = await resolver.resolve(PID)
        await store.close()
        return info

    info = asyncio.run(run())
    assert info is not None and info.birth_place is None


def test_age_reference_depends_on_show_age_at_death(tmp_path):
    item = _person(PremiereDate="1940-10-09", EndDate="1980-12-08")

    async def run(show_at_death):
        store, resolver = _make(tmp_path, FakeCatalog({PID: item}), show_age_at_death=show_at_death)
        return await resolver.resolve(PID)

    at_death = asyncio.run(run(True))
    at_today = asyncio.run(run(False))

    assert at_death is not None and at_death.age_years == 40 and at_death.is_deceased
    assert at_today is not None and at_today.age_years == 83 and at_today.is_deceased


def test_resolve_many_isolates_failures(tmp_path):
    catalog = FakeCatalog(
        {
            PID: _person(PremiereDate="1980-01-01"),
            PID2: RuntimeError("unexpected"),
        }
    )

    async def run():
        store, resolver = _make(tmp_path, catalog)
        out = await resolver.resolve_many([PID, "garbage", "", PID.upper(), PID2, "c" * 32])
        await store.close()
        return out

    out = asyncio.run(run())

    assert list(out) == [PID]
    assert catalog.calls.count(PID) == 1
    assert PID2 in catalog.calls


class CancellingCatalog(FakeCatalog):
    """Activa el Event de cancelación mientras resuelve `slow_id` (plazo vencido en vuelo)."""

    def __init__(self, items, cancel, slow_id):
        super().__init__(items)
        self.cancel = cancel
        self.slow_id = slow_id

    async def fetch_person_item(self, person_id):
        item = await super().fetch_person_item(person_id)
        if person_id == self.slow_id:
            self.cancel.set()
        return item


def test_answer_arriving_after_cancel_is_not_stored(tmp_path):
    async def run():
        cancel = asyncio.Event()
        catalog = CancellingCatalog({PID: _person(PremiereDate="1970-01-01")}, cancel, PID)
        store, resolver = _make(tmp_path, catalog)
        with pytest.raises(ResolutionCancelled):
            await resolver.resolve(PID, cancel=cancel)
        return store.get(PID)

    assert asyncio.run(run()) is None


def test_resolve_many_keeps_results_resolved_before_cancel(tmp_path):
    async def run():
        cancel = asyncio.Event()
        catalog = CancellingCatalog(
            {PID: _person(PremiereDate="1980-01-01"), PID2: _person(PremiereDate="1970-01-01")},
            cancel,
            PID2,
        )
        store, resolver = _make(tmp_path, catalog, max_concurrency=1)
        out = await resolver.resolve_many([PID, PID2], cancel=cancel)
        return out, store.get(PID2)

    out, stored_after_cancel = asyncio.run(run())

    assert list(out) == [PID]
    assert stored_after_cancel is None


def test_non_person_item_is_not_found(tmp_path):
    catalog = FakeCatalog({PID: {"Type": "Movie", "PremiereDate": "1999-01-01"}})

    async def run():
        _, resolver = _make(tmp_path, catalog)
        return await resolver.resolve(PID)

    assert asyncio.run(run()) is None
