from __future__ import annotations

"""
backend/resolver.py

Source Chain Resolver: PersonId -> AgeInfo.

Orden de fuentes
----------------
1) Caché persistente (AttributeStore). Si el registro no ha caducado se devuelve
   (cache_hit=True). Con la bandera de país activa, se rellenan birthplace/ISO2 que
   falten (catálogo y, si procede, externo) SIN tocar updated_at ni source.
2) Catálogo del host: birth/death/birthplace según el esquema elegido al arrancar.
3) Externo (TMDb): solo con fallback activado, credenciales y ProviderIds.Tmdb.
4) Nada => None (NotFound). Si había un registro caducado, se prefiere devolverlo
   antes que nada.

Caducidad: solo registros `external` (ATTR_CACHE_TTL_DAYS) y el marcador negativo
(si ATTR_NEGATIVE_CACHE_ENABLED). Los de catálogo nunca caducan.

Cancelación: `cancel` (asyncio.Event) se comprueba antes de cada fuente; si está
activado se lanza ResolutionCancelled y no se cachea nada negativo.
"""

import asyncio
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Protocol

from backend import logger as _logger
from backend.age import compute_age
from backend.attribute_store import AttributeStore
from backend.config_attributes import (
    ATTR_CACHE_TTL_DAYS,
    ATTR_NEGATIVE_CACHE_ENABLED,
    ATTR_NEGATIVE_CACHE_TTL_SECONDS,
    ATTR_RESOLVE_MAX_CONCURRENCY,
    SHOW_AGE_AT_DEATH,
    SHOW_BIRTH_COUNTRY_FLAG,
)
from backend.country_codes import CountryCodeMapper
from backend.errors import ResolutionCancelled, SourceUnavailable
from backend.metadata_providers import CatalogPerson, CatalogSchemaProvider
from backend.models import AgeInfo, AttributeRecord, normalize_person_id, try_normalize_person_id, utcnow
from backend.tmdb_client import TmdbPerson


class CatalogSource(Protocol):
    async def fetch_person_item(self, person_id: str) -> Mapping[str, Any] | None: ...


class ExternalSource(Protocol):
    @property
    def configured(self) -> bool: ...

    async def fetch_person(self, tmdb_id: int) -> TmdbPerson | None: ...


@dataclass(frozen=True)
class ResolverOptions:
    ttl_days: int = 30
    show_age_at_death: bool = True
    show_birth_country_flag: bool = True
    negative_cache_enabled: bool = False
    negative_ttl_seconds: int = 60 * 60 * 6
    max_concurrency: int = 8

    @classmethod
    def from_config(cls) -> "ResolverOptions":
        return cls(
            ttl_days=ATTR_CACHE_TTL_DAYS,
            show_age_at_death=SHOW_AGE_AT_DEATH,
            show_birth_country_flag=SHOW_BIRTH_COUNTRY_FLAG,
            negative_cache_enabled=ATTR_NEGATIVE_CACHE_ENABLED,
            negative_ttl_seconds=ATTR_NEGATIVE_CACHE_TTL_SECONDS,
            max_concurrency=ATTR_RESOLVE_MAX_CONCURRENCY,
        )


def _check_cancel(cancel: asyncio.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ResolutionCancelled("resolution cancelled by caller")


class SourceChainResolver:
    def __init__(
        self,
        *,
        store: AttributeStore,
        catalog: CatalogSource,
        external: ExternalSource,
        schema: CatalogSchemaProvider,
        countries: CountryCodeMapper,
        options: ResolverOptions | None = None,
        clock: Callable[[], datetime] = utcnow,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.external = external
        self.schema = schema
        self.countries = countries
        self.options = options or ResolverOptions.from_config()
        self._clock = clock
        self._today = today

        self._metrics_lock = threading.Lock()
        self._metrics: dict[str, int] = {
            "resolve_cache_hit_total": 0,
            "resolve_catalog_total": 0,
            "resolve_external_total": 0,
            "resolve_not_found_total": 0,
            "resolve_stale_served_total": 0,
            "resolve_enriched_total": 0,
            "resolve_source_errors_total": 0,
        }

    # ---------------- metrics ----------------

    def _m_inc(self, key: str, n: int = 1) -> None:
        with self._metrics_lock:
            self._metrics[key] = self._metrics.get(key, 0) + n

    def metrics_snapshot(self) -> dict[str, int]:
        with self._metrics_lock:
            return dict(self._metrics)

    # ---------------- AgeInfo ----------------

    def build_age_info(self, person_id: str, record: AttributeRecord, *, cache_hit: bool) -> AgeInfo:
        birth = record.birth_date
        death = record.death_date

        # Registros antiguos pueden no tener ISO2 calculado todavía.
        iso2 = record.birth_country_iso2 or self.countries.birthplace_to_iso2(record.birth_place)

        age: int | None = None
        if birth is not None:
            ref = death if (death is not None and self.options.show_age_at_death) else self._today()
            age = compute_age(birth, ref)

        return AgeInfo(
            person_id=person_id,
            birth_date=birth,
            death_date=death,
            birth_place=record.birth_place,
            birth_country_iso2=iso2,
            age_years=age,
            is_deceased=death is not None,
            source=record.source,
            cache_hit=cache_hit,
        )

    # ---------------- sources ----------------

    async def _catalog_person(self, person_id: str) -> CatalogPerson | None:
        item = await self.catalog.fetch_person_item(person_id)
        if item is None:
            return None
        return self.schema.extract(item)

    async def _external_person(self, person: CatalogPerson | None) -> TmdbPerson | None:
        if person is None or not person.is_person or person.tmdb_id is None:
            return None
        if not self.external.configured:
            return None
        return await self.external.fetch_person(person.tmdb_id)

    async def _enrich(self, person_id: str, cached: AttributeRecord) -> AttributeRecord:
        place = cached.birth_place
        iso2 = cached.birth_country_iso2

        try:
            if not place:
                person = await self._catalog_person(person_id)
                if person is not None and person.is_person:
                    place = person.birth_place
                    if not place:
                        ext = await self._external_person(person)
                        if ext is not None:
                            place = ext.place_of_birth
            if not iso2 and place:
                iso2 = self.countries.birthplace_to_iso2(place)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            _logger.debug_ctx("RESOLVER", f"enrichment failed for {person_id}: {exc!r}")

        updated = cached.with_missing_filled(birth_place=place, birth_country_iso2=iso2)
        if updated != cached:
            self.store.set(person_id, updated)
            self._m_inc("resolve_enriched_total")
        return updated

    # ---------------- resolve ----------------

    async def resolve(self, person_id: object, *, cancel: asyncio.Event | None = None) -> AgeInfo | None:
        """
        Resuelve un id. Lanza MalformedPersonId (id inválido) o ResolutionCancelled.
        Devuelve None si ninguna fuente tiene datos.
        """
        pid = normalize_person_id(person_id)

        await self.store.ensure_loaded()
        _check_cancel(cancel)

        opts = self.options
        cached = self.store.get(pid)
        if cached is not None and not cached.is_expired(
            now=self._clock(),
            ttl_days=opts.ttl_days,
            negative_ttl_seconds=opts.negative_ttl_seconds,
        ):
            if cached.is_known_empty:
                self._m_inc("resolve_not_found_total")
                return None

            if opts.show_birth_country_flag and not (cached.birth_place and cached.birth_country_iso2):
                cached = await self._enrich(pid, cached)

            self._m_inc("resolve_cache_hit_total")
            return self.build_age_info(pid, cached, cache_hit=True)

        source_failed = False

        # 2) catálogo
        person: CatalogPerson | None = None
        try:
            person = await self._catalog_person(pid)
        except SourceUnavailable as exc:
            source_failed = True
            self._m_inc("resolve_source_errors_total")
            _logger.warning(f"[RESOLVER] catalog lookup failed for {pid}: {exc}")

        _check_cancel(cancel)
        if person is not None and person.is_person and person.has_any_data():
            record = AttributeRecord(
                birth_date=person.birth_date,
                death_date=person.death_date,
                birth_place=person.birth_place,
                birth_country_iso2=self.countries.birthplace_to_iso2(person.birth_place),
                updated_at=self._clock(),
                source="catalog",
            )
            self.store.set(pid, record)
            self._m_inc("resolve_catalog_total")
            return self.build_age_info(pid, record, cache_hit=False)

        # 3) externo
        ext: TmdbPerson | None = None
        try:
            ext = await self._external_person(person)
        except SourceUnavailable as exc:
            source_failed = True
            self._m_inc("resolve_source_errors_total")
            _logger.warning(f"[RESOLVER] external lookup failed for {pid}: {exc}")

        _check_cancel(cancel)
        if ext is not None and ext.has_any_data():
            record = AttributeRecord(
                birth_date=ext.birth_date,
                death_date=ext.death_date,
                birth_place=ext.place_of_birth,
                birth_country_iso2=self.countries.birthplace_to_iso2(ext.place_of_birth),
                updated_at=self._clock(),
                source="external",
            )
            self.store.set(pid, record)
            self._m_inc("resolve_external_total")
            return self.build_age_info(pid, record, cache_hit=False)

        # 4) nada: mejor un dato caducado que ninguno
        if cached is not None and not cached.is_known_empty:
            self._m_inc("resolve_stale_served_total")
            _logger.debug_ctx("RESOLVER", f"refresh yielded nothing for {pid}; serving stale record")
            return self.build_age_info(pid, cached, cache_hit=True)

        _check_cancel(cancel)
        if opts.negative_cache_enabled and not source_failed:
            self.store.set(pid, AttributeRecord.known_empty(now=self._clock()))

        self._m_inc("resolve_not_found_total")
        return None

    async def resolve_many(
        self,
        person_ids: Iterable[object],
        *,
        cancel: asyncio.Event | None = None,
    ) -> dict[str, AgeInfo]:
        """
        Resuelve cada id de forma independiente: inválidos, duplicados, NotFound y errores
        se omiten del resultado. Si vence el plazo (cancel), los ids aún en curso se omiten
        y se devuelven los ya resueltos.
        """
        ids: list[str] = []
        seen: set[str] = set()
        for raw in person_ids:
            pid = try_normalize_person_id(raw)
            if pid is None or pid in seen:
                continue
            seen.add(pid)
            ids.append(pid)

        if not ids:
            return {}

        sem = asyncio.Semaphore(max(1, self.options.max_concurrency))

        async def _one(pid: str) -> tuple[str, AgeInfo | None]:
            async with sem:
                try:
                    return pid, await self.resolve(pid, cancel=cancel)
                except ResolutionCancelled:
                    _logger.debug_ctx("RESOLVER", f"resolution of {pid} cancelled; omitted from batch")
                    return pid, None
                except Exception as exc:
                    _logger.debug_ctx("RESOLVER", f"failed to resolve {pid}: {exc!r}")
                    return pid, None

        results = await asyncio.gather(*(_one(pid) for pid in ids))
        return {pid: info for pid, info in results if info is not None}
