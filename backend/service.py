from __future__ import annotations

"""
backend/service.py

AttributeService: instancia de larga vida que posee la caché, el resolver y los
clientes remotos. La crea el servidor al arrancar (lifespan) y la cierra al parar
(último flush de la caché).
"""

from dataclasses import asdict, dataclass
from pathlib import Path

from backend import logger as _logger
from backend.attribute_store import AttributeStore
from backend.catalog_client import CatalogClient
# backend.config (fachada) y no config_*: al cargarlo, backend/logger.py ve DEBUG_MODE/SILENT_MODE.
from backend.config import (
    ATTR_CACHE_PATH,
    ATTR_STORE_FLUSH_DEBOUNCE_SECONDS,
    CATALOG_SCHEMA,
    ENABLE_HOVER_CAST_MENU,
    ENABLE_HOVER_FILMOGRAPHY,
    HOVER_CAST_LIMIT,
    HOVER_FILMOGRAPHY_LIMIT,
    OVERLAY_ENABLED,
    RANDOMIZE_HOVER_FILMOGRAPHY,
    SHOW_AGE_AT_RELEASE,
    SHOW_AGE_ICONS,
    SHOW_BIRTH_COUNTRY_FLAG,
    SHOW_BIRTH_PLACE_TEXT,
    SHOW_DECEASED_OVERLAY,
    USE_EXTERNAL_FALLBACK,
)
from backend.country_codes import CountryCodeMapper
from backend.metadata_providers import select_schema
from backend.resolver import ResolverOptions, SourceChainResolver
from backend.tmdb_client import TmdbClient


@dataclass(frozen=True)
class FeatureFlags:
    """Flags de presentación que el cliente lee vía /people/status."""

    enabled: bool = True
    use_external_fallback: bool = False
    show_age_at_release: bool = True
    show_age_icons: bool = False
    show_birth_country_flag: bool = True
    show_birth_place_text: bool = False
    show_deceased_overlay: bool = False
    enable_hover_filmography: bool = False
    randomize_hover_filmography: bool = False
    hover_filmography_limit: int = 12
    enable_hover_cast_menu: bool = False
    hover_cast_limit: int = 12

    @classmethod
    def from_config(cls) -> "FeatureFlags":
        return cls(
            enabled=OVERLAY_ENABLED,
            use_external_fallback=USE_EXTERNAL_FALLBACK,
            show_age_at_release=SHOW_AGE_AT_RELEASE,
            show_age_icons=SHOW_AGE_ICONS,
            show_birth_country_flag=SHOW_BIRTH_COUNTRY_FLAG,
            show_birth_place_text=SHOW_BIRTH_PLACE_TEXT,
            show_deceased_overlay=SHOW_DECEASED_OVERLAY,
            enable_hover_filmography=ENABLE_HOVER_FILMOGRAPHY,
            randomize_hover_filmography=RANDOMIZE_HOVER_FILMOGRAPHY,
            hover_filmography_limit=HOVER_FILMOGRAPHY_LIMIT,
            enable_hover_cast_menu=ENABLE_HOVER_CAST_MENU,
            hover_cast_limit=HOVER_CAST_LIMIT,
        )

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class AttributeService:
    def __init__(
        self,
        *,
        store: AttributeStore,
        resolver: SourceChainResolver,
        flags: FeatureFlags,
        catalog: CatalogClient | None = None,
        tmdb: TmdbClient | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.flags = flags
        self._catalog = catalog
        self._tmdb = tmdb

    @classmethod
    def from_config(cls, *, cache_path: Path | None = None) -> "AttributeService":
        store = AttributeStore(cache_path or ATTR_CACHE_PATH, flush_debounce_seconds=ATTR_STORE_FLUSH_DEBOUNCE_SECONDS)
        catalog = CatalogClient()
        tmdb = TmdbClient()
        schema = select_schema(CATALOG_SCHEMA)
        resolver = SourceChainResolver(
            store=store,
            catalog=catalog,
            external=tmdb,
            schema=schema,
            countries=CountryCodeMapper(),
            options=ResolverOptions.from_config(),
        )
        _logger.info(
            f"[SERVICE] schema={schema.name} cache={store.path} external={'on' if tmdb.configured else 'off'}"
        )
        return cls(store=store, resolver=resolver, flags=FeatureFlags.from_config(), catalog=catalog, tmdb=tmdb)

    async def start(self) -> None:
        await self.store.ensure_loaded()

    async def close(self) -> None:
        await self.store.close()
        if self._catalog is not None:
            self._catalog.close()
        if self._tmdb is not None:
            self._tmdb.close()

    def metrics_snapshot(self) -> dict[str, int]:
        out = self.store.metrics_snapshot()
        out.update(self.resolver.metrics_snapshot())
        return out
