import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from backend.attribute_store import AttributeStore
from backend.country_codes import CountryCodeMapper
from backend.metadata_providers import JellyfinV10Schema
from backend.resolver import ResolverOptions, SourceChainResolver
from backend.service import AttributeService, FeatureFlags
from server.api.app import create_app
from server.api.settings import Settings

PID = "0123456789abcdef0123456789abcdef"


class FakeCatalog:
    async def fetch_person_item(self, person_id):
        return {"Type": "Person", "PremiereDate": "1970-01-02"}


class NoExternal:
    configured = False

    async def fetch_person(self, tmdb_id):
        return None


def _settings() -> Settings:
    return Settings(log_level="INFO", cors_origins_raw="*", cors_allow_credentials=False, gzip_min_size=0)


def _app(tmp_path):
    def build():
        store = AttributeStore(tmp_path / "data" / "cache.json", flush_debounce_seconds=60)
        resolver = SourceChainResolver(
            store=store,
            catalog=FakeCatalog(),
            external=NoExternal(),
            schema=JellyfinV10Schema(),
            countries=CountryCodeMapper({}),
            options=ResolverOptions(),
        )
        return AttributeService(store=store, resolver=resolver, flags=FeatureFlags())

    return create_app(settings=_settings(), service_factory=build)


def test_health_ready_and_metrics(tmp_path):
    with TestClient(_app(tmp_path)) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["ok"] is True

        ready = client.get("/ready")
        assert ready.status_code == 200
        assert ready.json()["ready"] is True
        assert ready.json()["records"] == 0

        client.get("/people/age", params={"personId": PID})

        metrics = client.get("/metrics")
        assert metrics.status_code == 200
        assert metrics.headers["content-type"].startswith("text/plain")
        text = metrics.text
        assert "http_requests_total" in text
        assert "resolve_catalog_total 1" in text
        assert "store_sets_total 1" in text


def test_people_endpoints_unavailable_without_lifespan(tmp_path):
    client = TestClient(_app(tmp_path))
    resp = client.get("/people/status")
    assert resp.status_code == 503
