import asyncio
from datetime import date

import pytest

from backend.errors import SourceUnavailable
from backend.resilience import CircuitBreaker
from backend.tmdb_client import TmdbClient, parse_person_payload


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append((url, params, timeout))
        return self.response


class FakeLazySession:
    def __init__(self, session):
        self.session = session

    def get(self):
        return self.session

    def close(self):
        pass


def _client(response, **kwargs):
    session = FakeSession(response)
    client = TmdbClient(
        api_key="k",
        enabled=True,
        base_url="https://tmdb.test/3",
        session=FakeLazySession(session),  # type: ignore[arg-type]
        breaker=CircuitBreaker(failure_threshold=1, open_seconds=60),
        **kwargs,
    )
    return client, session


def test_parse_person_payload():
    person = parse_person_payload({"birthday": "1963-12-18", "deathday": None, "place_of_birth": " Shawnee, USA "})
    assert person.birth_date == date(1963, 12, 18)
    assert person.death_date is None
    assert person.place_of_birth == "Shawnee, USA"
    assert parse_person_payload(None).has_any_data() is False


def test_fetch_person_builds_request():
    client, session = _client(FakeResponse(200, {"birthday": "1970-01-01"}))

    person = asyncio.run(client.fetch_person(287))

    assert person is not None and person.birth_date == date(1970, 1, 1)
    url, params, timeout = session.requests[0]
    assert url == "https://tmdb.test/3/person/287"
    assert params == {"api_key": "k"}
    assert timeout == client.timeout_seconds


def test_fetch_person_404_is_none():
    client, _ = _client(FakeResponse(404))
    assert asyncio.run(client.fetch_person(1)) is None


def test_fetch_person_error_raises_source_unavailable():
    client, _ = _client(FakeResponse(500))
    with pytest.raises(SourceUnavailable):
        asyncio.run(client.fetch_person(1))


def test_not_configured_short_circuits():
    client = TmdbClient(api_key=None, enabled=True)
    assert client.configured is False
    assert asyncio.run(client.fetch_person(1)) is None
