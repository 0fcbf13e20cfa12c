from __future__ import annotations

"""
backend/tmdb_client.py

Enriquecimiento externo: ficha de persona en TMDb (v3).

    GET {TMDB_BASE_URL}/person/{tmdb_id}?api_key=...
    -> {"birthday": "yyyy-MM-dd" | null, "deathday": ... | null, "place_of_birth": str | null}

404 => None. Otros fallos => SourceUnavailable (el resolver lo degrada a "sin datos").
"""

from dataclasses import dataclass
from datetime import date
from typing import Final, Mapping

from backend import logger as _logger
from backend.config_tmdb import (
    TMDB_API_KEY,
    TMDB_BASE_URL,
    TMDB_CB_FAILURE_THRESHOLD,
    TMDB_CB_OPEN_SECONDS,
    TMDB_HTTP_RETRY_BACKOFF_FACTOR,
    TMDB_HTTP_RETRY_TOTAL,
    TMDB_HTTP_TIMEOUT_SECONDS,
    TMDB_HTTP_USER_AGENT,
    USE_EXTERNAL_FALLBACK,
)
from backend.errors import SourceUnavailable
from backend.http_session import LazySession, is_transient_http_error
from backend.models import parse_iso_date
from backend.resilience import CircuitBreaker, call_with_resilience_async

_BREAKER_KEY: Final[str] = "tmdb"


@dataclass(frozen=True)
class TmdbPerson:
    birth_date: date | None
    death_date: date | None
    place_of_birth: str | None

    def has_any_data(self) -> bool:
        return self.birth_date is not None or self.death_date is not None or self.place_of_birth is not None


def parse_person_payload(data: object) -> TmdbPerson:
    if not isinstance(data, Mapping):
        return TmdbPerson(None, None, None)

    pob = data.get("place_of_birth")
    return TmdbPerson(
        birth_date=parse_iso_date(data.get("birthday")),
        death_date=parse_iso_date(data.get("deathday")),
        place_of_birth=(pob.strip() or None) if isinstance(pob, str) else None,
    )


class TmdbClient:
    def __init__(
        self,
        *,
        api_key: str | None = TMDB_API_KEY,
        enabled: bool = USE_EXTERNAL_FALLBACK,
        base_url: str = TMDB_BASE_URL,
        timeout_seconds: float = TMDB_HTTP_TIMEOUT_SECONDS,
        session: LazySession | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.api_key = (api_key or "").strip() or None
        self.enabled = bool(enabled)
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session or LazySession(
            retry_total=TMDB_HTTP_RETRY_TOTAL,
            backoff_factor=TMDB_HTTP_RETRY_BACKOFF_FACTOR,
            user_agent=TMDB_HTTP_USER_AGENT,
        )
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=TMDB_CB_FAILURE_THRESHOLD,
            open_seconds=TMDB_CB_OPEN_SECONDS,
        )

    @property
    def configured(self) -> bool:
        """Fallback activado Y con credenciales."""
        return self.enabled and self.api_key is not None

    def fetch_person_sync(self, tmdb_id: int) -> TmdbPerson | None:
        resp = self._session.get().get(
            f"{self.base_url}/person/{int(tmdb_id)}",
            params={"api_key": self.api_key or ""},
            headers={"Accept": "application/json"},
            timeout=self.timeout_seconds,
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return parse_person_payload(resp.json())

    async def fetch_person(self, tmdb_id: int) -> TmdbPerson | None:
        if not self.configured or tmdb_id <= 0:
            return None

        out, status = await call_with_resilience_async(
            breaker=self._breaker,
            key=_BREAKER_KEY,
            fn=lambda: self.fetch_person_sync(tmdb_id),
            should_retry=is_transient_http_error,
            max_retries=1,
        )
        if status != "ok":
            _logger.debug_ctx("TMDB", f"tmdb_id={tmdb_id} status={status}")
            raise SourceUnavailable("tmdb", status)
        return out

    def close(self) -> None:
        self._session.close()
