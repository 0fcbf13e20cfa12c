from __future__ import annotations

"""
backend/catalog_client.py

Cliente HTTP del catálogo del host (fuente primaria de metadatos de personas).

Petición:
    GET {CATALOG_BASE_URL}/Items?Ids=<id>&Fields=...&EnableImages=false
    Cabecera X-Emby-Token si hay CATALOG_API_KEY.

Respuesta esperada: {"Items": [ {...item...} ]}. Se devuelve el item cuyo Id coincide
(o el primero). 404 / lista vacía => None. Fallos de red/HTTP => SourceUnavailable.
"""

from typing import Any, Final, Mapping

from backend import logger as _logger
from backend.config_catalog import (
    CATALOG_API_KEY,
    CATALOG_BASE_URL,
    CATALOG_CB_FAILURE_THRESHOLD,
    CATALOG_CB_OPEN_SECONDS,
    CATALOG_HTTP_RETRY_BACKOFF_FACTOR,
    CATALOG_HTTP_RETRY_TOTAL,
    CATALOG_HTTP_TIMEOUT_SECONDS,
    CATALOG_HTTP_USER_AGENT,
)
from backend.errors import SourceUnavailable
from backend.http_session import LazySession, is_transient_http_error
from backend.models import try_normalize_person_id
from backend.resilience import CircuitBreaker, call_with_resilience_async

_PERSON_FIELDS: Final[str] = ",".join(
    (
        "PremiereDate",
        "EndDate",
        "ProductionYear",
        "ProductionLocations",
        "ProviderIds",
    )
)

_BREAKER_KEY: Final[str] = "catalog"


class CatalogClient:
    def __init__(
        self,
        *,
        base_url: str = CATALOG_BASE_URL,
        api_key: str | None = CATALOG_API_KEY,
        timeout_seconds: float = CATALOG_HTTP_TIMEOUT_SECONDS,
        session: LazySession | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._session = session or LazySession(
            retry_total=CATALOG_HTTP_RETRY_TOTAL,
            backoff_factor=CATALOG_HTTP_RETRY_BACKOFF_FACTOR,
            user_agent=CATALOG_HTTP_USER_AGENT,
        )
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=CATALOG_CB_FAILURE_THRESHOLD,
            open_seconds=CATALOG_CB_OPEN_SECONDS,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-Emby-Token"] = self.api_key
        return headers

    def fetch_person_item_sync(self, person_id: str) -> dict[str, Any] | None:
        resp = self._session.get().get(
            f"{self.base_url}/Items",
            params={"Ids": person_id, "Fields": _PERSON_FIELDS, "EnableImages": "false"},
            headers=self._headers(),
            timeout=self.timeout_seconds,
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()

        data = resp.json()
        items = data.get("Items") if isinstance(data, Mapping) else None
        if not isinstance(items, list) or not items:
            return None

        for item in items:
            if isinstance(item, dict) and try_normalize_person_id(item.get("Id")) == person_id:
                return item
        first = items[0]
        return first if isinstance(first, dict) else None

    async def fetch_person_item(self, person_id: str) -> dict[str, Any] | None:
        out, status = await call_with_resilience_async(
            breaker=self._breaker,
            key=_BREAKER_KEY,
            fn=lambda: self.fetch_person_item_sync(person_id),
            should_retry=is_transient_http_error,
            max_retries=1,
        )
        if status != "ok":
            _logger.debug_ctx("CATALOG", f"person={person_id} status={status}")
            raise SourceUnavailable("catalog", status)
        return out

    def close(self) -> None:
        self._session.close()

