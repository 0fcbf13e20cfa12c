from __future__ import annotations

# =============================================================================
# frontend/front_api_client.py
#
# Clientes HTTP minimalistas (stdlib-only) del motor de presentación:
#
# - ActorLensApiClient: API de atributos (/people/status, /people/ages).
# - CatalogApiClient: catálogo del host (items, búsquedas de filmografía,
#   URLs de imagen). Se usa para el "touch" de personas, el contexto de la
#   página de detalle y los popups de hover.
#
# Las llamadas bloqueantes (urllib) se ejecutan con asyncio.to_thread.
# Cualquier fallo se eleva como ApiClientError.
# =============================================================================

import asyncio
import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Final, Iterable, Mapping

from frontend.config_front_base import (
    ACTORLENS_API_BASE_URL,
    FRONT_API_TIMEOUT_S,
    FRONT_CATALOG_API_KEY,
    FRONT_CATALOG_BASE_URL,
    FRONT_CATALOG_USER_ID,
)
from frontend.identity import normalize_id


class ApiClientError(Exception):
    pass


_STATUS_PATH: Final[str] = "/people/status"
_BATCH_PATH: Final[str] = "/people/ages"


def _build_url(base_url: str, path: str, params: Mapping[str, str | int] | None = None) -> str:
    base = base_url.rstrip("/")
    p = path if path.startswith("/") else f"/{path}"
    url = f"{base}{p}"
    if not params:
        return url
    return f"{url}?{urllib.parse.urlencode(params)}"


def _request_json(
    url: str,
    *,
    timeout_s: float,
    method: str = "GET",
    body: object | None = None,
    headers: Mapping[str, str] | None = None,
) -> tuple[int, object | None]:
    data: bytes | None = None
    all_headers = {"Accept": "application/json", **(headers or {})}
    if body is not None:
        data = json.dumps(body).encode("utf-8")
        all_headers["Content-Type"] = "application/json"

    req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            status = int(getattr(resp, "status", 200))
            if status == 204:
                return status, None
            raw = resp.read()
    except urllib.error.HTTPError as exc:
        status = int(exc.code)
        try:
            raw = exc.read()
        except Exception:
            raw = b""
        detail = raw.decode("utf-8", errors="replace").strip()
        raise ApiClientError(f"HTTP {status} en {url}: {detail}") from exc
    except urllib.error.URLError as exc:
        raise ApiClientError(f"Error de conexión en {url}: {exc!r}") from exc
    except TimeoutError as exc:
        raise ApiClientError(f"Timeout en {url}") from exc
    except (http.client.HTTPException, OSError) as exc:
        # Conexión cortada a mitad de respuesta (reset, IncompleteRead...).
        raise ApiClientError(f"Error de transporte en {url}: {exc!r}") from exc

    if not raw:
        return status, None

    try:
        return status, json.loads(raw.decode("utf-8"))
    except ValueError as exc:
        # JSONDecodeError o UnicodeDecodeError
        raise ApiClientError(f"Respuesta no-JSON en {url}: {exc}") from exc


def index_by_normalized_id(payload: object) -> dict[str, dict[str, Any]]:
    """Respuesta batch -> {id normalizado: registro}. Entradas no-dict se ignoran."""
    if not isinstance(payload, Mapping):
        return {}
    out: dict[str, dict[str, Any]] = {}
    for k, v in payload.items():
        if isinstance(v, dict):
            out[normalize_id(k)] = v
    return out


class ActorLensApiClient:
    def __init__(self, *, base_url: str = ACTORLENS_API_BASE_URL, timeout_s: float = FRONT_API_TIMEOUT_S) -> None:
        self.base_url = base_url
        self.timeout_s = timeout_s

    def fetch_status_sync(self) -> object | None:
        _, payload = _request_json(_build_url(self.base_url, _STATUS_PATH), timeout_s=self.timeout_s)
        return payload

    def fetch_ages_sync(self, person_ids: list[str]) -> dict[str, dict[str, Any]]:
        _, payload = _request_json(
            _build_url(self.base_url, _BATCH_PATH),
            timeout_s=self.timeout_s,
            method="POST",
            body={"personIds": person_ids},
        )
        return index_by_normalized_id(payload)

    async def fetch_status(self) -> object | None:
        return await asyncio.to_thread(self.fetch_status_sync)

    async def fetch_ages(self, person_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        ids = list(person_ids)
        if not ids:
            return {}
        return await asyncio.to_thread(self.fetch_ages_sync, ids)


class CatalogApiClient:
    def __init__(
        self,
        *,
        base_url: str = FRONT_CATALOG_BASE_URL,
        api_key: str | None = FRONT_CATALOG_API_KEY,
        user_id: str | None = FRONT_CATALOG_USER_ID,
        timeout_s: float = FRONT_API_TIMEOUT_S,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.user_id = user_id
        self.timeout_s = timeout_s

    def _headers(self) -> dict[str, str]:
        return {"X-Emby-Token": self.api_key} if self.api_key else {}

    def _user_path(self, suffix: str) -> str:
        if not self.user_id:
            raise ApiClientError("Catalog user id not configured")
        return f"/Users/{self.user_id}/{suffix.lstrip('/')}"

    def get_item_sync(self, item_id: str, *, fields: str | None = None) -> dict[str, Any] | None:
        params = {"Fields": fields} if fields else None
        url = _build_url(self.base_url, self._user_path(f"Items/{item_id}"), params)
        _, payload = _request_json(url, timeout_s=self.timeout_s, headers=self._headers())
        return payload if isinstance(payload, dict) else None

    def query_items_sync(self, params: Mapping[str, str | int]) -> dict[str, Any]:
        url = _build_url(self.base_url, self._user_path("Items"), params)
        _, payload = _request_json(url, timeout_s=self.timeout_s, headers=self._headers())
        return payload if isinstance(payload, dict) else {}

    async def get_item(self, item_id: str, *, fields: str | None = None) -> dict[str, Any] | None:
        return await asyncio.to_thread(lambda: self.get_item_sync(item_id, fields=fields))

    async def query_items(self, params: Mapping[str, str | int]) -> dict[str, Any]:
        return await asyncio.to_thread(self.query_items_sync, params)

    def primary_image_url(self, item_id: str, *, width: int, height: int) -> str | None:
        if not item_id:
            return None
        params = {"fillWidth": width, "fillHeight": height, "quality": 90}
        return _build_url(self.base_url, f"/Items/{item_id}/Images/Primary", params)
