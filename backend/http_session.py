from __future__ import annotations

"""
backend/http_session.py

Construcción de requests.Session con retries (urllib3) y pooling.

- Retry de urllib3 gestiona 429/5xx best-effort (no es garantía de éxito).
- Cada cliente remoto (catálogo, TMDb) posee su propia sesión, creada perezosamente.
"""

import threading

import requests  # type: ignore[import-not-found]
from requests.adapters import HTTPAdapter  # type: ignore[import-not-found]
from requests.exceptions import ConnectionError as RequestsConnectionError  # type: ignore[import-not-found]
from requests.exceptions import Timeout  # type: ignore[import-not-found]
from urllib3.util.retry import Retry  # type: ignore[import-not-found]


def build_session(
    *,
    retry_total: int,
    backoff_factor: float,
    pool_size: int = 8,
    user_agent: str | None = None,
) -> requests.Session:
    session = requests.Session()

    retries = Retry(
        total=max(0, min(10, int(retry_total))),
        backoff_factor=max(0.0, min(10.0, float(backoff_factor))),
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
        respect_retry_after_header=True,
    )

    size = max(1, min(64, int(pool_size)))
    adapter = HTTPAdapter(max_retries=retries, pool_connections=size, pool_maxsize=size)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    if user_agent:
        session.headers.update({"User-Agent": user_agent})
    return session


class LazySession:
    """Sesión creada en el primer uso (thread-safe: las llamadas corren vía asyncio.to_thread)."""

    def __init__(self, **kwargs: object) -> None:
        self._kwargs = kwargs
        self._session: requests.Session | None = None
        self._lock = threading.Lock()

    def get(self) -> requests.Session:
        if self._session is not None:
            return self._session
        with self._lock:
            if self._session is None:
                self._session = build_session(**self._kwargs)  # type: ignore[arg-type]
            return self._session

    def close(self) -> None:
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None


def is_transient_http_error(exc: BaseException) -> bool:
    """Errores de red/timeout: merece la pena reintentar."""
    return isinstance(exc, (RequestsConnectionError, Timeout))
