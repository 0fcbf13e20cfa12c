from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable

import pytest


@dataclass(slots=True)
class FakeHTTPResponse:
    payload: bytes
    status: int = 200

    def read(self) -> bytes:
        return self.payload

    def __enter__(self) -> "FakeHTTPResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        return None


@dataclass(slots=True)
class URLCall:
    url: str
    method: str
    body: object | None
    headers: dict[str, str]
    timeout: float | None


class URLOpenMock:
    """
    Minimal urlopen mock with programmable routing.

    The router receives the full URL and returns the raw payload (bytes) or a
    JSON-serializable object. Records every call.
    """

    def __init__(self, router: Callable[[str], object]) -> None:
        self._router = router
        self.calls: list[URLCall] = []

    def __call__(self, req: object, timeout: float | None = None) -> FakeHTTPResponse:
        url = getattr(req, "full_url", req)
        data = getattr(req, "data", None)
        self.calls.append(
            URLCall(
                url=str(url),
                method=str(getattr(req, "get_method", lambda: "GET")()),
                body=json.loads(data) if data else None,
                headers={k.lower(): v for k, v in dict(getattr(req, "headers", {})).items()},
                timeout=timeout,
            )
        )
        payload = self._router(str(url))
        if not isinstance(payload, bytes):
            payload = json.dumps(payload).encode("utf-8")
        return FakeHTTPResponse(payload=payload)


@pytest.fixture()
def urlopen_mock(monkeypatch: pytest.MonkeyPatch) -> Callable[[Callable[[str], object]], URLOpenMock]:
    """Patches urllib in the client API module; returns a factory taking the router."""
    import frontend.front_api_client as api_mod

    def _install(router: Callable[[str], object]) -> URLOpenMock:
        mock = URLOpenMock(router)
        monkeypatch.setattr(api_mod.urllib.request, "urlopen", mock)
        return mock

    return _install
