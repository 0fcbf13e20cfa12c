from __future__ import annotations

from threading import RLock
from typing import Mapping

_LOCK = RLock()
_METRICS: dict[str, int] = {
    "http_requests_total": 0,
    "http_errors_4xx_total": 0,
    "http_errors_5xx_total": 0,
    "people_batch_requests_total": 0,
    "people_batch_ids_total": 0,
    "people_resolve_cancelled_total": 0,
}


def inc(name: str, value: int = 1) -> None:
    with _LOCK:
        _METRICS[name] = _METRICS.get(name, 0) + value


def snapshot() -> dict[str, int]:
    with _LOCK:
        return dict(_METRICS)


def render_prometheus(extra: Mapping[str, int] | None = None) -> str:
    """
    Contadores HTTP propios + los del servicio (store/resolver) si se pasan en `extra`.
    En caso de colisión de nombre gana el de la API.
    """
    merged: dict[str, int] = dict(extra or {})
    merged.update(snapshot())

    lines: list[str] = []
    for k, v in sorted(merged.items()):
        lines.append(f"# TYPE {k} counter")
        lines.append(f"{k} {int(v)}")
    return "\n".join(lines) + "\n"
