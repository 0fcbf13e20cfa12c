from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from backend.service import AttributeService
from server.api.deps import get_service
from server.api.services import metrics

router = APIRouter()


def _cache_file_issues(path: Path) -> dict[str, str]:
    issues: dict[str, str] = {}
    parent = path.parent
    if not parent.exists():
        # Se crea en el primer flush; basta con que el ancestro exista.
        parent = next((p for p in parent.parents if p.exists()), parent)
    if not os.access(parent, os.W_OK):
        issues["cache_dir"] = f"not writable: {parent}"
    if path.exists() and not os.access(path, os.R_OK):
        issues["cache_file"] = f"unreadable: {path}"
    return issues


@router.get("/health")
def health() -> dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


@router.get("/ready")
def ready(service: AttributeService = Depends(get_service)) -> dict[str, Any]:
    """
    Readiness:
    - la caché se ha cargado (lifespan) y
    - su fichero es legible / su directorio escribible.
    """
    store = service.store
    issues: dict[str, str] = {}
    if not store.loaded:
        issues["store"] = "not loaded"
    issues.update(_cache_file_issues(Path(store.path)))

    if issues:
        raise HTTPException(status_code=503, detail={"ready": False, "issues": issues})

    return {"ready": True, "records": len(store), "ts": datetime.now(timezone.utc).isoformat()}


@router.get("/metrics")
def metrics_endpoint(request: Request) -> Response:
    service = getattr(request.app.state, "service", None)
    extra = service.metrics_snapshot() if service is not None else None
    body = metrics.render_prometheus(extra)
    return Response(content=body, media_type="text/plain; version=0.0.4")
