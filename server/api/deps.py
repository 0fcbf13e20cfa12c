from __future__ import annotations

from fastapi import HTTPException, Request

from backend.service import AttributeService
from server.api.settings import Settings

_SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return _SETTINGS


def get_service(request: Request) -> AttributeService:
    """El servicio lo crea el lifespan de la app y vive en app.state."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Attribute service not started")
    return service
