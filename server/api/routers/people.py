from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from backend.errors import MalformedPersonId, ResolutionCancelled
from backend.models import normalize_person_id
from backend.service import AttributeService
from server.api.deps import get_service, get_settings
from server.api.services import metrics
from server.api.services.people import (
    age_info_to_dto,
    empty_debug_dto,
    extract_person_ids,
    flags_to_payload,
    resolve_batch,
    resolve_one,
)
from server.api.settings import Settings

router = APIRouter(prefix="/people", tags=["people"])


def _timed_out() -> HTTPException:
    metrics.inc("people_resolve_cancelled_total", 1)
    return HTTPException(status_code=504, detail="Resolution timed out")


@router.get("/status")
def status(service: AttributeService = Depends(get_service)) -> dict[str, Any]:
    return flags_to_payload(service.flags)


@router.post("/ages")
async def ages(
    body: Any = Body(default=None),
    service: AttributeService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Batch: {"personIds": [...]} -> {idNormalizado: PersonAgeDto}.
    Ids inválidos, duplicados o sin datos se omiten; nunca falla por un id.
    Si vence API_RESOLVE_TIMEOUT_SECONDS se responde con lo ya resuelto.
    """
    raw_ids = extract_person_ids(body)
    if len(raw_ids) > settings.batch_max_ids:
        raise HTTPException(status_code=413, detail=f"Too many ids (max {settings.batch_max_ids})")

    metrics.inc("people_batch_requests_total", 1)
    metrics.inc("people_batch_ids_total", len(raw_ids))

    return await resolve_batch(service, raw_ids, timeout_seconds=settings.resolve_timeout_seconds)


@router.get("/age")
async def age(
    person_id: str = Query(..., alias="personId"),
    service: AttributeService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    try:
        info = await resolve_one(service, person_id, timeout_seconds=settings.resolve_timeout_seconds)
    except MalformedPersonId as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ResolutionCancelled:
        raise _timed_out()

    if info is None:
        raise HTTPException(status_code=404, detail="No birth data for person")
    return age_info_to_dto(info)


@router.get("/debug")
async def debug(
    person_id: str = Query(..., alias="personId"),
    service: AttributeService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Como /age pero siempre 200 con `found` (útil para diagnosticar fuentes)."""
    try:
        pid = normalize_person_id(person_id)
    except MalformedPersonId as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        info = await resolve_one(service, pid, timeout_seconds=settings.resolve_timeout_seconds)
    except ResolutionCancelled:
        raise _timed_out()

    if info is None:
        return empty_debug_dto(pid)
    return {**age_info_to_dto(info), "found": True}
