from __future__ import annotations

"""
server/api/services/people.py

Traducción entre el dominio (AgeInfo, FeatureFlags) y los payloads HTTP (camelCase),
más la resolución con límite de tiempo: si vence, se activa el Event de cancelación
del resolver y éste aborta sin cachear nada negativo.
"""

import asyncio
from typing import Any, Iterable

from backend.models import AgeInfo
from backend.service import AttributeService, FeatureFlags


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def flags_to_payload(flags: FeatureFlags) -> dict[str, Any]:
    return {_camel(k): v for k, v in flags.to_dict().items()}


def age_info_to_dto(info: AgeInfo) -> dict[str, Any]:
    return {
        "personId": info.person_id,
        "birthDate": info.birth_date.isoformat() if info.birth_date else None,
        "deathDate": info.death_date.isoformat() if info.death_date else None,
        "ageYears": info.age_years,
        "ageText": info.age_text,
        "isDeceased": info.is_deceased,
        "source": info.source,
        "cacheHit": info.cache_hit,
        "birthPlace": info.birth_place,
        "birthCountryIso2": info.birth_country_iso2,
    }


def empty_debug_dto(person_id: str) -> dict[str, Any]:
    return {
        "personId": person_id,
        "birthDate": None,
        "deathDate": None,
        "ageYears": None,
        "ageText": None,
        "isDeceased": False,
        "source": None,
        "cacheHit": False,
        "birthPlace": None,
        "birthCountryIso2": None,
        "found": False,
    }


def extract_person_ids(body: object) -> list[object]:
    """Acepta {"personIds": [...]} (o "ids"). Cualquier otra forma => lista vacía."""
    if not isinstance(body, dict):
        return []
    raw = body.get("personIds", body.get("ids"))
    if not isinstance(raw, list):
        return []
    return raw


def _deadline(timeout_seconds: float) -> tuple[asyncio.Event, asyncio.TimerHandle]:
    cancel = asyncio.Event()
    handle = asyncio.get_running_loop().call_later(timeout_seconds, cancel.set)
    return cancel, handle


async def resolve_one(service: AttributeService, person_id: object, *, timeout_seconds: float) -> AgeInfo | None:
    cancel, handle = _deadline(timeout_seconds)
    try:
        return await service.resolver.resolve(person_id, cancel=cancel)
    finally:
        handle.cancel()


async def resolve_batch(
    service: AttributeService,
    person_ids: Iterable[object],
    *,
    timeout_seconds: float,
) -> dict[str, dict[str, Any]]:
    cancel, handle = _deadline(timeout_seconds)
    try:
        infos = await service.resolver.resolve_many(person_ids, cancel=cancel)
    finally:
        handle.cancel()
    return {pid: age_info_to_dto(info) for pid, info in infos.items()}
