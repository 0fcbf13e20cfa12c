from __future__ import annotations

import asyncio

from frontend.front_api_client import ApiClientError
from frontend.front_status import DisplayFlags, StatusLoader


def test_from_payload_accepts_both_key_styles() -> None:
    pascal = DisplayFlags.from_payload({"Enabled": True, "ShowAgeIcons": True, "HoverCastLimit": 5})
    camel = DisplayFlags.from_payload({"enabled": True, "showAgeIcons": True, "hoverCastLimit": 5})
    assert pascal == camel
    assert pascal.enabled is True
    assert pascal.hover_cast_limit == 5


def test_from_payload_defaults_and_limit_clamping() -> None:
    assert DisplayFlags.from_payload(None) == DisplayFlags()
    assert DisplayFlags.from_payload([1, 2]).enabled is False

    flags = DisplayFlags.from_payload({"hoverFilmographyLimit": 0, "hoverCastLimit": 500})
    assert flags.hover_filmography_limit == 12
    assert flags.hover_cast_limit == 100
    assert DisplayFlags.from_payload({"hoverCastLimit": -3}).hover_cast_limit == 1
    assert DisplayFlags.from_payload({"hoverCastLimit": "many"}).hover_cast_limit == 12
    assert flags.show_age_at_release is True
    assert flags.show_birth_country_flag is True


def test_loader_rechecks_after_ttl() -> None:
    now = [0.0]
    calls = []

    async def fetch():
        calls.append(now[0])
        return {"enabled": True}

    loader = StatusLoader(fetch, ttl_s=10.0, clock=lambda: now[0])

    async def run():
        await loader.load()
        now[0] = 5.0
        await loader.load()
        now[0] = 10.5
        return await loader.load()

    flags = asyncio.run(run())

    assert calls == [0.0, 10.5]
    assert flags.enabled is True


def test_loader_failure_keeps_previous_or_disables() -> None:
    now = [0.0]
    state = {"fail": True}

    async def fetch():
        if state["fail"]:
            raise ApiClientError("down")
        return {"enabled": True}

    loader = StatusLoader(fetch, ttl_s=1.0, clock=lambda: now[0])

    async def run():
        first = await loader.load()
        state["fail"] = False
        second = await loader.load()
        state["fail"] = True
        now[0] = 5.0
        third = await loader.load()
        return first, second, third

    first, second, third = asyncio.run(run())

    assert first.enabled is False
    assert second.enabled is True
    assert third.enabled is True
