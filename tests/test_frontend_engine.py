from __future__ import annotations

import asyncio
from datetime import date

from frontend.dom import Document, Element
from frontend.engine import PresentationEngine, context_from_item
from frontend.renderer import AGE_BADGE_CLASS

A = "a" * 32
B = "b" * 32
M = "c" * 32

RECORDS = {
    A: {"ageText": "43", "birthDate": "1980-06-15", "birthCountryIso2": "ES"},
    B: {"ageText": "70", "birthDate": "1954-01-01", "birthCountryIso2": "FR"},
}


class FakeApi:
    def __init__(self, status: dict[str, object]) -> None:
        self.status = status
        self.batches: list[list[str]] = []

    async def fetch_status(self):
        return self.status

    async def fetch_ages(self, ids):
        self.batches.append(list(ids))
        return {pid: RECORDS[pid] for pid in ids if pid in RECORDS}


class FakeCatalog:
    def __init__(self) -> None:
        self.items: dict[str, dict[str, object]] = {
            M: {"Name": "Film", "Type": "Movie", "PremiereDate": "2000-01-01T00:00:00.0000000Z"},
        }

    async def get_item(self, item_id, *, fields=None):
        return self.items.get(item_id)

    async def query_items(self, params):
        return {"Items": [{"Id": M, "Name": "Film", "ProductionYear": 2000}], "TotalRecordCount": 1}

    def primary_image_url(self, item_id, *, width, height):
        return f"img/{item_id}"


def _card(pid: str, **attrs: str) -> Element:
    return Element("a", classes=["cardImageContainer"], attrs={"href": f"#/details?id={pid}", **attrs})


def _doc() -> tuple[Document, Element, Element]:
    doc = Document(location="#/home")
    cast = doc.body.append_child(Element("div", classes=["peopleSection"]))
    card = cast.append_child(_card(A, title="Jane Doe"))
    return doc, cast, card


def _engine(doc: Document, status: dict[str, object]) -> tuple[PresentationEngine, FakeApi]:
    api = FakeApi(status)
    engine = PresentationEngine(
        doc,
        api=api,
        catalog=FakeCatalog(),
        periodic_scan_s=30.0,
        nav_rescan_delay_s=0.05,
        context_refresh_delay_s=0.01,
    )
    return engine, api


def _badge_lines(card: Element) -> list[str]:
    badge = card.child_by_class(AGE_BADGE_CLASS)
    return [] if badge is None else [line.text for line in badge.children]


def test_context_from_item() -> None:
    assert context_from_item(M, {"Type": "Movie", "PremiereDate": "2010-07-16T00:00:00Z"}).premiere == date(2010, 7, 16)
    assert context_from_item(M, {"Type": "Series", "ProductionYear": 1999}).premiere == date(1999, 1, 1)
    assert context_from_item(M, {"ProductionYear": 1700}).premiere is None
    assert context_from_item(M, {"Type": "Person"}).is_person is True
    assert context_from_item(M, None).item_id == M


def test_disabled_engine_does_nothing() -> None:
    doc, _, card = _doc()
    engine, api = _engine(doc, {"enabled": False})

    started = asyncio.run(engine.start())

    assert started is False
    assert engine.started is False
    assert api.batches == []
    assert card.children == []


def test_scan_batch_and_render() -> None:
    doc, cast, card = _doc()
    engine, api = _engine(doc, {"enabled": True})

    async def run():
        assert await engine.start() is True
        await asyncio.sleep(0.4)
        late = cast.append_child(_card(B))
        await asyncio.sleep(0.4)
        await engine.stop()
        return late

    late = asyncio.run(run())

    assert _badge_lines(card) == ["43 y"]
    assert _badge_lines(late) == ["70 y"]
    assert api.batches[0] == [A]
    assert [B] in api.batches


def test_navigation_to_details_adds_release_age() -> None:
    doc, _, card = _doc()
    engine, _ = _engine(doc, {"enabled": True})

    async def run():
        await engine.start()
        await asyncio.sleep(0.4)
        before = _badge_lines(card)
        engine.on_navigation(f"#/details?id={M}")
        await asyncio.sleep(0.3)
        ctx = engine.context
        await engine.stop()
        return before, ctx

    before, ctx = asyncio.run(run())

    assert before == ["43 y"]
    assert ctx is not None and ctx.premiere == date(2000, 1, 1)
    assert _badge_lines(card) == ["19 y", "43 y"]


def test_hover_on_person_card_opens_filmography() -> None:
    doc, _, card = _doc()
    engine, _ = _engine(doc, {"enabled": True, "enableHoverFilmography": True})

    async def run():
        await engine.start()
        engine.on_pointer_over(card)
        await asyncio.sleep(0.4)
        popup = engine.filmography_popup.popup
        texts = [] if popup is None else [d.text for d in popup.iter_descendants() if d.text]
        visible = engine.filmography_popup.visible
        await engine.stop()
        return visible, texts

    visible, texts = asyncio.run(run())

    assert visible is True
    assert "Filmography: Jane Doe" in texts
    assert "Shown 1 of 1" in texts
