from __future__ import annotations

import pytest

from frontend.dom import Document, Element, Rect


def _doc_with_card() -> tuple[Document, Element, Element]:
    doc = Document(location="#/home")
    section = doc.body.append_child(Element("div", attrs={"id": "castContent"}, classes=["section"]))
    card = section.append_child(
        Element("a", classes=["cardImageContainer"], attrs={"href": "#/details?id=abc", "data-x": "1"})
    )
    return doc, section, card


def test_rect_edges() -> None:
    r = Rect(left=10, top=20, width=30, height=40)
    assert r.right == 40
    assert r.bottom == 60


def test_selectors_tag_id_class_and_attrs() -> None:
    doc, section, card = _doc_with_card()

    assert card.matches("a.cardImageContainer")
    assert card.matches('a[href*="id="]')
    assert card.matches("[data-x=1]")
    assert not card.matches("[data-x=2]")
    assert section.matches("#castContent")
    assert card.closest("#castContent") is section
    assert doc.query_all(".cardImageContainer, #castContent") == [section, card]


def test_unsupported_selector_raises() -> None:
    with pytest.raises(ValueError):
        Element("div").matches("div > span")


def test_writes_count_only_real_changes() -> None:
    doc, _, card = _doc_with_card()
    before = doc.mutation_count

    card.set_attr("data-x", "1")
    card.add_class("cardImageContainer")
    card.set_text("")
    assert doc.mutation_count == before

    card.set_attr("data-x", "2")
    card.set_style("position", "relative")
    assert doc.mutation_count == before + 2


def test_observers_get_added_nodes_and_detached_nodes_lose_document() -> None:
    doc, section, _ = _doc_with_card()
    seen: list[list[Element]] = []
    doc.observe(seen.append)

    extra = section.append_child(Element("div", classes=["listItemImage"]))
    assert seen == [[extra]]
    assert extra.document is doc

    extra.remove()
    assert extra.document is None
    assert extra.parent is None

    doc.disconnect(seen.append)
    section.append_child(Element("span"))
    assert len(seen) == 1


def test_siblings_and_contains() -> None:
    parent = Element("div")
    a = parent.append_child(Element("span"))
    b = parent.append_child(Element("span"))

    assert a.next_sibling is b
    assert b.previous_sibling is a
    assert a.previous_sibling is None
    assert parent.contains(b)
    assert not a.contains(b)
