from __future__ import annotations

"""
frontend/dom.py

Árbol de elementos mínimo sobre el que trabaja el motor de presentación.

Los adaptadores del host (navegador embebido, UI de escritorio, tests) reflejan su
documento en este árbol y reenvían eventos (mutación, scroll, navegación, hover).

- Selectores soportados: compuestos simples separados por comas:
    tag, #id, .clase, [attr], [attr=valor], [attr*=valor]
- Cada escritura que CAMBIA algo incrementa Document.mutation_count; escribir el mismo
  valor no cuenta (permite comprobar que un repintado es idempotente).
- append_child notifica a los observadores del documento con los nodos añadidos.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterator

MutationObserver = Callable[[list["Element"]], None]


@dataclass(frozen=True)
class Rect:
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


# ============================================================
# Selectores
# ============================================================

_TAG_RE = re.compile(r"^([a-zA-Z][\w-]*)")
_TOKEN_RE = re.compile(r'#([\w-]+)|\.([\w-]+)|\[([\w-]+)(?:(\*?=)"?([^"\]]*)"?)?\]')


@dataclass(frozen=True)
class _Compound:
    tag: str | None
    ids: tuple[str, ...]
    classes: tuple[str, ...]
    attrs: tuple[tuple[str, str | None, str | None], ...]

    def matches(self, el: "Element") -> bool:
        if self.tag is not None and el.tag != self.tag:
            return False
        if any(el.attrs.get("id") != i for i in self.ids):
            return False
        if any(c not in el.classes for c in self.classes):
            return False
        for name, op, value in self.attrs:
            actual = el.attrs.get(name)
            if actual is None:
                return False
            if op == "=" and actual != value:
                return False
            if op == "*=" and (value or "") not in actual:
                return False
        return True


def _parse_compound(text: str) -> _Compound:
    s = text.strip()
    tag: str | None = None
    m = _TAG_RE.match(s)
    if m:
        tag = m.group(1).lower()
        s = s[m.end():]

    ids: list[str] = []
    classes: list[str] = []
    attrs: list[tuple[str, str | None, str | None]] = []
    pos = 0
    for tok in _TOKEN_RE.finditer(s):
        if tok.start() != pos:
            raise ValueError(f"Unsupported selector: {text!r}")
        pos = tok.end()
        if tok.group(1):
            ids.append(tok.group(1))
        elif tok.group(2):
            classes.append(tok.group(2))
        else:
            attrs.append((tok.group(3), tok.group(4), tok.group(5)))
    if pos != len(s):
        raise ValueError(f"Unsupported selector: {text!r}")
    return _Compound(tag=tag, ids=tuple(ids), classes=tuple(classes), attrs=tuple(attrs))


@lru_cache(maxsize=256)
def compile_selector(selector: str) -> tuple[_Compound, ...]:
    parts = [p for p in selector.split(",") if p.strip()]
    return tuple(_parse_compound(p) for p in parts)


# ============================================================
# Element / Document
# ============================================================


class Element:
    def __init__(
        self,
        tag: str = "div",
        *,
        classes: tuple[str, ...] | list[str] = (),
        attrs: dict[str, str] | None = None,
        text: str = "",
        style: dict[str, str] | None = None,
        rect: Rect | None = None,
    ) -> None:
        self.tag = tag.lower()
        self.classes: list[str] = []
        for c in classes:
            if c not in self.classes:
                self.classes.append(c)
        self.attrs: dict[str, str] = dict(attrs or {})
        self._text = text
        self.style: dict[str, str] = dict(style or {})
        self.rect = rect or Rect()
        self.children: list[Element] = []
        self.parent: Element | None = None
        self.document: Document | None = None

    def __repr__(self) -> str:
        cls = "." + ".".join(self.classes) if self.classes else ""
        return f"<{self.tag}{cls}>"

    # ---------------- mutation tracking ----------------

    def _mutated(self) -> None:
        if self.document is not None:
            self.document.mutation_count += 1

    # ---------------- classes / attrs / text / style ----------------

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def add_class(self, name: str) -> None:
        if name not in self.classes:
            self.classes.append(name)
            self._mutated()

    def remove_class(self, name: str) -> None:
        if name in self.classes:
            self.classes.remove(name)
            self._mutated()

    def get_attr(self, name: str) -> str | None:
        return self.attrs.get(name)

    def set_attr(self, name: str, value: str) -> None:
        if self.attrs.get(name) != value:
            self.attrs[name] = value
            self._mutated()

    @property
    def text(self) -> str:
        return self._text

    def set_text(self, value: str) -> None:
        if self._text != value:
            self._text = value
            self._mutated()

    def set_style(self, name: str, value: str) -> None:
        if self.style.get(name) != value:
            self.style[name] = value
            self._mutated()

    # ---------------- tree ----------------

    def _attach(self, document: "Document | None") -> None:
        self.document = document
        for child in self.children:
            child._attach(document)

    def append_child(self, child: "Element") -> "Element":
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        child._attach(self.document)
        self._mutated()
        if self.document is not None:
            self.document._notify_added([child])
        return child

    def remove_child(self, child: "Element") -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None
            child._attach(None)
            self._mutated()

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def clear_children(self) -> None:
        for child in list(self.children):
            self.remove_child(child)

    def iter_descendants(self) -> Iterator["Element"]:
        stack = list(reversed(self.children))
        while stack:
            el = stack.pop()
            yield el
            stack.extend(reversed(el.children))

    def contains(self, other: "Element | None") -> bool:
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    @property
    def previous_sibling(self) -> "Element | None":
        if self.parent is None:
            return None
        idx = self.parent.children.index(self)
        return self.parent.children[idx - 1] if idx > 0 else None

    @property
    def next_sibling(self) -> "Element | None":
        if self.parent is None:
            return None
        siblings = self.parent.children
        idx = siblings.index(self)
        return siblings[idx + 1] if idx + 1 < len(siblings) else None

    # ---------------- queries ----------------

    def matches(self, selector: str) -> bool:
        return any(c.matches(self) for c in compile_selector(selector))

    def closest(self, selector: str) -> "Element | None":
        compounds = compile_selector(selector)
        node: Element | None = self
        while node is not None:
            if any(c.matches(node) for c in compounds):
                return node
            node = node.parent
        return None

    def query_all(self, selector: str) -> list["Element"]:
        compounds = compile_selector(selector)
        return [el for el in self.iter_descendants() if any(c.matches(el) for c in compounds)]

    def query(self, selector: str) -> "Element | None":
        compounds = compile_selector(selector)
        for el in self.iter_descendants():
            if any(c.matches(el) for c in compounds):
                return el
        return None

    def child_by_class(self, name: str) -> "Element | None":
        """Equivalente a `:scope > .name`."""
        for child in self.children:
            if name in child.classes:
                return child
        return None


class Document:
    def __init__(self, *, location: str = "", viewport: tuple[float, float] = (1280.0, 720.0)) -> None:
        self.mutation_count = 0
        self.location = location
        self.hidden = False
        self.viewport_width, self.viewport_height = viewport
        self._observers: list[MutationObserver] = []

        self.root = Element("html")
        self.root._attach(self)
        self.body = Element("body")
        self.root.append_child(self.body)
        self.mutation_count = 0

    def observe(self, callback: MutationObserver) -> None:
        self._observers.append(callback)

    def disconnect(self, callback: MutationObserver) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_added(self, nodes: list[Element]) -> None:
        for cb in list(self._observers):
            cb(nodes)

    def query_all(self, selector: str) -> list[Element]:
        return self.root.query_all(selector)

    def query(self, selector: str) -> Element | None:
        return self.root.query(selector)
