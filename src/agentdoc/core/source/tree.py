"""Neutral component-tree model handed to the transformer.

The tree-sitter frontend converts JSX syntax into these classes so the
compiler never touches concrete syntax nodes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Optional, Tuple, Union

if TYPE_CHECKING:
    from .expressions import Expr


@dataclass(frozen=True)
class Location:
    """1-based source position."""

    path: Optional[str]
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.path or '<source>'}:{self.line}:{self.column}"


@dataclass(frozen=True)
class JsxText:
    """Raw JSX text exactly as written between two sibling nodes."""

    raw: str
    location: Optional[Location] = field(default=None, compare=False)


@dataclass(frozen=True)
class ExpressionContainer:
    """A ``{...}`` child. ``expression`` is None for empty or comment-only braces."""

    expression: Optional["Expr"]
    location: Optional[Location] = field(default=None, compare=False)


@dataclass(frozen=True)
class Attribute:
    """``name="value"``, ``name={expr}`` or bare ``name`` (value None)."""

    name: str
    value: Optional["Expr"] = None
    location: Optional[Location] = field(default=None, compare=False)


@dataclass(frozen=True)
class SpreadAttribute:
    expression: "Expr"
    location: Optional[Location] = field(default=None, compare=False)


AttributeLike = Union[Attribute, SpreadAttribute]


@dataclass(frozen=True)
class Element:
    """A JSX element. ``tag`` is None for a fragment."""

    tag: Optional[str]
    attributes: Tuple[AttributeLike, ...] = ()
    children: Tuple["ChildNode", ...] = ()
    type_arguments: Tuple[str, ...] = ()
    location: Optional[Location] = field(default=None, compare=False)

    @property
    def is_fragment(self) -> bool:
        return self.tag is None

    @property
    def display_name(self) -> str:
        return self.tag if self.tag is not None else "<>"

    def attribute(self, name: str) -> Optional[Attribute]:
        """Return the last explicit attribute called ``name``."""
        found: Optional[Attribute] = None
        for attr in self.attributes:
            if isinstance(attr, Attribute) and attr.name == name:
                found = attr
        return found

    def has_attribute(self, name: str) -> bool:
        return self.attribute(name) is not None

    def has_spreads(self) -> bool:
        return any(isinstance(a, SpreadAttribute) for a in self.attributes)

    def iter_elements(self) -> Iterator["Element"]:
        """Depth-first walk over this element and every nested element."""
        yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.iter_elements()


ChildNode = Union[Element, JsxText, ExpressionContainer]


__all__ = [
    "Location",
    "JsxText",
    "ExpressionContainer",
    "Attribute",
    "SpreadAttribute",
    "AttributeLike",
    "Element",
    "ChildNode",
]
