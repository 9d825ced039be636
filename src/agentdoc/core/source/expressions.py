"""Host-language expressions as seen by the compiler.

Only the shapes the compiler can reason about statically get their own
class; everything else is kept as ``Opaque`` source text. Every expression
keeps its original source text in ``text``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Tuple, Union

from .tree import Location

if TYPE_CHECKING:
    from .tree import Element


@dataclass(frozen=True)
class Expr:
    text: str = ""
    location: Optional[Location] = field(default=None, compare=False)


@dataclass(frozen=True)
class Literal(Expr):
    """String, number, boolean or null (``undefined`` maps to null too)."""

    value: Any = None


@dataclass(frozen=True)
class TemplateLiteral(Expr):
    """Backtick string; ``parts`` alternates literal text and substitutions."""

    parts: Tuple[Union[str, Expr], ...] = ()


@dataclass(frozen=True)
class Identifier(Expr):
    name: str = ""


@dataclass(frozen=True)
class MemberAccess(Expr):
    target: Optional[Expr] = None
    member: str = ""


@dataclass(frozen=True)
class SpreadElement(Expr):
    argument: Optional[Expr] = None


@dataclass(frozen=True)
class ArrayLiteral(Expr):
    items: Tuple[Expr, ...] = ()


@dataclass(frozen=True)
class ObjectEntry:
    """One object-literal member. ``key`` is None for spreads and computed keys."""

    key: Optional[str]
    value: Expr
    spread: bool = False


@dataclass(frozen=True)
class ObjectLiteral(Expr):
    entries: Tuple[ObjectEntry, ...] = ()

    def keys(self) -> Tuple[str, ...]:
        return tuple(e.key for e in self.entries if e.key is not None)


@dataclass(frozen=True)
class UnaryOp(Expr):
    operator: str = ""
    operand: Optional[Expr] = None


@dataclass(frozen=True)
class BinaryOp(Expr):
    operator: str = ""
    left: Optional[Expr] = None
    right: Optional[Expr] = None


@dataclass(frozen=True)
class Parenthesized(Expr):
    inner: Optional[Expr] = None


@dataclass(frozen=True)
class Call(Expr):
    callee: Optional[Expr] = None
    args: Tuple[Expr, ...] = ()
    type_arguments: Tuple[str, ...] = ()


@dataclass(frozen=True)
class JsxValue(Expr):
    """A JSX element used as a value (attribute value or returned tree)."""

    element: Optional["Element"] = None


@dataclass(frozen=True)
class FunctionValue(Expr):
    """An inline function such as a render-prop child (`{() => { ...; return <>...</>; }}`).

    ``locals`` holds the `const`/`let` bindings declared before the returned
    JSX, in source order; ``body`` is None when no JSX is returned.
    """

    body: Optional["Element"] = None
    locals: Tuple[Tuple[str, Expr], ...] = ()


@dataclass(frozen=True)
class Opaque(Expr):
    """Any syntax the compiler does not model; ``syntax`` is the grammar node type."""

    syntax: str = ""


__all__ = [
    "Expr",
    "Literal",
    "TemplateLiteral",
    "Identifier",
    "MemberAccess",
    "SpreadElement",
    "ArrayLiteral",
    "ObjectEntry",
    "ObjectLiteral",
    "UnaryOp",
    "BinaryOp",
    "Parenthesized",
    "Call",
    "JsxValue",
    "FunctionValue",
    "Opaque",
]
