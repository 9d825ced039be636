"""Lexical scope used while transforming one component body."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from agentdoc.core.ir.runtime import ScriptVarBinder
from agentdoc.core.source.expressions import Expr
from agentdoc.core.source.tree import ChildNode
from agentdoc.core.source.unit import SourceUnit

Identity = Tuple[str, str]

MISSING = object()


@dataclass(frozen=True)
class Slot:
    """Children passed at a composite call site, bound to the caller's scope."""

    children: Tuple[ChildNode, ...]
    scope: "Scope"


@dataclass
class Scope:
    """Names visible while transforming one body.

    ``props`` maps local names (a props object name or destructured bindings)
    to static values. ``locals`` maps names declared inside the function body
    being transformed to their initialisers; they shadow props and module
    names. ``chain`` is the stack of composite identities being expanded,
    outermost first.
    """

    unit: Optional[SourceUnit]
    binder: ScriptVarBinder
    props: Dict[str, Any] = field(default_factory=dict)
    chain: Tuple[Identity, ...] = ()
    locals: Dict[str, Expr] = field(default_factory=dict)

    def lookup(self, name: str) -> Any:
        """Return the prop value for ``name`` or ``MISSING``."""
        return self.props.get(name, MISSING)

    def module(self) -> "Scope":
        """Scope of the owning unit's top level (no props)."""
        return Scope(unit=self.unit, binder=self.binder, chain=self.chain)

    def with_locals(self, bindings: Sequence[Tuple[str, Expr]]) -> "Scope":
        """Scope for a nested function body; its declarations shadow outer ones."""
        if not bindings:
            return self
        return Scope(
            unit=self.unit,
            binder=self.binder,
            props=self.props,
            chain=self.chain,
            locals={**self.locals, **dict(bindings)},
        )


def identity_label(identity: Identity) -> str:
    path, symbol = identity
    if not path:
        return symbol
    return f"{Path(path).name}:{symbol}"


__all__ = ["Scope", "Slot", "Identity", "MISSING", "identity_label"]
