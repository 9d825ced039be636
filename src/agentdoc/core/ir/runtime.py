"""Runtime variable binder.

Script variables stand for values produced by an external shell or script
step at run time (``const ctx = useScriptVar<Ctx>('CTX')``). The compiler
never evaluates them; it only records which variable was accessed and along
which property path, so the emitter can print a stable accessor such as
``$CTX.status.phase``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Dict, List, Optional, Tuple, Union

from agentdoc.core.source.expressions import Call, Expr, Identifier, Literal

if TYPE_CHECKING:
    from agentdoc.core.source.unit import SourceUnit

logger = logging.getLogger(__name__)

SCRIPT_VAR_FACTORIES = ("useScriptVar", "useRuntimeVar")
FUNCTION_FACTORIES = ("runtimeFn",)


@dataclass(frozen=True)
class ScriptVarRef:
    """Reference to a script variable, optionally narrowed by a property path.

    An empty path refers to the bound value as a whole.
    """

    kind: ClassVar[str] = "script_var_ref"

    name: str
    path: Tuple[str, ...] = ()

    def append(self, segment: str) -> "ScriptVarRef":
        """Return a new reference one property deeper."""
        return ScriptVarRef(self.name, self.path + (segment,))

    @property
    def accessor(self) -> str:
        if not self.path:
            return f"${self.name}"
        return f"${self.name}." + ".".join(self.path)

    def __str__(self) -> str:
        return self.accessor


@dataclass(frozen=True)
class FunctionRef:
    """Reference to a runtime function registered with ``runtimeFn``."""

    kind: ClassVar[str] = "function_ref"

    name: str
    call: bool = False

    @property
    def text(self) -> str:
        return f"{self.name}()" if self.call else self.name

    def __str__(self) -> str:
        return self.text


@dataclass
class ScriptVarDecl:
    binding: str
    name: str
    type_name: Optional[str] = None


@dataclass
class ScriptVarBinder:
    """Tracks script-variable declarations and every access made on them."""

    variables: Dict[str, ScriptVarDecl] = field(default_factory=dict)
    functions: Dict[str, str] = field(default_factory=dict)
    _accesses: List[ScriptVarRef] = field(default_factory=list)

    @classmethod
    def from_unit(cls, unit: Optional["SourceUnit"]) -> "ScriptVarBinder":
        binder = cls()
        if unit is not None:
            binder.collect(unit)
        return binder

    def collect(self, unit: "SourceUnit") -> None:
        """Register the script-variable and runtime-function bindings of a unit."""
        for binding, decl in unit.variables.items():
            found = self.declaration(binding, decl.init)
            if isinstance(found, ScriptVarDecl):
                self.variables[binding] = found
            elif isinstance(found, FunctionRef):
                self.functions[binding] = found.name

    @staticmethod
    def declaration(binding: str, init: Expr) -> Optional[Union[ScriptVarDecl, FunctionRef]]:
        """Recognise ``useScriptVar``/``useRuntimeVar``/``runtimeFn`` initialisers."""
        if not isinstance(init, Call) or not isinstance(init.callee, Identifier):
            return None
        factory = init.callee.name
        if factory in SCRIPT_VAR_FACTORIES:
            if not init.args or not isinstance(init.args[0], Literal) or not isinstance(init.args[0].value, str):
                logger.debug("Skipping %s binding %s without a literal name", factory, binding)
                return None
            type_name = init.type_arguments[0] if init.type_arguments else None
            return ScriptVarDecl(binding=binding, name=init.args[0].value, type_name=type_name)
        if factory in FUNCTION_FACTORIES and init.args:
            target = init.args[0]
            return FunctionRef(target.name if isinstance(target, Identifier) else target.text)
        return None

    def bind_local(self, binding: str, init: Expr) -> Optional[Union[ScriptVarRef, FunctionRef]]:
        """Reference for a binding declared inside a function body, or None for ordinary values."""
        found = self.declaration(binding, init)
        if isinstance(found, ScriptVarDecl):
            return self._record(ScriptVarRef(found.name))
        return found

    def declare(self, binding: str, name: str, type_name: Optional[str] = None) -> ScriptVarRef:
        self.variables[binding] = ScriptVarDecl(binding=binding, name=name, type_name=type_name)
        return ScriptVarRef(name)

    def is_bound(self, binding: str) -> bool:
        return binding in self.variables

    def bind(self, binding: str) -> Optional[ScriptVarRef]:
        decl = self.variables.get(binding)
        if decl is None:
            return None
        return self._record(ScriptVarRef(decl.name))

    def access(self, ref: ScriptVarRef, segment: str) -> ScriptVarRef:
        return self._record(ref.append(segment))

    def function(self, binding: str) -> Optional[FunctionRef]:
        name = self.functions.get(binding)
        return FunctionRef(name) if name is not None else None

    def references(self) -> List[ScriptVarRef]:
        """Every distinct access, in first-seen order."""
        return list(self._accesses)

    def _record(self, ref: ScriptVarRef) -> ScriptVarRef:
        if ref not in self._accesses:
            self._accesses.append(ref)
        return ref


__all__ = [
    "ScriptVarRef",
    "FunctionRef",
    "ScriptVarDecl",
    "ScriptVarBinder",
    "SCRIPT_VAR_FACTORIES",
    "FUNCTION_FACTORIES",
]
