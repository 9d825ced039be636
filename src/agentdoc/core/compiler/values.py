"""Static evaluation of attribute values and child expressions.

The compiler never runs authored code. Only literals, props, constants
(top-level or declared in the enclosing function body) and script-variable
accesses are evaluated; anything else raises
``UnsupportedExpressionError`` (or falls back to a placeholder inside
template literals).
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple

from agentdoc.core.exceptions import (
    InvalidAttributeValueError,
    InvalidIdentifierError,
    MalformedSpreadSourceError,
    MissingRequiredAttributeError,
    UnsupportedExpressionError,
)
from agentdoc.core.ir.runtime import FunctionRef, ScriptVarRef
from agentdoc.core.source.expressions import (
    ArrayLiteral,
    BinaryOp,
    Expr,
    Identifier,
    Literal,
    MemberAccess,
    ObjectLiteral,
    Parenthesized,
    SpreadElement,
    TemplateLiteral,
    UnaryOp,
)
from agentdoc.core.source.tree import Attribute, Element, Location, SpreadAttribute

from .scope import MISSING, Scope, Slot

logger = logging.getLogger(__name__)

PLACEHOLDER = "placeholder"
VERBATIM = "verbatim"


# =============================================================================
# Expression evaluation
# =============================================================================


def evaluate(expr: Expr, scope: Scope, *, interpolation: str = PLACEHOLDER) -> Any:
    """Evaluate ``expr`` statically in ``scope``."""
    return _Evaluator(scope, interpolation).eval(expr, frozenset())


class _Evaluator:
    def __init__(self, scope: Scope, interpolation: str) -> None:
        self.scope = scope
        self.interpolation = interpolation

    def eval(self, expr: Expr, seen: FrozenSet[str]) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, TemplateLiteral):
            return self.template(expr, seen)
        if isinstance(expr, Identifier):
            return self.identifier(expr, seen)
        if isinstance(expr, MemberAccess):
            return self.member(expr, seen)
        if isinstance(expr, Parenthesized) and expr.inner is not None:
            return self.eval(expr.inner, seen)
        if isinstance(expr, ArrayLiteral):
            items: List[Any] = []
            for item in expr.items:
                if isinstance(item, SpreadElement) and item.argument is not None:
                    spread = self.eval(item.argument, seen)
                    if not isinstance(spread, list):
                        raise _unsupported(item, "only arrays can be spread into an array")
                    items.extend(spread)
                else:
                    items.append(self.eval(item, seen))
            return items
        if isinstance(expr, ObjectLiteral):
            result: Dict[str, Any] = {}
            for entry in expr.entries:
                if entry.spread:
                    spread = self.eval(entry.value, seen)
                    if not isinstance(spread, dict):
                        raise _unsupported(entry.value, "only objects can be spread into an object")
                    result.update(spread)
                elif entry.key is None:
                    raise _unsupported(entry.value, "computed object keys are not supported")
                else:
                    result[entry.key] = self.eval(entry.value, seen)
            return result
        if isinstance(expr, UnaryOp) and expr.operand is not None:
            return self.unary(expr, seen)
        if isinstance(expr, BinaryOp) and expr.left is not None and expr.right is not None:
            return self.binary(expr, seen)
        raise _unsupported(expr)

    def identifier(self, expr: Identifier, seen: FrozenSet[str]) -> Any:
        name = expr.name
        if name in self.scope.locals:
            return self.local(expr, seen)
        value = self.scope.lookup(name)
        if value is not MISSING:
            return value
        binder = self.scope.binder
        if binder.is_bound(name):
            return binder.bind(name)
        fn = binder.function(name)
        if fn is not None:
            return fn
        unit = self.scope.unit
        if unit is not None and name in unit.variables:
            if name in seen:
                raise _unsupported(expr, f"'{name}' refers to itself")
            module = _Evaluator(self.scope.module(), self.interpolation)
            return module.eval(unit.variables[name].init, seen | {name})
        raise _unsupported(expr, f"'{name}' cannot be resolved statically")

    def local(self, expr: Identifier, seen: FrozenSet[str]) -> Any:
        name = expr.name
        if name in seen:
            raise _unsupported(expr, f"'{name}' refers to itself")
        init = self.scope.locals[name]
        runtime = self.scope.binder.bind_local(name, init)
        if runtime is not None:
            return runtime
        return self.eval(init, seen | {name})

    def member(self, expr: MemberAccess, seen: FrozenSet[str]) -> Any:
        if expr.target is None:
            raise _unsupported(expr)
        target = self.eval(expr.target, seen)
        key = expr.member
        if isinstance(target, ScriptVarRef):
            return self.scope.binder.access(target, key)
        if isinstance(target, FunctionRef):
            if key == "name":
                return FunctionRef(target.name)
            if key == "call":
                return FunctionRef(target.name, call=True)
            raise _unsupported(expr, f"runtime function has no '{key}' member")
        if isinstance(target, dict):
            return target.get(key)
        if isinstance(target, (list, str)):
            if key == "length":
                return len(target)
            if key.isdigit() and int(key) < len(target):
                return target[int(key)]
            return None
        if isinstance(target, Slot) and key == "length":
            return len(target.children)
        raise _unsupported(expr)

    def unary(self, expr: UnaryOp, seen: FrozenSet[str]) -> Any:
        value = self.eval(expr.operand, seen)
        if _is_runtime(value):
            raise _unsupported(expr, "runtime values cannot be computed at compile time")
        if expr.operator == "!":
            return not value
        if expr.operator == "-" and isinstance(value, (int, float)) and not isinstance(value, bool):
            return -value
        if expr.operator == "+" and isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        raise _unsupported(expr)

    def binary(self, expr: BinaryOp, seen: FrozenSet[str]) -> Any:
        left = self.eval(expr.left, seen)
        right = self.eval(expr.right, seen)
        if _is_runtime(left) or _is_runtime(right):
            raise _unsupported(expr, "runtime values cannot be computed at compile time")
        if expr.operator == "+":
            if isinstance(left, str) or isinstance(right, str):
                return stringify(left) + stringify(right)
            if _is_number(left) and _is_number(right):
                return left + right
        if expr.operator == "??":
            return right if left is None else left
        raise _unsupported(expr)

    def template(self, expr: TemplateLiteral, seen: FrozenSet[str]) -> str:
        out: List[str] = []
        for part in expr.parts:
            if isinstance(part, str):
                out.append(part)
                continue
            try:
                out.append(stringify(self.eval(part, seen), part))
            except UnsupportedExpressionError:
                out.append(placeholder(part, self.interpolation))
        return "".join(out)


def placeholder(expr: Expr, mode: str = PLACEHOLDER) -> str:
    """Render an unresolved template substitution."""
    text = expr.text.strip()
    if mode == VERBATIM:
        return "${" + text + "}"
    return "{" + text + "}"


def _unsupported(expr: Expr, reason: Optional[str] = None) -> UnsupportedExpressionError:
    message = f"Unsupported expression `{expr.text}`"
    if reason:
        message += f": {reason}"
    return UnsupportedExpressionError(message, location=expr.location)


def _is_runtime(value: Any) -> bool:
    return isinstance(value, (ScriptVarRef, FunctionRef))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def stringify(value: Any, expr: Optional[Expr] = None) -> str:
    """Text form of a static value, JavaScript style."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, (ScriptVarRef, FunctionRef)):
        return str(value)
    if isinstance(value, list):
        return ",".join(stringify(v, expr) for v in value)
    where = f" `{expr.text}`" if expr is not None else ""
    raise UnsupportedExpressionError(
        f"Value of{where} cannot be rendered as text",
        location=expr.location if expr is not None else None,
    )


# =============================================================================
# Conditions
# =============================================================================


def render_condition(expr: Expr, scope: Scope) -> str:
    """Readable text of a condition; script variables become accessors."""
    if isinstance(expr, Literal):
        return json.dumps(expr.value)
    if isinstance(expr, Parenthesized) and expr.inner is not None:
        return f"({render_condition(expr.inner, scope)})"
    if isinstance(expr, UnaryOp) and expr.operand is not None:
        sep = " " if expr.operator.isalpha() else ""
        return f"{expr.operator}{sep}{render_condition(expr.operand, scope)}"
    if isinstance(expr, BinaryOp) and expr.left is not None and expr.right is not None:
        left = render_condition(expr.left, scope)
        right = render_condition(expr.right, scope)
        return f"{left} {expr.operator} {right}"
    if isinstance(expr, (Identifier, MemberAccess, TemplateLiteral)):
        try:
            value = evaluate(expr, scope)
        except UnsupportedExpressionError:
            return expr.text
        if _is_runtime(value):
            return str(value)
        if isinstance(value, (str, int, float, bool)) or value is None:
            return json.dumps(value)
    return expr.text


# =============================================================================
# Attributes
# =============================================================================


@dataclass
class AttributeValue:
    """One resolved attribute. ``expr`` is None for a bare boolean attribute."""

    name: str
    expr: Optional[Expr]
    scope: Scope
    location: Optional[Location] = None
    preset: Any = MISSING

    def evaluate(self, interpolation: str = PLACEHOLDER) -> Any:
        if self.preset is not MISSING:
            return self.preset
        if self.expr is None:
            return True
        return evaluate(self.expr, self.scope, interpolation=interpolation)


class AttributeSet:
    """Attributes of one element after spreads are merged (later wins)."""

    def __init__(self, element: Element, values: Dict[str, AttributeValue], interpolation: str) -> None:
        self.element = element
        self._values = values
        self.interpolation = interpolation

    @classmethod
    def collect(cls, element: Element, scope: Scope, *, interpolation: str = PLACEHOLDER) -> "AttributeSet":
        values: Dict[str, AttributeValue] = {}
        for attr in element.attributes:
            if isinstance(attr, SpreadAttribute):
                for value in _spread_values(attr, scope):
                    values.pop(value.name, None)
                    values[value.name] = value
            elif isinstance(attr, Attribute):
                values.pop(attr.name, None)
                values[attr.name] = AttributeValue(attr.name, attr.value, scope, attr.location)
        return cls(element, values, interpolation)

    # ---------------------------------------------------------------

    @property
    def tag(self) -> str:
        return self.element.display_name

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def names(self) -> List[str]:
        return list(self._values)

    def items(self) -> Iterator[Tuple[str, AttributeValue]]:
        return iter(list(self._values.items()))

    def raw(self, name: str) -> Optional[AttributeValue]:
        return self._values.get(name)

    def expr(self, name: str) -> Optional[Expr]:
        value = self._values.get(name)
        return value.expr if value is not None else None

    def location(self, name: Optional[str] = None) -> Optional[Location]:
        if name is not None and name in self._values and self._values[name].location is not None:
            return self._values[name].location
        return self.element.location

    def value(self, name: str, default: Any = None) -> Any:
        attr = self._values.get(name)
        if attr is None:
            return default
        return attr.evaluate(self.interpolation)

    def present(self, name: str) -> bool:
        """True when the attribute exists and does not evaluate to null."""
        return name in self._values and self.value(name) is not None

    def require(self, name: str) -> Any:
        value = self.value(name)
        if value is None or value == "":
            raise MissingRequiredAttributeError(self.tag, name, location=self.element.location)
        return value

    def string(self, name: str, *, required: bool = False, default: Optional[str] = None) -> Optional[str]:
        value = self.require(name) if required else self.value(name)
        if value is None:
            return default
        return stringify(value, self.expr(name))

    def boolean(self, name: str, default: bool = False) -> bool:
        value = self.value(name)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        raise InvalidAttributeValueError(
            f"<{self.tag}> '{name}' must be a boolean", location=self.location(name)
        )

    def integer(self, name: str, *, required: bool = False) -> Optional[int]:
        value = self.require(name) if required else self.value(name)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
            raise InvalidAttributeValueError(
                f"<{self.tag}> '{name}' must be an integer, got {value!r}",
                location=self.location(name),
            )
        return int(value)

    def string_list(self, name: str) -> Tuple[str, ...]:
        value = self.value(name)
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        if isinstance(value, list):
            return tuple(stringify(v, self.expr(name)) for v in value)
        raise InvalidAttributeValueError(
            f"<{self.tag}> '{name}' must be a string or an array of strings",
            location=self.location(name),
        )


def _spread_values(attr: SpreadAttribute, scope: Scope) -> List[AttributeValue]:
    """Expand ``{...source}``. The source must name an object literal."""
    source = attr.expression
    if not isinstance(source, Identifier):
        raise MalformedSpreadSourceError(
            f"Spread source `{source.text}` must be an identifier bound to an object literal",
            location=attr.location,
        )

    prop = MISSING if source.name in scope.locals else scope.lookup(source.name)
    if prop is not MISSING:
        if not isinstance(prop, dict):
            raise MalformedSpreadSourceError(
                f"Spread source `{source.name}` is not an object",
                location=attr.location,
            )
        return [AttributeValue(k, None, scope, attr.location, preset=v) for k, v in prop.items()]

    unit = scope.unit
    if source.name in scope.locals:
        init = scope.locals[source.name]
        owner = scope
    else:
        decl = unit.variables.get(source.name) if unit is not None else None
        if decl is None:
            raise MalformedSpreadSourceError(
                f"Spread source `{source.name}` is not declared in this file",
                location=attr.location,
            )
        init = decl.init
        owner = scope.module()
    if not isinstance(init, ObjectLiteral):
        raise MalformedSpreadSourceError(
            f"Spread source `{source.name}` must be initialised with an object literal, "
            f"not `{init.text}`",
            location=attr.location,
        )

    values: List[AttributeValue] = []
    for entry in init.entries:
        if entry.spread or entry.key is None:
            raise MalformedSpreadSourceError(
                f"Spread source `{source.name}` must be a plain object literal",
                location=attr.location,
            )
        values.append(AttributeValue(entry.key, entry.value, owner, attr.location))
    logger.debug("Expanded spread %s into %d attribute(s)", source.name, len(values))
    return values


SHELL_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_shell_name(name: str, location: Optional[Location] = None) -> str:
    """Shell variable names: letters, digits and underscores, no leading digit."""
    if not SHELL_NAME.match(name):
        raise InvalidIdentifierError(
            f"Invalid shell variable name '{name}'",
            location=location,
            context={"name": name},
        )
    return name


__all__ = [
    "evaluate",
    "stringify",
    "placeholder",
    "render_condition",
    "AttributeValue",
    "AttributeSet",
    "validate_shell_name",
    "PLACEHOLDER",
    "VERBATIM",
]
