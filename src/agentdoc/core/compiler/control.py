"""Control-flow elements: If/Else, Loop, Break, Return, AskUser.

None of these are executed. They compile to IR nodes the emitter prints as
instructions for the orchestrator.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from agentdoc.core.exceptions import (
    InvalidAttributeValueError,
    MissingRequiredAttributeError,
    MutuallyExclusiveAttributesError,
    UnsupportedElementError,
)
from agentdoc.core.ir import RETURN_STATUSES, AskUser, AskUserOption, Break, Conditional, Loop, Return, ScriptVarRef
from agentdoc.core.source.expressions import Literal
from agentdoc.core.source.tree import Element

from .scope import MISSING, Scope
from .values import AttributeSet, render_condition, stringify, validate_shell_name

if TYPE_CHECKING:
    from agentdoc.core.ir.nodes import BlockNode

    from .transformer import Transformer

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 4


def condition_text(attrs: AttributeSet) -> str:
    """Text of an ``If`` condition: ``test`` verbatim, ``condition`` rendered."""
    has_condition = "condition" in attrs
    has_test = "test" in attrs
    if has_condition and has_test:
        raise MutuallyExclusiveAttributesError("If", ("condition", "test"), location=attrs.location())
    if has_test:
        return attrs.string("test", required=True)
    attr = attrs.raw("condition")
    if attr is None or (attr.expr is None and attr.preset is MISSING):
        raise MissingRequiredAttributeError("If", "condition", location=attrs.location())
    if attr.preset is not MISSING:
        return stringify(attr.preset)
    if isinstance(attr.expr, Literal) and isinstance(attr.expr.value, str):
        return attr.expr.value
    return render_condition(attr.expr, attr.scope)


def conditional(
    t: "Transformer",
    element: Element,
    scope: Scope,
    otherwise: Optional[Element] = None,
    otherwise_scope: Optional[Scope] = None,
) -> List["BlockNode"]:
    condition = condition_text(t.attributes(element, scope))
    consequent = tuple(t.blocks(element.children, scope))
    alternate = None
    if otherwise is not None:
        alternate = tuple(t.blocks(otherwise.children, otherwise_scope or scope))
    logger.debug("If %r (else: %s)", condition, otherwise is not None)
    return [Conditional(condition=condition, consequent=consequent, alternate=alternate)]


def _if(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    return conditional(t, element, scope)


def _else(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    raise UnsupportedElementError(
        "<Else> must immediately follow an <If> sibling", location=element.location
    )


def runtime_target(attrs: AttributeSet, name: str) -> Optional[ScriptVarRef]:
    """A script variable, or a plain name that is turned into one."""
    value = attrs.value(name)
    if value is None:
        return None
    if isinstance(value, ScriptVarRef):
        return value
    if isinstance(value, str):
        return ScriptVarRef(validate_shell_name(value, attrs.location(name)))
    raise InvalidAttributeValueError(
        f"<{attrs.tag}> '{name}' must be a script variable or a variable name",
        location=attrs.location(name),
    )


def _loop(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    attrs = t.attributes(element, scope)
    bound = attrs.integer("max", required=True)
    if bound is None or bound < 1:
        raise InvalidAttributeValueError(
            f"<Loop> 'max' must be a positive integer, got {bound}", location=attrs.location("max")
        )
    counter = runtime_target(attrs, "counter")
    return [Loop(max_iterations=bound, children=tuple(t.blocks(element.children, scope)), counter=counter)]


def _message(t: "Transformer", attrs: AttributeSet, element: Element, scope: Scope) -> Optional[str]:
    message = attrs.string("message")
    if message:
        return message
    if element.children:
        rendered = t.render_blocks(element.children, scope)
        return rendered or None
    return None


def _break(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    attrs = t.attributes(element, scope)
    return [Break(message=_message(t, attrs, element, scope))]


def _return(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    attrs = t.attributes(element, scope)
    status = attrs.string("status")
    if status is not None and status not in RETURN_STATUSES:
        raise InvalidAttributeValueError(
            f"<Return> 'status' must be one of {', '.join(RETURN_STATUSES)}, got '{status}'",
            location=attrs.location("status"),
        )
    return [Return(status=status, message=_message(t, attrs, element, scope))]


def _option(raw: Any, index: int, attrs: AttributeSet) -> AskUserOption:
    if not isinstance(raw, dict):
        raise InvalidAttributeValueError(
            f"<AskUser> option {index + 1} must be an object with 'value' and 'label'",
            location=attrs.location("options"),
        )
    fields: Dict[str, str] = {}
    for key in ("value", "label"):
        if raw.get(key) in (None, ""):
            raise InvalidAttributeValueError(
                f"<AskUser> option {index + 1} requires '{key}'", location=attrs.location("options")
            )
        fields[key] = stringify(raw[key])
    description = raw.get("description")
    return AskUserOption(
        value=fields["value"],
        label=fields["label"],
        description=stringify(description) if description not in (None, "") else None,
    )


def _ask_user(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    attrs = t.attributes(element, scope)
    question = attrs.string("question", required=True)
    raw_options = attrs.require("options")
    if not isinstance(raw_options, list):
        raise InvalidAttributeValueError("<AskUser> 'options' must be an array", location=attrs.location("options"))
    if not MIN_OPTIONS <= len(raw_options) <= MAX_OPTIONS:
        raise InvalidAttributeValueError(
            f"<AskUser> needs {MIN_OPTIONS} to {MAX_OPTIONS} options, got {len(raw_options)}",
            location=attrs.location("options"),
        )
    options: Tuple[AskUserOption, ...] = tuple(_option(o, i, attrs) for i, o in enumerate(raw_options))

    output = attrs.value("output")
    if output is None:
        raise MissingRequiredAttributeError("AskUser", "output", location=element.location)
    if not isinstance(output, ScriptVarRef):
        raise InvalidAttributeValueError(
            "<AskUser> 'output' must be a script variable", location=attrs.location("output")
        )
    return [
        AskUser(
            question=question,
            options=options,
            output=output,
            header=attrs.string("header"),
            multi_select=attrs.boolean("multiSelect"),
        )
    ]


HANDLERS = {
    "If": _if,
    "Else": _else,
    "Loop": _loop,
    "Break": _break,
    "Return": _return,
    "AskUser": _ask_user,
}


__all__ = ["HANDLERS", "conditional", "condition_text", "runtime_target"]
