"""Orchestration elements: SpawnAgent, ReadFile and Table."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from agentdoc.core.exceptions import (
    InvalidAttributeValueError,
    MissingRequiredAttributeError,
    MutuallyExclusiveAttributesError,
    TypeContractViolationError,
)
from agentdoc.core.ir import InputProperty, ReadFile, ScriptVarRef, SpawnAgent, Table
from agentdoc.core.source.tree import Element

from .control import runtime_target
from .scope import Scope
from .values import AttributeSet, stringify, validate_shell_name

if TYPE_CHECKING:
    from agentdoc.core.ir.nodes import BlockNode, SpawnInput

    from .transformer import Transformer

logger = logging.getLogger(__name__)

TABLE_ALIGNMENTS = ("left", "center", "right")


# =============================================================================
# SpawnAgent
# =============================================================================


def check_input_contract(
    t: "Transformer",
    type_name: str,
    keys: List[str],
    scope: Scope,
    attrs: AttributeSet,
) -> None:
    """Fail when a literal input payload misses required fields of its declared type."""
    shape = t.resolver.resolve_type(type_name, scope.unit)
    if shape is None:
        logger.warning(
            "Cannot resolve input type %s for <SpawnAgent> at %s; skipping field validation",
            type_name,
            attrs.location(),
        )
        return
    missing = [name for name in shape.required if name not in keys]
    if missing:
        raise TypeContractViolationError(
            f"<SpawnAgent> input is missing required field(s) of {shape.name}: {', '.join(missing)}",
            type_name=shape.name,
            missing=missing,
            location=attrs.location("input"),
        )


def _spawn_input(t: "Transformer", attrs: AttributeSet, input_type: Optional[str], scope: Scope) -> "SpawnInput":
    value = attrs.value("input")
    if isinstance(value, ScriptVarRef):
        return value
    if not isinstance(value, dict):
        raise InvalidAttributeValueError(
            "<SpawnAgent> 'input' must be an object literal or a script variable",
            location=attrs.location("input"),
        )
    if input_type:
        check_input_contract(t, input_type, list(value), scope, attrs)
    properties: List[InputProperty] = []
    for name, raw in value.items():
        if raw is None:
            continue
        rendered = raw if isinstance(raw, ScriptVarRef) else stringify(raw, attrs.expr("input"))
        properties.append(InputProperty(name=name, value=rendered))
    return tuple(properties)


def _spawn_agent(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    attrs = t.attributes(element, scope)
    agent = attrs.string("agent", required=True)
    model = attrs.string("model", required=True)
    description = attrs.string("description", required=True)

    has_prompt = attrs.present("prompt")
    has_input = attrs.present("input")
    if has_prompt and has_input:
        raise MutuallyExclusiveAttributesError("SpawnAgent", ("prompt", "input"), location=element.location)
    if not has_prompt and not has_input:
        raise MissingRequiredAttributeError(
            "SpawnAgent",
            "prompt",
            message="<SpawnAgent> requires either 'prompt' or 'input'",
            location=element.location,
        )

    input_type = element.type_arguments[0] if element.type_arguments else None
    output_type = element.type_arguments[1] if len(element.type_arguments) > 1 else None

    prompt: Optional[str] = None
    payload: Optional["SpawnInput"] = None
    if has_prompt:
        prompt = attrs.string("prompt")
    else:
        payload = _spawn_input(t, attrs, input_type, scope)

    output = attrs.value("output")
    if output is not None and not isinstance(output, ScriptVarRef):
        raise InvalidAttributeValueError(
            "<SpawnAgent> 'output' must be a script variable", location=attrs.location("output")
        )

    extra = t.render_blocks(element.children, scope) or None
    logger.debug("SpawnAgent %s (model %s)", agent, model)
    return [
        SpawnAgent(
            agent=agent,
            model=model,
            description=description,
            prompt=prompt,
            input=payload,
            input_type=input_type,
            output_type=output_type,
            extra_instructions=extra,
            output=output,
        )
    ]


# =============================================================================
# ReadFile
# =============================================================================


def _read_file(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    attrs = t.attributes(element, scope)
    path = attrs.string("path", required=True)
    if "as" not in attrs:
        raise MissingRequiredAttributeError("ReadFile", "as", location=element.location)
    target = runtime_target(attrs, "as")
    if target is None:
        raise MissingRequiredAttributeError("ReadFile", "as", location=element.location)
    output = validate_shell_name(target.name, attrs.location("as"))
    return [ReadFile(path=path, output=output, optional=attrs.boolean("optional"))]


# =============================================================================
# Table
# =============================================================================


def _table(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    attrs = t.attributes(element, scope)
    headers = attrs.string_list("headers")

    raw_rows = attrs.value("rows") or []
    if not isinstance(raw_rows, list) or not all(isinstance(r, list) for r in raw_rows):
        raise InvalidAttributeValueError(
            "<Table> 'rows' must be an array of arrays", location=attrs.location("rows")
        )
    rows: Tuple[Tuple[str, ...], ...] = tuple(tuple(stringify(c) for c in row) for row in raw_rows)

    align = attrs.string_list("align")
    for entry in align:
        if entry not in TABLE_ALIGNMENTS:
            raise InvalidAttributeValueError(
                f"<Table> 'align' entries must be one of {', '.join(TABLE_ALIGNMENTS)}, got '{entry}'",
                location=attrs.location("align"),
            )

    if not headers and not rows:
        logger.debug("Skipping empty <Table> at %s", element.location)
        return []
    return [Table(headers=headers, rows=rows, align=align, empty_cell=attrs.string("emptyCell") or "")]


HANDLERS = {
    "SpawnAgent": _spawn_agent,
    "ReadFile": _read_file,
    "Table": _table,
}


__all__ = ["HANDLERS", "check_input_contract", "TABLE_ALIGNMENTS"]
