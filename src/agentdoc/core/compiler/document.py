"""Document roots: ``<Command>`` and ``<Agent>``.

A root element becomes the frontmatter of the compiled document; its
children become the body. Attributes outside the known frontmatter keys are
kept as custom fields (kebab-cased), except ``folder`` which is metadata for
the build step and never emitted.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from agentdoc.core.exceptions import InvalidAttributeValueError, UnsupportedBlockElementError
from agentdoc.core.ir import (
    RETURN_STATUSES,
    AgentFrontmatter,
    Bold,
    CodeBlock,
    CommandFrontmatter,
    DocumentNode,
    FunctionRef,
    Heading,
    ListItem,
    ListNode,
    Paragraph,
    ScriptVarRef,
    Text,
    XmlBlock,
)
from agentdoc.core.source.tree import Element
from agentdoc.core.utils.text import to_kebab_case

from .resolver import TypeShape
from .scope import Scope
from .values import AttributeSet

if TYPE_CHECKING:
    from agentdoc.core.ir.nodes import BlockNode

    from .transformer import Transformer

logger = logging.getLogger(__name__)

COMMAND_KEYS = ("name", "description", "argumentHint", "agent", "model", "allowedTools", "folder")
AGENT_KEYS = ("name", "description", "tools", "color", "model", "folder")

STATUS_DESCRIPTIONS = {
    "SUCCESS": "Task completed successfully",
    "BLOCKED": "Cannot proceed, needs external input",
    "NOT_FOUND": "Requested resource not found",
    "ERROR": "Execution error occurred",
    "CHECKPOINT": "Milestone reached, pausing for verification",
}


def _frontmatter_value(value: Any) -> Any:
    if isinstance(value, (ScriptVarRef, FunctionRef)):
        return str(value)
    if isinstance(value, list):
        return [_frontmatter_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _frontmatter_value(v) for k, v in value.items()}
    return value


def _custom_fields(attrs: AttributeSet, known: Tuple[str, ...]) -> Tuple[Tuple[str, Any], ...]:
    extra: List[Tuple[str, Any]] = []
    for name, attr in attrs.items():
        if name in known:
            continue
        value = attr.evaluate(attrs.interpolation)
        if value is None:
            continue
        value = _frontmatter_value(value)
        extra.append((to_kebab_case(name), tuple(value) if isinstance(value, list) else value))
    return tuple(extra)


def _metadata(attrs: AttributeSet) -> Tuple[Tuple[str, str], ...]:
    folder = attrs.string("folder")
    return (("folder", folder),) if folder else ()


def command_frontmatter(attrs: AttributeSet) -> CommandFrontmatter:
    return CommandFrontmatter(
        name=attrs.string("name", required=True),
        description=attrs.string("description", required=True),
        argument_hint=attrs.string("argumentHint"),
        agent=attrs.string("agent"),
        model=attrs.string("model"),
        allowed_tools=attrs.string_list("allowedTools"),
        extra=_custom_fields(attrs, COMMAND_KEYS),
    )


def agent_frontmatter(attrs: AttributeSet, element: Element) -> AgentFrontmatter:
    tools = attrs.value("tools")
    if isinstance(tools, list):
        tools = ", ".join(str(t) for t in tools)
    elif tools is not None and not isinstance(tools, str):
        raise InvalidAttributeValueError(
            "<Agent> 'tools' must be a string or an array of strings", location=attrs.location("tools")
        )
    type_args = element.type_arguments
    return AgentFrontmatter(
        name=attrs.string("name", required=True),
        description=attrs.string("description", required=True),
        tools=tools or None,
        color=attrs.string("color"),
        model=attrs.string("model"),
        input_type=type_args[0] if type_args else None,
        output_type=type_args[1] if len(type_args) > 1 else None,
        extra=_custom_fields(attrs, AGENT_KEYS),
    )


# =============================================================================
# Structured returns
# =============================================================================


def type_hint(type_text: str) -> str:
    """Placeholder value for a field in the YAML return template."""
    text = type_text.strip()
    if text == "string":
        return '"..."'
    if text == "number":
        return "0"
    if text == "boolean":
        return "true | false"
    if text.endswith("[]") or text.startswith("Array<"):
        return "[...]"
    members = [m.strip() for m in text.split("|")]
    if len(members) > 1 and all(m[:1] in ("'", '"') for m in members):
        return " | ".join(m.strip("'\"") for m in members)
    return "<" + text.replace("'", "").replace('"', "") + ">"


def structured_returns(shape: TypeShape) -> XmlBlock:
    """``<structured_returns>`` section describing the YAML an agent returns."""
    lines = ["status: " + " | ".join(RETURN_STATUSES)]
    if shape.field("message") is not None:
        lines.append('message: "Human-readable status message"')
    for prop in shape.properties:
        if prop.name in ("status", "message"):
            continue
        optional = "" if prop.required else "  # optional"
        lines.append(f"{prop.name}: {type_hint(prop.type_text)}{optional}")

    statuses = tuple(
        ListItem((Paragraph((Bold((Text(code),)), Text(f": {STATUS_DESCRIPTIONS[code]}"))),))
        for code in RETURN_STATUSES
    )
    return XmlBlock(
        name="structured_returns",
        children=(
            Heading(2, (Text("Output Format"),)),
            Paragraph((Text("Return a YAML code block with the following structure:"),)),
            CodeBlock("\n".join(lines), "yaml"),
            Heading(3, (Text("Status Codes"),)),
            ListNode(ordered=False, items=statuses),
        ),
    )


def _output_contract(t: "Transformer", frontmatter: AgentFrontmatter, scope: Scope) -> Optional[XmlBlock]:
    if not frontmatter.output_type:
        return None
    shape = t.resolver.resolve_type(frontmatter.output_type, scope.unit)
    if shape is None:
        logger.warning(
            "Cannot resolve output type %s of agent %s; no structured_returns section emitted",
            frontmatter.output_type,
            frontmatter.name,
        )
        return None
    if not shape.properties:
        return None
    return structured_returns(shape)


# =============================================================================
# Entry points
# =============================================================================


def build(t: "Transformer", element: Element, scope: Scope) -> DocumentNode:
    """Compile a root ``<Command>`` or ``<Agent>`` element."""
    attrs = t.attributes(element, scope)
    body: List["BlockNode"] = []
    if element.tag == "Agent":
        frontmatter = agent_frontmatter(attrs, element)
        body.extend(t.blocks(element.children, scope))
        contract = _output_contract(t, frontmatter, scope)
        if contract is not None:
            body.append(contract)
    else:
        frontmatter = command_frontmatter(attrs)
        body.extend(t.blocks(element.children, scope))
    return DocumentNode(frontmatter=frontmatter, body=tuple(body), metadata=_metadata(attrs))


def _nested_root(t: "Transformer", element: Element, scope: Scope) -> List["BlockNode"]:
    raise UnsupportedBlockElementError(
        f"<{element.tag}> must be the document root", location=element.location
    )


HANDLERS = {
    "Command": _nested_root,
    "Agent": _nested_root,
}


__all__ = [
    "HANDLERS",
    "build",
    "command_frontmatter",
    "agent_frontmatter",
    "structured_returns",
    "type_hint",
]
