"""Convert tree-sitter syntax nodes into the neutral component-tree model.

Text between JSX children is taken from the source bytes between sibling
nodes rather than from ``jsx_text`` tokens, so whitespace and newlines are
preserved exactly as authored.
"""
from __future__ import annotations

import bisect
import html
import logging
import re
from typing import List, Optional, Tuple

from tree_sitter import Node

from .expressions import (
    ArrayLiteral,
    BinaryOp,
    Call,
    Expr,
    FunctionValue,
    Identifier,
    JsxValue,
    Literal,
    MemberAccess,
    ObjectEntry,
    ObjectLiteral,
    Opaque,
    Parenthesized,
    SpreadElement,
    TemplateLiteral,
    UnaryOp,
)
from .tree import (
    Attribute,
    AttributeLike,
    ChildNode,
    Element,
    ExpressionContainer,
    JsxText,
    Location,
    SpreadAttribute,
)

logger = logging.getLogger(__name__)

JSX_ELEMENT_TYPES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
JSX_CHILD_TYPES = JSX_ELEMENT_TYPES | {"jsx_expression"}
TRANSPARENT_TYPES = frozenset({
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "type_assertion",
})
FUNCTION_TYPES = frozenset({"arrow_function", "function_expression", "function"})

_JS_ESCAPE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\n": "",
    "\r\n": "",
}


def unescape_js(raw: str) -> str:
    """Decode JavaScript string escape sequences."""

    def _replace(match: re.Match[str]) -> str:
        seq = match.group(1)
        if seq.startswith("u{"):
            return chr(int(seq[2:-1], 16))
        if seq.startswith("u") and len(seq) == 5:
            return chr(int(seq[1:], 16))
        if seq.startswith("x") and len(seq) == 3:
            return chr(int(seq[1:], 16))
        return _SIMPLE_ESCAPES.get(seq, seq)

    return _JS_ESCAPE.sub(_replace, raw)


def named(node: Node) -> List[Node]:
    """Named children without comments."""
    return [c for c in node.named_children if c.type != "comment"]


def first_named(node: Node, *types: str) -> Optional[Node]:
    for child in named(node):
        if not types or child.type in types:
            return child
    return None


def unwrap(node: Optional[Node]) -> Optional[Node]:
    """Strip parentheses and type-only wrappers (``x as const``, ``x!``)."""
    while node is not None and (node.type == "parenthesized_expression" or node.type in TRANSPARENT_TYPES):
        node = first_named(node)
    return node


class TreeBuilder:
    """Builds elements and expressions from one parsed source buffer."""

    def __init__(self, source: bytes, path: Optional[str] = None) -> None:
        self.source = source
        self.path = path
        self._line_starts = [0]
        for index, byte in enumerate(source):
            if byte == 0x0A:
                self._line_starts.append(index + 1)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def text(self, node: Node) -> str:
        return self.slice(node.start_byte, node.end_byte)

    def slice(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8", errors="replace")

    def location_at(self, offset: int) -> Location:
        line = bisect.bisect_right(self._line_starts, offset) - 1
        column = len(self.source[self._line_starts[line]:offset].decode("utf-8", errors="replace"))
        return Location(self.path, line + 1, column + 1)

    def location(self, node: Node) -> Location:
        return self.location_at(node.start_byte)

    def string_value(self, node: Node) -> str:
        """Value of a quoted string literal, escapes decoded."""
        raw = self.text(node)
        return unescape_js(raw[1:-1]) if len(raw) >= 2 else ""

    # ------------------------------------------------------------------
    # JSX
    # ------------------------------------------------------------------

    def element(self, node: Node) -> Element:
        if node.type == "jsx_self_closing_element":
            opening, closing = node, None
        else:
            opening = node.child_by_field_name("open_tag") or first_named(node, "jsx_opening_element")
            closing = node.child_by_field_name("close_tag") or _last_of(node, "jsx_closing_element")

        tag: Optional[str] = None
        attributes: List[AttributeLike] = []
        type_arguments: Tuple[str, ...] = ()
        if opening is not None:
            name_node = opening.child_by_field_name("name")
            if name_node is not None:
                tag = self.text(name_node)
            for child in named(opening):
                if child.type == "jsx_attribute":
                    attributes.append(self.attribute(child))
                elif child.type == "jsx_expression":
                    attributes.append(self.spread_attribute(child))
                elif child.type == "type_arguments":
                    type_arguments = tuple(self.text(t) for t in named(child))

        children: Tuple[ChildNode, ...] = ()
        if node.type == "jsx_fragment":
            start, end = _fragment_bounds(node)
            children = self.children(node, start, end)
        elif node.type != "jsx_self_closing_element":
            start = opening.end_byte if opening is not None else node.start_byte
            end = closing.start_byte if closing is not None else node.end_byte
            children = self.children(node, start, end)

        return Element(
            tag=tag,
            attributes=tuple(attributes),
            children=children,
            type_arguments=type_arguments,
            location=self.location(node),
        )

    def children(self, node: Node, start: int, end: int) -> Tuple[ChildNode, ...]:
        result: List[ChildNode] = []
        cursor = start
        for child in node.children:
            if child.type not in JSX_CHILD_TYPES or child.start_byte < start or child.end_byte > end:
                continue
            if child.start_byte > cursor:
                result.append(self._jsx_text(cursor, child.start_byte))
            if child.type == "jsx_expression":
                result.append(self.expression_container(child))
            else:
                result.append(self.element(child))
            cursor = child.end_byte
        if end > cursor:
            result.append(self._jsx_text(cursor, end))
        return tuple(result)

    def _jsx_text(self, start: int, end: int) -> JsxText:
        return JsxText(raw=html.unescape(self.slice(start, end)), location=self.location_at(start))

    def expression_container(self, node: Node) -> ExpressionContainer:
        inner = first_named(node)
        expression = self.expression(inner) if inner is not None else None
        return ExpressionContainer(expression=expression, location=self.location(node))

    def attribute(self, node: Node) -> Attribute:
        parts = named(node)
        name = self.text(parts[0]) if parts else ""
        value: Optional[Expr] = None
        if len(parts) > 1:
            raw = parts[1]
            if raw.type == "string":
                # JSX attribute strings carry no escape sequences, only entities.
                value = Literal(text=self.text(raw), location=self.location(raw),
                                value=html.unescape(self.text(raw)[1:-1]))
            elif raw.type == "jsx_expression":
                inner = first_named(raw)
                value = self.expression(inner) if inner is not None else None
            else:
                value = self.expression(raw)
        return Attribute(name=name, value=value, location=self.location(node))

    def spread_attribute(self, node: Node) -> SpreadAttribute:
        inner = first_named(node)
        if inner is not None and inner.type == "spread_element":
            inner = first_named(inner)
        expression = self.expression(inner) if inner is not None else Opaque(text=self.text(node))
        return SpreadAttribute(expression=expression, location=self.location(node))

    # ------------------------------------------------------------------
    # Function bodies
    # ------------------------------------------------------------------

    def function_body(self, fn: Node) -> Tuple[Optional[Element], Tuple[Tuple[str, Expr], ...]]:
        """The JSX a function returns and the local bindings declared before it.

        Only ``const``/``let``/``var`` declarations preceding the first
        ``return`` are kept; other statements are ignored.
        """
        body = fn.child_by_field_name("body")
        if body is None:
            return None, ()
        if body.type != "statement_block":
            value = unwrap(body)
            if value is not None and value.type in JSX_ELEMENT_TYPES:
                return self.element(value), ()
            return None, ()
        bindings: List[Tuple[str, Expr]] = []
        for stmt in named(body):
            if stmt.type in ("lexical_declaration", "variable_declaration"):
                bindings.extend(self.declarators(stmt))
            elif stmt.type == "return_statement":
                value = unwrap(first_named(stmt))
                if value is not None and value.type in JSX_ELEMENT_TYPES:
                    return self.element(value), tuple(bindings)
                break
        return None, tuple(bindings)

    def declarators(self, stmt: Node) -> List[Tuple[str, Expr]]:
        """``(name, initialiser)`` pairs of a declaration; destructuring is skipped."""
        pairs: List[Tuple[str, Expr]] = []
        for declarator in named(stmt):
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name_node is None or name_node.type != "identifier" or value is None:
                continue
            pairs.append((self.text(name_node), self.expression(value)))
        return pairs

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def expression(self, node: Node) -> Expr:
        kind = node.type
        text = self.text(node)
        loc = self.location(node)

        if kind in TRANSPARENT_TYPES:
            inner = first_named(node)
            return self.expression(inner) if inner is not None else Opaque(text=text, location=loc, syntax=kind)
        if kind == "string":
            return Literal(text=text, location=loc, value=self.string_value(node))
        if kind == "template_string":
            return self.template(node)
        if kind == "number":
            return Literal(text=text, location=loc, value=_number(text))
        if kind in ("true", "false"):
            return Literal(text=text, location=loc, value=kind == "true")
        if kind in ("null", "undefined"):
            return Literal(text=text, location=loc, value=None)
        if kind in ("identifier", "shorthand_property_identifier", "property_identifier"):
            if text == "undefined":
                return Literal(text=text, location=loc, value=None)
            return Identifier(text=text, location=loc, name=text)
        if kind == "member_expression":
            target = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            if target is None or prop is None:
                return Opaque(text=text, location=loc, syntax=kind)
            return MemberAccess(text=text, location=loc, target=self.expression(target), member=self.text(prop))
        if kind == "subscript_expression":
            target = node.child_by_field_name("object")
            index = unwrap(node.child_by_field_name("index"))
            if target is not None and index is not None and index.type in ("string", "number"):
                key = self.string_value(index) if index.type == "string" else self.text(index)
                return MemberAccess(text=text, location=loc, target=self.expression(target), member=key)
            return Opaque(text=text, location=loc, syntax=kind)
        if kind == "parenthesized_expression":
            inner = first_named(node)
            if inner is None:
                return Opaque(text=text, location=loc, syntax=kind)
            return Parenthesized(text=text, location=loc, inner=self.expression(inner))
        if kind == "array":
            return ArrayLiteral(text=text, location=loc, items=tuple(self.expression(c) for c in named(node)))
        if kind == "spread_element":
            inner = first_named(node)
            return SpreadElement(text=text, location=loc, argument=self.expression(inner) if inner else None)
        if kind == "object":
            return ObjectLiteral(text=text, location=loc, entries=tuple(self._object_entries(node)))
        if kind == "unary_expression":
            operator = node.child_by_field_name("operator")
            argument = node.child_by_field_name("argument")
            if operator is None or argument is None:
                return Opaque(text=text, location=loc, syntax=kind)
            return UnaryOp(text=text, location=loc, operator=self.text(operator), operand=self.expression(argument))
        if kind == "binary_expression":
            left = node.child_by_field_name("left")
            operator = node.child_by_field_name("operator")
            right = node.child_by_field_name("right")
            if left is None or operator is None or right is None:
                return Opaque(text=text, location=loc, syntax=kind)
            return BinaryOp(
                text=text,
                location=loc,
                operator=self.text(operator),
                left=self.expression(left),
                right=self.expression(right),
            )
        if kind == "call_expression":
            callee = node.child_by_field_name("function")
            arguments = node.child_by_field_name("arguments")
            type_args = node.child_by_field_name("type_arguments")
            if callee is None:
                return Opaque(text=text, location=loc, syntax=kind)
            return Call(
                text=text,
                location=loc,
                callee=self.expression(callee),
                args=tuple(self.expression(a) for a in named(arguments)) if arguments is not None else (),
                type_arguments=tuple(self.text(t) for t in named(type_args)) if type_args is not None else (),
            )
        if kind in JSX_ELEMENT_TYPES:
            return JsxValue(text=text, location=loc, element=self.element(node))
        if kind in FUNCTION_TYPES:
            body, bindings = self.function_body(node)
            return FunctionValue(text=text, location=loc, body=body, locals=bindings)
        return Opaque(text=text, location=loc, syntax=kind)

    def template(self, node: Node) -> TemplateLiteral:
        parts: List[object] = []
        cursor = node.start_byte + 1
        end = node.end_byte - 1
        for child in node.children:
            if child.type != "template_substitution":
                continue
            if child.start_byte > cursor:
                parts.append(unescape_js(self.slice(cursor, child.start_byte)))
            inner = first_named(child)
            parts.append(self.expression(inner) if inner is not None else Opaque(text=self.text(child)))
            cursor = child.end_byte
        if end > cursor:
            parts.append(unescape_js(self.slice(cursor, end)))
        return TemplateLiteral(text=self.text(node), location=self.location(node), parts=tuple(parts))

    def _object_entries(self, node: Node) -> List[ObjectEntry]:
        entries: List[ObjectEntry] = []
        for member in named(node):
            if member.type == "pair":
                key_node = member.child_by_field_name("key")
                value_node = member.child_by_field_name("value")
                if key_node is None or value_node is None:
                    continue
                entries.append(ObjectEntry(key=self._property_key(key_node), value=self.expression(value_node)))
            elif member.type == "shorthand_property_identifier":
                name = self.text(member)
                entries.append(ObjectEntry(key=name, value=Identifier(text=name, location=self.location(member), name=name)))
            elif member.type == "spread_element":
                inner = first_named(member)
                if inner is not None:
                    entries.append(ObjectEntry(key=None, value=self.expression(inner), spread=True))
            else:
                entries.append(ObjectEntry(key=None, value=Opaque(text=self.text(member), syntax=member.type)))
        return entries

    def _property_key(self, node: Node) -> Optional[str]:
        if node.type == "string":
            return self.string_value(node)
        if node.type == "computed_property_name":
            return None
        return self.text(node)


def _number(text: str) -> int | float:
    cleaned = text.replace("_", "")
    try:
        return int(cleaned, 0)
    except ValueError:
        return float(cleaned)


def _fragment_bounds(node: Node) -> Tuple[int, int]:
    """Byte range between ``<>`` and ``</>`` of a fragment node."""
    tokens = [c for c in node.children if not c.is_named]
    opens = [c for c in tokens if c.type == ">"]
    closes = [c for c in tokens if c.type == "<"]
    start = opens[0].end_byte if opens else node.start_byte
    end = closes[-1].start_byte if len(closes) > 1 else node.end_byte
    return start, end


def _last_of(node: Node, node_type: str) -> Optional[Node]:
    found = None
    for child in node.children:
        if child.type == node_type:
            found = child
    return found


__all__ = ["TreeBuilder", "unescape_js", "unwrap", "named", "first_named", "JSX_ELEMENT_TYPES", "FUNCTION_TYPES"]
