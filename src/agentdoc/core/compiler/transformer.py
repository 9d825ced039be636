"""Transformer: component tree to document IR.

Dispatch is table driven. Every tag in the registry must have a handler;
``Transformer`` refuses to build otherwise, which keeps the handler table
and the vocabulary in step. Composite components are expanded while the
children of an element are flattened, so handlers only ever see
registered tags.

Handlers take ``(transformer, element, scope)``. Block handlers return a
list of block nodes, inline handlers return one inline node.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from agentdoc.core.config import CompilerConfig
from agentdoc.core.exceptions import (
    InternalConsistencyError,
    InvalidAttributeValueError,
    InvalidIdentifierError,
    MissingRequiredAttributeError,
    UnsupportedBlockElementError,
    UnsupportedCompositionError,
    UnsupportedElementError,
    UnsupportedExpressionError,
    UnsupportedInlineElementError,
)
from agentdoc.core.ir import (
    Blockquote,
    Bold,
    CodeBlock,
    DocumentNode,
    FunctionRef,
    Heading,
    InlineCode,
    Italic,
    LineBreak,
    Link,
    ListItem,
    ListNode,
    Paragraph,
    RawMarkdown,
    ScriptVarRef,
    Text,
    ThematicBreak,
    XmlBlock,
)
from agentdoc.core.ir.nodes import BlockNode, InlineNode
from agentdoc.core.source.expressions import Expr, FunctionValue, JsxValue
from agentdoc.core.source.tree import ChildNode, Element, ExpressionContainer, JsxText, Location
from agentdoc.core.source.unit import ComponentDecl, SourceUnit
from agentdoc.core.utils.text import dedent_block, normalize_whitespace, trim_blank_lines

from . import control, document, orchestration
from .emitter import MarkdownEmitter
from .registry import ElementRegistry
from .resolver import ComponentResolver
from .scope import Scope, Slot
from .values import AttributeSet, evaluate, stringify

logger = logging.getLogger(__name__)

BlockHandler = Callable[["Transformer", Element, Scope], List[BlockNode]]
InlineHandler = Callable[["Transformer", Element, Scope], InlineNode]

XML_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")
BLOCK = "block"
INLINE = "inline"


@dataclass
class Piece:
    """One flattened child: a text run, a runtime reference or a registered element."""

    text: Optional[str] = None
    ref: Any = None
    element: Optional[Element] = None
    scope: Optional[Scope] = None

    @property
    def is_blank(self) -> bool:
        return self.text is not None and not self.text.strip()


def validate_xml_name(name: str, location: Optional[Location] = None) -> str:
    if not XML_NAME.match(name):
        raise InvalidIdentifierError(
            f"Invalid XML block name '{name}': names start with a letter or underscore "
            "and contain only letters, digits, '_', '-' and '.'",
            location=location,
            context={"name": name},
        )
    if name.lower().startswith("xml"):
        raise InvalidIdentifierError(
            f"Invalid XML block name '{name}': names may not start with 'xml'",
            location=location,
            context={"name": name},
        )
    return name


def _is_component_name(tag: str) -> bool:
    return tag[:1].isupper() or "." in tag


class Transformer:
    """Turns a component tree into a ``DocumentNode``."""

    def __init__(
        self,
        registry: Optional[ElementRegistry] = None,
        config: Optional[CompilerConfig] = None,
        resolver: Optional[ComponentResolver] = None,
    ) -> None:
        self.registry = registry or ElementRegistry.default()
        self.config = config or CompilerConfig()
        self.resolver = resolver or ComponentResolver(extensions=self.config.source_extensions)
        self.block_handlers: Dict[str, BlockHandler] = {
            **CONTENT_HANDLERS,
            **document.HANDLERS,
            **control.HANDLERS,
            **orchestration.HANDLERS,
        }
        self.inline_handlers: Dict[str, InlineHandler] = dict(INLINE_HANDLERS)
        self._check_handlers()

    def _check_handlers(self) -> None:
        missing = sorted(
            tag for tag in self.registry.all_tags
            if tag not in self.block_handlers and tag not in self.inline_handlers
        )
        if missing:
            raise InternalConsistencyError(f"No transform handler for registered tags: {missing}")
        inline_missing = sorted(self.registry.inline - set(self.inline_handlers))
        if inline_missing:
            raise InternalConsistencyError(f"Inline tags without an inline handler: {inline_missing}")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def transform(self, root: Element, unit: Optional[SourceUnit] = None) -> DocumentNode:
        """Transform ``root`` (owned by ``unit``) into one document."""
        owner = unit.owner(root) if unit is not None else None
        if unit is not None:
            unit = self.resolver.register(unit)
        scope = Scope(unit=unit, binder=self.resolver.binder_for(unit))
        if owner is not None:
            scope = scope.with_locals(owner.locals)
        element, scope = self._resolve_root(root, scope)
        if self.registry.is_document_root(element.tag):
            logger.debug("Transforming <%s> document", element.tag)
            return document.build(self, element, scope)
        return DocumentNode(body=tuple(self.blocks((element,), scope)))

    def _resolve_root(self, element: Element, scope: Scope) -> Tuple[Element, Scope]:
        """Unwrap composites and single-child fragments around the document element."""
        while True:
            if element.tag is None:
                significant = [c for c in element.children if not (isinstance(c, JsxText) and not c.raw.strip())]
                if len(significant) == 1 and isinstance(significant[0], Element):
                    element = significant[0]
                    continue
                return element, scope
            if self.registry.is_known(element.tag) or not _is_component_name(element.tag):
                return element, scope
            element, scope = self.expand(element, scope, BLOCK)

    # ------------------------------------------------------------------
    # Shared helpers for handlers
    # ------------------------------------------------------------------

    def attributes(self, element: Element, scope: Scope) -> AttributeSet:
        return AttributeSet.collect(element, scope, interpolation=self.config.interpolation)

    def evaluate(self, expr: Expr, scope: Scope) -> Any:
        return evaluate(expr, scope, interpolation=self.config.interpolation)

    def block(self, element: Element, scope: Scope) -> List[BlockNode]:
        handler = self.block_handlers.get(element.tag or "")
        if handler is None:
            raise UnsupportedBlockElementError(
                f"<{element.display_name}> cannot be used as a block", location=element.location
            )
        logger.debug("Block <%s>", element.tag)
        return list(handler(self, element, scope))

    def inline(self, element: Element, scope: Scope) -> InlineNode:
        handler = self.inline_handlers.get(element.tag or "")
        if handler is None or not self.registry.is_inline(element.tag):
            raise UnsupportedInlineElementError(
                f"<{element.display_name}> is a block element and cannot appear in inline content",
                location=element.location,
            )
        return handler(self, element, scope)

    def blocks(self, children: Sequence[ChildNode], scope: Scope) -> List[BlockNode]:
        """Block content: inline runs become paragraphs, ``If``/``Else`` pair up."""
        return self.blocks_from(self.flatten(children, scope, BLOCK))

    def blocks_from(self, pieces: Sequence[Piece]) -> List[BlockNode]:
        out: List[BlockNode] = []
        run: List[Piece] = []
        index = 0
        while index < len(pieces):
            piece = pieces[index]
            if piece.element is None or self.registry.is_inline(piece.element.tag):
                run.append(piece)
                index += 1
                continue
            self._flush_paragraph(run, out)
            if piece.element.tag == "If":
                after = self._next_significant(pieces, index + 1)
                alternate = pieces[after] if after is not None else None
                if alternate is not None and alternate.element is not None and alternate.element.tag == "Else":
                    out.extend(control.conditional(self, piece.element, piece.scope, alternate.element, alternate.scope))
                    index = after + 1
                    continue
                out.extend(control.conditional(self, piece.element, piece.scope))
            else:
                out.extend(self.block(piece.element, piece.scope))
            index += 1
        self._flush_paragraph(run, out)
        return out

    def _flush_paragraph(self, run: List[Piece], out: List[BlockNode]) -> None:
        if run:
            children = self.inline_nodes(run)
            if children:
                out.append(Paragraph(children))
            run.clear()

    @staticmethod
    def _next_significant(pieces: Sequence[Piece], start: int) -> Optional[int]:
        for index in range(start, len(pieces)):
            if not pieces[index].is_blank:
                return index
        return None

    def inlines(self, children: Sequence[ChildNode], scope: Scope) -> Tuple[InlineNode, ...]:
        return self.inline_nodes(self.flatten(children, scope, INLINE))

    def inline_nodes(self, pieces: Sequence[Piece]) -> Tuple[InlineNode, ...]:
        nodes: List[InlineNode] = []
        buffer: List[str] = []

        def flush_text() -> None:
            text = normalize_whitespace("".join(buffer))
            if text:
                nodes.append(Text(text))
            buffer.clear()

        for piece in pieces:
            if piece.text is not None:
                buffer.append(piece.text)
            elif piece.ref is not None:
                flush_text()
                nodes.append(piece.ref)
            elif piece.element is not None:
                flush_text()
                nodes.append(self.inline(piece.element, piece.scope))
        flush_text()
        return tuple(nodes)

    def raw_text(self, children: Sequence[ChildNode], scope: Scope, owner: str, context: str = BLOCK) -> str:
        """Concatenate text exactly as written; nested elements are rejected."""
        parts: List[str] = []
        for piece in self.flatten(children, scope, context):
            if piece.text is not None:
                parts.append(piece.text)
            elif piece.ref is not None:
                parts.append(str(piece.ref))
            elif piece.element is not None:
                error = UnsupportedInlineElementError if context == INLINE else UnsupportedBlockElementError
                raise error(
                    f"<{owner}> accepts only text, found <{piece.element.display_name}>",
                    location=piece.element.location,
                )
        return "".join(parts)

    def render_blocks(self, children: Sequence[ChildNode], scope: Scope) -> str:
        """Markdown text of block content (used for free-text instructions)."""
        return MarkdownEmitter().blocks(self.blocks(children, scope))

    # ------------------------------------------------------------------
    # Flattening and composites
    # ------------------------------------------------------------------

    def flatten(self, children: Sequence[ChildNode], scope: Scope, context: str) -> List[Piece]:
        pieces: List[Piece] = []
        for child in children:
            if isinstance(child, JsxText):
                pieces.append(Piece(text=child.raw))
            elif isinstance(child, ExpressionContainer):
                if child.expression is not None:
                    self._flatten_expression(child.expression, scope, context, pieces)
            elif isinstance(child, Element):
                self._flatten_element(child, scope, context, pieces)
        return pieces

    def _flatten_element(self, element: Element, scope: Scope, context: str, pieces: List[Piece]) -> None:
        tag = element.tag
        if tag is None:
            pieces.extend(self.flatten(element.children, scope, context))
        elif self.registry.is_known(tag):
            pieces.append(Piece(element=element, scope=scope))
        elif _is_component_name(tag):
            body, inner = self.expand(element, scope, context)
            pieces.extend(self.flatten((body,), inner, context))
        else:
            raise self._unknown(element, context)

    def _flatten_expression(self, expr: Expr, scope: Scope, context: str, pieces: List[Piece]) -> None:
        if isinstance(expr, JsxValue) and expr.element is not None:
            self._flatten_element(expr.element, scope, context, pieces)
            return
        if isinstance(expr, FunctionValue):
            if expr.body is None:
                raise UnsupportedExpressionError(
                    f"Unsupported expression `{expr.text}`: inline functions must return JSX",
                    location=expr.location,
                )
            logger.debug("Expanding inline function at %s", expr.location)
            self._flatten_element(expr.body, scope.with_locals(expr.locals), context, pieces)
            return
        self._append_value(self.evaluate(expr, scope), expr, context, pieces)

    def _append_value(self, value: Any, expr: Expr, context: str, pieces: List[Piece]) -> None:
        if isinstance(value, Slot):
            pieces.extend(self.flatten(value.children, value.scope, context))
        elif value is None or isinstance(value, bool):
            return
        elif isinstance(value, (ScriptVarRef, FunctionRef)):
            pieces.append(Piece(ref=value))
        elif isinstance(value, list):
            for item in value:
                self._append_value(item, expr, context, pieces)
        else:
            pieces.append(Piece(text=stringify(value, expr)))

    def _unknown(self, element: Element, context: str) -> UnsupportedElementError:
        error = UnsupportedInlineElementError if context == INLINE else UnsupportedBlockElementError
        return error(
            f"Unknown element <{element.display_name}>",
            location=element.location,
            context={"element": element.display_name},
        )

    def expand(self, element: Element, scope: Scope, context: str) -> Tuple[Element, Scope]:
        """Expand a composite call site into its body and the scope to transform it in."""
        tag = element.display_name
        resolved = self.resolver.lookup(tag, scope.unit, location=element.location)
        if resolved is None:
            raise self._unknown(element, context)
        chain = self.resolver.enter(scope.chain, resolved.identity, location=element.location)
        props = self._props(element, scope)
        unit = resolved.unit
        binder = self.resolver.binder_for(unit)
        module = Scope(unit=unit, binder=binder, chain=chain)
        local = self._bind_params(resolved.decl, props, module)
        logger.debug("Expanding <%s> from %s", tag, unit.display_path)
        body_scope = Scope(unit=unit, binder=binder, props=local, chain=chain)
        return resolved.decl.body, body_scope.with_locals(resolved.decl.locals)

    def _props(self, element: Element, scope: Scope) -> Dict[str, Any]:
        props: Dict[str, Any] = {}
        attrs = self.attributes(element, scope)
        for name, attr in attrs.items():
            if isinstance(attr.expr, JsxValue):
                raise UnsupportedCompositionError(
                    f"Prop '{name}' of <{element.display_name}> is JSX; pass content as children instead",
                    location=attr.location,
                )
            try:
                props[name] = attr.evaluate(self.config.interpolation)
            except UnsupportedExpressionError as exc:
                raise UnsupportedCompositionError(
                    f"Prop '{name}' of <{element.display_name}> must be a static value: {exc.detail}",
                    location=attr.location,
                ) from exc
        if any(not (isinstance(c, JsxText) and not c.raw.strip()) for c in element.children):
            props["children"] = Slot(element.children, scope)
        return props

    def _bind_params(self, decl: ComponentDecl, props: Dict[str, Any], module: Scope) -> Dict[str, Any]:
        params = decl.params
        local: Dict[str, Any] = {}
        if params.name:
            local[params.name] = props
        bound = set()
        for name, binding in params.bindings:
            value = props.get(binding.prop)
            if value is None and binding.default is not None:
                value = self.evaluate(binding.default, module)
            local[name] = value
            bound.add(binding.prop)
        if params.rest:
            local[params.rest] = {k: v for k, v in props.items() if k not in bound}
        return local


# =============================================================================
# Content primitive handlers
# =============================================================================


def _heading(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    level = int(element.tag[1])
    return [Heading(level, t.inlines(element.children, scope))]


def _paragraph(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    children = t.inlines(element.children, scope)
    return [Paragraph(children)] if children else []


def _thematic_break(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    return [ThematicBreak()]


def _list(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    ordered = element.tag == "ol"
    items: List[ListItem] = []
    for piece in t.flatten(element.children, scope, BLOCK):
        if piece.is_blank:
            continue
        if piece.element is None or piece.element.tag != "li":
            found = f"<{piece.element.display_name}>" if piece.element is not None else "text"
            raise UnsupportedBlockElementError(
                f"<{element.tag}> accepts only <li> children, found {found}",
                location=piece.element.location if piece.element is not None else element.location,
            )
        items.append(ListItem(tuple(t.blocks(piece.element.children, piece.scope))))
    start = 1
    if ordered:
        attrs = t.attributes(element, scope)
        value = attrs.integer("start")
        if value is not None:
            if value < 0:
                raise InvalidAttributeValueError(
                    f"<ol> 'start' must not be negative, got {value}", location=attrs.location("start")
                )
            start = value
    return [ListNode(ordered=ordered, items=tuple(items), start=start)]


def _list_item(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    raise UnsupportedBlockElementError("<li> must be a direct child of <ul> or <ol>", location=element.location)


def _blockquote(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    return [Blockquote(tuple(t.blocks(element.children, scope)))]


def _language(attrs: AttributeSet) -> Optional[str]:
    for name in ("className", "class"):
        value = attrs.value(name)
        if isinstance(value, str):
            for token in value.split():
                if token.startswith("language-") and len(token) > len("language-"):
                    return token[len("language-"):]
    language = attrs.value("language")
    return language if isinstance(language, str) and language else None


def _code_block(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    language = _language(t.attributes(element, scope))
    significant = [c for c in element.children if not (isinstance(c, JsxText) and not c.raw.strip())]
    if len(significant) == 1 and isinstance(significant[0], Element) and significant[0].tag == "code":
        inner = significant[0]
        language = _language(t.attributes(inner, scope)) or language
        content = t.raw_text(inner.children, scope, "code")
    else:
        content = t.raw_text(element.children, scope, "pre")
    return [CodeBlock(trim_blank_lines(content), language)]


def _xml_block(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    attrs = t.attributes(element, scope)
    if element.tag == "XmlBlock":
        name = attrs.string("name", required=True)
    else:
        name = attrs.string("name") or element.tag
    validate_xml_name(name, attrs.location("name"))
    attributes: List[Tuple[str, str]] = []
    for key, attr in attrs.items():
        if key == "name":
            continue
        value = attr.evaluate(t.config.interpolation)
        if value is None or value is False:
            continue
        attributes.append((key, stringify(value, attr.expr)))
    return [XmlBlock(name=name, children=tuple(t.blocks(element.children, scope)), attributes=tuple(attributes))]


def _markdown(t: Transformer, element: Element, scope: Scope) -> List[BlockNode]:
    content = dedent_block(t.raw_text(element.children, scope, "Markdown"))
    return [RawMarkdown(content)] if content else []


CONTENT_HANDLERS: Dict[str, BlockHandler] = {
    **{f"h{level}": _heading for level in range(1, 7)},
    "p": _paragraph,
    "hr": _thematic_break,
    "ul": _list,
    "ol": _list,
    "li": _list_item,
    "blockquote": _blockquote,
    "pre": _code_block,
    "div": _xml_block,
    "XmlBlock": _xml_block,
    "Markdown": _markdown,
}


# =============================================================================
# Inline handlers
# =============================================================================


def _bold(t: Transformer, element: Element, scope: Scope) -> InlineNode:
    return Bold(t.inlines(element.children, scope))


def _italic(t: Transformer, element: Element, scope: Scope) -> InlineNode:
    return Italic(t.inlines(element.children, scope))


def _inline_code(t: Transformer, element: Element, scope: Scope) -> InlineNode:
    return InlineCode(t.raw_text(element.children, scope, "code", INLINE))


def _link(t: Transformer, element: Element, scope: Scope) -> InlineNode:
    attrs = t.attributes(element, scope)
    url = attrs.string("href") or attrs.string("url")
    if not url:
        raise MissingRequiredAttributeError("a", "href", location=element.location)
    return Link(url, t.inlines(element.children, scope))


def _line_break(t: Transformer, element: Element, scope: Scope) -> InlineNode:
    return LineBreak()


INLINE_HANDLERS: Dict[str, InlineHandler] = {
    "b": _bold,
    "strong": _bold,
    "i": _italic,
    "em": _italic,
    "code": _inline_code,
    "a": _link,
    "br": _line_break,
}


__all__ = [
    "Transformer",
    "Piece",
    "CONTENT_HANDLERS",
    "INLINE_HANDLERS",
    "validate_xml_name",
    "BLOCK",
    "INLINE",
]
