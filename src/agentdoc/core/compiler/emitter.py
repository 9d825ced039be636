"""Markdown Emitter.

Walks the IR depth-first and serialises it to one Markdown string:
frontmatter first, then body blocks separated by exactly one blank line.
Orchestration nodes become bolded instruction lines for the downstream
interpreter.
"""
from __future__ import annotations

import html
import logging
import re
from typing import Dict, List, Sequence

from agentdoc.core.exceptions import InternalConsistencyError
from agentdoc.core.ir import nodes as ir
from agentdoc.core.ir.runtime import FunctionRef, ScriptVarRef
from agentdoc.core.utils.text import format_frontmatter

logger = logging.getLogger(__name__)

FORMATTING_KINDS = frozenset({"bold", "italic", "inline_code", "link", "script_var_ref", "function_ref"})

_NO_SPACE_BEFORE = re.compile(r"^[\s.,;:!?)}\]>]")
_NO_SPACE_AFTER = re.compile(r"[\s(\[]$")
_BACKTICK_RUN = re.compile(r"`+")
_SHELL_QUOTE_NEEDED = re.compile(r"[\s\"]")

ALIGN_SEPARATORS = {"left": ":---", "center": ":---:", "right": "---:"}

ASK_USER_TOOL = "AskUserQuestion"


def fence_for(content: str, minimum: int = 3) -> str:
    """Backtick fence longer than any backtick run inside ``content``."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(content)), default=0)
    return "`" * max(minimum, longest + 1)


def indent_lines(text: str, pad: str) -> str:
    return "\n".join(pad + line if line else line for line in text.split("\n"))


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class MarkdownEmitter:
    """Serialise a ``DocumentNode`` to Markdown."""

    # Text for <br>; headings are single-line and use an HTML break instead.
    line_break = "\n"

    BLOCK_METHODS: Dict[str, str] = {
        "heading": "_heading",
        "paragraph": "_paragraph",
        "list": "_list",
        "list_item": "_orphan_list_item",
        "blockquote": "_blockquote",
        "code_block": "_code_block",
        "thematic_break": "_thematic_break",
        "xml_block": "_xml_block",
        "raw": "_raw",
        "table": "_table",
        "conditional": "_conditional",
        "loop": "_loop",
        "break": "_break",
        "return": "_return",
        "ask_user": "_ask_user",
        "spawn_agent": "_spawn_agent",
        "read_file": "_read_file",
    }

    INLINE_METHODS: Dict[str, str] = {
        "text": "_text",
        "bold": "_bold",
        "italic": "_italic",
        "inline_code": "_inline_code",
        "link": "_link",
        "line_break": "_line_break",
        "script_var_ref": "_runtime_ref",
        "function_ref": "_runtime_ref",
    }

    def emit(self, document: ir.DocumentNode) -> str:
        parts: List[str] = []
        if document.frontmatter is not None:
            parts.append(format_frontmatter(document.frontmatter.to_mapping()).rstrip("\n"))
        body = self.blocks(document.body)
        if body:
            parts.append(body)
        if not parts:
            return ""
        return "\n\n".join(parts) + "\n"

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def blocks(self, nodes: Sequence[object]) -> str:
        rendered = (self.block(node) for node in nodes)
        return "\n\n".join(text for text in rendered if text)

    def block(self, node: object) -> str:
        method = self.BLOCK_METHODS.get(getattr(node, "kind", ""))
        if method is None:
            raise InternalConsistencyError(
                f"Emitter cannot render node kind {getattr(node, 'kind', type(node).__name__)!r}",
                context={"kind": getattr(node, "kind", None)},
            )
        return getattr(self, method)(node)

    def inline(self, node: object) -> str:
        method = self.INLINE_METHODS.get(getattr(node, "kind", ""))
        if method is None:
            raise InternalConsistencyError(
                f"Emitter cannot render inline node kind {getattr(node, 'kind', type(node).__name__)!r}",
                context={"kind": getattr(node, "kind", None)},
            )
        return getattr(self, method)(node)

    def inlines(self, nodes: Sequence[object]) -> str:
        out: List[str] = []
        prev_node = None
        for node in nodes:
            text = self.inline(node)
            if prev_node is not None and out and self._needs_space(prev_node, node, out[-1], text):
                out.append(" ")
            out.append(text)
            prev_node = node
        return "".join(out)

    @staticmethod
    def _needs_space(prev: object, curr: object, prev_text: str, curr_text: str) -> bool:
        if not prev_text or not curr_text:
            return False
        if _NO_SPACE_AFTER.search(prev_text) or _NO_SPACE_BEFORE.search(curr_text):
            return False
        prev_kind = getattr(prev, "kind", "")
        curr_kind = getattr(curr, "kind", "")
        if prev_kind == "line_break" or curr_kind == "line_break":
            return False
        prev_fmt = prev_kind in FORMATTING_KINDS
        curr_fmt = curr_kind in FORMATTING_KINDS
        return (prev_fmt and curr_kind == "text") or (prev_kind == "text" and curr_fmt) or (prev_fmt and curr_fmt)

    # ------------------------------------------------------------------
    # Inline
    # ------------------------------------------------------------------

    def _text(self, node: ir.Text) -> str:
        return node.value

    def _bold(self, node: ir.Bold) -> str:
        return f"**{self.inlines(node.children)}**"

    def _italic(self, node: ir.Italic) -> str:
        return f"*{self.inlines(node.children)}*"

    def _inline_code(self, node: ir.InlineCode) -> str:
        value = node.value
        if "`" not in value:
            return f"`{value}`"
        fence = fence_for(value, minimum=1)
        return f"{fence} {value} {fence}"

    def _link(self, node: ir.Link) -> str:
        label = self.inlines(node.children) or node.url
        return f"[{label}]({node.url})"

    def _line_break(self, node: ir.LineBreak) -> str:
        return self.line_break

    def _runtime_ref(self, node: ScriptVarRef | FunctionRef) -> str:
        return str(node)

    # ------------------------------------------------------------------
    # Content blocks
    # ------------------------------------------------------------------

    def _heading(self, node: ir.Heading) -> str:
        previous, self.line_break = self.line_break, "<br>"
        try:
            text = self.inlines(node.children)
        finally:
            self.line_break = previous
        return f"{'#' * node.level} {text}"

    def _paragraph(self, node: ir.Paragraph) -> str:
        return self.inlines(node.children)

    def _list(self, node: ir.ListNode) -> str:
        lines = []
        for index, item in enumerate(node.items):
            marker = f"{node.start + index}." if node.ordered else "-"
            lines.append(self._list_item(item, marker))
        return "\n".join(lines)

    def _list_item(self, item: ir.ListItem, marker: str) -> str:
        pad = " " * (len(marker) + 1)
        children = list(item.children)
        if not children:
            return marker
        head, _, tail = self.block(children[0]).partition("\n")
        text = f"{marker} {head}" if head else marker
        if tail:
            text += "\n" + indent_lines(tail, pad)
        for child in children[1:]:
            rendered = self.block(child)
            if not rendered:
                continue
            sep = "\n" if child.kind == "list" else "\n\n"
            text += sep + indent_lines(rendered, pad)
        return text

    def _orphan_list_item(self, node: ir.ListItem) -> str:
        return self._list_item(node, "-")

    def _blockquote(self, node: ir.Blockquote) -> str:
        content = self.blocks(node.children)
        return "\n".join(f"> {line}" if line else ">" for line in content.split("\n"))

    def _code_block(self, node: ir.CodeBlock) -> str:
        fence = fence_for(node.content)
        return f"{fence}{node.language or ''}\n{node.content}\n{fence}"

    def _thematic_break(self, node: ir.ThematicBreak) -> str:
        return "---"

    def _xml_block(self, node: ir.XmlBlock) -> str:
        attrs = "".join(f' {key}="{html.escape(value, quote=True)}"' for key, value in node.attributes)
        inner = self.blocks(node.children)
        if not inner:
            return f"<{node.name}{attrs}>\n</{node.name}>"
        return f"<{node.name}{attrs}>\n{inner}\n</{node.name}>"

    def _raw(self, node: ir.RawMarkdown) -> str:
        return node.content

    def _table(self, node: ir.Table) -> str:
        width = max([len(node.headers)] + [len(row) for row in node.rows])
        if width == 0:
            return ""

        def cell(value: str) -> str:
            text = value.replace("|", "\\|").replace("\r\n", "\n").replace("\n", "<br>").strip()
            return text if text else node.empty_cell

        def row(values: Sequence[str]) -> str:
            padded = list(values) + [""] * (width - len(values))
            return "| " + " | ".join(cell(v) for v in padded) + " |"

        align = list(node.align) + [""] * (width - len(node.align))
        separator = "| " + " | ".join(ALIGN_SEPARATORS.get(a, "---") for a in align[:width]) + " |"
        lines = [row(node.headers), separator]
        lines.extend(row(r) for r in node.rows)
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def _conditional(self, node: ir.Conditional) -> str:
        parts = [f"**If {node.condition}:**"]
        parts.extend(self.block(child) for child in node.consequent)
        if node.alternate is not None:
            parts.append("**Otherwise:**")
            parts.extend(self.block(child) for child in node.alternate)
        return "\n\n".join(p for p in parts if p)

    def _loop(self, node: ir.Loop) -> str:
        counter = f" (counter: {node.counter.accessor})" if node.counter is not None else ""
        parts = [f"**Loop up to {node.max_iterations} times{counter}:**"]
        parts.extend(self.block(child) for child in node.children)
        return "\n\n".join(p for p in parts if p)

    def _break(self, node: ir.Break) -> str:
        if node.message:
            return f"**Break loop:** {node.message}"
        return "**Break loop**"

    def _return(self, node: ir.Return) -> str:
        label = f"End command ({node.status})" if node.status else "End command"
        if node.message:
            return f"**{label}**: {node.message}"
        return f"**{label}**"

    def _ask_user(self, node: ir.AskUser) -> str:
        lines = [f"Use the {ASK_USER_TOOL} tool:", "", f'- Question: "{_quote(node.question)}"']
        if node.header:
            lines.append(f'- Header: "{_quote(node.header)}"')
        lines.append("- Options:")
        for option in node.options:
            entry = f'  - "{_quote(option.label)}" (value: "{_quote(option.value)}")'
            if option.description:
                entry += f" - {option.description}"
            lines.append(entry)
        if node.multi_select:
            lines.append("- Multi-select: true (the user may choose several options)")
        lines.extend(["", f"Store the user's response in `{node.output.accessor}`."])
        return "\n".join(lines)

    def _spawn_prompt(self, node: ir.SpawnAgent) -> str:
        if node.prompt is not None:
            prompt = node.prompt
        elif isinstance(node.input, ScriptVarRef):
            prompt = f"<input>\n{node.input.accessor}\n</input>"
        elif node.input is not None:
            sections = [
                f"<{prop.name}>\n{prop.value}\n</{prop.name}>" for prop in node.input
            ]
            prompt = "\n\n".join(sections)
        else:
            raise InternalConsistencyError("SpawnAgent node has neither a prompt nor an input")
        if node.extra_instructions:
            prompt = f"{prompt}\n\n{node.extra_instructions}"
        return prompt

    def _spawn_agent(self, node: ir.SpawnAgent) -> str:
        call = "\n".join([
            "Task(",
            f'  prompt="{_quote(self._spawn_prompt(node))}",',
            f'  subagent_type="{_quote(node.agent)}",',
            f'  model="{_quote(node.model)}",',
            f'  description="{_quote(node.description)}"',
            ")",
        ])
        fence = fence_for(call)
        text = f"{fence}\n{call}\n{fence}"
        if node.output is not None:
            text += f"\n\nStore the agent's result in `{node.output.accessor}`."
        return text

    def _read_file(self, node: ir.ReadFile) -> str:
        path = node.path
        if _SHELL_QUOTE_NEEDED.search(path):
            escaped = path.replace('"', '\\"')
            path = f'"{escaped}"'
        suffix = " 2>/dev/null" if node.optional else ""
        return f"```bash\n{node.output}=$(cat {path}{suffix})\n```"


def _check_coverage() -> None:
    covered = set(MarkdownEmitter.BLOCK_METHODS) | set(MarkdownEmitter.INLINE_METHODS)
    missing = ir.ALL_KINDS - covered
    if missing:
        raise InternalConsistencyError(f"Emitter does not handle node kinds: {sorted(missing)}")
    for method in list(MarkdownEmitter.BLOCK_METHODS.values()) + list(MarkdownEmitter.INLINE_METHODS.values()):
        if not callable(getattr(MarkdownEmitter, method, None)):
            raise InternalConsistencyError(f"Emitter method {method} is not defined")


_check_coverage()


def emit(document: ir.DocumentNode) -> str:
    """Emit a document with a default ``MarkdownEmitter``."""
    return MarkdownEmitter().emit(document)


__all__ = ["MarkdownEmitter", "emit", "fence_for", "indent_lines", "FORMATTING_KINDS"]
