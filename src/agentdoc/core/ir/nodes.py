"""Document model (IR) produced by the transformer and consumed by the emitter.

Every node is a frozen dataclass carrying a ``kind`` discriminator. Child
sequences are tuples, so a tree cannot be modified once it is built. The
set of kinds is closed; ``ALL_KINDS`` is the authoritative list that every
consumer must handle.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .runtime import FunctionRef, ScriptVarRef


# =============================================================================
# Inline nodes
# =============================================================================


@dataclass(frozen=True)
class Text:
    kind: ClassVar[str] = "text"

    value: str


@dataclass(frozen=True)
class Bold:
    kind: ClassVar[str] = "bold"

    children: Tuple["InlineNode", ...] = ()


@dataclass(frozen=True)
class Italic:
    kind: ClassVar[str] = "italic"

    children: Tuple["InlineNode", ...] = ()


@dataclass(frozen=True)
class InlineCode:
    kind: ClassVar[str] = "inline_code"

    value: str


@dataclass(frozen=True)
class Link:
    kind: ClassVar[str] = "link"

    url: str
    children: Tuple["InlineNode", ...] = ()


@dataclass(frozen=True)
class LineBreak:
    kind: ClassVar[str] = "line_break"


InlineNode = Union[Text, Bold, Italic, InlineCode, Link, LineBreak, ScriptVarRef, FunctionRef]


# =============================================================================
# Block nodes
# =============================================================================


@dataclass(frozen=True)
class Heading:
    kind: ClassVar[str] = "heading"

    level: int
    children: Tuple[InlineNode, ...] = ()

    def __post_init__(self) -> None:
        if not 1 <= self.level <= 6:
            raise ValueError(f"Heading level must be between 1 and 6, got {self.level}")


@dataclass(frozen=True)
class Paragraph:
    kind: ClassVar[str] = "paragraph"

    children: Tuple[InlineNode, ...] = ()


@dataclass(frozen=True)
class ListItem:
    kind: ClassVar[str] = "list_item"

    children: Tuple["BlockNode", ...] = ()


@dataclass(frozen=True)
class ListNode:
    kind: ClassVar[str] = "list"

    ordered: bool
    items: Tuple[ListItem, ...] = ()
    start: int = 1


@dataclass(frozen=True)
class Blockquote:
    kind: ClassVar[str] = "blockquote"

    children: Tuple["BlockNode", ...] = ()


@dataclass(frozen=True)
class CodeBlock:
    kind: ClassVar[str] = "code_block"

    content: str
    language: Optional[str] = None


@dataclass(frozen=True)
class ThematicBreak:
    kind: ClassVar[str] = "thematic_break"


@dataclass(frozen=True)
class XmlBlock:
    """Named XML-style section. Attributes keep declaration order."""

    kind: ClassVar[str] = "xml_block"

    name: str
    children: Tuple["BlockNode", ...] = ()
    attributes: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class RawMarkdown:
    kind: ClassVar[str] = "raw"

    content: str


@dataclass(frozen=True)
class Table:
    kind: ClassVar[str] = "table"

    headers: Tuple[str, ...] = ()
    rows: Tuple[Tuple[str, ...], ...] = ()
    align: Tuple[str, ...] = ()
    empty_cell: str = ""


# =============================================================================
# Orchestration nodes
# =============================================================================


@dataclass(frozen=True)
class Conditional:
    kind: ClassVar[str] = "conditional"

    condition: str
    consequent: Tuple["BlockNode", ...] = ()
    alternate: Optional[Tuple["BlockNode", ...]] = None


@dataclass(frozen=True)
class Loop:
    kind: ClassVar[str] = "loop"

    max_iterations: int
    children: Tuple["BlockNode", ...] = ()
    counter: Optional[ScriptVarRef] = None


@dataclass(frozen=True)
class Break:
    kind: ClassVar[str] = "break"

    message: Optional[str] = None


RETURN_STATUSES = ("SUCCESS", "BLOCKED", "NOT_FOUND", "ERROR", "CHECKPOINT")


@dataclass(frozen=True)
class Return:
    kind: ClassVar[str] = "return"

    status: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class AskUserOption:
    value: str
    label: str
    description: Optional[str] = None


@dataclass(frozen=True)
class AskUser:
    kind: ClassVar[str] = "ask_user"

    question: str
    options: Tuple[AskUserOption, ...]
    output: ScriptVarRef
    header: Optional[str] = None
    multi_select: bool = False


@dataclass(frozen=True)
class InputProperty:
    name: str
    value: Union[str, ScriptVarRef]


SpawnInput = Union[ScriptVarRef, Tuple[InputProperty, ...]]


@dataclass(frozen=True)
class SpawnAgent:
    """Delegation to a sub-agent with either a prompt or a structured input."""

    kind: ClassVar[str] = "spawn_agent"

    agent: str
    model: str
    description: str
    prompt: Optional[str] = None
    input: Optional[SpawnInput] = None
    input_type: Optional[str] = None
    output_type: Optional[str] = None
    extra_instructions: Optional[str] = None
    output: Optional[ScriptVarRef] = None


@dataclass(frozen=True)
class ReadFile:
    kind: ClassVar[str] = "read_file"

    path: str
    output: str
    optional: bool = False


BlockNode = Union[
    Heading,
    Paragraph,
    ListNode,
    ListItem,
    Blockquote,
    CodeBlock,
    ThematicBreak,
    XmlBlock,
    RawMarkdown,
    Table,
    Conditional,
    Loop,
    Break,
    Return,
    AskUser,
    SpawnAgent,
    ReadFile,
]


# =============================================================================
# Document
# =============================================================================


@dataclass(frozen=True)
class CommandFrontmatter:
    name: str
    description: str
    argument_hint: Optional[str] = None
    agent: Optional[str] = None
    model: Optional[str] = None
    allowed_tools: Tuple[str, ...] = ()
    extra: Tuple[Tuple[str, Any], ...] = ()

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "description": self.description}
        if self.argument_hint:
            data["argument-hint"] = self.argument_hint
        if self.agent:
            data["agent"] = self.agent
        if self.model:
            data["model"] = self.model
        if self.allowed_tools:
            data["allowed-tools"] = list(self.allowed_tools)
        for key, value in self.extra:
            data[key] = list(value) if isinstance(value, tuple) else value
        return data


@dataclass(frozen=True)
class AgentFrontmatter:
    name: str
    description: str
    tools: Optional[str] = None
    color: Optional[str] = None
    model: Optional[str] = None
    input_type: Optional[str] = None
    output_type: Optional[str] = None
    extra: Tuple[Tuple[str, Any], ...] = ()

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "description": self.description}
        if self.tools:
            data["tools"] = self.tools
        if self.color:
            data["color"] = self.color
        if self.model:
            data["model"] = self.model
        for key, value in self.extra:
            data[key] = list(value) if isinstance(value, tuple) else value
        return data


Frontmatter = Union[CommandFrontmatter, AgentFrontmatter]


@dataclass(frozen=True)
class DocumentNode:
    kind: ClassVar[str] = "document"

    frontmatter: Optional[Frontmatter] = None
    body: Tuple[BlockNode, ...] = ()
    metadata: Tuple[Tuple[str, str], ...] = field(default=(), compare=False)

    @property
    def document_type(self) -> str:
        if isinstance(self.frontmatter, AgentFrontmatter):
            return "agent"
        if isinstance(self.frontmatter, CommandFrontmatter):
            return "command"
        return "fragment"

    def meta(self, key: str) -> Optional[str]:
        for k, v in self.metadata:
            if k == key:
                return v
        return None


INLINE_NODE_TYPES = (Text, Bold, Italic, InlineCode, Link, LineBreak, ScriptVarRef, FunctionRef)
BLOCK_NODE_TYPES = (
    Heading,
    Paragraph,
    ListNode,
    ListItem,
    Blockquote,
    CodeBlock,
    ThematicBreak,
    XmlBlock,
    RawMarkdown,
    Table,
    Conditional,
    Loop,
    Break,
    Return,
    AskUser,
    SpawnAgent,
    ReadFile,
)

INLINE_KINDS = frozenset(t.kind for t in INLINE_NODE_TYPES)
BLOCK_KINDS = frozenset(t.kind for t in BLOCK_NODE_TYPES)
ALL_KINDS = INLINE_KINDS | BLOCK_KINDS


def is_inline(node: object) -> bool:
    return isinstance(node, INLINE_NODE_TYPES)


__all__ = [
    "Text",
    "Bold",
    "Italic",
    "InlineCode",
    "Link",
    "LineBreak",
    "InlineNode",
    "Heading",
    "Paragraph",
    "ListItem",
    "ListNode",
    "Blockquote",
    "CodeBlock",
    "ThematicBreak",
    "XmlBlock",
    "RawMarkdown",
    "Table",
    "Conditional",
    "Loop",
    "Break",
    "Return",
    "RETURN_STATUSES",
    "AskUserOption",
    "AskUser",
    "InputProperty",
    "SpawnInput",
    "SpawnAgent",
    "ReadFile",
    "BlockNode",
    "CommandFrontmatter",
    "AgentFrontmatter",
    "Frontmatter",
    "DocumentNode",
    "INLINE_NODE_TYPES",
    "BLOCK_NODE_TYPES",
    "INLINE_KINDS",
    "BLOCK_KINDS",
    "ALL_KINDS",
    "is_inline",
]
