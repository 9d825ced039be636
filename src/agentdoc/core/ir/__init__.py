"""Intermediate representation: document nodes and runtime references."""
from __future__ import annotations

from .nodes import (
    ALL_KINDS,
    BLOCK_KINDS,
    INLINE_KINDS,
    RETURN_STATUSES,
    AgentFrontmatter,
    AskUser,
    AskUserOption,
    Blockquote,
    BlockNode,
    Bold,
    Break,
    CodeBlock,
    CommandFrontmatter,
    Conditional,
    DocumentNode,
    Heading,
    InlineCode,
    InlineNode,
    InputProperty,
    Italic,
    LineBreak,
    Link,
    ListItem,
    ListNode,
    Loop,
    Paragraph,
    RawMarkdown,
    ReadFile,
    Return,
    SpawnAgent,
    Table,
    Text,
    ThematicBreak,
    XmlBlock,
    is_inline,
)
from .runtime import FunctionRef, ScriptVarBinder, ScriptVarRef

__all__ = [
    "ALL_KINDS",
    "BLOCK_KINDS",
    "INLINE_KINDS",
    "RETURN_STATUSES",
    "AgentFrontmatter",
    "AskUser",
    "AskUserOption",
    "Blockquote",
    "BlockNode",
    "Bold",
    "Break",
    "CodeBlock",
    "CommandFrontmatter",
    "Conditional",
    "DocumentNode",
    "Heading",
    "InlineCode",
    "InlineNode",
    "InputProperty",
    "Italic",
    "LineBreak",
    "Link",
    "ListItem",
    "ListNode",
    "Loop",
    "Paragraph",
    "RawMarkdown",
    "ReadFile",
    "Return",
    "SpawnAgent",
    "Table",
    "Text",
    "ThematicBreak",
    "XmlBlock",
    "is_inline",
    "FunctionRef",
    "ScriptVarBinder",
    "ScriptVarRef",
]
