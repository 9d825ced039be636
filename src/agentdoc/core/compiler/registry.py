"""Element registry: the closed vocabulary of recognised tags.

Three disjoint categories (document roots, content primitives, control
flow) plus the inline subset of the content primitives. The registry is
passed to the Transformer explicitly so tests can build restricted or
extended vocabularies.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

DOCUMENT_ROOTS = frozenset({"Command", "Agent"})

CONTENT_PRIMITIVES = frozenset({
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p",
    "b", "strong", "i", "em", "code", "a", "br",
    "hr",
    "ul", "ol", "li",
    "blockquote",
    "pre",
    "div", "XmlBlock",
    "Markdown",
    "Table",
    "ReadFile",
})

CONTROL_FLOW = frozenset({"If", "Else", "Loop", "Break", "Return", "AskUser", "SpawnAgent"})

INLINE = frozenset({"b", "strong", "i", "em", "code", "a", "br"})


@dataclass(frozen=True)
class ElementRegistry:
    document_roots: FrozenSet[str]
    content_primitives: FrozenSet[str]
    control_flow: FrozenSet[str]
    inline: FrozenSet[str]

    def __post_init__(self) -> None:
        overlaps = (
            (self.document_roots & self.content_primitives)
            | (self.document_roots & self.control_flow)
            | (self.content_primitives & self.control_flow)
        )
        if overlaps:
            raise ValueError(f"Element categories overlap: {sorted(overlaps)}")
        stray = self.inline - self.content_primitives
        if stray:
            raise ValueError(f"Inline tags must be content primitives: {sorted(stray)}")

    @classmethod
    def default(cls) -> "ElementRegistry":
        return cls(
            document_roots=DOCUMENT_ROOTS,
            content_primitives=CONTENT_PRIMITIVES,
            control_flow=CONTROL_FLOW,
            inline=INLINE,
        )

    @classmethod
    def create(
        cls,
        *,
        document_roots: Iterable[str] = (),
        content_primitives: Iterable[str] = (),
        control_flow: Iterable[str] = (),
        inline: Iterable[str] = (),
    ) -> "ElementRegistry":
        return cls(
            document_roots=frozenset(document_roots),
            content_primitives=frozenset(content_primitives),
            control_flow=frozenset(control_flow),
            inline=frozenset(inline),
        )

    @property
    def all_tags(self) -> FrozenSet[str]:
        return self.document_roots | self.content_primitives | self.control_flow

    def is_known(self, tag: Optional[str]) -> bool:
        return tag is not None and tag in self.all_tags

    def is_inline(self, tag: Optional[str]) -> bool:
        return tag is not None and tag in self.inline

    def is_document_root(self, tag: Optional[str]) -> bool:
        return tag is not None and tag in self.document_roots

    def category(self, tag: str) -> Optional[str]:
        if tag in self.document_roots:
            return "document_root"
        if tag in self.content_primitives:
            return "content_primitive"
        if tag in self.control_flow:
            return "control_flow"
        return None


__all__ = ["ElementRegistry", "DOCUMENT_ROOTS", "CONTENT_PRIMITIVES", "CONTROL_FLOW", "INLINE"]
