"""Shared helpers: text normalisation, frontmatter formatting, dict merging."""
from __future__ import annotations

from .merge import deep_merge
from .text import (
    dedent_block,
    format_frontmatter,
    normalize_whitespace,
    to_kebab_case,
    trim_blank_lines,
)

__all__ = [
    "deep_merge",
    "dedent_block",
    "format_frontmatter",
    "normalize_whitespace",
    "to_kebab_case",
    "trim_blank_lines",
]
