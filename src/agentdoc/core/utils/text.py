"""Text helpers shared by the transformer and the emitter."""
from __future__ import annotations

import re
import textwrap
from typing import Any, Dict

import yaml

_WHITESPACE_RUN = re.compile(r"\s+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

# Keep long frontmatter values (descriptions) on one line.
_YAML_WIDTH = 1 << 16


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to one space and trim both ends.

    Idempotent: normalizing an already-normalized string returns it unchanged.
    """
    return _WHITESPACE_RUN.sub(" ", text).strip()


def trim_blank_lines(text: str) -> str:
    """Drop leading and trailing whitespace-only lines, keep indentation otherwise."""
    lines = text.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(line.rstrip() if not line.strip() else line for line in lines)


def dedent_block(text: str) -> str:
    """Remove the common indentation of a block and trim its outer blank lines."""
    return textwrap.dedent(trim_blank_lines(text)).strip()


def to_kebab_case(name: str) -> str:
    """``argumentHint`` -> ``argument-hint``."""
    return _CAMEL_BOUNDARY.sub(r"-\1", name).replace("_", "-").lower()


def format_frontmatter(data: Dict[str, Any], *, exclude_none: bool = True) -> str:
    """Format a dictionary as YAML frontmatter.

    Lists are always written in block (hyphen) style and keys keep their
    insertion order.

    Example:
        >>> print(format_frontmatter({'name': 'analyze', 'allowed-tools': ['Read']}))
        ---
        name: analyze
        allowed-tools:
        - Read
        ---
        <BLANKLINE>
    """
    if exclude_none:
        data = {k: v for k, v in data.items() if v is not None}

    yaml_content = yaml.safe_dump(
        data,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=_YAML_WIDTH,
    )

    return f"---\n{yaml_content}---\n"


__all__ = [
    "normalize_whitespace",
    "trim_blank_lines",
    "dedent_block",
    "to_kebab_case",
    "format_frontmatter",
]
