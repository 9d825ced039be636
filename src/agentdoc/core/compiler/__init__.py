"""Compiler pipeline: component tree to IR to Markdown.

``compile_source`` and ``compile_file`` are the usual entry points. The
pieces (registry, resolver, transformer, emitter) are exposed for callers
that need to swap one of them.
"""
from __future__ import annotations

from .emitter import MarkdownEmitter, emit
from .pipeline import CompileResult, compile_file, compile_source, compile_unit
from .registry import ElementRegistry
from .resolver import ComponentResolver, TypeShape
from .transformer import Transformer

__all__ = [
    "CompileResult",
    "ComponentResolver",
    "ElementRegistry",
    "MarkdownEmitter",
    "Transformer",
    "TypeShape",
    "compile_file",
    "compile_source",
    "compile_unit",
    "emit",
]
