"""Compile facade: parse, resolve, transform and emit in one call."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from agentdoc.core.config import CompilerConfig
from agentdoc.core.exceptions import SourceParseError
from agentdoc.core.ir import DocumentNode
from agentdoc.core.source.unit import SourceUnit, load_unit, parse_source

from .emitter import MarkdownEmitter
from .registry import ElementRegistry
from .resolver import ComponentResolver
from .transformer import Transformer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileResult:
    """Outcome of compiling one source unit."""

    document: DocumentNode
    markdown: str
    unit: SourceUnit

    @property
    def document_type(self) -> str:
        """``command``, ``agent`` or ``fragment``."""
        return self.document.document_type

    @property
    def folder(self) -> Optional[str]:
        return self.document.meta("folder")


def compile_unit(
    unit: SourceUnit,
    *,
    config: Optional[CompilerConfig] = None,
    registry: Optional[ElementRegistry] = None,
    resolver: Optional[ComponentResolver] = None,
) -> CompileResult:
    """Compile an already parsed unit."""
    if unit.root is None:
        raise SourceParseError(
            f"{unit.display_path} declares no component returning JSX",
            context={"path": unit.display_path},
        )
    config = config or CompilerConfig()
    resolver = resolver or ComponentResolver(extensions=config.source_extensions)
    transformer = Transformer(registry=registry, config=config, resolver=resolver)
    document = transformer.transform(unit.root, unit)
    markdown = MarkdownEmitter().emit(document)
    logger.debug("Compiled %s (%d units resolved)", unit.display_path, len(resolver.units()))
    return CompileResult(document=document, markdown=markdown, unit=unit)


def compile_source(
    text: str,
    path: Optional[str | Path] = None,
    *,
    config: Optional[CompilerConfig] = None,
    registry: Optional[ElementRegistry] = None,
    resolver: Optional[ComponentResolver] = None,
) -> CompileResult:
    """Compile TSX source text; ``path`` anchors relative imports."""
    unit = parse_source(text, path)
    return compile_unit(unit, config=config, registry=registry, resolver=resolver)


def compile_file(
    path: str | Path,
    *,
    config: Optional[CompilerConfig] = None,
    registry: Optional[ElementRegistry] = None,
    resolver: Optional[ComponentResolver] = None,
) -> CompileResult:
    """Compile a TSX file from disk."""
    return compile_unit(load_unit(path), config=config, registry=registry, resolver=resolver)


__all__ = ["CompileResult", "compile_unit", "compile_source", "compile_file"]
