"""
Parser registry for tree-sitter grammars.

Maps source file extensions to tree-sitter grammars and hands out cached
parsers. Grammars come from tree-sitter-language-pack.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from tree_sitter import Parser, Tree
from tree_sitter_language_pack import get_language

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "tsx"

EXTENSION_LANGUAGES: Dict[str, str] = {
    ".tsx": "tsx",
    ".jsx": "tsx",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}


class ParserRegistry:
    """Registry of tree-sitter parsers keyed by grammar name."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def get_parser(self, language: str) -> Parser:
        language = language.lower()
        parser = self._parsers.get(language)
        if parser is None:
            parser = Parser(get_language(language))
            self._parsers[language] = parser
            logger.debug("Loaded %s parser", language)
        return parser

    def detect_language(self, path: Optional[str | Path]) -> str:
        """Return the grammar for a file path, defaulting to TSX."""
        if path is None:
            return DEFAULT_LANGUAGE
        return EXTENSION_LANGUAGES.get(Path(path).suffix.lower(), DEFAULT_LANGUAGE)

    def parse(self, source: bytes, *, path: Optional[str | Path] = None) -> Tree:
        language = self.detect_language(path)
        tree = self.get_parser(language).parse(source)
        if tree.root_node.has_error:
            logger.warning("Syntax errors in %s; continuing with a partial tree", path or "<source>")
        return tree


_registry: ParserRegistry | None = None


def get_registry() -> ParserRegistry:
    """Get the shared parser registry instance."""
    global _registry
    if _registry is None:
        _registry = ParserRegistry()
    return _registry


__all__ = ["ParserRegistry", "get_registry", "EXTENSION_LANGUAGES", "DEFAULT_LANGUAGE"]
