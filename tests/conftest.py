import os
import sys
import textwrap
from pathlib import Path
from typing import Dict, Optional

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'agentdoc'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from agentdoc.core.compiler import CompileResult, compile_source
from agentdoc.core.config import CompilerConfig
from agentdoc.data import clear_caches
from helpers.sources import write_sources


@pytest.fixture(autouse=True)
def _clean_agentdoc_env(monkeypatch):
    """Drop AGENTDOC_* overrides from the developer environment and reset data caches."""
    for key in list(os.environ):
        if key.startswith("AGENTDOC_"):
            monkeypatch.delenv(key, raising=False)
    clear_caches()
    yield
    clear_caches()


@pytest.fixture
def isolated_project_env(tmp_path, monkeypatch):
    """Run the test from an empty project directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def compile_tsx():
    """Compile dedented TSX text; keyword arguments become ``CompilerConfig`` fields."""

    def _compile(text: str, path: Optional[Path] = None, **config) -> CompileResult:
        cfg = CompilerConfig(**config) if config else None
        return compile_source(textwrap.dedent(text), path, config=cfg)

    return _compile


@pytest.fixture
def compile_md(compile_tsx):
    """Like ``compile_tsx`` but returns only the Markdown."""

    def _compile(text: str, path: Optional[Path] = None, **config) -> str:
        return compile_tsx(text, path, **config).markdown

    return _compile


@pytest.fixture
def project(tmp_path):
    """Write a set of source files under ``tmp_path`` and return the root."""

    def _write(files: Dict[str, str]) -> Path:
        return write_sources(tmp_path, files)

    return _write
