"""agentdoc build command.

SUMMARY: Compile TSX command and agent sources into Markdown.

Commands are written under ``build.commands_dir`` and agents under
``build.agents_dir`` (both relative to ``--out-dir``), inside the
document's ``folder`` when it declares one. Every file compiles on its
own; one failing file does not stop the others.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from agentdoc.cli import OutputFormatter, add_config_flag, add_json_flag
from agentdoc.core.compiler import CompileResult, compile_file
from agentdoc.core.config import CompilerConfig
from agentdoc.core.exceptions import AgentDocError, ConfigError

SUMMARY = "Compile TSX command/agent sources to Markdown"

logger = logging.getLogger(__name__)


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("files", nargs="+", metavar="FILE", help="TSX source file(s) to compile")
    parser.add_argument(
        "--out-dir",
        type=str,
        default=None,
        help="Root directory for generated files (default: current directory)",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the generated Markdown instead of writing files",
    )
    add_config_flag(parser)
    add_json_flag(parser)


def output_path(result: CompileResult, source: Path, out_dir: Path, config: CompilerConfig) -> Path:
    """Destination of a compiled document."""
    target = out_dir / config.output_dir(result.document_type)
    if result.folder:
        target = target / result.folder
    return target / f"{source.stem}{config.output_extension}"


def _compile_one(
    source: Path,
    *,
    out_dir: Path,
    config: CompilerConfig,
    to_stdout: bool,
    formatter: OutputFormatter,
) -> Dict[str, Any]:
    result = compile_file(source, config=config)
    record: Dict[str, Any] = {"source": str(source), "type": result.document_type}
    if to_stdout:
        if not formatter.json_mode:
            print(result.markdown, end="")
        else:
            record["markdown"] = result.markdown
        return record

    destination = output_path(result, source, out_dir, config)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(result.markdown, encoding="utf-8")
    logger.info("Wrote %s", destination)
    formatter.text(f"{source} -> {destination}")
    record["output"] = str(destination)
    return record


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    project_root = Path.cwd()
    config_file: Optional[Path] = Path(args.config) if getattr(args, "config", None) else None

    try:
        config = CompilerConfig.load(project_root, config_file=config_file)
    except ConfigError as exc:
        formatter.error(exc, error_code="config_error")
        return 1

    out_dir = Path(args.out_dir) if getattr(args, "out_dir", None) else project_root
    compiled: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []

    for name in args.files:
        source = Path(name)
        try:
            compiled.append(
                _compile_one(
                    source,
                    out_dir=out_dir,
                    config=config,
                    to_stdout=bool(getattr(args, "stdout", False)),
                    formatter=formatter,
                )
            )
        except AgentDocError as exc:
            failed.append({"source": str(source), **exc.to_json_error()})
            if not formatter.json_mode:
                formatter.error(exc, f"{source}: {exc}", error_code="compile_error")
        except OSError as exc:
            failed.append({"source": str(source), "message": str(exc), "code": type(exc).__name__})
            if not formatter.json_mode:
                formatter.error(exc, f"{source}: {exc}", error_code="write_error")

    if formatter.json_mode:
        formatter.json_output({"ok": not failed, "compiled": compiled, "failed": failed})
    elif len(args.files) > 1 and not getattr(args, "stdout", False):
        formatter.text(f"{len(compiled)} compiled, {len(failed)} failed")
    return 1 if failed else 0
