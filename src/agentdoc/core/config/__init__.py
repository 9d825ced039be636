"""Configuration for the agentdoc compiler."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .manager import ENV_PREFIX, PROJECT_CONFIG_NAMES, ConfigManager

INTERPOLATION_MODES = ("placeholder", "verbatim")


@dataclass(frozen=True)
class CompilerConfig:
    """Typed view over the ``compiler`` and ``build`` sections."""

    interpolation: str = "placeholder"
    source_extensions: Tuple[str, ...] = (".tsx", ".ts", ".jsx", ".js")
    commands_dir: str = ".claude/commands"
    agents_dir: str = ".claude/agents"
    output_extension: str = ".md"
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CompilerConfig":
        compiler = data.get("compiler") or {}
        build = data.get("build") or {}
        defaults = cls()
        return cls(
            interpolation=compiler.get("interpolation", defaults.interpolation),
            source_extensions=tuple(compiler.get("source_extensions", defaults.source_extensions)),
            commands_dir=build.get("commands_dir", defaults.commands_dir),
            agents_dir=build.get("agents_dir", defaults.agents_dir),
            output_extension=build.get("output_extension", defaults.output_extension),
            raw=dict(data),
        )

    @classmethod
    def load(
        cls,
        project_root: Optional[Path] = None,
        *,
        config_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "CompilerConfig":
        manager = ConfigManager(project_root, config_file=config_file, environ=environ)
        return cls.from_mapping(manager.load_config())

    def output_dir(self, document_type: str) -> str:
        """Conventional output directory for a compiled document type."""
        return self.agents_dir if document_type == "agent" else self.commands_dir


__all__ = [
    "CompilerConfig",
    "ConfigManager",
    "ENV_PREFIX",
    "INTERPOLATION_MODES",
    "PROJECT_CONFIG_NAMES",
]
