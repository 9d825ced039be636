"""Layered configuration loading for agentdoc.

Configuration sources (highest to lowest priority):
1. Environment variables: AGENTDOC_<section>__<key>
2. Explicit config file (``--config``)
3. Project config: ``agentdoc.yaml`` or ``.agentdoc.yaml`` in the project root
4. Bundled defaults: agentdoc.data/config/defaults.yaml

Mappings merge recursively, lists and scalars replace. The merged result is
validated against the bundled JSON schema before use.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import jsonschema
import yaml

from agentdoc.core.exceptions import ConfigError
from agentdoc.core.utils.merge import deep_merge
from agentdoc.data import get_data_path, read_yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "AGENTDOC_"
PROJECT_CONFIG_NAMES = ("agentdoc.yaml", ".agentdoc.yaml")


class ConfigManager:
    """Load, merge, and validate agentdoc configuration."""

    def __init__(
        self,
        project_root: Optional[Path] = None,
        *,
        config_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.project_root = Path(project_root) if project_root is not None else Path.cwd()
        self.config_file = Path(config_file) if config_file is not None else None
        self.environ = environ if environ is not None else os.environ

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}", context={"path": str(path)}) from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {path} must contain a mapping, got {type(data).__name__}",
                context={"path": str(path)},
            )
        return data

    def project_config_path(self) -> Optional[Path]:
        for name in PROJECT_CONFIG_NAMES:
            candidate = self.project_root / name
            if candidate.is_file():
                return candidate
        return None

    def validate_schema(self, config: Dict[str, Any]) -> None:
        schema = read_yaml("schemas", "config.schema.yaml")
        validator = jsonschema.Draft202012Validator(schema)
        errors = sorted(validator.iter_errors(config), key=lambda e: list(e.path))
        if errors:
            details = [
                f"{'/'.join(str(p) for p in err.path) or '<root>'}: {err.message}" for err in errors
            ]
            raise ConfigError(
                "Invalid agentdoc configuration:\n  - " + "\n  - ".join(details),
                context={"errors": details},
            )

    # ---------- Environment overrides ----------

    def _coerce_type(self, value: str) -> Any:
        s = value.strip()
        low = s.lower()
        if low in {"true", "false"}:
            return low == "true"
        if re.fullmatch(r"[-+]?\d+", s):
            return int(s)
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except ValueError:
                return s
        return s

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(self.environ.keys()):
            if not key.startswith(ENV_PREFIX):
                continue
            raw = key[len(ENV_PREFIX):]
            segments = [seg.lower() for seg in raw.split("__")]
            if not raw or any(not seg for seg in segments):
                raise ConfigError(f"Malformed {ENV_PREFIX}* key: '{key}'", context={"key": key})
            yield segments, self._coerce_type(self.environ[key])

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> Dict[str, Any]:
        result = cfg
        for path, value in self._iter_env_overrides():
            override: Dict[str, Any] = {path[-1]: value}
            for segment in reversed(path[:-1]):
                override = {segment: override}
            result = deep_merge(result, override)
            logger.debug("Applied env override %s", ".".join(path))
        return result

    # ---------- Loading ----------

    def load_config(self, *, validate: bool = True) -> Dict[str, Any]:
        """Load and merge every configuration layer."""
        cfg = deep_merge({}, read_yaml("config", "defaults.yaml"))
        logger.debug("Loaded bundled defaults from %s", get_data_path("config", "defaults.yaml"))

        project_file = self.project_config_path()
        if project_file is not None:
            cfg = deep_merge(cfg, self.load_yaml(project_file))
            logger.debug("Merged project config %s", project_file)

        if self.config_file is not None:
            cfg = deep_merge(cfg, self.load_yaml(self.config_file))
            logger.debug("Merged explicit config %s", self.config_file)

        cfg = self.apply_env_overrides(cfg)

        if validate:
            self.validate_schema(cfg)
        return cfg

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated path."""
        current: Any = self.load_config()
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current


__all__ = ["ConfigManager", "ENV_PREFIX", "PROJECT_CONFIG_NAMES"]
