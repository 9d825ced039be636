"""Argument registration helpers shared by CLI commands."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_config_flag(parser: argparse.ArgumentParser) -> None:
    """Add --config for an explicit configuration file.

    The file is layered above the project's ``agentdoc.yaml`` and below
    ``AGENTDOC_*`` environment variables.
    """
    parser.add_argument(
        "--config",
        type=str,
        help="Configuration file (YAML) layered over the project configuration",
    )


def add_verbosity_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug details (dispatch, composite expansion, config layering)",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only log errors",
    )


__all__ = ["add_json_flag", "add_config_flag", "add_verbosity_flags"]
