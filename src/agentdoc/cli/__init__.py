"""
agentdoc CLI package.

Commands are discovered from ``cli/commands``: each module provides
``SUMMARY``, ``register_args(parser)`` and ``main(args) -> int``.

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
"""
from ._args import add_config_flag, add_json_flag, add_verbosity_flags
from ._output import OutputFormatter, print_error

__all__ = [
    "OutputFormatter",
    "print_error",
    "add_json_flag",
    "add_config_flag",
    "add_verbosity_flags",
]
