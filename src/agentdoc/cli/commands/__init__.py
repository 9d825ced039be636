"""Top-level agentdoc commands (one module per command)."""
