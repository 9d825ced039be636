"""
agentdoc - compile TSX component trees into agent-ready Markdown

Authors describe slash commands and agents as component trees; agentdoc
statically analyses them and emits the Markdown (with YAML frontmatter,
XML sections and runtime placeholders) that an LLM orchestrator reads.
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
