"""Terminal progress output: formatting helpers, an in-memory terminal, draw targets and multi-line layout."""

__version__ = "0.1.0"
__all__ = ["format", "in_memory", "draw_target", "multi"]