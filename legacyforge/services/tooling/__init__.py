"""External tool discovery and invocation."""

from .service import ToolOutput, ToolRunner

__all__ = ["ToolOutput", "ToolRunner"]
