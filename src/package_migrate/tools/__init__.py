"""External command-line tools used to publish and copy artifacts."""

from .runner import ToolResult, ToolRunner

__all__ = ['ToolResult', 'ToolRunner']
