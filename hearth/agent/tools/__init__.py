"""Agent tools module."""

from hearth.agent.tools.base import Tool, ToolResult, ToolSpec
from hearth.agent.tools.filesystem import ReadFileTool, WriteFileTool
from hearth.agent.tools.memory import MemoryReadTool, MemoryWriteTool
from hearth.agent.tools.registry import ToolRegistry
from hearth.agent.tools.shell import ShellTool

__all__ = [
    "Tool",
    "ToolResult",
    "ToolSpec",
    "ToolRegistry",
    "ReadFileTool",
    "WriteFileTool",
    "ShellTool",
    "MemoryReadTool",
    "MemoryWriteTool",
]
