"""File system tools: read and write files in the workspace."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from hearth.agent.tools.base import Tool, ToolResult


def _resolve_path(path: str, workspace: Path, restrict: bool) -> Path:
    """Resolve a path against the workspace, optionally refusing escapes."""
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = workspace / candidate
    resolved = candidate.resolve()
    if restrict:
        root = workspace.expanduser().resolve()
        if resolved != root and root not in resolved.parents:
            raise PermissionError(f"Path {path} is outside workspace {workspace}")
    return resolved


class ReadFileTool(Tool):
    """Tool to read file contents."""

    def __init__(self, workspace: Path, restrict_to_workspace: bool = False):
        self.workspace = workspace
        self.restrict_to_workspace = restrict_to_workspace

    @property
    def name(self) -> str:
        return "file_read"

    @property
    def description(self) -> str:
        return "Read the contents of a file from the workspace"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path to the file to read"},
            },
            "required": ["path"],
        }

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        try:
            file_path = _resolve_path(path, self.workspace, self.restrict_to_workspace)
            return ToolResult.ok(file_path.read_text(encoding="utf-8"))
        except PermissionError as e:
            return ToolResult.fail(str(e))
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult.fail(f"Failed to read file: {e}")


class WriteFileTool(Tool):
    """Tool to write content to a file, creating parent directories."""

    def __init__(self, workspace: Path, restrict_to_workspace: bool = False):
        self.workspace = workspace
        self.restrict_to_workspace = restrict_to_workspace

    @property
    def name(self) -> str:
        return "file_write"

    @property
    def description(self) -> str:
        return "Write content to a file in the workspace"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path to the file to write"},
                "content": {"type": "string", "description": "Content to write to the file"},
            },
            "required": ["path", "content"],
        }

    async def execute(self, path: str, content: str, **kwargs: Any) -> ToolResult:
        try:
            file_path = _resolve_path(path, self.workspace, self.restrict_to_workspace)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
            return ToolResult.ok(f"File written successfully ({len(content)} chars)")
        except PermissionError as e:
            return ToolResult.fail(str(e))
        except OSError as e:
            return ToolResult.fail(f"Failed to write file: {e}")
