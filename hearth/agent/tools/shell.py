"""Shell execution tool."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from loguru import logger

from hearth.agent.tools.base import Tool, ToolResult

DEFAULT_SHELL_TIMEOUT = 60


class ShellTool(Tool):
    """Tool to execute shell commands in the workspace directory."""

    def __init__(self, workspace: Path, timeout: int = DEFAULT_SHELL_TIMEOUT):
        self.workspace = workspace
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "shell"

    @property
    def description(self) -> str:
        return "Execute a shell command in the workspace directory"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Shell command to execute"},
            },
            "required": ["command"],
        }

    async def execute(self, command: str, **kwargs: Any) -> ToolResult:
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=str(self.workspace),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return ToolResult.fail(f"Failed to execute command: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("Shell command timed out after {}s: {}", self.timeout, command[:200])
            return ToolResult.fail(f"Command timed out after {self.timeout} seconds")

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        if process.returncode == 0:
            return ToolResult.ok(out or err)
        return ToolResult.fail(err or f"Command failed with exit code {process.returncode}")
