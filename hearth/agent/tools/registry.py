"""Tool registry for dynamic tool management."""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from loguru import logger

from hearth.agent.tools.base import Tool, ToolResult, ToolSpec


class ToolRegistry:
    """
    Registry for agent tools.

    Allows dynamic registration and execution of tools. The tool table is
    guarded by a lock that is held only around reads and writes of the
    table, never across a tool's execution, so several conversations can
    share one registry and run tools concurrently.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}
        self._lock = threading.Lock()

    def register(self, tool: Tool) -> None:
        """Register a tool. A later registration under the same name replaces the earlier one."""
        with self._lock:
            replaced = tool.name in self._tools
            self._tools[tool.name] = tool
        if replaced:
            logger.debug("Tool '{}' re-registered, previous instance replaced", tool.name)

    def unregister(self, name: str) -> None:
        """Unregister a tool by name."""
        with self._lock:
            self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        with self._lock:
            return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        with self._lock:
            return name in self._tools

    def get_specs(self) -> list[ToolSpec]:
        """Snapshot all tool specs, ordered by tool name."""
        with self._lock:
            tools = sorted(self._tools.values(), key=lambda t: t.name)
        return [tool.to_spec() for tool in tools]

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get all tool definitions in OpenAI format."""
        return [spec.to_definition() for spec in self.get_specs()]

    async def execute(
        self,
        name: str,
        args: Any,
        *,
        timeout: float | None = None,
    ) -> ToolResult:
        """
        Execute a tool by name with given parameters.

        Never raises: unknown tools, invalid parameters, timeouts and tool
        exceptions all come back as failed ToolResults so the model can see
        the failure and try again.

        Args:
            name: Tool name.
            args: Decoded JSON arguments, expected to be an object.
            timeout: Optional execution timeout in seconds.

        Returns:
            Tool execution result.
        """
        tool = self.get(name)
        if tool is None:
            return ToolResult.fail(f"Tool '{name}' not found")

        if not isinstance(args, dict):
            return ToolResult.fail(
                f"Invalid parameters for tool '{name}': arguments must be a JSON object"
            )

        try:
            errors = tool.validate_params(args)
            if errors:
                return ToolResult.fail(f"Invalid parameters for tool '{name}': " + "; ".join(errors))
            if timeout is not None and timeout > 0:
                result = await asyncio.wait_for(tool.execute(**args), timeout=timeout)
            else:
                result = await tool.execute(**args)
        except asyncio.TimeoutError:
            logger.warning("Tool '{}' timed out after {}s", name, timeout)
            return ToolResult.fail(f"Execution failed: timed out after {timeout}s")
        except Exception as e:
            logger.warning("Tool '{}' raised: {}", name, e)
            return ToolResult.fail(f"Execution failed: {e}")

        if isinstance(result, ToolResult):
            return result
        return ToolResult.ok(result if isinstance(result, str) else str(result))

    @property
    def tool_names(self) -> list[str]:
        """Get list of registered tool names."""
        with self._lock:
            return sorted(self._tools)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return self.has(name)
