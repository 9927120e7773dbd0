"""Memory tools: let the model recall and store facts."""

from __future__ import annotations

from typing import Any

from hearth.agent.memory import BaseMemory, MemoryCategory
from hearth.agent.tools.base import Tool, ToolResult

DEFAULT_RECALL_LIMIT = 10


class MemoryReadTool(Tool):
    """Search memory by keywords."""

    def __init__(self, memory: BaseMemory):
        self.memory = memory

    @property
    def name(self) -> str:
        return "memory_read"

    @property
    def description(self) -> str:
        return "Retrieve memories from the memory store using a search query"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Keywords or phrase to search for in memory",
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of results to return (default: 10)",
                    "minimum": 1,
                },
            },
            "required": ["query"],
        }

    async def execute(self, query: str, limit: int = DEFAULT_RECALL_LIMIT, **kwargs: Any) -> ToolResult:
        if not query.strip():
            return ToolResult.fail("Query parameter is required")
        try:
            entries = await self.memory.recall(query, limit)
        except Exception as e:
            return ToolResult.fail(f"Failed to read memory: {e}")

        if not entries:
            return ToolResult.ok("No memories found matching the query.")
        lines = [
            f"- {entry.content}" + (f" (score: {entry.score:.2f})" if entry.score is not None else "")
            for entry in entries
        ]
        return ToolResult.ok(f"Found {len(entries)} memories:\n" + "\n".join(lines))


class MemoryWriteTool(Tool):
    """Store a fact, preference or decision under a key."""

    def __init__(self, memory: BaseMemory):
        self.memory = memory

    @property
    def name(self) -> str:
        return "memory_write"

    @property
    def description(self) -> str:
        return (
            "Store information in memory for future reference. Use this for important facts, "
            "user preferences, decisions, or context that should persist."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "key": {"type": "string", "description": "A unique key/identifier for this memory"},
                "content": {"type": "string", "description": "The content to store in memory"},
                "category": {
                    "type": "string",
                    "description": "Category: 'core' for long-term facts, 'daily' for logs (default: 'core')",
                },
            },
            "required": ["key", "content"],
        }

    async def execute(
        self,
        key: str,
        content: str,
        category: str = MemoryCategory.CORE.value,
        **kwargs: Any,
    ) -> ToolResult:
        if not category.strip():
            return ToolResult.fail("Category cannot be empty")
        try:
            await self.memory.store(key, content, category)
        except Exception as e:
            return ToolResult.fail(f"Failed to store memory: {e}")
        return ToolResult.ok(f"Stored memory with key: {key}")
