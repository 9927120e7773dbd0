import asyncio
from typing import Any

import pytest

from hearth.agent.tools.base import Tool, ToolResult
from hearth.agent.tools.registry import ToolRegistry


class EchoTool(Tool):
    def __init__(self, name: str = "echo", reply: str = "echo"):
        self._name = name
        self.reply = reply

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"{self._name} tool"

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {"text": {"type": "string"}}}

    async def execute(self, **kwargs: Any) -> str:
        return f"{self.reply}:{kwargs.get('text', '')}"


class FailingTool(EchoTool):
    async def execute(self, **kwargs: Any) -> ToolResult:
        raise RuntimeError("disk on fire")


class SlowTool(EchoTool):
    async def execute(self, **kwargs: Any) -> ToolResult:
        await asyncio.sleep(5)
        return ToolResult.ok("late")


@pytest.mark.asyncio
async def test_execute_wraps_plain_string_as_success() -> None:
    reg = ToolRegistry()
    reg.register(EchoTool())
    result = await reg.execute("echo", {"text": "hi"})
    assert result == ToolResult(success=True, output="echo:hi", error=None)


@pytest.mark.asyncio
async def test_unknown_tool_returns_failure() -> None:
    result = await ToolRegistry().execute("nope", {})
    assert result.success is False
    assert result.error == "Tool 'nope' not found"


@pytest.mark.asyncio
async def test_non_object_arguments_return_failure() -> None:
    reg = ToolRegistry()
    reg.register(EchoTool())
    result = await reg.execute("echo", ["a", "b"])
    assert result.success is False
    assert "arguments must be a JSON object" in (result.error or "")


@pytest.mark.asyncio
async def test_tool_exception_becomes_failed_result() -> None:
    reg = ToolRegistry()
    reg.register(FailingTool(name="boom"))
    result = await reg.execute("boom", {})
    assert result.success is False
    assert result.error == "Execution failed: disk on fire"


@pytest.mark.asyncio
async def test_tool_timeout_becomes_failed_result() -> None:
    reg = ToolRegistry()
    reg.register(SlowTool(name="slow"))
    result = await reg.execute("slow", {}, timeout=0.01)
    assert result.success is False
    assert "timed out" in (result.error or "")


@pytest.mark.asyncio
async def test_last_registration_wins() -> None:
    reg = ToolRegistry()
    reg.register(EchoTool(reply="first"))
    reg.register(EchoTool(reply="second"))
    assert len(reg) == 1
    result = await reg.execute("echo", {"text": "x"})
    assert result.output == "second:x"


def test_specs_are_sorted_by_name() -> None:
    reg = ToolRegistry()
    for name in ("shell", "file_read", "memory_write"):
        reg.register(EchoTool(name=name))
    assert [spec.name for spec in reg.get_specs()] == ["file_read", "memory_write", "shell"]
    assert reg.tool_names == ["file_read", "memory_write", "shell"]
    assert [d["function"]["name"] for d in reg.get_definitions()] == ["file_read", "memory_write", "shell"]


def test_unregister_and_membership() -> None:
    reg = ToolRegistry()
    reg.register(EchoTool())
    assert "echo" in reg
    assert reg.has("echo")
    reg.unregister("echo")
    assert "echo" not in reg
    assert reg.get("echo") is None
    reg.unregister("echo")
    assert len(reg) == 0


def test_tool_result_serializes_all_fields() -> None:
    assert ToolResult.fail("bad").to_json() == '{"success": false, "output": "", "error": "bad"}'
    assert ToolResult.ok("fine").to_json() == '{"success": true, "output": "fine", "error": null}'


@pytest.mark.asyncio
async def test_registry_lock_not_held_during_execution() -> None:
    reg = ToolRegistry()
    reg.register(SlowTool(name="slow"))
    task = asyncio.create_task(reg.execute("slow", {}, timeout=0.2))
    await asyncio.sleep(0)
    reg.register(EchoTool(name="other"))
    assert reg.has("other")
    result = await task
    assert result.success is False
