from pathlib import Path
from typing import Any

import pytest

from hearth.agent.context import BOOTSTRAP_MAX_CHARS, ContextBuilder
from hearth.agent.memory import BaseMemory, MemoryCategory, MemoryEntry
from hearth.agent.skills import Skill
from hearth.agent.tools.base import Tool
from hearth.agent.tools.registry import ToolRegistry
from hearth.providers.base import ChatMessage


class FixedRecallMemory(BaseMemory):
    def __init__(self, entries: list[MemoryEntry] | None = None, fail: bool = False):
        self.entries = entries or []
        self.fail = fail
        self.queries: list[tuple[str, int]] = []

    @property
    def name(self) -> str:
        return "fixed"

    async def store(self, key, content, category=MemoryCategory.CORE, session_id=None) -> None:
        pass

    async def recall(self, query: str, limit: int = 5, session_id: str | None = None) -> list[MemoryEntry]:
        self.queries.append((query, limit))
        if self.fail:
            raise OSError("index unavailable")
        return self.entries

    async def get(self, key: str) -> MemoryEntry | None:
        return None

    async def list_entries(self, category=None, session_id=None) -> list[MemoryEntry]:
        return list(self.entries)

    async def forget(self, key: str) -> bool:
        return False


class DateTool(Tool):
    @property
    def name(self) -> str:
        return "shell"

    @property
    def description(self) -> str:
        return "Run a command"

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {"command": {"type": "string"}}, "required": ["command"]}

    async def execute(self, **kwargs: Any) -> str:
        return "Mon Jan 1"


def _entry(content: str, score: float | None) -> MemoryEntry:
    return MemoryEntry(id="x", key="k", content=content, category="core", timestamp="", score=score)


@pytest.mark.asyncio
async def test_minimal_prompt_has_only_runtime_context(tmp_path: Path) -> None:
    prompt = await ContextBuilder(tmp_path).build_system_prompt("hi")
    assert prompt.startswith("## Runtime Context\n\n### Current Time\n")
    assert f"### Workspace\n{tmp_path}" in prompt
    assert "---" not in prompt
    assert "Tool Use Protocol" not in prompt
    assert "<available_skills>" not in prompt


@pytest.mark.asyncio
async def test_bootstrap_files_in_fixed_order_with_headers(tmp_path: Path) -> None:
    (tmp_path / "USER.md").write_text("Name: Sam\n", encoding="utf-8")
    (tmp_path / "SOUL.md").write_text("  Be kind.  \n", encoding="utf-8")
    (tmp_path / "TOOLS.md").write_text("   \n", encoding="utf-8")

    prompt = await ContextBuilder(tmp_path).build_system_prompt("hi")
    assert prompt.startswith(
        "## Agent Identity (SOUL.md)\n\nBe kind.\n\n---\n\n## User Context (USER.md)\n\nName: Sam"
    )
    assert "TOOLS.md" not in prompt


@pytest.mark.asyncio
async def test_bootstrap_truncated_at_limit_with_notice(tmp_path: Path) -> None:
    (tmp_path / "SOUL.md").write_text("a" * (BOOTSTRAP_MAX_CHARS + 500), encoding="utf-8")
    prompt = await ContextBuilder(tmp_path).build_system_prompt("hi")
    body = prompt.split("## Agent Identity (SOUL.md)\n\n", 1)[1]
    assert body.startswith("a" * BOOTSTRAP_MAX_CHARS + "\n\n[... truncated at 20000 chars")
    assert "a" * (BOOTSTRAP_MAX_CHARS + 1) not in prompt


@pytest.mark.asyncio
async def test_bootstrap_at_limit_is_verbatim(tmp_path: Path) -> None:
    (tmp_path / "SOUL.md").write_text("b" * BOOTSTRAP_MAX_CHARS, encoding="utf-8")
    prompt = await ContextBuilder(tmp_path).build_system_prompt("hi")
    assert "truncated" not in prompt
    assert "b" * BOOTSTRAP_MAX_CHARS in prompt


@pytest.mark.asyncio
async def test_tool_protocol_lists_registered_tools(tmp_path: Path) -> None:
    tools = ToolRegistry()
    tools.register(DateTool())
    prompt = await ContextBuilder(tmp_path, tools=tools).build_system_prompt("hi")
    assert "## Tool Use Protocol" in prompt
    assert "<tool_call>" in prompt
    assert "### Available Tools" in prompt
    assert '**shell**: Run a command\nParameters: `{"type": "object"' in prompt
    assert prompt.index("## Tool Use Protocol") < prompt.index("## Runtime Context")


@pytest.mark.asyncio
async def test_empty_registry_omits_tool_protocol(tmp_path: Path) -> None:
    prompt = await ContextBuilder(tmp_path, tools=ToolRegistry()).build_system_prompt("hi")
    assert "Tool Use Protocol" not in prompt


@pytest.mark.asyncio
async def test_skills_block_with_default_location(tmp_path: Path) -> None:
    skills = [
        Skill(name="weather", description="Forecasts"),
        Skill(name="notes", description="Notes", location=Path("/opt/skills/notes/SKILL.md")),
    ]
    prompt = await ContextBuilder(tmp_path, skills=skills).build_system_prompt("hi")
    assert "## Available Skills\n\n<available_skills>\n  <skill>\n    <name>weather</name>" in prompt
    assert f"<location>{tmp_path / 'skills' / 'weather' / 'SKILL.md'}</location>" in prompt
    assert "<location>/opt/skills/notes/SKILL.md</location>" in prompt
    assert prompt.rstrip().endswith("</available_skills>")


@pytest.mark.asyncio
async def test_memory_section_filters_by_score(tmp_path: Path) -> None:
    memory = FixedRecallMemory(
        [
            _entry("likes tea", 0.9),
            _entry("weak match", 0.1),
            _entry("unscored fact", None),
            _entry("", 1.0),
        ]
    )
    prompt = await ContextBuilder(tmp_path, memory=memory).build_system_prompt("tea?")
    assert memory.queries == [("tea?", 5)]
    assert prompt.endswith("## Relevant Memory\n\n- likes tea\n\n- unscored fact")
    assert "weak match" not in prompt


@pytest.mark.asyncio
async def test_memory_section_omitted_when_nothing_relevant(tmp_path: Path) -> None:
    memory = FixedRecallMemory([_entry("weak", 0.2)])
    prompt = await ContextBuilder(tmp_path, memory=memory).build_system_prompt("x")
    assert "Relevant Memory" not in prompt


@pytest.mark.asyncio
async def test_memory_failure_still_builds_prompt(tmp_path: Path) -> None:
    memory = FixedRecallMemory(fail=True)
    prompt = await ContextBuilder(tmp_path, memory=memory).build_system_prompt("x")
    assert "## Runtime Context" in prompt
    assert "Relevant Memory" not in prompt


@pytest.mark.asyncio
async def test_build_messages_wraps_history(tmp_path: Path) -> None:
    history = [ChatMessage.user("earlier"), ChatMessage.assistant("reply")]
    messages = await ContextBuilder(tmp_path).build_messages(history, "now")
    assert [m.role for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[1:3] == history
    assert messages[-1].content == "now"
    assert len(history) == 2
