"""Context builder for assembling agent prompts."""

from __future__ import annotations

import json
import time
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from hearth.agent.memory import BaseMemory
from hearth.agent.skills import SKILL_FILE, Skill, skills_dir
from hearth.providers.base import ChatMessage

if TYPE_CHECKING:
    from hearth.agent.tools.registry import ToolRegistry

BOOTSTRAP_MAX_CHARS = 20_000
MEMORY_RECALL_LIMIT = 5
MEMORY_MIN_RELEVANCE_SCORE = 0.4
SECTION_SEPARATOR = "\n\n---\n\n"

TOOL_PROTOCOL = """## Tool Use Protocol

To use a tool, wrap a JSON object in <tool_call> tags:

```
<tool_call>
{"name": "tool_name", "arguments": {"param": "value"}}
</tool_call>
```

CRITICAL: Output actual <tool_call> tags. Never describe steps or give examples.

Example: User says "what's the date?". You MUST respond with:
<tool_call>
{"name":"shell","arguments":{"command":"date"}}
</tool_call>

You may use multiple tool calls in a single response. After tool execution, results appear in <tool_result> tags. Continue reasoning with the results until you can give a final answer.

### Available Tools
"""


class ContextBuilder:
    """
    Builds the context (system prompt + messages) for the agent.

    Assembles bootstrap files, the tool protocol, runtime facts, skills and
    recalled memory into one system prompt. Every optional section degrades
    to nothing on failure; the prompt always builds.
    """

    BOOTSTRAP_FILES = [
        ("SOUL.md", "## Agent Identity (SOUL.md)"),
        ("TOOLS.md", "## Local Tool Notes (TOOLS.md)"),
        ("USER.md", "## User Context (USER.md)"),
    ]

    def __init__(
        self,
        workspace: Path,
        memory: BaseMemory | None = None,
        skills: list[Skill] | None = None,
        tools: ToolRegistry | None = None,
    ):
        self.workspace = workspace
        self.memory = memory
        self.skills = list(skills or [])
        self.tools = tools

    async def build_system_prompt(self, user_message: str) -> str:
        """
        Build the system prompt for one turn.

        Args:
            user_message: The incoming message, used as the memory recall query.

        Returns:
            Sections joined with a horizontal-rule separator.
        """
        parts: list[str] = []

        bootstrap = self._load_bootstrap_files()
        if bootstrap:
            parts.append(bootstrap)

        tool_instructions = self._get_tool_instructions()
        if tool_instructions:
            parts.append(tool_instructions)

        parts.append(self._get_runtime_context())

        skills_context = self._get_skills_context()
        if skills_context:
            parts.append(skills_context)

        memory_context = await self._get_memory_context(user_message)
        if memory_context:
            parts.append(memory_context)

        return SECTION_SEPARATOR.join(parts)

    async def build_messages(
        self,
        history: list[ChatMessage],
        current_message: str,
    ) -> list[ChatMessage]:
        """
        Build the complete message list for an LLM call.

        Args:
            history: Previous conversation messages, without a system message.
            current_message: The new user message.

        Returns:
            System prompt, the history unchanged, then the user message.
        """
        messages = [ChatMessage.system(await self.build_system_prompt(current_message))]
        messages.extend(history)
        messages.append(ChatMessage.user(current_message))
        return messages

    def _load_bootstrap_files(self) -> str:
        """Load the bootstrap files present in the workspace."""
        parts = []

        for filename, header in self.BOOTSTRAP_FILES:
            file_path = self.workspace / filename
            if not file_path.is_file():
                continue
            try:
                content = file_path.read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Skipping bootstrap file {}: {}", file_path, exc)
                continue
            if not content:
                continue
            if len(content) > BOOTSTRAP_MAX_CHARS:
                content = (
                    f"{content[:BOOTSTRAP_MAX_CHARS]}\n\n"
                    f"[... truncated at {BOOTSTRAP_MAX_CHARS} chars - use file_read for full content]\n"
                )
            parts.append(f"{header}\n\n{content}")

        return SECTION_SEPARATOR.join(parts)

    def _get_tool_instructions(self) -> str:
        if self.tools is None:
            return ""
        specs = self.tools.get_specs()
        if not specs:
            return ""

        lines = [TOOL_PROTOCOL]
        for spec in specs:
            schema = json.dumps(spec.parameters_schema, ensure_ascii=False)
            lines.append(f"**{spec.name}**: {spec.description}\nParameters: `{schema}`\n")
        return "\n".join(lines)

    def _get_runtime_context(self) -> str:
        now = datetime.now().strftime("%Y-%m-%d %H:%M (%A)")
        tz = time.strftime("%Z") or "UTC"
        return f"""## Runtime Context

### Current Time
{now} ({tz})

### Workspace
{self.workspace}"""

    def _get_skills_context(self) -> str:
        if not self.skills:
            return ""

        parts = ["## Available Skills\n\n<available_skills>"]
        for skill in self.skills:
            location = skill.location or skills_dir(self.workspace) / skill.name / SKILL_FILE
            parts.append(
                "  <skill>\n"
                f"    <name>{skill.name}</name>\n"
                f"    <description>{skill.description}</description>\n"
                f"    <location>{location}</location>\n"
                "  </skill>"
            )
        parts.append("</available_skills>")
        return "\n".join(parts)

    async def _get_memory_context(self, user_message: str) -> str:
        if self.memory is None:
            return ""
        try:
            entries = await self.memory.recall(user_message, MEMORY_RECALL_LIMIT)
        except Exception as exc:
            logger.warning("Memory recall failed, continue without memory: {}", exc)
            return ""

        relevant = [
            entry
            for entry in entries
            if (entry.score is None or entry.score >= MEMORY_MIN_RELEVANCE_SCORE)
            and entry.content.strip()
        ]
        if not relevant:
            return ""
        return "\n\n".join(["## Relevant Memory", *(f"- {entry.content}" for entry in relevant)])
