"""Wiring of workspace, memory, skills, tools and the agent loop from config."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from hearth.agent.context import ContextBuilder
from hearth.agent.loop import AgentLoop
from hearth.agent.memory import BaseMemory, MarkdownMemory
from hearth.agent.skills import SkillsLoader
from hearth.agent.tools.filesystem import ReadFileTool, WriteFileTool
from hearth.agent.tools.memory import MemoryReadTool, MemoryWriteTool
from hearth.agent.tools.registry import ToolRegistry
from hearth.agent.tools.shell import DEFAULT_SHELL_TIMEOUT, ShellTool
from hearth.config.schema import Config
from hearth.infra.retry import RetryPolicy
from hearth.providers.base import LLMProvider
from hearth.workspace import ensure_workspace


def register_default_tools(
    registry: ToolRegistry,
    workspace: Path,
    memory: BaseMemory | None = None,
    *,
    restrict_to_workspace: bool = False,
    shell_timeout: int = DEFAULT_SHELL_TIMEOUT,
) -> ToolRegistry:
    """Register the built-in tool set. Memory tools need a memory backend."""
    registry.register(ReadFileTool(workspace, restrict_to_workspace=restrict_to_workspace))
    registry.register(WriteFileTool(workspace, restrict_to_workspace=restrict_to_workspace))
    registry.register(ShellTool(workspace, timeout=shell_timeout))
    if memory is not None:
        registry.register(MemoryReadTool(memory))
        registry.register(MemoryWriteTool(memory))
    return registry


def create_agent_loop(
    config: Config,
    provider: LLMProvider,
    *,
    memory: BaseMemory | None = None,
    registry: ToolRegistry | None = None,
    session_id: str | None = None,
) -> AgentLoop:
    """
    Build a ready-to-use AgentLoop.

    Args:
        config: Loaded configuration.
        provider: LLM provider implementation.
        memory: Memory backend; a MarkdownMemory in the workspace by default.
        registry: Pre-populated registry; built-in tools are added to it.
        session_id: Optional session tag for memory writes.
    """
    workspace = ensure_workspace(config.workspace_path)
    memory = memory or MarkdownMemory(workspace)
    skills = SkillsLoader(workspace).load()

    tools = register_default_tools(
        registry or ToolRegistry(),
        workspace,
        memory,
        restrict_to_workspace=config.tools.restrict_to_workspace,
        shell_timeout=config.tools.shell_timeout,
    )
    context = ContextBuilder(workspace, memory=memory, skills=skills, tools=tools)

    agent = config.agent
    retry = config.retry
    logger.info(
        "Agent ready: model={} tools={} skills={} memory={}",
        agent.model,
        len(tools),
        len(skills),
        memory.name,
    )
    return AgentLoop(
        provider,
        context,
        tools,
        model=agent.model,
        max_iterations=agent.max_iterations,
        max_history=agent.max_history,
        temperature=agent.temperature,
        session_id=session_id,
        retry_policy=RetryPolicy(
            max_attempts=retry.max_attempts,
            base_delay_ms=retry.base_delay_ms,
            max_delay_ms=retry.max_delay_ms,
            jitter_ratio=retry.jitter_ratio,
        ),
        provider_timeout=agent.provider_timeout,
        tool_timeout=agent.tool_timeout,
    )
