"""Agent core module."""

from hearth.agent.context import ContextBuilder
from hearth.agent.factory import create_agent_loop, register_default_tools
from hearth.agent.loop import AgentLoop
from hearth.agent.memory import BaseMemory, MarkdownMemory, MemoryCategory, MemoryEntry
from hearth.agent.skills import Skill, SkillsLoader
from hearth.agent.tool_parser import ToolCallTagParser

__all__ = [
    "AgentLoop",
    "BaseMemory",
    "ContextBuilder",
    "MarkdownMemory",
    "MemoryCategory",
    "MemoryEntry",
    "Skill",
    "SkillsLoader",
    "ToolCallTagParser",
    "create_agent_loop",
    "register_default_tools",
]
