"""Outcome states for one model response within an agent turn.

The loop branches on an explicit outcome instead of re-inspecting raw
provider output in several places.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from hearth.providers.base import ToolCall

TurnOutcomeKind = Enum(
    "TurnOutcomeKind",
    [
        "TOOL_CALLS",  # Model asked for one or more tools
        "TEXT",  # Final text answer
        "THINKING_ONLY",  # Reasoning arrived but no answer or calls
        "EMPTY",  # Nothing usable at all
    ],
)


@dataclass
class TurnOutcome:
    """Interpreted result of a single provider response."""

    kind: TurnOutcomeKind
    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    thinking: str = ""

    @classmethod
    def from_parts(cls, text: str, tool_calls: list[ToolCall], thinking: str = "") -> "TurnOutcome":
        text = text or ""
        if tool_calls:
            kind = TurnOutcomeKind.TOOL_CALLS
        elif text.strip():
            kind = TurnOutcomeKind.TEXT
        elif thinking.strip():
            kind = TurnOutcomeKind.THINKING_ONLY
        else:
            kind = TurnOutcomeKind.EMPTY
        return cls(kind=kind, text=text, tool_calls=list(tool_calls), thinking=thinking)

    def is_final(self) -> bool:
        """Return True if this outcome ends the turn with an answer."""
        return self.kind == TurnOutcomeKind.TEXT

    def has_tool_calls(self) -> bool:
        return self.kind == TurnOutcomeKind.TOOL_CALLS
