"""Reducer that folds streamed provider events into a turn outcome."""

from __future__ import annotations

from hearth.agent.outcome import TurnOutcome
from hearth.providers.base import (
    DoneEvent,
    StreamEvent,
    ThinkingEvent,
    TokenEvent,
    ToolCall,
    ToolCallEvent,
)


class StreamAccumulator:
    """
    Accumulates token, thinking and tool-call events for one response.

    `feed()` returns False once a DoneEvent has been seen; events after that
    are ignored. `finish()` produces the outcome whether or not the stream
    ended cleanly.
    """

    def __init__(self) -> None:
        self._text: list[str] = []
        self._thinking: list[str] = []
        self._tool_calls: list[ToolCall] = []
        self.done = False

    def feed(self, event: StreamEvent) -> bool:
        if self.done:
            return False
        if isinstance(event, TokenEvent):
            self._text.append(event.text)
        elif isinstance(event, ThinkingEvent):
            self._thinking.append(event.text)
        elif isinstance(event, ToolCallEvent):
            self._tool_calls.append(event.tool_call)
        elif isinstance(event, DoneEvent):
            self.done = True
            return False
        return True

    @property
    def text(self) -> str:
        return "".join(self._text)

    @property
    def thinking(self) -> str:
        return "".join(self._thinking)

    @property
    def tool_calls(self) -> list[ToolCall]:
        return list(self._tool_calls)

    def finish(self) -> TurnOutcome:
        return TurnOutcome.from_parts(self.text, self._tool_calls, self.thinking)
