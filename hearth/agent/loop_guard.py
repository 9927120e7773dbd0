"""Detection of a model repeating the same tool call."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from hearth.providers.base import ToolCall
from hearth.utils.helpers import md5_hex

DEFAULT_LOOP_WINDOW = 5
DEFAULT_LOOP_THRESHOLD = 3


@dataclass(frozen=True)
class ToolCallSignature:
    name: str
    args_hash: str

    @classmethod
    def of(cls, tool_call: ToolCall) -> ToolCallSignature:
        return cls(name=tool_call.name, args_hash=md5_hex(tool_call.arguments))


class ToolLoopDetector:
    """
    Sliding window over recent tool-call signatures.

    A loop is reported when `threshold` consecutive signatures in the window
    are identical. Calls with different arguments break the run.
    """

    def __init__(self, window: int = DEFAULT_LOOP_WINDOW, threshold: int = DEFAULT_LOOP_THRESHOLD):
        if threshold < 2 or window < threshold:
            raise ValueError("window must be >= threshold and threshold >= 2")
        self.threshold = threshold
        self._recent: deque[ToolCallSignature] = deque(maxlen=window)

    def record(self, tool_calls: list[ToolCall]) -> ToolCallSignature | None:
        """Push calls in order; return the repeated signature if a loop formed."""
        for tool_call in tool_calls:
            self._recent.append(ToolCallSignature.of(tool_call))
        return self.detect()

    def detect(self) -> ToolCallSignature | None:
        run = 0
        previous: ToolCallSignature | None = None
        for signature in self._recent:
            run = run + 1 if signature == previous else 1
            previous = signature
            if run >= self.threshold:
                return signature
        return None

    def reset(self) -> None:
        self._recent.clear()


def loop_message(signature: ToolCallSignature, count: int) -> str:
    return (
        f"Tool loop detected: '{signature.name}' called {count} times with same arguments. "
        "The model may be stuck. Try rephrasing your request or using a larger model."
    )
