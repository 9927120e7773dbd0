"""
Fallback parser for tool calls embedded in plain model text.

Some providers do not separate tool calls from text. Models prompted with
the tag protocol emit calls as tagged JSON instead:

    Let me check.
    <tool_call>
    {"name": "shell", "arguments": {"command": "date"}}
    </tool_call>

The parser recovers those calls and the surrounding plain text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Sequence

import json_repair

from hearth.providers.base import ToolCall
from hearth.utils.helpers import md5_hex

# (opening tag, closing tag), matched leftmost-first.
DEFAULT_TAG_PAIRS: tuple[tuple[str, str], ...] = (
    ("<tool_call>", "</tool_call>"),
    ("<function=", "</function>"),
    ("<invoke", "</invoke>"),
)


@dataclass
class ParsedResponse:
    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)


def tool_call_id(arguments: str) -> str:
    """Deterministic call id derived from the serialized arguments only."""
    return f"call_{md5_hex(arguments)}"


def serialize_arguments(arguments: Any) -> str:
    """Compact JSON for tool arguments; strings holding JSON are normalized too."""
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            return json.dumps(arguments, ensure_ascii=False)
    return json.dumps(arguments, ensure_ascii=False, separators=(",", ":"))


def extract_json_objects(text: str, *, repair: bool = True) -> list[Any]:
    """
    Decode every balanced top-level `{...}` span in text.

    Brace depth ignores braces inside double-quoted strings and honours
    backslash escapes. Spans that do not decode are dropped.
    """
    values: list[Any] = []
    depth = 0
    start: int | None = None
    in_string = False
    escape_next = False

    for i, ch in enumerate(text):
        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                value = _decode(text[start:i + 1], repair=repair)
                if value is not None:
                    values.append(value)
                start = None

    return values


def _decode(span: str, *, repair: bool) -> Any | None:
    try:
        return json.loads(span)
    except json.JSONDecodeError:
        if not repair:
            return None
    repaired = json_repair.loads(span)
    return repaired if isinstance(repaired, dict) else None


class ToolCallTagParser:
    """Recovers tool calls from tag-delimited JSON in a text response."""

    def __init__(
        self,
        tag_pairs: Sequence[tuple[str, str]] = DEFAULT_TAG_PAIRS,
        *,
        repair_json: bool = True,
    ):
        if not tag_pairs:
            raise ValueError("At least one tag pair is required")
        self.tag_pairs = tuple(tag_pairs)
        self.repair_json = repair_json

    def parse(self, response: str) -> ParsedResponse:
        """Split a response into plain text and recovered tool calls."""
        text_parts: list[str] = []
        calls: list[ToolCall] = []
        remaining = response

        while (found := self._find_first_tag(remaining)) is not None:
            start, open_tag, close_tag = found
            before = remaining[:start].strip()
            if before:
                text_parts.append(before)

            after_open = remaining[start + len(open_tag):]
            close_idx = after_open.find(close_tag)
            if close_idx < 0:
                # Unclosed tag: everything from the tag on is trailing text.
                remaining = remaining[start:]
                break

            for value in extract_json_objects(after_open[:close_idx], repair=self.repair_json):
                call = self._to_tool_call(value)
                if call is not None:
                    calls.append(call)
            remaining = after_open[close_idx + len(close_tag):]

        if remaining.strip():
            text_parts.append(remaining.strip())

        return ParsedResponse(text="\n".join(text_parts), tool_calls=calls)

    def _find_first_tag(self, text: str) -> tuple[int, str, str] | None:
        best: tuple[int, str, str] | None = None
        for open_tag, close_tag in self.tag_pairs:
            idx = text.find(open_tag)
            if idx >= 0 and (best is None or idx < best[0]):
                best = (idx, open_tag, close_tag)
        return best

    @staticmethod
    def _to_tool_call(value: Any) -> ToolCall | None:
        if not isinstance(value, dict):
            return None
        name = value.get("name")
        if not isinstance(name, str) or not name or "arguments" not in value:
            return None
        arguments = serialize_arguments(value["arguments"])
        return ToolCall(id=tool_call_id(arguments), name=name, arguments=arguments)
