"""LLM provider abstraction module."""

from hearth.providers.base import (
    ChatMessage,
    DoneEvent,
    LLMProvider,
    LLMResponse,
    StreamEvent,
    ThinkingEvent,
    TokenEvent,
    ToolCall,
    ToolCallEvent,
)

__all__ = [
    "ChatMessage",
    "DoneEvent",
    "LLMProvider",
    "LLMResponse",
    "StreamEvent",
    "ThinkingEvent",
    "TokenEvent",
    "ToolCall",
    "ToolCallEvent",
]
