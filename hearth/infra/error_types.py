"""Runtime error typing for retries and turn-level failures."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

ErrorKind = Literal[
    "transient_http",
    "rate_limit",
    "timeout",
    "context_overflow",
    "fatal",
    "tool_loop",
    "invalid_tool_arguments",
    "empty_response",
    "incomplete_response",
]


@dataclass(frozen=True)
class ErrorInfo:
    """Normalized runtime error metadata."""

    kind: ErrorKind
    message: str
    retry_after_seconds: float | None = None


class AgentRuntimeError(RuntimeError):
    """Turn-fatal error carrying a normalized kind."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        retry_after_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.retry_after_seconds = retry_after_seconds


RETRY_AFTER_RE = re.compile(r"retry[-_\s]?after[^0-9]*(\d+(?:\.\d+)?)", re.IGNORECASE)
RETRYABLE_KINDS: frozenset[str] = frozenset({"transient_http", "rate_limit", "timeout"})

# First matching rule wins. Timeout phrases stay specific; "timeout must be an int" is not transient.
CLASSIFICATION_RULES: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (
        "timeout",
        (
            "timed out",
            "timeouterror",
            "timeout error",
            "read timeout",
            "connect timeout",
            "request timeout",
            "deadline exceeded",
            "status 408",
        ),
    ),
    ("rate_limit", ("rate limit", "rate_limit", "too many requests", " 429", "(429)", "status 429")),
    (
        "context_overflow",
        ("context length", "context window", "token limit", "too many tokens", "maximum context"),
    ),
    (
        "transient_http",
        (
            "connection reset",
            "connection aborted",
            "connection error",
            "connection refused",
            "econnreset",
            "network",
            "temporarily unavailable",
            "service unavailable",
            "bad gateway",
            "gateway timeout",
            "server error",
            "overloaded",
            "status 500",
            "status 502",
            "status 503",
            "status 504",
        ),
    ),
)


def parse_retry_after(text: str) -> float | None:
    """Seconds from a `retry-after: N` style hint in an error message, if positive."""
    match = RETRY_AFTER_RE.search(text)
    if match is None:
        return None
    seconds = float(match.group(1))
    return seconds if seconds > 0 else None


def _kind_for(error: BaseException | str, lowered: str) -> ErrorKind:
    if isinstance(error, TimeoutError):
        return "timeout"
    for kind, keywords in CLASSIFICATION_RULES:
        if any(keyword in lowered for keyword in keywords):
            return kind
    if isinstance(error, ConnectionError):
        return "transient_http"
    return "fatal"


def classify_error(error: BaseException | str) -> ErrorInfo:
    """
    Map an exception or message onto an ErrorKind.

    Matching is by keyword so it works for any provider or tool backend. An
    AgentRuntimeError keeps the kind it was raised with.
    """
    if isinstance(error, AgentRuntimeError):
        return ErrorInfo(kind=error.kind, message=str(error), retry_after_seconds=error.retry_after_seconds)

    text = str(error)
    return ErrorInfo(
        kind=_kind_for(error, text.lower()),
        message=text or type(error).__name__,
        retry_after_seconds=parse_retry_after(text),
    )


def is_retryable_error_kind(kind: ErrorKind) -> bool:
    return kind in RETRYABLE_KINDS
