"""Infrastructure helpers for runtime control flow."""

from hearth.infra.error_types import (
    AgentRuntimeError,
    ErrorInfo,
    ErrorKind,
    classify_error,
    is_retryable_error_kind,
)
from hearth.infra.retry import RetryPolicy, run_with_retry

__all__ = [
    "ErrorKind",
    "ErrorInfo",
    "AgentRuntimeError",
    "classify_error",
    "is_retryable_error_kind",
    "RetryPolicy",
    "run_with_retry",
]
