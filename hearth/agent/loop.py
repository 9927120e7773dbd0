"""Agent loop: the core processing engine."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

from loguru import logger

from hearth.agent.context import ContextBuilder
from hearth.agent.loop_guard import ToolLoopDetector, loop_message
from hearth.agent.memory import BaseMemory, MemoryCategory
from hearth.agent.outcome import TurnOutcome, TurnOutcomeKind
from hearth.agent.stream import StreamAccumulator
from hearth.agent.tool_parser import ToolCallTagParser
from hearth.agent.tools.base import ToolSpec
from hearth.agent.tools.registry import ToolRegistry
from hearth.infra.error_types import AgentRuntimeError, ErrorInfo, classify_error
from hearth.infra.retry import RetryPolicy, run_with_retry
from hearth.providers.base import ChatMessage, LLMProvider, LLMResponse, StreamEvent, ToolCall
from hearth.utils.helpers import md5_hex, truncate_chars

DEFAULT_MAX_ITERATIONS = 20
DEFAULT_MAX_HISTORY = 50
COMPACT_KEEP_RECENT = 20
COMPACTION_MAX_SOURCE_CHARS = 12_000
COMPACTION_MAX_SUMMARY_CHARS = 2_000
THINKING_PREVIEW_CHARS = 200

SUMMARY_PREFIX = "[Conversation summary]"
SUMMARIZER_PROMPT = (
    "You are a conversation summarizer. Summarize the following conversation into a concise "
    "context that preserves: user preferences, decisions, unresolved tasks, and key facts. "
    "Keep it under 2000 characters."
)
MAX_ITERATIONS_MESSAGE = "Max iterations reached"
EMPTY_RESPONSE_MESSAGE = "Empty response from model. Please try again."

EventCallback = Callable[[StreamEvent], Awaitable[None] | None]
Responder = Callable[[list[ChatMessage], list[ToolSpec] | None], Awaitable[TurnOutcome]]


class AgentLoop:
    """
    The agent loop is the core processing engine.

    Per user message it:
    1. Builds context (system prompt, history, user message)
    2. Calls the LLM
    3. Executes requested tools and feeds results back
    4. Repeats until the model answers in plain text or the budget runs out

    Turn-fatal failures raise AgentRuntimeError; tool failures are returned to
    the model as data and the loop continues.
    """

    def __init__(
        self,
        provider: LLMProvider,
        context: ContextBuilder,
        tools: ToolRegistry,
        *,
        model: str | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_history: int = DEFAULT_MAX_HISTORY,
        temperature: float = 1.0,
        session_id: str | None = None,
        tag_parser: ToolCallTagParser | None = None,
        retry_policy: RetryPolicy | None = None,
        provider_timeout: float | None = None,
        tool_timeout: float | None = None,
    ):
        self.provider = provider
        self.context = context
        self.tools = tools
        self.model = model or provider.get_default_model()
        self.max_iterations = max(1, max_iterations)
        self.max_history = max(1, max_history)
        self.temperature = temperature
        self.session_id = session_id
        self.tag_parser = tag_parser or ToolCallTagParser()
        self.retry_policy = retry_policy or RetryPolicy()
        self.provider_timeout = provider_timeout
        self.tool_timeout = tool_timeout

        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def memory(self) -> BaseMemory | None:
        return self.context.memory

    async def process(self, message: str, history: list[ChatMessage] | None = None) -> str:
        """
        Process one user message to a final answer.

        Args:
            message: The user message.
            history: Previous conversation messages (no system message).

        Returns:
            The assistant's final text, or "Max iterations reached".

        Raises:
            AgentRuntimeError: On a provider failure after retries, an empty
                response, malformed tool arguments or a detected tool loop.
        """
        return await self._run(message, history, self._respond)

    async def process_stream(
        self,
        message: str,
        history: list[ChatMessage] | None = None,
        on_event: EventCallback | None = None,
    ) -> str:
        """
        Streaming variant of `process()`.

        Every provider event is handed to `on_event` (sync or async) as it
        arrives, so callers can render tokens incrementally.
        """

        async def _respond(messages: list[ChatMessage], specs: list[ToolSpec] | None) -> TurnOutcome:
            return await self._respond_stream(messages, specs, on_event)

        return await self._run(message, history, _respond)

    async def wait_for_background_tasks(self) -> None:
        """Wait for pending background memory writes."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def _run(
        self,
        message: str,
        history: list[ChatMessage] | None,
        respond: Responder,
    ) -> str:
        preview = message[:80] + "..." if len(message) > 80 else message
        logger.info("Processing message (session={}): {}", self.session_id or "-", preview)

        self._store_message("user", message)
        messages = await self.context.build_messages(list(history or []), message)
        detector = ToolLoopDetector()

        for iteration in range(1, self.max_iterations + 1):
            specs = self.tools.get_specs()
            outcome = await respond(list(messages), specs or None)

            if outcome.kind == TurnOutcomeKind.THINKING_ONLY:
                thinking = outcome.thinking[:THINKING_PREVIEW_CHARS]
                raise AgentRuntimeError(
                    kind="incomplete_response",
                    message=f"I was thinking: {thinking}... but didn't complete my response. Please try again.",
                )

            if outcome.kind == TurnOutcomeKind.TEXT:
                messages.append(ChatMessage.assistant(outcome.text))
                self._store_message("assistant", outcome.text)
                logger.debug("Final answer after {} iteration(s)", iteration)
                return outcome.text

            if outcome.kind == TurnOutcomeKind.EMPTY:
                raise AgentRuntimeError(kind="empty_response", message=EMPTY_RESPONSE_MESSAGE)

            repeated = detector.record(outcome.tool_calls)
            if repeated is not None:
                loop_msg = loop_message(repeated, detector.threshold)
                logger.warning(loop_msg)
                raise AgentRuntimeError(kind="tool_loop", message=loop_msg)

            messages.append(ChatMessage.assistant(outcome.text, outcome.tool_calls))
            if outcome.text.strip():
                self._store_message("assistant", outcome.text)

            for tool_call in outcome.tool_calls:
                messages.append(await self._execute_tool_call(tool_call))

            if self._should_compact_history(messages):
                await self._compact_history(messages)

        logger.warning("Max iterations ({}) reached without a final answer", self.max_iterations)
        return MAX_ITERATIONS_MESSAGE

    async def _respond(self, messages: list[ChatMessage], specs: list[ToolSpec] | None) -> TurnOutcome:
        response: LLMResponse = await self._call_provider(
            lambda: self.provider.chat(
                messages,
                tools=specs,
                model=self.model,
                temperature=self.temperature,
            )
        )
        if response.has_tool_calls:
            return TurnOutcome.from_parts(response.content or "", response.tool_calls)
        return self._interpret_text(response.content or "")

    async def _respond_stream(
        self,
        messages: list[ChatMessage],
        specs: list[ToolSpec] | None,
        on_event: EventCallback | None,
    ) -> TurnOutcome:
        delivered = False

        async def _operation() -> StreamAccumulator:
            nonlocal delivered
            accumulator = StreamAccumulator()
            async for event in self.provider.chat_stream(
                messages,
                tools=specs,
                model=self.model,
                temperature=self.temperature,
            ):
                delivered = True
                if on_event is not None:
                    maybe_awaitable = on_event(event)
                    if asyncio.iscoroutine(maybe_awaitable):
                        await maybe_awaitable
                if not accumulator.feed(event):
                    break
            return accumulator

        def _classify(exc: Exception) -> ErrorInfo:
            info = classify_error(exc)
            # Events already reached the caller; a replay would repeat them.
            return ErrorInfo(kind="fatal", message=info.message) if delivered else info

        try:
            accumulator = await self._call_provider(_operation, classify=_classify)
        except Exception as exc:
            if not delivered:
                raise
            raise AgentRuntimeError(
                kind="fatal",
                message=f"Stream interrupted: {classify_error(exc).message}",
            ) from exc

        if accumulator.tool_calls:
            return accumulator.finish()
        parsed = self._interpret_text(accumulator.text)
        return TurnOutcome.from_parts(parsed.text, parsed.tool_calls, accumulator.thinking)

    def _interpret_text(self, text: str) -> TurnOutcome:
        """Recover tagged tool calls from plain text, if any."""
        if not text.strip():
            return TurnOutcome.from_parts("", [])
        parsed = self.tag_parser.parse(text)
        if parsed.tool_calls:
            logger.debug("Recovered {} tool call(s) from response text", len(parsed.tool_calls))
        return TurnOutcome.from_parts(parsed.text, parsed.tool_calls)

    async def _call_provider(
        self,
        operation: Callable[[], Awaitable[Any]],
        *,
        classify: Callable[[Exception], ErrorInfo] = classify_error,
    ) -> Any:
        """Call the provider with unified retry behavior."""

        async def _on_retry(attempt: int, exc: Exception, info: ErrorInfo, delay_seconds: float) -> None:
            logger.warning(
                "Retrying provider call: session={} kind={} attempt={}/{} next_delay={:.2f}s error={}",
                self.session_id or "-",
                info.kind,
                attempt + 1,
                self.retry_policy.max_attempts,
                delay_seconds,
                str(exc)[:200],
            )

        try:
            return await run_with_retry(
                operation,
                policy=self.retry_policy,
                classify=classify,
                on_retry=_on_retry,
                timeout=self.provider_timeout,
            )
        except AgentRuntimeError:
            raise
        except Exception as exc:
            info = classify_error(exc)
            logger.warning(
                "Provider call failed after retries: session={} kind={} error={}",
                self.session_id or "-",
                info.kind,
                info.message[:300],
            )
            raise AgentRuntimeError(
                kind=info.kind,
                message=f"Provider error: {info.message}",
                retry_after_seconds=info.retry_after_seconds,
            ) from exc

    async def _execute_tool_call(self, tool_call: ToolCall) -> ChatMessage:
        args = self._decode_arguments(tool_call)
        logger.info("Tool call: {}({})", tool_call.name, tool_call.arguments[:200])
        result = await self.tools.execute(tool_call.name, args, timeout=self.tool_timeout)
        if not result.success:
            logger.warning("Tool '{}' failed: {}", tool_call.name, result.error)
        return ChatMessage.tool_result(tool_call.id, result.to_json())

    @staticmethod
    def _decode_arguments(tool_call: ToolCall) -> Any:
        raw = tool_call.arguments or ""
        if not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise AgentRuntimeError(
                kind="invalid_tool_arguments",
                message=f"Failed to parse tool arguments for {tool_call.name}: {e}",
            ) from e

    def _store_message(self, role: str, content: str) -> None:
        """Persist a message to daily memory without blocking the turn."""
        memory = self.memory
        if memory is None or not content.strip():
            return
        key = f"msg_{role}_{md5_hex(content)}"
        task = asyncio.create_task(
            memory.store(key, content, MemoryCategory.DAILY, session_id=self.session_id)
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_task_done)

    def _on_background_task_done(self, task: asyncio.Task[None]) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        try:
            task.result()
        except Exception as exc:
            logger.error("Failed to store message in memory: {}", exc)

    @staticmethod
    def _non_system_count(messages: list[ChatMessage]) -> int:
        has_system = bool(messages) and messages[0].role == "system"
        return len(messages) - 1 if has_system else len(messages)

    def _should_compact_history(self, messages: list[ChatMessage]) -> bool:
        return self._non_system_count(messages) > self.max_history

    async def _compact_history(self, messages: list[ChatMessage]) -> None:
        """Replace all but the most recent messages with one summary message, in place."""
        start = 1 if messages and messages[0].role == "system" else 0
        non_system = self._non_system_count(messages)
        compact_count = non_system - min(COMPACT_KEEP_RECENT, non_system)
        if compact_count <= 0:
            return

        end = start + compact_count
        transcript = build_transcript(messages[start:end])
        summary = await self._summarize(transcript)
        messages[start:end] = [ChatMessage.assistant(f"{SUMMARY_PREFIX}\n{summary.strip()}")]
        logger.info(
            "Compacted {} message(s) into a summary of {} chars; {} message(s) remain",
            compact_count,
            len(summary),
            self._non_system_count(messages),
        )

    async def _summarize(self, transcript: str) -> str:
        fallback = truncate_chars(transcript, COMPACTION_MAX_SUMMARY_CHARS)
        prompt = [
            ChatMessage.system(SUMMARIZER_PROMPT),
            ChatMessage.user(f"Summarize this conversation:\n\n{transcript}"),
        ]
        try:
            response: LLMResponse = await self._call_provider(
                lambda: self.provider.chat(prompt, tools=None, model=self.model, temperature=self.temperature)
            )
        except Exception as exc:
            logger.warning("History summarization failed, truncating transcript instead: {}", exc)
            return fallback

        summary = (response.content or "").strip()
        if not summary:
            logger.warning("History summarization returned nothing, truncating transcript instead")
            return fallback
        return summary


def build_transcript(messages: list[ChatMessage]) -> str:
    """Render messages as `ROLE: content` lines for summarization."""
    lines = []
    for msg in messages:
        line = f"{msg.role.upper()}: {msg.content.strip()}"
        if msg.tool_calls:
            names = ", ".join(tc.name for tc in msg.tool_calls)
            line = f"{line} [called tools: {names}]"
        lines.append(line)
    transcript = "\n".join(lines) + "\n"
    return truncate_chars(transcript, COMPACTION_MAX_SOURCE_CHARS)
