"""Completion streaming orchestrator.

Drives the provider call for each candidate model in priority order,
demultiplexes the incremental stream into output events, re-issues a
reduced prompt on the same model when a structured response is truncated,
and falls back to the next model on provider failure.

Per attempt: STARTING -> STREAMING -> {CONTINUING -> STREAMING | SUCCEEDED
| FAILED}. CONTINUING is bounded by `max_continuations`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from schemas.ai import FRAGMENTS_RESPONSE_SCHEMA, OutputEvent
from services.ai import prompt_builder, stream_demux, token_estimator
from services.ai.exceptions import EventSinkError
from services.ai.interfaces import (
    CompletionChunk,
    CompletionRequest,
    EventSink,
    ProviderClientProtocol,
)
from services.ai.models import (
    ModelCandidate,
    PromptSpec,
    ResponseFormat,
    RunResult,
    effective_format,
)
from services.ai.stream_state import DecodeMode, StreamState
from services.ai.usage import UsageRecorder


logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTINUATIONS = 3

FINISH_STOP = "stop"
FINISH_LENGTH = "length"


def decode_mode_for(prompt: PromptSpec, candidate: ModelCandidate) -> DecodeMode:
    """Reconcile the requested response format with what the model supports."""
    if effective_format(prompt.response_format, candidate) is ResponseFormat.STRUCTURED:
        return DecodeMode.STRUCTURED
    if prompt.response_format is ResponseFormat.STRUCTURED:
        return DecodeMode.BUFFERED
    return DecodeMode.FREEFORM


class _Cancelled(Exception):
    """Internal signal: the caller asked to stop the whole run."""


class CompletionOrchestrator:
    """Shared core behind the HTTP and in-process adapters.

    The instance holds only collaborators; every `run` owns its own state,
    so one orchestrator can serve concurrent requests.
    """

    def __init__(
        self,
        provider: ProviderClientProtocol,
        usage_recorder: UsageRecorder | None = None,
        max_continuations: int = DEFAULT_MAX_CONTINUATIONS,
    ) -> None:
        self.provider = provider
        self.usage_recorder = usage_recorder or UsageRecorder()
        self.max_continuations = max_continuations

    async def run(
        self,
        prompt: PromptSpec,
        candidates: Sequence[ModelCandidate],
        input_paragraphs: Sequence[str],
        on_event: EventSink,
        *,
        user_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> RunResult:
        """Stream a completion, falling back across `candidates` in order.

        Provider and sink failures are handled by moving to the next
        candidate; only exhaustion is reported, as `succeeded=False`.
        Setting `cancel_event` (or cancelling the task) stops the whole run.
        """
        ledger_tasks: set[asyncio.Task[bool]] = set()
        try:
            for candidate in candidates:
                if cancel_event is not None and cancel_event.is_set():
                    return RunResult(succeeded=False, cancelled=True)
                try:
                    succeeded = await self._attempt(
                        prompt,
                        candidate,
                        input_paragraphs,
                        on_event,
                        user_id=user_id,
                        cancel_event=cancel_event,
                        ledger_tasks=ledger_tasks,
                    )
                except _Cancelled:
                    logger.info("Run cancelled during model %s", candidate.name)
                    return RunResult(
                        succeeded=False, model=candidate.name, cancelled=True
                    )
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Model %s requires fallback: %s", candidate.name, exc
                    )
                    continue

                if succeeded:
                    logger.info("Model %s processed successfully", candidate.name)
                    return RunResult(succeeded=True, model=candidate.name)
                logger.warning("Model %s did not complete; trying next", candidate.name)

            logger.error("All %d candidate models failed", len(candidates))
            return RunResult(succeeded=False)
        finally:
            await self._drain_ledger_tasks(ledger_tasks)

    async def _attempt(
        self,
        prompt: PromptSpec,
        candidate: ModelCandidate,
        input_paragraphs: Sequence[str],
        on_event: EventSink,
        *,
        user_id: str | None,
        cancel_event: asyncio.Event | None,
        ledger_tasks: set[asyncio.Task[bool]],
    ) -> bool:
        state = StreamState(mode=decode_mode_for(prompt, candidate))

        def emit(event: OutputEvent) -> None:
            try:
                on_event(event)
            except Exception as exc:  # noqa: BLE001
                raise EventSinkError(f"Event sink failed: {exc}") from exc
            state.delivered = True

        system_tokens = token_estimator.estimate_tokens(prompt.system_prompt)
        user_prompt = prompt.user_prompt
        user_tokens = token_estimator.estimate_tokens(user_prompt)
        max_tokens = token_estimator.initial_output_budget(system_tokens, user_tokens)
        continuations = 0
        logger.info(
            "Attempting model %s mode=%s system_tokens=%d user_tokens=%d max_tokens=%d",
            candidate.name,
            state.mode.value,
            system_tokens,
            user_tokens,
            max_tokens,
        )

        while True:
            state.begin_pass()
            request = CompletionRequest(
                model=candidate.name,
                system_prompt=prompt.system_prompt,
                user_prompt=user_prompt,
                temperature=candidate.temperature,
                max_tokens=max_tokens,
                response_schema=(
                    FRAGMENTS_RESPONSE_SCHEMA
                    if state.mode is DecodeMode.STRUCTURED
                    else None
                ),
            )
            await self._consume_pass(request, state, emit, cancel_event)

            if not (state.truncated and state.mode is DecodeMode.STRUCTURED):
                break

            consumed = state.consumed_input_count(len(input_paragraphs))
            remaining = list(input_paragraphs[consumed:])
            if not remaining:
                logger.info(
                    "Model %s truncated after covering all input", candidate.name
                )
                state.stop_seen = True
                break
            if continuations >= self.max_continuations:
                logger.warning(
                    "Model %s still truncated after %d continuations",
                    candidate.name,
                    continuations,
                )
                return False

            continuations += 1
            user_prompt = prompt_builder.build_user_prompt(prompt.feature, remaining)
            user_tokens = token_estimator.estimate_tokens(user_prompt)
            max_tokens = token_estimator.continuation_output_budget(
                system_tokens, user_tokens
            )
            logger.warning(
                "Token limit reached on model %s; continuing with %d remaining "
                "paragraphs (continuation %d/%d, max_tokens=%d)",
                candidate.name,
                len(remaining),
                continuations,
                self.max_continuations,
                max_tokens,
            )

        self._finish_attempt(state, emit, input_paragraphs, candidate)
        if not state.succeeded:
            return False

        if state.usage is not None:
            # The ledger call is issued before `done` is delivered.
            task = asyncio.create_task(
                self.usage_recorder.record_usage(user_id, state.usage)
            )
            ledger_tasks.add(task)
        else:
            logger.debug("Model %s reported no usage footer", candidate.name)
        # The answer is complete and billed; a sink failure here must not
        # trigger another model.
        try:
            emit(OutputEvent.finished())
        except EventSinkError as exc:
            logger.warning(
                "Event sink rejected completion marker for model %s: %s",
                candidate.name,
                exc,
            )
        return True

    async def _consume_pass(
        self,
        request: CompletionRequest,
        state: StreamState,
        emit: stream_demux.Emit,
        cancel_event: asyncio.Event | None,
    ) -> None:
        stream = self.provider.create_completion(request)
        try:
            async for chunk in stream:
                if cancel_event is not None and cancel_event.is_set():
                    raise _Cancelled()
                self._apply_chunk(chunk, state, emit)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _apply_chunk(
        self, chunk: CompletionChunk, state: StreamState, emit: stream_demux.Emit
    ) -> None:
        if chunk.content:
            state.buffer += chunk.content
            if state.mode is DecodeMode.STRUCTURED:
                stream_demux.drain_structured(state, emit)
            elif state.mode is DecodeMode.FREEFORM:
                stream_demux.drain_freeform(state, emit)

        if chunk.finish_reason:
            state.finish_reason = chunk.finish_reason
            if chunk.finish_reason == FINISH_STOP:
                state.stop_seen = True
            elif chunk.finish_reason == FINISH_LENGTH:
                state.truncated = True

        if chunk.usage is not None:
            state.add_usage(chunk.usage)

    def _finish_attempt(
        self,
        state: StreamState,
        emit: stream_demux.Emit,
        input_paragraphs: Sequence[str],
        candidate: ModelCandidate,
    ) -> None:
        if state.mode is DecodeMode.FREEFORM:
            stream_demux.flush_freeform(state, emit)
        elif state.mode is DecodeMode.BUFFERED:
            stream_demux.flush_buffered(state, emit, input_paragraphs)
        elif "{" in state.buffer:
            logger.warning(
                "Dropping incomplete structured output from model %s (%d chars)",
                candidate.name,
                len(state.buffer),
            )

        if state.truncated and state.mode is not DecodeMode.STRUCTURED:
            logger.warning(
                "Freeform response from model %s was truncated; delivering as is",
                candidate.name,
            )
        state.succeeded = state.stop_seen or state.delivered

    async def _drain_ledger_tasks(self, tasks: set[asyncio.Task[bool]]) -> None:
        if not tasks:
            return
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.error("Usage ledger update failed: %s", result)
