"""AI-powered text transformation endpoints."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, Sequence
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from dependencies.ai import get_completion_orchestrator, get_request_user_id
from schemas.ai import AIProcessRequest, OutputEvent, StreamErrorEvent
from services.ai.exceptions import AllModelsFailedError
from services.ai.model_selector import select_models
from services.ai.models import ModelCandidate, PromptSpec, RunResult
from services.ai.orchestrator import CompletionOrchestrator
from services.ai.prompt_builder import build_prompt


__all__ = [
    "process_text",
    "stream_process_events",
]


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])

STREAM_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _terminal_error_line() -> str:
    return StreamErrorEvent(message=AllModelsFailedError().message).to_line()


@router.post(
    "/process",
    response_class=StreamingResponse,
    summary="Stream a text transformation as newline-delimited JSON",
)
async def process_text(
    payload: AIProcessRequest,
    orchestrator: Annotated[
        CompletionOrchestrator, Depends(get_completion_orchestrator)
    ],
    user_id: Annotated[str, Depends(get_request_user_id)],
) -> StreamingResponse:
    """Rephrase, expand, shorten or summarize the selected paragraphs.

    Each line of the response body is one JSON object:
      structuredFragment: {index, content, sourceFragments} (rephrase)
      textDelta: incremental text (freeform features)
      done: true once a model finished successfully
      type/message: terminal error when every model failed

    Unknown features are rejected with 400 before any model is called.
    """
    prompt = build_prompt(
        payload.feature,
        payload.text,
        preceding_text=payload.preceding_text,
        following_text=payload.following_text,
        custom_instructions=payload.custom_instructions,
        prompt_contexts=payload.prompt_contexts,
    )
    candidates = select_models(prompt.feature)
    logger.info(
        "Processing %s request: paragraphs=%d candidates=%d",
        prompt.feature.value,
        len(payload.text),
        len(candidates),
    )
    return StreamingResponse(
        stream_process_events(
            orchestrator,
            prompt,
            candidates,
            payload.text,
            user_id=user_id,
        ),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


async def stream_process_events(
    orchestrator: CompletionOrchestrator,
    prompt: PromptSpec,
    candidates: Sequence[ModelCandidate],
    input_paragraphs: Sequence[str],
    *,
    user_id: str | None = None,
) -> AsyncGenerator[str, None]:
    """Run the orchestrator in a task and relay its events as lines.

    The orchestrator's sink is synchronous, so events are queued and yielded
    from here. Closing the generator (client disconnect) cancels the run.
    """
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    cancel_event = asyncio.Event()

    def on_event(event: OutputEvent) -> None:
        queue.put_nowait(event.to_line())

    async def _run() -> RunResult:
        try:
            return await orchestrator.run(
                prompt,
                candidates,
                input_paragraphs,
                on_event,
                user_id=user_id,
                cancel_event=cancel_event,
            )
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(_run())
    try:
        while (line := await queue.get()) is not None:
            yield line

        try:
            result = await task
        except Exception:
            logger.exception("Completion run crashed")
            yield _terminal_error_line()
            return

        if not result.succeeded and not result.cancelled:
            yield _terminal_error_line()
    finally:
        if not task.done():
            logger.info("Client went away; cancelling completion run")
            cancel_event.set()
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
