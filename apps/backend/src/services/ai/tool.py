"""In-process adapter for embedding text transformations.

Exposes the same orchestration as the HTTP endpoint to callers living in the
same process (editor plugins, background jobs): events are handed to a
callback instead of being written to a response body.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from core.config import get_settings
from schemas.ai import AIProcessRequest
from services.ai.exceptions import (
    AIProcessingError,
    AllModelsFailedError,
    InvalidAIRequestError,
)
from services.ai.interfaces import EventSink
from services.ai.model_factory import get_provider_client
from services.ai.model_selector import select_models
from services.ai.models import RunResult
from services.ai.orchestrator import CompletionOrchestrator
from services.ai.prompt_builder import build_prompt
from services.ai.usage import UsageRecorder


logger = logging.getLogger(__name__)

ErrorCallback = Callable[[AIProcessingError], None]


def _parse_payload(payload: AIProcessRequest | Mapping[str, Any]) -> AIProcessRequest:
    if isinstance(payload, AIProcessRequest):
        return payload
    try:
        return AIProcessRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidAIRequestError(
            f"Invalid request payload: {exc.error_count()} validation error(s)"
        ) from exc


def _default_orchestrator() -> CompletionOrchestrator:
    return CompletionOrchestrator(
        provider=get_provider_client(),
        usage_recorder=UsageRecorder(),
        max_continuations=get_settings().AI_MAX_CONTINUATIONS,
    )


async def process_ai_request(
    payload: AIProcessRequest | Mapping[str, Any],
    on_stream: EventSink,
    on_error: ErrorCallback,
    *,
    cancel_event: asyncio.Event | None = None,
    orchestrator: CompletionOrchestrator | None = None,
    user_id: str | None = None,
) -> RunResult:
    """Run a text transformation and deliver events to `on_stream`.

    Invalid payloads and unknown features raise before any provider call.
    When every candidate model fails, `on_error` receives an
    `AllModelsFailedError` and the failed `RunResult` is returned.
    """
    request = _parse_payload(payload)
    prompt = build_prompt(
        request.feature,
        request.text,
        preceding_text=request.preceding_text,
        following_text=request.following_text,
        custom_instructions=request.custom_instructions,
        prompt_contexts=request.prompt_contexts,
    )
    candidates = select_models(prompt.feature)
    runner = orchestrator or _default_orchestrator()

    result = await runner.run(
        prompt,
        candidates,
        request.text,
        on_stream,
        user_id=user_id,
        cancel_event=cancel_event,
    )
    if not result.succeeded and not result.cancelled:
        logger.error("In-process request for %s failed on every model", prompt.feature.value)
        on_error(AllModelsFailedError())
    return result
