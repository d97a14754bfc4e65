"""OpenAI-compatible streaming provider client.

Together, OpenAI and Azure OpenAI all speak the chat completions protocol,
so a single adapter over the `openai` SDK serves every configured provider.
Raw SDK chunks are normalized into `CompletionChunk` values and SDK or
transport failures are re-raised as `ProviderError`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any, Literal

import httpx
from openai import AsyncOpenAI, OpenAIError

from services.ai.exceptions import ProviderError
from services.ai.interfaces import CompletionChunk, CompletionRequest
from services.ai.models import UsageRecord


logger = logging.getLogger(__name__)

SchemaStyle = Literal["together", "openai"]

RESPONSE_SCHEMA_NAME = "fragments"


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _usage_from_raw(raw_usage: Any) -> UsageRecord | None:
    if raw_usage is None:
        return None
    if isinstance(raw_usage, dict):
        getter = raw_usage.get
    else:

        def getter(key: str) -> Any:
            return getattr(raw_usage, key, None)

    prompt = _as_int(getter("prompt_tokens"))
    completion = _as_int(getter("completion_tokens"))
    total = _as_int(getter("total_tokens")) or prompt + completion
    return UsageRecord(
        prompt_tokens=prompt, completion_tokens=completion, total_tokens=total
    )


def normalize_chunk(raw: Any) -> CompletionChunk:
    """Convert an SDK chunk (object or dict) into a `CompletionChunk`.

    Chunks without choices (e.g. a bare usage footer) are tolerated.
    """
    if isinstance(raw, dict):
        usage_raw = raw.get("usage")
        choices = raw.get("choices") or []
        first = choices[0] if choices else {}
        delta = first.get("delta") or {}
        content = delta.get("content") or first.get("text")
        finish_reason = first.get("finish_reason")
    else:
        usage_raw = getattr(raw, "usage", None)
        choices = getattr(raw, "choices", None) or []
        first = choices[0] if choices else None
        delta = getattr(first, "delta", None)
        content = getattr(delta, "content", None) or getattr(first, "text", None)
        finish_reason = getattr(first, "finish_reason", None)

    return CompletionChunk(
        content=content if isinstance(content, str) and content else None,
        finish_reason=str(finish_reason) if finish_reason else None,
        usage=_usage_from_raw(usage_raw),
    )


def build_response_format(
    schema: dict[str, Any], style: SchemaStyle
) -> dict[str, Any]:
    """Render a JSON schema as a `response_format` for the provider flavour."""
    if style == "together":
        return {"type": "json_schema", "schema": schema}
    return {
        "type": "json_schema",
        "json_schema": {"name": RESPONSE_SCHEMA_NAME, "schema": schema},
    }


class OpenAICompatibleProvider:
    """Provider client over an `AsyncOpenAI` (or `AsyncAzureOpenAI`) client."""

    def __init__(self, client: AsyncOpenAI, schema_style: SchemaStyle = "openai"):
        self._client = client
        self._schema_style = schema_style

    def _request_kwargs(self, request: CompletionRequest) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "temperature": request.temperature,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if request.max_tokens:
            kwargs["max_tokens"] = request.max_tokens
        if request.response_schema is not None:
            kwargs["response_format"] = build_response_format(
                request.response_schema, self._schema_style
            )
        return kwargs

    async def create_completion(
        self, request: CompletionRequest
    ) -> AsyncIterator[CompletionChunk]:
        logger.debug(
            "Opening completion stream model=%s max_tokens=%s structured=%s",
            request.model,
            request.max_tokens,
            request.response_schema is not None,
        )
        try:
            stream = await self._client.chat.completions.create(
                **self._request_kwargs(request)
            )
            async with stream:
                async for raw in stream:
                    yield normalize_chunk(raw)
        except (OpenAIError, httpx.HTTPError) as exc:
            raise ProviderError(f"{request.model}: {exc}") from exc
