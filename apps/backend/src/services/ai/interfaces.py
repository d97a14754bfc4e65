"""Service interfaces for completion streaming.

These protocols describe the external collaborators consumed by the
orchestrator so concrete clients can be injected (and replaced by fakes in
tests) without the orchestrator knowing about SDKs or storage.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from schemas.ai import OutputEvent
from services.ai.models import UsageRecord


# Transport sink: called synchronously for every event, in order.
EventSink = Callable[[OutputEvent], None]


@dataclass(frozen=True, slots=True)
class CompletionRequest:
    model: str
    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: int | None = None
    response_schema: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class CompletionChunk:
    """One normalized item of a provider stream.

    A chunk may carry any combination of a content delta, a finish reason
    (`stop`, `length`, ...) and a usage footer.
    """

    content: str | None = None
    finish_reason: str | None = None
    usage: UsageRecord | None = field(default=None)


class ProviderClientProtocol(Protocol):
    """Protocol for streaming chat completion providers."""

    def create_completion(
        self, request: CompletionRequest
    ) -> AsyncIterator[CompletionChunk]:
        """Start a streaming completion and yield normalized chunks."""
        ...


class UsageLedgerProtocol(Protocol):
    """Protocol for the per-user credit/usage ledger.

    Idempotency and persistence are the ledger's responsibility; callers
    may invoke it concurrently from independent requests.
    """

    async def record(
        self,
        user_id: str,
        prompt_tokens: int,
        completion_tokens: int,
        total_tokens: int,
    ) -> bool:
        """Record consumed tokens for a user."""
        ...
