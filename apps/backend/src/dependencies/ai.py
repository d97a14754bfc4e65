"""FastAPI dependencies for the completion streaming endpoint.

Each collaborator is resolved through its own dependency so tests can swap
the provider, the usage ledger or the whole orchestrator with
`app.dependency_overrides`.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from core.config import get_settings
from services.ai.interfaces import ProviderClientProtocol, UsageLedgerProtocol
from services.ai.model_factory import get_provider_client
from services.ai.orchestrator import CompletionOrchestrator
from services.ai.usage import ANONYMOUS_USER_ID, LoggingUsageLedger, UsageRecorder


def get_provider() -> ProviderClientProtocol:
    return get_provider_client()


def get_usage_ledger() -> UsageLedgerProtocol:
    return LoggingUsageLedger()


def get_usage_recorder(
    ledger: Annotated[UsageLedgerProtocol, Depends(get_usage_ledger)],
) -> UsageRecorder:
    return UsageRecorder(ledger)


def get_completion_orchestrator(
    provider: Annotated[ProviderClientProtocol, Depends(get_provider)],
    usage_recorder: Annotated[UsageRecorder, Depends(get_usage_recorder)],
) -> CompletionOrchestrator:
    """One orchestrator per request; it holds no per-run state itself."""
    return CompletionOrchestrator(
        provider=provider,
        usage_recorder=usage_recorder,
        max_continuations=get_settings().AI_MAX_CONTINUATIONS,
    )


def get_request_user_id(
    x_user_id: Annotated[str | None, Header(max_length=200)] = None,
) -> str:
    """Identify the caller for usage accounting.

    Authentication happens upstream; the gateway forwards the user id in
    `X-User-ID`. Requests without it are accounted as anonymous.
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return ANONYMOUS_USER_ID
