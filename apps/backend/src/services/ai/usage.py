"""Usage accounting for completed model attempts."""

from __future__ import annotations

import logging

from services.ai.interfaces import UsageLedgerProtocol
from services.ai.models import UsageRecord


logger = logging.getLogger(__name__)

ANONYMOUS_USER_ID = "anonymous"


class LoggingUsageLedger(UsageLedgerProtocol):
    """Default ledger: logs the credit update.

    Billing/credit persistence lives outside this service; deployments swap
    in a real ledger through the `get_usage_ledger` dependency.
    """

    async def record(
        self,
        user_id: str,
        prompt_tokens: int,
        completion_tokens: int,
        total_tokens: int,
    ) -> bool:
        logger.info(
            "Updating credits for user %s: input=%d output=%d total=%d",
            user_id,
            prompt_tokens,
            completion_tokens,
            total_tokens,
        )
        return True


class UsageRecorder:
    """Forwards a completion's usage footer to the ledger."""

    def __init__(self, ledger: UsageLedgerProtocol | None = None) -> None:
        self.ledger = ledger or LoggingUsageLedger()

    async def record(
        self,
        user_id: str | None,
        prompt_tokens: int,
        completion_tokens: int,
        total_tokens: int,
    ) -> bool:
        return await self.ledger.record(
            user_id or ANONYMOUS_USER_ID,
            prompt_tokens,
            completion_tokens,
            total_tokens,
        )

    async def record_usage(self, user_id: str | None, usage: UsageRecord) -> bool:
        return await self.record(
            user_id, usage.prompt_tokens, usage.completion_tokens, usage.total_tokens
        )
