"""Tests for usage accounting."""

import logging

import pytest

from fixtures.ai_fixtures import RecordingLedger
from services.ai.models import UsageRecord
from services.ai.usage import LoggingUsageLedger, UsageRecorder


@pytest.mark.asyncio
async def test_recorder_forwards_to_ledger() -> None:
    ledger = RecordingLedger()

    ok = await UsageRecorder(ledger).record("writer-7", 12, 8, 20)

    assert ok is True
    assert [(c.user_id, c.total_tokens) for c in ledger.calls] == [("writer-7", 20)]


@pytest.mark.asyncio
async def test_missing_user_is_recorded_as_anonymous() -> None:
    ledger = RecordingLedger()

    await UsageRecorder(ledger).record_usage(None, UsageRecord(1, 2, 3))

    assert ledger.calls[0].user_id == "anonymous"
    assert ledger.calls[0].completion_tokens == 2


@pytest.mark.asyncio
async def test_default_ledger_logs_credit_update(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="services.ai.usage"):
        ok = await LoggingUsageLedger().record("u1", 5, 6, 11)

    assert ok is True
    assert "Updating credits for user u1" in caplog.text


def test_usage_record_accumulates() -> None:
    total = UsageRecord()
    total.add(UsageRecord(1, 2, 3))
    total.add(UsageRecord(10, 20, 30))

    assert total == UsageRecord(11, 22, 33)
