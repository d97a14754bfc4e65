"""Shared test fixtures for pytest.

We set minimal env defaults early so importing modules that instantiate
settings succeeds without an external .env file or provider credentials.
"""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient


os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TOGETHER_API_KEY", "test-together-key")

from core.config import get_settings  # noqa: E402
from dependencies.ai import get_provider, get_usage_ledger  # noqa: E402
from fixtures.ai_fixtures import RecordingLedger, ScriptedProvider  # noqa: E402
from main import app  # noqa: E402
from services.ai.token_estimator import clear_encoding_cache  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_caches() -> Generator[None, None, None]:
    """Settings and the tokenizer are cached per process; reset around tests."""
    get_settings.cache_clear()
    clear_encoding_cache()
    yield
    get_settings.cache_clear()
    clear_encoding_cache()


@pytest.fixture(autouse=True)
def _offline_tokenizer(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tiktoken from downloading vocabularies; tests opt in explicitly."""

    def _unavailable(name: str):
        raise ValueError(f"encoding {name} not available in tests")

    monkeypatch.setattr("services.ai.token_estimator.tiktoken.get_encoding", _unavailable)


@pytest.fixture
def fake_provider() -> ScriptedProvider:
    """Provider with no scripted models; tests add passes per model."""
    return ScriptedProvider()


@pytest.fixture
def ledger() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture
def client(
    fake_provider: ScriptedProvider, ledger: RecordingLedger
) -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.
    """
    app.dependency_overrides[get_provider] = lambda: fake_provider
    app.dependency_overrides[get_usage_ledger] = lambda: ledger
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.pop(get_provider, None)
    app.dependency_overrides.pop(get_usage_ledger, None)


@pytest_asyncio.fixture
async def async_client(
    fake_provider: ScriptedProvider, ledger: RecordingLedger
) -> AsyncGenerator[AsyncClient, None]:
    """Async client wired to the scripted provider and recording ledger."""
    app.dependency_overrides[get_provider] = lambda: fake_provider
    app.dependency_overrides[get_usage_ledger] = lambda: ledger
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.pop(get_provider, None)
    app.dependency_overrides.pop(get_usage_ledger, None)
