"""Tests for the centralized provider client factory."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from openai import AsyncAzureOpenAI

from services.ai.provider import OpenAICompatibleProvider


def _settings(**overrides) -> SimpleNamespace:
    values = {
        "LLM_PROVIDER": "together",
        "TOGETHER_API_KEY": "together-key",
        "TOGETHER_BASE_URL": "https://api.together.xyz/v1",
        "OPENAI_API_KEY": None,
        "OPENAI_BASE_URL": None,
        "AZURE_OPENAI_ENDPOINT": None,
        "AZURE_OPENAI_API_KEY": None,
        "AZURE_OPENAI_API_VERSION": None,
        "LLM_REQUEST_TIMEOUT_SECONDS": 30.0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestValidateAzureCredentials:
    """Tests for _validate_azure_credentials function."""

    @patch("services.ai.model_factory.get_settings")
    def test_returns_true_with_valid_credentials(
        self, mock_settings: MagicMock
    ) -> None:
        mock_settings.return_value = _settings(
            AZURE_OPENAI_ENDPOINT="https://test.openai.azure.com",
            AZURE_OPENAI_API_KEY="test-key",
            AZURE_OPENAI_API_VERSION="2024-10-21",
        )

        from services.ai.model_factory import _validate_azure_credentials

        assert _validate_azure_credentials() is True

    @patch("services.ai.model_factory.get_settings")
    def test_logs_warning_on_missing_credentials(
        self, mock_settings: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        mock_settings.return_value = _settings(AZURE_OPENAI_API_KEY="test-key")

        from services.ai.model_factory import _validate_azure_credentials

        assert _validate_azure_credentials() is False
        assert "credentials missing" in caplog.text.lower()


class TestValidateTogetherCredentials:
    @patch("services.ai.model_factory.get_settings")
    def test_returns_false_without_api_key(
        self, mock_settings: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        mock_settings.return_value = _settings(TOGETHER_API_KEY=None)

        from services.ai.model_factory import _validate_together_credentials

        assert _validate_together_credentials() is False
        assert "not configured" in caplog.text.lower()


class TestCreateProviderClient:
    """Tests for create_provider_client selection order."""

    @patch("services.ai.model_factory.get_settings")
    def test_defaults_to_together(self, mock_settings: MagicMock) -> None:
        mock_settings.return_value = _settings()

        from services.ai.model_factory import create_provider_client

        provider = create_provider_client()

        assert isinstance(provider, OpenAICompatibleProvider)
        assert provider._schema_style == "together"
        assert str(provider._client.base_url).startswith("https://api.together.xyz/v1")

    @patch("services.ai.model_factory.get_settings")
    def test_uses_azure_when_configured(self, mock_settings: MagicMock) -> None:
        mock_settings.return_value = _settings(
            LLM_PROVIDER="azure_openai",
            AZURE_OPENAI_ENDPOINT="https://test.openai.azure.com/",
            AZURE_OPENAI_API_KEY="test-key",
            AZURE_OPENAI_API_VERSION="2024-10-21",
        )

        from services.ai.model_factory import create_provider_client

        provider = create_provider_client()

        assert isinstance(provider._client, AsyncAzureOpenAI)
        assert provider._schema_style == "openai"

    @patch("services.ai.model_factory.get_settings")
    def test_falls_back_to_together_on_incomplete_azure(
        self, mock_settings: MagicMock
    ) -> None:
        mock_settings.return_value = _settings(LLM_PROVIDER="azure_openai")

        from services.ai.model_factory import create_provider_client

        provider = create_provider_client()

        assert provider._schema_style == "together"

    @patch("services.ai.model_factory.get_settings")
    def test_uses_openai_when_selected(self, mock_settings: MagicMock) -> None:
        mock_settings.return_value = _settings(
            LLM_PROVIDER="openai", OPENAI_API_KEY="sk-test"
        )

        from services.ai.model_factory import create_provider_client

        provider = create_provider_client()

        assert provider._schema_style == "openai"
        assert "together" not in str(provider._client.base_url)

    @patch("services.ai.model_factory.get_settings")
    def test_raises_when_nothing_configured(self, mock_settings: MagicMock) -> None:
        mock_settings.return_value = _settings(TOGETHER_API_KEY=None)

        from services.ai.model_factory import create_provider_client

        with pytest.raises(ValueError, match="No valid LLM provider"):
            create_provider_client()


def test_get_provider_client_is_cached() -> None:
    from services.ai.model_factory import (
        clear_provider_client_cache,
        get_provider_client,
    )

    clear_provider_client_cache()
    try:
        assert get_provider_client() is get_provider_client()
    finally:
        clear_provider_client_cache()
