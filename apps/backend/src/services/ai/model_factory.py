"""Centralized provider client factory for completion streaming.

This module is the single source of truth for creating the streaming LLM
client, supporting Together (default), OpenAI and Azure OpenAI based on
configuration. All three are driven through the `openai` SDK.

Usage:
    from services.ai.model_factory import get_provider_client

    provider = get_provider_client()  # ProviderClientProtocol
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from openai import AsyncAzureOpenAI, AsyncOpenAI

from core.config import get_settings
from services.ai.provider import OpenAICompatibleProvider


if TYPE_CHECKING:
    from httpx import AsyncClient

logger = logging.getLogger(__name__)


def _normalize_azure_endpoint(endpoint: str) -> str:
    """Normalize Azure OpenAI endpoint.

    Azure endpoints are typically provided as `https://{resource}.openai.azure.com/`.
    Trailing slashes can lead to `//openai/...` URLs, which Azure may treat as a
    different path and return 404.
    """
    return endpoint.rstrip("/")


def _validate_azure_credentials() -> bool:
    """Validate that Azure OpenAI credentials are properly configured."""
    settings = get_settings()
    if (
        not settings.AZURE_OPENAI_ENDPOINT
        or not settings.AZURE_OPENAI_API_KEY
        or not settings.AZURE_OPENAI_API_VERSION
    ):
        logger.warning(
            "LLM_PROVIDER=azure_openai but credentials missing, falling back to Together"
        )
        return False
    return True


def _validate_openai_credentials() -> bool:
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        logger.warning(
            "LLM_PROVIDER=openai but OPENAI_API_KEY missing, falling back to Together"
        )
        return False
    return True


def _validate_together_credentials() -> bool:
    """Validate that the Together API key is configured."""
    settings = get_settings()
    if not settings.TOGETHER_API_KEY:
        logger.warning("Together API key not configured")
        return False
    return True


def _create_azure_provider(
    http_client: AsyncClient | None = None,
) -> OpenAICompatibleProvider:
    settings = get_settings()
    # AZURE_OPENAI_ENDPOINT is validated in _validate_azure_credentials
    client = AsyncAzureOpenAI(
        azure_endpoint=_normalize_azure_endpoint(settings.AZURE_OPENAI_ENDPOINT or ""),
        api_key=settings.AZURE_OPENAI_API_KEY,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
        http_client=http_client,
    )
    return OpenAICompatibleProvider(client, schema_style="openai")


def _create_openai_provider(
    http_client: AsyncClient | None = None,
) -> OpenAICompatibleProvider:
    settings = get_settings()
    client = AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
        http_client=http_client,
    )
    return OpenAICompatibleProvider(client, schema_style="openai")


def _create_together_provider(
    http_client: AsyncClient | None = None,
) -> OpenAICompatibleProvider:
    settings = get_settings()
    client = AsyncOpenAI(
        api_key=settings.TOGETHER_API_KEY,
        base_url=settings.TOGETHER_BASE_URL,
        timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
        http_client=http_client,
    )
    return OpenAICompatibleProvider(client, schema_style="together")


def create_provider_client(
    http_client: AsyncClient | None = None,
) -> OpenAICompatibleProvider:
    """Create the streaming provider client based on configuration.

    Args:
        http_client: Optional HTTP client for custom transport/retry logic.

    Returns:
        A provider client implementing `ProviderClientProtocol`.

    Raises:
        ValueError: when no provider has usable credentials.
    """
    settings = get_settings()

    if settings.LLM_PROVIDER == "azure_openai" and _validate_azure_credentials():
        logger.info("Using Azure OpenAI completion provider")
        return _create_azure_provider(http_client)

    if settings.LLM_PROVIDER == "openai" and _validate_openai_credentials():
        logger.info("Using OpenAI completion provider")
        return _create_openai_provider(http_client)

    # Fallback to Together - validate credentials
    if not _validate_together_credentials():
        raise ValueError(
            "No valid LLM provider configured. Set TOGETHER_API_KEY, "
            "OPENAI_API_KEY (LLM_PROVIDER=openai) or Azure OpenAI credentials "
            "(LLM_PROVIDER=azure_openai)."
        )

    logger.info(f"Using Together completion provider: {settings.TOGETHER_BASE_URL}")
    return _create_together_provider(http_client)


@lru_cache
def get_provider_client() -> OpenAICompatibleProvider:
    """Get the cached provider client for the configured provider."""
    return create_provider_client()


def clear_provider_client_cache() -> None:
    """Clear the cached provider client.

    Useful for testing or when configuration changes at runtime.
    """
    get_provider_client.cache_clear()
