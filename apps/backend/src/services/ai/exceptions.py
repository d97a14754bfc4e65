"""Domain exceptions for the completion streaming pipeline.

The taxonomy separates configuration errors (raised before any provider call
and surfaced to the caller), provider errors (recovered locally by falling
back to the next model) and the terminal all-models-failed outcome. Each
exception carries a stable `error_code` used for logging and the API error
envelope.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.exceptions import DomainError


@dataclass(slots=True, eq=False)
class AIProcessingError(DomainError):
    """Base class for completion pipeline errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class UnsupportedFeatureError(AIProcessingError):
    def __init__(self, feature: str) -> None:
        super().__init__(
            message=f"Unsupported feature: {feature}",
            error_code="unsupported_feature",
        )


class InvalidAIRequestError(AIProcessingError):
    def __init__(self, message: str = "Invalid request payload") -> None:
        super().__init__(message=message, error_code="invalid_request")


class ProviderError(AIProcessingError):
    def __init__(self, message: str = "LLM provider request failed") -> None:
        super().__init__(message=message, error_code="provider_error")


class EventSinkError(AIProcessingError):
    def __init__(self, message: str = "Event sink rejected an output event") -> None:
        super().__init__(message=message, error_code="sink_error")


class AllModelsFailedError(AIProcessingError):
    def __init__(self, message: str = "All models failed.") -> None:
        super().__init__(message=message, error_code="all_models_failed")
