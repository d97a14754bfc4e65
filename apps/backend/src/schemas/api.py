"""JSON envelopes for non-streaming API responses.

Streaming endpoints write newline-delimited events instead (see
`schemas.ai.OutputEvent`); everything else, including errors raised before a
stream starts, uses these wrappers.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response wrapper.

    Attributes:
        success: Whether the request was successful.
        data: The response payload when success is True.
        message: A human-readable message about the response.
        error: Error details (correlation id, error type, error code).
    """

    success: bool = True
    data: T | None = None
    message: str = "Operation completed successfully"
    error: dict[str, Any] | None = None


class ErrorResponse(ApiResponse[None]):
    """Error envelope produced by the global exception handler."""

    success: bool = False
    message: str = "An error occurred"
    error: dict[str, Any] | None = None
