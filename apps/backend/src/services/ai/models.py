"""Domain models for completion streaming orchestration.

These request-scoped value objects are shared by the prompt builder, the
model selector and the orchestrator:

* Feature / ResponseFormat - enumerated identifiers driving prompt and
  decoding choices.
* PromptSpec        - the prompts built once per request (immutable).
* ModelCandidate    - one entry of a feature's static fallback list.
* UsageRecord       - token usage reported by the provider for one attempt.
* RunResult         - outcome of one orchestration run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Feature(str, Enum):
    """Text transformations offered by the editor."""

    REPHRASE = "rephrase"
    EXPAND = "expand"
    SHORTEN = "shorten"
    SUMMARIZE = "summarize"


class ResponseFormat(str, Enum):
    """How a model response is decoded."""

    STRUCTURED = "structured"
    FREEFORM = "freeform"


@dataclass(frozen=True, slots=True)
class PromptSpec:
    """Prompts for a single request; never mutated after creation."""

    feature: Feature
    system_prompt: str
    user_prompt: str
    response_format: ResponseFormat


@dataclass(frozen=True, slots=True)
class ModelCandidate:
    name: str
    response_format: ResponseFormat
    temperature: float


@dataclass(slots=True)
class UsageRecord:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: UsageRecord) -> None:
        """Accumulate usage reported by another stream pass."""
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens


@dataclass(frozen=True, slots=True)
class RunResult:
    succeeded: bool
    model: str | None = None
    cancelled: bool = False


def effective_format(
    requested: ResponseFormat, candidate: ModelCandidate
) -> ResponseFormat:
    """Structured output only when both the prompt and the model support it."""
    if (
        requested is ResponseFormat.STRUCTURED
        and candidate.response_format is ResponseFormat.STRUCTURED
    ):
        return ResponseFormat.STRUCTURED
    return ResponseFormat.FREEFORM
