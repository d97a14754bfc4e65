"""AI-related schemas for editor text transformations.

This module defines the request payload accepted by the processing endpoint,
the event envelope streamed back to callers, and the fragment shape the
models are asked to produce for structured (paragraph-by-paragraph) output.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PromptContext(BaseModel):
    """Extra story context (plot point, character, ...) shown to the model."""

    context_type: str = Field(..., alias="contextType", max_length=100)
    id: str = Field(..., max_length=100)
    prompt: str = Field(..., max_length=2000)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AIProcessRequest(BaseModel):
    """Request payload for streaming a text transformation."""

    feature: str = Field(..., min_length=1, description="Feature name, e.g. rephrase")
    text: list[str] = Field(
        ..., min_length=1, description="Selected paragraphs to transform, in order"
    )
    text_before: str | list[str] | None = Field(
        default=None,
        alias="textBefore",
        description="Text preceding the selection, used as reference only",
    )
    text_after: str | list[str] | None = Field(
        default=None,
        alias="textAfter",
        description="Text following the selection, used as reference only",
    )
    prompt_contexts: list[PromptContext] | None = Field(
        default=None, alias="promptContexts"
    )
    custom_instructions: str | None = Field(
        default=None,
        alias="customInstructions",
        max_length=2000,
        description="Replaces the feature's default instruction when provided",
    )

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("feature")
    @classmethod
    def _strip_feature(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("feature must not be blank")
        return stripped

    @staticmethod
    def _join(value: str | list[str] | None) -> str | None:
        if value is None:
            return None
        if isinstance(value, list):
            return "\n".join(value)
        return value

    @property
    def preceding_text(self) -> str | None:
        return self._join(self.text_before)

    @property
    def following_text(self) -> str | None:
        return self._join(self.text_after)


class ModelFragment(BaseModel):
    """One paragraph-level object emitted by a model in structured mode."""

    fragment_index: int = Field(..., alias="fragmentIndex")
    fragment_content: str = Field(..., alias="fragmentContent")
    source_fragments: list[str] = Field(
        default_factory=list, alias="sourceFragments"
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# JSON schema handed to providers that support constrained decoding.
FRAGMENTS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "fragments": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "fragmentIndex": {"type": "integer"},
                    "fragmentContent": {"type": "string"},
                    "sourceFragments": {
                        "type": "array",
                        "items": {"type": "string"},
                    },
                },
                "required": ["fragmentIndex", "fragmentContent", "sourceFragments"],
            },
        }
    },
    "required": ["fragments"],
}


class StructuredFragment(BaseModel):
    index: int
    content: str
    source_fragments: list[str] = Field(
        default_factory=list, serialization_alias="sourceFragments"
    )

    model_config = ConfigDict(extra="forbid")


class OutputEvent(BaseModel):
    """Unit delivered to the transport sink.

    Exactly one of the fields is set. Events form an append-only sequence:
    nothing is retracted once emitted.
    """

    structured_fragment: StructuredFragment | None = Field(
        default=None, serialization_alias="structuredFragment"
    )
    text_delta: str | None = Field(default=None, serialization_alias="textDelta")
    done: Literal[True] | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _exactly_one_field(self) -> "OutputEvent":
        populated = [
            v
            for v in (self.structured_fragment, self.text_delta, self.done)
            if v is not None
        ]
        if len(populated) != 1:
            raise ValueError("OutputEvent must carry exactly one payload")
        return self

    @classmethod
    def fragment(
        cls, index: int, content: str, source_fragments: list[str]
    ) -> "OutputEvent":
        return cls(
            structured_fragment=StructuredFragment(
                index=index, content=content, source_fragments=list(source_fragments)
            )
        )

    @classmethod
    def delta(cls, text: str) -> "OutputEvent":
        return cls(text_delta=text)

    @classmethod
    def finished(cls) -> "OutputEvent":
        return cls(done=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_line(self) -> str:
        """Serialize as one newline-delimited JSON record."""
        return json.dumps(self.to_payload(), ensure_ascii=False) + "\n"


class StreamErrorEvent(BaseModel):
    """Terminal error record written when no model produced a result."""

    type: Literal["error"] = "error"
    message: str

    model_config = ConfigDict(extra="forbid")

    def to_line(self) -> str:
        return self.model_dump_json() + "\n"
