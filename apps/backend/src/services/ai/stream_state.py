"""Per-attempt mutable state for one model's completion stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from services.ai.models import UsageRecord


class DecodeMode(str, Enum):
    """How content deltas of an attempt are turned into output events."""

    STRUCTURED = "structured"  # JSON fragment per paragraph, parsed incrementally
    FREEFORM = "freeform"  # plain text, streamed with reasoning suppression
    BUFFERED = "buffered"  # structured request on a freeform-only model


@dataclass(slots=True)
class StreamState:
    """State owned by the orchestrator for the lifetime of one model attempt.

    Created fresh for every candidate and discarded when the attempt ends.
    `buffer`, `finish_reason` and the truncation/stop flags are per pass and
    reset by `begin_pass` when a continuation call is issued; the emitted
    fragments, usage and delivery flags span the whole attempt.
    """

    mode: DecodeMode
    buffer: str = ""
    in_reasoning: bool = False
    reasoning_consumed: bool = False
    visible_started: bool = False
    suppressed: str = ""
    emitted_sources: list[list[str]] = field(default_factory=list)
    fragment_offset: int = 0
    finish_reason: str | None = None
    stop_seen: bool = False
    truncated: bool = False
    delivered: bool = False
    usage: UsageRecord | None = None
    succeeded: bool = False

    def begin_pass(self) -> None:
        """Prepare for a (continuation) stream on the same model."""
        self.buffer = ""
        self.finish_reason = None
        self.stop_seen = False
        self.truncated = False
        self.fragment_offset = len(self.emitted_sources)

    def add_usage(self, usage: UsageRecord) -> None:
        if self.usage is None:
            self.usage = UsageRecord()
        self.usage.add(usage)

    def consumed_input_count(self, total_inputs: int) -> int:
        """Number of input paragraphs covered by fragments emitted so far."""
        consumed = sum(max(1, len(sources)) for sources in self.emitted_sources)
        return min(consumed, total_inputs)
