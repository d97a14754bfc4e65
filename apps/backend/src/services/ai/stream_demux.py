"""Turn accumulated content deltas into output events.

Structured mode scans the buffer for complete fragment objects; partial
objects stay buffered until more data arrives. Freeform mode streams text
as soon as it is known not to belong to a leading reasoning block.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence

from pydantic import ValidationError

from schemas.ai import ModelFragment, OutputEvent
from services.ai.stream_state import StreamState


logger = logging.getLogger(__name__)

REASONING_OPEN = "<think>"
REASONING_CLOSE = "</think>"
FRAGMENT_KEY = "fragmentIndex"

Emit = Callable[[OutputEvent], None]

_decoder = json.JSONDecoder()
_close_pattern = re.compile(re.escape(REASONING_CLOSE), re.IGNORECASE)


def drain_structured(state: StreamState, emit: Emit) -> int:
    """Emit every complete fragment object found in the buffer.

    Returns the number of fragments emitted. Matched text (and anything
    before it) is removed from the buffer; an unparseable tail is kept.
    """
    emitted = 0
    search_from = 0
    while True:
        start = state.buffer.find("{", search_from)
        if start == -1:
            return emitted
        try:
            obj, end = _decoder.raw_decode(state.buffer, start)
        except json.JSONDecodeError:
            # Incomplete (or not an object start); try the next brace.
            search_from = start + 1
            continue
        if not isinstance(obj, dict) or FRAGMENT_KEY not in obj:
            search_from = start + 1
            continue

        state.buffer = state.buffer[end:]
        search_from = 0
        try:
            fragment = ModelFragment.model_validate(obj)
        except ValidationError as exc:
            logger.warning("Discarding malformed fragment object: %s", exc)
            continue

        state.emitted_sources.append(list(fragment.source_fragments))
        emit(
            OutputEvent.fragment(
                index=state.fragment_offset + fragment.fragment_index,
                content=fragment.fragment_content,
                source_fragments=fragment.source_fragments,
            )
        )
        emitted += 1


def drain_freeform(state: StreamState, emit: Emit) -> None:
    """Stream visible text, suppressing one leading reasoning block."""
    while state.buffer:
        if state.in_reasoning:
            close = _close_pattern.search(state.buffer)
            if close is None:
                # Hold back enough characters to match a split closing marker.
                keep = len(REASONING_CLOSE) - 1
                if len(state.buffer) > keep:
                    state.suppressed += state.buffer[:-keep]
                    state.buffer = state.buffer[-keep:]
                return
            state.buffer = state.buffer[close.end() :]
            state.in_reasoning = False
            state.reasoning_consumed = True
            state.suppressed = ""
            continue

        if not state.visible_started:
            stripped = state.buffer.lstrip()
            if not stripped:
                return
            if not state.reasoning_consumed:
                head = stripped[: len(REASONING_OPEN)].lower()
                if head == REASONING_OPEN:
                    state.buffer = stripped[len(REASONING_OPEN) :]
                    state.in_reasoning = True
                    continue
                if REASONING_OPEN.startswith(head):
                    # Could still become an opening marker.
                    return
            state.buffer = stripped
            state.visible_started = True

        emit(OutputEvent.delta(state.buffer))
        state.buffer = ""


def flush_freeform(state: StreamState, emit: Emit) -> None:
    """Deliver whatever is still held back once the stream has ended."""
    if state.in_reasoning:
        # The reasoning block never closed; its text is the only output.
        leftover = (state.suppressed + state.buffer).strip()
        state.in_reasoning = False
        state.suppressed = ""
    elif state.visible_started:
        leftover = state.buffer
    else:
        leftover = state.buffer.strip()
    state.buffer = ""
    if leftover:
        emit(OutputEvent.delta(leftover))


def strip_reasoning(text: str) -> str:
    """Remove a leading reasoning block from a complete response."""
    stripped = text.lstrip()
    if stripped[: len(REASONING_OPEN)].lower() != REASONING_OPEN:
        return text.strip()
    close = _close_pattern.search(stripped, len(REASONING_OPEN))
    if close is None:
        return stripped[len(REASONING_OPEN) :].strip()
    return stripped[close.end() :].strip()


def flush_buffered(
    state: StreamState, emit: Emit, input_paragraphs: Sequence[str]
) -> None:
    """Emit a whole freeform response as a single structured fragment."""
    content = strip_reasoning(state.buffer)
    state.buffer = ""
    if not content:
        return
    sources = list(input_paragraphs)
    state.emitted_sources.append(sources)
    emit(
        OutputEvent.fragment(
            index=state.fragment_offset + 1,
            content=content,
            source_fragments=sources,
        )
    )
