"""Token counting and output budget heuristics.

Counts use tiktoken when the configured encoding can be loaded. Any
tokenizer failure (missing vocabulary, download error, encoding error)
degrades silently to a word-count heuristic; estimation never raises.
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import TYPE_CHECKING

import tiktoken

from core.config import get_settings


if TYPE_CHECKING:
    from tiktoken import Encoding

logger = logging.getLogger(__name__)

WORD_TOKEN_RATIO = 0.75

# Budget multipliers tuned empirically against rephrase output lengths.
INITIAL_USER_MULTIPLIER = 5
CONTINUATION_USER_MULTIPLIER = 2
INPUT_OVERHEAD_MULTIPLIER = 1.4


@lru_cache
def _get_encoding() -> Encoding | None:
    """Load the configured encoding once; None when it cannot be loaded."""
    try:
        return tiktoken.get_encoding(get_settings().TOKENIZER_ENCODING)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Tokenizer unavailable, using word-count heuristic: %s", exc)
        return None


def clear_encoding_cache() -> None:
    """Forget the loaded encoding (tests / config changes)."""
    _get_encoding.cache_clear()


def count_words(text: str | None) -> int:
    if not text:
        return 0
    return len(text.split())


def heuristic_tokens(text: str | None) -> int:
    return math.ceil(count_words(text) * WORD_TOKEN_RATIO)


def estimate_tokens(text: str | None) -> int:
    """Estimate the token count of `text` (always >= 0, never raises)."""
    if not text or not isinstance(text, str):
        return 0
    try:
        encoding = _get_encoding()
        if encoding is None:
            return heuristic_tokens(text)
        count = len(encoding.encode(text, disallowed_special=()))
    except Exception as exc:  # noqa: BLE001
        logger.debug("Token encoding failed, using heuristic: %s", exc)
        return heuristic_tokens(text)
    return count or heuristic_tokens(text)


def initial_output_budget(system_tokens: int, user_tokens: int) -> int:
    """Advisory max_tokens for the first call of an attempt."""
    total_input = system_tokens + user_tokens
    return math.ceil(
        user_tokens * INITIAL_USER_MULTIPLIER
        + total_input * INPUT_OVERHEAD_MULTIPLIER
        + user_tokens * INPUT_OVERHEAD_MULTIPLIER
    )


def continuation_output_budget(system_tokens: int, user_tokens: int) -> int:
    """Advisory max_tokens for a continuation call on the unprocessed remainder."""
    return math.ceil(
        user_tokens * CONTINUATION_USER_MULTIPLIER
        + system_tokens * INPUT_OVERHEAD_MULTIPLIER
        + user_tokens * INPUT_OVERHEAD_MULTIPLIER
    )
