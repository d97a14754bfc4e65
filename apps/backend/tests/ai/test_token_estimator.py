"""Unit tests for token estimation and output budgets."""

import math
from unittest.mock import MagicMock

import pytest

from services.ai import token_estimator
from services.ai.token_estimator import (
    continuation_output_budget,
    estimate_tokens,
    heuristic_tokens,
    initial_output_budget,
)


def test_heuristic_is_three_quarters_of_words() -> None:
    assert heuristic_tokens("one two three four five") == math.ceil(5 * 0.75)
    assert heuristic_tokens("") == 0


@pytest.mark.parametrize("text", ["", None, 42, ["a", "b"]])
def test_estimate_handles_empty_and_non_text(text) -> None:
    assert estimate_tokens(text) == 0


def test_estimate_falls_back_when_tokenizer_unavailable() -> None:
    # conftest makes tiktoken.get_encoding raise
    assert estimate_tokens("a b c d") == 3


def test_estimate_uses_tokenizer_when_available(monkeypatch) -> None:
    encoding = MagicMock()
    encoding.encode.return_value = [1, 2, 3, 4, 5, 6, 7]
    monkeypatch.setattr(
        "services.ai.token_estimator.tiktoken.get_encoding", lambda name: encoding
    )

    assert estimate_tokens("anything at all") == 7
    encoding.encode.assert_called_once_with("anything at all", disallowed_special=())


def test_encode_failure_degrades_to_heuristic(monkeypatch) -> None:
    encoding = MagicMock()
    encoding.encode.side_effect = ValueError("bad input")
    monkeypatch.setattr(
        "services.ai.token_estimator.tiktoken.get_encoding", lambda name: encoding
    )

    assert estimate_tokens("\udcff broken surrogate text") == heuristic_tokens(
        "\udcff broken surrogate text"
    )


def test_load_failure_is_cached(monkeypatch) -> None:
    loader = MagicMock(side_effect=OSError("download failed"))
    monkeypatch.setattr("services.ai.token_estimator.tiktoken.get_encoding", loader)

    estimate_tokens("one")
    estimate_tokens("two")

    assert loader.call_count == 1
    token_estimator.clear_encoding_cache()
    estimate_tokens("three")
    assert loader.call_count == 2


def test_initial_budget_formula() -> None:
    assert initial_output_budget(100, 40) == math.ceil(40 * 5 + 140 * 1.4 + 40 * 1.4)


def test_continuation_budget_formula() -> None:
    assert continuation_output_budget(100, 10) == math.ceil(
        10 * 2 + 100 * 1.4 + 10 * 1.4
    )
