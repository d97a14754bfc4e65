"""Unit tests for the static model fallback tables."""

import pytest

from services.ai.model_selector import (
    DEFAULT_MODELS,
    GEMMA3N_E4B,
    LLAMA4_MAVERICK,
    QWEN3_235B,
    QWEN15_72B,
    select_models,
)
from services.ai.models import Feature, ResponseFormat


def test_rephrase_prefers_structured_models() -> None:
    models = select_models("rephrase")

    assert [m.name for m in models] == [
        QWEN3_235B,
        LLAMA4_MAVERICK,
        QWEN15_72B,
        GEMMA3N_E4B,
    ]
    assert [m.response_format for m in models] == [
        ResponseFormat.STRUCTURED,
        ResponseFormat.STRUCTURED,
        ResponseFormat.FREEFORM,
        ResponseFormat.FREEFORM,
    ]
    assert {m.temperature for m in models} == {0.41}


def test_expand_uses_four_freeform_models() -> None:
    models = select_models(Feature.EXPAND)

    assert len(models) == 4
    assert all(m.response_format is ResponseFormat.FREEFORM for m in models)
    assert {m.temperature for m in models} == {0.66}


@pytest.mark.parametrize("feature", ["summarize", "translate", ""])
def test_other_features_get_default_list(feature: str) -> None:
    assert select_models(feature) == list(DEFAULT_MODELS)


def test_returned_list_is_a_copy() -> None:
    models = select_models("shorten")
    models.clear()

    assert len(select_models("shorten")) == 4
