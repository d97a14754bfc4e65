"""Static per-feature model fallback lists.

Order defines fallback priority: the orchestrator tries candidates first to
last and never reorders them. Unknown features get a generic freeform list
so every feature stays usable without a dedicated tuning entry.
"""

from __future__ import annotations

from services.ai.models import Feature, ModelCandidate, ResponseFormat


QWEN3_235B = "Qwen/Qwen3-235B-A22B-fp8-tput"
LLAMA4_MAVERICK = "meta-llama/Llama-4-Maverick-17B-128E-Instruct-FP8"
QWEN15_72B = "Qwen/Qwen1.5-72B-Chat"
GEMMA3N_E4B = "google/gemma-3n-E4B-it"

BASE_TEMPERATURE = 0.41
CREATIVE_TEMPERATURE = 0.66

_S = ResponseFormat.STRUCTURED
_F = ResponseFormat.FREEFORM

_FEATURE_MODELS: dict[Feature, tuple[ModelCandidate, ...]] = {
    Feature.REPHRASE: (
        ModelCandidate(QWEN3_235B, _S, BASE_TEMPERATURE),
        ModelCandidate(LLAMA4_MAVERICK, _S, BASE_TEMPERATURE),
        ModelCandidate(QWEN15_72B, _F, BASE_TEMPERATURE),
        ModelCandidate(GEMMA3N_E4B, _F, BASE_TEMPERATURE),
    ),
    Feature.EXPAND: (
        ModelCandidate(QWEN3_235B, _F, CREATIVE_TEMPERATURE),
        ModelCandidate(LLAMA4_MAVERICK, _F, CREATIVE_TEMPERATURE),
        ModelCandidate(QWEN15_72B, _F, CREATIVE_TEMPERATURE),
        ModelCandidate(GEMMA3N_E4B, _F, CREATIVE_TEMPERATURE),
    ),
    Feature.SHORTEN: (
        ModelCandidate(QWEN3_235B, _S, CREATIVE_TEMPERATURE),
        ModelCandidate(LLAMA4_MAVERICK, _S, CREATIVE_TEMPERATURE),
        ModelCandidate(QWEN15_72B, _F, CREATIVE_TEMPERATURE),
        ModelCandidate(GEMMA3N_E4B, _F, CREATIVE_TEMPERATURE),
    ),
}

DEFAULT_MODELS: tuple[ModelCandidate, ...] = (
    ModelCandidate(QWEN15_72B, _F, BASE_TEMPERATURE),
    ModelCandidate(GEMMA3N_E4B, _F, BASE_TEMPERATURE),
)


def select_models(feature: Feature | str) -> list[ModelCandidate]:
    """Return the ordered candidate list for a feature (never empty)."""
    if isinstance(feature, Feature):
        key = feature
    else:
        try:
            key = Feature(str(feature).strip().lower())
        except ValueError:
            return list(DEFAULT_MODELS)
    return list(_FEATURE_MODELS.get(key, DEFAULT_MODELS))
