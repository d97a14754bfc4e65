"""Prompt templates for the editor text transformations.

`build_prompt` turns a feature name plus the selected paragraphs into a
`PromptSpec`. The operand text is the selected paragraphs joined by blank
lines. Structured features wrap it in `<originalText>` tags so the model can
tell instructions apart from manuscript content.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from schemas.ai import PromptContext
from services.ai.exceptions import UnsupportedFeatureError
from services.ai.models import Feature, PromptSpec, ResponseFormat


logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
DEFAULT_INSTRUCTION = "Make the tone more engaging and vivid."

STRUCTURED_FEATURES: frozenset[Feature] = frozenset({Feature.REPHRASE})

ADDITIONAL_CONTEXT_TEMPLATE = """
AdditionalContext:
<textBefore>
{text_before}
</textBefore>
<textAfter>
{text_after}
</textAfter>

<PlotContext>
  {plot_context}
</PlotContext>
"""

REPHRASE_SYSTEM_PROMPT = """You are a master storyteller and a world-class literary editor. Your task is to elevate a piece of writing by rephrasing it. Only answer in JSON.
Whenever you're given text, rephrase it using the following instructions:
<instructions>{instructions}</instructions>

Analyze the user's text paragraph by paragraph, and sentence by sentence. Only use the text enclosed within <originalText> and </originalText> for rephrasing.
Rephrase one input paragraph at a time. Never combine multiple paragraphs into one rephrased paragraph.
Use the text within the textBefore and textAfter tags as reference only.

For every input paragraph return one object with:
- fragmentIndex: the 1-based position of the rephrased paragraph
- fragmentContent: the rephrased paragraph
- sourceFragments: the original paragraph(s) it was derived from, verbatim

Your rephrasing should:
1.  **Enrich the Language**: Use more evocative vocabulary and sophisticated sentence structures.
2.  **Enhance the Prose**: Improve the rhythm, flow, and clarity of the writing.
3.  **Preserve the Core**: Maintain the original plot, character intentions, and key details. Do not add new plot points or characters.
4.  **Paragraph Structure**: Each rephrased paragraph must correspond to a single paragraph in the original text, preserving the original structure.
5.  **Maintain Original Meaning**: Ensure that the rephrased text conveys the same meaning and intent as the original.
6.  **Use of Context**: If provided, use the context from <textBefore> and <textAfter> to inform your rephrasing.
7.  **Do not return the same line**: Always enrich and elevate every paragraph.
{additional_context}
"""

EXPAND_SYSTEM_PROMPT = (
    "You are a creative writer. Expand the input with vivid details. "
    "{instructions} Only return the expanded text, do not return any other "
    "text or explanations."
)

SHORTEN_SYSTEM_PROMPT = (
    "You are a concise editor. Shorten the text while retaining the key "
    "message. {instructions} Only return the shortened text, do not return "
    "any other text or explanations."
)

SUMMARIZE_SYSTEM_PROMPT = (
    "Summarize the following text with clarity and brevity. {instructions}"
)

_FREEFORM_TEMPLATES: dict[Feature, str] = {
    Feature.EXPAND: EXPAND_SYSTEM_PROMPT,
    Feature.SHORTEN: SHORTEN_SYSTEM_PROMPT,
    Feature.SUMMARIZE: SUMMARIZE_SYSTEM_PROMPT,
}


def resolve_feature(feature: Feature | str) -> Feature:
    """Look up a feature by enum or name.

    Raises:
        UnsupportedFeatureError: when the name is not a known feature.
    """
    if isinstance(feature, Feature):
        return feature
    try:
        return Feature(str(feature).strip().lower())
    except ValueError as exc:
        raise UnsupportedFeatureError(str(feature)) from exc


def join_paragraphs(paragraphs: Sequence[str]) -> str:
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def response_format_for(feature: Feature) -> ResponseFormat:
    if feature in STRUCTURED_FEATURES:
        return ResponseFormat.STRUCTURED
    return ResponseFormat.FREEFORM


def build_user_prompt(feature: Feature | str, paragraphs: Sequence[str]) -> str:
    """Build the user prompt for any subset of the selected paragraphs.

    Used both for the initial request and to rebuild a reduced prompt from the
    unprocessed remainder when a structured response is truncated.
    """
    resolved = resolve_feature(feature)
    operand = join_paragraphs(paragraphs)
    if response_format_for(resolved) is ResponseFormat.STRUCTURED:
        return f"<originalText>{operand}</originalText>"
    return operand


def _format_plot_context(prompt_contexts: Sequence[PromptContext] | None) -> str:
    if not prompt_contexts:
        return "None"
    return "\n  ".join(
        f"Type: {ctx.context_type}, ID: {ctx.id}, Prompt: {ctx.prompt}"
        for ctx in prompt_contexts
    )


def _additional_context(
    preceding_text: str | None,
    following_text: str | None,
    prompt_contexts: Sequence[PromptContext] | None,
) -> str:
    return ADDITIONAL_CONTEXT_TEMPLATE.format(
        text_before=preceding_text or "None",
        text_after=following_text or "None",
        plot_context=_format_plot_context(prompt_contexts),
    )


def build_prompt(
    feature: Feature | str,
    primary_text: Sequence[str],
    *,
    preceding_text: str | None = None,
    following_text: str | None = None,
    custom_instructions: str | None = None,
    prompt_contexts: Sequence[PromptContext] | None = None,
) -> PromptSpec:
    """Build the system and user prompts for a feature.

    Args:
        feature: Feature enum or name (case-insensitive).
        primary_text: Selected paragraphs, in document order.
        preceding_text: Text before the selection, reference only.
        following_text: Text after the selection, reference only.
        custom_instructions: Replaces the default instruction when non-empty.
        prompt_contexts: Optional story context rendered into the prompt.

    Returns:
        An immutable PromptSpec.

    Raises:
        UnsupportedFeatureError: for unknown feature names (not retried).
    """
    resolved = resolve_feature(feature)
    instructions = (custom_instructions or "").strip() or DEFAULT_INSTRUCTION
    logger.debug(
        "Building prompt for feature=%s paragraphs=%d", resolved.value, len(primary_text)
    )

    if resolved is Feature.REPHRASE:
        system_prompt = REPHRASE_SYSTEM_PROMPT.format(
            instructions=instructions,
            additional_context=_additional_context(
                preceding_text, following_text, prompt_contexts
            ),
        )
    else:
        system_prompt = _FREEFORM_TEMPLATES[resolved].format(instructions=instructions)

    return PromptSpec(
        feature=resolved,
        system_prompt=system_prompt,
        user_prompt=build_user_prompt(resolved, primary_text),
        response_format=response_format_for(resolved),
    )
