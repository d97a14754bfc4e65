"""Init file for AI services."""

from .model_selector import select_models
from .orchestrator import CompletionOrchestrator
from .prompt_builder import build_prompt
from .tool import process_ai_request


__all__ = [
    "CompletionOrchestrator",
    "build_prompt",
    "process_ai_request",
    "select_models",
]
