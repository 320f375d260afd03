"""Completion endpoint client and the random-user workflow built on it."""

from .completion import CompletionClient, SYSTEM_PROMPT
from .generation import (
    GenerationOutcome,
    RandomUserGenerator,
    parse_user_record,
    strip_code_fences,
)

__all__ = [
    "CompletionClient",
    "SYSTEM_PROMPT",
    "GenerationOutcome",
    "RandomUserGenerator",
    "parse_user_record",
    "strip_code_fences",
]
