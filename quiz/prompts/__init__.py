"""Quiz Prompts - System prompt and response schema."""

from .templates import DOCUMENTS_INSTRUCTION, QUIZ_RESPONSE_FORMAT, build_system_prompt

__all__ = ["DOCUMENTS_INSTRUCTION", "QUIZ_RESPONSE_FORMAT", "build_system_prompt"]
