"""
response_analyzer.llm.language - Output-language directives for prompts.
"""

from __future__ import annotations

SUPPORTED_LANGUAGES = ("en", "de", "de-ch", "fr", "it")

LANGUAGE_INSTRUCTIONS: dict[str, str] = {
    "de-ch": "Respond in German using Swiss High German spelling (replace ß with ss).",
    "de": "Respond in German.",
    "fr": "Respond in French.",
    "it": "Respond in Italian.",
}


def language_instruction(code: str | None) -> str:
    """Instruction appended to prompts that produce user-facing text.

    English and unrecognized codes get no instruction.
    """
    if not code:
        return ""
    return LANGUAGE_INSTRUCTIONS.get(code.strip().lower(), "")
