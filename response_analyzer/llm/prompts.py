"""
response_analyzer.llm.prompts - Deterministic prompt construction.

Every builder here must produce byte-identical output for identical input,
since the prompt text is part of the completion cache fingerprint. Themes
are always listed in the canonical theme-list order and sampling is strided,
never random.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from response_analyzer.models import ThemeSummary

MAX_IDENTIFY_SAMPLES = 50
MAX_SUMMARY_RESPONSES = 15
MAX_LEGACY_RESPONSES_PER_THEME = 10
MAX_IDEAS_PER_THEME = 3

IDENTIFY_TRUNCATE = 500
MATCH_TRUNCATE = 500
BATCH_TRUNCATE = 300
SUMMARY_TRUNCATE = 300

ELLIPSIS = "..."

DEFAULT_GLOBAL_SUMMARY_PROMPT = (
    "Summarize the main points made in each theme and highlight any unique ideas "
    "or problems mentioned."
)


def truncate_text(text: str, limit: int) -> str:
    """Cut text longer than limit to limit characters, ending in an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def sample_responses(responses: Sequence[str], cap: int = MAX_IDENTIFY_SAMPLES) -> list[str]:
    """Select an evenly strided subset of at most cap responses.

    Stride is total // cap, so rows from the whole sheet are represented
    rather than only the first ones.
    """
    if len(responses) <= cap:
        return list(responses)
    step = len(responses) // cap
    return list(responses[::step][:cap])


def format_theme_list(themes: Sequence[str]) -> str:
    """Numbered theme list, one per line, 1-based."""
    return "".join(f"{i}. {theme}\n" for i, theme in enumerate(themes, start=1))


def _with_instruction(prompt: str, instruction: str, separator: str = " ") -> str:
    if instruction:
        return prompt + separator + instruction
    return prompt


def build_identify_themes_prompt(responses: Sequence[str], language: str = "") -> str:
    """Prompt asking for a dash-bulleted list of themes.

    Args:
        responses: All response texts, in input order
        language: Output-language instruction (may be empty)
    """
    selected = sample_responses(responses)
    combined = "".join(
        f"{i}: {truncate_text(text, IDENTIFY_TRUNCATE)}\n"
        for i, text in enumerate(selected, start=1)
    )
    prompt = (
        f"Identify main themes in these {len(selected)} survey responses "
        f"(sample of {len(responses)} total):\n\n{combined}\n\n"
        "Return themes as a YAML list with each theme on a new line starting with a dash."
    )
    return _with_instruction(prompt, language)


def build_match_prompt(response: str, themes: Sequence[str]) -> str:
    """Prompt matching a single response to the numbered themes."""
    return (
        f"Here is a survey response:\n\n{truncate_text(response, MATCH_TRUNCATE)}\n\n"
        f"Here are the themes:\n{format_theme_list(themes)}\n\n"
        "Which themes does this response relate to? Return the theme numbers as a "
        "YAML list with each number on a new line starting with a dash."
    )


def build_batch_match_prompt(responses: Sequence[str], themes: Sequence[str]) -> str:
    """Prompt matching several responses at once.

    The model answers with one "RESPONSE <n>: <numbers>" line per response.
    """
    lines = [
        "Analyze multiple survey responses and match each to relevant themes.\n\n",
        "Themes:\n",
        format_theme_list(themes),
        "\n",
        "For each response, identify which themes apply. Format your answer as:\n",
        "RESPONSE 1: [comma-separated theme numbers]\n",
        "RESPONSE 2: [comma-separated theme numbers]\n",
        "...\n\n",
    ]
    for i, text in enumerate(responses, start=1):
        lines.append(f"RESPONSE {i}: {truncate_text(text, BATCH_TRUNCATE)}\n\n")
    return "".join(lines)


def select_summary_responses(responses: Sequence[str]) -> list[str]:
    """Responses included in a theme summary prompt.

    Over the limit, the shortest ones are kept. The sort is stable so ties
    keep input order.
    """
    if len(responses) <= MAX_SUMMARY_RESPONSES:
        return list(responses)
    return sorted(responses, key=len)[:MAX_SUMMARY_RESPONSES]


def build_theme_summary_prompt(theme: str, responses: Sequence[str], language: str = "") -> str:
    """Prompt for a SUMMARY / UNIQUE IDEAS answer about one theme."""
    selected = select_summary_responses(responses)
    parts = [f"Theme: {theme}\n\nResponses:"]
    for text in selected:
        parts.append(f"\n- {truncate_text(text, SUMMARY_TRUNCATE)}")
    if len(responses) > MAX_SUMMARY_RESPONSES:
        parts.append(f"\n\n(Showing {MAX_SUMMARY_RESPONSES} of {len(responses)} responses)")
    parts.append(
        "\n\nProvide:\nSUMMARY:\n[summary]\n\nUNIQUE IDEAS:\nIDEA: [idea 1]\nIDEA: [idea 2]\n"
        "...\n\nDo not include any # symbols in your response."
    )
    return _with_instruction("".join(parts), language, separator="\n")


def build_global_summary_prompt(
    theme_summaries: Mapping[str, ThemeSummary],
    themes: Sequence[str],
    summary_length: int,
    language: str = "",
) -> str:
    """Prompt synthesizing all theme summaries.

    Themes are emitted in the order of the theme list; themes without a
    summary are left out.
    """
    parts = ["Theme summaries from survey responses:\n\n"]
    for theme in themes:
        summary = theme_summaries.get(theme)
        if summary is None:
            continue
        parts.append(f"## {theme}\n{summary.summary}\n")
        ideas = summary.unique_ideas
        if ideas:
            parts.append("Key ideas:\n")
            for idea in ideas[:MAX_IDEAS_PER_THEME]:
                parts.append(f"- {idea}\n")
            if len(ideas) > MAX_IDEAS_PER_THEME:
                parts.append(f"(+ {len(ideas) - MAX_IDEAS_PER_THEME} more ideas)\n")
        parts.append("\n")
    parts.append(
        "Create a comprehensive global summary highlighting the most important findings. "
        f"Length: ~{summary_length} characters."
    )
    return _with_instruction("".join(parts), language)


def build_legacy_summary_prompt(
    theme_responses: Mapping[str, Sequence[str]],
    themes: Sequence[str],
    summary_length: int,
    language: str = "",
) -> str:
    """Single-prompt summary over raw responses grouped by theme."""
    parts = ["Here are the themes and their associated responses:\n\n"]
    for theme in themes:
        if theme not in theme_responses:
            continue
        parts.append(f"Theme: {theme}\n")
        for text in list(theme_responses[theme])[:MAX_LEGACY_RESPONSES_PER_THEME]:
            parts.append(f"- {truncate_text(text, SUMMARY_TRUNCATE)}\n")
        parts.append("\n")
    parts.append(
        "\nBased on the above, provide a summary of the main points made in each theme "
        "and highlight any unique ideas or problems mentioned. The summary should be "
        f"approximately {summary_length} characters long."
    )
    return _with_instruction("".join(parts), language)
