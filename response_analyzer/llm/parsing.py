"""
response_analyzer.llm.parsing - Structured extraction from free-text completions.

The model is asked for a small tagged-line format:

    - <item>                      dash-bulleted lists (themes, theme numbers)
    RESPONSE <n>: <a>, <b>        batch matching, one line per response
    SUMMARY: / UNIQUE IDEAS:      theme summaries, ideas as "IDEA: " or "- " lines

Parsing is permissive: anything malformed degrades to "no match" instead of
raising.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from response_analyzer.models import ThemeSummary

SUMMARY_MARKER = "SUMMARY:"
IDEAS_MARKER = "UNIQUE IDEAS:"
IDEA_PREFIX = "IDEA: "
BULLET_PREFIX = "- "

_RESPONSE_LINE = re.compile(r"^RESPONSE\s+(\d+)\s*:(.*)$")
_LEADING_INT = re.compile(r"^\s*(\d+)")
_HEADER_MARKUP = re.compile(r"^[ \t]*#+[ \t]*", re.MULTILINE)
_NUMBER_DECORATION = re.compile(r"[\[\]*]")


def strip_header_markup(text: str) -> str:
    """Remove markdown header hashes at the start of each line."""
    return _HEADER_MARKUP.sub("", text)


def strip_hash_symbols(text: str) -> str:
    """Remove every hash symbol. Summaries are asked to contain none."""
    return text.replace("#", "")


def extract_dash_list(text: str) -> list[str]:
    """Items of a dash-bulleted list, in order. Non-bullet lines are ignored."""
    items = []
    for line in strip_header_markup(text).splitlines():
        line = line.strip()
        if line.startswith("-"):
            item = line[1:].strip()
            if item:
                items.append(item)
    return items


def extract_theme_numbers(text: str) -> list[int]:
    """Leading integers of dash-bulleted lines."""
    numbers = []
    for item in extract_dash_list(text):
        match = _LEADING_INT.match(item)
        if match:
            numbers.append(int(match.group(1)))
    return numbers


def numbers_to_themes(numbers: Sequence[int], themes: Sequence[str]) -> list[str]:
    """Map 1-based theme numbers to names, dropping out-of-range numbers and repeats."""
    matched: list[str] = []
    for num in numbers:
        if 0 < num <= len(themes):
            theme = themes[num - 1]
            if theme not in matched:
                matched.append(theme)
    return matched


def parse_batch_results(
    completion: str,
    response_count: int,
    themes: Sequence[str],
) -> list[list[str]]:
    """Parse "RESPONSE <n>: <numbers>" lines into theme lists by position.

    Args:
        completion: Raw model output
        response_count: Number of responses in the batch
        themes: Theme list used in the prompt

    Returns:
        One list of theme names per response. Missing, malformed or
        out-of-range lines leave an empty list at that position.
    """
    results: list[list[str]] = [[] for _ in range(response_count)]

    for line in strip_header_markup(completion).splitlines():
        match = _RESPONSE_LINE.match(line.strip())
        if not match:
            continue

        position = int(match.group(1))
        if position < 1 or position > response_count:
            continue

        # Models often echo the "[...]" placeholder or bold the numbers
        raw = _NUMBER_DECORATION.sub("", match.group(2))
        numbers = []
        for part in raw.replace(" ", "").split(","):
            num = _LEADING_INT.match(part)
            if num:
                numbers.append(int(num.group(1)))

        results[position - 1] = numbers_to_themes(numbers, themes)

    return results


def extract_summary_and_ideas(completion: str) -> ThemeSummary:
    """Split a theme summary completion into summary text and unique ideas.

    Without an "UNIQUE IDEAS:" marker the whole text is the summary.
    """
    text = strip_hash_symbols(completion)

    if IDEAS_MARKER not in text:
        return ThemeSummary(summary=text.strip(), unique_ideas=[])

    summary_part, ideas_part = text.split(IDEAS_MARKER, 1)

    summary = summary_part.strip()
    if summary.startswith(SUMMARY_MARKER):
        summary = summary[len(SUMMARY_MARKER) :].strip()

    ideas = []
    for line in ideas_part.splitlines():
        line = line.strip()
        if line.startswith(IDEA_PREFIX):
            idea = line[len(IDEA_PREFIX) :].strip()
        elif line.startswith(BULLET_PREFIX):
            idea = line[len(BULLET_PREFIX) :].strip()
        else:
            continue
        if idea:
            ideas.append(idea)

    return ThemeSummary(summary=summary, unique_ideas=ideas)
