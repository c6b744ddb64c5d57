"""Parser for the freeform starters/topics reply of the suggestions request."""
import re
from typing import Optional

from models.suggestion import SuggestionResult

STARTERS_SECTION = "starters"
TOPICS_SECTION = "topics"

# Header lines are matched case-insensitively on their start.
SECTION_HEADERS = {
    STARTERS_SECTION: (
        "[conversation starters]",
        "conversation starters:",
        "[대화 시작 멘트]",
    ),
    TOPICS_SECTION: (
        "[conversation topics]",
        "conversation topics:",
        "[대화 주제]",
    ),
}

BULLET_MARKERS = ("-", "*", "•")
# one marker, then any further markers separated by whitespace ("- - item"), so "**bold**" survives
_BULLET_PREFIX = re.compile(r"^[-*•]\s*(?:[-*•](?:\s+|$))*")


def _section_for(line: str) -> Optional[str]:
    lowered = line.casefold()
    for section, headers in SECTION_HEADERS.items():
        if any(lowered.startswith(header) for header in headers):
            return section
    return None


def parse_suggestions(text: str) -> SuggestionResult:
    """
    Split a model reply into conversation starters and topics.

    Lines before any recognised header, and lines without a bullet marker,
    are ignored. The input is always kept as `raw_text` so callers can show
    it when neither list was populated.

    Args:
        text: Raw reply text

    Returns:
        SuggestionResult with both lists and the unparsed text
    """
    result = SuggestionResult(raw_text=text)
    section = None

    for line in text.splitlines():
        trimmed = line.strip()
        header = _section_for(trimmed)
        if header:
            section = header
            continue
        if section is None or not trimmed.startswith(BULLET_MARKERS):
            continue

        item = _BULLET_PREFIX.sub("", trimmed).strip()
        # skips empty bullets and horizontal rules such as "---"
        if not item.strip("".join(BULLET_MARKERS) + " "):
            continue
        if section == STARTERS_SECTION:
            result.starters.append(item)
        else:
            result.topics.append(item)

    return result
