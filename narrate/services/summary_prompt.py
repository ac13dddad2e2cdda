"""
Weekly summary text protocol: prompt construction and response parsing.

The provider answers in free prose. The three section markers below are
the only anchors the parser has, so the prompt builder and the parser
both read them from here. Changing a marker means bumping PROMPT_VERSION.

Parsing is total: missing sections degrade to sentinel strings and an
unexpected failure degrades to an all-sentinel result. Nothing raises.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)

PROMPT_VERSION = "weekly-summary/v1"

SUMMARY_MARKER = "**Weekly Summary:**"
THEME_MARKER = "**Key Theme:**"
INSIGHTS_MARKER = "**Insights & Reflections:**"

NO_SUMMARY = "No summary available"
NO_THEME = "No theme identified"

FALLBACK_SUMMARY = "Unable to generate summary at this time."
FALLBACK_THEME = "Analysis unavailable"
FALLBACK_INSIGHTS = ("Please try again later",)


class PromptEntry(Protocol):
    content: str
    created_at: datetime


@dataclass
class ParsedSections:
    summary: str
    theme: str
    insights: list[str] = field(default_factory=list)

    @property
    def structured(self) -> bool:
        """False when the theme is a sentinel, i.e. the response lacked structure."""
        return self.theme not in (NO_THEME, FALLBACK_THEME)


# ---------------------------------------------------------------------------
# Date formatting
# ---------------------------------------------------------------------------

def format_long_date(value: datetime) -> str:
    """October 11, 2026"""
    return f"{value:%B} {value.day}, {value.year}"


def format_entry_date(value: datetime) -> str:
    """Sunday, October 11, 2026"""
    return f"{value:%A}, {format_long_date(value)}"


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

_PROMPT_TEMPLATE = """You are a thoughtful journaling companion helping someone reflect on their own writing. Read the journal entries below, written between {start} and {end}, and write a reflective weekly summary.

Journal Entries:
{entries}

Respond using exactly these three sections, with the headings written as shown:

{summary_marker}
[2-3 paragraphs describing the main experiences, themes and emotional arc of the week, following the order in which things happened]

{theme_marker}
[1-2 sentences naming the primary theme or pattern that emerged this week]

{insights_marker}
[3-4 bullet points, each starting with "- ", offering gentle insights, patterns or moments of growth you noticed]

Keep the tone warm, supportive and non-judgmental. Describe and reflect rather than prescribe: avoid telling the writer what they should or must do, and do not offer medical or therapeutic advice."""


def format_entries_block(entries: Iterable[PromptEntry]) -> str:
    return "\n\n".join(
        f"Entry {i} ({format_entry_date(entry.created_at)}):\n{entry.content}"
        for i, entry in enumerate(entries, start=1)
    )


def build_prompt(entries: Iterable[PromptEntry], start: str, end: str) -> str:
    """
    Assemble the weekly summary prompt.

    `entries` must already be in chronological order; `start` and `end`
    are the long-form window dates shown to the provider.
    """
    return _PROMPT_TEMPLATE.format(
        start=start,
        end=end,
        entries=format_entries_block(entries),
        summary_marker=SUMMARY_MARKER,
        theme_marker=THEME_MARKER,
        insights_marker=INSIGHTS_MARKER,
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

_SUMMARY_RE = re.compile(
    re.escape(SUMMARY_MARKER) + r"\s*(.*?)(?=" + re.escape(THEME_MARKER) + r"|\Z)",
    re.DOTALL,
)
_THEME_RE = re.compile(
    re.escape(THEME_MARKER) + r"\s*(.*?)(?=" + re.escape(INSIGHTS_MARKER) + r"|\Z)",
    re.DOTALL,
)
_INSIGHTS_RE = re.compile(re.escape(INSIGHTS_MARKER) + r"\s*(.*)\Z", re.DOTALL)

# A bullet is "-" or "•" opening a line, or a "•" anywhere in it.
# Hyphens inside a sentence ("self-care") are not bullets.
_BULLET_RE = re.compile(r"(?:^|\n)[ \t]*[-•][ \t]*|[ \t]*•[ \t]*")


def _section(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def split_insights(text: str) -> list[str]:
    fragments = _BULLET_RE.split(text)
    return [f.strip() for f in fragments if f.strip()]


def _parse(text: str) -> ParsedSections:
    if not any(marker in text for marker in (SUMMARY_MARKER, THEME_MARKER, INSIGHTS_MARKER)):
        # No structure at all: keep the prose, flag it with the sentinel theme.
        return ParsedSections(summary=text.strip() or NO_SUMMARY, theme=NO_THEME, insights=[])

    return ParsedSections(
        summary=_section(_SUMMARY_RE, text) or NO_SUMMARY,
        theme=_section(_THEME_RE, text) or NO_THEME,
        insights=split_insights(_section(_INSIGHTS_RE, text)),
    )


def parse_response(text: str) -> ParsedSections:
    """Split a provider response into summary, theme and insights. Never raises."""
    try:
        return _parse(text)
    except Exception:
        logger.exception("Could not parse weekly summary response")
        return ParsedSections(
            summary=FALLBACK_SUMMARY,
            theme=FALLBACK_THEME,
            insights=list(FALLBACK_INSIGHTS),
        )
