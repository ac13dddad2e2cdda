"""
Weekly summary response schemas.

GET  /summaries/eligibility      → EligibilityResponse
POST /summaries/weekly           → WeeklySummaryResponse
GET  /summaries/provider-status  → ProviderStatusResponse
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class PeriodOut(BaseModel):
    start: str = Field(description='Window start, e.g. "October 11, 2026".')
    end: str = Field(description='Window end, e.g. "October 18, 2026".')


class EligibilityResponse(BaseModel):
    """Whether the trailing window holds enough entries for a summary."""
    can_generate: bool
    entry_count: int = Field(description="Entries written inside the window.")
    required_entries: int = Field(description="Minimum entries needed to generate.")
    window: PeriodOut


class WeeklySummaryResponse(BaseModel):
    """A structured weekly reflection. Never persisted server-side."""
    summary: str = Field(description="Multi-paragraph narrative of the week.")
    theme: str = Field(description="The week's key theme in a phrase or sentence.")
    insights: list[str] = Field(
        default_factory=list,
        description="Short reflections, in the order the provider listed them.",
    )
    period: PeriodOut


class ProviderStatusResponse(BaseModel):
    configured: bool = Field(description="An API key is present.")
    reachable: bool = Field(description="A live probe round-tripped successfully.")
    model: str
