"""
Summaries router.

GET  /summaries/eligibility       can the user generate a summary right now?
POST /summaries/weekly            generate the weekly reflection (not stored)
GET  /summaries/provider-status   is the AI provider configured and reachable?
"""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from narrate.core.auth import get_current_user_id
from narrate.core.cache import TTLCache, eligibility_key, get_eligibility_cache
from narrate.core.config import settings
from narrate.core.errors import ProviderError
from narrate.db.base import get_db
from narrate.schemas.summary import (
    EligibilityResponse,
    PeriodOut,
    ProviderStatusResponse,
    WeeklySummaryResponse,
)
from narrate.services.entries import SqlEntryStore
from narrate.services.provider import TextGenerator, get_text_generator, validate_provider
from narrate.services.weekly_summary import WeeklySummary, WeeklySummaryPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/summaries", tags=["summaries"])


def get_pipeline(
    db: Session = Depends(get_db),
    generator: TextGenerator = Depends(get_text_generator),
) -> WeeklySummaryPipeline:
    return WeeklySummaryPipeline(
        SqlEntryStore(db),
        generator,
        min_entries=settings.SUMMARY_MIN_ENTRIES,
        window_days=settings.SUMMARY_WINDOW_DAYS,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )


async def generate_with_retries(
    pipeline: WeeklySummaryPipeline,
    user_id: str,
    *,
    max_retries: int,
    delay: float,
) -> WeeklySummary:
    """
    Run the pipeline, retrying only rate-limit and network failures.

    At most `max_retries + 1` attempts; every other error is raised on
    the first occurrence. The fixed `delay` separates attempts.
    """
    attempt = 0
    while True:
        try:
            return await pipeline.generate_summary(user_id)
        except ProviderError as exc:
            if not exc.retryable or attempt >= max_retries:
                raise
            attempt += 1
            logger.info(
                "Retrying weekly summary for user %s after %s (attempt %d of %d)",
                user_id, exc.category.value, attempt + 1, max_retries + 1,
            )
            if delay > 0:
                await asyncio.sleep(delay)


@router.get(
    "/eligibility",
    response_model=EligibilityResponse,
    summary="Check whether a weekly summary can be generated",
    responses={503: {"description": "Entries could not be read."}},
)
def eligibility(
    user_id: str = Depends(get_current_user_id),
    pipeline: WeeklySummaryPipeline = Depends(get_pipeline),
    cache: TTLCache = Depends(get_eligibility_cache),
):
    """
    Count the user's entries in the trailing window.

    Only an eligible answer is cached, per user and window start. Within
    one window the count can only grow, so a cached "yes" never goes
    stale; a "no" is recounted on every call because any worker's write
    may flip it.
    """
    window = pipeline.current_window()
    key = eligibility_key(user_id, window.start.isoformat())
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = pipeline.check_eligibility(user_id)
    period = window.period
    response = EligibilityResponse(
        can_generate=result.can_generate,
        entry_count=result.entry_count,
        required_entries=pipeline.min_entries,
        window=PeriodOut(start=period.start, end=period.end),
    )
    if result.can_generate:
        cache.set(key, response)
    return response


@router.post(
    "/weekly",
    response_model=WeeklySummaryResponse,
    summary="Generate the weekly reflection",
    responses={
        422: {"description": "Not enough entries in the window (INSUFFICIENT_ENTRIES)."},
        429: {"description": "Provider rate limit persisted through retries."},
        502: {"description": "Provider rejected the request or answered with nothing."},
        503: {"description": "Provider unreachable, not configured, or storage failed."},
    },
)
async def weekly(
    user_id: str = Depends(get_current_user_id),
    pipeline: WeeklySummaryPipeline = Depends(get_pipeline),
):
    """
    Summarize the last week of entries into a narrative, a key theme and a
    list of insights. Nothing is persisted.

    Rate-limit and network failures are retried up to
    `SUMMARY_MAX_RETRIES` times with a fixed delay.
    """
    result = await generate_with_retries(
        pipeline,
        user_id,
        max_retries=settings.SUMMARY_MAX_RETRIES,
        delay=settings.SUMMARY_RETRY_DELAY_SECONDS,
    )
    return WeeklySummaryResponse(
        summary=result.summary,
        theme=result.theme,
        insights=result.insights,
        period=PeriodOut(start=result.period.start, end=result.period.end),
    )


@router.get(
    "/provider-status",
    response_model=ProviderStatusResponse,
    summary="Probe the AI provider",
)
async def provider_status(
    user_id: str = Depends(get_current_user_id),
    generator: TextGenerator = Depends(get_text_generator),
):
    """Send a one-line probe prompt. Never raises for provider failures."""
    reachable = await validate_provider(generator)
    return ProviderStatusResponse(
        configured=generator.configured,
        reachable=reachable,
        model=getattr(generator, "model", settings.AI_MODEL),
    )
