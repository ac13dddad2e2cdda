"""
Weekly summary pipeline.

Rules:
- Stateless: one linear path, branching on eligibility and on provider
  success / failure. No retries here; retry policy belongs to the caller.
- Never writes. Entries are read once per invocation and never mutated.
- The provider is never called for a window with fewer than
  `min_entries` entries.

Public API
----------
WeeklySummaryPipeline.check_eligibility(user_id)        -> EligibilityResult
WeeklySummaryPipeline.generate_summary(user_id)  (async) -> WeeklySummary
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Optional, Protocol, Sequence

from narrate.core.clock import as_utc, utcnow
from narrate.core.errors import (
    EligibilityError,
    ProviderError,
    ProviderErrorCategory,
    StorageError,
)
from narrate.services.provider import TextGenerator, classify_provider_error
from narrate.services.summary_prompt import (
    PromptEntry,
    build_prompt,
    format_long_date,
    parse_response,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_ENTRIES = 5
DEFAULT_WINDOW_DAYS = 7


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Period:
    start: str
    end: str


@dataclass(frozen=True)
class WeekWindow:
    """
    The trailing window ending today: [start-of-day(now - days), end-of-day(now)],
    both bounds inclusive, in UTC.
    """
    start: datetime
    end: datetime

    @classmethod
    def ending_at(cls, now: datetime, days: int = DEFAULT_WINDOW_DAYS) -> "WeekWindow":
        now = as_utc(now)
        first_day = (now - timedelta(days=days)).date()
        return cls(
            start=datetime.combine(first_day, time.min, tzinfo=timezone.utc),
            end=datetime.combine(now.date(), time.max, tzinfo=timezone.utc),
        )

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) <= self.end

    @property
    def period(self) -> Period:
        return Period(start=format_long_date(self.start), end=format_long_date(self.end))


@dataclass(frozen=True)
class EligibilityResult:
    can_generate: bool
    entry_count: int


@dataclass
class WeeklySummary:
    summary: str
    theme: str
    period: Period
    insights: list[str] = field(default_factory=list)


class EntryStore(Protocol):
    def list_entries_in_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> Sequence[PromptEntry]: ...


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class WeeklySummaryPipeline:
    def __init__(
        self,
        store: EntryStore,
        generator: TextGenerator,
        *,
        min_entries: int = DEFAULT_MIN_ENTRIES,
        window_days: int = DEFAULT_WINDOW_DAYS,
        timeout: Optional[float] = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.generator = generator
        self.min_entries = min_entries
        self.window_days = window_days
        self.timeout = timeout
        self.clock = clock

    def current_window(self) -> WeekWindow:
        return WeekWindow.ending_at(self.clock(), days=self.window_days)

    def _load_window(self, user_id: str, window: WeekWindow) -> list[PromptEntry]:
        """Entries inside `window`, oldest first, whatever order the store used."""
        try:
            rows = self.store.list_entries_in_range(user_id, window.start, window.end)
        except StorageError:
            raise
        except Exception as exc:
            logger.error("Entry store failed for user %s: %s", user_id, exc)
            raise StorageError() from exc

        in_window = [e for e in rows if window.contains(e.created_at)]
        return sorted(in_window, key=lambda e: as_utc(e.created_at))

    async def _load_window_async(self, user_id: str, window: WeekWindow) -> list[PromptEntry]:
        # Store reads block; keep them off the event loop.
        return await asyncio.to_thread(self._load_window, user_id, window)

    def _eligibility(self, entry_count: int) -> EligibilityResult:
        return EligibilityResult(
            can_generate=entry_count >= self.min_entries,
            entry_count=entry_count,
        )

    def check_eligibility(self, user_id: str) -> EligibilityResult:
        window = self.current_window()
        return self._eligibility(len(self._load_window(user_id, window)))

    async def _call_provider(self, prompt: str) -> str:
        """Await the provider under `timeout`; any failure leaves as ProviderError."""
        try:
            if self.timeout is None:
                return await self.generator.generate_text(prompt)
            return await asyncio.wait_for(
                self.generator.generate_text(prompt), timeout=self.timeout
            )
        except ProviderError:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning("Provider call timed out after %.1fs", self.timeout)
            raise ProviderError(
                ProviderErrorCategory.NETWORK_ERROR,
                detail=f"timed out after {self.timeout}s",
            ) from exc
        except Exception as exc:
            category = classify_provider_error(exc)
            logger.warning("Provider call failed [%s]: %s", category.value, exc)
            raise ProviderError(category, detail=str(exc)) from exc

    async def generate_summary(self, user_id: str) -> WeeklySummary:
        window = self.current_window()
        entries = await self._load_window_async(user_id, window)

        eligibility = self._eligibility(len(entries))
        if not eligibility.can_generate:
            raise EligibilityError(
                entry_count=eligibility.entry_count,
                required_entries=self.min_entries,
                window_days=self.window_days,
            )

        period = window.period
        prompt = build_prompt(entries, period.start, period.end)
        logger.info(
            "Generating weekly summary for user %s from %d entries",
            user_id, len(entries),
        )

        text = await self._call_provider(prompt)
        if not text or not text.strip():
            raise ProviderError(ProviderErrorCategory.EMPTY_RESPONSE)

        sections = parse_response(text)
        if not sections.structured:
            logger.warning("Weekly summary for user %s degraded to sentinel output", user_id)

        return WeeklySummary(
            summary=sections.summary,
            theme=sections.theme,
            insights=sections.insights,
            period=period,
        )
