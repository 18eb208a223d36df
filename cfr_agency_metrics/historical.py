"""
Monthly historical series for CFR regulation and word totals.

The eCFR service exposes no historical-count endpoint, so the series is
estimated from current title metadata with compounding growth and bounded
noise, then annotated with a static event calendar.
"""

import math
import random
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from .config import Config
from .models import HistoricalDataPoint, Title


logger = logging.getLogger(__name__)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end, ignoring the day of month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def month_keys(start: date, end: date) -> List[str]:
    """Return a "YYYY-MM" key for each month from start to end inclusive."""
    keys = []
    for offset in range(months_between(start, end) + 1):
        year, month_index = divmod(start.month - 1 + offset, 12)
        keys.append(f"{start.year + year:04d}-{month_index + 1:02d}")
    return keys


def events_for(month_key: str,
               calendar: Optional[Dict[str, List[str]]] = None) -> Tuple[str, ...]:
    """Return the static event labels attached to a month."""
    if calendar is None:
        calendar = Config.HISTORICAL_EVENTS
    return tuple(calendar.get(month_key, ()))


def default_window(today: Optional[date] = None, years: int = None) -> Tuple[date, date]:
    """Return a trailing window of whole years ending today."""
    today = today or date.today()
    years = Config.HISTORY_YEARS if years is None else years
    try:
        start = today.replace(year=today.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        start = today.replace(year=today.year - years, day=28)
    return start, today


class HistoricalSeriesBuilder:
    """Builds an estimated monthly series from title metadata."""

    def __init__(self, rng: Optional[random.Random] = None,
                 growth_rate: float = None, perturbation: float = None,
                 default_sections: int = None, words_per_regulation: int = None,
                 events: Optional[Dict[str, List[str]]] = None):
        self.rng = rng or random.Random()
        self.growth_rate = Config.MONTHLY_GROWTH_RATE if growth_rate is None else growth_rate
        self.perturbation = Config.HISTORY_PERTURBATION if perturbation is None else perturbation
        self.default_sections = default_sections or Config.DEFAULT_TITLE_SECTIONS
        self.words_per_regulation = words_per_regulation or Config.WORDS_PER_REGULATION
        self.events = Config.HISTORICAL_EVENTS if events is None else events

    def baseline(self, titles: Sequence[Title]) -> int:
        """Sum of section counts across titles, defaulting unknown counts."""
        return sum(
            title.sections if title.sections is not None else self.default_sections
            for title in titles
        )

    def build(self, titles: Sequence[Title], start: date,
              end: date) -> List[HistoricalDataPoint]:
        """
        Build one data point per month from start to end inclusive.

        Args:
            titles: Current title metadata
            start: First month of the series
            end: Last month of the series

        Returns:
            Chronological list of data points; empty if end precedes start
        """
        baseline = self.baseline(titles)
        points = []

        for index, key in enumerate(month_keys(start, end)):
            growth_factor = (1 + self.growth_rate) ** index
            random_factor = 1 - self.perturbation + self.rng.random() * 2 * self.perturbation
            count = math.floor(baseline * growth_factor * random_factor)

            points.append(HistoricalDataPoint(
                date=key,
                regulation_count=count,
                word_count=count * self.words_per_regulation,
                events=events_for(key, self.events)
            ))

        logger.debug(f"Built {len(points)} historical points from {len(titles)} titles")
        return points
