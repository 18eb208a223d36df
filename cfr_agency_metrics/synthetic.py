"""
Synthetic fallback data for CFR Agency Metrics.

Produces schema-identical stand-ins for live metrics when the eCFR service
is partially or fully unavailable. Nothing here performs I/O or raises.
"""

import math
import random
import logging
from datetime import date
from typing import List, Optional

from .complexity_analyzer import complexity_score
from .historical import default_window, events_for, month_keys
from .models import (
    Agency, AgencyWordCount, AggregateSummary, ComplexityScore, HistoricalDataPoint
)
from .word_counter import compute_checksum


logger = logging.getLogger(__name__)


MOCK_AGENCIES = [
    "Department of Agriculture",
    "Department of Commerce",
    "Department of Defense",
    "Department of Education",
    "Department of Energy",
    "Department of Health and Human Services",
    "Department of Homeland Security",
    "Department of Housing and Urban Development",
    "Department of the Interior",
    "Department of Justice",
    "Department of Labor",
    "Department of State",
    "Department of Transportation",
    "Department of the Treasury",
    "Department of Veterans Affairs",
    "Environmental Protection Agency",
    "Equal Employment Opportunity Commission",
    "Federal Communications Commission",
    "Federal Reserve System",
    "Federal Trade Commission",
    "Food and Drug Administration",
    "Internal Revenue Service",
    "National Aeronautics and Space Administration",
    "Nuclear Regulatory Commission",
    "Securities and Exchange Commission",
    "Small Business Administration",
    "Social Security Administration",
]

# (name substrings, lowest count, width of range); first match wins
WORD_COUNT_BANDS = [
    (("Health", "Treasury", "Transportation"), 3_000_000, 5_000_000),
    (("Environmental", "Securities"), 2_000_000, 3_000_000),
]
DEFAULT_WORD_COUNT_BAND = (500_000, 2_000_000)

STARTING_REGULATION_COUNT = 180_000
STARTING_WORD_COUNT = 80_000_000


class SyntheticDataGenerator:
    """Generates randomized metrics over a fixed roster of agencies."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the generator.

        Args:
            rng: Random source; seed one for reproducible output
        """
        self.rng = rng or random.Random()

    def agencies(self) -> List[Agency]:
        return [Agency(name=name) for name in MOCK_AGENCIES]

    def agency_word_count(self, name: str) -> AgencyWordCount:
        """Draw a word count from the band matching the agency name."""
        low, width = DEFAULT_WORD_COUNT_BAND
        for keywords, band_low, band_width in WORD_COUNT_BANDS:
            if any(keyword in name for keyword in keywords):
                low, width = band_low, band_width
                break

        return AgencyWordCount(
            name=name,
            word_count=low + math.floor(self.rng.random() * width),
            checksum=compute_checksum('', name),
            is_synthetic=True
        )

    def complexity_score(self, name: str) -> ComplexityScore:
        """Draw complexity measurements and score them like live data."""
        reading_level = self.rng.random() * 6 + 12
        technical_terms = math.floor(self.rng.random() * 5000) + 1000
        cross_references = math.floor(self.rng.random() * 3000) + 500

        return ComplexityScore(
            name=name,
            complexity_score=complexity_score(reading_level, technical_terms, cross_references),
            reading_level=reading_level,
            technical_terms=technical_terms,
            cross_references=cross_references,
            is_synthetic=True
        )

    def historical_series(self, start: Optional[date] = None,
                          end: Optional[date] = None) -> List[HistoricalDataPoint]:
        """
        Random-walk monthly totals from fixed starting values.

        Each month applies one change drawn from [-0.2%, +0.8%) to both the
        regulation and word totals.
        """
        if start is None or end is None:
            default_start, default_end = default_window()
            start = start or default_start
            end = end or default_end
        if end < start:
            start, end = end, start

        regulation_count = STARTING_REGULATION_COUNT
        word_count = STARTING_WORD_COUNT
        points = []

        for key in month_keys(start, end):
            monthly_change = self.rng.random() * 0.01 - 0.002
            regulation_count = math.floor(regulation_count * (1 + monthly_change))
            word_count = math.floor(word_count * (1 + monthly_change))

            points.append(HistoricalDataPoint(
                date=key,
                regulation_count=regulation_count,
                word_count=word_count,
                events=events_for(key)
            ))

        return points

    def summary(self, start: Optional[date] = None,
                end: Optional[date] = None) -> AggregateSummary:
        """Build a fully synthetic summary over the roster."""
        logger.info("Generating fully synthetic summary")
        word_counts = [self.agency_word_count(name) for name in MOCK_AGENCIES]
        scores = [self.complexity_score(name) for name in MOCK_AGENCIES]
        history = self.historical_series(start, end)

        return AggregateSummary.from_collections(word_counts, scores, history, degraded=True)
