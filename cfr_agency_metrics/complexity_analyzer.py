"""
Complexity analyzer for CFR title text.

Scores regulatory text with a simplified Flesch-Kincaid grade level, a
long-word terminology count and a cross-reference count, and combines them
into a composite per-agency complexity score.
"""

import math
import re
import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from .config import Config
from .error_handler import (
    ErrorCollector, MalformedResponse, SampleExhausted, UpstreamUnavailable
)
from .models import Agency, ComplexityScore, Title
from .word_counter import check_cancelled, titles_for_agency


logger = logging.getLogger(__name__)

MIN_READING_LEVEL = 10.0
MAX_READING_LEVEL = 20.0
TECHNICAL_TERM_MIN_LENGTH = 9

_MARKUP_PATTERN = re.compile(r'<[^>]*>')
_WHITESPACE_PATTERN = re.compile(r'\s+')
_SENTENCE_PATTERN = re.compile(r'[.!?]+')
_NON_VOWEL_PATTERN = re.compile(r'[^aeiouy]+')
_CROSS_REFERENCE_PATTERN = re.compile(r'section \d+|part \d+|title \d+', re.IGNORECASE)


@dataclass(frozen=True)
class TextComplexity:
    """Raw complexity measurements for one text sample."""
    reading_level: float
    technical_terms: int
    cross_references: int


def strip_markup(raw_text: str) -> str:
    """Remove markup tags and normalize whitespace."""
    text = _MARKUP_PATTERN.sub(' ', raw_text)
    return _WHITESPACE_PATTERN.sub(' ', text).strip()


def estimate_syllables(word: str) -> int:
    """Estimate syllables as the number of vowel groups, at least one."""
    groups = _NON_VOWEL_PATTERN.sub(' ', word.lower()).split()
    return max(1, len(groups))


def clamp_reading_level(level: float) -> float:
    return max(MIN_READING_LEVEL, min(MAX_READING_LEVEL, level))


def analyze(raw_text: str) -> TextComplexity:
    """
    Measure the complexity of markup-bearing text.

    Args:
        raw_text: Title text, possibly containing XML or HTML tags

    Returns:
        TextComplexity with a reading level clamped to [10, 20]
    """
    plain_text = strip_markup(raw_text or '')

    sentences = [s for s in _SENTENCE_PATTERN.split(plain_text) if s]
    words = plain_text.split()
    syllables = sum(estimate_syllables(word) for word in words)

    avg_words_per_sentence = len(words) / max(1, len(sentences))
    avg_syllables_per_word = syllables / max(1, len(words))

    reading_level = 0.39 * avg_words_per_sentence + 11.8 * avg_syllables_per_word - 15.59

    return TextComplexity(
        reading_level=clamp_reading_level(reading_level),
        technical_terms=sum(1 for word in words if len(word) >= TECHNICAL_TERM_MIN_LENGTH),
        cross_references=len(_CROSS_REFERENCE_PATTERN.findall(plain_text))
    )


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to the given number of decimals with halves rounded up."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def complexity_score(reading_level: float, technical_terms: float,
                     cross_references: float) -> float:
    """Combine the three measurements into a score rounded half-up to one decimal."""
    score = (reading_level - 10) * 5 + technical_terms / 1000 + cross_references / 500
    return round_half_up(score, 1)


class ComplexityAnalyzer:
    """Aggregates complexity scores per agency."""

    def __init__(self, client, synthetic, title_cap: int = None,
                 collector: Optional[ErrorCollector] = None):
        """
        Initialize the analyzer.

        Args:
            client: Source of raw title text (an ECFRClient)
            synthetic: SyntheticDataGenerator used for per-agency fallback
            title_cap: Maximum titles sampled per agency (default from config)
            collector: Optional collector recording absorbed failures
        """
        self.client = client
        self.synthetic = synthetic
        self.title_cap = title_cap or Config.COMPLEXITY_TITLE_CAP
        self.collector = collector

    def score_agency(self, agency: Agency, titles: List[Title], as_of: date,
                     cancel_event: Optional[threading.Event] = None) -> ComplexityScore:
        """
        Compute the live complexity score for one agency.

        Measurements are averaged across every sample that could be fetched.

        Raises:
            SampleExhausted: If no title was associated or every fetch failed
            RequestCancelled: If cancel_event is set
        """
        sample = titles_for_agency(titles, agency.name)[:self.title_cap]
        if not sample:
            raise SampleExhausted(f"No titles associated with {agency.name}")

        total_reading_level = 0.0
        total_technical_terms = 0
        total_cross_references = 0
        samples_analyzed = 0

        for title in sample:
            check_cancelled(cancel_event)
            try:
                raw_text = self.client.fetch_raw_text(as_of, title.number)
            except (UpstreamUnavailable, MalformedResponse) as e:
                logger.debug(f"Error fetching content for title {title.number}: {e}")
                continue

            measured = analyze(raw_text)
            total_reading_level += measured.reading_level
            total_technical_terms += measured.technical_terms
            total_cross_references += measured.cross_references
            samples_analyzed += 1

        if not samples_analyzed:
            raise SampleExhausted(f"All {len(sample)} sampled titles failed for {agency.name}")

        reading_level = clamp_reading_level(total_reading_level / samples_analyzed)
        technical_terms = int(round_half_up(total_technical_terms / samples_analyzed))
        cross_references = int(round_half_up(total_cross_references / samples_analyzed))

        return ComplexityScore(
            name=agency.name,
            complexity_score=complexity_score(reading_level, technical_terms, cross_references),
            reading_level=reading_level,
            technical_terms=technical_terms,
            cross_references=cross_references
        )

    def aggregate_agency(self, agency: Agency, titles: List[Title], as_of: date,
                         cancel_event: Optional[threading.Event] = None) -> ComplexityScore:
        """Compute one agency's complexity, substituting synthetic data on failure."""
        try:
            return self.score_agency(agency, titles, as_of, cancel_event)
        except (SampleExhausted, UpstreamUnavailable, MalformedResponse) as e:
            logger.warning(f"Using synthetic complexity for {agency.name}: {e.message}")
            if self.collector is not None:
                self.collector.add_error(e, context=f"complexity for {agency.name}")
            return self.synthetic.complexity_score(agency.name)
