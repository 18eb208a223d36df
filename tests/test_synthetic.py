"""Tests for the synthetic data module."""

import random
from datetime import date

from cfr_agency_metrics.complexity_analyzer import complexity_score
from cfr_agency_metrics.config import Config
from cfr_agency_metrics.historical import months_between
from cfr_agency_metrics.synthetic import MOCK_AGENCIES, SyntheticDataGenerator
from cfr_agency_metrics.word_counter import compute_checksum


class TestSyntheticDataGenerator:
    """Test cases for the SyntheticDataGenerator class."""

    def test_roster(self, seeded_synthetic):
        """Test the fixed agency roster."""
        agencies = seeded_synthetic.agencies()

        assert len(agencies) == 27
        assert [agency.name for agency in agencies] == MOCK_AGENCIES

    def test_word_count_bands(self, seeded_synthetic):
        """Test that name substrings select the word-count band."""
        for _ in range(50):
            health = seeded_synthetic.agency_word_count("Department of Health and Human Services")
            securities = seeded_synthetic.agency_word_count("Securities and Exchange Commission")
            other = seeded_synthetic.agency_word_count("Department of Labor")

            assert 3_000_000 <= health.word_count < 8_000_000
            assert 2_000_000 <= securities.word_count < 5_000_000
            assert 500_000 <= other.word_count < 2_500_000

    def test_word_count_schema(self, seeded_synthetic):
        """Test that fallback word counts match the live schema."""
        result = seeded_synthetic.agency_word_count("Department of the Treasury")

        assert result.name == "Department of the Treasury"
        assert result.checksum == compute_checksum("", "Department of the Treasury")
        assert result.is_synthetic is True

    def test_complexity_ranges_and_formula(self, seeded_synthetic):
        """Test complexity draws and the shared score formula."""
        for name in MOCK_AGENCIES:
            score = seeded_synthetic.complexity_score(name)

            assert 12 <= score.reading_level < 18
            assert 1000 <= score.technical_terms < 6000
            assert 500 <= score.cross_references < 3500
            assert score.complexity_score == complexity_score(
                score.reading_level, score.technical_terms, score.cross_references
            )
            assert score.is_synthetic is True

    def test_historical_series_shape(self, seeded_synthetic):
        """Test the random walk over a date range."""
        start, end = date(2016, 6, 1), date(2023, 5, 20)

        points = seeded_synthetic.historical_series(start, end)

        assert len(points) == months_between(start, end) + 1
        assert points[0].date == '2016-06'
        assert points[-1].date == '2023-05'
        assert 180_000 * 0.998 - 1 <= points[0].regulation_count <= 180_000 * 1.008
        assert 80_000_000 * 0.998 - 1 <= points[0].word_count <= 80_000_000 * 1.008

        by_date = {point.date: point for point in points}
        for key, labels in Config.HISTORICAL_EVENTS.items():
            assert by_date[key].events == tuple(labels)

    def test_historical_series_reversed_range(self, seeded_synthetic):
        """Test that a reversed range still yields a series."""
        points = seeded_synthetic.historical_series(date(2020, 6, 1), date(2020, 1, 1))

        assert [point.date for point in points][0] == '2020-01'
        assert len(points) == 6

    def test_historical_series_default_window(self, seeded_synthetic):
        """Test the default ten-year window."""
        points = seeded_synthetic.historical_series()

        assert len(points) == Config.HISTORY_YEARS * 12 + 1

    def test_summary(self, seeded_synthetic):
        """Test the fully synthetic summary."""
        summary = seeded_synthetic.summary(date(2020, 1, 1), date(2020, 12, 31))

        assert summary.total_agencies == len(MOCK_AGENCIES)
        assert summary.total_words == sum(item.word_count for item in summary.agency_word_counts)
        assert summary.total_regulations == summary.historical_changes[-1].regulation_count
        assert len(summary.complexity_scores) == len(MOCK_AGENCIES)
        assert len(summary.historical_changes) == 12
        assert summary.degraded is True

    def test_seeded_output_is_reproducible(self):
        """Test that equal seeds give equal summaries."""
        first = SyntheticDataGenerator(rng=random.Random(99)).summary(date(2020, 1, 1), date(2021, 1, 1))
        second = SyntheticDataGenerator(rng=random.Random(99)).summary(date(2020, 1, 1), date(2021, 1, 1))

        assert first.to_dict() == second.to_dict()

    def test_never_fails(self):
        """Test many seeds without errors or empty sections."""
        for seed in range(25):
            summary = SyntheticDataGenerator(rng=random.Random(seed)).summary()

            assert summary.agency_word_counts
            assert summary.complexity_scores
            assert summary.historical_changes
