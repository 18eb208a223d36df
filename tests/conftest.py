"""
Pytest configuration and shared fixtures.
"""

import random
import pytest
from unittest.mock import Mock

from cfr_agency_metrics.config import Config
from cfr_agency_metrics.models import Agency, DocumentNode, Title
from cfr_agency_metrics.synthetic import SyntheticDataGenerator


@pytest.fixture
def sample_tree():
    """Small document tree with text at several levels."""
    return DocumentNode(
        text="Title 7 Agriculture",
        children=(
            DocumentNode(
                text=None,
                children=(
                    DocumentNode(text="Part 1 general provisions"),
                    DocumentNode(text="Part 2 definitions"),
                )
            ),
            DocumentNode(text="Appendix"),
        )
    )


@pytest.fixture
def sample_agencies():
    """Agencies as returned by the agency list endpoint."""
    return [
        Agency(name="Department of Agriculture"),
        Agency(name="Department of Energy"),
    ]


@pytest.fixture
def sample_titles():
    """Titles referencing the sample agencies."""
    return [
        Title(number=7, sections=120, agencies=frozenset({"Department of Agriculture"})),
        Title(number=10, sections=None,
              agencies=frozenset({"Department of Energy", "Department of Agriculture"})),
        Title(number=12, sections=80, agencies=frozenset({"Department of Agriculture"})),
    ]


@pytest.fixture
def seeded_synthetic():
    """Synthetic data generator with a fixed seed."""
    return SyntheticDataGenerator(rng=random.Random(42))


@pytest.fixture
def mock_synthetic():
    """Mock synthetic generator returning marker values."""
    mock_generator = Mock()
    mock_generator.agency_word_count.side_effect = lambda name: ("synthetic-words", name)
    mock_generator.complexity_score.side_effect = lambda name: ("synthetic-score", name)
    return mock_generator


@pytest.fixture
def mock_client(sample_tree):
    """Mock eCFR client serving the sample tree and a short text."""
    mock_client = Mock()
    mock_client.max_tree_depth = Config.MAX_TREE_DEPTH
    mock_client.fetch_structure.return_value = sample_tree
    mock_client.fetch_raw_text.return_value = "<p>Section 5 requires compliance.</p>"
    return mock_client


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test names."""
    for item in items:
        # Mark integration tests
        if "integration" in item.nodeid.lower() or "end_to_end" in item.nodeid.lower():
            item.add_marker(pytest.mark.integration)

        # Mark slow tests
        if "concurrency" in item.nodeid.lower():
            item.add_marker(pytest.mark.slow)
