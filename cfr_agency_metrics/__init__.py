"""
CFR Agency Metrics

Per-agency word counts, content checksums, complexity scores and a monthly
historical series computed from the eCFR API, with synthetic fallback when
the service is partially or fully unavailable.
"""

__version__ = "1.0.0"
__author__ = "CFR Agency Metrics Team"
__description__ = "Aggregate word count and complexity metrics for CFR agencies"

from .models import (
    Agency, Title, DocumentNode, AgencyWordCount, ComplexityScore,
    HistoricalDataPoint, AggregateSummary
)
from .error_handler import (
    CFRMetricsError, UpstreamUnavailable, MalformedResponse, SampleExhausted,
    RequestCancelled, ConfigurationError
)
from .cache import ResponseCache
from .api_client import ECFRClient
from .word_counter import count_words, compute_checksum, WordCountAggregator
from .complexity_analyzer import analyze, complexity_score, ComplexityAnalyzer
from .historical import HistoricalSeriesBuilder
from .synthetic import SyntheticDataGenerator
from .orchestrator import AggregateOrchestrator
from .config import Config

__all__ = [
    'Agency',
    'Title',
    'DocumentNode',
    'AgencyWordCount',
    'ComplexityScore',
    'HistoricalDataPoint',
    'AggregateSummary',
    'CFRMetricsError',
    'UpstreamUnavailable',
    'MalformedResponse',
    'SampleExhausted',
    'RequestCancelled',
    'ConfigurationError',
    'ResponseCache',
    'ECFRClient',
    'count_words',
    'compute_checksum',
    'WordCountAggregator',
    'analyze',
    'complexity_score',
    'ComplexityAnalyzer',
    'HistoricalSeriesBuilder',
    'SyntheticDataGenerator',
    'AggregateOrchestrator',
    'Config'
]
