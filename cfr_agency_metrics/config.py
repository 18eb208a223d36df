"""
Configuration settings for CFR Agency Metrics.

This module handles configuration from environment variables and provides
default values for the aggregation pipeline.
"""

import os
import logging
from typing import Dict, List

from dotenv import load_dotenv

from .error_handler import ConfigurationError

# Load environment variables from .env file
load_dotenv()


class Config:
    """Configuration class for CFR Agency Metrics."""

    # eCFR API settings
    ECFR_BASE_URL: str = os.getenv('ECFR_BASE_URL', 'https://www.ecfr.gov')
    ECFR_RATE_LIMIT: float = float(os.getenv('ECFR_RATE_LIMIT', '5.0'))

    # Request settings
    REQUEST_TIMEOUT: int = int(os.getenv('REQUEST_TIMEOUT', '30'))
    MAX_RETRIES: int = int(os.getenv('MAX_RETRIES', '3'))

    # Cache settings
    CACHE_TTL_SECONDS: float = float(os.getenv('CFR_METRICS_CACHE_TTL', '3600'))

    # Concurrency settings
    MAX_CONCURRENT_REQUESTS: int = int(os.getenv('CFR_METRICS_MAX_WORKERS', '4'))

    # Sampling caps (titles examined per agency per metric)
    WORD_COUNT_TITLE_CAP: int = 2
    COMPLEXITY_TITLE_CAP: int = 1

    # Document processing settings
    MAX_TREE_DEPTH: int = int(os.getenv('CFR_METRICS_MAX_TREE_DEPTH', '200'))
    CHECKSUM_LENGTH: int = 8

    # Historical series settings
    HISTORY_YEARS: int = int(os.getenv('CFR_METRICS_HISTORY_YEARS', '10'))
    MONTHLY_GROWTH_RATE: float = 0.005
    HISTORY_PERTURBATION: float = 0.05
    DEFAULT_TITLE_SECTIONS: int = 100
    WORDS_PER_REGULATION: int = 500

    # Static calendar annotations, keyed by year-month
    HISTORICAL_EVENTS: Dict[str, List[str]] = {
        '2017-01': ['New administration transition'],
        '2018-04': ['Major regulatory reform initiative'],
        '2020-03': ['COVID-19 emergency regulations'],
        '2021-01': ['New administration transition'],
        '2022-11': ['Infrastructure modernization regulations'],
    }

    # Logging settings
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE: str = os.getenv('CFR_METRICS_LOG_FILE', 'cfr_agency_metrics.log')

    @classmethod
    def setup_logging(cls, verbose: bool = False) -> None:
        """Set up logging configuration."""
        level = logging.DEBUG if verbose else getattr(logging, cls.LOG_LEVEL.upper())

        logging.basicConfig(
            level=level,
            format=cls.LOG_FORMAT,
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(cls.LOG_FILE)
            ]
        )

        # Reduce noise from urllib3
        logging.getLogger('urllib3').setLevel(logging.WARNING)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration settings."""
        if cls.ECFR_RATE_LIMIT < 0:
            raise ConfigurationError("API rate limit cannot be negative")

        if cls.REQUEST_TIMEOUT <= 0:
            raise ConfigurationError("Request timeout must be positive")

        if cls.MAX_RETRIES < 0:
            raise ConfigurationError("Max retries cannot be negative")

        if cls.CACHE_TTL_SECONDS < 0:
            raise ConfigurationError("Cache TTL cannot be negative")

        if cls.MAX_CONCURRENT_REQUESTS < 1:
            raise ConfigurationError("At least one worker is required")

        if cls.WORD_COUNT_TITLE_CAP < 1 or cls.COMPLEXITY_TITLE_CAP < 1:
            raise ConfigurationError("Title sampling caps must be at least 1")

        if cls.MAX_TREE_DEPTH < 1:
            raise ConfigurationError("Maximum tree depth must be at least 1")

        if not cls.ECFR_BASE_URL.startswith(('http://', 'https://')):
            raise ConfigurationError("API base URL must be a valid HTTP/HTTPS URL")
