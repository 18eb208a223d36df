"""
Word counter for CFR document structure trees.

This module walks document trees to count words, fingerprints the walked
content, and aggregates both per agency over a bounded sample of titles.
"""

import hashlib
import logging
import threading
from datetime import date
from typing import List, Optional, Tuple

from .config import Config
from .error_handler import (
    ErrorCollector, MalformedResponse, RequestCancelled, SampleExhausted,
    UpstreamUnavailable
)
from .models import Agency, AgencyWordCount, DocumentNode, Title


logger = logging.getLogger(__name__)


def count_words(node: DocumentNode, max_depth: int = None) -> Tuple[int, str]:
    """
    Count the words in a document tree and collect its text.

    Nodes are visited depth-first in document order using an explicit stack.
    The count does not depend on that order; the collected content does, and
    is used only as checksum input.

    Args:
        node: Root of the tree
        max_depth: Deepest nesting accepted (default from config)

    Returns:
        Tuple of (word_count, concatenated_content)

    Raises:
        MalformedResponse: If the tree is deeper than max_depth
    """
    max_depth = max_depth or Config.MAX_TREE_DEPTH
    word_count = 0
    parts: List[str] = []
    stack: List[Tuple[DocumentNode, int]] = [(node, 1)]

    while stack:
        current, depth = stack.pop()
        if depth > max_depth:
            raise MalformedResponse(f"Document tree exceeds maximum depth of {max_depth}")

        if current.text:
            parts.append(current.text)
            word_count += len(current.text.split())

        # Reversed so the first child is popped first
        for child in reversed(current.children):
            stack.append((child, depth + 1))

    return word_count, ''.join(parts)


def compute_checksum(content: str, fallback: str) -> str:
    """
    Fingerprint content for change detection.

    Args:
        content: Concatenated document text, possibly empty
        fallback: Value hashed instead when content is empty

    Returns:
        Truncated hex digest
    """
    source = content or fallback
    digest = hashlib.md5(source.encode('utf-8')).hexdigest()
    return digest[:Config.CHECKSUM_LENGTH]


def titles_for_agency(titles: List[Title], agency_name: str) -> List[Title]:
    """Return the titles referencing an agency, in title-list order."""
    return [title for title in titles if title.references(agency_name)]


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    """Raise RequestCancelled if the caller has abandoned the run."""
    if cancel_event is not None and cancel_event.is_set():
        raise RequestCancelled("Orchestration run was cancelled")


class WordCountAggregator:
    """Aggregates word counts and checksums per agency."""

    def __init__(self, client, synthetic, title_cap: int = None,
                 collector: Optional[ErrorCollector] = None, max_depth: int = None):
        """
        Initialize the aggregator.

        Args:
            client: Source of document structure (an ECFRClient)
            synthetic: SyntheticDataGenerator used for per-agency fallback
            title_cap: Maximum titles sampled per agency (default from config)
            collector: Optional collector recording absorbed failures
            max_depth: Deepest tree walked (default: the client's own bound)
        """
        self.client = client
        self.synthetic = synthetic
        self.title_cap = title_cap or Config.WORD_COUNT_TITLE_CAP
        self.collector = collector
        self.max_depth = max_depth or getattr(client, 'max_tree_depth', None) or Config.MAX_TREE_DEPTH

    def count_agency(self, agency: Agency, titles: List[Title], as_of: date,
                     cancel_event: Optional[threading.Event] = None) -> AgencyWordCount:
        """
        Compute the live word count for one agency.

        Failed title fetches are skipped; any successful fetch makes the
        result live.

        Raises:
            SampleExhausted: If no title was associated or every fetch failed
            RequestCancelled: If cancel_event is set
        """
        sample = titles_for_agency(titles, agency.name)[:self.title_cap]
        if not sample:
            raise SampleExhausted(f"No titles associated with {agency.name}")

        total_words = 0
        content_parts = []
        fetched = 0

        for title in sample:
            check_cancelled(cancel_event)
            try:
                structure = self.client.fetch_structure(as_of, title.number)
                words, content = count_words(structure, self.max_depth)
            except (UpstreamUnavailable, MalformedResponse) as e:
                logger.debug(f"Error fetching structure for title {title.number}: {e}")
                continue

            total_words += words
            content_parts.append(content)
            fetched += 1

        if not fetched:
            raise SampleExhausted(f"All {len(sample)} sampled titles failed for {agency.name}")

        content = ''.join(content_parts)
        logger.debug(f"Agency {agency.name}: {total_words} words from {fetched} titles")
        return AgencyWordCount(
            name=agency.name,
            word_count=total_words,
            checksum=compute_checksum(content, agency.name)
        )

    def aggregate_agency(self, agency: Agency, titles: List[Title], as_of: date,
                         cancel_event: Optional[threading.Event] = None) -> AgencyWordCount:
        """Compute one agency's word count, substituting synthetic data on failure."""
        try:
            return self.count_agency(agency, titles, as_of, cancel_event)
        except (SampleExhausted, UpstreamUnavailable, MalformedResponse) as e:
            logger.warning(f"Using synthetic word count for {agency.name}: {e.message}")
            if self.collector is not None:
                self.collector.add_error(e, context=f"word count for {agency.name}")
            return self.synthetic.agency_word_count(agency.name)
