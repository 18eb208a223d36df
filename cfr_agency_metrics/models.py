"""
Data models for CFR Agency Metrics.

This module defines the value objects used throughout the pipeline for
representing agencies, titles, document trees, and the per-agency metrics
that make up an aggregate summary. All models are immutable once built.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Agency:
    """Represents a federal agency, identified by its display name."""
    name: str

    def __post_init__(self):
        """Validate agency data after initialization."""
        if not self.name:
            raise ValueError("Agency name is required")

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> 'Agency':
        """Create an agency from an upstream agency record."""
        return cls(name=record.get('name') or '')


@dataclass(frozen=True)
class Title:
    """Represents a numbered CFR title and the agencies that reference it."""
    number: int
    sections: Optional[int] = None
    agencies: FrozenSet[str] = frozenset()

    def __post_init__(self):
        """Validate title data after initialization."""
        if self.sections is not None and self.sections < 0:
            raise ValueError("Section count cannot be negative")

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> 'Title':
        """
        Create a title from an upstream title record.

        Agencies may be given either as ``{"name": ...}`` records or as plain
        strings.
        """
        names = set()
        for agency in record.get('agencies') or []:
            if isinstance(agency, Mapping):
                name = agency.get('name')
            else:
                name = agency
            if name:
                names.add(str(name))

        sections = record.get('sections')
        return cls(
            number=int(record['number']),
            sections=int(sections) if sections is not None else None,
            agencies=frozenset(names)
        )

    def references(self, agency_name: str) -> bool:
        """Check whether this title is associated with the given agency."""
        return agency_name in self.agencies


@dataclass(frozen=True)
class DocumentNode:
    """A unit of document structure, optionally bearing text and children."""
    text: Optional[str] = None
    children: Tuple['DocumentNode', ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], max_depth: int) -> 'DocumentNode':
        """
        Build a document tree from decoded JSON.

        The tree is assembled bottom-up from an explicit stack so that deeply
        nested input cannot exhaust the interpreter's call stack.

        Args:
            data: Decoded structure payload
            max_depth: Maximum nesting depth accepted

        Returns:
            Root DocumentNode

        Raises:
            ValueError: If a node is not a mapping or the tree is too deep
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Expected a mapping for document node, got {type(data).__name__}")

        # Each frame: (raw node, depth, whether its children are already queued)
        built: Dict[int, DocumentNode] = {}
        stack: List[Tuple[Mapping[str, Any], int, bool]] = [(data, 1, False)]

        while stack:
            raw, depth, expanded = stack.pop()
            children = raw.get('children') or []
            if not isinstance(children, list):
                raise ValueError("Document node children must be a list")

            if not expanded:
                if depth > max_depth:
                    raise ValueError(f"Document tree exceeds maximum depth of {max_depth}")
                stack.append((raw, depth, True))
                for child in children:
                    if not isinstance(child, Mapping):
                        raise ValueError(
                            f"Expected a mapping for document node, got {type(child).__name__}"
                        )
                    stack.append((child, depth + 1, False))
                continue

            text = raw.get('text')
            built[id(raw)] = cls(
                text=str(text) if text is not None else None,
                children=tuple(built.pop(id(child)) for child in children)
            )

        return built[id(data)]


@dataclass(frozen=True)
class AgencyWordCount:
    """Word count and content fingerprint for a single agency."""
    name: str
    word_count: int
    checksum: str
    is_synthetic: bool = False

    def __post_init__(self):
        """Validate word count data after initialization."""
        if self.word_count < 0:
            raise ValueError("Word count cannot be negative")
        if not self.checksum:
            raise ValueError("Checksum is required")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'wordCount': self.word_count,
            'checksum': self.checksum,
        }


@dataclass(frozen=True)
class ComplexityScore:
    """Readability, terminology and cross-reference metrics for one agency."""
    name: str
    complexity_score: float
    reading_level: float
    technical_terms: int
    cross_references: int
    is_synthetic: bool = False

    def __post_init__(self):
        """Validate complexity data after initialization."""
        if not 10 <= self.reading_level <= 20:
            raise ValueError("Reading level must be within [10, 20]")
        if self.technical_terms < 0 or self.cross_references < 0:
            raise ValueError("Term and reference counts cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'complexityScore': self.complexity_score,
            'readingLevel': self.reading_level,
            'technicalTerms': self.technical_terms,
            'crossReferences': self.cross_references,
        }


@dataclass(frozen=True)
class HistoricalDataPoint:
    """Regulation and word totals for one calendar month."""
    date: str
    regulation_count: int
    word_count: int
    events: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date,
            'regulationCount': self.regulation_count,
            'wordCount': self.word_count,
            'events': list(self.events),
        }


@dataclass(frozen=True)
class AggregateSummary:
    """The complete result of one orchestration run."""
    total_agencies: int
    total_words: int
    total_regulations: int
    agency_word_counts: Tuple[AgencyWordCount, ...] = field(default_factory=tuple)
    complexity_scores: Tuple[ComplexityScore, ...] = field(default_factory=tuple)
    historical_changes: Tuple[HistoricalDataPoint, ...] = field(default_factory=tuple)
    degraded: bool = False

    def __post_init__(self):
        """Validate summary totals after initialization."""
        if self.total_agencies != len(self.agency_word_counts):
            raise ValueError("Total agencies must match word count results length")
        if self.total_words != sum(item.word_count for item in self.agency_word_counts):
            raise ValueError("Total words must equal the sum of agency word counts")

    @classmethod
    def from_collections(cls, word_counts: List[AgencyWordCount],
                         complexity_scores: List[ComplexityScore],
                         history: List[HistoricalDataPoint],
                         degraded: bool = False) -> 'AggregateSummary':
        """Derive the summary totals from the merged collections."""
        return cls(
            total_agencies=len(word_counts),
            total_words=sum(item.word_count for item in word_counts),
            total_regulations=history[-1].regulation_count if history else 0,
            agency_word_counts=tuple(word_counts),
            complexity_scores=tuple(complexity_scores),
            historical_changes=tuple(history),
            degraded=degraded
        )

    def get_summary(self) -> str:
        """Generate a human-readable summary of the results."""
        return (
            f"{self.total_agencies} agencies, {self.total_words:,} words, "
            f"{self.total_regulations:,} regulations"
            f"{' (degraded)' if self.degraded else ''}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Render the summary with the keys the presentation layer expects."""
        return {
            'totalAgencies': self.total_agencies,
            'totalWords': self.total_words,
            'totalRegulations': self.total_regulations,
            'agencyWordCounts': [item.to_dict() for item in self.agency_word_counts],
            'historicalChanges': [item.to_dict() for item in self.historical_changes],
            'complexityScores': [item.to_dict() for item in self.complexity_scores],
            'degraded': self.degraded,
        }
