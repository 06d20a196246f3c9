"""Data models for the Clickbait Resolver."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, List, Optional


@dataclass(eq=False)
class HeadlineCandidate:
    """A discovered headline element plus its trimmed text.

    Identity is the element object itself, not the text: the same headline
    text may legitimately appear more than once on a page.
    """
    element: Any  # bs4.Tag
    text: str

    def __hash__(self):
        return id(self.element)

    def __eq__(self, other):
        if not isinstance(other, HeadlineCandidate):
            return False
        return self.element is other.element


@dataclass
class ClassificationResult:
    """Outcome of classifying a single headline."""
    is_clickbait: bool
    confidence: Optional[float] = None  # 0-1, None for plain pattern matching
    reason: str = ""
    summary: Optional[str] = None
    source: str = "pattern"  # "pattern", "ai", "fallback" or "simulation"

    def to_dict(self) -> dict:
        """Convert result to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'ClassificationResult':
        """Create ClassificationResult from dictionary."""
        return cls(**data)


@dataclass
class CacheEntry:
    """Cached article summary with the time it was stored."""
    value: str
    stored_at: float  # Unix timestamp, seconds

    def is_fresh(self, now: float, freshness_seconds: float) -> bool:
        """True while the entry is younger than the freshness window."""
        return (now - self.stored_at) < freshness_seconds

    def to_dict(self) -> dict:
        """Convert entry to dictionary for JSON serialization."""
        return {
            'value': self.value,
            'stored_at': self.stored_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CacheEntry':
        """Create CacheEntry from dictionary."""
        return cls(value=str(data['value']), stored_at=float(data['stored_at']))


@dataclass
class ArticleSummary:
    """Short summary produced for an article URL."""
    url: str
    summary: str


@dataclass
class ProcessingReport:
    """Results from one pass of the headline pipeline."""
    discovered: int = 0
    eligible: int = 0
    skipped_processed: int = 0
    skipped_by_cap: int = 0
    classified: int = 0
    flagged: int = 0
    batches: int = 0
    fallback_results: int = 0
    mode: str = "pattern"  # "pattern" or "ai"
    errors: List[str] = field(default_factory=list)
    provider_usage: Optional[dict] = None  # cumulative provider stats after an AI pass
    execution_time: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert report to dictionary for JSON serialization."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data


@dataclass
class IssueReport:
    """User-submitted report about a wrongly handled headline."""
    description: str
    headline: Optional[str] = None
    page_url: Optional[str] = None
    reported_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert report to dictionary for JSON serialization."""
        return {
            'description': self.description,
            'headline': self.headline,
            'page_url': self.page_url,
            'reported_at': self.reported_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'IssueReport':
        """Create IssueReport from dictionary."""
        data = data.copy()
        if isinstance(data.get('reported_at'), str):
            data['reported_at'] = datetime.fromisoformat(data['reported_at'])
        return cls(**data)
