"""Domain types for pitches and their analysis output.

These are plain dataclasses, independent of the ORM, so the matching engine
and the recommendation service can run over any candidate pool.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pitchhub.errors import InvalidTransition

EMBEDDING_DIM = 1536
SENTIMENT_TOLERANCE = 0.01


class Theme(str, Enum):
    """Closed thematic vocabulary (see ``config/themes.py``)."""
    SPORT = "sport"
    CULTURE = "culture"
    EDUCATION = "education"
    FAMILY = "family"
    PROFESSIONAL = "professional"
    LEISURE = "leisure"
    TRAVEL = "travel"
    COOKING = "cooking"
    TECHNOLOGY = "technology"
    HEALTH = "health"
    OTHER = "other"


class AnalysisStatus(str, Enum):
    """Lifecycle of a pitch's enrichment."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


# failed -> pending only through an explicit retry request
ALLOWED_TRANSITIONS: dict[AnalysisStatus, frozenset[AnalysisStatus]] = {
    AnalysisStatus.PENDING: frozenset({AnalysisStatus.IN_PROGRESS}),
    AnalysisStatus.IN_PROGRESS: frozenset({AnalysisStatus.COMPLETE, AnalysisStatus.FAILED}),
    AnalysisStatus.COMPLETE: frozenset(),
    AnalysisStatus.FAILED: frozenset({AnalysisStatus.PENDING}),
}


def check_transition(current: AnalysisStatus, target: AnalysisStatus) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot move analysis status from {current.value} to {target.value}"
        )


@dataclass(frozen=True)
class Keyword:
    """A keyword term with relevance in [0, 1]."""
    term: str
    score: float

    def to_dict(self) -> dict:
        return {"term": self.term, "score": self.score}

    @classmethod
    def from_value(cls, value) -> Keyword:
        """Accept a Keyword, a ``{"term", "score"}`` dict, or a bare string."""
        if isinstance(value, Keyword):
            return value
        if isinstance(value, dict):
            return cls(term=str(value["term"]), score=float(value.get("score", 0.0)))
        return cls(term=str(value), score=0.0)


@dataclass(frozen=True)
class Sentiment:
    """Positive / negative / neutral distribution summing to 1."""
    positive: float
    negative: float
    neutral: float

    def __post_init__(self) -> None:
        total = self.positive + self.negative + self.neutral
        if min(self.positive, self.negative, self.neutral) < 0:
            raise ValueError("Sentiment scores must be non-negative")
        if not math.isclose(total, 1.0, abs_tol=SENTIMENT_TOLERANCE):
            raise ValueError(f"Sentiment scores must sum to 1, got {total:.3f}")

    @classmethod
    def neutral_default(cls) -> Sentiment:
        return cls(positive=0.0, negative=0.0, neutral=1.0)

    def to_dict(self) -> dict[str, float]:
        return {"positive": self.positive, "negative": self.negative, "neutral": self.neutral}


@dataclass(frozen=True)
class Embedding:
    """A transcript embedding; ``is_fallback`` marks non-semantic vectors."""
    vector: list[float]
    is_fallback: bool
    model: str

    @property
    def dimension(self) -> int:
        return len(self.vector)


@dataclass
class AnalysisResult:
    """Transient output of one pipeline run, merged into the pitch on completion."""
    transcript: str
    keywords: list[Keyword]
    sentiment: Sentiment
    quality_score: float
    summary: str
    degraded: bool = False


@dataclass
class PitchRecord:
    """A pitch as seen by the core: identity, media, and enrichment fields."""
    id: int
    owner_id: int
    media_url: str
    theme: Theme
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING
    title: str | None = None
    transcript: str | None = None
    keywords: list[Keyword] = field(default_factory=list)
    embedding: list[float] | None = None
    embedding_is_fallback: bool = False
    sentiment: Sentiment | None = None
    quality_score: float | None = None
    summary: str | None = None
    analysis_degraded: bool = False
    related_ids: list[int] = field(default_factory=list)
    analysis_started_at: datetime | None = None
    analyzed_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.analysis_status is AnalysisStatus.COMPLETE

    @property
    def keyword_terms(self) -> list[str]:
        return [k.term for k in self.keywords]
