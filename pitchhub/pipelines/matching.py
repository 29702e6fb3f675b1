"""Matching engine: similar pitches, compatibility, and collaborators.

All functions are pure scans over a caller-supplied candidate pool; they
never mutate pitches.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from config.themes import COMPLEMENTARY_THEMES
from insights.similarity import cosine_similarity, keyword_overlap_score, matching_terms, normalize_terms
from pitchhub.domain import PitchRecord, Theme
from pitchhub.errors import NotAnalyzed

logger = logging.getLogger(__name__)

OVERLAP_WEIGHT = 0.6
UNIQUE_CONTRIBUTION_WEIGHT = 0.4
MAX_CONTRIBUTED_KEYWORDS = 5


@dataclass
class SimilarMatch:
    """One ranked similar pitch."""
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    shared_keywords: list[str] = field(default_factory=list)


@dataclass
class CompatibilityBreakdown:
    """Compatibility of B with respect to A, with its two components."""
    pitch_a_id: int
    pitch_b_id: int
    score: float
    overlap: float
    unique_contribution: float
    shared_keywords: list[str]
    contributed_keywords: list[str]


@dataclass
class CollaboratorMatch:
    """A candidate pitch whose author could complement the source pitch."""
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    shared_keywords: list[str]
    contributed_keywords: list[str]
    collaboration_potential: float


def require_analyzed(pitch: PitchRecord) -> None:
    if not pitch.is_complete:
        raise NotAnalyzed(
            f"Pitch {pitch.id} analysis is {pitch.analysis_status.value}, not complete"
        )


def eligible_candidates(
    pitch: PitchRecord,
    candidate_pool: Iterable[PitchRecord],
    theme: Theme | str | None = None,
) -> Iterator[PitchRecord]:
    """Complete candidates other than ``pitch``, optionally of one theme."""
    theme_value = Theme(theme) if theme is not None else None
    for candidate in candidate_pool:
        if candidate.id == pitch.id or not candidate.is_complete:
            continue
        if theme_value is not None and candidate.theme is not theme_value:
            continue
        yield candidate


def _rank_key(item) -> tuple[float, int]:
    # Descending score, ties by id for determinism
    return (-item.score, item.pitch_id)


def find_similar(
    pitch: PitchRecord,
    candidate_pool: Iterable[PitchRecord],
    *,
    limit: int = 5,
    min_score: float = 0.2,
    theme: Theme | str | None = None,
) -> list[SimilarMatch]:
    """Rank candidates by keyword overlap with ``pitch``.

    Candidates are kept only when their score is strictly greater than
    ``min_score``.

    Args:
        pitch: Source pitch (its keywords drive the search)
        candidate_pool: Pitches to scan
        limit: Maximum number of results
        min_score: Exclusive lower bound on the overlap score
        theme: Optional theme filter

    Returns:
        Matches sorted by descending score, then candidate id
    """
    source_terms = normalize_terms(pitch.keywords)
    matches: list[SimilarMatch] = []

    for candidate in eligible_candidates(pitch, candidate_pool, theme):
        score = keyword_overlap_score(pitch.keywords, candidate.keywords)
        if score > min_score:
            matches.append(SimilarMatch(
                pitch_id=candidate.id,
                owner_id=candidate.owner_id,
                theme=candidate.theme.value,
                score=score,
                shared_keywords=matching_terms(source_terms, normalize_terms(candidate.keywords)),
            ))

    matches.sort(key=_rank_key)
    logger.debug(f"Pitch {pitch.id}: {len(matches)} similar candidates above {min_score}")
    return matches[:limit]


def find_similar_by_embedding(
    pitch: PitchRecord,
    candidate_pool: Iterable[PitchRecord],
    *,
    limit: int = 5,
    min_score: float = 0.5,
    theme: Theme | str | None = None,
    allow_fallback: bool = False,
) -> list[SimilarMatch]:
    """Rank candidates by cosine similarity of their embeddings.

    Fallback embeddings carry no meaning, so they are skipped on either side
    unless ``allow_fallback`` is set.

    Raises:
        NotAnalyzed: If the source pitch has no usable embedding
        DimensionMismatch: If a candidate embedding has another dimension
    """
    if pitch.embedding is None or (pitch.embedding_is_fallback and not allow_fallback):
        raise NotAnalyzed(f"Pitch {pitch.id} has no semantic embedding")

    matches: list[SimilarMatch] = []
    for candidate in eligible_candidates(pitch, candidate_pool, theme):
        if candidate.embedding is None:
            continue
        if candidate.embedding_is_fallback and not allow_fallback:
            continue
        score = cosine_similarity(pitch.embedding, candidate.embedding)
        if score > min_score:
            matches.append(SimilarMatch(
                pitch_id=candidate.id,
                owner_id=candidate.owner_id,
                theme=candidate.theme.value,
                score=score,
            ))

    matches.sort(key=_rank_key)
    return matches[:limit]


def explain_compatibility(pitch_a: PitchRecord, pitch_b: PitchRecord) -> CompatibilityBreakdown:
    """Compatibility of B for A with its components.

    ``0.6 * overlap(A, B) + 0.4 * unique_contribution`` where the unique
    contribution is the fraction of B's keywords matching none of A's.

    Raises:
        NotAnalyzed: If either pitch is not complete
    """
    require_analyzed(pitch_a)
    require_analyzed(pitch_b)

    terms_a = normalize_terms(pitch_a.keywords)
    terms_b = normalize_terms(pitch_b.keywords)

    shared = matching_terms(terms_a, terms_b)
    contributed = [term for term in terms_b if term not in shared]

    overlap = keyword_overlap_score(terms_a, terms_b)
    unique = len(contributed) / len(terms_b) if terms_b else 0.0

    return CompatibilityBreakdown(
        pitch_a_id=pitch_a.id,
        pitch_b_id=pitch_b.id,
        score=OVERLAP_WEIGHT * overlap + UNIQUE_CONTRIBUTION_WEIGHT * unique,
        overlap=overlap,
        unique_contribution=unique,
        shared_keywords=shared,
        contributed_keywords=contributed,
    )


def compute_compatibility(pitch_a: PitchRecord, pitch_b: PitchRecord) -> float:
    """Scalar compatibility of B for A (see ``explain_compatibility``)."""
    return explain_compatibility(pitch_a, pitch_b).score


def collaboration_potential(pitch_a: PitchRecord, pitch_b: PitchRecord) -> float:
    """Heuristic in [0, 1]: complementary themes and pitch quality raise it."""
    potential = 0.5
    if pitch_b.theme.value in COMPLEMENTARY_THEMES.get(pitch_a.theme.value, []):
        potential += 0.2

    quality_a = pitch_a.quality_score if pitch_a.quality_score is not None else 50.0
    quality_b = pitch_b.quality_score if pitch_b.quality_score is not None else 50.0
    potential += ((quality_a + quality_b) / 2 / 100) * 0.3
    return min(potential, 1.0)


def find_complementary(
    pitch: PitchRecord,
    candidate_pool: Iterable[PitchRecord],
    *,
    limit: int = 5,
    min_score: float = 0.3,
    theme: Theme | str | None = None,
    exclude_owner: bool = True,
) -> list[CollaboratorMatch]:
    """Rank candidates by compatibility rather than raw overlap.

    Surfaces pitches that share some context yet bring distinct keywords:
    candidates with no keyword overlap at all are skipped, however much
    they would contribute.
    Pitches by the same owner are skipped unless ``exclude_owner`` is False.

    Raises:
        NotAnalyzed: If the source pitch is not complete
    """
    require_analyzed(pitch)

    matches: list[CollaboratorMatch] = []
    for candidate in eligible_candidates(pitch, candidate_pool, theme):
        if exclude_owner and candidate.owner_id == pitch.owner_id:
            continue
        breakdown = explain_compatibility(pitch, candidate)
        if breakdown.overlap == 0:
            continue
        if breakdown.score > min_score:
            matches.append(CollaboratorMatch(
                pitch_id=candidate.id,
                owner_id=candidate.owner_id,
                theme=candidate.theme.value,
                score=breakdown.score,
                shared_keywords=breakdown.shared_keywords,
                contributed_keywords=breakdown.contributed_keywords[:MAX_CONTRIBUTED_KEYWORDS],
                collaboration_potential=collaboration_potential(pitch, candidate),
            ))

    matches.sort(key=_rank_key)
    logger.debug(f"Pitch {pitch.id}: {len(matches)} complementary candidates above {min_score}")
    return matches[:limit]
