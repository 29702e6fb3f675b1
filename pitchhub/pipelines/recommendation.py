"""Recommendation service: user profiles and explained recommendations."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from insights.similarity import keyword_overlap_score, matching_terms, normalize_terms
from pitchhub.domain import PitchRecord

logger = logging.getLogger(__name__)

MAX_REASON_KEYWORDS = 3


@dataclass
class ProfileKeyword:
    """Keyword aggregated over a user's pitches."""
    term: str
    weight: float  # mean relevance across the user's pitches
    frequency: int  # number of pitches mentioning it


@dataclass
class UserProfile:
    """Derived interests of one user; recomputed on demand, never stored."""
    user_id: int
    preferred_themes: list[str] = field(default_factory=list)
    aggregate_keywords: list[ProfileKeyword] = field(default_factory=list)
    pitch_count: int = 0

    @property
    def is_empty(self) -> bool:
        """True when there is not enough data to recommend anything."""
        return self.pitch_count == 0

    @property
    def terms(self) -> list[str]:
        return [k.term for k in self.aggregate_keywords]


@dataclass
class Recommendation:
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    reason: str
    shared_keywords: list[str] = field(default_factory=list)


@dataclass
class RecommendationPage:
    items: list[Recommendation]
    total: int
    page: int
    page_size: int


def build_profile(user_id: int, pitches: Iterable[PitchRecord]) -> UserProfile:
    """Aggregate theme frequency and keyword relevance over a user's pitches.

    Only complete pitches owned by ``user_id`` count. Keyword weights are the
    sum of per-pitch relevance divided by the number of pitches.
    """
    owned = [p for p in pitches if p.owner_id == user_id and p.is_complete]
    if not owned:
        return UserProfile(user_id=user_id)

    theme_counts = Counter(p.theme.value for p in owned)
    relevance: dict[str, float] = {}
    frequency: Counter[str] = Counter()
    for pitch in owned:
        seen: set[str] = set()
        for keyword in pitch.keywords:
            term = keyword.term.strip().lower()
            if not term or term in seen:
                continue
            seen.add(term)
            relevance[term] = relevance.get(term, 0.0) + keyword.score
            frequency[term] += 1

    keywords = [
        ProfileKeyword(term=term, weight=total / len(owned), frequency=frequency[term])
        for term, total in relevance.items()
    ]
    keywords.sort(key=lambda k: (-k.weight, k.term))

    return UserProfile(
        user_id=user_id,
        preferred_themes=[theme for theme, _ in theme_counts.most_common()],
        aggregate_keywords=keywords,
        pitch_count=len(owned),
    )


def build_reason(theme: str | None, keywords: list[str]) -> str:
    """Human-readable explanation of what drove a match."""
    shown = ", ".join(keywords[:MAX_REASON_KEYWORDS])
    if theme and shown:
        return f"shares theme {theme} and keywords {shown}"
    if theme:
        return f"shares theme {theme}"
    if shown:
        return f"shares keywords {shown}"
    return "related to your pitches"


def recommend(
    profile: UserProfile,
    candidate_pool: Iterable[PitchRecord],
    *,
    min_score: float = 0.1,
    theme_boost: float = 0.1,
    top_themes: int = 3,
    page: int = 1,
    page_size: int = 10,
) -> RecommendationPage:
    """Score complete candidates against a profile and return one page.

    Score is the keyword overlap between the profile and the candidate plus
    ``theme_boost`` when the candidate's theme is one of the profile's top
    themes. Candidates owned by the profile's user are skipped. An empty
    profile yields an empty page.
    """
    page = max(page, 1)
    if profile.is_empty:
        return RecommendationPage(items=[], total=0, page=page, page_size=page_size)

    boosted_themes = set(profile.preferred_themes[:top_themes])
    profile_terms = profile.terms
    scored: list[Recommendation] = []

    for candidate in candidate_pool:
        if not candidate.is_complete or candidate.owner_id == profile.user_id:
            continue

        score = keyword_overlap_score(profile_terms, candidate.keywords)
        theme_match = candidate.theme.value in boosted_themes
        if theme_match:
            score += theme_boost
        if score <= min_score:
            continue

        shared = matching_terms(profile_terms, normalize_terms(candidate.keywords))
        scored.append(Recommendation(
            pitch_id=candidate.id,
            owner_id=candidate.owner_id,
            theme=candidate.theme.value,
            score=score,
            reason=build_reason(candidate.theme.value if theme_match else None, shared),
            shared_keywords=shared,
        ))

    scored.sort(key=lambda r: (-r.score, r.pitch_id))
    start = (page - 1) * page_size
    logger.debug(f"User {profile.user_id}: {len(scored)} recommendations above {min_score}")
    return RecommendationPage(
        items=scored[start:start + page_size],
        total=len(scored),
        page=page,
        page_size=page_size,
    )
