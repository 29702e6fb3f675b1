"""Matching and recommendation API surface consumed by the HTTP layer.

Loads pitches from the store, enforces preconditions with typed errors, and
delegates ranking to the matching engine and recommendation service.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum

from insights.similarity import keyword_overlap_score, normalize_terms
from pitchhub.config import Settings
from pitchhub.domain import AnalysisStatus, PitchRecord, Theme
from pitchhub.pipelines.matching import (
    CollaboratorMatch,
    CompatibilityBreakdown,
    SimilarMatch,
    explain_compatibility,
    find_complementary,
    find_similar,
    find_similar_by_embedding,
    require_analyzed,
)
from pitchhub.pipelines.recommendation import RecommendationPage, UserProfile, build_profile, recommend
from pitchhub.store import PitchStore

logger = logging.getLogger(__name__)


class SimilarityMethod(str, Enum):
    """How similar projects are ranked."""
    KEYWORDS = "keywords"
    EMBEDDING = "embedding"


@dataclass
class SearchHit:
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    quality_score: float | None


@dataclass
class SearchPage:
    items: list[SearchHit]
    total: int
    page: int
    page_size: int


@dataclass
class AnalysisStats:
    total: int
    by_status: dict[str, int]
    mean_quality_score: float | None
    top_keywords: list[tuple[str, int]]


class MatchingService:
    """Store-backed entry points for matching and recommendations."""

    def __init__(self, store: PitchStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    async def _analyzed(self, pitch_id: int) -> PitchRecord:
        pitch = await self.store.get(pitch_id)
        require_analyzed(pitch)
        return pitch

    async def find_similar_projects(
        self,
        pitch_id: int,
        *,
        limit: int | None = None,
        theme: Theme | None = None,
        min_score: float | None = None,
        method: SimilarityMethod = SimilarityMethod.KEYWORDS,
    ) -> list[SimilarMatch]:
        """Similar complete pitches, by keyword overlap (default) or embedding.

        Raises:
            NotFound: Unknown pitch
            NotAnalyzed: Source pitch not complete (or no semantic embedding)
            DimensionMismatch: Embeddings of different dimension in the pool
        """
        cfg = self.settings.matching
        pitch = await self._analyzed(pitch_id)
        candidates = await self.store.list_pitches(status=AnalysisStatus.COMPLETE, theme=theme)
        limit = limit or cfg.similar_limit
        min_score = cfg.similar_min_score if min_score is None else min_score

        if method is SimilarityMethod.EMBEDDING:
            return find_similar_by_embedding(pitch, candidates, limit=limit, min_score=min_score, theme=theme)
        return find_similar(pitch, candidates, limit=limit, min_score=min_score, theme=theme)

    async def find_collaborators(
        self,
        pitch_id: int,
        *,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> list[CollaboratorMatch]:
        cfg = self.settings.matching
        pitch = await self._analyzed(pitch_id)
        candidates = await self.store.list_pitches(status=AnalysisStatus.COMPLETE)
        return find_complementary(
            pitch,
            candidates,
            limit=limit or cfg.collaborator_limit,
            min_score=cfg.collaborator_min_score if min_score is None else min_score,
        )

    async def compute_compatibility(self, pitch_a_id: int, pitch_b_id: int) -> CompatibilityBreakdown:
        pitch_a = await self.store.get(pitch_a_id)
        pitch_b = await self.store.get(pitch_b_id)
        return explain_compatibility(pitch_a, pitch_b)

    async def get_profile(self, user_id: int) -> UserProfile:
        owned = await self.store.list_pitches(status=AnalysisStatus.COMPLETE, owner_id=user_id)
        return build_profile(user_id, owned)

    async def get_recommendations(
        self,
        user_id: int,
        *,
        page: int = 1,
        page_size: int | None = None,
        min_score: float | None = None,
    ) -> tuple[UserProfile, RecommendationPage]:
        """Recommendations for a user; a user without analysed pitches gets an empty page."""
        cfg = self.settings.recommendations
        profile = await self.get_profile(user_id)
        page_size = page_size or cfg.page_size

        if profile.is_empty:
            logger.info(f"User {user_id} has no analysed pitches, no recommendations")
            return profile, RecommendationPage(items=[], total=0, page=page, page_size=page_size)

        candidates = await self.store.list_pitches(status=AnalysisStatus.COMPLETE)
        return profile, recommend(
            profile,
            candidates,
            min_score=cfg.min_score if min_score is None else min_score,
            theme_boost=cfg.theme_boost,
            top_themes=cfg.top_themes,
            page=page,
            page_size=page_size,
        )

    async def search_by_keywords(self, keywords: list[str], *, page: int = 1, page_size: int = 10) -> SearchPage:
        """Complete pitches whose keywords overlap the query, best overlap then quality first."""
        page = max(page, 1)
        terms = normalize_terms(keywords)
        if not terms:
            return SearchPage(items=[], total=0, page=page, page_size=page_size)

        hits: list[SearchHit] = []
        for pitch in await self.store.list_pitches(status=AnalysisStatus.COMPLETE):
            score = keyword_overlap_score(terms, pitch.keywords)
            if score > 0:
                hits.append(SearchHit(
                    pitch_id=pitch.id,
                    owner_id=pitch.owner_id,
                    theme=pitch.theme.value,
                    score=score,
                    quality_score=pitch.quality_score,
                ))

        hits.sort(key=lambda h: (-h.score, -(h.quality_score or 0.0), h.pitch_id))
        start = (page - 1) * page_size
        return SearchPage(items=hits[start:start + page_size], total=len(hits), page=page, page_size=page_size)

    async def analysis_stats(self, top_n: int = 10) -> AnalysisStats:
        pitches = await self.store.list_pitches()
        by_status = Counter(p.analysis_status.value for p in pitches)
        complete = [p for p in pitches if p.is_complete]

        scores = [p.quality_score for p in complete if p.quality_score is not None]
        keyword_counts: Counter[str] = Counter()
        for pitch in complete:
            keyword_counts.update(normalize_terms(pitch.keywords))

        return AnalysisStats(
            total=len(pitches),
            by_status={status.value: by_status.get(status.value, 0) for status in AnalysisStatus},
            mean_quality_score=round(sum(scores) / len(scores), 2) if scores else None,
            top_keywords=keyword_counts.most_common(top_n),
        )
