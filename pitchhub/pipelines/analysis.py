"""Analysis pipeline: transcription -> content analysis -> embedding.

Drives a pitch through ``pending -> in_progress -> {complete, failed}``.
Transcription failures are terminal for the run; content-analysis and
embedding failures degrade to the lexical utilities instead of failing.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Callable, Protocol

from insights.content import ContentAnalysis
from insights.lexical import extract_keywords, fallback_embedding
from insights.transport import ProviderFailure
from pitchhub.config import Settings
from pitchhub.domain import (
    EMBEDDING_DIM,
    AnalysisResult,
    AnalysisStatus,
    Embedding,
    Keyword,
    PitchRecord,
    Sentiment,
    check_transition,
)
from pitchhub.errors import AnalysisError
from pitchhub.pipelines.matching import find_similar
from pitchhub.pipelines.normalization import normalize_text
from pitchhub.store import PitchStore

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    async def transcribe(
        self,
        media_url: str,
        language_hint: str | None = None,
        *,
        abandon: asyncio.Event | None = None,
    ) -> str | ProviderFailure: ...


class ContentAnalyzer(Protocol):
    async def analyze(self, text: str) -> ContentAnalysis | ProviderFailure: ...


class Embedder(Protocol):
    async def embed(self, text: str) -> Embedding | ProviderFailure: ...


@dataclass
class AnalysisOutcome:
    """What one pipeline run did to a pitch."""
    pitch_id: int
    status: AnalysisStatus
    analyzed_at: datetime
    result: AnalysisResult | None = None
    embedding: Embedding | None = None
    related_ids: list[int] = field(default_factory=list)
    failure: ProviderFailure | None = None


class AnalysisPipeline:
    """Per-pitch analysis state machine.

    At most one run per pitch may be active; the ``pending`` status acts as
    the lock, and a failed pitch must go through ``retry`` first. Runs for
    different pitches share nothing but the store.

    Args:
        store: Pitch store; only the pitch being analysed is written
        transcriber: Transcription provider
        content_analyzer: Language-analysis provider
        embedder: Embedding provider
        settings: Application settings (pipeline, transcription, embeddings)
        clock: Timestamp source for ``analyzed_at``
    """

    def __init__(
        self,
        store: PitchStore,
        transcriber: Transcriber,
        content_analyzer: ContentAnalyzer,
        embedder: Embedder,
        settings: Settings,
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.store = store
        self.transcriber = transcriber
        self.content_analyzer = content_analyzer
        self.embedder = embedder
        self.settings = settings
        self._clock = clock

    async def begin(self, pitch_id: int) -> PitchRecord:
        """Move a pending pitch to ``in_progress``.

        Raises:
            NotFound: If the pitch does not exist
            InvalidTransition: If the pitch is not pending
        """
        pitch = await self.store.get(pitch_id)
        check_transition(pitch.analysis_status, AnalysisStatus.IN_PROGRESS)
        started_at = self._clock()
        await self.store.update(
            pitch_id,
            analysis_status=AnalysisStatus.IN_PROGRESS,
            analysis_started_at=started_at,
        )
        logger.info(f"Pitch {pitch_id}: analysis started")
        return replace(pitch, analysis_status=AnalysisStatus.IN_PROGRESS, analysis_started_at=started_at)

    async def analyze(self, pitch_id: int, *, abandon: asyncio.Event | None = None) -> AnalysisOutcome:
        """Run the whole pipeline for one pending pitch."""
        pitch = await self.begin(pitch_id)
        return await self.run(pitch, abandon=abandon)

    async def run(self, pitch: PitchRecord, *, abandon: asyncio.Event | None = None) -> AnalysisOutcome:
        """Run the steps for a pitch already moved to ``in_progress``.

        Steps:
        1. Transcribe the media (failure is terminal for the run)
        2. Analyse content, or fall back to lexical keywords
        3. Embed the transcript, or fall back to the lexical embedding
        4. Find related complete pitches (best effort)
        5. Persist enrichment and mark complete

        Raises:
            AnalysisError: On any unexpected failure; the pitch is marked failed
        """
        try:
            transcript = await self.transcriber.transcribe(
                pitch.media_url,
                self.settings.transcription.language_hint,
                abandon=abandon,
            )
            if isinstance(transcript, ProviderFailure):
                return await self._fail(pitch.id, transcript)

            text = normalize_text(transcript)
            result = await self.analyze_content(transcript, text)
            embedding = await self.compute_embedding(text)
            related_ids = await self.find_related(pitch, result.keywords)

            analyzed_at = self._clock()
            await self.store.update(
                pitch.id,
                analysis_status=AnalysisStatus.COMPLETE,
                transcript=result.transcript,
                keywords=result.keywords,
                sentiment=result.sentiment,
                quality_score=result.quality_score,
                summary=result.summary,
                analysis_degraded=result.degraded,
                embedding=embedding.vector,
                embedding_is_fallback=embedding.is_fallback,
                related_ids=related_ids,
                analyzed_at=analyzed_at,
            )
        except asyncio.CancelledError:
            await self._mark_failed(pitch.id)
            raise
        except Exception as e:
            logger.error(f"Pitch {pitch.id}: analysis failed: {e}", exc_info=True)
            await self._mark_failed(pitch.id)
            raise AnalysisError(f"Analysis of pitch {pitch.id} failed: {e}") from e

        logger.info(
            f"Pitch {pitch.id}: analysis complete "
            f"({len(result.keywords)} keywords, degraded={result.degraded}, "
            f"fallback_embedding={embedding.is_fallback})"
        )
        return AnalysisOutcome(
            pitch_id=pitch.id,
            status=AnalysisStatus.COMPLETE,
            analyzed_at=analyzed_at,
            result=result,
            embedding=embedding,
            related_ids=related_ids,
        )

    @property
    def run_deadline(self) -> timedelta:
        """How long a run may stay ``in_progress`` before it counts as lost."""
        return timedelta(
            seconds=self.settings.transcription.hard_timeout + self.settings.pipeline.stale_margin
        )

    def is_stale(self, pitch: PitchRecord) -> bool:
        """True for an ``in_progress`` pitch whose run is past the deadline.

        A run with no recorded start time cannot be tracked and counts as stale.
        """
        if pitch.analysis_status is not AnalysisStatus.IN_PROGRESS:
            return False
        if pitch.analysis_started_at is None:
            return True
        return self._clock() - pitch.analysis_started_at > self.run_deadline

    async def retry(self, pitch_id: int) -> PitchRecord:
        """Explicit manual retry: ``failed -> pending``.

        A pitch left ``in_progress`` past the run deadline (its worker died or
        the task was lost) is effectively failed: it is marked failed first,
        then reset.

        Raises:
            NotFound: If the pitch does not exist
            InvalidTransition: If the pitch is neither failed nor stale
        """
        pitch = await self.store.get(pitch_id)
        if self.is_stale(pitch):
            logger.warning(
                f"Pitch {pitch_id}: run started at {pitch.analysis_started_at} is past "
                f"its deadline, marking failed"
            )
            analyzed_at = await self._mark_failed(pitch_id)
            pitch = replace(pitch, analysis_status=AnalysisStatus.FAILED, analyzed_at=analyzed_at)
        check_transition(pitch.analysis_status, AnalysisStatus.PENDING)
        await self.store.update(pitch_id, analysis_status=AnalysisStatus.PENDING)
        logger.info(f"Pitch {pitch_id}: reset to pending for retry")
        return replace(pitch, analysis_status=AnalysisStatus.PENDING)

    def fallback_result(self, transcript: str, text: str) -> AnalysisResult:
        """Lexical stand-in for the content-analysis provider."""
        cfg = self.settings.pipeline
        return AnalysisResult(
            transcript=transcript,
            keywords=extract_keywords(text, cfg.fallback_keyword_count),
            sentiment=Sentiment.neutral_default(),
            quality_score=cfg.fallback_quality_score,
            summary=cfg.fallback_summary,
            degraded=True,
        )

    async def analyze_content(self, transcript: str, text: str) -> AnalysisResult:
        """Call the content provider; degrade instead of failing."""
        if not text:
            logger.info("Empty transcript, using lexical fallback")
            return self.fallback_result(transcript, text)

        try:
            analysis = await self.content_analyzer.analyze(text)
        except Exception as e:
            logger.warning(f"Content analysis raised, using lexical fallback: {e}", exc_info=True)
            return self.fallback_result(transcript, text)

        if isinstance(analysis, ProviderFailure):
            logger.warning(f"Content analysis unavailable ({analysis.kind.value}: {analysis.detail}), using lexical fallback")
            return self.fallback_result(transcript, text)

        return AnalysisResult(
            transcript=transcript,
            keywords=analysis.keywords,
            sentiment=analysis.sentiment,
            quality_score=analysis.quality_score,
            summary=analysis.summary,
        )

    async def compute_embedding(self, text: str) -> Embedding:
        """Provider embedding, or the flagged deterministic fallback."""
        if text:
            try:
                embedding = await self.embedder.embed(text)
            except Exception as e:
                logger.warning(f"Embedding raised, using fallback vector: {e}", exc_info=True)
            else:
                if isinstance(embedding, ProviderFailure):
                    logger.warning(f"Embedding unavailable ({embedding.kind.value}: {embedding.detail}), using fallback vector")
                elif embedding.dimension != EMBEDDING_DIM:
                    logger.warning(f"Embedding has dimension {embedding.dimension}, expected {EMBEDDING_DIM}, using fallback vector")
                else:
                    return embedding
        return fallback_embedding(text, EMBEDDING_DIM)

    async def find_related(self, pitch: PitchRecord, keywords: list[Keyword]) -> list[int]:
        """Ids of similar complete pitches; failures leave the list empty."""
        cfg = self.settings.pipeline
        try:
            candidates = await self.store.list_pitches(status=AnalysisStatus.COMPLETE)
            matches = find_similar(
                replace(pitch, keywords=keywords),
                candidates,
                limit=cfg.related_limit,
                min_score=cfg.related_min_score,
            )
        except Exception as e:
            logger.warning(f"Pitch {pitch.id}: related-pitch search failed: {e}", exc_info=True)
            return []
        return [m.pitch_id for m in matches]

    async def _fail(self, pitch_id: int, failure: ProviderFailure) -> AnalysisOutcome:
        logger.warning(f"Pitch {pitch_id}: transcription failed ({failure.kind.value}: {failure.detail})")
        analyzed_at = await self._mark_failed(pitch_id)
        return AnalysisOutcome(
            pitch_id=pitch_id,
            status=AnalysisStatus.FAILED,
            analyzed_at=analyzed_at,
            failure=failure,
        )

    async def _mark_failed(self, pitch_id: int) -> datetime:
        analyzed_at = self._clock()
        await self.store.update(pitch_id, analysis_status=AnalysisStatus.FAILED, analyzed_at=analyzed_at)
        return analyzed_at
