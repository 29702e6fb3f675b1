"""Pitch store: the persistence seam used by the core.

``PitchStore`` is the interface the pipeline and the matching service depend
on; ``SqlPitchStore`` implements it over the async SQLAlchemy session
factory, one session per operation.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import models
from .domain import AnalysisStatus, Keyword, PitchRecord, Sentiment, Theme
from .errors import NotFound

logger = logging.getLogger(__name__)

# Fields the core is allowed to write
ENRICHMENT_FIELDS = frozenset({
    "analysis_status",
    "transcript",
    "keywords",
    "embedding",
    "embedding_is_fallback",
    "sentiment",
    "quality_score",
    "summary",
    "analysis_degraded",
    "related_ids",
    "analysis_started_at",
    "analyzed_at",
})


class PitchStore(Protocol):
    """Read pitches and write enrichment fields of a single pitch."""

    async def get(self, pitch_id: int) -> PitchRecord: ...

    async def update(self, pitch_id: int, **fields: Any) -> None: ...

    async def list_pitches(
        self,
        *,
        status: AnalysisStatus | None = None,
        owner_id: int | None = None,
        theme: Theme | None = None,
    ) -> list[PitchRecord]: ...


def to_record(row: models.Pitch) -> PitchRecord:
    """Convert an ORM row to the domain record."""
    return PitchRecord(
        id=row.id,
        owner_id=row.owner_id,
        media_url=row.media_url,
        theme=Theme(row.theme),
        analysis_status=AnalysisStatus(row.analysis_status),
        title=row.title,
        transcript=row.transcript,
        keywords=[Keyword.from_value(k) for k in row.keywords or []],
        embedding=[float(x) for x in row.embedding] if row.embedding is not None else None,
        embedding_is_fallback=bool(row.embedding_is_fallback),
        sentiment=Sentiment(**row.sentiment) if row.sentiment else None,
        quality_score=row.quality_score,
        summary=row.summary,
        analysis_degraded=bool(row.analysis_degraded),
        related_ids=list(row.related_ids or []),
        analysis_started_at=row.analysis_started_at,
        analyzed_at=row.analyzed_at,
    )


def to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert domain values to column values."""
    unknown = set(fields) - ENRICHMENT_FIELDS
    if unknown:
        raise ValueError(f"Not an enrichment field: {', '.join(sorted(unknown))}")

    columns = dict(fields)
    if "analysis_status" in columns:
        columns["analysis_status"] = AnalysisStatus(columns["analysis_status"]).value
    if "keywords" in columns:
        columns["keywords"] = [Keyword.from_value(k).to_dict() for k in columns["keywords"]]
    if isinstance(columns.get("sentiment"), Sentiment):
        columns["sentiment"] = columns["sentiment"].to_dict()
    return columns


class SqlPitchStore:
    """PitchStore backed by the ``pitches`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get(self, pitch_id: int) -> PitchRecord:
        async with self.session_factory() as session:
            row = await session.get(models.Pitch, pitch_id)
            if row is None:
                raise NotFound(f"Pitch {pitch_id} not found")
            return to_record(row)

    async def update(self, pitch_id: int, **fields: Any) -> None:
        columns = to_columns(fields)
        async with self.session_factory() as session:
            row = await session.get(models.Pitch, pitch_id)
            if row is None:
                raise NotFound(f"Pitch {pitch_id} not found")
            for name, value in columns.items():
                setattr(row, name, value)
            await session.commit()
        logger.debug(f"Updated pitch {pitch_id}: {', '.join(sorted(columns))}")

    async def list_pitches(
        self,
        *,
        status: AnalysisStatus | None = None,
        owner_id: int | None = None,
        theme: Theme | None = None,
    ) -> list[PitchRecord]:
        query = select(models.Pitch).order_by(models.Pitch.id)
        if status is not None:
            query = query.where(models.Pitch.analysis_status == AnalysisStatus(status).value)
        if owner_id is not None:
            query = query.where(models.Pitch.owner_id == owner_id)
        if theme is not None:
            query = query.where(models.Pitch.theme == Theme(theme).value)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return [to_record(row) for row in result.scalars().all()]
