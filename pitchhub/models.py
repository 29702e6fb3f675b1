"""SQLAlchemy models (2.x style) for the pitch store.

PostgreSQL with pgvector for embeddings; the embedding column falls back to
JSON on SQLite so the schema also runs in local tests.
"""

from __future__ import annotations

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .domain import EMBEDDING_DIM, AnalysisStatus, Theme


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Pitch(Base):
    """Video pitches with their analysis enrichment."""
    __tablename__ = "pitches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(200))
    media_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    theme: Mapped[str] = mapped_column(String(32), nullable=False, default=Theme.OTHER.value)
    analysis_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AnalysisStatus.PENDING.value,
    )

    # Enrichment, written by the analysis pipeline only
    transcript: Mapped[str | None] = mapped_column(Text)
    keywords: Mapped[list[dict] | None] = mapped_column(JSON)  # [{"term", "score"}]
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIM).with_variant(JSON(), "sqlite")
    )
    embedding_is_fallback: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sentiment: Mapped[dict | None] = mapped_column(JSON)
    quality_score: Mapped[float | None] = mapped_column(Float)
    summary: Mapped[str | None] = mapped_column(Text)
    analysis_degraded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    related_ids: Mapped[list[int] | None] = mapped_column(JSON)
    analysis_started_at: Mapped[datetime | None] = mapped_column()
    analyzed_at: Mapped[datetime | None] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_pitches_status", "analysis_status"),
        Index("ix_pitches_theme_status", "theme", "analysis_status"),
    )
