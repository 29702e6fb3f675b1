"""Pytest fixtures: in-memory pitch store, pitch factory, and test settings."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

import pytest

from pitchhub.config import (
    ContentAnalysisSettings,
    EmbeddingSettings,
    RetrySettings,
    Settings,
    TranscriptionSettings,
)
from pitchhub.domain import AnalysisStatus, Keyword, PitchRecord, Theme
from pitchhub.errors import NotFound
from pitchhub.store import to_columns


class InMemoryPitchStore:
    """PitchStore fake that records every update."""

    def __init__(self, pitches: list[PitchRecord] = ()) -> None:
        self.pitches = {p.id: p for p in pitches}
        self.updates: list[tuple[int, dict[str, Any]]] = []

    async def get(self, pitch_id: int) -> PitchRecord:
        if pitch_id not in self.pitches:
            raise NotFound(f"Pitch {pitch_id} not found")
        return replace(self.pitches[pitch_id])

    async def update(self, pitch_id: int, **fields: Any) -> None:
        if pitch_id not in self.pitches:
            raise NotFound(f"Pitch {pitch_id} not found")
        to_columns(fields)  # rejects non-enrichment fields
        self.updates.append((pitch_id, fields))
        pitch = self.pitches[pitch_id]
        for name, value in fields.items():
            setattr(pitch, name, value)

    async def list_pitches(self, *, status=None, owner_id=None, theme=None) -> list[PitchRecord]:
        return [
            replace(p)
            for p in self.pitches.values()
            if (status is None or p.analysis_status is AnalysisStatus(status))
            and (owner_id is None or p.owner_id == owner_id)
            and (theme is None or p.theme is Theme(theme))
        ]


def make_pitch(
    pitch_id: int,
    keywords: list[str] = (),
    *,
    owner_id: int | None = None,
    theme: Theme = Theme.TECHNOLOGY,
    status: AnalysisStatus = AnalysisStatus.COMPLETE,
    **fields: Any,
) -> PitchRecord:
    """Pitch with keywords scored by position (first = 1.0)."""
    count = len(keywords) or 1
    return PitchRecord(
        id=pitch_id,
        owner_id=owner_id if owner_id is not None else pitch_id * 100,
        media_url=f"https://cdn.example.com/pitches/{pitch_id}.mp4",
        theme=theme,
        analysis_status=status,
        keywords=[Keyword(term=k, score=1.0 - i / count) for i, k in enumerate(keywords)],
        **fields,
    )


@pytest.fixture
def settings():
    """Settings with fast polling and no retry waits."""
    return Settings(
        transcription=TranscriptionSettings(
            api_key="test-transcription-key",
            poll_interval=0,
            max_polls=5,
            hard_timeout=60,
        ),
        content=ContentAnalysisSettings(api_key="test-content-key"),
        embeddings=EmbeddingSettings(api_key="test-embedding-key"),
        retry=RetrySettings(attempts=2, wait_min=0, wait_max=0),
    )


@pytest.fixture
def store():
    return InMemoryPitchStore()
