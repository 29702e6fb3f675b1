"""FastAPI app: analysis lifecycle, matching, and recommendation endpoints.

Typed service errors are rendered as ``{"error", "detail"}`` bodies.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from insights.content import ContentAnalysisClient
from insights.embeddings import EmbeddingClient
from config.themes import THEMES
from insights.transcription import TranscriptionClient

from .config import Settings, get_settings
from .db import AsyncSessionMaker
from .domain import AnalysisStatus, PitchRecord, Theme
from .errors import (
    AnalysisError,
    DimensionMismatch,
    InvalidTransition,
    NotAnalyzed,
    NotFound,
    PitchHubError,
    ProviderError,
    ProviderTimeout,
)
from .logging_config import setup_logging
from .pipelines.analysis import AnalysisPipeline
from .service import MatchingService, SimilarityMethod
from .store import PitchStore, SqlPitchStore

logger = logging.getLogger(__name__)

# Most specific class first
ERROR_STATUS: list[tuple[type[PitchHubError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (NotAnalyzed, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (DimensionMismatch, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ProviderTimeout, status.HTTP_504_GATEWAY_TIMEOUT),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (AnalysisError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


# Pydantic response models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class KeywordDTO(BaseModel):
    term: str
    score: float


class SentimentDTO(BaseModel):
    positive: float
    negative: float
    neutral: float


class AnalysisResultsDTO(BaseModel):
    """Enrichment of a complete pitch."""
    transcript: str | None
    keywords: list[KeywordDTO]
    sentiment: SentimentDTO | None
    quality_score: float | None
    summary: str | None
    degraded: bool
    embedding_dim: int
    embedding_is_fallback: bool
    related_ids: list[int]


class AnalysisStatusResponse(BaseModel):
    """Analysis status of one pitch."""
    pitch_id: int
    analysis_status: AnalysisStatus
    analysis_started_at: datetime | None = None
    analyzed_at: datetime | None
    results: AnalysisResultsDTO | None = None


class SimilarMatchDTO(BaseModel):
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    shared_keywords: list[str] = Field(default_factory=list)


class SimilarProjectsResponse(BaseModel):
    pitch_id: int
    method: SimilarityMethod
    matches: list[SimilarMatchDTO]


class CollaboratorDTO(BaseModel):
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    shared_keywords: list[str]
    contributed_keywords: list[str]
    collaboration_potential: float


class CollaboratorsResponse(BaseModel):
    pitch_id: int
    collaborators: list[CollaboratorDTO]


class CompatibilityResponse(BaseModel):
    pitch_a_id: int
    pitch_b_id: int
    score: float
    overlap: float
    unique_contribution: float
    shared_keywords: list[str]
    contributed_keywords: list[str]


class ProfileDTO(BaseModel):
    pitch_count: int
    preferred_themes: list[str]
    top_keywords: list[str]


class RecommendationDTO(BaseModel):
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    reason: str
    shared_keywords: list[str]


class RecommendationsResponse(BaseModel):
    user_id: int
    profile: ProfileDTO
    recommendations: list[RecommendationDTO]
    total: int
    page: int
    page_size: int


class SearchHitDTO(BaseModel):
    pitch_id: int
    owner_id: int
    theme: str
    score: float
    quality_score: float | None


class SearchResponse(BaseModel):
    keywords: list[str]
    results: list[SearchHitDTO]
    total: int
    page: int
    page_size: int


class KeywordCountDTO(BaseModel):
    term: str
    pitches: int


class StatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    mean_quality_score: float | None
    top_keywords: list[KeywordCountDTO]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and own the shared provider HTTP client."""
    settings = get_settings()
    setup_logging(settings.logging)
    app.state.http_client = httpx.AsyncClient()
    logger.info("Application starting up")

    yield

    await app.state.http_client.aclose()
    logger.info("Application shutting down")


app = FastAPI(
    title="PitchHub Matching",
    version="0.1.0",
    description="Pitch analysis pipeline with keyword matching and recommendations",
    lifespan=lifespan,
)


# Dependencies
def get_app_settings() -> Settings:
    return get_settings()


def get_store() -> PitchStore:
    return SqlPitchStore(AsyncSessionMaker)


def get_matching_service(
    store: PitchStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> MatchingService:
    return MatchingService(store, settings)


def get_pipeline(
    request: Request,
    store: PitchStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> AnalysisPipeline:
    client: httpx.AsyncClient = request.app.state.http_client
    return AnalysisPipeline(
        store,
        TranscriptionClient(settings.transcription, settings.retry, client),
        ContentAnalysisClient(settings.content, settings.retry, client),
        EmbeddingClient(settings.embeddings, settings.retry, client),
        settings,
    )


# Exception handlers
@app.exception_handler(PitchHubError)
async def pitchhub_error_handler(request: Request, exc: PitchHubError):
    """Map the error taxonomy to HTTP statuses."""
    code = next(
        (http_status for cls, http_status in ERROR_STATUS if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    log = logger.error if code >= 500 else logger.info
    log(f"{exc.code}: {exc}")
    return JSONResponse(
        status_code=code,
        content=ErrorResponse(**exc.to_dict()).model_dump(),
    )


def status_response(pitch: PitchRecord) -> AnalysisStatusResponse:
    results = None
    if pitch.is_complete:
        results = AnalysisResultsDTO(
            transcript=pitch.transcript,
            keywords=[KeywordDTO(**k.to_dict()) for k in pitch.keywords],
            sentiment=SentimentDTO(**pitch.sentiment.to_dict()) if pitch.sentiment else None,
            quality_score=pitch.quality_score,
            summary=pitch.summary,
            degraded=pitch.analysis_degraded,
            embedding_dim=len(pitch.embedding or []),
            embedding_is_fallback=pitch.embedding_is_fallback,
            related_ids=pitch.related_ids,
        )
    return AnalysisStatusResponse(
        pitch_id=pitch.id,
        analysis_status=pitch.analysis_status,
        analysis_started_at=pitch.analysis_started_at,
        analyzed_at=pitch.analyzed_at,
        results=results,
    )


async def run_analysis(pipeline: AnalysisPipeline, pitch: PitchRecord) -> None:
    """Background task body; the pipeline has already recorded any failure."""
    try:
        await pipeline.run(pitch)
    except AnalysisError as e:
        logger.error(f"Background analysis of pitch {pitch.id} failed: {e}")


@app.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=settings.version)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": "PitchHub Matching",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "start_analysis": "/pitches/{pitch_id}/analysis",
            "retry_analysis": "/pitches/{pitch_id}/analysis/retry",
            "similar": "/pitches/{pitch_id}/similar",
            "collaborators": "/pitches/{pitch_id}/collaborators",
            "compatibility": "/compatibility",
            "recommendations": "/users/{user_id}/recommendations",
            "search": "/search",
            "stats": "/stats",
            "themes": "/themes",
            "docs": "/docs",
        },
    }


@app.post(
    "/pitches/{pitch_id}/analysis",
    response_model=AnalysisStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_analysis(
    pitch_id: int,
    background_tasks: BackgroundTasks,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> AnalysisStatusResponse:
    """Start analysis of a pending pitch; the pipeline runs in the background.

    Returns 409 when the pitch is not pending (already running, complete, or
    failed and not yet reset through the retry endpoint).
    """
    pitch = await pipeline.begin(pitch_id)
    background_tasks.add_task(run_analysis, pipeline, pitch)
    return status_response(pitch)


@app.post("/pitches/{pitch_id}/analysis/retry", response_model=AnalysisStatusResponse)
async def retry_analysis(
    pitch_id: int,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> AnalysisStatusResponse:
    """Reset a failed pitch to pending so analysis can be started again."""
    pitch = await pipeline.retry(pitch_id)
    return status_response(pitch)


@app.get("/pitches/{pitch_id}/analysis", response_model=AnalysisStatusResponse)
async def get_analysis(
    pitch_id: int,
    store: PitchStore = Depends(get_store),
) -> AnalysisStatusResponse:
    """Current analysis status, with results once complete."""
    return status_response(await store.get(pitch_id))


@app.get("/pitches/{pitch_id}/similar", response_model=SimilarProjectsResponse)
async def similar_projects(
    pitch_id: int,
    limit: int | None = Query(default=None, ge=1, le=100),
    theme: Theme | None = None,
    min_score: float | None = Query(default=None, ge=-1.0, le=1.0),
    method: SimilarityMethod = SimilarityMethod.KEYWORDS,
    service: MatchingService = Depends(get_matching_service),
) -> SimilarProjectsResponse:
    """Similar complete pitches ranked by keyword overlap or embedding cosine."""
    matches = await service.find_similar_projects(
        pitch_id, limit=limit, theme=theme, min_score=min_score, method=method,
    )
    return SimilarProjectsResponse(
        pitch_id=pitch_id,
        method=method,
        matches=[SimilarMatchDTO(**asdict(m)) for m in matches],
    )


@app.get("/pitches/{pitch_id}/collaborators", response_model=CollaboratorsResponse)
async def collaborators(
    pitch_id: int,
    limit: int | None = Query(default=None, ge=1, le=100),
    min_score: float | None = Query(default=None, ge=0.0, le=1.0),
    service: MatchingService = Depends(get_matching_service),
) -> CollaboratorsResponse:
    """Authors of pitches that share context but bring distinct keywords."""
    matches = await service.find_collaborators(pitch_id, limit=limit, min_score=min_score)
    return CollaboratorsResponse(
        pitch_id=pitch_id,
        collaborators=[CollaboratorDTO(**asdict(m)) for m in matches],
    )


@app.get("/compatibility", response_model=CompatibilityResponse)
async def compatibility(
    pitch_a: int,
    pitch_b: int,
    service: MatchingService = Depends(get_matching_service),
) -> CompatibilityResponse:
    """Compatibility of pitch B for pitch A."""
    breakdown = await service.compute_compatibility(pitch_a, pitch_b)
    return CompatibilityResponse(**asdict(breakdown))


@app.get("/users/{user_id}/recommendations", response_model=RecommendationsResponse)
async def recommendations(
    user_id: int,
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=100),
    min_score: float | None = Query(default=None, ge=0.0, le=2.0),
    service: MatchingService = Depends(get_matching_service),
) -> RecommendationsResponse:
    """Explained recommendations; empty when the user has no analysed pitches."""
    profile, result = await service.get_recommendations(
        user_id, page=page, page_size=page_size, min_score=min_score,
    )
    return RecommendationsResponse(
        user_id=user_id,
        profile=ProfileDTO(
            pitch_count=profile.pitch_count,
            preferred_themes=profile.preferred_themes,
            top_keywords=profile.terms[:10],
        ),
        recommendations=[RecommendationDTO(**asdict(r)) for r in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@app.get("/search", response_model=SearchResponse)
async def search(
    keywords: str = Query(min_length=1, description="Comma-separated keywords"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    service: MatchingService = Depends(get_matching_service),
) -> SearchResponse:
    """Complete pitches whose keywords overlap the query."""
    terms = [k.strip().lower() for k in keywords.split(",") if k.strip()]
    result = await service.search_by_keywords(terms, page=page, page_size=page_size)
    return SearchResponse(
        keywords=terms,
        results=[SearchHitDTO(**asdict(h)) for h in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@app.get("/stats", response_model=StatsResponse)
async def stats(service: MatchingService = Depends(get_matching_service)) -> StatsResponse:
    """Analysis counts per status, mean quality, and top keywords."""
    result = await service.analysis_stats()
    return StatsResponse(
        total=result.total,
        by_status=result.by_status,
        mean_quality_score=result.mean_quality_score,
        top_keywords=[KeywordCountDTO(term=term, pitches=count) for term, count in result.top_keywords],
    )


@app.get("/themes")
async def themes() -> list[dict[str, str]]:
    """Theme vocabulary for pitch filters."""
    return THEMES
