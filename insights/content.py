"""Content-analysis provider client (OpenAI-style chat completions).

The model is asked for a strict JSON object; ``parse_content_analysis`` turns
the raw answer into a ``ContentAnalysis`` or a ``ProviderFailure``.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from insights.transport import FailureKind, ProviderFailure, failure_from_exception, request_json
from pitchhub.config import ContentAnalysisSettings, RetrySettings
from pitchhub.domain import Keyword, Sentiment

logger = logging.getLogger(__name__)

PROVIDER = "content_analysis"

SYSTEM_PROMPT = (
    "You analyse transcripts of short video pitches. "
    "Answer with a single valid JSON object and nothing else."
)

USER_PROMPT = """Analyse the following pitch transcript and return:
1. "keywords": the {max_keywords} most important keywords, most relevant first
2. "quality_score": pitch quality from 0 to 100 (clarity, structure, persuasion)
3. "sentiment": {{"positive", "negative", "neutral"}} scores between 0 and 1 summing to 1
4. "summary": a 2-3 sentence summary in the transcript's language

Transcript:
\"\"\"{text}\"\"\"
"""

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class SentimentPayload(BaseModel):
    positive: float = Field(ge=0.0, le=1.0)
    negative: float = Field(ge=0.0, le=1.0)
    neutral: float = Field(ge=0.0, le=1.0)


class ContentAnalysisPayload(BaseModel):
    """Wire shape expected from the provider."""
    keywords: list[str]
    quality_score: float = Field(ge=0.0, le=100.0)
    sentiment: SentimentPayload
    summary: str

    @field_validator("keywords")
    @classmethod
    def strip_keywords(cls, v: list[str]) -> list[str]:
        return [k.strip() for k in v if k and k.strip()]


@dataclass
class ContentAnalysis:
    """Parsed provider result."""
    keywords: list[Keyword]
    sentiment: Sentiment
    quality_score: float
    summary: str


def rank_keywords(terms: list[str]) -> list[Keyword]:
    """Unique lower-cased terms scored by position: first is 1.0, descending."""
    unique: list[str] = []
    for term in terms:
        lowered = term.lower()
        if lowered not in unique:
            unique.append(lowered)
    count = len(unique)
    return [Keyword(term=term, score=round(1.0 - i / count, 4)) for i, term in enumerate(unique)]


def normalize_sentiment(payload: SentimentPayload) -> Sentiment:
    """Rescale so the three scores sum to exactly 1."""
    total = payload.positive + payload.negative + payload.neutral
    if total <= 0:
        raise ValueError("sentiment scores are all zero")
    return Sentiment(
        positive=payload.positive / total,
        negative=payload.negative / total,
        neutral=payload.neutral / total,
    )


def parse_content_analysis(raw: str | dict) -> ContentAnalysis | ProviderFailure:
    """Parse a provider answer; any shape problem yields a MALFORMED failure."""
    try:
        if isinstance(raw, str):
            raw = json.loads(_FENCE.sub("", raw.strip()))
        payload = ContentAnalysisPayload.model_validate(raw)
        sentiment = normalize_sentiment(payload.sentiment)
    except (ValueError, ValidationError) as e:
        return ProviderFailure(FailureKind.MALFORMED, PROVIDER, f"unparseable analysis: {e}")

    return ContentAnalysis(
        keywords=rank_keywords(payload.keywords),
        sentiment=sentiment,
        quality_score=payload.quality_score,
        summary=payload.summary.strip(),
    )


class ContentAnalysisClient:
    """Chat-completions client returning ``ContentAnalysis`` or a failure."""

    def __init__(
        self,
        settings: ContentAnalysisSettings,
        retry: RetrySettings,
        client: httpx.AsyncClient,
    ) -> None:
        self.settings = settings
        self.retry = retry
        self.client = client

    @property
    def configured(self) -> bool:
        return self.settings.api_key is not None

    def build_request(self, text: str) -> dict:
        return {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": USER_PROMPT.format(max_keywords=self.settings.max_keywords, text=text),
                },
            ],
            "temperature": self.settings.temperature,
            "response_format": {"type": "json_object"},
        }

    async def analyze(self, text: str) -> ContentAnalysis | ProviderFailure:
        if not self.configured:
            return ProviderFailure(FailureKind.ERROR, PROVIDER, "content analysis API key not configured")

        try:
            data = await request_json(
                self.client,
                "POST",
                f"{self.settings.base_url}/chat/completions",
                retry=self.retry,
                json=self.build_request(text),
                headers={"Authorization": f"Bearer {self.settings.api_key.get_secret_value()}"},
                timeout=self.settings.request_timeout,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Content analysis request failed: {e}")
            return failure_from_exception(PROVIDER, e)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return ProviderFailure(FailureKind.MALFORMED, PROVIDER, "response has no message content")

        return parse_content_analysis(content)
