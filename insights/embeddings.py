"""Embedding provider client (OpenAI-style ``/embeddings`` endpoint).

Vectors of the wrong dimension are rejected here: the matching engine treats
a dimension mismatch as a contract violation, so it must never be stored.
"""
from __future__ import annotations

import logging

import httpx

from insights.transport import FailureKind, ProviderFailure, failure_from_exception, request_json
from pitchhub.config import EmbeddingSettings, RetrySettings
from pitchhub.domain import EMBEDDING_DIM, Embedding

logger = logging.getLogger(__name__)

PROVIDER = "embeddings"


class EmbeddingClient:
    """Compute a transcript embedding or report a failure."""

    def __init__(
        self,
        settings: EmbeddingSettings,
        retry: RetrySettings,
        client: httpx.AsyncClient,
    ) -> None:
        self.settings = settings
        self.retry = retry
        self.client = client

    @property
    def configured(self) -> bool:
        return self.settings.enabled and self.settings.api_key is not None

    async def embed(self, text: str) -> Embedding | ProviderFailure:
        if not self.configured:
            return ProviderFailure(FailureKind.ERROR, PROVIDER, "embedding provider disabled")
        if not text or not text.strip():
            return ProviderFailure(FailureKind.ERROR, PROVIDER, "nothing to embed")

        try:
            data = await request_json(
                self.client,
                "POST",
                f"{self.settings.base_url}/embeddings",
                retry=self.retry,
                json={"model": self.settings.model, "input": text, "dimensions": EMBEDDING_DIM},
                headers={"Authorization": f"Bearer {self.settings.api_key.get_secret_value()}"},
                timeout=self.settings.request_timeout,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Embedding request failed: {e}")
            return failure_from_exception(PROVIDER, e)

        try:
            vector = [float(x) for x in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError):
            return ProviderFailure(FailureKind.MALFORMED, PROVIDER, "response has no embedding")

        if len(vector) != EMBEDDING_DIM:
            return ProviderFailure(
                FailureKind.MALFORMED,
                PROVIDER,
                f"expected dimension {EMBEDDING_DIM}, got {len(vector)}",
            )

        logger.debug(f"Computed embedding: {len(vector)} dimensions")
        return Embedding(vector=vector, is_fallback=False, model=self.settings.model)
