"""Shared HTTP plumbing for provider clients.

Provider calls return either their value or a ``ProviderFailure``; only
transient transport errors and 5xx answers are retried.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from pitchhub.config import RetrySettings
from pitchhub.errors import MalformedProviderResponse, ProviderError, ProviderTimeout

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    """Why a provider call did not produce a value."""
    ERROR = "error"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"


_FAILURE_ERRORS: dict[FailureKind, type[ProviderError]] = {
    FailureKind.ERROR: ProviderError,
    FailureKind.TIMEOUT: ProviderTimeout,
    FailureKind.MALFORMED: MalformedProviderResponse,
}


@dataclass(frozen=True)
class ProviderFailure:
    """Tagged failure value returned by provider clients."""
    kind: FailureKind
    provider: str
    detail: str

    def to_exception(self) -> ProviderError:
        return _FAILURE_ERRORS[self.kind](f"{self.provider}: {self.detail}")


def is_transient(exc: BaseException) -> bool:
    """Transport errors and 5xx responses are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retry: RetrySettings,
    **kwargs: Any,
) -> Any:
    """Send a request with retry on transient failures and decode JSON.

    Raises:
        httpx.HTTPError: After retries are exhausted, or on a 4xx answer
        ValueError: If the body is not JSON
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(retry.attempts),
        wait=wait_exponential(multiplier=1, min=retry.wait_min, max=retry.wait_max),
        retry=retry_if_exception(is_transient),
        reraise=True,
    ):
        with attempt:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
    return response.json()


def failure_from_exception(provider: str, exc: Exception) -> ProviderFailure:
    """Map a client-side exception to a tagged failure."""
    if isinstance(exc, httpx.TimeoutException):
        return ProviderFailure(FailureKind.TIMEOUT, provider, f"request timed out: {exc}")
    if isinstance(exc, httpx.HTTPStatusError):
        return ProviderFailure(
            FailureKind.ERROR,
            provider,
            f"HTTP {exc.response.status_code} from {exc.request.url}",
        )
    if isinstance(exc, httpx.HTTPError):
        return ProviderFailure(FailureKind.ERROR, provider, f"request failed: {exc}")
    return ProviderFailure(FailureKind.MALFORMED, provider, f"undecodable response: {exc}")
