"""Transcription provider client (AssemblyAI-style job API).

A job is submitted with the media URL, then polled until its status leaves
``queued``/``processing``. The poll loop has a monotonic deadline and a
bounded number of polls; both are hard timeouts, not retries.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

import httpx

from insights.transport import FailureKind, ProviderFailure, failure_from_exception, request_json
from pitchhub.config import RetrySettings, TranscriptionSettings

logger = logging.getLogger(__name__)

PROVIDER = "transcription"
PENDING_STATES = frozenset({"queued", "processing"})
DONE_STATES = frozenset({"done", "completed"})


def _abandoned(abandon: asyncio.Event | None) -> bool:
    return abandon is not None and abandon.is_set()


class TranscriptionClient:
    """Submit-and-poll transcription client.

    Args:
        settings: Transcription provider settings (keys, poll interval, caps)
        retry: Retry policy for individual HTTP calls
        client: Shared ``httpx.AsyncClient``
        sleep: Awaitable sleep, injectable for tests
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        settings: TranscriptionSettings,
        retry: RetrySettings,
        client: httpx.AsyncClient,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.retry = retry
        self.client = client
        self._sleep = sleep
        self._clock = clock

    @property
    def configured(self) -> bool:
        return self.settings.api_key is not None

    def _headers(self) -> dict[str, str]:
        return {"Authorization": self.settings.api_key.get_secret_value()}

    async def submit(self, media_url: str, language_hint: str | None = None) -> str | ProviderFailure:
        """Submit a transcription job and return its id."""
        payload: dict[str, str] = {"audio_url": media_url}
        language = language_hint or self.settings.language_hint
        if language:
            payload["language_code"] = language

        try:
            data = await request_json(
                self.client,
                "POST",
                f"{self.settings.base_url}/transcript",
                retry=self.retry,
                json=payload,
                headers=self._headers(),
                timeout=self.settings.request_timeout,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Transcription submit failed for {media_url}: {e}")
            return failure_from_exception(PROVIDER, e)

        job_id = data.get("id") if isinstance(data, dict) else None
        if not job_id:
            return ProviderFailure(FailureKind.MALFORMED, PROVIDER, "submit response has no job id")
        return str(job_id)

    async def fetch_status(self, job_id: str) -> dict | ProviderFailure:
        """GET the job once."""
        try:
            data = await request_json(
                self.client,
                "GET",
                f"{self.settings.base_url}/transcript/{job_id}",
                retry=self.retry,
                headers=self._headers(),
                timeout=self.settings.request_timeout,
            )
        except (httpx.HTTPError, ValueError) as e:
            return failure_from_exception(PROVIDER, e)

        if not isinstance(data, dict) or "status" not in data:
            return ProviderFailure(FailureKind.MALFORMED, PROVIDER, "status response has no status")
        return data

    async def wait_for_transcript(
        self,
        job_id: str,
        *,
        abandon: asyncio.Event | None = None,
    ) -> str | ProviderFailure:
        """Poll until the job is done, errored, or the deadline passes.

        ``abandon`` is checked before and after every sleep; once set the wait
        stops without another status request and reports a timeout.
        """
        deadline = self._clock() + self.settings.hard_timeout

        for poll in range(1, self.settings.max_polls + 1):
            if _abandoned(abandon):
                break
            await self._sleep(self.settings.poll_interval)
            if _abandoned(abandon):
                break

            if self._clock() > deadline:
                break

            result = await self.fetch_status(job_id)
            if isinstance(result, ProviderFailure):
                return result

            status = str(result["status"]).lower()
            if status in PENDING_STATES:
                logger.debug(f"Transcription job {job_id} still {status} (poll {poll})")
                continue
            if status in DONE_STATES:
                text = result.get("text")
                return text if isinstance(text, str) else ""
            if status == "error":
                message = result.get("message") or result.get("error") or "unknown error"
                return ProviderFailure(FailureKind.ERROR, PROVIDER, str(message))
            return ProviderFailure(FailureKind.MALFORMED, PROVIDER, f"unexpected job status {status!r}")

        if _abandoned(abandon):
            return ProviderFailure(FailureKind.TIMEOUT, PROVIDER, f"poll for job {job_id} abandoned")
        return ProviderFailure(
            FailureKind.TIMEOUT,
            PROVIDER,
            f"job {job_id} not finished after {self.settings.max_polls} polls "
            f"/ {self.settings.hard_timeout:.0f}s",
        )

    async def transcribe(
        self,
        media_url: str,
        language_hint: str | None = None,
        *,
        abandon: asyncio.Event | None = None,
    ) -> str | ProviderFailure:
        """Transcribe ``media_url``; returns plain text (possibly empty) or a failure."""
        if not self.configured:
            return ProviderFailure(FailureKind.ERROR, PROVIDER, "transcription API key not configured")

        job_id = await self.submit(media_url, language_hint)
        if isinstance(job_id, ProviderFailure):
            return job_id

        logger.info(f"Submitted transcription job {job_id} for {media_url}")
        return await self.wait_for_transcript(job_id, abandon=abandon)
