"""Provider clients against ``httpx.MockTransport``."""
import asyncio
import json

import httpx
import pytest

from insights.content import ContentAnalysisClient, parse_content_analysis, rank_keywords
from insights.embeddings import EmbeddingClient
from insights.transcription import TranscriptionClient
from insights.transport import FailureKind, ProviderFailure
from pitchhub.config import EmbeddingSettings, TranscriptionSettings
from pitchhub.domain import EMBEDDING_DIM
from pitchhub.errors import MalformedProviderResponse, ProviderTimeout


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def transcription_handler(statuses, seen=None):
    """Answer a submit, then one job status per GET."""
    remaining = list(statuses)

    def handler(request):
        if seen is not None:
            seen.append(request)
        if request.method == "POST":
            return httpx.Response(200, json={"id": "job-1", "status": "queued"})
        return httpx.Response(200, json=remaining.pop(0))

    return handler


class TestTranscriptionClient:
    @pytest.mark.asyncio
    async def test_polls_until_completed(self, settings):
        seen = []
        handler = transcription_handler(
            [{"status": "queued"}, {"status": "processing"},
             {"status": "completed", "text": "Bonjour à tous"}],
            seen,
        )
        sleep = FakeSleep()

        async with mock_client(handler) as client:
            transcriber = TranscriptionClient(settings.transcription, settings.retry, client, sleep=sleep)
            text = await transcriber.transcribe("https://cdn.example.com/p.mp4")

        assert text == "Bonjour à tous"
        assert len(sleep.calls) == 3
        submit = seen[0]
        assert submit.url.path.endswith("/transcript")
        assert submit.headers["Authorization"] == "test-transcription-key"
        assert json.loads(submit.content) == {
            "audio_url": "https://cdn.example.com/p.mp4",
            "language_code": "fr",
        }
        assert seen[1].url.path.endswith("/transcript/job-1")

    @pytest.mark.asyncio
    async def test_completed_without_text_is_empty(self, settings):
        handler = transcription_handler([{"status": "completed", "text": None}])
        async with mock_client(handler) as client:
            transcriber = TranscriptionClient(settings.transcription, settings.retry, client, sleep=FakeSleep())
            assert await transcriber.transcribe("https://cdn.example.com/p.mp4") == ""

    @pytest.mark.asyncio
    async def test_provider_error_status(self, settings):
        handler = transcription_handler([{"status": "error", "error": "file does not contain audio"}])
        async with mock_client(handler) as client:
            transcriber = TranscriptionClient(settings.transcription, settings.retry, client, sleep=FakeSleep())
            result = await transcriber.transcribe("https://cdn.example.com/p.mp4")

        assert isinstance(result, ProviderFailure)
        assert result.kind is FailureKind.ERROR
        assert "does not contain audio" in result.detail

    @pytest.mark.asyncio
    async def test_times_out_after_max_polls(self, settings):
        handler = transcription_handler([{"status": "processing"}] * 10)
        sleep = FakeSleep()
        async with mock_client(handler) as client:
            transcriber = TranscriptionClient(settings.transcription, settings.retry, client, sleep=sleep)
            result = await transcriber.transcribe("https://cdn.example.com/p.mp4")

        assert result.kind is FailureKind.TIMEOUT
        assert len(sleep.calls) == settings.transcription.max_polls
        assert isinstance(result.to_exception(), ProviderTimeout)

    @pytest.mark.asyncio
    async def test_monotonic_deadline(self, settings):
        ticks = iter([0.0, 10.0, 61.0])
        handler = transcription_handler([{"status": "processing"}] * 10)
        async with mock_client(handler) as client:
            transcriber = TranscriptionClient(
                settings.transcription, settings.retry, client,
                sleep=FakeSleep(), clock=lambda: next(ticks),
            )
            result = await transcriber.wait_for_transcript("job-1")

        assert result.kind is FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_abandoned_wait_stops_polling(self, settings):
        seen = []
        abandon = asyncio.Event()
        abandon.set()
        async with mock_client(transcription_handler([], seen)) as client:
            transcriber = TranscriptionClient(settings.transcription, settings.retry, client, sleep=FakeSleep())
            result = await transcriber.transcribe("https://cdn.example.com/p.mp4", abandon=abandon)

        assert result.kind is FailureKind.TIMEOUT
        assert "abandoned" in result.detail
        assert [r.method for r in seen] == ["POST"]

    @pytest.mark.asyncio
    async def test_abandon_during_sleep_skips_the_next_status_request(self, settings):
        seen = []
        abandon = asyncio.Event()

        async def sleep_then_abandon(seconds):
            abandon.set()

        handler = transcription_handler([{"status": "completed", "text": "too late"}], seen)
        async with mock_client(handler) as client:
            transcriber = TranscriptionClient(
                settings.transcription, settings.retry, client, sleep=sleep_then_abandon,
            )
            result = await transcriber.wait_for_transcript("job-1", abandon=abandon)

        assert isinstance(result, ProviderFailure)
        assert result.kind is FailureKind.TIMEOUT
        assert "abandoned" in result.detail
        assert seen == []

    @pytest.mark.asyncio
    async def test_missing_key_is_a_failure(self, settings):
        seen = []
        async with mock_client(transcription_handler([], seen)) as client:
            transcriber = TranscriptionClient(TranscriptionSettings(api_key=None), settings.retry, client)
            result = await transcriber.transcribe("https://cdn.example.com/p.mp4")

        assert result.kind is FailureKind.ERROR
        assert seen == []

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self, settings):
        answers = [httpx.Response(503), httpx.Response(200, json={"id": "job-9"})]

        async with mock_client(lambda request: answers.pop(0)) as client:
            transcriber = TranscriptionClient(settings.transcription, settings.retry, client)
            assert await transcriber.submit("https://cdn.example.com/p.mp4") == "job-9"

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, settings):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error": "unauthorized"})

        async with mock_client(handler) as client:
            transcriber = TranscriptionClient(settings.transcription, settings.retry, client)
            result = await transcriber.submit("https://cdn.example.com/p.mp4")

        assert result.kind is FailureKind.ERROR
        assert len(calls) == 1


class TestContentParsing:
    PAYLOAD = {
        "keywords": ["Fintech", "startup", " payments ", "fintech"],
        "quality_score": 74,
        "sentiment": {"positive": 0.6, "negative": 0.1, "neutral": 0.3},
        "summary": " A payments startup. ",
    }

    def test_valid_payload(self):
        analysis = parse_content_analysis(json.dumps(self.PAYLOAD))

        assert [k.term for k in analysis.keywords] == ["fintech", "startup", "payments"]
        assert analysis.keywords[0].score == 1.0
        assert analysis.quality_score == 74
        assert analysis.summary == "A payments startup."

    def test_fenced_json(self):
        raw = "```json\n" + json.dumps(self.PAYLOAD) + "\n```"
        assert not isinstance(parse_content_analysis(raw), ProviderFailure)

    def test_sentiment_is_rescaled(self):
        payload = dict(self.PAYLOAD, sentiment={"positive": 0.5, "negative": 0.5, "neutral": 0.5})
        sentiment = parse_content_analysis(payload).sentiment
        assert sentiment.positive == pytest.approx(1 / 3)

    @pytest.mark.parametrize("raw", [
        "I'm sorry, I cannot do that.",
        json.dumps({"keywords": ["a"]}),
        json.dumps(dict(PAYLOAD, quality_score=140)),
        json.dumps(dict(PAYLOAD, sentiment={"positive": 0, "negative": 0, "neutral": 0})),
        json.dumps(["not", "an", "object"]),
    ])
    def test_malformed_answers(self, raw):
        result = parse_content_analysis(raw)
        assert isinstance(result, ProviderFailure)
        assert result.kind is FailureKind.MALFORMED
        assert isinstance(result.to_exception(), MalformedProviderResponse)

    def test_rank_keywords(self):
        keywords = rank_keywords(["a", "B", "b", "c", "d"])
        assert [k.term for k in keywords] == ["a", "b", "c", "d"]
        assert [k.score for k in keywords] == [1.0, 0.75, 0.5, 0.25]
        assert rank_keywords([]) == []


class TestContentAnalysisClient:
    @pytest.mark.asyncio
    async def test_reads_message_content(self, settings):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": json.dumps(TestContentParsing.PAYLOAD)}}],
            })

        async with mock_client(handler) as client:
            analyzer = ContentAnalysisClient(settings.content, settings.retry, client)
            analysis = await analyzer.analyze("some transcript")

        assert analysis.quality_score == 74
        body = json.loads(seen[0].content)
        assert body["response_format"] == {"type": "json_object"}
        assert "some transcript" in body["messages"][1]["content"]
        assert seen[0].headers["Authorization"] == "Bearer test-content-key"

    @pytest.mark.asyncio
    async def test_missing_choices(self, settings):
        async with mock_client(lambda request: httpx.Response(200, json={"choices": []})) as client:
            analyzer = ContentAnalysisClient(settings.content, settings.retry, client)
            result = await analyzer.analyze("some transcript")
        assert result.kind is FailureKind.MALFORMED


class TestEmbeddingClient:
    @pytest.mark.asyncio
    async def test_returns_semantic_embedding(self, settings):
        vector = [0.25] * EMBEDDING_DIM
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [{"embedding": vector}]})

        async with mock_client(handler) as client:
            embedding = await EmbeddingClient(settings.embeddings, settings.retry, client).embed("text")

        assert embedding.vector == vector
        assert not embedding.is_fallback
        assert json.loads(seen[0].content)["dimensions"] == EMBEDDING_DIM

    @pytest.mark.asyncio
    async def test_wrong_dimension_is_malformed(self, settings):
        # a larger model answering with its native width
        handler = lambda request: httpx.Response(200, json={"data": [{"embedding": [0.1] * 3072}]})

        async with mock_client(handler) as client:
            result = await EmbeddingClient(settings.embeddings, settings.retry, client).embed("text")

        assert result.kind is FailureKind.MALFORMED

    @pytest.mark.asyncio
    async def test_blank_text_is_not_sent(self, settings):
        calls = []
        async with mock_client(lambda request: calls.append(request)) as client:
            result = await EmbeddingClient(settings.embeddings, settings.retry, client).embed("  ")

        assert result.kind is FailureKind.ERROR
        assert calls == []

    def test_dimension_is_not_configurable(self, monkeypatch):
        monkeypatch.setenv("EMBEDDING_DIM", "3072")
        assert "dim" not in EmbeddingSettings.model_fields
        assert not hasattr(EmbeddingSettings(), "dim")
