"""
Unit Tests for the Embedding Sink.

HTTP is served by httpx.MockTransport; no network is touched.
"""

import asyncio
import json

import httpx

from slate.backend.services.embeddings import EmbeddingSink, get_embedding_sink

ENDPOINT = "http://embedder.test/functions/v1/embed"


class Recorder:
    """MockTransport handler that records requests and replays canned outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [httpx.Response(200)]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _sink(recorder: Recorder, **kwargs) -> EmbeddingSink:
    return EmbeddingSink(
        ENDPOINT,
        api_key=kwargs.pop("api_key", "embed-key"),
        backoff_max=0,
        transport=httpx.MockTransport(recorder),
        **kwargs,
    )


class TestPost:
    async def test_posts_note_body_with_bearer(self):
        recorder = Recorder()

        await _sink(recorder).post("note-1", "Launch on Tuesday")

        assert len(recorder.requests) == 1
        request = recorder.requests[0]
        assert str(request.url) == ENDPOINT
        assert request.headers["Authorization"] == "Bearer embed-key"
        assert json.loads(request.content) == {
            "action": "embed_note",
            "noteId": "note-1",
            "content": "Launch on Tuesday",
        }

    async def test_no_auth_header_without_key(self):
        recorder = Recorder()

        await _sink(recorder, api_key="").post("note-1", "x")

        assert "Authorization" not in recorder.requests[0].headers

    async def test_retries_transport_errors(self):
        recorder = Recorder(httpx.ConnectError("refused"), httpx.Response(200))

        await _sink(recorder, max_attempts=2).post("note-1", "x")

        assert len(recorder.requests) == 2

    async def test_gives_up_quietly_after_retries(self):
        recorder = Recorder(httpx.ConnectError("refused"))

        await _sink(recorder, max_attempts=3).post("note-1", "x")

        assert len(recorder.requests) == 3

    async def test_http_error_is_not_retried_and_not_raised(self):
        recorder = Recorder(httpx.Response(500))

        await _sink(recorder, max_attempts=3).post("note-1", "x")

        assert len(recorder.requests) == 1


class TestNotify:
    async def test_schedules_background_post(self):
        recorder = Recorder()
        sink = _sink(recorder)

        sink.notify("note-1", "x")
        assert recorder.requests == []

        for _ in range(20):
            if recorder.requests:
                break
            await asyncio.sleep(0.01)

        assert len(recorder.requests) == 1

    async def test_disabled_sink_does_nothing(self):
        recorder = Recorder()
        sink = EmbeddingSink("", transport=httpx.MockTransport(recorder))

        assert sink.enabled is False
        sink.notify("note-1", "x")
        await asyncio.sleep(0.01)

        assert recorder.requests == []


class TestGetEmbeddingSink:
    def test_disabled_when_feature_off(self):
        # embeddings_enabled is false in features.yaml
        assert get_embedding_sink().enabled is False

    def test_enabled_when_feature_on(self, monkeypatch):
        from slate.backend.core.config import get_app_config

        features = get_app_config().features
        monkeypatch.setattr(features, "embeddings_enabled", True)

        sink = get_embedding_sink()

        assert sink.enabled is True
        assert sink.endpoint == get_app_config().embeddings.endpoint
