"""Tests for the FastAPI surface."""

import os
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from herald.common.config import AttentionConfig, HeraldConfig, SlackTargetConfig, DispatchTargetsConfig
from herald.common.schemas import DispatchRequest, DispatchResult
from herald.attention import server


@pytest.fixture
def client(monkeypatch):
    herald_config = HeraldConfig(
        attention=AttentionConfig(
            thresholds={"chat:mention": 6},
            channel_preferences={"chat": ["memory"]},
        )
    )
    herald_config.attention.guardrails.api_key = "sk-secret"

    with patch.dict(os.environ, {}, clear=True):
        pipeline = server.build_pipeline(herald_config)

    delivered = []

    async def memory_transport(request: DispatchRequest) -> DispatchResult:
        delivered.append(request)
        return DispatchResult(channel=request.channel, delivered=True, message_id="m-1")

    pipeline.dispatcher.register_transport("memory", memory_transport)

    # Keep the reasoning service offline; fallbacks answer every call
    reasoning = pipeline.classifier.reasoning
    monkeypatch.setattr(reasoning, "classify", AsyncMock(return_value=None))
    monkeypatch.setattr(reasoning, "synthesize_directive", AsyncMock(return_value=None))

    monkeypatch.setattr(server, "config", herald_config)
    monkeypatch.setattr(server, "pipeline", pipeline)
    test_client = TestClient(server.app)
    test_client.delivered = delivered
    return test_client


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["initialized"] is True
        assert body["reasoning_configured"] is True
        assert body["reasoning_provider"] == "codex"
        assert body["transports"] == ["memory"]


class TestConfigEndpoint:
    def test_config_hides_secrets(self, client):
        response = client.get("/config")
        assert response.status_code == 200
        body = response.json()
        assert body == {
            "thresholds": {"chat:mention": 6},
            "defaultThreshold": 5.0,
            "channelPreferences": {"chat": ["memory"]},
        }
        assert "sk-secret" not in response.text

    def test_config_not_loaded(self, monkeypatch):
        monkeypatch.setattr(server, "config", None)
        response = TestClient(server.app).get("/config")
        assert response.status_code == 503


class TestEvents:
    def test_missing_source_is_422(self, client):
        response = client.post("/events", json={"kind": "mention"})
        assert response.status_code == 422
        assert "source" in response.json()["detail"]

    def test_discarded(self, client):
        response = client.post("/events", json={"source": "chat", "kind": "mention", "payload": {"text": "hi"}})
        assert response.status_code == 200
        body = response.json()
        assert body["outcome"] == "discarded"
        assert body["decision"]["threshold"] == 6

    def test_dispatched(self, client):
        response = client.post("/events", json={
            "source": "chat",
            "kind": "mention",
            "payload": {"text": "notify asap"},
            "metadata": {"audience": "me"},
            "dedupeKey": "evt-1",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["outcome"] == "dispatched"
        assert body["classification"]["version"] == "fallback-heuristic"
        assert body["primaryDirective"]["provenance"] == "fallback-directive"
        assert body["dispatchResults"] == [{"channel": "memory", "delivered": True, "messageId": "m-1"}]
        assert client.delivered[0].audience == "me"
        server.pipeline.classifier.reasoning.classify.assert_awaited_once()

    def test_pipeline_not_initialized(self, monkeypatch):
        monkeypatch.setattr(server, "pipeline", None)
        response = TestClient(server.app).post("/events", json={"source": "a", "kind": "b"})
        assert response.status_code == 503


class TestBuildPipeline:
    def test_slack_registered_when_channel_set(self):
        herald_config = HeraldConfig(
            attention=AttentionConfig(
                dispatch_targets=DispatchTargetsConfig(slack=SlackTargetConfig(channel_id="C9"))
            )
        )
        with patch.dict(os.environ, {}, clear=True):
            pipeline = server.build_pipeline(herald_config)
        assert pipeline.dispatcher.channels == ["slack"]
        assert server.slack_transport is not None

    def test_slack_skipped_without_channel(self):
        with patch.dict(os.environ, {}, clear=True):
            pipeline = server.build_pipeline(HeraldConfig())
        assert pipeline.dispatcher.channels == []
        assert server.slack_transport is None
