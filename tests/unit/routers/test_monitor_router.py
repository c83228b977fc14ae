"""
Unit tests for the interview monitor HTTP router.
"""
import json
import pytest
from fastapi.testclient import TestClient

from interview_monitor.core.monitor import MonitorOrchestrator
from interview_monitor.models import ProviderResponse
from interview_monitor.server import create_app
from interview_monitor.services.monitor_service import InterviewMonitorService
from interview_monitor.utils.errors import ProviderError


@pytest.fixture
def service(store, registry, provider, event_bus):
    orchestrator = MonitorOrchestrator(store, registry, provider, event_bus=event_bus)
    return InterviewMonitorService(store, registry, orchestrator, flush_interval=60)


@pytest.fixture
def client(service):
    # The lifespan is not entered, so no background jobs run
    return TestClient(create_app(service=service))


class TestInterviewEvent:
    """Test POST /api/interview-event."""

    def test_missing_session_id(self, client):
        response = client.post("/api/interview-event", json={"type": "conversation_batch"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Session ID is required."

    def test_update_tools(self, client, service):
        response = client.post(
            "/api/interview-event",
            json={"sessionId": "s1", "type": "update_tools", "enabledTools": ["detectEmotion", "getQuestion"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["enabledTools"] == ["detectEmotion", "getQuestion"]
        assert service.registry.enabled_names() == {"detectEmotion", "getQuestion"}

    def test_update_tools_per_session(self, client, service):
        client.post(
            "/api/interview-event",
            json={"sessionId": "s1", "type": "update_tools", "enabledTools": [], "perSession": True},
        )

        assert service.registry.enabled_names("s1") == set()
        assert service.registry.enabled_names() == {"detectAnimal"}

    def test_conversation_batch(self, client, provider, make_tool_call):
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("detectAnimal", json.dumps({"animal": "dog"}))]),
        ]

        response = client.post(
            "/api/interview-event",
            json={
                "sessionId": "s1",
                "type": "conversation_batch",
                "conversationBatch": [
                    {"role": "user", "content": "I walk my dog every morning", "timestamp": 1704110400000},
                    {"role": "assistant", "content": "That sounds lovely"},
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert "Animal detected (dog)" in body["masterAISystemMessage"]
        assert body["instruction"] == body["masterAISystemMessage"]
        assert body["toolCalls"][0]["name"] == "detectAnimal"

    def test_out_of_range_timestamp_is_ignored(self, client, service):
        response = client.post(
            "/api/interview-event",
            json={
                "sessionId": "s1",
                "type": "conversation_batch",
                "conversationBatch": [{"role": "user", "content": "hello there", "timestamp": 10 ** 20}],
            },
        )

        assert response.status_code == 200
        assert len(service.store.get_context("s1").conversation_history) == 1

    def test_conversation_batch_failure(self, client, provider):
        provider.complete.side_effect = ProviderError("boom")

        response = client.post(
            "/api/interview-event",
            json={
                "sessionId": "s1",
                "type": "conversation_batch",
                "conversationBatch": [{"role": "user", "content": "hello there"}],
            },
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to process conversation batch."

    def test_utterance_waits_for_pair(self, client, provider):
        response = client.post(
            "/api/interview-event",
            json={"sessionId": "s1", "type": "utterance", "speaker": "user", "text": "I have a cat"},
        )

        assert response.status_code == 200
        assert response.json()["batchReady"] is False
        provider.complete.assert_not_awaited()

    def test_utterance_completes_batch(self, client):
        client.post(
            "/api/interview-event",
            json={"sessionId": "s1", "type": "utterance", "speaker": "user", "text": "I have a cat"},
        )
        response = client.post(
            "/api/interview-event",
            json={"sessionId": "s1", "type": "utterance", "speaker": "assistant", "text": "Tell me about it"},
        )

        body = response.json()
        assert body["batchReady"] is True
        assert body["masterAISystemMessage"] == "No intervention needed."

    def test_unhandled_request_type(self, client, service):
        response = client.post("/api/interview-event", json={"sessionId": "s1", "type": "ping"})

        assert response.status_code == 200
        assert response.json()["masterAISystemMessage"] == "Request type not handled."
        assert "s1" in service.store


class TestSessionEndpoints:
    """Test the session and tool endpoints."""

    def test_state_unknown_session(self, client):
        assert client.get("/api/sessions/missing/state").status_code == 404

    def test_state(self, client, service):
        service.store.initialize_session("s1")

        response = client.get("/api/sessions/s1/state")

        assert response.status_code == 200
        body = response.json()
        assert body["session_id"] == "s1"
        assert body["current_turn"] == 0
        assert body["concluded"] is False

    def test_reset(self, client, service):
        service.store.initialize_session("s1")
        service.store.update_context("s1", {"current_turn": 3})

        response = client.post("/api/sessions/s1/reset")

        assert response.status_code == 200
        assert response.json()["current_turn"] == 0

    def test_list_tools(self, client):
        response = client.get("/api/tools")

        tools = {tool["name"]: tool["enabled"] for tool in response.json()["tools"]}
        assert tools["detectAnimal"] is True
        assert tools["storeEvaluation"] is False
        assert len(tools) == 8

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"
