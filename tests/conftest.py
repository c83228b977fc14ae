"""
Shared fixtures for the interview monitor tests.
"""
import pytest
from unittest.mock import AsyncMock, Mock

from interview_monitor.models import JobData, ProviderResponse, ToolCallRequest
from interview_monitor.services.event_bus import InterviewEventBus
from interview_monitor.services.session_store import SessionStore
from interview_monitor.tools import InterviewProgressTools, build_default_registry


@pytest.fixture
def job_data():
    """Job data with two intents and a small question bank."""
    return JobData.model_validate({
        "job_details": {"id": 1, "title": "Frontend Developer"},
        "interview_questions": [
            {
                "id": 101,
                "job_id": 1,
                "topic_id": 7,
                "topic_name": "react",
                "intent_id": 1,
                "question": "How does React reconcile the virtual DOM?",
                "expected_answer": "Diffing by type and key.",
                "evaluation_criteria": "Mentions keys and diffing",
                "difficulty_level": "medium",
                "question_type": "technical",
                "tags": ["react"],
            },
            {
                "id": 102,
                "job_id": 1,
                "topic_id": 7,
                "topic_name": "react",
                "intent_id": 1,
                "question": "When would you reach for useMemo?",
                "expected_answer": "Expensive derived values.",
                "difficulty_level": "medium",
                "question_type": "technical",
            },
        ],
        "job_intents": [
            {"intent_id": 1, "intent_name": "React Proficiency", "description": "", "weightage": 0.6},
            {"intent_id": 2, "intent_name": "Communication", "description": "", "weightage": 0.4},
        ],
    })


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def registry():
    """Registry with every tool, thresholds pinned for the tests."""
    return build_default_registry(
        enabled=["detectAnimal"],
        progress_tools=InterviewProgressTools(max_questions=2, min_advance_score=60.0),
    )


@pytest.fixture
def event_bus():
    return InterviewEventBus()


@pytest.fixture
def provider():
    """Scripted provider; set provider.complete.side_effect per test."""
    mock = Mock()
    mock.complete = AsyncMock(return_value=ProviderResponse(text="No intervention needed."))
    return mock


@pytest.fixture
def make_tool_call():
    """Factory building ToolCallRequests the way the provider reports them."""
    def _make(name, arguments="{}", call_id=None):
        return ToolCallRequest(id=call_id or f"call_{name}", name=name, arguments=arguments)
    return _make
