"""
Unit tests for MonitorOrchestrator.

The chat provider is scripted with an AsyncMock; each test queues the
responses the model would give.
"""
import asyncio
import json
import pytest
from datetime import datetime, timezone

from langchain_core.messages import HumanMessage, ToolMessage

from interview_monitor.core.monitor import MonitorOrchestrator
from interview_monitor.models import NextAction, ProviderResponse, Speaker, ToolCallRequest
from interview_monitor.services.event_bus import EventType
from interview_monitor.services.session_store import SessionStore
from interview_monitor.utils.constants import DEFAULT_INSTRUCTION
from interview_monitor.utils.errors import MonitorCycleError, ProviderError, SessionNotFoundError


CAT_BATCH = [{"role": "user", "content": "I have a cat"}]


@pytest.fixture
def orchestrator(store, registry, provider, event_bus):
    store.initialize_session("s1")
    return MonitorOrchestrator(store, registry, provider, event_bus=event_bus)


class TestAnalyzeBatch:
    """End-to-end monitor cycles."""

    @pytest.mark.asyncio
    async def test_animal_redirect(self, orchestrator, store, provider, make_tool_call):
        """A detected animal produces a redirect that is persisted."""
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("detectAnimal", json.dumps({"animal": "cat"}))]),
        ]

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert provider.complete.await_count == 1
        assert result.provider_calls == 1
        assert "Animal detected (cat)" in result.instruction
        assert "cars" in result.instruction
        assert result.tool_calls[0].name == "detectAnimal"
        assert result.tool_calls[0].arguments == {"animal": "cat"}
        assert store.get_context("s1").master_ai_system_message == result.instruction

    @pytest.mark.asyncio
    async def test_analysis_request_shape(self, orchestrator, provider):
        """The model sees the monitor prompt, the enabled tools and the rendered batch."""
        await orchestrator.analyze_batch("s1", CAT_BATCH)

        system_prompt, messages, tools = provider.complete.await_args.args
        assert system_prompt.startswith("You are a Master AI conversation monitor.")
        assert "Available tools: detectAnimal" in system_prompt
        assert isinstance(messages[0], HumanMessage)
        assert messages[0].content.endswith("user: I have a cat")
        assert [t.name for t in tools] == ["detectAnimal"]

    @pytest.mark.asyncio
    async def test_no_enabled_tools_short_circuits(self, orchestrator, registry, store, provider):
        """Without enabled tools the provider is never called."""
        registry.set_enabled([])

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        provider.complete.assert_not_awaited()
        assert result.provider_calls == 0
        assert result.instruction == DEFAULT_INSTRUCTION
        assert store.get_context("s1").master_ai_system_message == DEFAULT_INSTRUCTION

    @pytest.mark.asyncio
    async def test_plain_text_is_the_instruction(self, orchestrator, provider):
        provider.complete.side_effect = [ProviderResponse(text="Keep going, all good.")]

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert result.instruction == "Keep going, all good."
        assert result.tool_calls == []

    @pytest.mark.asyncio
    async def test_empty_reply_defaults(self, orchestrator, provider):
        provider.complete.side_effect = [ProviderResponse()]

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert result.instruction == DEFAULT_INSTRUCTION

    @pytest.mark.asyncio
    async def test_interventions_joined_in_dispatch_order(self, orchestrator, registry, provider, make_tool_call):
        registry.set_enabled(["detectAnimal", "detectEmotion"])
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[
                make_tool_call("detectEmotion", json.dumps({"emotion": "excited", "intensity": 7})),
                make_tool_call("detectAnimal", json.dumps({"animal": "dog"})),
            ]),
        ]

        result = await orchestrator.analyze_batch("s1", [{"role": "user", "content": "I love my dog!"}])

        first, second = result.instruction.split("\n\n", 1)
        assert first.startswith("EMOTION DETECTED: excited")
        assert second.startswith("INTERVENTION REQUIRED: Animal detected (dog)")
        assert provider.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_history_appended(self, orchestrator, store):
        batch = [
            {"role": "assistant", "content": "Tell me about yourself"},
            {"role": "user", "content": "I have a cat"},
        ]

        await orchestrator.analyze_batch("s1", batch)

        context = store.get_context("s1")
        assert [(e.speaker, e.message) for e in context.conversation_history] == [
            (Speaker.AI, "Tell me about yourself"),
            (Speaker.CANDIDATE, "I have a cat"),
        ]
        assert context.last_candidate_response.message == "I have a cat"

    @pytest.mark.asyncio
    async def test_utc_timestamps_are_parsed(self, orchestrator, store):
        batch = [
            {"role": "user", "content": "I have a cat", "timestamp": "2024-01-01T12:00:00.000Z"},
            {"role": "assistant", "content": "Nice", "timestamp": "not a timestamp"},
        ]

        await orchestrator.analyze_batch("s1", batch)

        spoken, fallback = store.get_context("s1").conversation_history
        expected = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert spoken.timestamp == expected
        assert fallback.timestamp.year >= 2024

    @pytest.mark.asyncio
    async def test_unknown_session(self, orchestrator):
        with pytest.raises(SessionNotFoundError):
            await orchestrator.analyze_batch("missing", CAT_BATCH)

    @pytest.mark.asyncio
    async def test_analyze_message(self, orchestrator, provider):
        await orchestrator.analyze_message("s1", "I have a cat")

        _, messages, _ = provider.complete.await_args.args
        assert messages[0].content.endswith("user: I have a cat")


class TestToolFailures:
    """Tool-level problems never abort the cycle."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, orchestrator, provider, make_tool_call):
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("detectAnimalssss", json.dumps({"animal": "cat"}))]),
            ProviderResponse(text=""),
        ]

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        record = result.tool_calls[0]
        assert record.result.success is False
        assert record.result.error == "Unknown tool: detectAnimalssss"
        assert result.instruction == DEFAULT_INSTRUCTION
        assert provider.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_bad_json_arguments(self, orchestrator, provider, make_tool_call):
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("detectAnimal", "{animal: cat")]),
            ProviderResponse(text="Ask the candidate to continue."),
        ]

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert result.tool_calls[0].result.success is False
        assert "Invalid arguments" in result.tool_calls[0].result.error
        assert result.instruction == "Ask the candidate to continue."

    @pytest.mark.asyncio
    async def test_follow_up_includes_tool_results(self, orchestrator, provider, make_tool_call):
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("nope", "{}", call_id="call_1")]),
            ProviderResponse(text="Carry on."),
        ]

        await orchestrator.analyze_batch("s1", CAT_BATCH)

        _, messages, _ = provider.complete.await_args_list[1].args
        tool_messages = [m for m in messages if isinstance(m, ToolMessage)]
        assert len(tool_messages) == 1
        assert tool_messages[0].tool_call_id == "call_1"
        assert json.loads(tool_messages[0].content) == {"error": "Unknown tool: nope"}

    @pytest.mark.asyncio
    async def test_disabled_tool_is_refused(self, orchestrator, provider, make_tool_call):
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("transferAgents", "{}")]),
            ProviderResponse(text=""),
        ]

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert result.tool_calls[0].result.error == "Tool not enabled: transferAgents"


class TestProviderFailure:
    """Provider failures abort the cycle and are visible to the caller."""

    @pytest.mark.asyncio
    async def test_provider_error(self, orchestrator, store, provider, event_bus):
        provider.complete.side_effect = ProviderError("connection reset")

        with pytest.raises(MonitorCycleError) as exc_info:
            await orchestrator.analyze_batch("s1", CAT_BATCH)

        instruction = store.get_context("s1").master_ai_system_message
        assert instruction == "Error processing conversation: connection reset"
        assert exc_info.value.instruction == instruction
        assert isinstance(exc_info.value.cause, ProviderError)
        system_events = [e for e in event_bus.get_event_history() if e.type == EventType.SYSTEM]
        assert system_events[-1].data == {"instruction": instruction}

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(self, orchestrator, store, provider):
        provider.complete.side_effect = ProviderError("timeout")

        with pytest.raises(MonitorCycleError):
            await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert not store.lock_for("s1").locked()


class TestInterviewProgression:
    """Tracker tools driven through the orchestrator."""

    @pytest.fixture
    def interview(self, registry, job_data):
        store = SessionStore(job_data=job_data)
        store.initialize_session("s1")
        registry.set_enabled(["getQuestion", "storeEvaluation", "transferAgents"])
        return store

    def _orchestrator(self, store, registry, provider, event_bus):
        return MonitorOrchestrator(store, registry, provider, event_bus=event_bus)

    @pytest.mark.asyncio
    async def test_get_question_advances_turn(self, interview, registry, provider, event_bus, make_tool_call):
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("getQuestion", json.dumps({"category": "react", "difficulty": 5}))]),
            ProviderResponse(text="Ask: How does React reconcile the virtual DOM?"),
        ]
        orchestrator = self._orchestrator(interview, registry, provider, event_bus)

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        context = interview.get_context("s1")
        assert context.current_turn == 1
        assert context.current_question.id == 101
        assert result.next_action_for_master == NextAction.WAIT_FOR_USER
        assert any(e.type == EventType.QUESTION for e in event_bus.get_event_history())

    @pytest.mark.asyncio
    async def test_evaluations_average(self, interview, registry, provider, event_bus, make_tool_call):
        """Two evaluations of 80 and 60 give an overall score of 70.0."""
        def evaluation(score):
            return json.dumps({
                "question": "How does React reconcile the virtual DOM?",
                "average_score": score,
                "intent_scores": [{"intent_id": 1, "intent_name": "React Proficiency", "score": score}],
            })

        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("storeEvaluation", evaluation(80))]),
            ProviderResponse(text="Next question."),
            ProviderResponse(tool_calls=[make_tool_call("storeEvaluation", evaluation(60))]),
            ProviderResponse(text="Next question."),
        ]
        orchestrator = self._orchestrator(interview, registry, provider, event_bus)

        await orchestrator.analyze_batch("s1", CAT_BATCH)
        await orchestrator.analyze_batch("s1", CAT_BATCH)

        context = interview.get_context("s1")
        assert context.current_overall_score == 70.0
        assert len(context.current_evaluations) == 2
        assert context.current_turn == 0

    @pytest.mark.asyncio
    async def test_overlapping_cycles_keep_every_evaluation(self, interview, registry, provider, event_bus):
        """Two concurrent cycles for one session are serialized, so no evaluation is lost."""
        def evaluation(score):
            return json.dumps({
                "question": "How does React reconcile the virtual DOM?",
                "average_score": score,
                "intent_scores": [{"intent_id": 1, "intent_name": "React Proficiency", "score": score}],
            })

        async def complete(system_prompt, messages, tools):
            # Give the other cycle a chance to run between reading and writing the context
            await asyncio.sleep(0.01)
            if len(messages) > 1:
                return ProviderResponse(text="Next question.")
            score = 80 if "eighty" in messages[0].content else 60
            return ProviderResponse(tool_calls=[
                ToolCallRequest(id=f"call_{score}", name="storeEvaluation", arguments=evaluation(score)),
            ])

        provider.complete.side_effect = complete
        orchestrator = self._orchestrator(interview, registry, provider, event_bus)

        await asyncio.gather(
            orchestrator.analyze_batch("s1", [{"role": "user", "content": "answer worth eighty"}]),
            orchestrator.analyze_batch("s1", [{"role": "user", "content": "answer worth sixty"}]),
        )

        context = interview.get_context("s1")
        assert sorted(e.average_score for e in context.current_evaluations) == [60, 80]
        assert context.current_overall_score == 70.0
        assert len(context.conversation_history) == 2

    @pytest.mark.asyncio
    async def test_rejected_evaluation_leaves_score(self, interview, registry, provider, event_bus, make_tool_call):
        bad = json.dumps({
            "question": "Q",
            "average_score": 90,
            "intent_scores": [{"intent_id": 99, "score": 90}],
        })
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("storeEvaluation", bad)]),
            ProviderResponse(text="Retry with valid intents."),
        ]
        orchestrator = self._orchestrator(interview, registry, provider, event_bus)

        await orchestrator.analyze_batch("s1", CAT_BATCH)

        context = interview.get_context("s1")
        assert context.current_overall_score == 0.0
        assert context.current_evaluations == []

    @pytest.mark.asyncio
    async def test_transfer_concludes(self, interview, registry, provider, event_bus, make_tool_call):
        args = json.dumps({
            "destination_agent": "conclusionInterviewer",
            "conversation_context": {"overall_score": 75},
        })
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("transferAgents", args)]),
            ProviderResponse(text="Wrap up the interview."),
        ]
        orchestrator = self._orchestrator(interview, registry, provider, event_bus)

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert interview.get_context("s1").concluded is True
        assert result.next_action_for_master == NextAction.TRANSFER_AGENT
        assert any(e.type == EventType.CONCLUSION for e in event_bus.get_event_history())

    @pytest.mark.asyncio
    async def test_invalid_transfer_keeps_session_open(self, interview, registry, provider, event_bus, make_tool_call):
        args = json.dumps({
            "destination_agent": "conclusionInterviewer",
            "conversation_context": {"overall_score": "75"},
        })
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("transferAgents", args)]),
            ProviderResponse(text=""),
        ]
        orchestrator = self._orchestrator(interview, registry, provider, event_bus)

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert result.tool_calls[0].result.success is False
        assert interview.get_context("s1").concluded is False

    @pytest.mark.asyncio
    async def test_no_questions_after_conclusion(self, interview, registry, provider, event_bus, make_tool_call):
        interview.update_context("s1", {"concluded": True})
        provider.complete.side_effect = [
            ProviderResponse(tool_calls=[make_tool_call("getQuestion", "{}")]),
            ProviderResponse(text=""),
        ]
        orchestrator = self._orchestrator(interview, registry, provider, event_bus)

        result = await orchestrator.analyze_batch("s1", CAT_BATCH)

        assert result.tool_calls[0].result.success is False
        assert interview.get_context("s1").current_turn == 0
