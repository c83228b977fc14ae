"""
Monitor orchestrator for the interview monitor.

This module implements the LangGraph workflow that analyzes a batch of
conversation turns, dispatches the tool calls the monitor model asks for and
turns the outcome into one instruction for the interviewing agent:

    analyze -> (dispatch -> (synthesize)?)? -> END

One cycle runs at a time per session; the whole pipeline holds the
session's lock.
"""
import json
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, TypedDict

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from langgraph.graph import END, START, StateGraph

from interview_monitor.ai.prompts.monitor_prompts import (
    SYNTHESIS_PROMPT,
    build_analysis_prompt,
    build_system_prompt,
)
from interview_monitor.models.session import Speaker, TranscriptEntry, normalize_speaker
from interview_monitor.models.tools import (
    MonitorResult,
    NextAction,
    ToolCallRecord,
    ToolCallRequest,
    ToolName,
    ToolResult,
)
from interview_monitor.services.chat_provider import ChatToolProvider, tool_message_content
from interview_monitor.services.event_bus import EventType, InterviewEventBus
from interview_monitor.services.session_store import SessionStore
from interview_monitor.tools.registry import ToolRegistry
from interview_monitor.utils.constants import DEFAULT_INSTRUCTION, ERROR_INSTRUCTION_PREFIX
from interview_monitor.utils.errors import MonitorCycleError, SessionNotFoundError

# Configure logging
logger = logging.getLogger(__name__)

# Events published for successful tracker tools
TOOL_EVENTS = {
    ToolName.GET_QUESTION.value: EventType.QUESTION,
    ToolName.STORE_EVALUATION.value: EventType.EVALUATION,
    ToolName.TRANSFER_AGENTS.value: EventType.CONCLUSION,
}


class MonitorState(TypedDict, total=False):
    """State carried through one monitor cycle."""
    session_id: str
    messages: List[Dict[str, Any]]
    analysis_messages: List[BaseMessage]
    tool_calls: List[ToolCallRequest]
    records: List[ToolCallRecord]
    followup_messages: List[BaseMessage]
    instruction: Optional[str]
    next_action: Optional[NextAction]
    provider_calls: int


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        # fromisoformat only accepts a trailing "Z" from Python 3.11 on
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Unparseable message timestamp '{value}', using the current time")
        else:
            # History timestamps are naive local time
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone().replace(tzinfo=None)
            return parsed
    return datetime.now()


def _parse_arguments(call: ToolCallRequest) -> Dict[str, Any]:
    """
    Decode a tool call's JSON arguments.

    Raises:
        ValueError: If the arguments are not a JSON object
    """
    raw = call.arguments.strip() if call.arguments else ""
    if not raw:
        return {}
    args = json.loads(raw)
    if not isinstance(args, dict):
        raise ValueError("arguments must be a JSON object")
    return args


class MonitorOrchestrator:
    """
    Runs monitor cycles against the session store and tool registry.

    Args:
        store: Session store holding the contexts
        registry: Registry of callable tools
        provider: Chat/tool-calling provider
        event_bus: Optional bus receiving interview events
    """

    def __init__(
        self,
        store: SessionStore,
        registry: ToolRegistry,
        provider: ChatToolProvider,
        event_bus: Optional[InterviewEventBus] = None,
    ):
        self.store = store
        self.registry = registry
        self.provider = provider
        self.event_bus = event_bus
        self.graph = self._build_graph()

        logger.info("MonitorOrchestrator initialized")

    def _build_graph(self):
        builder = StateGraph(MonitorState)

        builder.add_node("analyze", self._analyze)
        builder.add_node("dispatch", self._dispatch)
        builder.add_node("synthesize", self._synthesize)

        builder.add_edge(START, "analyze")
        builder.add_conditional_edges(
            "analyze",
            self._route_after_analyze,
            {"dispatch": "dispatch", "end": END},
        )
        builder.add_conditional_edges(
            "dispatch",
            self._route_after_dispatch,
            {"synthesize": "synthesize", "end": END},
        )
        builder.add_edge("synthesize", END)

        return builder.compile()

    async def analyze_batch(self, session_id: str, messages: List[Dict[str, Any]]) -> MonitorResult:
        """
        Run one monitor cycle over a batch of messages.

        Args:
            session_id: An initialized session
            messages: Dicts with "role" and "content" (and optionally "timestamp")

        Returns:
            The cycle outcome; its instruction has also been persisted

        Raises:
            SessionNotFoundError: If the session was never initialized
            MonitorCycleError: If the provider failed; the error instruction is persisted
        """
        if self.store.get_context(session_id) is None:
            raise SessionNotFoundError(session_id)

        async with self.store.lock_for(session_id):
            await self._record_messages(session_id, messages)

            logger.info(f"Starting monitor cycle for session {session_id} with {len(messages)} messages")
            try:
                state = await self.graph.ainvoke({
                    "session_id": session_id,
                    "messages": messages,
                    "records": [],
                    "provider_calls": 0,
                })
            except Exception as e:
                instruction = f"{ERROR_INSTRUCTION_PREFIX} {e}"
                logger.error(f"Monitor cycle failed for session {session_id}: {e}", exc_info=True)
                await self._persist_instruction(session_id, instruction)
                raise MonitorCycleError(session_id, instruction, e) from e

            instruction = state.get("instruction") or DEFAULT_INSTRUCTION
            await self._persist_instruction(session_id, instruction)

        result = MonitorResult(
            session_id=session_id,
            instruction=instruction,
            tool_calls=state.get("records", []),
            next_action_for_master=state.get("next_action"),
            provider_calls=state.get("provider_calls", 0),
        )
        logger.info(
            f"Monitor cycle finished for session {session_id}: {len(result.tool_calls)} tool calls, "
            f"{result.provider_calls} provider calls"
        )
        return result

    async def analyze_message(self, session_id: str, message: str, role: str = "user") -> MonitorResult:
        """Run a monitor cycle for a single utterance."""
        return await self.analyze_batch(session_id, [{"role": role, "content": message}])

    async def _record_messages(self, session_id: str, messages: List[Dict[str, Any]]):
        """Append the batch to the conversation history."""
        context = self.store.get_context(session_id)
        history = list(context.conversation_history)
        last_candidate = context.last_candidate_response
        appended = []

        for message in messages:
            try:
                speaker = normalize_speaker(message.get("role", ""))
            except ValueError:
                logger.warning(f"Skipping message with unknown role '{message.get('role')}' in session {session_id}")
                continue
            entry = TranscriptEntry(
                id=str(uuid.uuid4()),
                timestamp=_parse_timestamp(message.get("timestamp")),
                speaker=speaker,
                message=str(message.get("content", "")),
            )
            history.append(entry)
            appended.append(entry)
            if speaker == Speaker.CANDIDATE:
                last_candidate = entry

        if not appended:
            return
        self.store.update_context(session_id, {
            "conversation_history": history,
            "last_candidate_response": last_candidate,
        })
        for entry in appended:
            if entry.speaker == Speaker.CANDIDATE:
                await self._publish(EventType.ANSWER, entry.model_dump(mode="json"), session_id)

    async def _persist_instruction(self, session_id: str, instruction: str):
        if session_id not in self.store:
            logger.warning(f"Session {session_id} disappeared before its instruction was stored")
            return
        self.store.update_context(session_id, {"master_ai_system_message": instruction})
        await self._publish(EventType.SYSTEM, {"instruction": instruction}, session_id)

    async def _publish(self, event_type: EventType, data: Any, session_id: str):
        if self.event_bus is not None:
            await self.event_bus.publish(event_type, data, session_id=session_id)

    async def _analyze(self, state: MonitorState) -> Dict[str, Any]:
        """Ask the monitor model whether the exchange needs an intervention."""
        session_id = state["session_id"]
        descriptors = self.registry.get_enabled_descriptors(session_id)
        if not descriptors:
            logger.info(f"No tools enabled for session {session_id}, skipping analysis")
            return {"instruction": DEFAULT_INSTRUCTION, "tool_calls": []}

        analysis_messages = [HumanMessage(content=build_analysis_prompt(state["messages"]))]
        response = await self.provider.complete(
            build_system_prompt(descriptors),
            analysis_messages,
            descriptors,
        )
        update = {
            "analysis_messages": analysis_messages,
            "tool_calls": response.tool_calls,
            "provider_calls": state.get("provider_calls", 0) + 1,
        }
        if not response.tool_calls:
            update["instruction"] = response.text or DEFAULT_INSTRUCTION
        return update

    def _route_after_analyze(self, state: MonitorState) -> Literal["dispatch", "end"]:
        if state.get("tool_calls"):
            logger.info(f"Model requested {len(state['tool_calls'])} tool calls")
            return "dispatch"
        return "end"

    async def _dispatch(self, state: MonitorState) -> Dict[str, Any]:
        """Execute the requested tool calls in order and collect interventions."""
        session_id = state["session_id"]
        records: List[ToolCallRecord] = []
        next_action = None

        for call in state["tool_calls"]:
            try:
                args = _parse_arguments(call)
            except ValueError as e:
                logger.warning(f"Invalid arguments for tool {call.name}: {e}")
                args = {}
                result = ToolResult.fail(f"Invalid arguments for {call.name}: {e}")
            else:
                result = await self._execute(session_id, call.name, args)

            records.append(ToolCallRecord(id=call.id, name=call.name, arguments=args, result=result))
            if result.success and result.next_action_for_master is not None:
                next_action = result.next_action_for_master

        interventions = [record.result.intervention for record in records if record.result.intervention]
        followup = [
            AIMessage(
                content="",
                tool_calls=[{"name": r.name, "args": r.arguments, "id": r.id} for r in records],
            ),
            *[
                ToolMessage(content=tool_message_content(r.result.to_model_payload()), tool_call_id=r.id)
                for r in records
            ],
        ]

        update = {"records": records, "next_action": next_action, "followup_messages": followup}
        if interventions:
            update["instruction"] = "\n\n".join(interventions)
        return update

    async def _execute(self, session_id: str, name: str, args: Dict[str, Any]) -> ToolResult:
        """Run one tool against the latest context and apply its updates."""
        context = self.store.get_context(session_id)
        tool = self.registry.get(name)

        if tool is not None and name not in self.registry.enabled_names(session_id):
            logger.warning(f"Model called disabled tool {name} in session {session_id}")
            return ToolResult.fail(f"Tool not enabled: {name}")
        if tool is not None and tool.advances_turn and context.concluded:
            return ToolResult.fail(
                "Interview already concluded",
                next_system_message_to_slave="Do not ask further questions; the interview is over.",
            )

        result = await self.registry.execute(name, args, context, session_id)
        if not result.success:
            return result

        updates = dict(result.context_updates)
        if tool.advances_turn:
            updates["current_turn"] = context.current_turn + 1
        if updates:
            self.store.update_context(session_id, updates)

        event_type = TOOL_EVENTS.get(name)
        if event_type is not None:
            await self._publish(event_type, result.data, session_id)
        return result

    def _route_after_dispatch(self, state: MonitorState) -> Literal["synthesize", "end"]:
        if state.get("instruction"):
            return "end"
        return "synthesize"

    async def _synthesize(self, state: MonitorState) -> Dict[str, Any]:
        """Ask the model for an instruction based on the tool results."""
        session_id = state["session_id"]
        descriptors = self.registry.get_enabled_descriptors(session_id)
        messages = [
            *state.get("analysis_messages", []),
            *state.get("followup_messages", []),
            HumanMessage(content=SYNTHESIS_PROMPT),
        ]
        response = await self.provider.complete(build_system_prompt(descriptors), messages, descriptors)
        return {
            "instruction": response.text or DEFAULT_INSTRUCTION,
            "provider_calls": state.get("provider_calls", 0) + 1,
        }
