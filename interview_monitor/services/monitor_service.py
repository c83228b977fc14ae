"""
Interview monitor service.

Facade used by the HTTP layer and the realtime transport: batches and single
utterances go in, interviewer instructions come out. Also owns the
time-based fallback flush of the conversation buffer.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from interview_monitor.core.conversation_buffer import ConversationBuffer
from interview_monitor.core.monitor import MonitorOrchestrator
from interview_monitor.models.session import ProgressSnapshot
from interview_monitor.models.tools import MonitorResult
from interview_monitor.services.session_store import SessionStore
from interview_monitor.tools.registry import ToolRegistry
from interview_monitor.utils.config import get_buffer_config
from interview_monitor.utils.constants import ERROR_NO_MESSAGES, ERROR_NO_SESSION_ID
from interview_monitor.utils.errors import MonitorCycleError

logger = logging.getLogger(__name__)


def _require_session_id(session_id: Optional[str]) -> str:
    if not session_id or not str(session_id).strip():
        raise ValueError(ERROR_NO_SESSION_ID)
    return str(session_id)


class InterviewMonitorService:
    """
    Entry point for everything that talks to the monitor.

    Instruction listeners are called with (session_id, instruction, failed)
    after every cycle, successful or not.
    """

    def __init__(
        self,
        store: SessionStore,
        registry: ToolRegistry,
        orchestrator: MonitorOrchestrator,
        buffer: Optional[ConversationBuffer] = None,
        flush_interval: Optional[float] = None,
    ):
        """
        Initialize the InterviewMonitorService.

        Args:
            store: Session store shared with the orchestrator
            registry: Tool registry shared with the orchestrator
            orchestrator: Runs the monitor cycles
            buffer: Conversation buffer for realtime utterances
            flush_interval: Seconds between fallback flushes of the buffer
        """
        self.store = store
        self.registry = registry
        self.orchestrator = orchestrator
        self.buffer = buffer or ConversationBuffer()
        self.flush_interval = (
            flush_interval if flush_interval is not None else get_buffer_config()["flush_interval"]
        )

        self.instruction_listeners: List[Callable] = []
        self._flush_task: Optional[asyncio.Task] = None
        self._running = False

        logger.info("InterviewMonitorService initialized")

    async def start(self):
        """Start the fallback flush loop."""
        if self._running:
            return
        self._running = True
        self._flush_task = asyncio.create_task(self._flush_loop())
        logger.info("InterviewMonitorService flush loop started")

    async def stop(self):
        """Stop the fallback flush loop."""
        self._running = False
        if self._flush_task is not None:
            self._flush_task.cancel()
            await asyncio.gather(self._flush_task, return_exceptions=True)
            self._flush_task = None
        logger.info("InterviewMonitorService stopped")

    async def submit_batch(self, session_id: str, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Analyze a batch of conversation messages.

        The session is created on first reference.

        Returns:
            {"instruction", "sessionId", "toolCalls", "nextActionForMaster"}

        Raises:
            ValueError: If the session id or the messages are missing
            MonitorCycleError: If the monitor cycle failed
        """
        session_id = _require_session_id(session_id)
        if not messages:
            raise ValueError(ERROR_NO_MESSAGES)

        self.store.get_or_create(session_id)
        result = await self._run_cycle(session_id, messages)
        return self._format_result(result)

    async def submit_utterance(self, session_id: str, speaker: str, text: str) -> Optional[Dict[str, Any]]:
        """
        Feed one realtime utterance into the conversation buffer.

        Returns:
            The cycle result when the utterance completed an exchange, else None
        """
        session_id = _require_session_id(session_id)
        self.store.get_or_create(session_id)
        if not self.buffer.add(session_id, speaker, text):
            return None
        return await self.flush_session(session_id)

    async def flush_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Analyze whatever is queued for a session; None if nothing is."""
        batch = self.buffer.flush(session_id)
        if not batch:
            return None
        if session_id not in self.store:
            logger.warning(f"Dropping {len(batch)} buffered messages for evicted session {session_id}")
            return None
        result = await self._run_cycle(session_id, batch)
        return self._format_result(result)

    def configure_tools(self, enabled_tool_names: List[str], session_id: Optional[str] = None) -> Dict[str, Any]:
        """Replace the enabled tool subset, for all sessions or just one."""
        enabled = self.registry.set_enabled(enabled_tool_names, session_id=session_id)
        return {"enabledToolNames": enabled, "sessionId": session_id}

    def get_state(self, session_id: str) -> ProgressSnapshot:
        """
        Interview progression snapshot.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        return self.store.snapshot(_require_session_id(session_id))

    def get_instruction(self, session_id: str) -> Optional[str]:
        """Latest instruction for the interviewer, if any."""
        context = self.store.get_context(session_id)
        return context.master_ai_system_message if context else None

    async def reset_session(self, session_id: str) -> ProgressSnapshot:
        """
        Start a session over; buffered utterances and tool overrides are dropped.

        Waits for a monitor cycle in flight on the session to finish first.
        """
        session_id = _require_session_id(session_id)
        async with self.store.lock_for(session_id):
            self.buffer.discard(session_id)
            self.registry.clear_session_override(session_id)
            context = self.store.reset(session_id)
        logger.info(f"Session {session_id} reset")
        return ProgressSnapshot.from_context(context)

    def add_instruction_listener(self, callback: Callable):
        """Add callback notified after every monitor cycle."""
        self.instruction_listeners.append(callback)

    def list_tools(self, session_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """All registered tools with their enabled flag."""
        enabled = self.registry.enabled_names(session_id)
        return [
            {"name": d.name, "description": d.description, "parameters": d.parameters, "enabled": d.name in enabled}
            for d in self.registry.all_descriptors()
        ]

    def evict_expired_sessions(self, ttl: timedelta) -> List[str]:
        """Evict idle sessions along with their buffers and tool overrides."""
        evicted = self.store.evict_expired(ttl)
        for session_id in evicted:
            self.buffer.discard(session_id)
            self.registry.clear_session_override(session_id)
        return evicted

    async def _run_cycle(self, session_id: str, messages: List[Dict[str, Any]]) -> MonitorResult:
        try:
            result = await self.orchestrator.analyze_batch(session_id, messages)
        except MonitorCycleError as e:
            await self._notify(session_id, e.instruction, True)
            raise
        await self._notify(session_id, result.instruction, False)
        return result

    async def _notify(self, session_id: str, instruction: str, failed: bool):
        for callback in self.instruction_listeners:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(session_id, instruction, failed)
                else:
                    callback(session_id, instruction, failed)
            except Exception as e:
                logger.error(f"Error in instruction listener: {e}", exc_info=True)

    @staticmethod
    def _format_result(result: MonitorResult) -> Dict[str, Any]:
        return {
            "instruction": result.instruction,
            "sessionId": result.session_id,
            "toolCalls": [
                {
                    "name": record.name,
                    "arguments": record.arguments,
                    "success": record.result.success,
                    "data": record.result.data,
                    "error": record.result.error,
                }
                for record in result.tool_calls
            ],
            "nextActionForMaster": (
                result.next_action_for_master.value if result.next_action_for_master else None
            ),
        }

    async def _flush_loop(self):
        """Background task analyzing exchanges that never got paired."""
        max_age = timedelta(seconds=self.flush_interval)
        while self._running:
            try:
                await asyncio.sleep(self.flush_interval)

                for session_id in self.buffer.promote_stale(max_age):
                    try:
                        await self.flush_session(session_id)
                    except MonitorCycleError as e:
                        logger.warning(f"Fallback flush failed for session {session_id}: {e}")

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in buffer flush loop: {e}", exc_info=True)
