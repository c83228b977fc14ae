"""
Conversation buffer for the interview monitor.

Realtime transcripts arrive one utterance at a time. The buffer keeps at most
one pending candidate utterance and one pending interviewer utterance per
session; as soon as both exist they are queued together as an exchange for
the monitor. Pending utterances that never get a partner are queued by the
time-based fallback instead.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from interview_monitor.models.session import Speaker, normalize_speaker
from interview_monitor.utils.config import get_buffer_config
from interview_monitor.utils.constants import PAIR_TIMESTAMP_OFFSET_MS, ROLE_ASSISTANT, ROLE_USER

logger = logging.getLogger(__name__)


@dataclass
class BufferedMessage:
    """A single utterance waiting for analysis."""
    role: str  # 'user' or 'assistant'
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp.isoformat()}


@dataclass
class _SessionBuffer:
    pending_user: Optional[BufferedMessage] = None
    pending_assistant: Optional[BufferedMessage] = None
    queue: List[BufferedMessage] = field(default_factory=list)


class ConversationBuffer:
    """
    Per-session buffer pairing candidate and interviewer utterances.

    All mutation happens under one lock so an utterance can never be lost
    between add() and flush().
    """

    def __init__(self, min_message_length: Optional[int] = None):
        config = get_buffer_config()
        self.min_message_length = (
            min_message_length if min_message_length is not None else config["min_message_length"]
        )
        self._buffers: Dict[str, _SessionBuffer] = {}
        self._lock = threading.Lock()

        logger.info(f"ConversationBuffer initialized (min length: {self.min_message_length})")

    def add(self, session_id: str, speaker: str, text: str, timestamp: Optional[datetime] = None) -> bool:
        """
        Buffer an utterance.

        Args:
            session_id: Session identifier
            speaker: "user"/"candidate" or "assistant"/"ai"
            text: Utterance text
            timestamp: When it was spoken; defaults to now

        Returns:
            True if this utterance completed an exchange and a batch is ready
        """
        if text is None or len(text) < self.min_message_length or not text.strip():
            logger.debug(f"Ignoring short utterance for session {session_id}")
            return False

        try:
            normalized = normalize_speaker(speaker)
        except ValueError:
            logger.warning(f"Ignoring utterance with unknown speaker '{speaker}' for session {session_id}")
            return False
        if normalized == Speaker.SYSTEM:
            logger.warning(f"Ignoring system utterance for session {session_id}")
            return False

        message = BufferedMessage(
            role=ROLE_USER if normalized == Speaker.CANDIDATE else ROLE_ASSISTANT,
            content=text.strip(),
            timestamp=timestamp or datetime.now(),
        )

        with self._lock:
            buffer = self._buffers.setdefault(session_id, _SessionBuffer())
            if message.role == ROLE_USER:
                buffer.pending_user = message
            else:
                buffer.pending_assistant = message

            if buffer.pending_user and buffer.pending_assistant:
                assistant = buffer.pending_assistant
                user = BufferedMessage(
                    role=ROLE_USER,
                    content=buffer.pending_user.content,
                    timestamp=assistant.timestamp - timedelta(milliseconds=PAIR_TIMESTAMP_OFFSET_MS),
                )
                buffer.queue.extend([user, assistant])
                buffer.pending_user = None
                buffer.pending_assistant = None
                logger.info(f"Exchange ready for session {session_id} ({len(buffer.queue)} queued)")
                return True

        return False

    def flush(self, session_id: str) -> List[Dict[str, str]]:
        """Drain the queued messages of a session; empty if nothing is queued."""
        with self._lock:
            buffer = self._buffers.get(session_id)
            if buffer is None or not buffer.queue:
                return []
            batch = [m.to_message() for m in buffer.queue]
            buffer.queue = []

        logger.info(f"Flushed {len(batch)} messages for session {session_id}")
        return batch

    def promote_stale(self, max_age: timedelta, now: Optional[datetime] = None) -> List[str]:
        """
        Queue pending utterances older than max_age.

        Returns:
            Session ids with a non-empty queue
        """
        now = now or datetime.now()
        ready = []
        with self._lock:
            for session_id, buffer in self._buffers.items():
                stale = [
                    m for m in (buffer.pending_user, buffer.pending_assistant)
                    if m is not None and now - m.timestamp >= max_age
                ]
                for message in sorted(stale, key=lambda m: m.timestamp):
                    buffer.queue.append(message)
                    if message is buffer.pending_user:
                        buffer.pending_user = None
                    else:
                        buffer.pending_assistant = None
                if buffer.queue:
                    ready.append(session_id)
        return ready

    def pending(self, session_id: str) -> Dict[str, Optional[str]]:
        """Pending (unpaired) utterance text per role."""
        with self._lock:
            buffer = self._buffers.get(session_id)
            if buffer is None:
                return {ROLE_USER: None, ROLE_ASSISTANT: None}
            return {
                ROLE_USER: buffer.pending_user.content if buffer.pending_user else None,
                ROLE_ASSISTANT: buffer.pending_assistant.content if buffer.pending_assistant else None,
            }

    def queued_count(self, session_id: str) -> int:
        with self._lock:
            buffer = self._buffers.get(session_id)
            return len(buffer.queue) if buffer else 0

    def discard(self, session_id: str):
        """Forget everything buffered for a session."""
        with self._lock:
            self._buffers.pop(session_id, None)
