"""
In-memory session store for the interview monitor.

This module keeps one SessionContext per interview session, with explicit
creation, merge-style updates, per-session locks and TTL-based eviction.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from interview_monitor.models.session import JobData, ProgressSnapshot, SessionContext
from interview_monitor.utils.errors import SessionNotFoundError

logger = logging.getLogger(__name__)

# Fields that may not be changed through update_context
IMMUTABLE_FIELDS = {"session_id", "created_at"}


class SessionStore:
    """
    Registry mapping session ids to SessionContext records.

    Contexts are replaced, never mutated in place: update_context builds a new
    record from the old one plus the listed fields.
    """

    def __init__(self, job_data: Optional[JobData] = None):
        """
        Initialize the SessionStore.

        Args:
            job_data: Optional job reference data attached to every new context
        """
        self.job_data = job_data
        self._contexts: Dict[str, SessionContext] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

        logger.info("SessionStore initialized")

    def get_context(self, session_id: str) -> Optional[SessionContext]:
        """Pure lookup; never creates a context."""
        return self._contexts.get(session_id)

    def initialize_session(self, session_id: str) -> SessionContext:
        """
        Create a fresh context for a session, overwriting any existing one.

        Args:
            session_id: Session identifier

        Returns:
            The new SessionContext
        """
        if session_id in self._contexts:
            logger.info(f"Re-initializing existing session {session_id}")
        context = SessionContext(session_id=session_id, job_data=self.job_data)
        self._contexts[session_id] = context
        logger.info(f"Initialized session {session_id}")
        return context

    def get_or_create(self, session_id: str) -> SessionContext:
        """Return the session's context, initializing it on first reference."""
        context = self._contexts.get(session_id)
        if context is None:
            context = self.initialize_session(session_id)
        return context

    def update_context(self, session_id: str, updates: Dict[str, Any]) -> SessionContext:
        """
        Merge fields into a session's context.

        Listed fields are overwritten, others are left untouched.

        Args:
            session_id: Session identifier
            updates: Field name -> new value

        Returns:
            The updated SessionContext

        Raises:
            SessionNotFoundError: If the session was never initialized
            ValueError: If an update names an unknown or immutable field
        """
        context = self._contexts.get(session_id)
        if context is None:
            raise SessionNotFoundError(session_id)

        unknown = set(updates) - set(SessionContext.model_fields)
        if unknown:
            raise ValueError(f"Unknown session fields: {', '.join(sorted(unknown))}")
        frozen = set(updates) & IMMUTABLE_FIELDS
        if frozen:
            raise ValueError(f"Immutable session fields: {', '.join(sorted(frozen))}")

        merged = {**updates, "last_active": datetime.now()}
        updated = context.model_copy(update=merged)
        self._contexts[session_id] = updated
        logger.debug(f"Updated session {session_id}: {', '.join(sorted(updates))}")
        return updated

    def reset(self, session_id: str) -> SessionContext:
        """Discard a session's state and start over with a fresh context."""
        return self.initialize_session(session_id)

    def delete(self, session_id: str) -> bool:
        """Remove a session; returns False if it did not exist."""
        existed = self._contexts.pop(session_id, None) is not None
        self._locks.pop(session_id, None)
        if existed:
            logger.info(f"Deleted session {session_id}")
        return existed

    def lock_for(self, session_id: str) -> asyncio.Lock:
        """Per-session lock serializing the monitor pipeline of one session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def snapshot(self, session_id: str) -> ProgressSnapshot:
        """
        Interview progression snapshot for a session.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        context = self._contexts.get(session_id)
        if context is None:
            raise SessionNotFoundError(session_id)
        return ProgressSnapshot.from_context(context)

    def evict_expired(self, ttl: timedelta, now: Optional[datetime] = None) -> List[str]:
        """
        Remove sessions idle for longer than the TTL.

        Sessions whose lock is held (a monitor cycle in flight) are kept.

        Returns:
            The evicted session ids
        """
        now = now or datetime.now()
        expired = [
            session_id
            for session_id, context in self._contexts.items()
            if now - context.last_active > ttl
            and not (session_id in self._locks and self._locks[session_id].locked())
        ]
        for session_id in expired:
            self._contexts.pop(session_id, None)
            self._locks.pop(session_id, None)

        if expired:
            logger.info(f"Evicted {len(expired)} expired sessions")
        return expired

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._contexts
