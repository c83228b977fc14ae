"""
Exceptions raised by the interview monitor.

Tool-level and argument-level problems are never raised; they are returned as
failed ToolResult objects so the model gets another chance. Only the failures
below cross component boundaries.
"""
from typing import Optional


class InterviewMonitorError(Exception):
    """Base class for interview monitor errors."""


class SessionNotFoundError(InterviewMonitorError):
    """Raised when an operation targets a session that was never initialized."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class ProviderError(InterviewMonitorError):
    """Raised when the chat/tool-calling provider fails, times out or returns garbage."""


class MonitorCycleError(InterviewMonitorError):
    """
    Raised to the caller when a monitor cycle aborts.

    Attributes:
        session_id: Session whose cycle failed
        instruction: The error-flavoured instruction persisted to the session
    """

    def __init__(self, session_id: str, instruction: str, cause: Optional[Exception] = None):
        super().__init__(instruction)
        self.session_id = session_id
        self.instruction = instruction
        self.cause = cause
