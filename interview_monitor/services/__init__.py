"""
Service layer for the interview monitor.

This module contains the session store, the event bus and the chat/tool-calling
provider. The InterviewMonitorService facade lives in
interview_monitor.services.monitor_service.
"""

from .session_store import SessionStore
from .event_bus import InterviewEventBus, InterviewEvent, EventType
from .chat_provider import ChatToolProvider, GeminiToolCallingProvider

__all__ = [
    "SessionStore",
    "InterviewEventBus",
    "InterviewEvent",
    "EventType",
    "ChatToolProvider",
    "GeminiToolCallingProvider",
]
