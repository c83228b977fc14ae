"""
In-process event bus for interview events.

Dashboards and transports subscribe to the events the monitor publishes:
candidate answers, questions, evaluations, interviewer instructions and the
interview conclusion.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Oldest events are dropped beyond this many
MAX_EVENT_HISTORY = 1000


class EventType(str, Enum):
    QUESTION = "question"
    ANSWER = "answer"
    EVALUATION = "evaluation"
    SYSTEM = "system"
    CONCLUSION = "conclusion"


@dataclass
class InterviewEvent:
    """An event published on the bus."""
    type: EventType
    data: Any
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class InterviewEventBus:
    """
    Publish/subscribe hub keyed by event type.

    Subscribers may be plain functions or coroutines. A failing subscriber is
    logged and skipped; it never affects the publisher or other subscribers.
    """

    def __init__(self, max_history: int = MAX_EVENT_HISTORY):
        self.max_history = max_history
        self._events: List[InterviewEvent] = []
        self._subscribers: Dict[EventType, List[Callable]] = {event_type: [] for event_type in EventType}

    def subscribe(self, event_type: EventType, callback: Callable) -> Callable[[], None]:
        """
        Register a callback for one event type.

        Returns:
            A function that removes the subscription
        """
        subscribers = self._subscribers[EventType(event_type)]
        subscribers.append(callback)

        def unsubscribe():
            if callback in subscribers:
                subscribers.remove(callback)

        return unsubscribe

    async def publish(self, event_type: EventType, data: Any, session_id: Optional[str] = None) -> InterviewEvent:
        """Record an event and notify its subscribers in subscription order."""
        event = InterviewEvent(type=EventType(event_type), data=data, session_id=session_id)
        self._events.append(event)
        if len(self._events) > self.max_history:
            del self._events[: len(self._events) - self.max_history]

        for callback in list(self._subscribers[event.type]):
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(event)
                else:
                    callback(event)
            except Exception as e:
                logger.error(f"Error in {event.type.value} event subscriber: {e}", exc_info=True)

        return event

    def get_event_history(self, session_id: Optional[str] = None) -> List[InterviewEvent]:
        """Copy of the recorded events, optionally for one session only."""
        if session_id is None:
            return list(self._events)
        return [event for event in self._events if event.session_id == session_id]

    def clear(self):
        """Forget the event history; subscriptions are kept."""
        self._events = []
