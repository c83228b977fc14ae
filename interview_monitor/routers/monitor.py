"""
FastAPI router for the interview monitor.

This module exposes the interview-event endpoint the realtime client posts
conversation batches, utterances and tool configuration to, plus read-only
session and tool endpoints.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from slowapi import Limiter
from slowapi.util import get_remote_address

from interview_monitor.services.monitor_service import InterviewMonitorService
from interview_monitor.utils.config import INTERVIEW_EVENT_RATE_LIMIT
from interview_monitor.utils.constants import (
    ERROR_NO_SESSION_ID,
    REQUEST_TYPE_CONVERSATION_BATCH,
    REQUEST_TYPE_UPDATE_TOOLS,
    REQUEST_TYPE_UTTERANCE,
)
from interview_monitor.utils.errors import MonitorCycleError, SessionNotFoundError

logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)

# Create router
router = APIRouter(prefix="/api", tags=["monitor"])


class ConversationMessage(BaseModel):
    """One message of a conversation batch."""
    role: str = Field(..., description="Speaker role ('user' or 'assistant')")
    content: str = Field(..., description="Message text")
    timestamp: Optional[Any] = Field(None, description="When the message was spoken (epoch ms or ISO 8601)")


class InterviewEventRequest(BaseModel):
    """Body of POST /api/interview-event."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(None, alias="sessionId", description="Interview session identifier")
    type: Optional[str] = Field(None, description="conversation_batch, update_tools or utterance")
    conversation_batch: Optional[List[ConversationMessage]] = Field(None, alias="conversationBatch")
    enabled_tools: Optional[List[str]] = Field(None, alias="enabledTools")
    per_session: bool = Field(False, alias="perSession", description="Scope update_tools to this session only")
    speaker: Optional[str] = Field(None, description="Speaker of an utterance")
    text: Optional[str] = Field(None, description="Text of an utterance")


def get_monitor_service(request: Request) -> InterviewMonitorService:
    """Dependency to get the monitor service from app state."""
    service = getattr(request.app.state, "monitor_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Monitor service not initialized")
    return service


def _message_dict(message: ConversationMessage) -> Dict[str, Any]:
    timestamp = message.timestamp
    if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
        try:
            timestamp = datetime.fromtimestamp(timestamp / 1000).isoformat()
        except (OverflowError, OSError, ValueError):
            logger.warning(f"Ignoring out-of-range timestamp {timestamp}")
            timestamp = None
    return {"role": message.role, "content": message.content, "timestamp": timestamp}


@router.post("/interview-event")
@limiter.limit(INTERVIEW_EVENT_RATE_LIMIT)
async def interview_event(
    request: Request,
    body: InterviewEventRequest,
    service: InterviewMonitorService = Depends(get_monitor_service),
):
    """Handle a conversation batch, an utterance or a tool configuration update."""
    if not body.session_id:
        raise HTTPException(status_code=400, detail=ERROR_NO_SESSION_ID)
    session_id = body.session_id

    if body.type == REQUEST_TYPE_UPDATE_TOOLS and body.enabled_tools is not None:
        logger.info(f"Updating enabled tools: {body.enabled_tools}")
        result = service.configure_tools(body.enabled_tools, session_id=session_id if body.per_session else None)
        return {
            "success": True,
            "enabledTools": result["enabledToolNames"],
            "message": "Tools updated successfully",
        }

    if body.type == REQUEST_TYPE_CONVERSATION_BATCH and body.conversation_batch:
        logger.info(f"Processing conversation batch for session {session_id}")
        try:
            result = await service.submit_batch(session_id, [_message_dict(m) for m in body.conversation_batch])
        except MonitorCycleError as e:
            logger.error(f"Error processing conversation batch: {e}")
            raise HTTPException(status_code=500, detail="Failed to process conversation batch.")
        return {"masterAISystemMessage": result["instruction"], **result}

    if body.type == REQUEST_TYPE_UTTERANCE and body.speaker and body.text is not None:
        try:
            result = await service.submit_utterance(session_id, body.speaker, body.text)
        except MonitorCycleError as e:
            logger.error(f"Error processing utterance: {e}")
            raise HTTPException(status_code=500, detail="Failed to process utterance.")
        if result is None:
            return {
                "sessionId": session_id,
                "batchReady": False,
                "masterAISystemMessage": service.get_instruction(session_id),
            }
        return {"batchReady": True, "masterAISystemMessage": result["instruction"], **result}

    service.store.get_or_create(session_id)
    return {"masterAISystemMessage": "Request type not handled.", "sessionId": session_id}


@router.get("/sessions/{session_id}/state")
async def get_session_state(session_id: str, service: InterviewMonitorService = Depends(get_monitor_service)):
    """Interview progression snapshot of a session."""
    try:
        snapshot = service.get_state(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return snapshot.model_dump(mode="json")


@router.post("/sessions/{session_id}/reset")
async def reset_session(session_id: str, service: InterviewMonitorService = Depends(get_monitor_service)):
    """Discard a session's progress and start it over."""
    snapshot = await service.reset_session(session_id)
    logger.info(f"Session {session_id} reset via API")
    return snapshot.model_dump(mode="json")


@router.get("/tools")
async def list_tools(
    session_id: Optional[str] = None,
    service: InterviewMonitorService = Depends(get_monitor_service),
):
    """All registered tools with their enabled flag."""
    return {"tools": service.list_tools(session_id)}
