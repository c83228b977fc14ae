"""
Tool models for the interview monitor.

Descriptors are what the model sees, results are what handlers return, and
call requests/records describe the model's tool calls within a monitor cycle.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ToolName(str, Enum):
    """Tools known to the monitor."""
    DETECT_ANIMAL = "detectAnimal"
    DETECT_EMOTION = "detectEmotion"
    DETECT_TECHNICAL_TERMS = "detectTechnicalTerms"
    DETECT_PERSONAL_INFO = "detectPersonalInfo"
    DETECT_INTERVIEW_DELAY = "detectInterviewDelay"
    GET_QUESTION = "getQuestion"
    STORE_EVALUATION = "storeEvaluation"
    TRANSFER_AGENTS = "transferAgents"


class NextAction(str, Enum):
    """Routing hint a tool gives the monitor."""
    ASK_NEXT_QUESTION = "ask_next_question"
    CONCLUDE = "conclude"
    WAIT_FOR_USER = "wait_for_user"
    TRANSFER_AGENT = "transfer_agent"


class ToolDescriptor(BaseModel):
    """Machine-readable contract of a callable tool."""
    name: str
    description: str
    parameters: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def to_openai_tool(self) -> Dict[str, Any]:
        """Render as a function-calling tool schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolResult(BaseModel):
    """
    Outcome of a tool execution.

    `context_updates` are applied to the session by the orchestrator; they are
    never shown to the model.
    """
    success: bool
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    next_action_for_master: Optional[NextAction] = None
    next_system_message_to_slave: Optional[str] = None
    context_updates: Dict[str, Any] = Field(default_factory=dict, exclude=True)

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None, **kwargs) -> "ToolResult":
        return cls(success=True, data=data or {}, **kwargs)

    @classmethod
    def fail(cls, error: str, **kwargs) -> "ToolResult":
        return cls(success=False, error=error, **kwargs)

    @property
    def intervention(self) -> Optional[str]:
        """The redirect instruction embedded in data, if any."""
        value = self.data.get("intervention")
        if isinstance(value, str) and value.strip():
            return value
        return None

    def to_model_payload(self) -> Dict[str, Any]:
        """What gets fed back to the model as the tool response."""
        if self.success:
            payload = dict(self.data)
            if self.next_action_for_master:
                payload["nextActionForMaster"] = self.next_action_for_master.value
            if self.next_system_message_to_slave:
                payload["nextSystemMessageToSlave"] = self.next_system_message_to_slave
            return payload
        payload = {"error": self.error}
        if self.next_system_message_to_slave:
            payload["instruction"] = self.next_system_message_to_slave
        return payload


class ToolCallRequest(BaseModel):
    """A tool call issued by the model; arguments are the raw JSON string."""
    id: str
    name: str
    arguments: str = "{}"


class ToolCallRecord(BaseModel):
    """A dispatched tool call and what it returned."""
    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: ToolResult


class ProviderResponse(BaseModel):
    """What the chat/tool-calling provider returned: free text or tool calls."""
    text: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)


class MonitorResult(BaseModel):
    """Outcome of one monitor cycle."""
    session_id: str
    instruction: str
    tool_calls: List[ToolCallRecord] = Field(default_factory=list)
    next_action_for_master: Optional[NextAction] = None
    provider_calls: int = 0
