"""
Data models for the interview monitor.
"""
from .session import (
    Speaker,
    normalize_speaker,
    TranscriptEntry,
    Question,
    JobIntent,
    JobData,
    IntentScore,
    EvaluationResult,
    SessionContext,
    ProgressSnapshot,
    mean_average_score,
)
from .tools import (
    ToolName,
    NextAction,
    ToolDescriptor,
    ToolResult,
    ToolCallRequest,
    ToolCallRecord,
    ProviderResponse,
    MonitorResult,
)

__all__ = [
    "Speaker",
    "normalize_speaker",
    "TranscriptEntry",
    "Question",
    "JobIntent",
    "JobData",
    "IntentScore",
    "EvaluationResult",
    "SessionContext",
    "ProgressSnapshot",
    "mean_average_score",
    "ToolName",
    "NextAction",
    "ToolDescriptor",
    "ToolResult",
    "ToolCallRequest",
    "ToolCallRecord",
    "ProviderResponse",
    "MonitorResult",
]
