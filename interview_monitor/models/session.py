"""
Session models for the interview monitor.

This module contains the SessionContext record kept per interview session along
with the transcript, question, evaluation and job reference models it holds.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Identifier = Union[int, str]


class Speaker(str, Enum):
    """Closed set of transcript speakers."""
    CANDIDATE = "candidate"
    AI = "ai"
    SYSTEM = "system"


_ROLE_ALIASES = {
    "user": Speaker.CANDIDATE,
    "candidate": Speaker.CANDIDATE,
    "human": Speaker.CANDIDATE,
    "assistant": Speaker.AI,
    "ai": Speaker.AI,
    "system": Speaker.SYSTEM,
}


def normalize_speaker(role: Union[str, Speaker]) -> Speaker:
    """
    Map a transport role ("user", "assistant", ...) onto a Speaker.

    Raises:
        ValueError: If the role is not a known speaker
    """
    if isinstance(role, Speaker):
        return role
    speaker = _ROLE_ALIASES.get(str(role).strip().lower())
    if speaker is None:
        raise ValueError(f"Unknown speaker role: {role}")
    return speaker


class TranscriptEntry(BaseModel):
    """A single turn in the conversation history."""
    id: Identifier
    timestamp: datetime = Field(default_factory=datetime.now)
    speaker: Speaker
    message: str
    score: Optional[float] = None
    # Tool-call metadata, only used when rebuilding messages for the model
    data: Optional[Dict[str, Any]] = None


class Question(BaseModel):
    """
    A question posed to the candidate.

    Covers both the generic shape (category + numeric difficulty) and the
    job question-bank shape (topic, intent, difficulty level, expected answer).
    """
    id: Identifier
    question: str
    category: Optional[str] = None
    difficulty: Optional[int] = None
    expected_answer: Optional[str] = None
    topic_name: Optional[str] = None
    question_type: Optional[str] = None
    job_id: Optional[int] = None
    topic_id: Optional[int] = None
    intent_id: Optional[Identifier] = None
    evaluation_criteria: Optional[str] = None
    difficulty_level: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    follow_up_questions: Optional[Dict[str, Any]] = None


class JobIntent(BaseModel):
    """A named evaluation dimension of a job, with its weighting."""
    intent_id: Identifier
    intent_name: str
    description: str = ""
    weightage: float = 0.0


class JobData(BaseModel):
    """Job reference data loaded once at startup and shared read-only across sessions."""
    model_config = ConfigDict(frozen=True)

    job_details: Dict[str, Any] = Field(default_factory=dict)
    requirements: Dict[str, Any] = Field(default_factory=dict)
    responsibilities: Optional[str] = None
    interview_questions: List[Question] = Field(default_factory=list)
    job_intents: List[JobIntent] = Field(default_factory=list)
    language: Optional[str] = None

    def intent_ids(self) -> List[str]:
        """Declared intent ids, as strings so int and str ids compare equal."""
        return [str(intent.intent_id) for intent in self.job_intents]


class IntentScore(BaseModel):
    """Score (0-100) given to a candidate answer for one job intent."""
    intent_id: Identifier
    intent_name: str = ""
    score: float = Field(..., ge=0, le=100)
    analysis: Optional[str] = None


class EvaluationResult(BaseModel):
    """Evaluation of one candidate answer."""
    question: str
    question_id: Optional[Identifier] = None
    response: str = ""
    intent_scores: List[IntentScore] = Field(default_factory=list)
    average_score: float = Field(..., ge=0, le=100)
    analysis: str = ""
    reference_answer: Optional[str] = None
    comparison_notes: Optional[str] = None
    question_category: Optional[str] = None
    agent_name: str = ""


def mean_average_score(evaluations: List[EvaluationResult]) -> float:
    """Unweighted arithmetic mean of the evaluations' average scores (0.0 when empty)."""
    if not evaluations:
        return 0.0
    return sum(e.average_score for e in evaluations) / len(evaluations)


class SessionContext(BaseModel):
    """
    State kept for one interview session.

    Attributes:
        session_id: Opaque session identifier, immutable after creation
        conversation_history: Chronological transcript, append-only
        current_turn: Number of questions issued so far
        current_question: The question currently posed to the candidate
        current_evaluations: Stored evaluations, append-only
        current_overall_score: Mean of current_evaluations[*].average_score
        concluded: Set once the interview has been transferred/concluded
        master_ai_system_message: Latest instruction for the interviewing agent
        job_data: Shared job reference data
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    conversation_history: List[TranscriptEntry] = Field(default_factory=list)
    current_turn: int = 0
    current_question: Optional[Question] = None
    current_evaluations: List[EvaluationResult] = Field(default_factory=list)
    current_overall_score: float = 0.0
    concluded: bool = False
    master_ai_system_message: Optional[str] = None
    job_data: Optional[JobData] = None
    last_candidate_response: Optional[TranscriptEntry] = None
    created_at: datetime = Field(default_factory=datetime.now)
    last_active: datetime = Field(default_factory=datetime.now)


class ProgressSnapshot(BaseModel):
    """Read-only view of a session's interview progression."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    current_turn: int
    current_overall_score: float
    current_question: Optional[Question] = None
    concluded: bool
    evaluation_count: int
    master_ai_system_message: Optional[str] = None

    @classmethod
    def from_context(cls, context: SessionContext) -> "ProgressSnapshot":
        return cls(
            session_id=context.session_id,
            current_turn=context.current_turn,
            current_overall_score=context.current_overall_score,
            current_question=context.current_question,
            concluded=context.concluded,
            evaluation_count=len(context.current_evaluations),
            master_ai_system_message=context.master_ai_system_message,
        )
