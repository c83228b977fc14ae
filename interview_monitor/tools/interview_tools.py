"""
Interview progression tools.

These handlers drive a scripted interview: fetching the next question,
folding an answer evaluation into the running score, and handing the
candidate over to the next interview phase. They never mutate the session
themselves; the changes they want are returned as `context_updates`.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from interview_monitor.models.session import (
    EvaluationResult,
    Question,
    SessionContext,
    mean_average_score,
)
from interview_monitor.models.tools import NextAction, ToolDescriptor, ToolName, ToolResult
from interview_monitor.utils.config import get_interview_config

logger = logging.getLogger(__name__)

QUESTION_TYPES = ["qna", "coding", "behavioral", "technical"]
DEFAULT_CATEGORY = "general"
DEFAULT_DIFFICULTY = 5


GET_QUESTION = ToolDescriptor(
    name=ToolName.GET_QUESTION.value,
    description=(
        "Fetch the next interview question. Either look one up by category and difficulty, "
        "or submit the question text you intend to ask with its question number."
    ),
    parameters={
        "type": "object",
        "properties": {
            "category": {"type": "string", "description": "Topic or category of the question"},
            "difficulty": {
                "type": "number",
                "minimum": 1,
                "maximum": 10,
                "description": "Desired difficulty on a scale of 1-10",
            },
            "previousQuestions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Questions already asked, to avoid repeats",
            },
            "question_number": {"type": "number", "description": "Sequence number of the question"},
            "question": {"type": "string", "description": "The question text to ask, after paraphrasing"},
            "suggestedType": {"type": "string", "enum": QUESTION_TYPES},
            "question_id": {"type": "string", "description": "Identifier of the question, from the job data or custom"},
            "reference_answer": {"type": "string", "description": "Expected answer or evaluation criteria"},
        },
        "required": [],
    },
)

STORE_EVALUATION = ToolDescriptor(
    name=ToolName.STORE_EVALUATION.value,
    description=(
        "Store the evaluation of the candidate's answer to the current question, "
        "with a 0-100 score per job intent and a weighted average score."
    ),
    parameters={
        "type": "object",
        "properties": {
            "question": {"type": "string", "description": "The question text that was asked"},
            "question_id": {"type": "string", "description": "Identifier of the question"},
            "response": {"type": "string", "description": "The candidate's response"},
            "analysis": {"type": "string", "description": "Overall analysis of the answer"},
            "average_score": {"type": "number", "minimum": 0, "maximum": 100},
            "intent_scores": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "intent_id": {"type": "string"},
                        "intent_name": {"type": "string"},
                        "score": {"type": "number", "minimum": 0, "maximum": 100},
                        "analysis": {"type": "string"},
                    },
                    "required": ["intent_id", "score"],
                },
            },
            "reference_answer": {"type": "string"},
            "comparison_notes": {"type": "string"},
            "question_category": {"type": "string"},
            "agent_name": {"type": "string", "description": "Name of the agent that performed the evaluation"},
        },
        "required": ["question", "average_score", "intent_scores"],
    },
)

TRANSFER_AGENTS = ToolDescriptor(
    name=ToolName.TRANSFER_AGENTS.value,
    description=(
        "Transfer the candidate to another interview agent (for example a technical or "
        "conclusion interviewer) once this phase is complete."
    ),
    parameters={
        "type": "object",
        "properties": {
            "destination_agent": {"type": "string", "description": "Name of the agent to transfer to"},
            "rationale_for_transfer": {"type": "string"},
            "conversation_context": {
                "type": "object",
                "properties": {
                    "overall_score": {"type": "number"},
                    "evaluations": {"type": "array", "items": {"type": "object"}},
                },
                "required": ["overall_score"],
            },
        },
        "required": ["destination_agent", "conversation_context"],
    },
)


def difficulty_label(difficulty: int) -> str:
    """Map a 1-10 difficulty onto the easy/medium/hard levels used by job question banks."""
    if difficulty <= 3:
        return "easy"
    if difficulty <= 6:
        return "medium"
    return "hard"


def _as_int(value: Any, default: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class InterviewProgressTools:
    """
    Handlers for the interview progression tools.

    Thresholds default to the interview configuration; pass them explicitly
    to run with different limits.
    """

    def __init__(self, max_questions: Optional[int] = None, min_advance_score: Optional[float] = None):
        config = get_interview_config()
        self.max_questions = max_questions if max_questions is not None else config["max_questions"]
        self.min_advance_score = (
            min_advance_score if min_advance_score is not None else config["min_advance_score"]
        )

    def entries(self) -> List[Tuple[ToolDescriptor, Any, bool]]:
        """(descriptor, handler, advances_turn) for registration."""
        return [
            (GET_QUESTION, self.get_question, True),
            (STORE_EVALUATION, self.store_evaluation, False),
            (TRANSFER_AGENTS, self.transfer_agents, False),
        ]

    async def get_question(self, args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
        """
        Select or accept the next question and make it the current one.

        Always succeeds: without a scripted question or a bank match a generic
        placeholder question is produced.
        """
        scripted = args.get("question")
        if isinstance(scripted, str) and scripted.strip():
            question = self._scripted_question(args, context)
        else:
            question = self._lookup_question(args, context)

        logger.info(f"[getQuestion] session={session_id} turn={context.current_turn} question_id={question.id}")

        data = {
            "question": question.question,
            "question_id": question.id,
            "category": question.category or question.topic_name,
            "difficulty": question.difficulty,
            "expectedCriteria": [question.evaluation_criteria or question.expected_answer or ""],
            "reference_answer": question.expected_answer,
            "suggestedType": question.question_type,
        }
        return ToolResult.ok(
            data,
            next_action_for_master=NextAction.WAIT_FOR_USER,
            next_system_message_to_slave=f"Ask the candidate the following question: {question.question}",
            context_updates={"current_question": question},
        )

    def _scripted_question(self, args: Dict[str, Any], context: SessionContext) -> Question:
        question_number = _as_int(args.get("question_number"), context.current_turn + 1)
        question_id = args.get("question_id")
        if question_id is None or str(question_id).strip() == "":
            question_id = f"q{question_number}"
        return Question(
            id=question_id if isinstance(question_id, int) else str(question_id),
            question=args["question"].strip(),
            category=args.get("category"),
            question_type=args.get("suggestedType"),
            expected_answer=args.get("reference_answer"),
        )

    def _lookup_question(self, args: Dict[str, Any], context: SessionContext) -> Question:
        category = str(args.get("category") or DEFAULT_CATEGORY).strip()
        difficulty = min(10, max(1, _as_int(args.get("difficulty"), DEFAULT_DIFFICULTY)))
        previous = args.get("previousQuestions") or []
        asked = {str(q).strip().lower() for q in previous if isinstance(q, str)}
        if context.current_question is not None:
            asked.add(context.current_question.question.strip().lower())

        bank = context.job_data.interview_questions if context.job_data else []
        level = difficulty_label(difficulty)
        wanted = category.lower()
        for candidate in bank:
            if candidate.question.strip().lower() in asked:
                continue
            categories = {(candidate.category or "").lower(), (candidate.topic_name or "").lower()}
            if wanted != DEFAULT_CATEGORY and wanted not in categories:
                continue
            if candidate.difficulty is not None and candidate.difficulty != difficulty:
                continue
            if candidate.difficulty_level and candidate.difficulty_level.lower() != level:
                continue
            return candidate

        logger.info(f"No bank question for category={category} difficulty={difficulty}, using a placeholder")
        return Question(
            id=f"generated-{context.current_turn + 1}",
            question=f"Can you walk me through your experience with {category}?",
            category=category,
            difficulty=difficulty,
            difficulty_level=level,
            expected_answer=f"A clear, concrete account of hands-on {category} experience.",
        )

    async def store_evaluation(self, args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
        """
        Validate an evaluation and fold it into the running overall score.

        On any validation failure the session is left untouched and the model
        is told how to resubmit.
        """
        try:
            evaluation = EvaluationResult.model_validate(args)
        except ValidationError as e:
            logger.warning(f"[storeEvaluation] session={session_id} invalid evaluation: {e}")
            return ToolResult.fail(
                f"Invalid evaluation: {e.errors()[0]['msg'] if e.errors() else e}",
                next_system_message_to_slave=(
                    "Resubmit the evaluation with a question, an average_score between 0 and 100 "
                    "and intent_scores for the job intents."
                ),
            )

        job_data = context.job_data
        if job_data is not None and job_data.job_intents:
            valid_ids = job_data.intent_ids()
            invalid = [str(s.intent_id) for s in evaluation.intent_scores if str(s.intent_id) not in valid_ids]
            if invalid:
                logger.warning(f"[storeEvaluation] session={session_id} unknown intent ids: {invalid}")
                return ToolResult.fail(
                    f"Invalid intent_id(s): {', '.join(invalid)}",
                    next_system_message_to_slave=(
                        f"Retry storeEvaluation using only these intent ids: {', '.join(valid_ids)}"
                    ),
                )

        evaluations = [*context.current_evaluations, evaluation]
        overall = mean_average_score(evaluations)

        if context.current_turn < self.max_questions:
            next_action = NextAction.ASK_NEXT_QUESTION
        elif overall >= self.min_advance_score:
            next_action = NextAction.TRANSFER_AGENT
        else:
            next_action = NextAction.CONCLUDE

        logger.info(
            f"[storeEvaluation] session={session_id} score={evaluation.average_score} "
            f"overall={overall:.2f} next={next_action.value}"
        )
        return ToolResult.ok(
            {
                "evaluation": evaluation.model_dump(mode="json"),
                "overall_score": overall,
                "evaluation_count": len(evaluations),
            },
            next_action_for_master=next_action,
            context_updates={"current_evaluations": evaluations, "current_overall_score": overall},
        )

    async def transfer_agents(self, args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
        """Conclude this phase and report the destination agent."""
        transfer_context = args.get("conversation_context")
        overall_score = transfer_context.get("overall_score") if isinstance(transfer_context, dict) else None
        if not _is_number(overall_score):
            logger.warning(f"[transferAgents] session={session_id} missing numeric overall_score")
            return ToolResult.fail(
                "conversation_context.overall_score must be a number",
                next_system_message_to_slave=(
                    "Resubmit transferAgents with a complete conversation_context including a numeric "
                    f"overall_score (current overall score: {context.current_overall_score:.1f})."
                ),
            )

        destination = str(args.get("destination_agent") or "conclusionInterviewer")
        logger.info(f"[transferAgents] session={session_id} destination={destination} score={overall_score}")
        return ToolResult.ok(
            {
                "transferred": True,
                "destination": destination,
                "rationale": args.get("rationale_for_transfer"),
                "overall_score": overall_score,
            },
            next_action_for_master=NextAction.TRANSFER_AGENT,
            next_system_message_to_slave=f"Let the candidate know they are being transferred to {destination}.",
            context_updates={"concluded": True},
        )
