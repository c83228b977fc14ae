"""
Conversation detection tools for the interview monitor.

Each tool is called by the monitor model when it spots a condition in the
conversation (an animal mention, a strong emotion, technical jargon, personal
information, or the interview drifting) and answers with a canned intervention
for the interviewing agent.
"""
import logging
from typing import Any, Dict, List

from interview_monitor.models.session import SessionContext
from interview_monitor.models.tools import ToolDescriptor, ToolName, ToolResult

# Configure logging
logger = logging.getLogger(__name__)

ANIMALS = ["cat", "dog", "bird", "fish"]
EMOTIONS = [
    "happy", "sad", "angry", "excited", "nervous",
    "confident", "frustrated", "anxious", "surprised", "disappointed",
]
NEGATIVE_EMOTIONS = {"sad", "angry", "nervous", "frustrated", "anxious", "disappointed"}
TERM_CATEGORIES = [
    "programming", "design", "business", "science", "engineering",
    "medical", "legal", "finance", "other",
]
EXPERTISE_LEVELS = ["beginner", "intermediate", "advanced", "expert"]
PERSONAL_INFO_TYPES = ["family", "relationship", "achievement", "struggle", "hobby", "background", "other"]
SENSITIVITY_LEVELS = ["low", "medium", "high"]
DELAY_TYPES = ["off_topic", "too_detailed", "repetitive", "tangential", "time_consuming"]
DELAY_ACTIONS = ["redirect", "summarize", "move_on", "refocus", "time_check"]

DEFAULT_EMOTION_INTENSITY = 5


DETECT_ANIMAL = ToolDescriptor(
    name=ToolName.DETECT_ANIMAL.value,
    description="Call only when you detect animal-related words like cat, dog, pet, etc.",
    parameters={
        "type": "object",
        "properties": {
            "animal": {"type": "string", "enum": ANIMALS},
            "context": {"type": "string", "description": "Brief context of the animal mention"},
        },
        "required": ["animal"],
    },
)

DETECT_EMOTION = ToolDescriptor(
    name=ToolName.DETECT_EMOTION.value,
    description=(
        "Call when strong emotions are detected in the conversation "
        "(excitement, frustration, nervousness, anger, joy, etc.)"
    ),
    parameters={
        "type": "object",
        "properties": {
            "emotion": {"type": "string", "enum": EMOTIONS, "description": "The primary emotion detected"},
            "intensity": {
                "type": "number",
                "minimum": 1,
                "maximum": 10,
                "description": "Intensity of the emotion on a scale of 1-10",
            },
            "context": {"type": "string", "description": "What triggered this emotional response"},
        },
        "required": ["emotion", "intensity"],
    },
)

DETECT_TECHNICAL_TERMS = ToolDescriptor(
    name=ToolName.DETECT_TECHNICAL_TERMS.value,
    description="Call when technical terms, jargon, or specialized vocabulary are used in conversation",
    parameters={
        "type": "object",
        "properties": {
            "terms": {
                "type": "array",
                "items": {"type": "string"},
                "description": "List of technical terms detected",
            },
            "category": {"type": "string", "enum": TERM_CATEGORIES, "description": "Category of technical terms"},
            "expertise_level": {
                "type": "string",
                "enum": EXPERTISE_LEVELS,
                "description": "Assessed expertise level based on term usage",
            },
        },
        "required": ["terms", "category"],
    },
)

DETECT_PERSONAL_INFO = ToolDescriptor(
    name=ToolName.DETECT_PERSONAL_INFO.value,
    description=(
        "Call when personal information is shared "
        "(family, relationships, personal struggles, achievements)"
    ),
    parameters={
        "type": "object",
        "properties": {
            "info_type": {
                "type": "string",
                "enum": PERSONAL_INFO_TYPES,
                "description": "Type of personal information shared",
            },
            "sensitivity": {
                "type": "string",
                "enum": SENSITIVITY_LEVELS,
                "description": "Sensitivity level of the information shared",
            },
        },
        "required": ["info_type"],
    },
)

DETECT_INTERVIEW_DELAY = ToolDescriptor(
    name=ToolName.DETECT_INTERVIEW_DELAY.value,
    description=(
        "Call when the conversation is getting off-track from interview objectives "
        "or taking too long on one topic"
    ),
    parameters={
        "type": "object",
        "properties": {
            "delay_type": {"type": "string", "enum": DELAY_TYPES, "description": "Type of delay detected"},
            "suggested_action": {
                "type": "string",
                "enum": DELAY_ACTIONS,
                "description": "Suggested action to get back on track",
            },
        },
        "required": ["delay_type"],
    },
)


def _as_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _as_terms(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(term) for term in value if str(term).strip()]
    if isinstance(value, str) and value.strip():
        return [term.strip() for term in value.split(",") if term.strip()]
    return []


def _as_intensity(value: Any) -> float:
    try:
        intensity = float(value)
    except (TypeError, ValueError):
        return DEFAULT_EMOTION_INTENSITY
    return min(10.0, max(1.0, intensity))


async def detect_animal(args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
    """Redirect the conversation towards cars and transportation when an animal comes up."""
    animal = _as_text(args.get("animal"), "animal")
    logger.info(f"[detectAnimal] session={session_id} animal={animal}")

    intervention = f"""INTERVENTION REQUIRED: Animal detected ({animal}).
IMMEDIATELY redirect the conversation by asking about cars, vehicles, or transportation.
Examples:
- "That's interesting! Speaking of getting around, what kind of car do you drive?"
- "By the way, I'm curious about your transportation preferences. Do you prefer cars, public transit, or other vehicles?"
- "Let's talk about something different - what's your dream car?"
Do NOT continue discussing animals. Smoothly transition to vehicle/transportation topics."""

    return ToolResult.ok({
        "animal": animal,
        "context": args.get("context"),
        "intervention": intervention,
        "action": "redirect_to_cars",
    })


async def detect_emotion(args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
    """Ask the interviewer to adjust tone to the candidate's emotional state."""
    emotion = _as_text(args.get("emotion"), "unspecified")
    intensity = _as_intensity(args.get("intensity"))
    logger.info(f"[detectEmotion] session={session_id} emotion={emotion} intensity={intensity}")

    intervention = f"""EMOTION DETECTED: {emotion} (intensity: {intensity:g}/10).
ADJUST your approach:
- If intensity > 7: Be more supportive and empathetic
- If negative emotion: Acknowledge their feelings before continuing
- If positive emotion: Match their energy level appropriately"""

    return ToolResult.ok({
        "emotion": emotion,
        "intensity": intensity,
        "negative": emotion in NEGATIVE_EMOTIONS,
        "intervention": intervention,
        "action": "adjust_tone",
    })


async def detect_technical_terms(args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
    """Have the interviewer probe the depth behind technical vocabulary."""
    terms = _as_terms(args.get("terms"))
    category = _as_text(args.get("category"), "other")
    expertise_level = args.get("expertise_level")
    logger.info(f"[detectTechnicalTerms] session={session_id} category={category} terms={terms}")

    intervention = f"""TECHNICAL EXPERTISE DETECTED: {category} terms used ({", ".join(terms) or "unspecified"}).
FOLLOW UP with deeper technical questions:
- Ask about specific experience with these technologies
- Probe for practical applications they've worked on
- Assess depth of knowledge vs. surface-level familiarity"""

    return ToolResult.ok({
        "terms": terms,
        "category": category,
        "expertise_level": expertise_level,
        "intervention": intervention,
        "action": "probe_technical_depth",
    })


async def detect_personal_info(args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
    """Keep the interview professional when personal details are shared."""
    info_type = _as_text(args.get("info_type"), "other")
    sensitivity = _as_text(args.get("sensitivity"), "medium")
    logger.info(f"[detectPersonalInfo] session={session_id} info_type={info_type} sensitivity={sensitivity}")

    intervention = f"""PERSONAL INFORMATION SHARED: {info_type} (sensitivity: {sensitivity}).
RESPOND appropriately:
- If high sensitivity: Acknowledge briefly and redirect to professional topics
- If medium sensitivity: Show appropriate interest but maintain boundaries
- If low sensitivity: Can engage naturally while staying professional"""

    return ToolResult.ok({
        "info_type": info_type,
        "sensitivity": sensitivity,
        "intervention": intervention,
        "action": "manage_personal_boundary",
    })


async def detect_interview_delay(args: Dict[str, Any], context: SessionContext, session_id: str) -> ToolResult:
    """Bring a drifting interview back on track."""
    delay_type = _as_text(args.get("delay_type"), "off_topic")
    suggested_action = _as_text(args.get("suggested_action"), "refocus")
    logger.info(f"[detectInterviewDelay] session={session_id} delay_type={delay_type} action={suggested_action}")

    intervention = f"""INTERVIEW FLOW ISSUE: {delay_type} detected.
TAKE ACTION: {suggested_action}
- If redirect: "Let's focus on [next topic]"
- If summarize: "To summarize what you've shared..."
- If move_on: "That's great insight. Moving forward..."
- If refocus: "Let's get back to discussing..."
- If time_check: "We have limited time, so..." """.rstrip()

    return ToolResult.ok({
        "delay_type": delay_type,
        "suggested_action": suggested_action,
        "intervention": intervention,
        "action": "manage_interview_flow",
    })


DETECTION_TOOLS = [
    (DETECT_ANIMAL, detect_animal),
    (DETECT_EMOTION, detect_emotion),
    (DETECT_TECHNICAL_TERMS, detect_technical_terms),
    (DETECT_PERSONAL_INFO, detect_personal_info),
    (DETECT_INTERVIEW_DELAY, detect_interview_delay),
]
