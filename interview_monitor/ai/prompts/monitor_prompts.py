"""
Monitor prompts for the {SYSTEM_NAME} platform.

This module contains the prompt templates the monitor model receives when it
analyzes a conversation exchange and decides whether the interviewer needs
an intervention.
"""
from typing import Iterable, List, Mapping

# System prompt for the monitor; the enabled tools are listed at the end
MONITOR_SYSTEM_PROMPT = """You are a Master AI conversation monitor. Your job is to:
1. Analyze conversation exchanges between participants
2. ONLY call tools when you clearly detect the specified conditions
3. If no clear triggers detected, respond with "No intervention needed."
4. Do NOT call tools for unrelated conversations

{tool_list}"""

# Analysis prompt wrapping the rendered exchange
ANALYSIS_PROMPT = """Analyze this conversation exchange and determine if intervention is needed. If you detect any trigger, you MUST call the appropriate tools:

{conversation}"""

# Follow-up prompt sent with the tool results when no tool produced an intervention
SYNTHESIS_PROMPT = """Based on the tool results above, write a short instruction for the interviewer describing what to do next.
If nothing needs to change, respond with "No intervention needed."
"""


def render_tool_list(descriptors: Iterable) -> str:
    descriptors = list(descriptors)
    names = ", ".join(d.name for d in descriptors) or "none"
    descriptions = "; ".join(f"{d.name}: {d.description}" for d in descriptors) or "none"
    return f"Available tools: {names}\nAvailable tools descriptions: {descriptions}"


def build_system_prompt(descriptors: Iterable) -> str:
    """Monitor system prompt listing the tools the model may call this turn."""
    return MONITOR_SYSTEM_PROMPT.format(tool_list=render_tool_list(descriptors))


def render_conversation(messages: List[Mapping[str, str]]) -> str:
    """Render messages as "role: content" lines."""
    return "\n".join(f"{m.get('role', '')}: {m.get('content', '')}" for m in messages)


def build_analysis_prompt(messages: List[Mapping[str, str]]) -> str:
    return ANALYSIS_PROMPT.format(conversation=render_conversation(messages))
