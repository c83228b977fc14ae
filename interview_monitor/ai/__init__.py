"""
AI components for the {SYSTEM_NAME} platform.

This package contains the prompt templates used by the conversation monitor.
"""

from interview_monitor.ai.prompts.monitor_prompts import (
    MONITOR_SYSTEM_PROMPT,
    ANALYSIS_PROMPT,
    SYNTHESIS_PROMPT,
    build_system_prompt,
    build_analysis_prompt,
    render_conversation,
)

__all__ = [
    'MONITOR_SYSTEM_PROMPT',
    'ANALYSIS_PROMPT',
    'SYNTHESIS_PROMPT',
    'build_system_prompt',
    'build_analysis_prompt',
    'render_conversation',
]
