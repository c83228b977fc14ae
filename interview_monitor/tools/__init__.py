"""
Tools the monitor model may call.
"""
from typing import Iterable, Optional

from interview_monitor.tools.detection_tools import DETECTION_TOOLS
from interview_monitor.tools.interview_tools import InterviewProgressTools
from interview_monitor.tools.registry import RegisteredTool, ToolHandler, ToolRegistry
from interview_monitor.utils.config import get_default_enabled_tools


def build_default_registry(
    enabled: Optional[Iterable[str]] = None,
    progress_tools: Optional[InterviewProgressTools] = None,
) -> ToolRegistry:
    """
    Create a registry holding every known tool.

    Args:
        enabled: Default enabled subset; DEFAULT_ENABLED_TOOLS when omitted
        progress_tools: Interview progression handlers, for custom thresholds
    """
    registry = ToolRegistry(enabled if enabled is not None else get_default_enabled_tools())
    for descriptor, handler in DETECTION_TOOLS:
        registry.register(descriptor, handler)
    for descriptor, handler, advances_turn in (progress_tools or InterviewProgressTools()).entries():
        registry.register(descriptor, handler, advances_turn=advances_turn)
    return registry


__all__ = [
    "RegisteredTool",
    "ToolHandler",
    "ToolRegistry",
    "InterviewProgressTools",
    "build_default_registry",
]
