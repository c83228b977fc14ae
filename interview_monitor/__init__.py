"""
Interview Monitor: session context and tool orchestration for AI-mediated interviews.
"""

__version__ = "0.1.0"
