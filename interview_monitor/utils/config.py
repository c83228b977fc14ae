"""
Configuration module for {SYSTEM_NAME}.

This module provides configuration settings and utilities for the interview monitor.
"""
import os
import logging
from typing import Dict, Any, List
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# LLM configuration
LLM_MODEL = os.environ.get("LLM_MODEL", "gemini-1.5-flash")
LLM_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.2"))
LLM_TIMEOUT_SECONDS = float(os.environ.get("LLM_TIMEOUT_SECONDS", "30"))
GOOGLE_API_KEY = os.environ.get("GOOGLE_API_KEY", "")

# Conversation buffer configuration
MIN_MESSAGE_LENGTH = int(os.environ.get("MIN_MESSAGE_LENGTH", "3"))
BUFFER_FLUSH_INTERVAL_SECONDS = float(os.environ.get("BUFFER_FLUSH_INTERVAL_SECONDS", "5.0"))

# Session configuration
SESSION_TTL_MINUTES = int(os.environ.get("SESSION_TTL_MINUTES", "60"))
SESSION_CLEANUP_INTERVAL_MINUTES = int(os.environ.get("SESSION_CLEANUP_INTERVAL_MINUTES", "5"))

# Interview progression
MAX_INTERVIEW_QUESTIONS = int(os.environ.get("MAX_INTERVIEW_QUESTIONS", "5"))
MIN_ADVANCE_SCORE = float(os.environ.get("MIN_ADVANCE_SCORE", "60.0"))

# Tools enabled for every session unless reconfigured
DEFAULT_ENABLED_TOOLS = [
    name.strip()
    for name in os.environ.get("DEFAULT_ENABLED_TOOLS", "detectAnimal").split(",")
    if name.strip()
]

# Requests per client on the interview-event endpoint
INTERVIEW_EVENT_RATE_LIMIT = os.environ.get("INTERVIEW_EVENT_RATE_LIMIT", "120/minute")

# Optional job reference data (job description, question bank, intents)
JOB_DATA_PATH = os.environ.get("JOB_DATA_PATH", "")

# --- System Configuration ---
SYSTEM_NAME = os.getenv("SYSTEM_NAME", "Interview Monitor")


def get_llm_config() -> Dict[str, Any]:
    """
    Get LLM configuration.

    Returns:
        Dictionary with LLM configuration
    """
    return {
        "model": LLM_MODEL,
        "temperature": LLM_TEMPERATURE,
        "timeout": LLM_TIMEOUT_SECONDS,
    }


def get_buffer_config() -> Dict[str, Any]:
    """Get conversation buffer configuration."""
    return {
        "min_message_length": MIN_MESSAGE_LENGTH,
        "flush_interval": BUFFER_FLUSH_INTERVAL_SECONDS,
    }


def get_session_config() -> Dict[str, Any]:
    """
    Get session configuration.

    Returns:
        Dictionary with session configuration
    """
    return {
        "ttl_minutes": SESSION_TTL_MINUTES,
        "cleanup_interval_minutes": SESSION_CLEANUP_INTERVAL_MINUTES,
    }


def get_interview_config() -> Dict[str, Any]:
    """Get interview progression thresholds."""
    return {
        "max_questions": MAX_INTERVIEW_QUESTIONS,
        "min_advance_score": MIN_ADVANCE_SCORE,
    }


def get_default_enabled_tools() -> List[str]:
    """Get the tool names enabled at startup."""
    return list(DEFAULT_ENABLED_TOOLS)


def log_config():
    """Log current configuration values (excluding sensitive information)."""
    logger.info("Current configuration:")
    logger.info(f"- LLM Model: {LLM_MODEL}")
    logger.info(f"- LLM Temperature: {LLM_TEMPERATURE}")
    logger.info(f"- LLM Timeout: {LLM_TIMEOUT_SECONDS} seconds")
    logger.info(f"- Min Message Length: {MIN_MESSAGE_LENGTH} characters")
    logger.info(f"- Buffer Flush Interval: {BUFFER_FLUSH_INTERVAL_SECONDS} seconds")
    logger.info(f"- Session TTL: {SESSION_TTL_MINUTES} minutes")
    logger.info(f"- Max Interview Questions: {MAX_INTERVIEW_QUESTIONS}")
    logger.info(f"- Min Advance Score: {MIN_ADVANCE_SCORE}")
    logger.info(f"- Default Enabled Tools: {', '.join(DEFAULT_ENABLED_TOOLS) or 'none'}")
    logger.info(f"- Interview Event Rate Limit: {INTERVIEW_EVENT_RATE_LIMIT}")
    logger.info(f"- Job Data Path: {JOB_DATA_PATH or 'Not configured'}")
    logger.info(f"- Google API Key: {'Configured' if GOOGLE_API_KEY else 'Not configured'}")
