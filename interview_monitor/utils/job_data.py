"""
Loader for the job reference data (job description, question bank, intents).
"""
import json
import logging
from typing import Optional

from pydantic import ValidationError

from interview_monitor.models.session import JobData
from interview_monitor.utils.config import JOB_DATA_PATH

logger = logging.getLogger(__name__)


def load_job_data(path: Optional[str] = None) -> Optional[JobData]:
    """
    Load job data from a JSON file.

    Args:
        path: File to read; defaults to JOB_DATA_PATH

    Returns:
        The parsed JobData, or None when no path is configured or the file is unusable
    """
    path = path or JOB_DATA_PATH
    if not path:
        logger.info("No job data path configured, running without job reference data")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read job data from {path}: {e}")
        return None

    try:
        job_data = JobData.model_validate(raw)
    except ValidationError as e:
        logger.error(f"Job data in {path} is invalid: {e}")
        return None

    logger.info(
        f"Loaded job data from {path}: {len(job_data.interview_questions)} questions, "
        f"{len(job_data.job_intents)} intents"
    )
    return job_data
