"""
Legacy embedded feedback.

Older submissions stored feedback as a human sentence, a "<br>" separator
and the JSON-encoded report. Anything that does not match yields None.
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from .schemas import FeedbackReport

log = structlog.get_logger(__name__)

SEPARATOR = "<br>"


def extract_embedded_feedback(raw: Optional[str]) -> Optional[FeedbackReport]:
    if not raw or not isinstance(raw, str) or SEPARATOR not in raw:
        return None

    _, _, encoded = raw.partition(SEPARATOR)
    try:
        return FeedbackReport.model_validate(json.loads(encoded))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        log.debug("legacy_feedback_unreadable", error=type(e).__name__)
        return None


def embed_feedback(sentence: str, report: FeedbackReport) -> str:
    """Inverse of extract_embedded_feedback, for hosts that still store this format."""
    return f"{sentence}{SEPARATOR}{report.to_json()}"
