"""
Response parser for the tagged reply format.

Models are asked to answer with three sections:

    <thinking>...</thinking>
    <confidence>0.0 - 1.0</confidence>
    <result>...</result>

Parsing never raises. Replies that ignore the format entirely are treated
as a bare result with empty reasoning and the default confidence.
"""
from __future__ import annotations

import logging
import math
import re

from mathscribe.refinement.base import DEFAULT_CONFIDENCE, ParsedResponse

logger = logging.getLogger(__name__)

REASONING_TAG = "thinking"
CONFIDENCE_TAG = "confidence"
RESULT_TAG = "result"


def _tag_pattern(tag: str) -> re.Pattern:
    return re.compile(rf"<{tag}>(.*?)</{tag}>", re.IGNORECASE | re.DOTALL)


_REASONING_RE = _tag_pattern(REASONING_TAG)
_CONFIDENCE_RE = _tag_pattern(CONFIDENCE_TAG)
_RESULT_RE = _tag_pattern(RESULT_TAG)


def parse_confidence(text: str) -> float:
    """Parse a confidence string; anything non-numeric or outside [0, 1] gives the default."""
    try:
        value = float(text.strip())
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        return DEFAULT_CONFIDENCE
    return value


def parse_response(text: str) -> ParsedResponse:
    """Split a model reply into reasoning, confidence and result."""
    text = text or ""
    reasoning_match = _REASONING_RE.search(text)
    result_match = _RESULT_RE.search(text)

    if reasoning_match is None and result_match is None:
        logger.debug("Reply did not follow the tag format; using the whole reply as result")
        return ParsedResponse(reasoning="", result=text.strip(), confidence=DEFAULT_CONFIDENCE)

    confidence_match = _CONFIDENCE_RE.search(text)
    confidence = (
        parse_confidence(confidence_match.group(1)) if confidence_match else DEFAULT_CONFIDENCE
    )
    return ParsedResponse(
        reasoning=reasoning_match.group(1).strip() if reasoning_match else "",
        result=result_match.group(1).strip() if result_match else "",
        confidence=confidence,
    )
