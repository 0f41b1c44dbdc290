"""Recover a JSON object from a model reply and turn it into an NLP result.

Model replies often arrive wrapped in markdown fences, with preamble text,
reasoning blocks, trailing commas or comments. Recovery is best effort: a
reply that still cannot be parsed becomes an NlpError value instead of an
exception, so validation can skip cleanly.
"""

import json
import logging
import re

from pydantic import ValidationError

from models import FinancialFieldsRecord, NlpError, NlpResult

logger = logging.getLogger(__name__)

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)
_OPENING_FENCE_JSON = re.compile(r"^```json\s*", re.IGNORECASE | re.MULTILINE)
_OPENING_FENCE = re.compile(r"^```\s*", re.MULTILINE)
_CLOSING_FENCE = re.compile(r"\s*```\s*$", re.MULTILINE)
# Everything below 0x20 except TAB, LF and CR
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_LINE_COMMENT = re.compile(r"//[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


def extract_json(text: str) -> str:
    """Strip fences and surrounding noise, returning the likely JSON object text."""
    text = text.strip()
    text = _THINK_BLOCK.sub("", text).strip()

    text = _OPENING_FENCE_JSON.sub("", text)
    text = _OPENING_FENCE.sub("", text)
    text = _CLOSING_FENCE.sub("", text)

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last != -1 and last > first:
        text = text[first:last + 1]

    text = text.removeprefix("\ufeff")
    text = _CONTROL_CHARS.sub("", text)
    return text.strip()


def try_repair(text: str) -> str:
    """Fix the usual near-JSON mistakes: trailing commas and comments."""
    text = _TRAILING_COMMA.sub(r"\1", text)
    text = _LINE_COMMENT.sub("", text)
    text = _BLOCK_COMMENT.sub("", text)
    return text


def parse_nlp_reply(text: str) -> NlpResult:
    """Parse an extraction reply into a FinancialFieldsRecord or an NlpError."""
    cleaned = extract_json(text)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(try_repair(cleaned))
        except json.JSONDecodeError as e:
            logger.warning("Could not parse JSON from model response (%d chars)", len(cleaned))
            return NlpError(error=f"JSON parsing failed: {e}", raw_response=cleaned)
        logger.info("Model response parsed after JSON repair")

    if not isinstance(parsed, dict):
        logger.warning("Model response is JSON but not an object: %s", type(parsed).__name__)
        return NlpError(
            error="JSON parsing failed: expected a JSON object",
            raw_response=cleaned,
        )

    try:
        return FinancialFieldsRecord.model_validate(parsed)
    except ValidationError as e:
        logger.warning("Model response does not match the record schema: %d errors", e.error_count())
        return NlpError(
            error=f"Unexpected response structure: {e.errors()[0]['msg']}",
            raw_response=cleaned,
        )
