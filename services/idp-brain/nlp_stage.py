"""NLP stage: turn OCR text into structured financial fields."""

import logging
import time

from completion_client import TextCompletion
from json_recovery import parse_nlp_reply
from models import NlpError, NlpResult
from prompts import build_extraction_prompt

logger = logging.getLogger(__name__)


def run_nlp(completion: TextCompletion, raw_text: str) -> NlpResult:
    """Ask the model for the financial fields of *raw_text* and parse its reply."""
    start = time.monotonic()
    reply = completion.complete(build_extraction_prompt(raw_text))
    elapsed_ms = int((time.monotonic() - start) * 1000)

    result = parse_nlp_reply(reply)
    if isinstance(result, NlpError):
        logger.warning("NLP reply unusable after %dms: %s", elapsed_ms, result.error)
    else:
        logger.info(
            "NLP completed in %dms: document_type=%s, %d other fields, %d uncertain items",
            elapsed_ms,
            result.document_type,
            len(result.other_fields),
            len(result.uncertain_items),
        )
    return result
