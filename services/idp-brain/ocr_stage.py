"""OCR stage: send the document image to the completion service and score the text."""

import logging
import time

from completion_client import TextCompletion
from models import OcrResult
from prompts import OCR_PROMPT, UNCERTAIN_MARKER

logger = logging.getLogger(__name__)


def run_ocr(completion: TextCompletion, image_bytes: bytes, mime_type: str) -> OcrResult:
    """Extract raw text from the image. Completion errors propagate."""
    start = time.monotonic()
    raw_text = completion.complete(OCR_PROMPT, image_bytes, mime_type)
    elapsed_ms = int((time.monotonic() - start) * 1000)

    confidence = estimate_confidence(raw_text)
    logger.info(
        "OCR completed in %dms: %d chars, confidence %.1f",
        elapsed_ms, len(raw_text), confidence,
    )
    return OcrResult(raw_text=raw_text, confidence=confidence)


def estimate_confidence(text: str) -> float:
    """Heuristic 0-100 score penalising dense [?] markers relative to text length."""
    if not text:
        return 0.0

    uncertain = text.count(UNCERTAIN_MARKER)
    ratio = (uncertain * 10) / len(text)
    confidence = max(0.0, min(100.0, 100 - ratio * 100))
    return round(confidence, 1)
