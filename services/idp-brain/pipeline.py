"""Document pipeline: (preprocess) -> OCR -> NLP -> validation -> summary.

Stages run strictly in order because each one consumes the previous output.
``iter_processing`` is the single implementation: it yields a ProgressEvent
at every stage boundary and the ProcessingResult last. ``process_document``
simply drains it. Completion errors propagate and no partial result is
produced.
"""

import logging
import time
from collections.abc import Iterator
from pathlib import PurePath

from completion_client import TextCompletion
from config import settings
from models import ProcessingResult, ProgressEvent
from nlp_stage import run_nlp
from ocr_stage import run_ocr
from preprocessing import preprocess
from summary import build_summary
from validation import validate

logger = logging.getLogger(__name__)

MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "pdf": "application/pdf",
}


def mime_type_for(filename: str) -> str:
    """Map a filename's extension to the MIME type sent with the image."""
    extension = PurePath(filename).suffix.lower().lstrip(".")
    return MIME_TYPES.get(extension, "application/octet-stream")


def iter_processing(
    image_bytes: bytes,
    mime_type: str,
    original_filename: str,
    completion: TextCompletion,
) -> Iterator[ProgressEvent | ProcessingResult]:
    """Run the pipeline, yielding progress events and finally the result.

    Closing the generator early stops before the next stage starts.
    """
    start = time.monotonic()
    logger.info(
        "Processing document: name=%s type=%s size=%d bytes",
        original_filename, mime_type, len(image_bytes),
    )

    if settings.IMAGE_PREPROCESSING and mime_type.startswith("image/"):
        before = len(image_bytes)
        image_bytes, mime_type = preprocess(image_bytes, mime_type)
        logger.info("Preprocessed image: %d bytes -> %d bytes", before, len(image_bytes))

    yield ProgressEvent(stage_name="ocr_start", message="Running AI OCR text recognition...", percent=20)
    ocr = run_ocr(completion, image_bytes, mime_type)
    yield ProgressEvent(stage_name="ocr_done", message="OCR text recognition complete", percent=50)

    yield ProgressEvent(stage_name="nlp_start", message="Running NLP field extraction...", percent=55)
    nlp_result = run_nlp(completion, ocr.raw_text)
    yield ProgressEvent(stage_name="nlp_done", message="NLP field extraction complete", percent=80)

    yield ProgressEvent(stage_name="validation_start", message="Running consistency checks...", percent=85)
    report = validate(nlp_result)
    yield ProgressEvent(stage_name="validation_done", message="Consistency checks complete", percent=95)

    yield ProgressEvent(stage_name="complete", message="Building report...", percent=98)
    result = ProcessingResult(
        ocr=ocr,
        nlp=nlp_result,
        validation=report,
        summary=build_summary(ocr, nlp_result, report),
    )

    logger.info(
        "Document processed in %.2fs: validation=%s",
        time.monotonic() - start, report.status,
    )
    yield result


def process_document(
    image_bytes: bytes,
    mime_type: str,
    original_filename: str,
    completion: TextCompletion,
) -> ProcessingResult:
    """Run the whole pipeline and return its result."""
    result = None
    for item in iter_processing(image_bytes, mime_type, original_filename, completion):
        if isinstance(item, ProcessingResult):
            result = item
    return result
