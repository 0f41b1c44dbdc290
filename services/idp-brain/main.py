"""FastAPI IDP brain service: scanned financial documents in, validated fields out.

Runs OCR and field extraction through Gemini, then checks the extracted
figures against accounting identities. Uploads are processed in memory only;
nothing is written to disk and document content is never logged.
"""

import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import PurePath

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.concurrency import iterate_in_threadpool, run_in_threadpool

from completion_client import CompletionError, GeminiClient, TextCompletion
from config import settings
from models import ProcessingMeta, ProcessingResult, ProcessResponse, ProgressEvent
from pipeline import iter_processing, mime_type_for, process_document

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_completion: TextCompletion | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the Gemini client on startup if an API key is configured."""
    global _completion

    if not settings.GEMINI_API_KEY:
        logger.info("GEMINI_API_KEY is empty, document processing disabled")
        _completion = None
    else:
        logger.info("Using completion endpoint %s", settings.GEMINI_API_URL)
        _completion = GeminiClient()

    yield

    if isinstance(_completion, GeminiClient):
        _completion.close()


app = FastAPI(title="IDP Brain", version="1.0.0", lifespan=lifespan)


def _check_upload(filename: str, content: bytes) -> str | None:
    """Return a rejection message for an unacceptable upload, else None."""
    if not content:
        return "Empty file uploaded"

    if len(content) > settings.MAX_FILE_SIZE:
        return f"File exceeds the size limit ({settings.MAX_FILE_SIZE // (1024 * 1024)}MB)"

    extension = PurePath(filename).suffix.lower().lstrip(".")
    if extension not in settings.ALLOWED_EXTENSIONS:
        return "Unsupported file format. Supported formats: " + ", ".join(settings.ALLOWED_EXTENSIONS)

    return None


def _not_configured() -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": "AI document processing is not available - no Gemini API key configured"},
    )


def _meta(filename: str, content: bytes, mime_type: str, started: float) -> ProcessingMeta:
    return ProcessingMeta(
        original_filename=filename,
        file_size=len(content),
        mime_type=mime_type,
        processing_time_seconds=round(time.monotonic() - started, 2),
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@app.post("/api/v1/process", response_model=ProcessResponse)
async def process(document: UploadFile = File(...)):
    """Process an uploaded document and return OCR, fields, checks and summary."""
    if _completion is None:
        return _not_configured()

    filename = document.filename or ""
    content = await document.read()

    rejection = _check_upload(filename, content)
    if rejection:
        return JSONResponse(status_code=400, content={"detail": rejection})

    mime_type = mime_type_for(filename)
    started = time.monotonic()

    try:
        result = await run_in_threadpool(process_document, content, mime_type, filename, _completion)
    except CompletionError as e:
        logger.error("Document processing aborted: %s", e)
        return JSONResponse(status_code=502, content={"detail": str(e)})

    return ProcessResponse(data=result, meta=_meta(filename, content, mime_type, started))


@app.post("/api/v1/process/stream")
async def process_stream(request: Request, document: UploadFile = File(...)):
    """Same as /api/v1/process, reported as server-sent events.

    Emits ``progress`` events at stage boundaries, then a single ``result``
    or ``error`` event.
    """
    if _completion is None:
        return _not_configured()

    completion = _completion
    filename = document.filename or ""
    content = await document.read()

    async def event_stream():
        yield _sse("progress", ProgressEvent(stage_name="init", message="Initializing...", percent=5).model_dump())

        rejection = _check_upload(filename, content)
        if rejection:
            yield _sse("error", {"error": rejection})
            return

        yield _sse("progress", ProgressEvent(stage_name="upload", message="Upload received", percent=10).model_dump())

        mime_type = mime_type_for(filename)
        started = time.monotonic()
        stages = iter_processing(content, mime_type, filename, completion)
        try:
            async for item in iterate_in_threadpool(stages):
                if await request.is_disconnected():
                    logger.info("Client disconnected, abandoning pipeline")
                    stages.close()
                    return
                if isinstance(item, ProcessingResult):
                    response = ProcessResponse(data=item, meta=_meta(filename, content, mime_type, started))
                    yield _sse("result", response.model_dump(mode="json"))
                else:
                    yield _sse("progress", item.model_dump())
        except CompletionError as e:
            logger.error("Document processing aborted: %s", e)
            yield _sse("error", {"error": str(e)})

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/health")
async def health():
    """Return service status and whether the completion service is configured."""
    return {
        "status": "healthy",
        "completion_configured": _completion is not None,
        "model_url": settings.GEMINI_API_URL,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
