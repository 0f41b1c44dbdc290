"""HTTP client for the Gemini text-completion API.

Uses httpx with bounded timeouts. Each call is a single attempt: transport
problems raise TransportError, non-200 replies raise ApiError, and a reply
without text yields an empty string.
"""

import base64
import logging
from typing import Protocol

import httpx

from config import settings

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Base class for failures talking to the completion service."""


class TransportError(CompletionError):
    """Network failure or timeout before a response was received."""


class ApiError(CompletionError):
    """The completion service answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"API error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class TextCompletion(Protocol):
    def complete(
        self,
        prompt: str,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> str: ...


class GeminiClient:
    """Gemini ``generateContent`` client, one request per call."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
        temperature: float | None = None,
        top_k: int | None = None,
        top_p: float | None = None,
        max_output_tokens: int | None = None,
    ):
        self._api_url = api_url or settings.GEMINI_API_URL
        self._generation_config = {
            "temperature": temperature if temperature is not None else settings.TEMPERATURE,
            "topK": top_k if top_k is not None else settings.TOP_K,
            "topP": top_p if top_p is not None else settings.TOP_P,
            "maxOutputTokens": max_output_tokens if max_output_tokens is not None else settings.MAX_OUTPUT_TOKENS,
        }

        read_timeout = timeout if timeout is not None else settings.COMPLETION_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.COMPLETION_CONNECT_TIMEOUT

        # Key travels in a header so it never shows up in logged URLs
        self._client = httpx.Client(
            headers={"x-goog-api-key": api_key or settings.GEMINI_API_KEY},
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    def close(self):
        self._client.close()

    def complete(
        self,
        prompt: str,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> str:
        """Send *prompt* (plus an optional inline image) and return the reply text."""
        parts: list[dict] = [{"text": prompt}]
        if image_bytes and mime_type:
            parts.append({
                "inline_data": {
                    "mime_type": mime_type,
                    "data": base64.b64encode(image_bytes).decode(),
                }
            })

        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": self._generation_config,
        }
        return extract_text(self._send(payload))

    def _send(self, payload: dict) -> dict:
        """Send a single generateContent request."""
        try:
            resp = self._client.post(self._api_url, json=payload)
        except httpx.TimeoutException as e:
            logger.error("Completion request timed out: %s", e)
            raise TransportError(f"Completion service timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Completion request failed: %s", e)
            raise TransportError(f"Cannot reach completion service: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code != 200:
            message = _error_message(data)
            logger.error("Completion service error %d: %s", resp.status_code, message)
            raise ApiError(resp.status_code, message)

        if not isinstance(data, dict):
            logger.warning("Completion service returned a non-JSON body")
            return {}
        return data


def _error_message(data) -> str:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return "Unknown API error"


def extract_text(response: dict) -> str:
    """Return ``candidates[0].content.parts[0].text`` or an empty string."""
    try:
        text = response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        logger.warning("Completion response carried no text")
        return ""
    return text if isinstance(text, str) else ""
