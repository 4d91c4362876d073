"""Client for the hosted serverless functions.

Functions are invoked by name with a JSON body and answer with a JSON
object. Failures become ``RemoteFunctionError``; a body mentioning model
overload becomes ``ModelOverloadedError`` and is retried.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.exceptions.ai import MODEL_OVERLOADED_MARKER, ModelOverloadedError
from app.exceptions.remote import RemoteFunctionError, RemoteResponseError

logger = logging.getLogger(__name__)

EXTRACT_DOCUMENT = "gemini-document-extractor"
ANALYZE_STRUCTURE = "analyze-document-structure"
GENERATE_NOTE = "generate-note-from-document"
AUDIO_TRANSCRIBE = "process-audio-for-transcription"
AUDIO_SUMMARIZE = "process-audio-for-summary"
AUDIO_TRANSLATE = "process-audio-for-translation"


def _error_reason(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or response.reason_phrase)
    return response.reason_phrase


class FunctionsService:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.functions_url or "").rstrip("/")
        self.api_key = api_key or settings.supabase_service_key
        self.timeout = timeout or settings.functions_timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    @retry(
        retry=retry_if_exception_type(ModelOverloadedError),
        stop=stop_after_attempt(settings.remote_max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.ai_retry_backoff_factor,
            min=settings.ai_retry_min_wait,
            max=settings.ai_retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def invoke(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST ``body`` to the function ``name`` and return its JSON object."""
        if not self.base_url:
            raise RemoteFunctionError("Serverless functions are not configured", function_name=name)

        url = f"{self.base_url}/{name}"
        logger.info("Invoking function %s", name)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(url, json=body, headers=self._headers())
            except httpx.TimeoutException as e:
                logger.error("Function %s timed out", name)
                raise RemoteFunctionError(f"Function {name} timed out", function_name=name) from e
            except httpx.HTTPError as e:
                logger.error("Function %s request failed: %s", name, str(e))
                raise RemoteFunctionError(f"Function {name} request failed: {str(e)}", function_name=name) from e

        if response.is_error:
            reason = _error_reason(response)
            logger.error("Function %s returned %s: %s", name, response.status_code, reason)
            if MODEL_OVERLOADED_MARKER in response.text:
                raise ModelOverloadedError(details={"function": name})
            raise RemoteFunctionError(
                f"Function error ({response.status_code}): {reason}",
                function_name=name,
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteResponseError(f"Function {name} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise RemoteResponseError(f"Function {name} returned an unexpected payload")

        if data.get("error"):
            message = str(data["error"])
            if MODEL_OVERLOADED_MARKER in message:
                raise ModelOverloadedError(details={"function": name})
            raise RemoteFunctionError(message, function_name=name)

        return data
