"""Google Gemini chat completion for the study assistant."""

import asyncio
import base64
import logging

import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIEmptyResponseError,
    AIRateLimitError,
    AIServiceError,
    AITimeoutError,
    ModelOverloadedError,
    map_ai_error,
)
from app.schemas.user import LearningProfile

logger = logging.getLogger(__name__)

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


def build_system_instruction(profile: LearningProfile) -> str:
    prefs = profile.learning_preferences
    examples = "Include concrete examples." if prefs.examples else "Keep examples to a minimum."
    return (
        "You are a helpful study assistant. Answer using the learner's notes and documents "
        "when they are provided as context.\n"
        f"Learning style: {profile.learning_style}.\n"
        f"Explanation style: {prefs.explanation_style}.\n"
        f"Difficulty level: {prefs.difficulty}.\n"
        f"{examples}"
    )


def to_gemini_contents(chat_history: list[dict]) -> list[dict]:
    """Convert chat turns into Gemini content dicts.

    Inline image data arrives base64 encoded and is handed to the client as
    raw bytes.
    """
    contents = []
    for turn in chat_history:
        parts = []
        for part in turn.get("parts", []):
            if "text" in part:
                parts.append({"text": part["text"]})
            elif "inline_data" in part:
                inline = part["inline_data"]
                parts.append(
                    {
                        "inline_data": {
                            "mime_type": inline["mime_type"],
                            "data": base64.b64decode(inline["data"]),
                        }
                    }
                )
        contents.append({"role": turn["role"], "parts": parts})
    return contents


class GeminiChatService:
    """Produces assistant replies from a role-tagged chat history."""

    def __init__(self, api_key: str | None = None, model_name: str | None = None):
        api_key = api_key or settings.gemini_api_key
        if not api_key:
            raise AIConfigurationError("Gemini API key not configured")

        try:
            genai.configure(api_key=api_key)
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {str(e)}")
            raise AIConfigurationError(f"Failed to initialize AI service: {str(e)}") from e

        self.model_name = model_name or settings.gemini_model
        logger.info(f"Chat Gemini client initialized with model: {self.model_name}")

    def _build_model(self, system_instruction: str):
        return genai.GenerativeModel(
            model_name=self.model_name,
            safety_settings=SAFETY_SETTINGS,
            generation_config=genai.types.GenerationConfig(
                candidate_count=1,
                max_output_tokens=settings.gemini_max_tokens,
                temperature=settings.gemini_temperature,
            ),
            system_instruction=system_instruction,
        )

    @retry(
        retry=retry_if_exception_type((AIRateLimitError, ModelOverloadedError)),
        stop=stop_after_attempt(settings.ai_max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.ai_retry_backoff_factor,
            min=settings.ai_retry_min_wait,
            max=settings.ai_retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def generate_reply(self, chat_history: list[dict], profile: LearningProfile) -> str:
        """Return the model's answer to the last user turn of ``chat_history``."""
        model = self._build_model(build_system_instruction(profile))
        contents = to_gemini_contents(chat_history)

        try:
            loop = asyncio.get_event_loop()
            response = await asyncio.wait_for(
                loop.run_in_executor(None, lambda: model.generate_content(contents)),
                timeout=settings.ai_request_timeout,
            )
        except TimeoutError:
            raise AITimeoutError("Chat request timed out") from None
        except AIServiceError:
            raise
        except Exception as e:
            logger.error(f"Gemini API call failed: {str(e)}")
            raise map_ai_error(e) from e

        return self._extract_text(response)

    @staticmethod
    def _extract_text(response) -> str:
        if not response:
            raise AIEmptyResponseError()

        candidates = getattr(response, "candidates", None)
        if not candidates:
            logger.error("AI response has no candidates - content may be blocked")
            raise AIContentFilterError("Content was blocked by AI safety filters. Please rephrase your request.")

        try:
            text = response.text
        except (ValueError, IndexError) as e:
            logger.error(f"Could not read response text: {str(e)}")
            raise AIEmptyResponseError() from e

        if not text or not text.strip():
            raise AIEmptyResponseError()
        return text
