"""
Gemini text generation (LLM_PROVIDER=google-ai) through the google-genai SDK, with the JSON response mime type.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from google import genai
from google.genai import errors, types

from podcaster.core.config import settings
from podcaster.core.errors import LlmError
from podcaster.llm.generator import build_messages, parse_json_object

logger = logging.getLogger(__name__)


def _map_google_error(e: errors.APIError) -> LlmError:
    message = getattr(e, "message", None) or str(e)
    if e.code in (401, 403) or "API key not valid" in message:
        return LlmError(f"Gemini rejected credentials: {message}", "INVALID_CONFIG")
    if e.code == 429:
        return LlmError(f"Gemini quota or rate limit exceeded: {message}", "QUOTA_EXCEEDED")
    return LlmError(f"Gemini API error: {message}", "API_ERROR")


class GoogleAiTextGenerator:
    """generate_json via Gemini generate_content. The system prompt and schema go in system_instruction; the reply must be one JSON object.
    Why available: Alternative to OpenAI for summary and dialogue generation; failures map to the same LlmError types."""

    def __init__(self, model: Optional[str] = None, timeout_seconds: Optional[float] = None, client=None):
        self.model = model or settings.google_model
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not settings.google_api_key:
                raise LlmError("GOOGLE_API_KEY is not set", "INVALID_CONFIG")
            self._client = genai.Client(api_key=settings.google_api_key)
        return self._client

    async def generate_json(
        self,
        prompt: str,
        schema_description: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        system = build_messages(prompt, schema_description, system_prompt)[0]["content"]
        config = types.GenerateContentConfig(
            system_instruction=system,
            response_mime_type="application/json",
            temperature=0.7,
        )
        try:
            resp = await asyncio.wait_for(
                self.client.aio.models.generate_content(model=self.model, contents=prompt, config=config),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise LlmError(f"Gemini request exceeded {self.timeout_seconds}s", "TIMEOUT") from e
        except errors.APIError as e:
            raise _map_google_error(e) from e

        feedback = getattr(resp, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            raise LlmError(f"Gemini blocked the prompt: {block_reason}", "API_ERROR")

        usage = getattr(resp, "usage_metadata", None)
        logger.info(
            "llm_generation_done",
            extra={
                "model": self.model,
                "prompt_tokens": getattr(usage, "prompt_token_count", None),
                "completion_tokens": getattr(usage, "candidates_token_count", None),
            },
        )
        return parse_json_object(resp.text)
