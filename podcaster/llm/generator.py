"""
Text generation collaborator: prompt in, JSON object out.
OpenAI chat completions in JSON mode, Gemini (google_ai.py), the internal gateway (internal.py), or a deterministic stub for local runs (LLM_PROVIDER=stub).
"""
import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional

import openai

from podcaster.core.config import settings
from podcaster.core.errors import LlmError
from podcaster.core.openai_client import get_openai_client

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant that responds only with a single valid JSON object."


def build_messages(prompt: str, schema_description: Optional[str] = None, system_prompt: Optional[str] = None) -> list:
    """Chat messages for one generation: system rules (plus the schema the JSON must follow) and the user prompt."""
    system = system_prompt or DEFAULT_SYSTEM_PROMPT
    if schema_description:
        system = f"{system}\n\nRespond with JSON matching this schema:\n{schema_description}"
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": prompt},
    ]


def parse_json_object(raw: Optional[str]) -> Dict[str, Any]:
    """Parse model output as a JSON object. Raises LlmError(RESPONSE_FORMAT) when empty, not JSON, or not an object."""
    raw = (raw or "").strip()
    if not raw:
        raise LlmError("Empty response from model", "RESPONSE_FORMAT")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LlmError(f"Model response is not valid JSON: {e}", "RESPONSE_FORMAT") from e
    if not isinstance(data, dict):
        raise LlmError(f"Model response is a JSON {type(data).__name__}, expected an object", "RESPONSE_FORMAT")
    return data


def _map_openai_error(e: Exception) -> LlmError:
    if isinstance(e, openai.APITimeoutError):
        return LlmError(f"Model request timed out: {e}", "TIMEOUT")
    if isinstance(e, openai.AuthenticationError):
        return LlmError(f"Model rejected credentials: {e}", "INVALID_CONFIG")
    if isinstance(e, openai.RateLimitError):
        return LlmError(f"Model quota or rate limit exceeded: {e}", "QUOTA_EXCEEDED")
    if isinstance(e, openai.APIError):
        return LlmError(f"Model API error: {e}", "API_ERROR")
    return LlmError(str(e) or e.__class__.__name__, "OTHER")


class OpenAiTextGenerator:
    """generate_json via OpenAI chat completions with response_format json_object.
    Why available: Produces the structured summary and dialogue; every failure surfaces as a typed LlmError so the job fails at GENERATING_CONTENT."""

    def __init__(self, model: Optional[str] = None, timeout_seconds: Optional[float] = None, client=None):
        self.model = model or settings.chat_model
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not settings.openai_api_key:
                raise LlmError("OPENAI_API_KEY is not set", "INVALID_CONFIG")
            self._client = get_openai_client()
        return self._client

    async def generate_json(
        self,
        prompt: str,
        schema_description: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        messages = build_messages(prompt, schema_description, system_prompt)
        try:
            resp = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=0.7,
                    response_format={"type": "json_object"},
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise LlmError(f"Model request exceeded {self.timeout_seconds}s", "TIMEOUT") from e
        except openai.OpenAIError as e:
            raise _map_openai_error(e) from e

        usage = getattr(resp, "usage", None)
        logger.info(
            "llm_generation_done",
            extra={
                "model": self.model,
                "prompt_tokens": getattr(usage, "prompt_tokens", None),
                "completion_tokens": getattr(usage, "completion_tokens", None),
            },
        )
        if not resp.choices:
            raise LlmError("Model returned no choices", "RESPONSE_FORMAT")
        return parse_json_object(resp.choices[0].message.content)


_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


class StubTextGenerator:
    """Offline generator: builds a summary or a two-host dialogue from the article text embedded in the prompt. No network calls."""

    def __init__(self, max_points: int = 4):
        self.max_points = max_points

    @staticmethod
    def _article(prompt: str) -> str:
        marker = "Article text:"
        idx = prompt.find(marker)
        return prompt[idx + len(marker):].strip() if idx != -1 else prompt.strip()

    async def generate_json(
        self,
        prompt: str,
        schema_description: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        sentences = [s.strip() for s in _SENTENCE_RE.split(self._article(prompt)) if s.strip()]
        points = sentences[: self.max_points] or ["No content."]
        if "segments" in (schema_description or ""):
            speakers = ("Ash", "Jenny")
            segments = [{"speaker": speakers[i % 2], "text": s} for i, s in enumerate(points)]
            return {"title": "Stub Podcast", "segments": segments}
        return {
            "title": "Stub Podcast",
            "summaryPoints": points,
            "keyTopics": [],
            "estimatedDurationMinutes": max(1, len(points) // 2),
        }


def get_text_generator():
    """Return the text generator selected by LLM_PROVIDER."""
    provider = settings.llm_provider
    if provider == "stub":
        return StubTextGenerator()
    if provider == "google-ai":
        from podcaster.llm.google_ai import GoogleAiTextGenerator
        return GoogleAiTextGenerator()
    if provider == "internal":
        from podcaster.llm.internal import InternalTextGenerator
        return InternalTextGenerator()
    return OpenAiTextGenerator()
