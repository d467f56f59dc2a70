"""Async OpenAI client for chat completions and speech (api_key from config)."""
from typing import Any

from podcaster.core.config import settings
from openai import AsyncOpenAI

_openai_client: Any = None


def get_openai_client() -> AsyncOpenAI:
    """Return a singleton AsyncOpenAI client configured with api_key from settings. Used for dialogue/summary generation and speech synthesis.
    Why available: Single place to get the OpenAI client so the text generator and the synthesizer share config and connection pool."""
    global _openai_client
    if _openai_client is None:
        _openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
    return _openai_client
