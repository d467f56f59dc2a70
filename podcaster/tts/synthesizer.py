"""
Speech synthesis collaborator: one dialogue segment's text in, encoded audio bytes out.
"""
import asyncio
import hashlib
import logging
from typing import Dict, Optional

import openai

from podcaster.core.config import settings
from podcaster.core.errors import TtsError
from podcaster.core.openai_client import get_openai_client

logger = logging.getLogger(__name__)

PRIMARY_VOICE = "Ash"
SECONDARY_VOICE = "Jenny"

# Speaker labels the dialogue prompt may produce, lowercased.
SPEAKER_VOICES: Dict[str, str] = {
    "ash": PRIMARY_VOICE,
    "host 1": PRIMARY_VOICE,
    "host a": PRIMARY_VOICE,
    "speaker a": PRIMARY_VOICE,
    "jenny": SECONDARY_VOICE,
    "host 2": SECONDARY_VOICE,
    "host b": SECONDARY_VOICE,
    "speaker b": SECONDARY_VOICE,
}

OPENAI_VOICES: Dict[str, str] = {
    PRIMARY_VOICE: "onyx",
    SECONDARY_VOICE: "nova",
}


def resolve_voice(speaker: Optional[str]) -> str:
    """Map a dialogue speaker label to a voice name (case-insensitive). Unknown labels fall back to the secondary voice and are logged.
    Why available: The dialogue model does not always use the exact host names; a label mismatch must not fail the job."""
    key = " ".join((speaker or "").lower().split())
    voice = SPEAKER_VOICES.get(key)
    if voice is None:
        logger.warning("unknown_speaker_label", extra={"speaker": speaker, "voice": SECONDARY_VOICE})
        return SECONDARY_VOICE
    return voice


class OpenAiSynthesizer:
    """synthesize(text, voice) via OpenAI speech (mp3). Raises TtsError on API failure, timeout or empty audio."""

    def __init__(self, model: Optional[str] = None, timeout_seconds: Optional[float] = None, client=None):
        self.model = model or settings.tts_model
        self.timeout_seconds = timeout_seconds or settings.tts_timeout_seconds
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not settings.openai_api_key:
                raise TtsError("OPENAI_API_KEY is not set")
            self._client = get_openai_client()
        return self._client

    async def synthesize(self, text: str, voice: str) -> bytes:
        provider_voice = OPENAI_VOICES.get(voice, OPENAI_VOICES[SECONDARY_VOICE])
        try:
            resp = await asyncio.wait_for(
                self.client.audio.speech.create(
                    model=self.model,
                    voice=provider_voice,
                    input=text,
                    response_format="mp3",
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TtsError(f"Speech synthesis exceeded {self.timeout_seconds}s") from e
        except openai.OpenAIError as e:
            raise TtsError(f"Speech synthesis failed: {e}") from e

        data = resp.content
        if not data:
            raise TtsError("Speech synthesis returned no audio")
        return data


class StubSynthesizer:
    """Offline synthesizer: returns a short deterministic byte string per (voice, text). Not playable audio."""

    async def synthesize(self, text: str, voice: str) -> bytes:
        digest = hashlib.sha1(f"{voice}:{text}".encode("utf-8")).hexdigest()
        return f"[{voice}:{digest[:12]}]".encode("ascii")


def get_synthesizer():
    """Return the synthesizer selected by TTS_PROVIDER."""
    if settings.tts_provider == "stub":
        return StubSynthesizer()
    if settings.tts_provider == "google-cloud":
        from podcaster.tts.google_cloud import GoogleCloudSynthesizer
        return GoogleCloudSynthesizer()
    return OpenAiSynthesizer()
