"""
Google Cloud Text-to-Speech (TTS_PROVIDER=google-cloud). Credentials come from Application Default Credentials.
"""
import asyncio
import logging
from typing import Dict, Optional

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import texttospeech

from podcaster.core.config import settings
from podcaster.core.errors import TtsError
from podcaster.tts.synthesizer import PRIMARY_VOICE, SECONDARY_VOICE

logger = logging.getLogger(__name__)

GOOGLE_VOICES: Dict[str, str] = {
    PRIMARY_VOICE: "en-US-Standard-D",
    SECONDARY_VOICE: "en-US-Neural2-F",
}


class GoogleCloudSynthesizer:
    """synthesize(text, voice) via Cloud TTS synthesize_speech (MP3). Raises TtsError on credential, API, timeout or empty-audio failures."""

    def __init__(self, language_code: Optional[str] = None, timeout_seconds: Optional[float] = None, client=None):
        self.language_code = language_code or settings.google_tts_language
        self.timeout_seconds = timeout_seconds or settings.tts_timeout_seconds
        self._client = client

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = texttospeech.TextToSpeechAsyncClient()
            except auth_exceptions.DefaultCredentialsError as e:
                raise TtsError(f"Google Cloud credentials are not configured: {e}") from e
        return self._client

    async def synthesize(self, text: str, voice: str) -> bytes:
        voice_name = GOOGLE_VOICES.get(voice, GOOGLE_VOICES[SECONDARY_VOICE])
        try:
            resp = await asyncio.wait_for(
                self.client.synthesize_speech(
                    input=texttospeech.SynthesisInput(text=text),
                    voice=texttospeech.VoiceSelectionParams(language_code=self.language_code, name=voice_name),
                    audio_config=texttospeech.AudioConfig(audio_encoding=texttospeech.AudioEncoding.MP3),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TtsError(f"Speech synthesis exceeded {self.timeout_seconds}s") from e
        except (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise TtsError(f"Speech synthesis failed: {e}") from e

        data = resp.audio_content
        if not data:
            raise TtsError("Speech synthesis returned no audio")
        logger.debug("google_tts_done", extra={"voice": voice_name, "bytes": len(data)})
        return data
