"""Unit tests for voice lookup and the OpenAI and Google Cloud synthesizers."""
import asyncio
import logging
from types import SimpleNamespace

import httpx
import openai
import pytest
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import texttospeech

from podcaster.core.config import settings
from podcaster.core.errors import TtsError
from podcaster.tts.google_cloud import GoogleCloudSynthesizer
from podcaster.tts.synthesizer import OpenAiSynthesizer, StubSynthesizer, get_synthesizer, resolve_voice


@pytest.mark.parametrize(
    "label, voice",
    [
        ("Ash", "Ash"),
        ("  host   1 ", "Ash"),
        ("Speaker A", "Ash"),
        ("JENNY", "Jenny"),
        ("Host B", "Jenny"),
    ],
)
def test_known_speakers(label, voice):
    assert resolve_voice(label) == voice


def test_unknown_speaker_falls_back_to_jenny(caplog):
    with caplog.at_level(logging.WARNING, logger="podcaster.tts.synthesizer"):
        assert resolve_voice("Narrator") == "Jenny"
        assert resolve_voice(None) == "Jenny"
    assert any(r.message == "unknown_speaker_label" for r in caplog.records)


class FakeSpeech:
    def __init__(self, content=b"mp3", error=None, delay=0):
        self.content = content
        self.error = error
        self.delay = delay
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.content)


def _synth(speech, timeout=5):
    client = SimpleNamespace(audio=SimpleNamespace(speech=speech))
    return OpenAiSynthesizer(model="tts-test", timeout_seconds=timeout, client=client)


def test_openai_voice_mapping():
    speech = FakeSpeech()
    assert asyncio.run(_synth(speech).synthesize("hello", "Ash")) == b"mp3"
    assert speech.kwargs["voice"] == "onyx"
    assert speech.kwargs["input"] == "hello"
    assert speech.kwargs["response_format"] == "mp3"

    asyncio.run(_synth(speech).synthesize("hello", "Jenny"))
    assert speech.kwargs["voice"] == "nova"


def test_openai_errors_become_tts_errors():
    request = httpx.Request("POST", "https://api.openai.com/v1/audio/speech")
    with pytest.raises(TtsError):
        asyncio.run(_synth(FakeSpeech(error=openai.APIConnectionError(request=request))).synthesize("x", "Ash"))
    with pytest.raises(TtsError):
        asyncio.run(_synth(FakeSpeech(content=b"")).synthesize("x", "Ash"))
    with pytest.raises(TtsError):
        asyncio.run(_synth(FakeSpeech(delay=1), timeout=0.01).synthesize("x", "Ash"))


def test_stub_synthesizer_is_deterministic():
    stub = StubSynthesizer()
    a = asyncio.run(stub.synthesize("hello", "Ash"))
    assert a == asyncio.run(stub.synthesize("hello", "Ash"))
    assert a != asyncio.run(stub.synthesize("hello", "Jenny"))


class FakeCloudTts:
    def __init__(self, audio=b"mp3", error=None, delay=0):
        self.audio = audio
        self.error = error
        self.delay = delay
        self.kwargs = None

    async def synthesize_speech(self, **kwargs):
        self.kwargs = kwargs
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SimpleNamespace(audio_content=self.audio)


def _cloud(fake, timeout=5):
    return GoogleCloudSynthesizer(language_code="en-US", timeout_seconds=timeout, client=fake)


def test_google_cloud_voice_mapping():
    fake = FakeCloudTts()
    assert asyncio.run(_cloud(fake).synthesize("hello", "Ash")) == b"mp3"
    assert fake.kwargs["input"].text == "hello"
    assert fake.kwargs["voice"].name == "en-US-Standard-D"
    assert fake.kwargs["voice"].language_code == "en-US"
    assert fake.kwargs["audio_config"].audio_encoding == texttospeech.AudioEncoding.MP3

    asyncio.run(_cloud(fake).synthesize("hello", "Jenny"))
    assert fake.kwargs["voice"].name == "en-US-Neural2-F"


def test_google_cloud_errors_become_tts_errors():
    with pytest.raises(TtsError):
        asyncio.run(_cloud(FakeCloudTts(error=api_exceptions.PermissionDenied("no access"))).synthesize("x", "Ash"))
    with pytest.raises(TtsError):
        asyncio.run(_cloud(FakeCloudTts(audio=b"")).synthesize("x", "Ash"))
    with pytest.raises(TtsError):
        asyncio.run(_cloud(FakeCloudTts(delay=1), timeout=0.01).synthesize("x", "Ash"))


def test_google_cloud_missing_credentials_is_tts_error(monkeypatch):
    def no_credentials(*args, **kwargs):
        raise auth_exceptions.DefaultCredentialsError("Could not automatically determine credentials.")

    monkeypatch.setattr(texttospeech, "TextToSpeechAsyncClient", no_credentials)
    with pytest.raises(TtsError) as exc:
        asyncio.run(GoogleCloudSynthesizer(timeout_seconds=1).synthesize("x", "Ash"))
    assert "credentials" in str(exc.value)


@pytest.mark.parametrize(
    "provider, cls",
    [("openai", OpenAiSynthesizer), ("google-cloud", GoogleCloudSynthesizer), ("stub", StubSynthesizer)],
)
def test_tts_provider_selects_synthesizer(monkeypatch, provider, cls):
    monkeypatch.setattr(settings, "tts_provider", provider)
    assert isinstance(get_synthesizer(), cls)
