#!/usr/bin/env python3
"""Print effective pipeline settings (providers, models, storage, timeouts, limits). Run from repo root: python scripts/print_settings.py"""
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from podcaster.core.config import settings

# Rate limit is hardcoded in main.py
RATE_LIMIT_REQUESTS = 20
RATE_LIMIT_WINDOW_SECONDS = 60


def _llm_model():
    if settings.llm_provider == "google-ai":
        return settings.google_model
    if settings.llm_provider == "internal":
        return settings.internal_llm_url or "INTERNAL_LLM_URL NOT SET"
    return settings.chat_model


def _tts_detail():
    if settings.tts_provider == "google-cloud":
        return f"language {settings.google_tts_language}"
    return f"model {settings.tts_model}"


def main():
    """Print provider selection, storage roots, collaborator timeouts and size limits. API keys are only reported as set/unset."""
    print("Pipeline settings")
    print("-----------------")
    print(f"  OPENAI_API_KEY          = {'set' if settings.openai_api_key else 'NOT SET'}")
    print(f"  GOOGLE_API_KEY          = {'set' if settings.google_api_key else 'NOT SET'}")
    print(f"  LLM_PROVIDER            = {settings.llm_provider} (model {_llm_model()})")
    print(f"  TTS_PROVIDER            = {settings.tts_provider} ({_tts_detail()})")
    print(f"  AUDIO_STITCHER          = {settings.audio_stitcher} (ffmpeg binary: {settings.ffmpeg_binary})")
    print(f"  DATA_ROOT               = {settings.data_root}")
    print(f"  TEMP_ROOT               = {settings.temp_root}")
    print(f"  AUDIO_BASE_URL          = {settings.audio_base_url}")
    print(f"  Timeouts (s)            = scrape {settings.scrape_timeout_seconds}, llm {settings.llm_timeout_seconds}, "
          f"tts {settings.tts_timeout_seconds}, stitch {settings.stitch_timeout_seconds}")
    print(f"  MAX_ARTICLE_CHARS       = {settings.max_article_chars} (article text sent to the model)")
    print(f"  ERROR_MESSAGE_MAX_LENGTH = {settings.error_message_max_length}")
    print(f"  PROMPT_VERSION          = {settings.prompt_version}")
    print(f"  Rate limit              = {RATE_LIMIT_REQUESTS} submissions / {RATE_LIMIT_WINDOW_SECONDS} s (per caller)")
    print("")
    print("Env: see .env.example")


if __name__ == "__main__":
    main()
