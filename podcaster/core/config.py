import os
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

load_dotenv()

LLM_PROVIDERS = ("openai", "google-ai", "internal", "stub")
TTS_PROVIDERS = ("openai", "google-cloud", "stub")


class Settings(BaseModel):
    """Application settings loaded from environment: provider selection, provider keys and models, storage roots, per-collaborator timeouts and limits.
    Why available: Single source of configuration so every stage and collaborator uses the same timeouts, paths and model names."""
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    llm_provider: str = os.getenv("LLM_PROVIDER", "openai")
    tts_provider: str = os.getenv("TTS_PROVIDER", "openai")
    chat_model: str = os.getenv("CHAT_MODEL", "gpt-4o")
    tts_model: str = os.getenv("TTS_MODEL", "tts-1")
    google_api_key: str = os.getenv("GOOGLE_API_KEY", "")
    google_model: str = os.getenv("GOOGLE_DEFAULT_MODEL", "gemini-2.0-flash")
    google_tts_language: str = os.getenv("GOOGLE_TTS_LANGUAGE", "en-US")
    internal_token_url: str = os.getenv("INTERNAL_TOKEN_URL", "")
    internal_llm_url: str = os.getenv("INTERNAL_LLM_URL", "")
    internal_auth_header: str = os.getenv("INTERNAL_PROVIDER_AUTH_HEADER", "")
    audio_stitcher: str = os.getenv("AUDIO_STITCHER", "concat")
    ffmpeg_binary: str = os.getenv("FFMPEG_BINARY", "ffmpeg")
    data_root: str = os.getenv("DATA_ROOT", os.path.join(os.getcwd(), "data"))
    temp_root: str = os.getenv("TEMP_ROOT", os.path.join(os.getcwd(), "data", "tmp"))
    audio_base_url: str = os.getenv("AUDIO_BASE_URL", "/podcasts")
    scrape_timeout_seconds: float = float(os.getenv("SCRAPE_TIMEOUT_SECONDS", "15"))
    llm_timeout_seconds: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "120"))
    tts_timeout_seconds: float = float(os.getenv("TTS_TIMEOUT_SECONDS", "60"))
    stitch_timeout_seconds: float = float(os.getenv("STITCH_TIMEOUT_SECONDS", "120"))
    max_article_chars: int = int(os.getenv("MAX_ARTICLE_CHARS", "8000"))
    error_message_max_length: int = int(os.getenv("ERROR_MESSAGE_MAX_LENGTH", "1000"))
    discarded_job_memory: int = int(os.getenv("DISCARDED_JOB_MEMORY", "1000"))
    prompt_version: str = os.getenv("PROMPT_VERSION", "v1")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator(
        "scrape_timeout_seconds",
        "llm_timeout_seconds",
        "tts_timeout_seconds",
        "stitch_timeout_seconds",
        "max_article_chars",
        "error_message_max_length",
        "discarded_job_memory",
    )
    @classmethod
    def must_be_positive(cls, v):
        """Ensure timeouts and size limits are positive. Prevents invalid config from env."""
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("llm_provider")
    @classmethod
    def known_llm_provider(cls, v):
        v = (v or "").strip().lower()
        if v not in LLM_PROVIDERS:
            raise ValueError(f"must be one of {', '.join(LLM_PROVIDERS)}")
        return v

    @field_validator("tts_provider")
    @classmethod
    def known_tts_provider(cls, v):
        v = (v or "").strip().lower()
        if v not in TTS_PROVIDERS:
            raise ValueError(f"must be one of {', '.join(TTS_PROVIDERS)}")
        return v

    @field_validator("audio_stitcher")
    @classmethod
    def known_stitcher(cls, v):
        v = (v or "").strip().lower()
        if v not in ("concat", "ffmpeg"):
            raise ValueError("must be 'concat' or 'ffmpeg'")
        return v


settings = Settings()
