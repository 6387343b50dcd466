"""Runtime configuration helpers for the marketplace service."""

from __future__ import annotations

import os
from dataclasses import dataclass

_BOOL_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _BOOL_TRUTHY


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class OpenAISettings:
    api_key: str | None
    organization: str | None
    base_url: str | None


@dataclass(frozen=True)
class LLMSettings:
    enabled: bool
    model: str
    chat_temperature: float
    extraction_temperature: float
    extraction_max_tokens: int
    timeout: float


@dataclass(frozen=True)
class AsrSettings:
    provider: str
    model: str
    max_bytes: int
    timeout: float


@dataclass(frozen=True)
class TtsSettings:
    provider: str
    model: str
    voice: str
    response_format: str
    edge_voice: str
    edge_rate: str
    edge_volume: str


@dataclass(frozen=True)
class BackendSettings:
    provider: str
    url: str | None
    service_key: str | None
    timeout: float
    search_limit: int
    browse_limit: int


@dataclass(frozen=True)
class CaptureSettings:
    sample_rate: int
    channels: int
    device: str | None


@dataclass(frozen=True)
class ServiceSettings:
    base_url: str
    api_key: str | None
    timeout: float
    cors_origins: tuple[str, ...]
    log_level: str
    log_file: str | None


@dataclass(frozen=True)
class Settings:
    openai: OpenAISettings
    llm: LLMSettings
    asr: AsrSettings
    tts: TtsSettings
    backend: BackendSettings
    capture: CaptureSettings
    service: ServiceSettings


def load_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""

    openai_settings = OpenAISettings(
        api_key=os.getenv("OPENAI_API_KEY"),
        organization=os.getenv("OPENAI_ORG_ID"),
        base_url=os.getenv("OPENAI_BASE_URL"),
    )

    llm_settings = LLMSettings(
        enabled=_env_bool("ENABLE_REAL_LLM", False),
        model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
        chat_temperature=_env_float("LLM_CHAT_TEMPERATURE", 0.7),
        extraction_temperature=_env_float("LLM_EXTRACTION_TEMPERATURE", 0.3),
        extraction_max_tokens=_env_int("LLM_EXTRACTION_MAX_TOKENS", 500),
        timeout=_env_float("LLM_REQUEST_TIMEOUT", 30.0),
    )

    asr_settings = AsrSettings(
        provider=os.getenv("ASR_PROVIDER", "mock"),
        model=os.getenv("ASR_MODEL", "whisper-1"),
        max_bytes=_env_int("ASR_MAX_BYTES", 10 * 1024 * 1024),
        timeout=_env_float("ASR_REQUEST_TIMEOUT", 60.0),
    )

    tts_settings = TtsSettings(
        provider=os.getenv("TTS_PROVIDER", "mock"),
        model=os.getenv("TTS_MODEL", "tts-1"),
        voice=os.getenv("TTS_VOICE", "alloy"),
        response_format=os.getenv("TTS_RESPONSE_FORMAT", "mp3"),
        edge_voice=os.getenv("EDGE_TTS_VOICE", "en-NG-EzinneNeural"),
        edge_rate=os.getenv("EDGE_TTS_RATE", "+0%"),
        edge_volume=os.getenv("EDGE_TTS_VOLUME", "+0%"),
    )

    backend_settings = BackendSettings(
        provider=os.getenv("BACKEND_PROVIDER", "memory"),
        url=os.getenv("SUPABASE_URL"),
        service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        timeout=_env_float("BACKEND_REQUEST_TIMEOUT", 10.0),
        search_limit=_env_int("SEARCH_LIMIT", 20),
        browse_limit=_env_int("BROWSE_LIMIT", 50),
    )

    capture_settings = CaptureSettings(
        sample_rate=_env_int("CAPTURE_SAMPLE_RATE", 16000),
        channels=_env_int("CAPTURE_CHANNELS", 1),
        device=os.getenv("CAPTURE_DEVICE"),
    )

    origins = tuple(
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    )
    service_settings = ServiceSettings(
        base_url=os.getenv("SAKANKA_BASE_URL", "http://localhost:8100"),
        api_key=os.getenv("SAKANKA_API_KEY"),
        timeout=_env_float("SAKANKA_REQUEST_TIMEOUT", 90.0),
        cors_origins=origins or ("*",),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
    )

    return Settings(
        openai=openai_settings,
        llm=llm_settings,
        asr=asr_settings,
        tts=tts_settings,
        backend=backend_settings,
        capture=capture_settings,
        service=service_settings,
    )


settings = load_settings()

__all__ = [
    "Settings",
    "OpenAISettings",
    "LLMSettings",
    "AsrSettings",
    "TtsSettings",
    "BackendSettings",
    "CaptureSettings",
    "ServiceSettings",
    "settings",
    "load_settings",
]
