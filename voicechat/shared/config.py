"""
Centralized configuration for the voice chat client and gateway.
All settings loaded from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass
class AudioConfig:
    """Microphone capture configuration."""
    sample_rate: int = 16000
    channels: int = 1
    device_name: str = ""  # empty = default mic


@dataclass
class STTConfig:
    """Speech-to-text service configuration."""
    engine_type: str = "openai"  # "openai" or "whisper"
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "whisper-1"
    timeout: float = 60.0

    # Local faster-whisper specific
    whisper_model: str = "small"
    whisper_device: str = "cpu"  # "cpu" or "cuda"
    whisper_compute_type: str = "int8"


@dataclass
class LLMConfig:
    """Text-generation API configuration."""
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o"
    max_tokens: int = 512
    temperature: float = 0.7
    timeout: float = 60.0


@dataclass
class ServerConfig:
    """HTTP gateway configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    staging_dir: str = ""  # empty = system temp dir


@dataclass
class ClientConfig:
    """Turn orchestrator configuration."""
    server_url: str = "http://localhost:3000"
    storage_dir: str = field(
        default_factory=lambda: os.path.join(os.path.expanduser("~"), ".voicechat")
    )
    history_key: str = "conversationHistory"
    request_timeout: Optional[float] = None  # None = wait as long as the server does


@dataclass
class PlaybackConfig:
    """Speech synthesis configuration."""
    enabled: bool = True
    voice_id: str = ""
    rate: Optional[int] = None
    volume: Optional[float] = None


@dataclass
class AppConfig:
    """Top-level application configuration."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    stt: STTConfig = field(default_factory=STTConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables (including .env file)."""
        load_dotenv()
        config = cls()

        shared_key = os.getenv("OPENAI_API_KEY", "")

        # LLM config
        config.llm.api_key = os.getenv("LLM_API_KEY", shared_key)
        config.llm.base_url = os.getenv("LLM_BASE_URL", config.llm.base_url)
        config.llm.model = os.getenv("LLM_MODEL", config.llm.model)
        max_tokens = os.getenv("LLM_MAX_TOKENS")
        if max_tokens:
            config.llm.max_tokens = int(max_tokens)
        temperature = os.getenv("LLM_TEMPERATURE")
        if temperature:
            config.llm.temperature = float(temperature)

        # STT config (falls back to the LLM endpoint and key)
        config.stt.engine_type = os.getenv("STT_ENGINE", config.stt.engine_type)
        config.stt.api_key = os.getenv("STT_API_KEY", config.llm.api_key)
        config.stt.base_url = os.getenv("STT_BASE_URL", config.llm.base_url)
        config.stt.model = os.getenv("STT_MODEL", config.stt.model)
        config.stt.whisper_model = os.getenv("WHISPER_MODEL", config.stt.whisper_model)
        config.stt.whisper_device = os.getenv("WHISPER_DEVICE", config.stt.whisper_device)

        # Server config
        config.server.host = os.getenv("SERVER_HOST", config.server.host)
        port = os.getenv("SERVER_PORT")
        if port:
            config.server.port = int(port)
        config.server.staging_dir = os.getenv("STAGING_DIR", config.server.staging_dir)

        # Client config
        config.client.server_url = os.getenv("CHAT_SERVER_URL", config.client.server_url)
        config.client.storage_dir = os.getenv("HISTORY_STORAGE_DIR", config.client.storage_dir)
        config.client.history_key = os.getenv("HISTORY_KEY", config.client.history_key)
        timeout = os.getenv("REQUEST_TIMEOUT")
        if timeout:
            config.client.request_timeout = float(timeout)

        # Audio config
        config.audio.device_name = os.getenv("AUDIO_DEVICE", config.audio.device_name)
        sample_rate = os.getenv("SAMPLE_RATE")
        if sample_rate:
            config.audio.sample_rate = int(sample_rate)

        # Playback config
        config.playback.enabled = _env_bool("PLAYBACK_ENABLED", config.playback.enabled)
        config.playback.voice_id = os.getenv("TTS_VOICE", config.playback.voice_id)
        rate = os.getenv("TTS_RATE")
        if rate:
            config.playback.rate = int(rate)
        volume = os.getenv("TTS_VOLUME")
        if volume:
            config.playback.volume = float(volume)

        config.log_level = os.getenv("LOG_LEVEL", config.log_level).upper()
        return config
