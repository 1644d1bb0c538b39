"""
Factory for creating speech-to-text engines based on configuration.
"""

from .base_stt import BaseSTTEngine
from .openai_stt import OpenAISTTEngine
from ...shared.config import STTConfig


def create_stt_engine(config: STTConfig) -> BaseSTTEngine:
    """
    Instantiate the engine named by ``config.engine_type``.
    """
    engine_type = config.engine_type.lower()

    if engine_type == "openai":
        return OpenAISTTEngine(config)
    elif engine_type == "whisper":
        from .whisper_stt import WhisperSTTEngine
        return WhisperSTTEngine(config)
    else:
        raise ValueError(f"Unknown STT engine type: {engine_type}")
