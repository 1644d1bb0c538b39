"""
Base abstract class for speech-to-text engines.
"""

from abc import ABC, abstractmethod

from ...shared.config import STTConfig


class BaseSTTEngine(ABC):
    """
    Abstract base class for all speech-to-text engines.
    Engines read the clip from a staged file path.
    """
    name = "base"

    def __init__(self, config: STTConfig):
        self.config = config

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize models, API clients, or allocate resources."""
        pass

    @abstractmethod
    async def transcribe(self, audio_path: str) -> str:
        """
        Transcribe the audio file at ``audio_path``.

        Returns:
            The transcribed text. Raises on service failure.
        """
        pass

    async def close(self) -> None:
        """Release clients or models."""
        pass

    def _clean_text(self, text: str) -> str:
        if not text:
            return ""
        return " ".join(text.split())
