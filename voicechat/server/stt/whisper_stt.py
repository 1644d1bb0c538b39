"""
Local speech-to-text using faster-whisper.
Runs transcription in a thread executor to avoid blocking the async loop.
"""

import asyncio
import logging

from .base_stt import BaseSTTEngine

logger = logging.getLogger(__name__)


class WhisperSTTEngine(BaseSTTEngine):
    """
    Wraps faster-whisper for non-blocking speech-to-text.
    faster-whisper decodes the staged file itself, so any container
    PyAV understands (webm, wav, ogg) is accepted.
    """
    name = "whisper"

    def __init__(self, config):
        super().__init__(config)
        self._model = None

    async def initialize(self):
        """Load the whisper model (run in executor since it's heavy)."""
        loop = asyncio.get_running_loop()
        self._model = await loop.run_in_executor(None, self._load_model)
        logger.info("Whisper STT engine initialized (model=%s)", self.config.whisper_model)

    def _load_model(self):
        from faster_whisper import WhisperModel
        return WhisperModel(
            self.config.whisper_model,
            device=self.config.whisper_device,
            compute_type=self.config.whisper_compute_type,
        )

    async def transcribe(self, audio_path: str) -> str:
        if self._model is None:
            raise RuntimeError("STT engine not initialized. Call initialize() first.")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._do_transcribe, audio_path)

    def _do_transcribe(self, audio_path: str) -> str:
        """Synchronous transcription (runs in thread pool). Language is auto-detected."""
        segments, info = self._model.transcribe(audio_path, beam_size=5)
        text = "".join(seg.text for seg in segments)
        logger.debug("Detected language: %s", getattr(info, "language", "?"))
        return self._clean_text(text)
