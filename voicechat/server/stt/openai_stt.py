"""
Speech-to-text through an OpenAI-compatible ``/audio/transcriptions`` endpoint.
"""

import logging
import mimetypes
import os
from typing import Optional

import httpx

from .base_stt import BaseSTTEngine
from ...shared.config import STTConfig

logger = logging.getLogger(__name__)


class OpenAISTTEngine(BaseSTTEngine):
    """
    Uploads the staged clip with httpx and returns the transcript text.
    """
    name = "openai"

    def __init__(self, config: STTConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Create the HTTP client."""
        if not self.config.api_key:
            logger.warning("STT API key is not set. Transcription will fail.")
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            timeout=httpx.Timeout(self.config.timeout, connect=10.0),
            transport=self._transport,
        )
        logger.info("OpenAI STT engine initialized (model=%s)", self.config.model)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def transcribe(self, audio_path: str) -> str:
        if not self._client:
            raise RuntimeError("STT engine not initialized. Call initialize() first.")
        if not self.config.api_key:
            raise RuntimeError("STT API key not configured")

        filename = os.path.basename(audio_path)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        with open(audio_path, "rb") as f:
            audio_bytes = f.read()

        response = await self._client.post(
            "/audio/transcriptions",
            data={"model": self.config.model},
            files={"file": (filename, audio_bytes, content_type)},
        )
        response.raise_for_status()
        data = response.json()
        return self._clean_text(data.get("text", ""))
