"""
Transcription & response pipeline for one conversational turn.

Stateless per request: the clip is staged to a uniquely named file for the
duration of the transcription call only, and history ownership stays with
the client.
"""

import logging
import os
import re
import tempfile
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .llm_client import LLMClient
from .prompts import SYSTEM_PROMPT
from .stt.base_stt import BaseSTTEngine
from ..shared.errors import (
    GenerationFailed,
    MissingAudio,
    StagingFailed,
    TranscriptionFailed,
)
from ..shared.protocol import Message, TurnResult

logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


def build_prompt(history: List[Message], user_text: str) -> List[Dict[str, str]]:
    """System instruction, then the client's history, then the new user message."""
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages.extend(m.to_dict() for m in history)
    messages.append(Message.user(user_text).to_dict())
    return messages


class TurnGateway:
    """
    Runs transcribe -> contextualize -> generate for one uploaded clip.
    """

    def __init__(
        self,
        stt_engine: BaseSTTEngine,
        llm: LLMClient,
        staging_dir: Optional[str] = None,
    ):
        self.stt = stt_engine
        self.llm = llm
        self.staging_dir = staging_dir or None

    async def handle_turn(
        self,
        audio: Optional[bytes],
        history: List[Message],
        filename: str = "user_audio.webm",
    ) -> TurnResult:
        if not audio:
            raise MissingAudio("No audio file uploaded.")
        logger.info("🎤 Audio clip received (%d bytes)", len(audio))

        user_text = await self._transcribe(audio, filename)
        logger.info("📝 Transcription: %s", user_text[:80])

        try:
            bot_text = await self.llm.complete(build_prompt(history, user_text))
        except GenerationFailed:
            raise
        except Exception as e:
            raise GenerationFailed(f"{type(e).__name__}: {e}") from e
        logger.info("🧠 Reply: %s", bot_text[:80])

        return TurnResult(user=user_text, bot=bot_text)

    async def _transcribe(self, audio: bytes, filename: str) -> str:
        with self._staged(audio, filename) as path:
            try:
                text = await self.stt.transcribe(path)
            except Exception as e:
                raise TranscriptionFailed(f"{type(e).__name__}: {e}") from e
        if not text or not text.strip():
            raise TranscriptionFailed("Transcription returned no text")
        return text.strip()

    @contextmanager
    def _staged(self, audio: bytes, filename: str) -> Iterator[str]:
        """Write the clip to a collision-free path and always remove it afterwards."""
        suffix = "-" + (_UNSAFE_NAME.sub("_", os.path.basename(filename)) or "clip")
        try:
            staged = tempfile.NamedTemporaryFile(
                prefix="turn-", suffix=suffix, dir=self.staging_dir, delete=False
            )
        except OSError as e:
            raise StagingFailed(f"Could not create staging file: {e}") from e

        path = staged.name
        try:
            try:
                with staged:
                    staged.write(audio)
            except OSError as e:
                raise StagingFailed(f"Could not stage clip: {e}") from e
            yield path
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning("Could not remove staged clip %s", path, exc_info=True)
