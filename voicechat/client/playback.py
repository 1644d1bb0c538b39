"""Speech playback for assistant replies, powered by ``pyttsx3``."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from ..shared.config import PlaybackConfig
from ..shared.errors import PlaybackError
from .ui import Status, StatusIndicator

logger = logging.getLogger(__name__)


def _default_engine_factory() -> Any:
    try:
        import pyttsx3
    except ImportError as exc:  # pragma: no cover - import guard
        raise PlaybackError("Speech playback unavailable. Install pyttsx3.") from exc
    return pyttsx3.init()


class SpeechPlayer:
    """
    Plays at most one utterance at a time; a new ``speak`` pre-empts the
    current one. The engine lives on a single worker thread.
    """

    def __init__(
        self,
        config: PlaybackConfig,
        status: StatusIndicator,
        engine_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._config = config
        self._status = status
        self._engine_factory = engine_factory or _default_engine_factory
        self._engine: Any = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tts")
        self._utterance = 0
        self._current: Optional[asyncio.Future] = None

    @property
    def speaking(self) -> bool:
        return self._current is not None and not self._current.done()

    def speak(self, text: str) -> Optional[asyncio.Future]:
        """Cancel whatever is playing and start speaking ``text``."""
        if not self._config.enabled:
            return None
        normalized = " ".join(text.split())
        if not normalized:
            return None

        self.cancel()
        self._utterance += 1
        utterance = self._utterance

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, self._say, normalized, utterance)
        future.add_done_callback(lambda f: self._on_done(f, utterance))
        self._current = future
        return future

    def cancel(self) -> None:
        """Stop the current utterance, if any. Queued utterances are skipped."""
        self._utterance += 1
        if self.speaking and self._engine is not None:
            try:
                self._engine.stop()
            except Exception as e:
                logger.warning("Could not stop speech playback: %s", e)

    async def voices(self) -> List[Any]:
        """Best-effort voice list; empty when the engine cannot enumerate."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, self._list_voices)
        except Exception as e:
            logger.debug("Voice enumeration failed: %s", e)
            return []

    def close(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False)

    # -- worker thread ------------------------------------------------------

    def _get_engine(self) -> Any:
        if self._engine is None:
            engine = self._engine_factory()
            if self._config.voice_id:
                engine.setProperty("voice", self._config.voice_id)
            if self._config.rate is not None:
                engine.setProperty("rate", self._config.rate)
            if self._config.volume is not None:
                engine.setProperty("volume", max(0.0, min(1.0, self._config.volume)))
            self._engine = engine
        return self._engine

    def _say(self, text: str, utterance: int) -> None:
        if utterance != self._utterance:
            return
        engine = self._get_engine()
        engine.say(text)
        engine.runAndWait()

    def _list_voices(self) -> List[Any]:
        return list(self._get_engine().getProperty("voices") or [])

    # -- loop thread --------------------------------------------------------

    def _on_done(self, future: asyncio.Future, utterance: int) -> None:
        if future.cancelled():
            return
        current = utterance == self._utterance
        exc = future.exception()
        if exc is not None:
            error = exc if isinstance(exc, PlaybackError) else PlaybackError(str(exc))
            logger.error("Speech synthesis error: %s", error)
            if current:
                self._status.set(Status.PLAYBACK_FAILED)
            return
        if current:
            self._status.set(Status.READY)
