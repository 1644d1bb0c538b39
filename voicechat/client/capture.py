"""
Microphone capture controller.
Records from an input device between start/stop, finalizes the buffered
chunks into one WAV clip and hands it to the turn orchestrator.
"""

import asyncio
import io
import logging
from enum import Enum
from typing import Any, Callable, List, Optional

import numpy as np
import soundfile as sf

from ..shared.config import AudioConfig
from ..shared.errors import DeviceUnavailable
from ..shared.protocol import AudioClip
from .orchestrator import TurnOrchestrator
from .ui import Status, StatusIndicator

logger = logging.getLogger(__name__)

# callback(indata, frames, time_info, status) -> stream with start()/stop()/close()
StreamFactory = Callable[[AudioConfig, Callable[..., None]], Any]


class CaptureState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"


def _sounddevice_stream(config: AudioConfig, callback: Callable[..., None]) -> Any:
    import sounddevice as sd

    device_idx = None
    if config.device_name:
        for i, d in enumerate(sd.query_devices()):
            if config.device_name.lower() in d["name"].lower() and d["max_input_channels"] > 0:
                device_idx = i
                logger.info("Using audio device: %s (idx=%d)", d["name"], i)
                break
        if device_idx is None:
            logger.warning("Device '%s' not found, using default", config.device_name)

    return sd.InputStream(
        samplerate=config.sample_rate,
        device=device_idx,
        channels=config.channels,
        dtype="float32",
        callback=callback,
    )


class CaptureController:
    """
    Idle -> Recording -> Processing -> Idle.

    A new recording may start while the previous clip is still being
    processed; the orchestrator's turn token decides which reply wins.
    """

    def __init__(
        self,
        config: AudioConfig,
        orchestrator: TurnOrchestrator,
        status: StatusIndicator,
        stream_factory: Optional[StreamFactory] = None,
    ):
        self.config = config
        self.orchestrator = orchestrator
        self.status = status
        self._stream_factory = stream_factory or _sounddevice_stream

        self.state = CaptureState.IDLE
        self._chunks: List[np.ndarray] = []
        self._stream: Any = None
        self._token: Optional[int] = None
        self._pending: Optional[asyncio.Task] = None

    def _on_audio(self, indata, frames, time_info, status):
        if status:
            logger.warning("Audio status: %s", status)
        self._chunks.append(indata.copy())

    async def start_capture(self) -> None:
        """Open the microphone and begin buffering. Raises DeviceUnavailable."""
        if self.state == CaptureState.RECORDING:
            raise RuntimeError("Already recording")

        try:
            self._stream = self._stream_factory(self.config, self._on_audio)
            self._stream.start()
        except Exception as e:
            logger.error("Error accessing microphone: %s", e)
            self._close_stream()
            self.status.set(Status.MIC_DENIED)
            raise DeviceUnavailable(str(e)) from e

        self._chunks = []
        self._token = self.orchestrator.begin_turn()
        self.state = CaptureState.RECORDING
        self.status.set(Status.RECORDING)
        logger.info("🎙️  Recording started (turn %d)", self._token)

    async def stop_capture(self) -> Optional[asyncio.Task]:
        """
        Finalize the recording and schedule its submission.
        Returns the submission task, or None when nothing was recorded.
        """
        if self.state != CaptureState.RECORDING:
            raise RuntimeError("stop_capture() is only valid while recording")

        self._close_stream()
        chunks, self._chunks = self._chunks, []
        token = self._token

        if not chunks:
            logger.warning("Recording stopped with no audio captured")
            self.state = CaptureState.IDLE
            self.status.set(Status.READY)
            return None

        if not self.orchestrator.is_current_turn(token):
            # conversation was reset while recording
            logger.info("Dropping recording for superseded turn %d", token)
            self.state = CaptureState.IDLE
            self.status.set(Status.READY)
            return None

        clip = self._encode(chunks)
        self.state = CaptureState.PROCESSING
        self.status.set(Status.PROCESSING)
        logger.info("🎤 Recording stopped (%d bytes)", len(clip))

        task = asyncio.create_task(self.orchestrator.submit_turn(clip, token))
        task.add_done_callback(self._on_submitted)
        self._pending = task
        return task

    async def toggle(self) -> Optional[asyncio.Task]:
        """Start when not recording, stop when recording."""
        if self.state == CaptureState.RECORDING:
            return await self.stop_capture()
        await self.start_capture()
        return None

    async def abort_capture(self) -> None:
        """Discard an active recording without submitting it."""
        if self.state != CaptureState.RECORDING:
            return
        self._close_stream()
        self._chunks = []
        self.state = CaptureState.IDLE
        logger.info("Recording discarded")

    async def close(self) -> None:
        self._close_stream()
        self._chunks = []
        if self.state == CaptureState.RECORDING:
            self.state = CaptureState.IDLE

    def _on_submitted(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Turn submission crashed: %s", task.exception())
            self.status.set(Status.ERROR)
        if task is self._pending and self.state == CaptureState.PROCESSING:
            self.state = CaptureState.IDLE
            # a discarded reply sets no status of its own
            if self.status.current is Status.PROCESSING:
                self.status.set(Status.READY)

    def _close_stream(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as e:
            logger.warning("Error closing input stream: %s", e)
        self._stream = None

    def _encode(self, chunks: List[np.ndarray]) -> AudioClip:
        """Concatenate float32 chunks and encode them as 16-bit WAV in memory."""
        audio = np.concatenate(chunks)
        with io.BytesIO() as wav_io:
            sf.write(wav_io, audio, self.config.sample_rate, format="WAV", subtype="PCM_16")
            data = wav_io.getvalue()
        return AudioClip(data=data, content_type="audio/wav", filename="user_audio.wav")
