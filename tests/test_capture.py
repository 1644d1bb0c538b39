"""
Unit tests for the CaptureController state machine with a fake input stream.
"""

import asyncio
import io
import os
import sys

import numpy as np
import pytest
from rich.console import Console

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from voicechat.client.capture import CaptureController, CaptureState
from voicechat.client.orchestrator import TurnOrchestrator
from voicechat.client.storage import HistoryStore
from voicechat.client.ui import Status, StatusIndicator, TranscriptView
from voicechat.shared.config import AudioConfig
from voicechat.shared.errors import DeviceUnavailable
from voicechat.shared.protocol import TurnResult


def run(coro):
    """Helper to run a coroutine synchronously."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeStream:
    def __init__(self, callback, start_error=None):
        self.callback = callback
        self.start_error = start_error
        self.started = False
        self.closed = False

    def start(self):
        if self.start_error:
            raise self.start_error
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True

    def feed(self, frames=1600):
        chunk = np.full((frames, 1), 0.25, dtype=np.float32)
        self.callback(chunk, frames, None, None)


class FakeStreamFactory:
    def __init__(self, error=None, start_error=None):
        self.error = error
        self.start_error = start_error
        self.streams = []

    def __call__(self, config, callback):
        if self.error:
            raise self.error
        stream = FakeStream(callback, self.start_error)
        self.streams.append(stream)
        return stream


class FakeOrchestrator:
    def __init__(self):
        self.generation = 0
        self.submitted = []

    def begin_turn(self):
        self.generation += 1
        return self.generation

    def is_current_turn(self, token):
        return token == self.generation

    async def submit_turn(self, clip, token=None):
        self.submitted.append((clip, token))
        return None


def _controller(factory=None, orchestrator=None):
    status = StatusIndicator(Console(file=io.StringIO()))
    return CaptureController(
        AudioConfig(),
        orchestrator or FakeOrchestrator(),
        status,
        stream_factory=factory or FakeStreamFactory(),
    )


class TestCaptureController:

    def test_start_enters_recording(self):
        factory = FakeStreamFactory()
        ctl = _controller(factory)
        run(ctl.start_capture())

        assert ctl.state == CaptureState.RECORDING
        assert ctl.status.current is Status.RECORDING
        assert factory.streams[0].started
        assert ctl.orchestrator.generation == 1

    def test_device_failure_stays_idle(self):
        """A denied microphone reports MIC_DENIED and leaves the controller idle."""
        ctl = _controller(FakeStreamFactory(error=OSError("permission denied")))

        with pytest.raises(DeviceUnavailable):
            run(ctl.start_capture())

        assert ctl.state == CaptureState.IDLE
        assert ctl.status.current is Status.MIC_DENIED
        assert ctl.orchestrator.generation == 0

    def test_double_start_is_rejected(self):
        ctl = _controller()
        run(ctl.start_capture())
        with pytest.raises(RuntimeError):
            run(ctl.start_capture())

    def test_stop_without_recording_is_rejected(self):
        ctl = _controller()
        with pytest.raises(RuntimeError):
            run(ctl.stop_capture())

    def test_stop_submits_wav_clip(self):
        factory = FakeStreamFactory()
        ctl = _controller(factory)

        async def _test():
            await ctl.start_capture()
            factory.streams[0].feed()
            factory.streams[0].feed()
            task = await ctl.stop_capture()
            assert ctl.state == CaptureState.PROCESSING
            assert ctl.status.current is Status.PROCESSING
            await task
            await asyncio.sleep(0)

        run(_test())

        clip, token = ctl.orchestrator.submitted[0]
        assert token == 1
        assert clip.content_type == "audio/wav"
        assert clip.filename == "user_audio.wav"
        assert clip.data[:4] == b"RIFF"
        assert clip.data[8:12] == b"WAVE"
        assert factory.streams[0].closed
        assert ctl.state == CaptureState.IDLE

    def test_empty_recording_is_not_submitted(self):
        ctl = _controller()

        async def _test():
            await ctl.start_capture()
            return await ctl.stop_capture()

        assert run(_test()) is None
        assert ctl.orchestrator.submitted == []
        assert ctl.state == CaptureState.IDLE
        assert ctl.status.current is Status.READY

    def test_new_recording_while_processing(self):
        """Starting again during processing issues a newer turn token."""
        factory = FakeStreamFactory()
        ctl = _controller(factory)

        async def _test():
            await ctl.start_capture()
            factory.streams[0].feed()
            first = await ctl.stop_capture()
            await ctl.start_capture()
            assert ctl.state == CaptureState.RECORDING
            await first
            await asyncio.sleep(0)

        run(_test())

        assert ctl.orchestrator.generation == 2
        assert ctl.orchestrator.submitted[0][1] == 1
        assert ctl.state == CaptureState.RECORDING

    def test_toggle(self):
        factory = FakeStreamFactory()
        ctl = _controller(factory)

        async def _test():
            assert await ctl.toggle() is None
            assert ctl.state == CaptureState.RECORDING
            factory.streams[0].feed()
            task = await ctl.toggle()
            await task
            await asyncio.sleep(0)

        run(_test())
        assert len(ctl.orchestrator.submitted) == 1
        assert ctl.state == CaptureState.IDLE

    def test_start_failure_closes_stream(self):
        """A stream that opens but fails to start is released."""
        factory = FakeStreamFactory(start_error=RuntimeError("PortAudio error"))
        ctl = _controller(factory)

        with pytest.raises(DeviceUnavailable):
            run(ctl.start_capture())

        assert factory.streams[0].closed
        assert ctl.state == CaptureState.IDLE
        assert ctl.status.current is Status.MIC_DENIED

    def test_discarded_submission_returns_to_ready(self):
        """A submission that commits nothing still leaves a ready hint."""
        factory = FakeStreamFactory()
        ctl = _controller(factory)

        async def _test():
            await ctl.start_capture()
            factory.streams[0].feed()
            task = await ctl.stop_capture()
            await task
            await asyncio.sleep(0)

        run(_test())
        assert ctl.state == CaptureState.IDLE
        assert ctl.status.current is Status.READY

    def test_abort_discards_recording(self):
        factory = FakeStreamFactory()
        ctl = _controller(factory)

        async def _test():
            await ctl.start_capture()
            factory.streams[0].feed()
            await ctl.abort_capture()

        run(_test())
        assert factory.streams[0].closed
        assert ctl.state == CaptureState.IDLE
        assert ctl.orchestrator.submitted == []


class FakeGateway:
    def __init__(self):
        self.sent = []

    async def send_turn(self, clip, history):
        self.sent.append((clip, history))
        return TurnResult(user="Hello", bot="Hi there")


class FakePlayer:
    def __init__(self):
        self.spoken = []
        self.cancelled = 0

    def speak(self, text):
        self.spoken.append(text)

    def cancel(self):
        self.cancelled += 1


class TestResetWhileRecording:
    """Capture controller wired to a real TurnOrchestrator."""

    def _wire(self, tmp_path):
        console = Console(file=io.StringIO())
        status = StatusIndicator(console)
        gateway = FakeGateway()
        orch = TurnOrchestrator(
            gateway=gateway,
            store=HistoryStore(str(tmp_path)),
            transcript=TranscriptView(console),
            status=status,
            player=FakePlayer(),
        )
        factory = FakeStreamFactory()
        ctl = CaptureController(AudioConfig(), orch, status, stream_factory=factory)
        return ctl, orch, gateway, factory

    def test_stop_after_reset_drops_clip(self, tmp_path):
        """Resetting mid-recording leaves nothing in flight and the UI ready."""
        ctl, orch, gateway, factory = self._wire(tmp_path)

        async def _test():
            await ctl.start_capture()
            orch.reset_conversation()
            factory.streams[0].feed()
            return await ctl.stop_capture()

        assert run(_test()) is None
        assert gateway.sent == []
        assert orch.history == []
        assert ctl.state == CaptureState.IDLE
        assert ctl.status.current is Status.READY

    def test_abort_then_reset(self, tmp_path):
        ctl, orch, gateway, factory = self._wire(tmp_path)

        async def _test():
            await ctl.start_capture()
            factory.streams[0].feed()
            await ctl.abort_capture()
            orch.reset_conversation()
            await ctl.start_capture()

        run(_test())
        assert factory.streams[0].closed
        assert ctl.state == CaptureState.RECORDING
        assert gateway.sent == []

    def test_reset_while_processing_keeps_cleared_hint(self, tmp_path):
        ctl, orch, gateway, factory = self._wire(tmp_path)

        async def _test():
            await ctl.start_capture()
            factory.streams[0].feed()
            task = await ctl.stop_capture()
            orch.reset_conversation()
            result = await task
            await asyncio.sleep(0)
            return result

        assert run(_test()) is None
        assert orch.history == []
        assert ctl.state == CaptureState.IDLE
        assert ctl.status.current is Status.CLEARED

    def test_new_recording_stops_playback(self, tmp_path):
        ctl, orch, gateway, factory = self._wire(tmp_path)
        run(ctl.start_capture())
        assert orch.player.cancelled == 1
