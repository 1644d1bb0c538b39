"""
Unit tests for the STT engines with mocked HTTP and mocked faster-whisper.
"""

import asyncio
import os
import sys
from unittest.mock import MagicMock, patch

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from voicechat.server.stt.factory import create_stt_engine
from voicechat.server.stt.openai_stt import OpenAISTTEngine
from voicechat.server.stt.whisper_stt import WhisperSTTEngine
from voicechat.shared.config import STTConfig


def run(coro):
    """Helper to run a coroutine synchronously."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def clip_path(tmp_path):
    path = tmp_path / "turn-abc-user_audio.webm"
    path.write_bytes(b"fake-webm")
    return str(path)


class TestFactory:

    def test_default_is_openai(self):
        assert isinstance(create_stt_engine(STTConfig()), OpenAISTTEngine)

    def test_whisper(self):
        assert isinstance(create_stt_engine(STTConfig(engine_type="Whisper")), WhisperSTTEngine)

    def test_unknown_engine(self):
        with pytest.raises(ValueError):
            create_stt_engine(STTConfig(engine_type="nope"))


class TestOpenAISTTEngine:

    def test_transcribe_posts_file(self, clip_path):
        """The staged file is uploaded with the configured model."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = request.read()
            return httpx.Response(200, json={"text": "  Hello \n"})

        async def _test():
            engine = OpenAISTTEngine(
                STTConfig(api_key="sk-test", base_url="https://stt.test/v1"),
                transport=httpx.MockTransport(handler),
            )
            await engine.initialize()
            try:
                return await engine.transcribe(clip_path)
            finally:
                await engine.close()

        assert run(_test()) == "Hello"
        assert seen["url"] == "https://stt.test/v1/audio/transcriptions"
        assert seen["auth"] == "Bearer sk-test"
        assert b"whisper-1" in seen["body"]
        assert b"fake-webm" in seen["body"]

    def test_http_error_raises(self, clip_path):
        async def _test():
            engine = OpenAISTTEngine(
                STTConfig(api_key="sk-test"),
                transport=httpx.MockTransport(lambda r: httpx.Response(500, json={"error": "x"})),
            )
            await engine.initialize()
            try:
                await engine.transcribe(clip_path)
            finally:
                await engine.close()

        with pytest.raises(httpx.HTTPStatusError):
            run(_test())

    def test_missing_key_raises(self, clip_path):
        async def _test():
            engine = OpenAISTTEngine(STTConfig(api_key=""), transport=httpx.MockTransport(lambda r: None))
            await engine.initialize()
            try:
                await engine.transcribe(clip_path)
            finally:
                await engine.close()

        with pytest.raises(RuntimeError, match="API key"):
            run(_test())

    def test_transcribe_without_init_raises(self, clip_path):
        engine = OpenAISTTEngine(STTConfig(api_key="sk-test"))
        with pytest.raises(RuntimeError, match="not initialized"):
            run(engine.transcribe(clip_path))


class TestWhisperSTTEngine:
    """Tests for the local engine with a mocked WhisperModel."""

    def _make_mock_model(self, text="Hola mundo"):
        mock_model = MagicMock()
        mock_segment = MagicMock()
        mock_segment.text = text
        mock_model.transcribe.return_value = ([mock_segment], MagicMock(language="es"))
        return mock_model

    def test_transcribe_returns_text(self, clip_path):
        async def _test():
            engine = WhisperSTTEngine(STTConfig(engine_type="whisper"))
            mock_model = self._make_mock_model(" Hola mundo")
            with patch.object(engine, '_load_model', return_value=mock_model):
                await engine.initialize()
            text = await engine.transcribe(clip_path)
            assert mock_model.transcribe.call_args[0][0] == clip_path
            return text

        assert run(_test()) == "Hola mundo"

    def test_transcribe_without_init_raises(self, clip_path):
        engine = WhisperSTTEngine(STTConfig(engine_type="whisper"))
        with pytest.raises(RuntimeError, match="not initialized"):
            run(engine.transcribe(clip_path))
