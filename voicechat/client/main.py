"""
Console client entry point: python -m voicechat client

Enter toggles recording, ``r`` resets the conversation, ``q`` quits.
"""

import asyncio
import logging

from rich.console import Console

from .capture import CaptureController
from .connection import GatewayClient
from .orchestrator import TurnOrchestrator
from .playback import SpeechPlayer
from .storage import HistoryStore
from .ui import StatusIndicator, TranscriptView
from ..shared.config import AppConfig
from ..shared.errors import DeviceUnavailable

logger = logging.getLogger("VoiceChatClient")


async def main():
    """Wire the client components and run the keyboard loop."""
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    console = Console()
    status = StatusIndicator(console)
    transcript = TranscriptView(console)
    player = SpeechPlayer(config.playback, status)
    gateway = GatewayClient(config.client.server_url, timeout=config.client.request_timeout)
    orchestrator = TurnOrchestrator(
        gateway=gateway,
        store=HistoryStore(config.client.storage_dir),
        transcript=transcript,
        status=status,
        player=player,
        history_key=config.client.history_key,
    )
    capture = CaptureController(config.audio, orchestrator, status)

    await gateway.start()
    orchestrator.load_history()
    if config.playback.enabled:
        voices = await player.voices()
        logger.debug("%d synthesis voice(s) available", len(voices))
    status.set(status.current)

    loop = asyncio.get_running_loop()
    try:
        while True:
            command = (await loop.run_in_executor(None, input)).strip().lower()
            if command == "q":
                break
            if command == "r":
                await capture.abort_capture()
                orchestrator.reset_conversation()
                continue
            try:
                await capture.toggle()
            except DeviceUnavailable:
                continue
    except (EOFError, asyncio.CancelledError):
        pass
    finally:
        logger.info("Stopping client...")
        await capture.close()
        player.close()
        await gateway.stop()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
