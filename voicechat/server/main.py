"""
Gateway entry point: python -m voicechat server
"""

import asyncio
import logging

from .app import ChatServer
from ..shared.config import AppConfig

logger = logging.getLogger("VoiceChatServer")


async def main():
    """Load configuration and serve the turn endpoint until interrupted."""
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    server = ChatServer(config)
    try:
        logger.info("🚀 Gateway is up (stt=%s, llm=%s)", server.stt.name, config.llm.model)
        await server.start()
    except asyncio.CancelledError:
        logger.info("Gateway shutting down...")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
