"""
FastAPI gateway exposing the single turn endpoint ``POST /api/chat``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.responses import JSONResponse

from .gateway import TurnGateway
from .llm_client import LLMClient
from .stt.base_stt import BaseSTTEngine
from .stt.factory import create_stt_engine
from ..shared.config import AppConfig
from ..shared.errors import (
    ErrorKind,
    InternalProcessingError,
    MissingAudio,
    VoiceChatError,
)
from ..shared.protocol import history_from_json

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred during the chat process."


def collapse_error(exc: Exception) -> InternalProcessingError:
    """Mask a pipeline failure behind the generic error, keeping its kind for logs."""
    kind = exc.kind if isinstance(exc, VoiceChatError) else ErrorKind.INTERNAL
    return InternalProcessingError(GENERIC_ERROR, cause_kind=kind)


class ChatServer:
    """
    Owns the STT engine, the LLM client and the FastAPI app that
    routes uploaded clips through the TurnGateway.
    """

    def __init__(
        self,
        config: AppConfig,
        stt_engine: Optional[BaseSTTEngine] = None,
        llm_client: Optional[LLMClient] = None,
    ):
        self.config = config
        self.stt = stt_engine or create_stt_engine(config.stt)
        self.llm = llm_client or LLMClient(config.llm)
        self.gateway = TurnGateway(self.stt, self.llm, staging_dir=config.server.staging_dir)
        self.app = FastAPI(title="Voice Chat Gateway", docs_url=None, lifespan=self._lifespan)
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info("Initializing STT engine (%s)...", self.stt.name)
        await self.stt.initialize()
        await self.llm.initialize()
        try:
            yield
        finally:
            await self.stt.close()
            await self.llm.close()
            logger.info("Gateway stopped")

    def _setup_routes(self):
        """Configure FastAPI routes."""

        @self.app.get("/health")
        async def health():
            return {
                "status": "ok",
                "stt_engine": self.stt.name,
                "llm_model": self.config.llm.model,
            }

        @self.app.post("/api/chat")
        async def chat(
            audio: Optional[UploadFile] = File(None),
            history: Optional[str] = Form(None),
        ):
            logger.info("Received a request on /api/chat")
            try:
                data = await audio.read() if audio is not None else b""
                if not data:
                    raise MissingAudio("No audio file uploaded.")
                snapshot = history_from_json(history) if history is not None else []
                result = await self.gateway.handle_turn(
                    data, snapshot, filename=audio.filename or "user_audio.webm"
                )
            except MissingAudio as e:
                logger.error("No audio file received.")
                return JSONResponse(status_code=400, content={"error": str(e)})
            except Exception as e:
                masked = collapse_error(e)
                logger.error(
                    "Chat turn failed [%s]: %s", masked.cause_kind.value, e,
                    exc_info=not isinstance(e, VoiceChatError),
                )
                return JSONResponse(status_code=500, content={"error": str(masked)})

            return {"user": result.user, "bot": result.bot}

    async def start(self):
        """Start the uvicorn server."""
        import uvicorn
        config = uvicorn.Config(
            self.app,
            host=self.config.server.host,
            port=self.config.server.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        logger.info(
            "Gateway starting on http://%s:%d",
            self.config.server.host, self.config.server.port
        )
        await server.serve()


def create_app(
    config: Optional[AppConfig] = None,
    stt_engine: Optional[BaseSTTEngine] = None,
    llm_client: Optional[LLMClient] = None,
) -> FastAPI:
    return ChatServer(config or AppConfig.from_env(), stt_engine, llm_client).app
