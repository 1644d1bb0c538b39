import json
import logging
from typing import List, Optional

import httpx

from ..shared.errors import NetworkError
from ..shared.protocol import AudioClip, Message, TurnResult, history_to_json

logger = logging.getLogger(__name__)


class GatewayClient:
    """Sends one clip plus a history snapshot to the gateway's /api/chat."""

    def __init__(
        self,
        server_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self):
        self._client = httpx.AsyncClient(
            base_url=self.server_url,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )
        logger.info("🔌 Gateway client ready (%s)", self.server_url)

    async def stop(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_turn(self, clip: AudioClip, history: List[Message]) -> TurnResult:
        """
        One request/response round trip. No retries.
        Raises NetworkError on transport failure, non-2xx status or a body
        that is not a ``{user, bot}`` object.
        """
        if not self._client:
            raise RuntimeError("Gateway client not started")

        try:
            response = await self._client.post(
                "/api/chat",
                files={"audio": (clip.filename, clip.data, clip.content_type)},
                data={"history": history_to_json(history)},
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Request failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            raise NetworkError(f"Server error: {response.status_code} {response.reason_phrase}")

        try:
            return TurnResult.from_payload(response.json())
        except (json.JSONDecodeError, ValueError) as e:
            raise NetworkError(f"Malformed turn result: {e}") from e
