"""
LLM client: async client for OpenAI-compatible chat completion APIs.
"""

import logging
from typing import Dict, List, Optional

import httpx

from ..shared.config import LLMConfig
from ..shared.errors import GenerationFailed

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Non-streaming chat completion client using httpx.
    Returns the assistant message text, or raises GenerationFailed.
    """

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self):
        """Create the HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self.config.timeout, connect=10.0),
            transport=self._transport,
        )
        logger.info("LLM client initialized (model=%s)", self.config.model)

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """
        Send an ordered message sequence and return the single assistant reply.
        """
        if not self._client:
            raise RuntimeError("LLM client not initialized")
        if not self.config.api_key:
            raise GenerationFailed("No LLM API key configured")

        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "stream": False,
        }

        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            raise GenerationFailed(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise GenerationFailed(f"{type(e).__name__}: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationFailed(f"Unexpected completion payload: {e}") from e

        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise GenerationFailed("LLM returned an empty reply")

        logger.info("LLM response completed (%d chars)", len(text))
        return text
