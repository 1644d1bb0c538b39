"""
Turn orchestrator: sequences one conversational turn and keeps the
persisted history paired.
"""

import logging
from typing import List, Optional

from .connection import GatewayClient
from .playback import SpeechPlayer
from .session import ConversationSession
from .storage import HistoryStore
from .ui import Status, StatusIndicator, TranscriptView
from ..shared.errors import NetworkError
from ..shared.protocol import AudioClip, Message, Role, TurnResult

logger = logging.getLogger(__name__)


class TurnOrchestrator:
    """
    Owns the ConversationSession. Every committed turn is appended as a
    user/assistant pair, persisted, then rendered, all before playback starts.
    """

    def __init__(
        self,
        gateway: GatewayClient,
        store: HistoryStore,
        transcript: TranscriptView,
        status: StatusIndicator,
        player: SpeechPlayer,
        history_key: str = "conversationHistory",
        session: Optional[ConversationSession] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.transcript = transcript
        self.status = status
        self.player = player
        self.history_key = history_key
        self.session = session or ConversationSession()

    @property
    def history(self) -> List[Message]:
        return self.session.snapshot()

    def load_history(self) -> List[Message]:
        """Restore the persisted history and render it in order."""
        stored = self.store.load(self.history_key)
        self.session.replace(stored or [])
        for message in self.session.history:
            self.transcript.add_message(message.role, message.content)
        logger.info("Loaded %d message(s) from history", len(self.session))
        return self.session.snapshot()

    def begin_turn(self) -> int:
        """Issue the token for a new recording and stop playback; older in-flight turns become stale."""
        self.player.cancel()
        return self.session.begin_turn()

    def is_current_turn(self, token: int) -> bool:
        return self.session.is_current(token)

    async def submit_turn(self, clip: AudioClip, token: Optional[int] = None) -> Optional[TurnResult]:
        """
        Upload ``clip`` with a snapshot of the current history and commit the
        reply. Returns the result, or None when the turn failed or was
        superseded while in flight.
        """
        if token is None:
            token = self.session.begin_turn()
        snapshot = self.session.snapshot()
        logger.info("📤 Submitting turn %d (%d bytes, %d history messages)", token, len(clip), len(snapshot))

        try:
            result = await self.gateway.send_turn(clip, snapshot)
        except NetworkError as e:
            logger.error("Error sending audio: %s", e)
            if self.session.is_current(token):
                self.status.set(Status.ERROR)
            return None

        if not self.session.is_current(token):
            logger.info("Discarding stale reply for turn %d (current=%d)", token, self.session.generation)
            return None

        return self._commit(result)

    def _commit(self, result: TurnResult) -> Optional[TurnResult]:
        self.session.append_turn(result.user, result.bot)
        try:
            self.store.save(self.history_key, self.session.history)
        except (OSError, ValueError) as e:
            self.session.rollback_turn()
            logger.error("Could not persist conversation history: %s", e)
            self.status.set(Status.ERROR)
            return None

        self.transcript.add_message(Role.USER, result.user)
        self.transcript.add_message(Role.ASSISTANT, result.bot)
        self.status.set(Status.READY)
        self.player.speak(result.bot)
        return result

    def reset_conversation(self) -> None:
        """Clear history, storage and transcript; stop playback; fence in-flight turns."""
        self.session.clear()
        self.store.remove(self.history_key)
        self.transcript.clear()
        self.player.cancel()
        self.status.set(Status.CLEARED)
        logger.info("Conversation reset (generation=%d)", self.session.generation)
