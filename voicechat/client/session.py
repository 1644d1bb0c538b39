"""
Conversation session: the in-memory history plus the turn-generation
counter used to fence stale gateway responses.
"""

from dataclasses import dataclass, field
from typing import List

from ..shared.protocol import Message


@dataclass
class ConversationSession:
    """
    Owned by the TurnOrchestrator for the lifetime of one client session.

    ``generation`` only ever increases. A submission remembers the value it
    was issued under and may commit its result only while that value is
    still current; a reset or a newer recording advances it.
    """
    history: List[Message] = field(default_factory=list)
    generation: int = 0

    def begin_turn(self) -> int:
        self.generation += 1
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation

    def snapshot(self) -> List[Message]:
        return list(self.history)

    def append_turn(self, user_text: str, assistant_text: str) -> None:
        self.history.extend((Message.user(user_text), Message.assistant(assistant_text)))

    def rollback_turn(self) -> None:
        """Drop the most recent pair, used when persisting it failed."""
        del self.history[-2:]

    def replace(self, history: List[Message]) -> None:
        self.history = list(history)

    def clear(self) -> None:
        self.history = []
        self.generation += 1

    def __len__(self) -> int:
        return len(self.history)
