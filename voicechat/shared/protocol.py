import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List

from .errors import HistoryInvalid


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        if not isinstance(data, dict):
            raise HistoryInvalid(f"message must be an object, got {type(data).__name__}")
        try:
            role = Role(data.get("role"))
        except ValueError:
            raise HistoryInvalid(f"unknown message role: {data.get('role')!r}") from None
        content = data.get("content")
        if not isinstance(content, str):
            raise HistoryInvalid("message content must be a string")
        return cls(role=role, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


@dataclass(frozen=True)
class TurnResult:
    """The user/assistant text pair produced by one turn. Wire form: ``{user, bot}``."""
    user: str
    bot: str

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "TurnResult":
        """Validate a decoded response body. Raises ValueError on any other shape."""
        if not isinstance(payload, dict):
            raise ValueError("turn result must be a JSON object")
        user = payload.get("user")
        bot = payload.get("bot")
        if not isinstance(user, str) or not isinstance(bot, str):
            raise ValueError("turn result needs string 'user' and 'bot' fields")
        if not user.strip() or not bot.strip():
            raise ValueError("turn result fields must be non-empty")
        return cls(user=user, bot=bot)


@dataclass(frozen=True)
class AudioClip:
    """One finished recording, handed to the orchestrator for upload."""
    data: bytes
    content_type: str = "audio/webm"
    filename: str = "user_audio.webm"

    def __len__(self) -> int:
        return len(self.data)


# ---------------------------------------------------------------------------
# History helpers
# ---------------------------------------------------------------------------

def history_to_json(history: List[Message]) -> str:
    return json.dumps([m.to_dict() for m in history], ensure_ascii=False)


def history_from_json(raw: str) -> List[Message]:
    """Parse a JSON-encoded message array. Raises HistoryInvalid on bad input."""
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise HistoryInvalid(f"history is not valid JSON: {e}") from e
    if not isinstance(parsed, list):
        raise HistoryInvalid("history must be a JSON array")
    return [Message.from_dict(item) for item in parsed]


def is_paired(history: List[Message]) -> bool:
    """True when messages alternate user/assistant and no user message dangles."""
    if len(history) % 2 != 0:
        return False
    return len(paired_prefix(history)) == len(history)


def paired_prefix(history: List[Message]) -> List[Message]:
    """Longest prefix of ``history`` made of complete user/assistant pairs."""
    kept: List[Message] = []
    for i in range(0, len(history) - 1, 2):
        user, assistant = history[i], history[i + 1]
        if user.role is not Role.USER or assistant.role is not Role.ASSISTANT:
            break
        kept.extend((user, assistant))
    return kept
