"""
Error taxonomy shared by the client and the gateway.

Every error carries an ``ErrorKind`` tag so failures stay diagnosable in
logs even where the wire contract reports them uniformly.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    DEVICE = "device"
    NETWORK = "network"
    MISSING_AUDIO = "missing_audio"
    STAGING = "staging"
    TRANSCRIPTION = "transcription"
    GENERATION = "generation"
    HISTORY = "history"
    PLAYBACK = "playback"
    INTERNAL = "internal"


class VoiceChatError(Exception):
    """Base class for all pipeline errors."""
    kind: ErrorKind = ErrorKind.INTERNAL


class DeviceUnavailable(VoiceChatError):
    """Microphone permission denied or no input device present."""
    kind = ErrorKind.DEVICE


class NetworkError(VoiceChatError):
    """Gateway request failed or returned a malformed turn result."""
    kind = ErrorKind.NETWORK


class MissingAudio(VoiceChatError):
    """Request carried no audio payload."""
    kind = ErrorKind.MISSING_AUDIO


class StagingFailed(VoiceChatError):
    """The clip could not be written to its staging location."""
    kind = ErrorKind.STAGING


class TranscriptionFailed(VoiceChatError):
    kind = ErrorKind.TRANSCRIPTION


class GenerationFailed(VoiceChatError):
    kind = ErrorKind.GENERATION


class HistoryInvalid(VoiceChatError):
    """Conversation history payload is not a list of role/content messages."""
    kind = ErrorKind.HISTORY


class PlaybackError(VoiceChatError):
    kind = ErrorKind.PLAYBACK


class InternalProcessingError(VoiceChatError):
    """
    Server-side catch-all reported to clients without detail.
    ``cause_kind`` keeps the tag of the masked failure for logging.
    """
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, cause_kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.cause_kind = cause_kind or ErrorKind.INTERNAL
