"""
Console transcript view and status indicator.
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

from rich.console import Console

from ..shared.protocol import Role

logger = logging.getLogger(__name__)


class Status(str, Enum):
    """Status indicator states and the hint shown for each."""
    READY = "Press Enter to start talking"
    RECORDING = "Recording... Press Enter to stop."
    PROCESSING = "Recording stopped. Processing..."
    ERROR = "Error. Press Enter to try again."
    MIC_DENIED = "Microphone access denied."
    CLEARED = "Conversation cleared. Press Enter to start."
    PLAYBACK_FAILED = "Could not play audio. Press Enter to talk."


class StatusIndicator:
    """Holds the current status and renders each change."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()
        self.current = Status.READY

    def set(self, status: Status) -> None:
        self.current = status
        logger.debug("Status -> %s", status.name)
        self._console.print(f"[dim]» {status.value}[/dim]")


class TranscriptView:
    """Ordered record of rendered messages, printed as they arrive."""

    _STYLES = {Role.USER: ("You", "bold cyan"), Role.ASSISTANT: ("Assistant", "bold green")}

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()
        self.messages: List[Tuple[Role, str]] = []

    def add_message(self, role: Role, text: str) -> None:
        self.messages.append((role, text))
        label, style = self._STYLES[role]
        self._console.print(f"[{style}]{label}:[/{style}] ", end="")
        self._console.print(text, markup=False, highlight=False)

    def clear(self) -> None:
        self.messages.clear()
        self._console.clear()

    def __len__(self) -> int:
        return len(self.messages)
