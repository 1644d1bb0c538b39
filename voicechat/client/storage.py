"""
Durable key/value storage for the conversation history.

Each key is one JSON file under the storage directory. Writes go through a
temporary file and an atomic rename so a crash never leaves a torn history.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from ..shared.errors import HistoryInvalid
from ..shared.protocol import Message, history_from_json, history_to_json, is_paired, paired_prefix

logger = logging.getLogger(__name__)


class HistoryStore:
    """Persists one ConversationHistory per named key."""

    def __init__(self, storage_dir: str):
        self.storage_dir = Path(storage_dir).expanduser()

    def _path(self, key: str) -> Path:
        return self.storage_dir / f"{key}.json"

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def load(self, key: str) -> Optional[List[Message]]:
        """
        Return the stored history, or None when the key is absent.
        Unreadable content loads as an empty history; a history with a
        dangling or misordered tail is cut back to its complete pairs.
        """
        path = self._path(key)
        if not path.exists():
            return None
        try:
            history = history_from_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, HistoryInvalid) as e:
            logger.warning("Stored history %s is unreadable, starting empty: %s", path, e)
            return []

        kept = paired_prefix(history)
        if len(kept) != len(history):
            logger.warning(
                "Stored history %s had %d unpaired message(s); keeping %d",
                path, len(history) - len(kept), len(kept),
            )
        return kept

    def save(self, key: str, history: List[Message]) -> None:
        """Persist ``history`` under ``key``. Unpaired histories are refused."""
        if not is_paired(history):
            raise ValueError("Refusing to persist a history with unpaired messages")

        self.storage_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{key}-", suffix=".tmp", dir=self.storage_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(history_to_json(history))
            os.replace(tmp_path, self._path(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
