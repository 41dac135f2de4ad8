"""
JSON file cursor store so a single worker resumes where it stopped.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .base import DataError, StorageBase
from .memory import MemoryCursorStore

logger = logging.getLogger(__name__)


class FileCursorStore(StorageBase, MemoryCursorStore):
    """
    Cursor kept in memory and mirrored to a JSON file on every successful claim.

    The file is written before the in-memory value moves, so a failed write
    leaves the claim unmade and the cursor where it was.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the file cursor store.

        Args:
            config: Configuration with keys:
                - base_path: Directory holding the cursor file (default: ./data)
                - filename: Cursor file name (default: next_block.json)
        """
        StorageBase.__init__(self, config)
        MemoryCursorStore.__init__(self)
        self.base_path = Path(config.get("base_path", "./data"))
        self.filename = config.get("filename", "next_block.json")

    @property
    def path(self) -> Path:
        return self.base_path / self.filename

    async def connect(self) -> None:
        """Create the directory and load a previously saved cursor."""
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._value = self._load()
        self.is_connected = True
        if self._value is None:
            logger.info(f"No saved cursor at {self.path}, starting fresh")
        else:
            logger.info(f"Resuming from block {self._value} saved at {self.path}")

    async def disconnect(self) -> None:
        """No-op; every claim is already on disk."""
        self.is_connected = False

    def _load(self):
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            value = data["next_block"]
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"next_block is not an integer: {value!r}")
            return value
        except (ValueError, KeyError, TypeError) as e:
            raise DataError(f"Corrupt cursor file {self.path}: {e}")

    def _store(self, value: int) -> None:
        # Atomic write with temporary file
        temp_path = self.path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump({"next_block": value}, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save cursor to {self.path}: {e}")
            raise DataError(f"Cursor save failed: {e}")
        self._value = value
