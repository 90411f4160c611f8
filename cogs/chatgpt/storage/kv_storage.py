"""
File-backed key-value storage.

Holds a flat ``{key: str}`` mapping in memory and mirrors it to a JSON file.
"""

import json
import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional

from ..exceptions import StorageException

logger = logging.getLogger(__name__)


class KeyValueStore:
    """String key-value store persisted as a JSON document."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._data: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._load_from_disk()

    def _load_from_disk(self) -> None:
        if not self.path.exists():
            logger.debug(f"No storage file at {self.path}, starting fresh")
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageException(f"Failed to read {self.path}: {e}")

        if not isinstance(data, dict):
            raise StorageException(f"{self.path} does not contain a JSON object")

        self._data = {str(k): str(v) for k, v in data.items()}
        logger.info(f"Loaded {len(self._data)} keys from {self.path}")

    def _write(self, snapshot: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to temp file first, then rename
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2)
        temp_path.replace(self.path)

    async def _save_to_disk(self) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, dict(self._data))
            except OSError as e:
                raise StorageException(f"Failed to write {self.path}: {e}")

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value
        await self._save_to_disk()

    async def set_if_not_exists(self, key: str, default: str) -> bool:
        """
        Store ``default`` under ``key`` unless a value is already present.

        Returns:
            True if the default was written
        """
        if key in self._data:
            return False
        await self.set(key, default)
        return True
