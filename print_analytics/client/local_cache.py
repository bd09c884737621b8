"""
File-backed key/value cache standing in for browser local storage
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

STORAGE_KEY = "printing_analytics_data"
AUTH_TOKEN_KEY = "authToken"
SESSION_EXPIRY_KEY = "sessionExpiry"

CACHE_FILE = "local_storage.json"


class LocalCache:
    """Keys map to JSON values inside one file, rewritten atomically"""

    def __init__(self, cache_dir: Union[str, Path]):
        self.cache_dir = Path(cache_dir)
        self.path = self.cache_dir / CACHE_FILE

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read local cache {self.path}: {e}")
            return {}

    def _write_all(self, items: Dict[str, Any]) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2)
            os.replace(temp_path, self.path)
        except OSError:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def get_item(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: Any) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)

    # State blob

    def load_state(self) -> Optional[Dict[str, Any]]:
        return self.get_item(STORAGE_KEY)

    def save_state(self, blob: Dict[str, Any]) -> None:
        try:
            self.set_item(STORAGE_KEY, blob)
            logger.debug("State saved to local cache")
        except OSError as e:
            logger.error(f"Failed to save to local cache: {e}")
