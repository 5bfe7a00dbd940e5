"""
Storage backends for the scan result cache

A backend persists one snapshot: {"lastScan": float, "devices": [device dict + "cachedAt"]}
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

EMPTY_SNAPSHOT = {"lastScan": 0.0, "devices": []}


class MemoryStorage:
    """Keeps the last snapshot in process memory only"""

    def __init__(self):
        self._snapshot: Optional[Dict[str, Any]] = None

    def load(self) -> Dict[str, Any]:
        return self._snapshot or dict(EMPTY_SNAPSHOT)

    def save(self, snapshot: Dict[str, Any]):
        self._snapshot = snapshot

    def clear(self):
        self._snapshot = None


class JsonFileStorage:
    """Snapshot in a JSON file for warm starts across restarts"""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return dict(EMPTY_SNAPSHOT)
        try:
            with open(self.path, 'r') as f:
                snapshot = json.load(f)
            if not isinstance(snapshot, dict) or not isinstance(snapshot.get("devices"), list):
                raise ValueError("unexpected cache file layout")
            return snapshot
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load device cache from {self.path}: {e}")
            self.clear()
            return dict(EMPTY_SNAPSHOT)

    def save(self, snapshot: Dict[str, Any]):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
            with open(tmp_path, 'w') as f:
                json.dump(snapshot, f, indent=2)
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to save device cache to {self.path}: {e}")

    def clear(self):
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError as e:
            logger.error(f"Failed to remove device cache {self.path}: {e}")


def create_storage(cache_config: Dict[str, Any]):
    """Backend from the `cache` config section"""
    if cache_config.get('storage') == 'file':
        return JsonFileStorage(cache_config.get('file', 'data/device_cache.json'))
    return MemoryStorage()
