"""
Time-boxed cache of discovered devices
"""

import time
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from discovery.models import Device, normalize_device_fields
from .storage import MemoryStorage

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 3600
DEFAULT_RECENT_SCAN_SECONDS = 300


@dataclass
class CacheEntry:
    device: Device
    cached_at: float

    def is_expired(self, now: float, retention_seconds: float) -> bool:
        return now - self.cached_at > retention_seconds


class ScanResultCache:
    """
    Devices keyed by id with a per-entry cached_at stamp and a last-scan
    timestamp. Expired entries are evicted lazily when read. Every operation
    holds a reentrant lock.
    """

    def __init__(self, storage=None, retention_seconds: float = DEFAULT_RETENTION_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.storage = storage or MemoryStorage()
        self.retention_seconds = retention_seconds
        self.clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, CacheEntry] = {}
        self._last_scan = 0.0
        self._load()

    def has_recent_scan(self, max_age_seconds: float = DEFAULT_RECENT_SCAN_SECONDS) -> bool:
        with self._lock:
            return self._last_scan > 0 and self.clock() - self._last_scan < max_age_seconds

    def get_all(self) -> List[Device]:
        with self._lock:
            self._evict_expired()
            return [entry.device for entry in self._entries.values()]

    def get(self, device_id: str) -> Optional[Device]:
        with self._lock:
            entry = self._entries.get(device_id)
            if entry is None:
                return None
            if entry.is_expired(self.clock(), self.retention_seconds):
                del self._entries[device_id]
                return None
            return entry.device

    def put(self, devices: Iterable[Device]):
        """Upsert devices and mark a completed scan"""
        with self._lock:
            now = self.clock()
            for device in devices:
                self._upsert(device, now)
            self._last_scan = now
            self._save()

    def merge(self, devices: Iterable[Device]) -> List[Device]:
        """
        Upsert devices without marking a completed scan and return the union
        with still-valid cached entries (new records win on id)
        """
        with self._lock:
            now = self.clock()
            for device in devices:
                self._upsert(device, now)
            self._save()
            return self.get_all()

    def patch(self, device_id: str, fields: Dict[str, Any]) -> bool:
        """
        Merge fields into a cached device (Python or JSON field names)
        Returns False if the id is not cached
        """
        with self._lock:
            entry = self._entries.get(device_id)
            if entry is None or entry.is_expired(self.clock(), self.retention_seconds):
                return False

            changes = normalize_device_fields(fields)
            changes.pop('id', None)
            self._entries[device_id] = CacheEntry(entry.device.updated(**changes), self.clock())
            self._save()
            return True

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._last_scan = 0.0
            self.storage.clear()

    def status(self) -> Dict[str, Any]:
        with self._lock:
            self._evict_expired()
            age = self.clock() - self._last_scan if self._last_scan else None
            return {
                "devices": len(self._entries),
                "lastScan": self._last_scan or None,
                "lastScanAgeSeconds": round(age, 1) if age is not None else None,
                "retentionSeconds": self.retention_seconds,
                "storage": type(self.storage).__name__,
            }

    def _upsert(self, device: Device, now: float):
        """Store a fresh record; an adoption link on the previous record survives rescans"""
        previous = self._entries.get(device.id)
        if previous and previous.device.cloud_link_id and not device.cloud_link_id:
            device = device.updated(cloud_link_id=previous.device.cloud_link_id)
        self._entries[device.id] = CacheEntry(device, now)

    def _evict_expired(self):
        now = self.clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now, self.retention_seconds)]
        for device_id in expired:
            del self._entries[device_id]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")

    def _save(self):
        snapshot = {
            "lastScan": self._last_scan,
            "devices": [dict(entry.device.to_dict(), cachedAt=entry.cached_at)
                        for entry in self._entries.values()],
        }
        try:
            self.storage.save(snapshot)
        except Exception as e:
            logger.error(f"Cache storage save failed: {e}")

    def _load(self):
        try:
            snapshot = self.storage.load()
        except Exception as e:
            logger.error(f"Cache storage load failed: {e}")
            return

        now = self.clock()
        for item in snapshot.get("devices", []):
            try:
                cached_at = float(item.get("cachedAt", 0))
                entry = CacheEntry(Device.from_dict(item), cached_at)
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed cache record: {e}")
                continue
            if not entry.is_expired(now, self.retention_seconds):
                self._entries[entry.device.id] = entry

        self._last_scan = float(snapshot.get("lastScan") or 0.0)
        if self._entries:
            logger.info(f"Loaded {len(self._entries)} cached devices from {type(self.storage).__name__}")
