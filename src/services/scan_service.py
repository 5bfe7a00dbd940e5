"""
Scan service: every discovery pass goes through the result cache
"""

import asyncio
import logging
from typing import List

from discovery.manager import DeviceDiscovery
from discovery.models import Device
from cache.scan_cache import ScanResultCache

logger = logging.getLogger(__name__)


class ScanService:
    """Serves recent cached scans, otherwise runs discovery and stores the result"""

    def __init__(self, discovery: DeviceDiscovery, cache: ScanResultCache, recent_scan_seconds: float = 300):
        self.discovery = discovery
        self.cache = cache
        self.recent_scan_seconds = recent_scan_seconds
        self._scan_lock = asyncio.Lock()

    @property
    def scan_in_progress(self) -> bool:
        return self._scan_lock.locked()

    async def scan(self, refresh: bool = False) -> List[Device]:
        if not refresh:
            cached = self._recent_devices()
            if cached:
                logger.info(f"Using {len(cached)} cached devices from recent scan")
                return cached

        async with self._scan_lock:
            # Another request may have finished a scan while this one waited
            if not refresh:
                cached = self._recent_devices()
                if cached:
                    return cached

            devices = await self.discovery.discover()
            self.cache.put(devices)
            return self.cache.get_all()

    def _recent_devices(self) -> List[Device]:
        if self.cache.has_recent_scan(self.recent_scan_seconds):
            return self.cache.get_all()
        return []
