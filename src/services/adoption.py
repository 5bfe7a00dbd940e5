"""
Adoption: copy a discovered device into durable storage and link the cached record
"""

import logging
from typing import Optional

from discovery.models import Device
from cache.scan_cache import ScanResultCache
from exceptions import AdoptionError

logger = logging.getLogger(__name__)


class AdoptionService:

    def __init__(self, store, cache: ScanResultCache):
        self.store = store
        self.cache = cache

    @property
    def available(self) -> bool:
        return self.store is not None

    async def adopt_device(self, owner_id: str, device: Device) -> str:
        """Returns the durable record id; the cached device keeps a weak link to it"""
        if self.store is None:
            raise AdoptionError("No durable device store configured")

        record_id: Optional[str] = await self.store.adopt_device(owner_id, device)
        if not record_id:
            raise AdoptionError(f"Device store rejected {device.id}")

        self.cache.patch(device.id, {"cloud_link_id": record_id})
        logger.info(f"[OK] {device.name} adopted as {record_id}")
        return record_id
