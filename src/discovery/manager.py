"""
Main discovery manager: passive announcements plus a bounded active sweep
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional

from .models import Device, DiscoveryResult, NetworkInfo
from .address_space import (
    DEFAULT_NETWORK_INFO, compute_candidate_addresses, expand_ip_ranges, resolve_network_info
)
from .announcements import ServiceAnnouncementListener
from .reachability import ReachabilityProbe
from .vendor_probes import VendorClassifier

logger = logging.getLogger(__name__)


class DeviceDiscovery:
    """Main discovery service for LAN smart-home devices"""

    def __init__(self, config: Dict, listener: Optional[ServiceAnnouncementListener] = None,
                 reachability: Optional[ReachabilityProbe] = None,
                 classifier: Optional[VendorClassifier] = None,
                 network_info_provider: Callable[[], NetworkInfo] = resolve_network_info):
        self.config = config
        self.max_scan_addresses = config.get('max_scan_addresses', 100)
        self.max_concurrent_probes = config.get('max_concurrent_probes', 10)
        self.address_timeout = config.get('address_timeout', 15.0)
        self.ip_ranges = config.get('ip_ranges') or []
        self.use_reachability = config.get('use_reachability', True)
        self.enable_announcements = config.get('enable_announcements', True)
        self.revalidate_passive = config.get('revalidate_passive', True)

        self.listener = listener or ServiceAnnouncementListener(config.get('announcement_window', 3.0))
        self.reachability = reachability or ReachabilityProbe(
            timeout=config.get('reachability_timeout', 0.5),
            ports=config.get('reachability_ports', [80, 443, 6668]),
            use_ping=config.get('use_ping', True)
        )
        self.classifier = classifier or VendorClassifier(
            probe_timeout=config.get('probe_timeout', 1.0),
            tuya_port_timeout=config.get('tuya_probe_timeout', 0.5)
        )
        self.network_info_provider = network_info_provider
        self.last_result: Optional[DiscoveryResult] = None

    def get_network_info(self) -> NetworkInfo:
        try:
            return self.network_info_provider()
        except Exception as e:
            logger.error(f"Network info unavailable, using defaults: {e}")
            return DEFAULT_NETWORK_INFO

    def candidate_addresses(self, network_info: NetworkInfo) -> List[str]:
        if self.ip_ranges:
            return expand_ip_ranges(self.ip_ranges, self.max_scan_addresses,
                                    exclude=network_info.local_address)
        return compute_candidate_addresses(network_info.local_address, network_info.subnet_mask,
                                           self.max_scan_addresses)

    async def discover(self) -> List[Device]:
        """
        Full discovery pass. Never raises; an empty list means nothing was found
        """
        logger.info("[SEARCH] Starting device discovery...")
        start_time = time.time()
        listener_task = None
        addresses: List[str] = []

        try:
            if self.enable_announcements:
                listener_task = asyncio.ensure_future(self.listener.listen())

            network_info = self.get_network_info()
            addresses = self.candidate_addresses(network_info)
            logger.info(f"Local address {network_info.local_address}/{network_info.subnet_mask}, "
                        f"scanning {len(addresses)} addresses")

            active = await self.scan_addresses(addresses)
            passive = await self._collect_passive(listener_task)
            listener_task = None

            if self.revalidate_passive:
                passive = await self._revalidate(passive, {device.address for device in active})

            devices = self.merge_devices(passive, active)

        except Exception as e:
            logger.error(f"Discovery failed: {e}")
            devices = []
        finally:
            if listener_task is not None and not listener_task.done():
                listener_task.cancel()

        duration = time.time() - start_time
        self.last_result = DiscoveryResult(devices, "scan", duration, len(addresses), len(devices))
        logger.info(f"[PASS] Discovery complete: {len(devices)} devices from {len(addresses)} "
                    f"addresses in {duration:.1f}s")
        return devices

    async def scan_addresses(self, addresses: Iterable[str]) -> List[Device]:
        """
        Drain the address queue with a fixed worker pool
        Results keep the order of the input addresses
        """
        queue: asyncio.Queue = asyncio.Queue()
        for index, address in enumerate(addresses):
            queue.put_nowait((index, address))

        if queue.empty():
            return []

        found: Dict[int, Device] = {}

        async def worker():
            while True:
                try:
                    index, address = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    device = await asyncio.wait_for(self._check_address(address), timeout=self.address_timeout)
                    if device:
                        found[index] = device
                except asyncio.TimeoutError:
                    logger.warning(f"Address {address} timed out after {self.address_timeout}s")
                except Exception as e:
                    logger.debug(f"Address {address} failed: {e}")
                finally:
                    queue.task_done()

        worker_count = max(1, min(self.max_concurrent_probes, queue.qsize()))
        await asyncio.gather(*(worker() for _ in range(worker_count)), return_exceptions=True)

        return [found[index] for index in sorted(found)]

    async def _check_address(self, address: str) -> Optional[Device]:
        if self.use_reachability and not await self.reachability.is_reachable(address):
            return None
        return await self.classifier.classify(address)

    async def _collect_passive(self, listener_task) -> List[Device]:
        if listener_task is None:
            return []
        try:
            return await listener_task
        except Exception as e:
            logger.warning(f"[MDNS] Announcement listener failed: {e}")
            return []

    async def _revalidate(self, passive: List[Device], active_addresses: set) -> List[Device]:
        """Probe announced-only devices once with their own vendor's probe"""
        candidates = [d for d in passive if d.protocol and d.address not in active_addresses]
        if not candidates:
            return passive

        results = await asyncio.gather(
            *(self.classifier.classify(d.address, only_protocol=d.protocol) for d in candidates),
            return_exceptions=True
        )
        confirmed = {}
        for device, result in zip(candidates, results):
            if isinstance(result, Device):
                confirmed[device.address] = result

        return [confirmed.get(device.address, device) for device in passive]

    @staticmethod
    def merge_devices(passive: Iterable[Device], active: Iterable[Device]) -> List[Device]:
        """
        One record per address. Within a source the last record seen wins;
        across sources active-probe records win over announcements
        """
        merged: Dict[str, Device] = {}
        for device in active:
            merged[device.address] = device

        announced: Dict[str, Device] = {}
        for device in passive:
            announced[device.address] = device
        for address, device in announced.items():
            merged.setdefault(address, device)

        return list(merged.values())
