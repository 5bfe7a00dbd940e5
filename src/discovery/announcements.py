"""
Passive discovery through mDNS/DNS-SD service announcements
"""

import asyncio
import socket
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Set

from zeroconf import ServiceStateChange
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from .models import (
    Device, DeviceType, METHOD_ANNOUNCEMENT,
    PHILIPS_HUE, PHILIPS_WIZ, TUYA, TASMOTA,
    DEFAULT_AC_TEMPERATURE, make_device_id, detect_device_type, default_scalar_value
)

logger = logging.getLogger(__name__)

# Service type -> protocol tag (None means generic, not controllable)
SERVICE_PROTOCOLS = {
    "_hue._tcp.local.": PHILIPS_HUE,
    "_wiz._tcp.local.": PHILIPS_WIZ,
    "_tuya._tcp.local.": TUYA,
    "_tasmota._tcp.local.": TASMOTA,
    "_http._tcp.local.": None,
}

SERVICE_TYPES = list(SERVICE_PROTOCOLS)


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


def _decode_properties(properties: Optional[Dict]) -> Dict[str, str]:
    txt = {}
    for key, value in (properties or {}).items():
        if value is None:
            continue
        txt[_decode(key)] = _decode(value)
    return txt


def _instance_name(name: str, service_type: str) -> str:
    """'Kitchen._hue._tcp.local.' -> 'Kitchen'"""
    if name.endswith(service_type):
        name = name[:-len(service_type)]
    return name.rstrip('.') or name


def device_from_announcement(service_type: str, name: str, addresses: Iterable[str],
                             properties: Optional[Dict] = None) -> Optional[Device]:
    """Build a Device from a resolved announcement, None if it carries no IPv4 address"""
    address = next((a for a in addresses if _is_ipv4(a)), None)
    if not address:
        return None

    protocol = SERVICE_PROTOCOLS.get(service_type)
    txt = _decode_properties(properties)
    display_name = _instance_name(name, service_type)

    default_type = DeviceType.BRIDGE.value if protocol == PHILIPS_HUE else DeviceType.LIGHT.value
    device_type = txt.get('type') or detect_device_type(display_name, default=default_type)

    device = Device(
        id=make_device_id(protocol, address),
        name=display_name or f"Device {address}",
        type=device_type,
        address=address,
        protocol=protocol,
        power_state=False,
        scalar_value=default_scalar_value(device_type),
        last_seen=time.time(),
        discovery_method=METHOD_ANNOUNCEMENT
    )
    if device_type == DeviceType.AC.value:
        device.temperature = DEFAULT_AC_TEMPERATURE
    return device


def _is_ipv4(address: str) -> bool:
    try:
        socket.inet_aton(address)
        return address.count('.') == 3
    except (OSError, TypeError):
        return False


class ServiceAnnouncementListener:
    """Collects announced devices for a fixed window, then stops"""

    def __init__(self, window_seconds: float = 3.0, service_types: Optional[List[str]] = None,
                 resolve_timeout_ms: int = 1500):
        self.window_seconds = window_seconds
        self.service_types = service_types or SERVICE_TYPES
        self.resolve_timeout_ms = resolve_timeout_ms

    async def listen(self) -> List[Device]:
        """Browse for window_seconds; pending resolutions are cancelled when it closes"""
        try:
            zc = AsyncZeroconf()
        except Exception as e:
            logger.warning(f"[MDNS] Listener could not start: {e}")
            return []

        devices: Dict[str, Device] = {}
        pending: Set[asyncio.Task] = set()
        browser = None

        def on_state_change(zeroconf: Any, service_type: str, name: str,
                            state_change: ServiceStateChange) -> None:
            if state_change is not ServiceStateChange.Added:
                return
            task = asyncio.ensure_future(self._resolve(zc, service_type, name, devices))
            pending.add(task)
            task.add_done_callback(pending.discard)

        try:
            browser = AsyncServiceBrowser(zc.zeroconf, self.service_types, handlers=[on_state_change])
            await asyncio.sleep(self.window_seconds)
        except Exception as e:
            logger.warning(f"[MDNS] Browsing failed: {e}")
        finally:
            for task in list(pending):
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            if browser is not None:
                await browser.async_cancel()
            await zc.async_close()

        logger.info(f"[MDNS] Window closed, {len(devices)} announced device(s)")
        return list(devices.values())

    async def _resolve(self, zc: AsyncZeroconf, service_type: str, name: str,
                       devices: Dict[str, Device]):
        info = AsyncServiceInfo(service_type, name)
        if not await info.async_request(zc.zeroconf, self.resolve_timeout_ms):
            logger.debug(f"[MDNS] Could not resolve {name}")
            return

        device = device_from_announcement(service_type, name, info.parsed_addresses(), info.properties)
        if device:
            logger.debug(f"[MDNS] {device.name} at {device.address} ({service_type})")
            devices[device.address] = device
