"""
Consumer-side device access

Prefers the backend relay (this server, running with network privileges) and
degrades step by step: a sandboxed direct scan and direct control, then stale
cached devices. Only a total failure with an empty cache raises.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from discovery.manager import DeviceDiscovery
from discovery.models import Device, DeviceType
from protocols.base import clamp_property_value
from protocols.registry import ProtocolHandlerRegistry
from cache.scan_cache import ScanResultCache
from exceptions import (
    AdoptionError, DiscoveryUnavailableError, RelayUnavailableError, NO_DEVICES_MESSAGE
)
from .adoption import AdoptionService
from .device_control import ACTION_SET_STATE, ACTION_SET_PROPERTY, cache_fields_for_property
from .relay_client import BackendRelayClient
from .retry import retry_async

logger = logging.getLogger(__name__)

# The sandboxed scan never reaches beyond the fallback ranges
DIRECT_SCAN_MAX_ADDRESSES = 150


def build_direct_discovery(config: Dict) -> DeviceDiscovery:
    """Discovery limited to the fixed private ranges, with no listener and no ping"""
    relay_config = config.get('relay', {})
    discovery_config = dict(config.get('discovery', {}))
    discovery_config.update({
        'ip_ranges': relay_config.get('fallback_ip_ranges', []),
        'max_scan_addresses': DIRECT_SCAN_MAX_ADDRESSES,
        'enable_announcements': False,
        'revalidate_passive': False,
        'use_ping': False,
    })
    return DeviceDiscovery(discovery_config)


class LocalDeviceService:

    def __init__(self, config: Dict, cache: ScanResultCache, registry: ProtocolHandlerRegistry,
                 relay: Optional[BackendRelayClient] = None,
                 direct_discovery: Optional[DeviceDiscovery] = None,
                 adoption: Optional[AdoptionService] = None):
        relay_config = config.get('relay', {})
        control_config = config.get('control', {})

        self.cache = cache
        self.registry = registry
        self.relay = relay or BackendRelayClient(
            base_url=relay_config.get('base_url', 'http://localhost:3001/api'),
            scan_timeout=relay_config.get('scan_timeout_seconds', 30),
            control_timeout=relay_config.get('control_timeout_seconds', 5)
        )
        self.direct_discovery = direct_discovery or build_direct_discovery(config)
        self.adoption = adoption

        self.recent_scan_seconds = config.get('cache', {}).get('recent_scan_seconds', 300)
        self.scan_retry_attempts = relay_config.get('scan_retry_attempts', 2)
        self.scan_retry_delay = relay_config.get('scan_retry_delay_seconds', 2.0)
        self.retry_attempts = control_config.get('retry_attempts', 3)
        self.retry_delay = control_config.get('retry_delay_seconds', 1.0)

    # ================== DISCOVERY ==================

    async def discover_devices(self) -> List[Device]:
        if self.cache.has_recent_scan(self.recent_scan_seconds):
            cached = self.cache.get_all()
            if cached:
                logger.info("Using cached devices from recent scan")
                return cached

        try:
            devices = await retry_async(
                self.relay.scan_network,
                attempts=self.scan_retry_attempts,
                delay=self.scan_retry_delay,
                description="Network scan through backend relay",
                retry_on_falsy=False,
                raise_on_failure=True
            )
            logger.info(f"[OK] Backend relay discovered {len(devices)} devices")
            self.cache.put(devices)
            return devices
        except RelayUnavailableError as e:
            logger.warning(f"Backend relay unavailable, falling back to direct scan: {e}")

        try:
            devices = await self.direct_discovery.discover()
            merged = self.cache.merge(devices)
            if not merged:
                logger.info(NO_DEVICES_MESSAGE)
            return merged
        except Exception as e:
            cached = self.cache.get_all()
            if cached:
                logger.warning(f"Direct scan failed, returning {len(cached)} cached devices: {e}")
                return cached
            raise DiscoveryUnavailableError(f"Device discovery failed: {e}") from e

    # ================== CONTROL ==================

    async def toggle_device(self, device: Device, on: bool) -> bool:
        if not device.controllable:
            logger.error(f"Device {device.name} has no protocol defined")
            return False

        try:
            success = await self._relay_control(device, ACTION_SET_STATE, {"state": on})
        except RelayUnavailableError as e:
            logger.warning(f"Backend relay unavailable, controlling {device.name} directly: {e}")
            handler = self.registry.get_handler(device.protocol)
            success = bool(await retry_async(
                lambda: handler.set_power(device.address, device.id, on),
                attempts=self.retry_attempts,
                delay=self.retry_delay,
                description=f"Direct power control of {device.name}"
            ))
        except Exception as e:
            logger.error(f"Failed to toggle device {device.id}: {e}")
            return False

        if success:
            self.cache.patch(device.id, {"power_state": on})
        return success

    async def update_device_state(self, device: Device, params: Dict[str, Any]) -> bool:
        """
        Apply property changes. `value` means brightness for lights and speed
        for fans; any other key is sent as a named property.
        """
        if not device.controllable:
            logger.error(f"Device {device.name} has no protocol defined")
            return False

        commands = self._property_commands(device, params)
        if not commands:
            return False

        try:
            success = True
            for action, name, value in commands:
                if not await self._relay_control(device, action, {"property": name, "value": value}):
                    success = False
        except RelayUnavailableError as e:
            logger.warning(f"Backend relay unavailable, updating {device.name} directly: {e}")
            success = await self._direct_update(device, commands)
        except Exception as e:
            logger.error(f"Failed to update device {device.id}: {e}")
            return False

        if success:
            fields = {}
            for _, name, value in commands:
                fields.update(cache_fields_for_property(name, clamp_property_value(name, value)))
            if fields:
                self.cache.patch(device.id, fields)
        return success

    async def _direct_update(self, device: Device, commands: List[Tuple[str, str, Any]]) -> bool:
        handler = self.registry.get_handler(device.protocol)
        success = True
        for _, name, value in commands:
            ok = await retry_async(
                lambda: handler.set_property(device.address, device.id, name, value),
                attempts=self.retry_attempts,
                delay=self.retry_delay,
                description=f"Direct update of {device.name} {name}"
            )
            if not ok:
                success = False
        return success

    async def _relay_control(self, device: Device, action: str, params: Dict[str, Any]) -> bool:
        result = await retry_async(
            lambda: self.relay.control(device, action, params),
            attempts=self.retry_attempts,
            delay=self.retry_delay,
            description=f"{action} for {device.name} through backend relay",
            retry_on_falsy=False,
            raise_on_failure=True
        )
        if not result.get('success'):
            logger.warning(f"{action} for {device.name} rejected: {result.get('error')}")
        return bool(result.get('success'))

    @staticmethod
    def _property_commands(device: Device, params: Dict[str, Any]) -> List[Tuple[str, str, Any]]:
        commands = []
        for key, value in params.items():
            if key == 'value':
                if device.type == DeviceType.FAN.value:
                    commands.append(("setSpeed", "speed", value))
                else:
                    commands.append(("setBrightness", "brightness", value))
            elif key == 'temperature':
                commands.append(("setTemperature", "temperature", value))
            else:
                commands.append((ACTION_SET_PROPERTY, key, value))
        return commands

    # ================== ADOPTION ==================

    async def adopt_device(self, owner_id: str, device: Device) -> Optional[str]:
        if self.adoption is None:
            logger.error("Device adoption requested but no durable store is configured")
            return None
        try:
            return await self.adoption.adopt_device(owner_id, device)
        except AdoptionError as e:
            logger.error(f"Failed to adopt device {device.id}: {e}")
            return None
