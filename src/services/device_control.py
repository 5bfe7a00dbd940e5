"""
Control actions: dispatch through the protocol registry, retry, patch the cache
"""

import logging
from typing import Any, Dict, Optional

from discovery.models import make_device_id
from protocols.base import DeviceState, clamp_property_value
from protocols.registry import ProtocolHandlerRegistry
from cache.scan_cache import ScanResultCache
from exceptions import control_failure_message
from .retry import retry_async

logger = logging.getLogger(__name__)

ACTION_SET_STATE = "setState"
ACTION_SET_PROPERTY = "setProperty"

# Scalar actions -> handler property name
ACTION_PROPERTIES = {
    "setBrightness": "brightness",
    "setSpeed": "speed",
    "setTemperature": "temperature",
}

SUPPORTED_ACTIONS = [ACTION_SET_STATE, *ACTION_PROPERTIES, ACTION_SET_PROPERTY]


def cache_fields_for_property(name: str, value: Any) -> Dict[str, Any]:
    """Device fields updated after a successful property change"""
    if name in ('brightness', 'speed'):
        return {"scalar_value": value}
    if name == 'temperature':
        return {"temperature": value}
    return {}


class DeviceController:
    """Executes control requests and keeps the cache in line with what was sent"""

    def __init__(self, registry: ProtocolHandlerRegistry, cache: ScanResultCache,
                 retry_attempts: int = 3, retry_delay: float = 1.0):
        self.registry = registry
        self.cache = cache
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    async def execute(self, address: str, device_id: Optional[str], protocol: Optional[str],
                      action: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Returns {success, data} or {success: False, error}. Never raises.
        """
        params = params or {}
        if not protocol:
            # Devices without a protocol tag are observable only
            return {"success": False, "error": "Missing protocol"}

        device_id = device_id or make_device_id(protocol, address)
        handler = self.registry.get_handler(protocol)

        try:
            if action == ACTION_SET_STATE:
                if 'state' not in params:
                    return {"success": False, "error": "Missing parameter: state"}
                on = bool(params['state'])
                ok = await self._with_retry(lambda: handler.set_power(address, device_id, on),
                                            f"Set power on {address}")
                return self._finish(ok, device_id, address, {"power_state": on}, {"state": on})

            if action in ACTION_PROPERTIES or action == ACTION_SET_PROPERTY:
                name = ACTION_PROPERTIES.get(action) or params.get('property')
                value = params.get('value', params.get(name) if name else None)
                if not name or value is None:
                    return {"success": False, "error": f"Missing parameters for {action}"}

                value = clamp_property_value(name, value)
                ok = await self._with_retry(lambda: handler.set_property(address, device_id, name, value),
                                            f"Set {name} on {address}")
                return self._finish(ok, device_id, address, cache_fields_for_property(name, value),
                                    {"property": name, "value": value})

            return {"success": False, "error": f"Unsupported action: {action}"}

        except Exception as e:
            logger.error(f"Control {action} for {address} ({protocol}) failed: {e}")
            return {"success": False, "error": str(e)}

    async def get_state(self, address: str, device_id: Optional[str], protocol: Optional[str]) -> DeviceState:
        if not protocol:
            return DeviceState()
        device_id = device_id or make_device_id(protocol, address)
        state = await self.registry.get_handler(protocol).get_state(address, device_id)
        fields = {"power_state": state.power}
        if state.value is not None:
            fields["scalar_value"] = state.value
        self.cache.patch(device_id, fields)
        return state

    async def _with_retry(self, operation, description: str) -> bool:
        result = await retry_async(operation, attempts=self.retry_attempts, delay=self.retry_delay,
                                   description=description)
        return bool(result)

    def _finish(self, ok: bool, device_id: str, address: str, cache_fields: Dict[str, Any],
                data: Dict[str, Any]) -> Dict[str, Any]:
        if not ok:
            cached = self.cache.get(device_id)
            name = cached.name if cached else address
            return {"success": False, "error": control_failure_message(name)}

        if cache_fields:
            self.cache.patch(device_id, cache_fields)
        return {"success": True, "data": data}
