"""
Uniform control contract over vendor HTTP dialects
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from http_helper import create_device_session, fetch_json

logger = logging.getLogger(__name__)

# Accepted ranges per property; out-of-range values are clamped before translation
PROPERTY_LIMITS: Dict[str, Tuple[int, int]] = {
    'brightness': (1, 100),
    'speed': (1, 5),
    'temperature': (16, 30),
    # colour temperature in mireds (Hue, Tasmota CT)
    'ct': (153, 500),
}


def clamp_property_value(name: str, value: Any) -> Any:
    """Clamp numeric values of known properties; anything else passes through"""
    limits = PROPERTY_LIMITS.get(name)
    if limits is None or isinstance(value, bool):
        return value
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return value

    low, high = limits
    clamped = min(max(numeric, low), high)
    return int(clamped) if clamped.is_integer() else clamped


def on_off(on: bool) -> str:
    return 'on' if on else 'off'


@dataclass
class DeviceState:
    power: bool = False
    value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"power": self.power, "value": self.value}


class DeviceProtocolHandler:
    """
    Base handler. Public operations never raise: state reads fall back to
    "off", commands report failure as False. Subclasses implement the
    underscore methods against an open session.
    """

    protocol: str = ""

    def __init__(self, timeout_seconds: float = 3.0, session_factory: Callable = create_device_session):
        self.timeout_seconds = timeout_seconds
        self.session_factory = session_factory

    async def get_state(self, address: str, device_id: str) -> DeviceState:
        try:
            async with self.session_factory(self.timeout_seconds) as session:
                return await self._get_state(session, address, device_id)
        except Exception as e:
            logger.debug(f"{self.protocol} get_state failed for {address}: {e}")
            return DeviceState()

    async def set_power(self, address: str, device_id: str, on: bool) -> bool:
        try:
            async with self.session_factory(self.timeout_seconds) as session:
                ok = await self._set_power(session, address, device_id, bool(on))
        except Exception as e:
            logger.debug(f"{self.protocol} set_power failed for {address}: {e}")
            return False

        if ok:
            logger.info(f"[OK] {self.protocol} {address} power {on_off(on)}")
        return bool(ok)

    async def set_property(self, address: str, device_id: str, name: str, value: Any) -> bool:
        value = clamp_property_value(name, value)
        try:
            async with self.session_factory(self.timeout_seconds) as session:
                ok = await self._set_property(session, address, device_id, name, value)
        except Exception as e:
            logger.debug(f"{self.protocol} set_property {name} failed for {address}: {e}")
            return False

        if ok:
            logger.info(f"[OK] {self.protocol} {address} {name}={value}")
        return bool(ok)

    async def _get_state(self, session, address: str, device_id: str) -> DeviceState:
        raise NotImplementedError

    async def _set_power(self, session, address: str, device_id: str, on: bool) -> bool:
        raise NotImplementedError

    async def _set_property(self, session, address: str, device_id: str, name: str, value: Any) -> bool:
        raise NotImplementedError

    # HTTP helpers shared by the vendor handlers

    async def _get_json(self, session, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        return await fetch_json(session, url, params=params)

    async def _get_ok(self, session, url: str, params: Optional[Dict[str, Any]] = None) -> bool:
        async with session.get(url, params=params) as response:
            return response.status == 200

    async def _post_json(self, session, url: str, payload: Dict[str, Any]) -> bool:
        async with session.post(url, json=payload) as response:
            if response.status != 200:
                logger.debug(f"POST {url} returned HTTP {response.status}")
            return response.status == 200

    async def _put_json(self, session, url: str, payload: Dict[str, Any]) -> bool:
        async with session.put(url, json=payload) as response:
            if response.status != 200:
                logger.debug(f"PUT {url} returned HTTP {response.status}")
            return response.status == 200


def unsupported_property(protocol: str, name: str) -> bool:
    logger.warning(f"Property {name} not supported for {protocol} devices")
    return False
