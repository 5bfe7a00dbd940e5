"""
Protocol tag -> handler lookup
"""

import logging
from typing import Callable, Dict, Optional, Type

from discovery.models import (
    PHILIPS_WIZ, PHILIPS_HUE, SYSKA, TASMOTA, TUYA,
    HAVELLS, WIPRO, ORIENT, CROMPTON, BAJAJ, SHELLY
)
from http_helper import create_device_session
from .base import DeviceProtocolHandler
from .vendors import (
    PhilipsWizHandler, PhilipsHueHandler, SyskaHandler, TasmotaHandler, TuyaHandler,
    HavellsHandler, WiproHandler, OrientHandler, CromptonHandler, BajajHandler, ShellyHandler
)

logger = logging.getLogger(__name__)

PROTOCOL_HANDLERS: Dict[str, Type[DeviceProtocolHandler]] = {
    PHILIPS_WIZ: PhilipsWizHandler,
    PHILIPS_HUE: PhilipsHueHandler,
    SYSKA: SyskaHandler,
    TASMOTA: TasmotaHandler,
    TUYA: TuyaHandler,
    HAVELLS: HavellsHandler,
    WIPRO: WiproHandler,
    ORIENT: OrientHandler,
    CROMPTON: CromptonHandler,
    BAJAJ: BajajHandler,
    SHELLY: ShellyHandler,
}

DEFAULT_PROTOCOL = TASMOTA


class ProtocolHandlerRegistry:
    """Builds one handler per tag on first use; unknown tags get the Tasmota handler"""

    def __init__(self, config: Optional[Dict] = None, session_factory: Callable = create_device_session):
        config = config or {}
        self.timeout_seconds = config.get('control', {}).get('timeout_seconds', 3.0)
        self.vendor_config = config.get('vendors', {})
        self.session_factory = session_factory
        self._handlers: Dict[str, DeviceProtocolHandler] = {}

    @property
    def protocols(self):
        return list(PROTOCOL_HANDLERS)

    def get_handler(self, protocol: Optional[str]) -> DeviceProtocolHandler:
        tag = (protocol or '').lower()
        if tag not in PROTOCOL_HANDLERS:
            logger.warning(f"Unknown protocol type: {protocol}, falling back to {DEFAULT_PROTOCOL}")
            tag = DEFAULT_PROTOCOL

        handler = self._handlers.get(tag)
        if handler is None:
            handler = self._build(tag)
            self._handlers[tag] = handler
        return handler

    def _build(self, tag: str) -> DeviceProtocolHandler:
        kwargs = {"timeout_seconds": self.timeout_seconds, "session_factory": self.session_factory}
        if tag == PHILIPS_HUE:
            kwargs["username"] = self.vendor_config.get('philips_hue', {}).get('username')
        return PROTOCOL_HANDLERS[tag](**kwargs)
