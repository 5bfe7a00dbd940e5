"""
Vendor protocol handlers behind one control interface
"""

from .base import DeviceProtocolHandler, DeviceState, PROPERTY_LIMITS, clamp_property_value
from .registry import ProtocolHandlerRegistry, PROTOCOL_HANDLERS

__all__ = [
    'DeviceProtocolHandler', 'DeviceState', 'PROPERTY_LIMITS', 'clamp_property_value',
    'ProtocolHandlerRegistry', 'PROTOCOL_HANDLERS'
]
