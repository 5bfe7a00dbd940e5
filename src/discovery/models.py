"""
Discovery data structures and models
"""

import re
import time
from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, fields, replace


class DeviceType(str, Enum):
    """Known device types (the set stays open, vendors may report others)"""
    LIGHT = "light"
    FAN = "fan"
    AC = "ac"
    TV = "tv"
    REFRIGERATOR = "refrigerator"
    BRIDGE = "bridge"
    UNKNOWN = "unknown"


# Protocol tags, one per supported vendor dialect
PHILIPS_WIZ = "philips-wiz"
PHILIPS_HUE = "philips-hue"
SYSKA = "syska"
TASMOTA = "tasmota"
TUYA = "tuya"
HAVELLS = "havells"
WIPRO = "wipro"
ORIENT = "orient"
CROMPTON = "crompton"
BAJAJ = "bajaj"
SHELLY = "shelly"

# Discovery methods
METHOD_HTTP_PROBE = "http_probe"
METHOD_ANNOUNCEMENT = "announcement"

# Default scalar values per type when the vendor does not report one
DEFAULT_BRIGHTNESS = 100
DEFAULT_FAN_SPEED = 3
DEFAULT_AC_TEMPERATURE = 24

# (type, substrings, whole words). Short keywords only match whole words
# so "ac" does not hit "space heater".
_TYPE_KEYWORDS = [
    (DeviceType.LIGHT, ("light", "bulb", "lamp"), ("led",)),
    (DeviceType.FAN, ("fan",), ()),
    (DeviceType.AC, ("aircon", "air conditioner"), ("ac",)),
    (DeviceType.TV, ("television",), ("tv",)),
    (DeviceType.REFRIGERATOR, ("refrigerator", "fridge"), ()),
]


def make_device_id(protocol: Optional[str], address: str) -> str:
    """Stable identifier derived from (protocol, address)"""
    return f"{protocol or 'device'}-{address.replace('.', '-')}"


def detect_device_type(model_name: Optional[str], default: str = DeviceType.LIGHT.value) -> str:
    """Guess a device type from a model or service name"""
    if not model_name:
        return default

    lowered = model_name.lower()
    tokens = set(re.split(r'[^a-z0-9]+', lowered))

    for device_type, substrings, words in _TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in substrings) or tokens.intersection(words):
            return device_type.value

    return default


def default_scalar_value(device_type: str) -> Optional[int]:
    if device_type == DeviceType.LIGHT.value:
        return DEFAULT_BRIGHTNESS
    if device_type == DeviceType.FAN.value:
        return DEFAULT_FAN_SPEED
    return None


@dataclass
class Device:
    """A discovered smart-home device"""
    id: str
    name: str
    type: str
    address: str
    protocol: Optional[str] = None
    power_state: bool = False
    scalar_value: Optional[float] = None
    temperature: Optional[float] = None
    last_seen: float = field(default_factory=time.time)
    cloud_link_id: Optional[str] = None
    discovery_method: str = METHOD_HTTP_PROBE

    @property
    def controllable(self) -> bool:
        return bool(self.protocol)

    def to_dict(self) -> Dict[str, Any]:
        """JSON form with camelCase keys; optional fields omitted when unset"""
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "address": self.address,
            "protocol": self.protocol,
            "powerState": self.power_state,
            "lastSeen": self.last_seen,
            "discoveryMethod": self.discovery_method,
        }
        if self.scalar_value is not None:
            data["scalarValue"] = self.scalar_value
        if self.temperature is not None:
            data["temperature"] = self.temperature
        if self.cloud_link_id is not None:
            data["cloudLinkId"] = self.cloud_link_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Device':
        values = normalize_device_fields(data)
        address = values.get("address", "")
        protocol = values.get("protocol")
        if not values.get("id"):
            values["id"] = make_device_id(protocol, address)
        values.setdefault("name", f"Device {address}")
        values.setdefault("type", DeviceType.UNKNOWN.value)
        values.setdefault("address", address)
        return cls(**values)

    def updated(self, **changes) -> 'Device':
        return replace(self, **changes)


# JSON and legacy names mapped onto dataclass field names
FIELD_ALIASES = {
    "powerState": "power_state",
    "state": "power_state",
    "scalarValue": "scalar_value",
    "value": "scalar_value",
    "lastSeen": "last_seen",
    "cloudLinkId": "cloud_link_id",
    "discoveryMethod": "discovery_method",
    "ip": "address",
}

DEVICE_FIELDS = {f.name for f in fields(Device)}


def normalize_device_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Translate camelCase/legacy keys to Device field names, dropping unknown keys"""
    normalized = {}
    for key, value in data.items():
        name = FIELD_ALIASES.get(key, key)
        if name in DEVICE_FIELDS:
            normalized[name] = value
    return normalized


@dataclass
class NetworkInfo:
    """Local network parameters used to derive the scan range"""
    local_address: str
    subnet_mask: str
    gateway: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "localAddress": self.local_address,
            "subnetMask": self.subnet_mask,
            "gateway": self.gateway,
        }


@dataclass
class DiscoveryResult:
    """Results from discovery operations"""
    devices: List[Device]
    method: str
    duration_seconds: float
    devices_tested: int
    success_count: int

    def summary(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "duration_seconds": round(self.duration_seconds, 2),
            "addresses_tested": self.devices_tested,
            "devices_found": self.success_count,
        }
