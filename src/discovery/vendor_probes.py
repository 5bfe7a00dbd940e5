"""
Vendor fingerprinting over HTTP

Each probe knows one vendor's identification endpoint and turns a matching
response into a Device. Probes are tried in PROBE_ORDER, first match wins.
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from .models import (
    Device, DeviceType, METHOD_HTTP_PROBE,
    PHILIPS_WIZ, PHILIPS_HUE, SYSKA, TASMOTA, TUYA,
    HAVELLS, WIPRO, ORIENT, CROMPTON, BAJAJ, SHELLY,
    DEFAULT_BRIGHTNESS, DEFAULT_FAN_SPEED, DEFAULT_AC_TEMPERATURE,
    make_device_id, detect_device_type
)
from http_helper import create_device_session, encoded_url, fetch_json

logger = logging.getLogger(__name__)


def _present(body: Dict[str, Any], key: str) -> bool:
    """
    Field is set to anything but null, false, zero or an empty string
    Empty objects and lists still count: some firmwares answer {"result": {}}
    """
    value = body.get(key)
    if value is None or value is False or value == "":
        return False
    return not (isinstance(value, (int, float)) and value == 0)


class VendorProbe:
    """Base probe: GET one path, match the JSON body, build a Device"""

    protocol: str = ""
    path: str = ""
    params: Optional[Dict[str, str]] = None
    default_name: str = "Smart Device"

    async def probe(self, session, address: str) -> Optional[Device]:
        """Never raises; None means 'not this vendor'"""
        try:
            body = await fetch_json(session, self._url(address))
            if not isinstance(body, dict) or not self._matches(body):
                return None
            return self._build(address, body)
        except Exception as e:
            logger.debug(f"{self.protocol} probe error for {address}: {e}")
            return None

    def _url(self, address: str):
        url = f"http://{address}{self.path}"
        return encoded_url(url, self.params) if self.params else url

    def _matches(self, body: Dict[str, Any]) -> bool:
        raise NotImplementedError

    def _build(self, address: str, body: Dict[str, Any]) -> Device:
        raise NotImplementedError

    def _device(self, address: str, name: str, device_type: str, power_state: bool = False,
                scalar_value: Optional[float] = None, temperature: Optional[float] = None) -> Device:
        return Device(
            id=make_device_id(self.protocol, address),
            name=name,
            type=device_type,
            address=address,
            protocol=self.protocol,
            power_state=power_state,
            scalar_value=scalar_value,
            temperature=temperature,
            last_seen=time.time(),
            discovery_method=METHOD_HTTP_PROBE
        )


class WizProbe(VendorProbe):
    protocol = PHILIPS_WIZ
    path = "/api/getSystemConfig"
    default_name = "Philips WiZ Light"

    def _matches(self, body):
        return _present(body, "result")

    def _build(self, address, body):
        return self._device(address, self.default_name, DeviceType.LIGHT.value,
                            scalar_value=DEFAULT_BRIGHTNESS)


class HueProbe(VendorProbe):
    protocol = PHILIPS_HUE
    path = "/api/config"
    default_name = "Philips Hue Bridge"

    def _matches(self, body):
        return _present(body, "name") and _present(body, "bridgeid")

    def _build(self, address, body):
        return self._device(address, self.default_name, DeviceType.BRIDGE.value, power_state=True)


class SyskaProbe(VendorProbe):
    protocol = SYSKA
    path = "/api/v1/device/info"
    default_name = "Syska Smart Light"

    def _matches(self, body):
        return body.get("manufacturer") == "Syska"

    def _build(self, address, body):
        return self._device(address, self.default_name, DeviceType.LIGHT.value,
                            scalar_value=DEFAULT_BRIGHTNESS)


class TasmotaProbe(VendorProbe):
    protocol = TASMOTA
    path = "/cm"
    params = {"cmnd": "Status 0"}
    default_name = "Tasmota Device"

    def _matches(self, body):
        return _present(body, "Status")

    def _build(self, address, body):
        status = body["Status"] if isinstance(body["Status"], dict) else {}
        name = status.get("FriendlyName") or self.default_name
        if isinstance(name, list):
            name = name[0] if name else self.default_name

        device_type = detect_device_type(status.get("DeviceName") or "")
        return self._device(address, name, device_type, scalar_value=_default_value(device_type, {}))


class TuyaProbe(VendorProbe):
    """Tuya local devices listen on 6668-6670; any HTTP answer there counts"""
    protocol = TUYA
    ports = (6668, 6669, 6670)
    default_name = "Tuya Smart Device"

    def __init__(self, port_timeout: float = 0.5):
        self.port_timeout = port_timeout

    async def probe(self, session, address: str) -> Optional[Device]:
        for port in self.ports:
            try:
                async with session.get(f"http://{address}:{port}/",
                                       timeout=aiohttp.ClientTimeout(total=self.port_timeout)) as response:
                    logger.debug(f"Tuya port {port} answered HTTP {response.status} at {address}")
                    return self._device(address, self.default_name, DeviceType.LIGHT.value,
                                        scalar_value=DEFAULT_BRIGHTNESS)
            except Exception:
                continue
        return None


class BrandInfoProbe(VendorProbe):
    """
    Vendors exposing a JSON info document with brand/manufacturer, name, type
    and a power field
    """
    brand: str = ""
    default_type: str = DeviceType.LIGHT.value
    power_field: str = "state"

    def _matches(self, body):
        brand = self.brand.lower()
        for key in ("brand", "manufacturer"):
            value = body.get(key)
            if isinstance(value, str) and value.lower() == brand:
                return True
        model = body.get("model")
        return isinstance(model, str) and brand in model.lower()

    def _build(self, address, body):
        device_type = body.get("type") or self.default_type
        temperature = None
        if device_type == DeviceType.AC.value:
            temperature = body.get("temperature") or DEFAULT_AC_TEMPERATURE

        return self._device(
            address,
            body.get("name") or f"{self.brand} Smart Device",
            device_type,
            power_state=body.get(self.power_field) == "on",
            scalar_value=_default_value(device_type, body),
            temperature=temperature
        )


class HavellsProbe(BrandInfoProbe):
    protocol = HAVELLS
    path = "/api/info"
    brand = "Havells"


class WiproProbe(BrandInfoProbe):
    protocol = WIPRO
    path = "/system/info"
    brand = "Wipro"
    power_field = "power"


class OrientProbe(BrandInfoProbe):
    protocol = ORIENT
    path = "/api/device"
    brand = "Orient"
    default_type = DeviceType.FAN.value
    power_field = "power"


class CromptonProbe(BrandInfoProbe):
    protocol = CROMPTON
    path = "/device/info"
    brand = "Crompton"
    default_type = DeviceType.FAN.value


class BajajProbe(BrandInfoProbe):
    protocol = BAJAJ
    path = "/api/device/info"
    brand = "Bajaj"
    default_type = DeviceType.FAN.value
    power_field = "status"


class ShellyProbe(VendorProbe):
    protocol = SHELLY
    path = "/shelly"
    default_name = "Shelly Device"

    def _matches(self, body):
        return bool(body.get("type")) and bool(body.get("mac"))

    def _build(self, address, body):
        model = str(body.get("type"))
        device_type = detect_device_type(model, default=DeviceType.LIGHT.value)
        name = body.get("name") or f"{self.default_name} {model}"
        return self._device(address, name, device_type, scalar_value=_default_value(device_type, {}))


def _default_value(device_type: str, body: Dict[str, Any]) -> Optional[float]:
    if device_type == DeviceType.LIGHT.value:
        return body.get("brightness") or DEFAULT_BRIGHTNESS
    if device_type == DeviceType.FAN.value:
        return body.get("speed") or DEFAULT_FAN_SPEED
    return None


def build_probe_order(tuya_port_timeout: float = 0.5) -> List[VendorProbe]:
    """Authoritative probe order; earlier probes win on ambiguous devices"""
    return [
        WizProbe(),
        HueProbe(),
        SyskaProbe(),
        TasmotaProbe(),
        TuyaProbe(tuya_port_timeout),
        HavellsProbe(),
        WiproProbe(),
        OrientProbe(),
        CromptonProbe(),
        BajajProbe(),
        ShellyProbe(),
    ]


PROBE_ORDER = [probe.protocol for probe in build_probe_order()]


class VendorClassifier:
    """Identifies the vendor protocol spoken at an address"""

    def __init__(self, probe_timeout: float = 1.0, tuya_port_timeout: float = 0.5,
                 session_factory: Callable = create_device_session,
                 probes: Optional[List[VendorProbe]] = None):
        self.probe_timeout = probe_timeout
        self.session_factory = session_factory
        self.probes = probes if probes is not None else build_probe_order(tuya_port_timeout)

    async def classify(self, address: str, only_protocol: Optional[str] = None) -> Optional[Device]:
        """
        Run probes in order and return the first match, None if nothing answers
        only_protocol restricts the pass to a single vendor (used to revalidate
        announced devices)
        """
        probes = self.probes
        if only_protocol:
            probes = [probe for probe in probes if probe.protocol == only_protocol]

        try:
            async with self.session_factory(self.probe_timeout) as session:
                for probe in probes:
                    device = await probe.probe(session, address)
                    if device:
                        logger.info(f"[OK] {device.protocol} device at {address}: {device.name}")
                        return device
        except Exception as e:
            logger.debug(f"Classification failed for {address}: {e}")

        return None
