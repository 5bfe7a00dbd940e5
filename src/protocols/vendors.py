"""
Vendor protocol handlers, one class per protocol tag
"""

import logging
from typing import Any, Dict, Optional

from discovery.models import (
    PHILIPS_WIZ, PHILIPS_HUE, SYSKA, TASMOTA, TUYA,
    HAVELLS, WIPRO, ORIENT, CROMPTON, BAJAJ, SHELLY
)
from http_helper import encoded_url
from .base import DeviceProtocolHandler, DeviceState, on_off, unsupported_property

logger = logging.getLogger(__name__)


class PhilipsWizHandler(DeviceProtocolHandler):
    protocol = PHILIPS_WIZ

    async def _get_state(self, session, address, device_id):
        body = await self._get_json(session, f"http://{address}/api/getSystemConfig")
        result = body.get('result') if isinstance(body, dict) else None
        if not isinstance(result, dict):
            return DeviceState()
        return DeviceState(power=bool(result.get('state')), value=result.get('dimming'))

    async def _set_power(self, session, address, device_id, on):
        return await self._post_json(session, f"http://{address}/api/setState", {"state": on_off(on)})

    async def _set_property(self, session, address, device_id, name, value):
        if name != 'brightness':
            return unsupported_property(self.protocol, name)
        return await self._post_json(session, f"http://{address}/api/dimming", {"brightness": value})


class PhilipsHueHandler(DeviceProtocolHandler):
    """
    Talks to the bridge REST API. The light number is the last dash-separated
    part of the device id ("hue-light-3" -> 3).
    """
    protocol = PHILIPS_HUE

    def __init__(self, username: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.username = username

    def _light_url(self, address: str, device_id: str) -> str:
        if not self.username:
            raise ValueError("Philips Hue bridge username not configured")
        light = str(device_id).split('-')[-1]
        return f"http://{address}/api/{self.username}/lights/{light}"

    @staticmethod
    def _to_bri(percent: float) -> int:
        return max(1, min(254, round(percent / 100 * 254)))

    async def _get_state(self, session, address, device_id):
        body = await self._get_json(session, self._light_url(address, device_id))
        state = body.get('state') if isinstance(body, dict) else None
        if not isinstance(state, dict):
            return DeviceState()
        bri = state.get('bri')
        value = round(bri / 254 * 100) if isinstance(bri, (int, float)) else None
        return DeviceState(power=bool(state.get('on')), value=value)

    async def _set_power(self, session, address, device_id, on):
        return await self._put_json(session, f"{self._light_url(address, device_id)}/state", {"on": on})

    async def _set_property(self, session, address, device_id, name, value):
        if name == 'brightness':
            payload = {"bri": self._to_bri(float(value))}
        elif name == 'hue':
            payload = {"hue": int(value)}
        elif name == 'saturation':
            payload = {"sat": self._to_bri(float(value))}
        elif name == 'ct':
            payload = {"ct": int(value)}
        else:
            return unsupported_property(self.protocol, name)
        return await self._put_json(session, f"{self._light_url(address, device_id)}/state", payload)


class SyskaHandler(DeviceProtocolHandler):
    protocol = SYSKA

    async def _get_state(self, session, address, device_id):
        body = await self._get_json(session, f"http://{address}/api/v1/device/info")
        if not isinstance(body, dict):
            return DeviceState()
        return DeviceState(power=body.get('power') == 'on', value=body.get('brightness'))

    async def _set_power(self, session, address, device_id, on):
        return await self._post_json(session, f"http://{address}/api/v1/device/control", {"power": on_off(on)})

    async def _set_property(self, session, address, device_id, name, value):
        if name not in ('brightness', 'color'):
            return unsupported_property(self.protocol, name)
        return await self._post_json(session, f"http://{address}/api/v1/device/control", {name: value})


class TasmotaHandler(DeviceProtocolHandler):
    """Tasmota console commands over GET /cm?cmnd=..."""
    protocol = TASMOTA

    COMMANDS = {
        'brightness': 'Dimmer',
        'color': 'Color',
        'ct': 'CT',
        'speed': 'FanSpeed',
    }

    async def _get_state(self, session, address, device_id):
        body = await self._get_json(session, self._command_url(address, "State"))
        if not isinstance(body, dict):
            return DeviceState()
        power = body.get('POWER', body.get('POWER1'))
        return DeviceState(power=str(power).upper() == 'ON', value=body.get('Dimmer'))

    async def _set_power(self, session, address, device_id, on):
        return await self._get_ok(session, self._command_url(address, f"Power {'On' if on else 'Off'}"))

    async def _set_property(self, session, address, device_id, name, value):
        command = self.COMMANDS.get(name)
        if not command:
            return unsupported_property(self.protocol, name)
        return await self._get_ok(session, self._command_url(address, f"{command} {value}"))

    @staticmethod
    def _command_url(address: str, command: str):
        return encoded_url(f"http://{address}/cm", {"cmnd": command})


class TuyaHandler(DeviceProtocolHandler):
    """Tuya data points (DPS) over the local HTTP port"""
    protocol = TUYA

    PORT = 6668
    POWER_DPS = "1"
    DPS_CODES = {
        'brightness': 2,
        'temperature': 3,
        'speed': 4,
        'color': 5,
    }

    def _url(self, address: str) -> str:
        return f"http://{address}:{self.PORT}/"

    async def _get_state(self, session, address, device_id):
        body = await self._get_json(session, self._url(address))
        dps = body.get('dps') if isinstance(body, dict) else None
        if not isinstance(dps, dict):
            return DeviceState()
        return DeviceState(power=bool(dps.get(self.POWER_DPS)), value=dps.get("2"))

    async def _set_power(self, session, address, device_id, on):
        payload = {"devId": device_id, "dps": {self.POWER_DPS: on}}
        return await self._post_json(session, self._url(address), payload)

    async def _set_property(self, session, address, device_id, name, value):
        code = self.DPS_CODES.get(name, 1)
        logger.debug(f"Tuya {device_id} property {name} (DPS {code}) -> {value}")
        payload = {"devId": device_id, "dps": {str(code): value}}
        return await self._post_json(session, self._url(address), payload)


class ShellyHandler(DeviceProtocolHandler):
    protocol = SHELLY

    async def _get_state(self, session, address, device_id):
        body = await self._get_json(session, f"http://{address}/status")
        if not isinstance(body, dict):
            return DeviceState()
        lights = body.get('lights') or []
        if lights:
            return DeviceState(power=bool(lights[0].get('ison')), value=lights[0].get('brightness'))
        relays = body.get('relays') or []
        return DeviceState(power=bool(relays and relays[0].get('ison')))

    async def _set_power(self, session, address, device_id, on):
        return await self._get_ok(session, f"http://{address}/relay/0", params={"turn": on_off(on)})

    async def _set_property(self, session, address, device_id, name, value):
        if name == 'brightness':
            return await self._get_ok(session, f"http://{address}/light/0", params={"brightness": value})
        if name == 'color':
            rgb = _parse_hex_color(value)
            if rgb is None:
                return unsupported_property(self.protocol, f"color {value!r}")
            red, green, blue = rgb
            return await self._get_ok(session, f"http://{address}/color/0",
                                      params={"turn": "on", "red": red, "green": green, "blue": blue})
        return unsupported_property(self.protocol, name)


def _parse_hex_color(value: Any) -> Optional[tuple]:
    text = str(value).lstrip('#')
    if len(text) != 6:
        return None
    try:
        return tuple(int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return None


class BrandControlHandler(DeviceProtocolHandler):
    """
    Shared shape of the brand-specific JSON APIs: one info document for state,
    one control endpoint taking {power_field: "on"/"off"} or {property: value}
    """
    info_path: str = ""
    control_path: str = ""
    power_field: str = "state"

    async def _get_state(self, session, address, device_id):
        body = await self._get_json(session, f"http://{address}{self.info_path}")
        if not isinstance(body, dict):
            return DeviceState()
        return DeviceState(power=body.get(self.power_field) == 'on', value=self._state_value(body))

    def _state_value(self, body: Dict[str, Any]) -> Optional[float]:
        device_type = body.get('type')
        if device_type == 'fan':
            return body.get('speed')
        if device_type == 'ac':
            return body.get('temperature')
        return body.get('brightness')

    async def _set_power(self, session, address, device_id, on):
        return await self._post_json(session, f"http://{address}{self.control_path}",
                                     {self.power_field: on_off(on)})

    async def _set_property(self, session, address, device_id, name, value):
        return await self._post_json(session, f"http://{address}{self.control_path}", {name: value})


class HavellsHandler(BrandControlHandler):
    protocol = HAVELLS
    info_path = "/api/info"
    control_path = "/api/control"


class WiproHandler(BrandControlHandler):
    protocol = WIPRO
    info_path = "/system/info"
    control_path = "/system/control"
    power_field = "power"


class OrientHandler(BrandControlHandler):
    protocol = ORIENT
    info_path = "/api/device"
    control_path = "/api/control"
    power_field = "power"

    async def _set_property(self, session, address, device_id, name, value):
        if name not in ('speed', 'temperature', 'mode'):
            logger.debug(f"Orient passing through unknown property {name}")
        return await super()._set_property(session, address, device_id, name, value)


class CromptonHandler(BrandControlHandler):
    protocol = CROMPTON
    info_path = "/device/info"
    control_path = "/device/control"


class BajajHandler(BrandControlHandler):
    protocol = BAJAJ
    info_path = "/api/device/info"
    control_path = "/api/device/control"
    power_field = "status"
