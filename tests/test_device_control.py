"""
Tests for control dispatch, clamping before dispatch and cache updates.
"""

import pytest

from cache.scan_cache import ScanResultCache
from discovery.models import Device
from protocols.registry import ProtocolHandlerRegistry
from services.device_control import DeviceController, cache_fields_for_property


ADDRESS = "192.168.1.40"
DEVICE_ID = "tasmota-192-168-1-40"


@pytest.fixture
def cache(clock):
    cache = ScanResultCache(clock=clock)
    cache.put([Device(id=DEVICE_ID, name="Desk Lamp", type="light", address=ADDRESS, protocol="tasmota")])
    return cache


@pytest.fixture
def controller(network, cache):
    registry = ProtocolHandlerRegistry(session_factory=network.session_factory)
    return DeviceController(registry, cache, retry_attempts=2, retry_delay=0)


@pytest.mark.asyncio
async def test_set_state_updates_cache(network, controller, cache):
    network.accept_all = True

    result = await controller.execute(ADDRESS, DEVICE_ID, "tasmota", "setState", {"state": True})

    assert result == {"success": True, "data": {"state": True}}
    assert network.calls[-1]["url"] == f"http://{ADDRESS}/cm?cmnd=Power%20On"
    assert cache.get(DEVICE_ID).power_state is True


@pytest.mark.asyncio
async def test_brightness_is_clamped_before_dispatch(network, controller, cache):
    network.accept_all = True

    result = await controller.execute(ADDRESS, DEVICE_ID, "tasmota", "setBrightness", {"value": 150})

    assert result["data"] == {"property": "brightness", "value": 100}
    assert network.calls[-1]["url"] == f"http://{ADDRESS}/cm?cmnd=Dimmer%20100"
    assert cache.get(DEVICE_ID).scalar_value == 100


@pytest.mark.asyncio
async def test_set_property_uses_named_property(network, controller):
    network.accept_all = True

    result = await controller.execute(ADDRESS, DEVICE_ID, "tasmota", "setProperty",
                                      {"property": "color", "value": "FF0000"})

    assert result["success"] is True
    assert network.calls[-1]["url"] == f"http://{ADDRESS}/cm?cmnd=Color%20FF0000"


@pytest.mark.asyncio
async def test_failure_names_the_device_and_retries(network, controller):
    result = await controller.execute(ADDRESS, DEVICE_ID, "tasmota", "setState", {"state": False})

    assert result["success"] is False
    assert "Desk Lamp" in result["error"]
    assert len(network.calls) == 2


@pytest.mark.asyncio
async def test_failure_for_unknown_device_names_the_address(controller):
    result = await controller.execute("192.168.1.99", None, "philips-wiz", "setState", {"state": True})

    assert result["success"] is False
    assert "192.168.1.99" in result["error"]


@pytest.mark.asyncio
async def test_missing_parameters(controller):
    assert (await controller.execute(ADDRESS, DEVICE_ID, "tasmota", "setState", {}))["success"] is False
    assert (await controller.execute(ADDRESS, DEVICE_ID, "tasmota", "setSpeed", {}))["success"] is False


@pytest.mark.asyncio
async def test_unsupported_action(controller):
    result = await controller.execute(ADDRESS, DEVICE_ID, "tasmota", "reboot", {})
    assert result == {"success": False, "error": "Unsupported action: reboot"}


@pytest.mark.asyncio
async def test_get_state_patches_cache(network, controller, cache):
    network.add("GET", f"http://{ADDRESS}/cm?cmnd=State", {"POWER": "ON", "Dimmer": 35})

    state = await controller.get_state(ADDRESS, DEVICE_ID, "tasmota")

    assert state.power is True
    assert cache.get(DEVICE_ID).scalar_value == 35


def test_cache_fields_for_property():
    assert cache_fields_for_property("speed", 2) == {"scalar_value": 2}
    assert cache_fields_for_property("temperature", 22) == {"temperature": 22}
    assert cache_fields_for_property("color", "red") == {}


@pytest.mark.asyncio
async def test_device_without_protocol_is_not_controlled(network, controller, cache):
    network.accept_all = True

    result = await controller.execute(ADDRESS, "device-192-168-1-40", None, "setState", {"state": True})

    assert result == {"success": False, "error": "Missing protocol"}
    assert network.calls == []


@pytest.mark.asyncio
async def test_state_of_device_without_protocol_is_off(network, controller):
    network.accept_all = True

    state = await controller.get_state(ADDRESS, None, None)

    assert state.power is False
    assert network.calls == []
