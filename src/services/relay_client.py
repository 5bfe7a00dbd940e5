"""
HTTP client for the backend relay (the privileged scanning/control server)
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from discovery.models import Device
from exceptions import RelayUnavailableError
from http_helper import create_relay_session

logger = logging.getLogger(__name__)


class BackendRelayClient:
    """Thin wrapper over the relay's /api endpoints; transport failures raise RelayUnavailableError"""

    def __init__(self, base_url: str = "http://localhost:3001/api", scan_timeout: float = 30,
                 control_timeout: float = 5, session_factory: Callable = create_relay_session):
        self.base_url = base_url.rstrip('/')
        self.scan_timeout = scan_timeout
        self.control_timeout = control_timeout
        self.session_factory = session_factory

    async def scan_network(self, refresh: bool = False) -> List[Device]:
        params = {"refresh": "true"} if refresh else None
        body = await self._request("GET", "/scan-network", "scan-network", self.scan_timeout, params=params)
        if not isinstance(body, list):
            raise RelayUnavailableError("scan-network", ValueError("unexpected response body"))
        return [Device.from_dict(item) for item in body if isinstance(item, dict)]

    async def control(self, device: Device, action: str, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            "address": device.address,
            "id": device.id,
            "protocol": device.protocol,
            "action": action,
            "params": params,
        }
        body = await self._request("POST", "/device/control", "device-control", self.control_timeout,
                                   json=payload)
        if not isinstance(body, dict):
            raise RelayUnavailableError("device-control", ValueError("unexpected response body"))
        return body

    async def get_network_info(self) -> Dict[str, Any]:
        return await self._request("GET", "/network-info", "network-info", self.control_timeout)

    async def _request(self, method: str, path: str, operation: str, timeout: float,
                       params: Optional[Dict[str, Any]] = None, json: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self.session_factory(timeout) as session:
                async with session.request(method, url, params=params, json=json) as response:
                    if response.status != 200:
                        raise RelayUnavailableError(operation, RuntimeError(f"HTTP {response.status}"))
                    return await response.json(content_type=None)
        except RelayUnavailableError:
            raise
        except Exception as e:
            logger.debug(f"Relay {method} {url} failed: {e}")
            raise RelayUnavailableError(operation, e) from e
