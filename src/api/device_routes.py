"""
Device discovery and control API routes
"""

from fastapi import APIRouter, HTTPException
from typing import Optional
import logging

from exceptions import AdoptionError
from .models import (
    AdoptRequest, AdoptResponse, ControlRequest, ControlResponse,
    DeviceStateResponse, NetworkInfoResponse
)

logger = logging.getLogger(__name__)


def create_device_routes(discovery, scan_service, controller, adoption, cache):
    """Create device discovery/control routes"""
    router = APIRouter(prefix="/api", tags=["devices"])

    @router.get("/network-info", response_model=NetworkInfoResponse)
    async def get_network_info():
        """Local address, subnet mask and gateway used for scanning"""
        return discovery.get_network_info().to_dict()

    @router.get("/scan-network")
    async def scan_network(refresh: bool = False):
        """Discover devices; recent cached results are returned unless refresh is set"""
        try:
            devices = await scan_service.scan(refresh=refresh)
            return [device.to_dict() for device in devices]
        except Exception as e:
            logger.error(f"Error scanning network: {e}")
            raise HTTPException(status_code=500, detail="Failed to scan network")

    @router.post("/device/control", response_model=ControlResponse)
    async def control_device(request: ControlRequest):
        address = request.target_address
        if not address or not request.protocol:
            raise HTTPException(status_code=400, detail="Missing required parameters")

        logger.info(f"Control {request.action} -> {address} ({request.protocol})")
        return await controller.execute(
            address, request.target_id, request.protocol, request.action, request.params_dict()
        )

    @router.get("/device/state", response_model=DeviceStateResponse)
    async def get_device_state(address: str, id: Optional[str] = None, protocol: Optional[str] = None):
        state = await controller.get_state(address, id, protocol)
        return state.to_dict()

    @router.post("/devices/{device_id}/adopt", response_model=AdoptResponse)
    async def adopt_device(device_id: str, request: AdoptRequest):
        """Copy a discovered device into the owner's permanent device list"""
        if not adoption.available:
            raise HTTPException(status_code=503, detail="Device store not configured")

        device = cache.get(device_id)
        if device is None:
            raise HTTPException(status_code=404, detail=f"Device {device_id} not found, scan first")

        try:
            record_id = await adoption.adopt_device(request.ownerId, device)
        except AdoptionError as e:
            logger.error(f"Adoption of {device_id} failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        return AdoptResponse(success=True, cloudLinkId=record_id)

    return router
