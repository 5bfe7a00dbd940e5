"""
Request and response models for the device API
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ControlParams(BaseModel):
    state: Optional[bool] = None
    value: Optional[Any] = None
    property: Optional[str] = None
    temperature: Optional[float] = None


class ControlRequest(BaseModel):
    address: Optional[str] = None
    id: Optional[str] = None
    protocol: Optional[str] = None
    action: str
    params: ControlParams = Field(default_factory=ControlParams)

    # Legacy field names still sent by older clients
    deviceIp: Optional[str] = None
    deviceId: Optional[str] = None

    @property
    def target_address(self) -> Optional[str]:
        return self.address or self.deviceIp

    @property
    def target_id(self) -> Optional[str]:
        return self.id or self.deviceId

    def params_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.params.dict().items() if v is not None}


class ControlResponse(BaseModel):
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class DeviceStateResponse(BaseModel):
    power: bool
    value: Optional[float] = None


class NetworkInfoResponse(BaseModel):
    localAddress: str
    subnetMask: str
    gateway: str


class AdoptRequest(BaseModel):
    ownerId: str


class AdoptResponse(BaseModel):
    success: bool
    cloudLinkId: Optional[str] = None


class CacheResponse(BaseModel):
    status: Dict[str, Any]
    devices: List[Dict[str, Any]]
