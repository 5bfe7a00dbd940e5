"""
Database models and data structures
"""

import ipaddress
from typing import Any, Dict, Optional
from dataclasses import dataclass
from datetime import datetime


def _convert_ip_address(ip_addr) -> str:
    """Convert IPv4Address or other IP types to string for JSON serialization"""
    if isinstance(ip_addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(ip_addr)
    return str(ip_addr) if ip_addr else "0.0.0.0"


@dataclass
class AdoptedDeviceRecord:
    """Durable copy of a discovered device, owned by one user"""
    record_id: str
    owner_id: str
    device_id: str
    name: str
    type: str
    protocol: str
    address: str
    created_at: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recordId": self.record_id,
            "ownerId": self.owner_id,
            "deviceId": self.device_id,
            "name": self.name,
            "type": self.type,
            "protocol": self.protocol,
            "address": self.address,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "lastSeen": self.last_seen.isoformat() if self.last_seen else None,
        }
