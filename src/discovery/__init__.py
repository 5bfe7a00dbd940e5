"""
Discovery module for LAN smart-home devices
"""

from .manager import DeviceDiscovery
from .models import Device, DeviceType, DiscoveryResult, NetworkInfo
from .address_space import compute_candidate_addresses, resolve_network_info
from .announcements import ServiceAnnouncementListener
from .reachability import ReachabilityProbe
from .vendor_probes import VendorClassifier

__all__ = [
    'DeviceDiscovery', 'Device', 'DeviceType', 'DiscoveryResult', 'NetworkInfo',
    'compute_candidate_addresses', 'resolve_network_info',
    'ServiceAnnouncementListener', 'ReachabilityProbe', 'VendorClassifier'
]
