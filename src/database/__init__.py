"""
Database module for adopted device storage
"""

from .manager import DatabaseManager
from .models import AdoptedDeviceRecord, _convert_ip_address

__all__ = ['DatabaseManager', 'AdoptedDeviceRecord', '_convert_ip_address']
