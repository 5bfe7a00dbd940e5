"""
Scan result cache with pluggable storage
"""

from .scan_cache import ScanResultCache, CacheEntry
from .storage import MemoryStorage, JsonFileStorage, create_storage

__all__ = ['ScanResultCache', 'CacheEntry', 'MemoryStorage', 'JsonFileStorage', 'create_storage']
