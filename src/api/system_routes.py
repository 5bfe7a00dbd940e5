"""
System health and cache API routes
"""

from fastapi import APIRouter
from datetime import datetime, timezone
import logging

from .models import CacheResponse

logger = logging.getLogger(__name__)


def create_system_routes(config, cache, scan_service, discovery, registry):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api", tags=["system"])

    @router.get("/system/health")
    async def system_health():
        """System health check"""
        last_result = discovery.last_result
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc),
            "scanInProgress": scan_service.scan_in_progress,
            "lastScan": last_result.summary() if last_result else None,
            "cache": cache.status(),
            "protocols": registry.protocols,
            "database": {"enabled": bool(config.get('database', {}).get('enabled'))},
        }

    @router.get("/cache", response_model=CacheResponse)
    async def get_cache():
        return CacheResponse(status=cache.status(), devices=[d.to_dict() for d in cache.get_all()])

    @router.delete("/cache")
    async def clear_cache():
        cache.clear()
        logger.info("Device cache cleared")
        return {"success": True}

    return router
