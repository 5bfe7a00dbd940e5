# HTTP Helper for Device Connections
# Session configuration for local device probes/control and backend relay connections

import aiohttp
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from yarl import URL

logger = logging.getLogger(__name__)

def create_device_session(timeout_seconds: float = 1.0) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for local device connections (always HTTP)
    Prevents connection leaks with proper cleanup and limits
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # Max 2 connections per device IP
        ssl=False,                  # Local devices use HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )

def encoded_url(base_url: str, query: Dict[str, Any]) -> URL:
    """
    URL with the query already percent-encoded (spaces as %20, never '+')
    aiohttp sends it unchanged
    """
    query_string = "&".join(f"{key}={quote(str(value), safe='')}" for key, value in query.items())
    return URL(f"{base_url}?{query_string}", encoded=True)

def create_relay_session(timeout_seconds: float = 30) -> aiohttp.ClientSession:
    """
    Create aiohttp session for the backend relay (the privileged scanning/control server)
    Keeps connections alive, the relay is a single local host
    """
    connector = aiohttp.TCPConnector(
        ssl=False,
        limit=10,
        limit_per_host=5,
        force_close=False,
        enable_cleanup_closed=True
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds),
        headers={"Accept": "application/json"}
    )

async def fetch_json(session, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
    """
    Make HTTP GET request and return JSON response
    Returns None on non-200 status, malformed body or any transport error
    """
    try:
        async with session.get(url, params=params) as response:
            if response.status == 200:
                return await response.json(content_type=None)
            logger.debug(f"HTTP {response.status} for {url}")
            return None
    except Exception as e:
        logger.debug(f"HTTP GET failed for {url}: {e}")
        return None
