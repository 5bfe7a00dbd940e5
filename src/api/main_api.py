"""
Main FastAPI application setup
Local HTTP API for LAN device discovery and control
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict
import logging

from .device_routes import create_device_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)


class DeviceAPI:
    """Local HTTP API for device discovery, control and adoption"""

    def __init__(self, config: Dict, discovery, scan_service, controller, adoption, cache, registry):
        self.config = config
        self.discovery = discovery
        self.scan_service = scan_service
        self.controller = controller
        self.adoption = adoption
        self.cache = cache
        self.registry = registry
        self.app = FastAPI(
            title="Local Device Server",
            description="Discovery and control of smart-home devices on the local network",
            version="1.0.0"
        )
        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        origins = self.config.get('server', {}).get('cors_origins', ['*'])
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        device_router = create_device_routes(
            self.discovery, self.scan_service, self.controller, self.adoption, self.cache
        )
        system_router = create_system_routes(
            self.config, self.cache, self.scan_service, self.discovery, self.registry
        )

        self.app.include_router(device_router)
        self.app.include_router(system_router)
