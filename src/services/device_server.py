"""
Device Server - Main orchestrator for all services
"""

import logging
from typing import Dict, Optional

import uvicorn

from config_loader import load_config, setup_logging
from database.manager import DatabaseManager
from discovery.manager import DeviceDiscovery
from protocols.registry import ProtocolHandlerRegistry
from cache.scan_cache import ScanResultCache
from cache.storage import create_storage
from api.main_api import DeviceAPI
from .adoption import AdoptionService
from .device_control import DeviceController
from .scan_service import ScanService

logger = logging.getLogger(__name__)


class DeviceServer:
    """Builds every component from configuration and serves the HTTP API"""

    def __init__(self, config_path: str = "config/config.yaml", config: Optional[Dict] = None,
                 configure_logging: bool = True):
        self.config = config if config is not None else load_config(config_path)
        if configure_logging:
            setup_logging(self.config)

        cache_config = self.config['cache']
        control_config = self.config['control']

        self.cache = ScanResultCache(
            storage=create_storage(cache_config),
            retention_seconds=cache_config.get('retention_seconds', 3600)
        )
        self.registry = ProtocolHandlerRegistry(self.config)
        self.discovery = DeviceDiscovery(self.config['discovery'])
        self.scan_service = ScanService(
            self.discovery, self.cache, cache_config.get('recent_scan_seconds', 300)
        )
        self.controller = DeviceController(
            self.registry,
            self.cache,
            retry_attempts=control_config.get('retry_attempts', 3),
            retry_delay=control_config.get('retry_delay_seconds', 1.0)
        )

        self.db = DatabaseManager(self.config) if self.config['database'].get('enabled') else None
        self.adoption = AdoptionService(self.db, self.cache)

        self.api = DeviceAPI(
            self.config, self.discovery, self.scan_service, self.controller,
            self.adoption, self.cache, self.registry
        )

    async def initialize(self):
        """Open the durable store when configured"""
        if self.db:
            await self.db.initialize()
            logger.info("Database initialized successfully")
        else:
            logger.info("Database disabled - device adoption unavailable")

    async def start(self):
        logger.info("Starting Local Device Server...")
        try:
            await self.initialize()
            await self._start_api_server()
        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            raise

    async def stop(self):
        """Stop all server services gracefully"""
        logger.info("Stopping server...")
        if self.db:
            await self.db.close()
        logger.info("Server stopped")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        server_config = self.config['server']
        config = uvicorn.Config(
            self.api.app,
            host=server_config['host'],
            port=server_config['port'],
            log_level="info",
            access_log=False
        )

        server = uvicorn.Server(config)

        logger.info(f"Starting API server on {server_config['host']}:{server_config['port']}")
        logger.info(f"API documentation: http://localhost:{server_config['port']}/docs")

        await server.serve()
