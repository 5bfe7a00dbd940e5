"""
ASGI entry point for uvicorn
This module exposes the FastAPI app for use with uvicorn command line
"""

import os
import logging
from pathlib import Path

from config_loader import load_config, setup_logging
from services.device_server import DeviceServer

Path("logs").mkdir(exist_ok=True)

config = load_config(os.environ.get('CONFIG_FILE', 'config/config.yaml'))
setup_logging(config)

logger = logging.getLogger(__name__)

logger.info("Initializing application components...")

server = DeviceServer(config=config, configure_logging=False)

# Expose the FastAPI app for uvicorn
app = server.api.app

@app.on_event("startup")
async def startup_event():
    logger.info("Starting up application...")
    await server.initialize()

@app.on_event("shutdown")
async def shutdown_event():
    """Clean up resources on shutdown"""
    logger.info("Shutting down application...")
    await server.stop()
    logger.info("Application shut down complete")

logger.info("ASGI app ready for uvicorn")
