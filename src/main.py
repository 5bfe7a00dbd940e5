"""
Local Device Server - Main Entry Point

    python main.py          serve the HTTP API
    python main.py scan     run one discovery pass and print the devices as JSON
"""

import asyncio
import json
import signal
import sys
import logging
from pathlib import Path
import os

from services.device_server import DeviceServer

logger = logging.getLogger(__name__)


async def serve(config_path: str) -> int:
    server = DeviceServer(config_path=config_path)
    serve_task = asyncio.ensure_future(server.start())

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, serve_task.cancel)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises KeyboardInterrupt
            pass

    try:
        await serve_task
    except asyncio.CancelledError:
        logger.info("Shutdown requested")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        await server.stop()

    return 0


async def scan_once(config_path: str) -> int:
    server = DeviceServer(config_path=config_path)
    devices = await server.scan_service.scan(refresh=True)
    print(json.dumps([device.to_dict() for device in devices], indent=2))
    logger.info(f"Scan summary: {server.discovery.last_result.summary()}")
    return 0


def main(argv) -> int:
    config_path = os.environ.get('CONFIG_FILE', 'config/config.yaml')
    command = argv[1] if len(argv) > 1 else 'serve'

    if command == 'scan':
        return asyncio.run(scan_once(config_path))
    if command != 'serve':
        print(f"Unknown command: {command} (expected 'serve' or 'scan')")
        return 2

    logger.info(f"Using configuration file: {config_path}")
    return asyncio.run(serve(config_path))


if __name__ == "__main__":
    Path("logs").mkdir(exist_ok=True)

    try:
        sys.exit(main(sys.argv))
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
