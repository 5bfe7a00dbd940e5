"""
Fast best-effort liveness check used to prune addresses before HTTP probing
"""

import asyncio
import sys
import logging
from typing import Sequence

logger = logging.getLogger(__name__)

DEFAULT_PORTS = (80, 443, 6668)


class ReachabilityProbe:
    """TCP connect sweep with an optional ping fallback. Never raises."""

    def __init__(self, timeout: float = 0.5, ports: Sequence[int] = DEFAULT_PORTS, use_ping: bool = True):
        self.timeout = timeout
        self.ports = tuple(ports)
        self.use_ping = use_ping

    async def is_reachable(self, address: str) -> bool:
        try:
            if self.ports:
                results = await asyncio.gather(
                    *(self._tcp_alive(address, port) for port in self.ports),
                    return_exceptions=True
                )
                if any(result is True for result in results):
                    return True

            if self.use_ping:
                return await self._ping(address)

            return False
        except Exception as e:
            logger.debug(f"Reachability check failed for {address}: {e}")
            return False

    async def _tcp_alive(self, address: str, port: int) -> bool:
        """An accepted or actively refused connection both mean the host is up"""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=self.timeout
            )
            writer.close()
            try:
                await writer.wait_closed()
            except Exception:
                pass
            return True
        except ConnectionRefusedError:
            return True
        except (asyncio.TimeoutError, OSError):
            return False

    async def _ping(self, address: str) -> bool:
        if sys.platform.startswith('win'):
            command = ("ping", "-n", "1", "-w", str(int(self.timeout * 1000)), address)
        else:
            command = ("ping", "-c", "1", "-W", "1", address)

        process = None
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL
            )
            await asyncio.wait_for(process.wait(), timeout=self.timeout + 1.0)
            return process.returncode == 0
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug(f"Ping failed for {address}: {e}")
            if process and process.returncode is None:
                process.kill()
            return False
