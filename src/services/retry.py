"""
Bounded retry with a fixed delay
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


async def retry_async(operation: Callable[[], Awaitable[Any]], attempts: int = 3, delay: float = 1.0,
                      description: str = "Operation", retry_on_falsy: bool = True,
                      raise_on_failure: bool = False) -> Any:
    """
    Run operation up to `attempts` times, sleeping `delay` seconds between tries.
    A raised exception always triggers another attempt; a falsy result does too
    unless retry_on_falsy is False. After the last attempt the last exception is
    re-raised when raise_on_failure is set, otherwise the last result (or None)
    is returned.
    """
    attempts = max(1, attempts)
    last_error = None
    result = None

    for attempt in range(attempts):
        try:
            result = await operation()
            if result or not retry_on_falsy:
                return result
            last_error = None
            logger.warning(f"{description} returned no result, attempt {attempt + 1}/{attempts}")
        except Exception as e:
            last_error = e
            result = None
            logger.warning(f"{description} failed, attempt {attempt + 1}/{attempts}: {e}")

        if attempt < attempts - 1:
            await asyncio.sleep(delay)

    logger.error(f"{description} failed after {attempts} attempts")
    if raise_on_failure and last_error is not None:
        raise last_error
    return result
