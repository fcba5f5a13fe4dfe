"""Default internet connectivity check used by the internet behaviors.

Any `async () -> bool` can replace it via `Store(connectivity=...)`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from redux_lib import environment

logger = logging.getLogger(__name__)

type ConnectivityCheck = Callable[[], Awaitable[bool]]


async def check_connectivity(
    host: str | None = None,
    port: int | None = None,
    timeout: float | None = None,
) -> bool:
    """Return True if a TCP connection to `host:port` can be opened within `timeout`."""
    host = host or environment.connectivity_host
    port = port or environment.connectivity_port
    timeout = timeout if timeout is not None else environment.connectivity_timeout
    try:
        async with asyncio.timeout(timeout):
            _, writer = await asyncio.open_connection(host, port)
    except (OSError, TimeoutError) as e:
        logger.debug("No connectivity to %s:%s (%s)", host, port, e)
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True
