"""Raw TCP reachability probe for the game server."""

from __future__ import annotations

import logging

import anyio

from src.sinkdestroy.core.config import CONNECT_TIMEOUT, SERVER_HOST, SERVER_PORT

logger = logging.getLogger(__name__)


async def connection_details(
    host: str = SERVER_HOST,
    port: int = SERVER_PORT,
    timeout: float = CONNECT_TIMEOUT,
) -> tuple[bool, str]:
    """Open and close a TCP connection; return (reachable, human summary)."""
    try:
        with anyio.fail_after(timeout):
            stream = await anyio.connect_tcp(host, port)
        await stream.aclose()
    except (OSError, TimeoutError) as e:
        logger.warning("Server %s:%s unreachable: %s", host, port, e)
        return False, f"Failed to connect to {host}:{port} - {str(e) or 'timed out'}"
    return True, f"Connected to {host}:{port} successfully"


async def is_server_reachable(
    host: str = SERVER_HOST,
    port: int = SERVER_PORT,
    timeout: float = CONNECT_TIMEOUT,
) -> bool:
    reachable, _ = await connection_details(host, port, timeout)
    return reachable
