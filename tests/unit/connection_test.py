"""Tests for the TCP reachability probe."""

from __future__ import annotations

import anyio
import pytest
from anyio.abc import SocketAttribute

from src.sinkdestroy.net.connection import connection_details, is_server_reachable

pytestmark = pytest.mark.anyio


async def test_reachable_listener() -> None:
    """An open listener reports as reachable."""
    listener = await anyio.create_tcp_listener(local_host="127.0.0.1")
    port = listener.extra(SocketAttribute.local_port)
    try:
        reachable, details = await connection_details("127.0.0.1", port, timeout=1)
    finally:
        await listener.aclose()

    assert reachable
    assert details == f"Connected to 127.0.0.1:{port} successfully"


async def test_closed_port_is_unreachable() -> None:
    """A closed port reports as unreachable."""
    listener = await anyio.create_tcp_listener(local_host="127.0.0.1")
    port = listener.extra(SocketAttribute.local_port)
    await listener.aclose()

    assert not await is_server_reachable("127.0.0.1", port, timeout=1)
