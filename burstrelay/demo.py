"""Example sessions against a running relay server."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import sys
from typing import AsyncIterator, Optional

from burstrelay.client import Client
from burstrelay.connection_pool import ConnectionPool
from burstrelay.server import DEFAULT_ADDRESS

__all__ = ["PAYLOAD_SIZE", "run_broadcast", "run_sendrecv", "main"]

PAYLOAD_SIZE = 1024 * 1024


def _payload() -> bytes:
    return b"\x01" * PAYLOAD_SIZE


@contextlib.asynccontextmanager
async def _session(address: str) -> AsyncIterator[Client]:
    """A client over a single pooled connection, closed on exit."""
    pool = ConnectionPool(address, 1)
    await pool.initialize_conns()
    try:
        yield Client(pool)
    finally:
        await pool.close()


async def run_broadcast(address: str) -> tuple[int, int, bytes]:
    """Create group "0", publish a payload to it and read it back.

    Returns the group creation code, the publish code and the data read.
    """
    async with _session(address) as client:
        created = await client.create_bc_group("0", 1)
        sent = await client.broadcast_root("0", _payload())
        data = await client.broadcast("0")
    return created, sent, data


async def run_sendrecv(address: str) -> tuple[int, bytes]:
    """Send a payload to queue 0 and receive it back.

    Returns the send code and the data received.
    """
    async with _session(address) as client:
        sent = await client.send(0, _payload())
        data = await client.recv(0)
    return sent, data


_EXAMPLES = {"broadcast": run_broadcast, "sendrecv": run_sendrecv}


def main(argv: Optional[list[str]] = None) -> int:
    """Run one of the example sessions from the command line."""
    parser = argparse.ArgumentParser(
        prog="burstrelay-demo", description="Run an example relay session."
    )
    parser.add_argument("example", choices=sorted(_EXAMPLES))
    parser.add_argument(
        "address",
        nargs="?",
        default=DEFAULT_ADDRESS,
        help=f"server host:port (default {DEFAULT_ADDRESS})",
    )
    args = parser.parse_args(argv)

    try:
        *codes, data = asyncio.run(_EXAMPLES[args.example](args.address))
    except (OSError, ValueError, asyncio.IncompleteReadError) as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    if len(codes) == 2:
        print(f"Server code: {codes[0]}")
    print(f"Send Code: {codes[-1]}")
    print(f"Data: {len(data)}")
    return 0