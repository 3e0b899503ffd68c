"""Fixed-size pool of TCP connections to a relay server."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
import struct
from typing import AsyncIterator

from burstrelay.protocol import ClientOperation, ServerResponse

__all__ = ["ConnectionPool", "Connection"]

log = logging.getLogger(__name__)

_U32 = struct.Struct(">I")

Connection = tuple[asyncio.StreamReader, asyncio.StreamWriter]


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"end point must be host:port, got {address!r}")
    try:
        number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in end point {address!r}") from None
    if not 0 <= number <= 65535:
        raise ValueError(f"port out of range in end point {address!r}")
    return host, number


class ConnectionPool:
    """Holds ``max_connections`` open connections to ``end_point``."""

    def __init__(self, end_point: str, max_connections: int) -> None:
        if max_connections < 0:
            raise ValueError("max_connections must not be negative")
        self.end_point = end_point
        self.max_connections = max_connections
        self._host, self._port = _split_address(end_point)
        self._idle: asyncio.Queue = asyncio.Queue()
        self._live = 0

    async def _connect(self) -> Connection:
        log.debug("Endpoint: %s", self.end_point)
        reader, writer = await asyncio.open_connection(self._host, self._port)
        sock = writer.get_extra_info("socket")
        if sock is not None:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return reader, writer

    def _discard(self, writer: asyncio.StreamWriter) -> None:
        writer.close()
        self._live -= 1

    async def initialize_conns(self) -> None:
        """Open every connection of the pool; connection errors propagate."""
        for _ in range(self.max_connections):
            connection = await self._connect()
            self._idle.put_nowait(connection)
            self._live += 1

    @contextlib.asynccontextmanager
    async def get_connection(self) -> AsyncIterator[Connection]:
        """Borrow a ``(reader, writer)`` pair, waiting until one is free.

        The connection goes back to the pool when the block ends; if the
        block raises, the connection is closed and dropped instead.
        """
        if self._live == 0:
            raise RuntimeError("connection pool has no connections")
        reader, writer = await self._idle.get()
        try:
            yield reader, writer
        except BaseException:
            self._discard(writer)
            raise
        self._idle.put_nowait((reader, writer))

    async def close(self) -> None:
        """Ask the server to close each connection and drop the confirmed ones."""
        for _ in range(self._live):
            reader, writer = await self._idle.get()
            try:
                writer.write(_U32.pack(ClientOperation.CLOSE))
                await writer.drain()
                code = _U32.unpack(await reader.readexactly(_U32.size))[0]
            except BaseException:
                self._discard(writer)
                raise
            if code == ServerResponse.CLOSE:
                self._discard(writer)
                with contextlib.suppress(OSError):
                    await writer.wait_closed()
            else:
                self._idle.put_nowait((reader, writer))