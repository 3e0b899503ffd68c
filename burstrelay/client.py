"""Client operations of the relay protocol over a connection pool."""

from __future__ import annotations

import asyncio
import logging
import re
import struct
from typing import Iterable

from burstrelay.connection_pool import ConnectionPool
from burstrelay.protocol import ClientOperation, ServerResponse

__all__ = ["Client"]

log = logging.getLogger(__name__)

_U32 = struct.Struct(">I")
_U32_LIMIT = 1 << 32
_DIGITS = re.compile(r"\+?[0-9]+")


def _pack(*values: int) -> bytes:
    for value in values:
        if not 0 <= value < _U32_LIMIT:
            raise ValueError(f"value {value} does not fit in an unsigned 32-bit field")
    return struct.pack(f">{len(values)}I", *values)


def _parse_group(group_name: str) -> int:
    if _DIGITS.fullmatch(group_name) is None:
        raise ValueError(f"invalid group name {group_name!r}")
    value = int(group_name)
    if value >= _U32_LIMIT:
        raise ValueError(f"group name {group_name!r} is out of range")
    return value


async def _read_u32(reader: asyncio.StreamReader) -> int:
    return _U32.unpack(await reader.readexactly(_U32.size))[0]


class Client:
    """Sends, receives and broadcasts messages through a relay server."""

    def __init__(self, connection_pool: ConnectionPool) -> None:
        self.connection_pool = connection_pool

    async def create_bc_group(self, group_name: str, n_queues: int) -> int:
        """Create broadcast group ``group_name``; return the server's code."""
        header = _pack(
            ClientOperation.CREATE_BC_GROUP, _parse_group(group_name), n_queues
        )
        async with self.connection_pool.get_connection() as (reader, writer):
            writer.write(header)
            await writer.drain()
            return await _read_u32(reader)

    async def send(self, queue_id: int, data: bytes) -> int:
        """Put ``data`` on queue ``queue_id``; return the server's code."""
        return await self._write(ClientOperation.SEND, queue_id, [data])

    async def send_refs(self, queue_id: int, data: Iterable[bytes]) -> int:
        """Put the concatenation of ``data`` on queue ``queue_id``."""
        return await self._write(ClientOperation.SEND, queue_id, data)

    async def recv(self, queue_id: int) -> bytes:
        """Take the next message from queue ``queue_id``."""
        return await self._read(ClientOperation.RECEIVE, queue_id)

    async def broadcast_root(self, group_name: str, data: bytes) -> int:
        """Publish ``data`` to broadcast group ``group_name``."""
        return await self._write(
            ClientOperation.BROADCAST_ROOT, _parse_group(group_name), [data]
        )

    async def broadcast_root_refs(
        self, group_name: str, data: Iterable[bytes]
    ) -> int:
        """Publish the concatenation of ``data`` to group ``group_name``."""
        return await self._write(
            ClientOperation.BROADCAST_ROOT, _parse_group(group_name), data
        )

    async def broadcast(self, group_name: str) -> bytes:
        """Take the next message published to group ``group_name``."""
        return await self._read(ClientOperation.BROADCAST, _parse_group(group_name))

    async def _write(
        self, operation: ClientOperation, target: int, chunks: Iterable[bytes]
    ) -> int:
        views = [memoryview(chunk) for chunk in chunks]
        header = _pack(operation, target, sum(view.nbytes for view in views))
        async with self.connection_pool.get_connection() as (reader, writer):
            writer.write(header)
            for view in views:
                writer.write(view)
            await writer.drain()
            return await _read_u32(reader)

    async def _read(self, operation: ClientOperation, target: int) -> bytes:
        request = _pack(operation, target)
        async with self.connection_pool.get_connection() as (reader, writer):
            writer.write(request)
            await writer.drain()
            total = await _read_u32(reader)
            data = await reader.readexactly(total)
            log.debug("Client read %s bytes", total)
            writer.write(_U32.pack(ServerResponse.ACCEPTED))
            await writer.drain()
            return data