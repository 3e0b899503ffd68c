"""Per-connection task that serves one relay client."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import struct
from typing import Optional

from burstrelay.messages import (
    Accept,
    BroadcastRequest,
    BroadcastResponse,
    BroadcastRootRequest,
    BroadcastRootResponse,
    CloseRequest,
    CloseResponse,
    CreateBroadcastGroup,
    CreateBroadcastGroupResponse,
    ReceiveRequest,
    ReceiveResponse,
    Register,
    SendRequest,
    SendResponse,
)
from burstrelay.protocol import ClientOperation, ServerResponse, parse_operation

__all__ = ["worker_task"]

log = logging.getLogger(__name__)

_QUEUE_CAPACITY = 1024 * 1024
_U32 = struct.Struct(">I")

_QUEUE_OPERATIONS = {ClientOperation.SEND, ClientOperation.RECEIVE}
_GROUP_OPERATIONS = {
    ClientOperation.CREATE_BC_GROUP,
    ClientOperation.BROADCAST_ROOT,
    ClientOperation.BROADCAST,
}
_REQUESTS = {
    ClientOperation.SEND: SendRequest,
    ClientOperation.RECEIVE: ReceiveRequest,
    ClientOperation.BROADCAST_ROOT: BroadcastRootRequest,
    ClientOperation.BROADCAST: BroadcastRequest,
}


async def _read_u32(reader: asyncio.StreamReader) -> int:
    return _U32.unpack(await reader.readexactly(_U32.size))[0]


async def _write_u32(writer: asyncio.StreamWriter, value: int) -> None:
    writer.write(_U32.pack(value))
    await writer.drain()


async def _identify_operation(
    client_id: int, reader: asyncio.StreamReader
) -> tuple[ClientOperation, Optional[int]]:
    code = await _read_u32(reader)
    operation = parse_operation(code)
    argument = None
    if operation in _QUEUE_OPERATIONS or operation in _GROUP_OPERATIONS:
        argument = await _read_u32(reader)
    log.debug("Client %s: operation %s", client_id, operation)
    if operation is ClientOperation.ERROR:
        raise ValueError(f"unknown operation code {code}")
    return operation, argument


async def _send_operation(
    client_id: int,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    queue: asyncio.Queue,
) -> None:
    total = await _read_u32(reader)
    payload = await reader.readexactly(total)
    await queue.put(payload)
    log.debug("Client %s: send of %s bytes completed", client_id, total)
    await _write_u32(writer, ServerResponse.ACCEPTED)


async def _receive_operation(
    client_id: int,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    queue: asyncio.Queue,
) -> None:
    message = await queue.get()
    writer.write(_U32.pack(len(message)))
    writer.write(message)
    await writer.drain()
    log.debug("Client %s: receive operation completed", client_id)
    confirmation = await _read_u32(reader)
    log.debug("Client %s: operation response %s", client_id, confirmation)


async def _from_manager(
    channel: asyncio.Queue,
    client_id: int,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> bool:
    """Act on the manager's next reply; return whether the client stays alive."""
    reply = await channel.get()
    match reply:
        case Accept(response=code):
            if code == ServerResponse.DENIED:
                log.debug("Client %s: already registered, closing", client_id)
                return False
        case CreateBroadcastGroupResponse(response=code):
            if code == ServerResponse.DENIED:
                log.debug("Client %s: broadcast group not created", client_id)
            else:
                await _write_u32(writer, code)
        case SendResponse(response=code, queue=queue) | BroadcastRootResponse(
            response=code, queue=queue
        ):
            if code == ServerResponse.DENIED:
                log.debug("Client %s: destination queue not found", client_id)
            else:
                await _send_operation(client_id, reader, writer, queue)
        case ReceiveResponse(response=code, queue=queue) | BroadcastResponse(
            response=code, queue=queue
        ):
            if code == ServerResponse.DENIED:
                log.debug("Client %s: source queue not found", client_id)
            else:
                await _receive_operation(client_id, reader, writer, queue)
        case CloseResponse():
            log.debug("Client %s: closing", client_id)
            await _write_u32(writer, ServerResponse.CLOSE)
            return False
        case _:
            raise TypeError(f"unexpected manager reply: {reply!r}")
    return True


async def worker_task(
    client_id: int,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    to_manager: asyncio.Queue,
) -> None:
    """Serve one client connection until it closes or is refused."""
    log.debug("Client %s: start connection", client_id)
    channel: asyncio.Queue = asyncio.Queue(maxsize=_QUEUE_CAPACITY)
    try:
        await to_manager.put(Register(client_id, channel))
        alive = await _from_manager(channel, client_id, reader, writer)
        while alive:
            operation, argument = await _identify_operation(client_id, reader)
            if operation is ClientOperation.CREATE_BC_GROUP:
                n_queues = await _read_u32(reader)
                await to_manager.put(CreateBroadcastGroup(client_id, argument, n_queues))
                await _from_manager(channel, client_id, reader, writer)
                continue
            if operation is ClientOperation.CLOSE:
                await to_manager.put(CloseRequest(client_id))
            else:
                await to_manager.put(_REQUESTS[operation](client_id, argument))
            alive = await _from_manager(channel, client_id, reader, writer)
    finally:
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()