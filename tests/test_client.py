import asyncio
import contextlib

import pytest
import pytest_asyncio

from burstrelay.client import Client
from burstrelay.connection_pool import ConnectionPool
from burstrelay.protocol import ServerResponse
from burstrelay.server import Server

ACK = b"\x00\x00\x00\x01"


async def _cancel(task):
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


@pytest_asyncio.fixture
async def client():
    """A client with one connection to a real relay server."""
    async with contextlib.AsyncExitStack() as stack:
        relay = Server("127.0.0.1:0")
        await relay.bind()
        stack.push_async_callback(relay.close)
        stack.push_async_callback(_cancel, asyncio.create_task(relay.serve_forever()))
        pool = ConnectionPool(f"127.0.0.1:{relay.port}", 1)
        await pool.initialize_conns()
        yield Client(pool)
        await asyncio.wait_for(pool.close(), 5)


@pytest.mark.asyncio
async def test_send_then_recv_round_trip(client):
    payload = bytes(range(256)) * 40
    assert await client.send(0, payload) == ServerResponse.ACCEPTED
    assert await client.recv(0) == payload


@pytest.mark.asyncio
async def test_messages_keep_their_order(client):
    for item in (b"first", b"second", b""):
        await client.send(3, item)
    received = [await client.recv(3) for _ in range(3)]
    assert received == [b"first", b"second", b""]


@pytest.mark.asyncio
async def test_send_refs_concatenates_slices(client):
    parts = [b"alpha", bytearray(b"-"), memoryview(b"omega")]
    assert await client.send_refs(5, parts) == ServerResponse.ACCEPTED
    assert await client.recv(5) == b"alpha-omega"


@pytest.mark.asyncio
async def test_broadcast_round_trip(client):
    assert await client.create_bc_group("4", 1) == ServerResponse.ACCEPTED
    assert await client.broadcast_root("4", b"news") == ServerResponse.ACCEPTED
    assert await client.broadcast("4") == b"news"


@pytest.mark.asyncio
async def test_broadcast_root_refs_round_trip(client):
    await client.create_bc_group("2", 1)
    code = await client.broadcast_root_refs("2", [b"ab", b"cd"])
    assert code == ServerResponse.ACCEPTED
    assert await client.broadcast("2") == b"abcd"


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["abc", "-1", "", "1.5", str(2**32)])
async def test_invalid_group_name_raises(name):
    unconnected = Client(ConnectionPool("127.0.0.1:8000", 1))
    with pytest.raises(ValueError):
        await unconnected.broadcast(name)
    with pytest.raises(ValueError):
        await unconnected.create_bc_group(name, 1)


@pytest.mark.asyncio
async def test_queue_id_out_of_range_raises():
    unconnected = Client(ConnectionPool("127.0.0.1:8000", 1))
    with pytest.raises(ValueError):
        await unconnected.send(2**32, b"x")
    with pytest.raises(ValueError):
        await unconnected.recv(-1)


@pytest.mark.parametrize(
    "call, request_bytes, reply, expected, ack",
    [
        (
            lambda c: c.create_bc_group("7", 3),
            b"\x00\x00\x00\x00" b"\x00\x00\x00\x07" b"\x00\x00\x00\x03",
            ACK,
            ServerResponse.ACCEPTED,
            None,
        ),
        (
            lambda c: c.send(9, b"abc"),
            b"\x00\x00\x00\x01" b"\x00\x00\x00\x09" b"\x00\x00\x00\x03" b"abc",
            ACK,
            ServerResponse.ACCEPTED,
            None,
        ),
        (
            lambda c: c.recv(4),
            b"\x00\x00\x00\x02" b"\x00\x00\x00\x04",
            b"\x00\x00\x00\x05hello",
            b"hello",
            ACK,
        ),
    ],
    ids=["create_bc_group", "send", "recv"],
)
@pytest.mark.asyncio
async def test_wire_format(call, request_bytes, reply, expected, ack):
    captured = {}

    async def handler(reader, writer):
        captured["request"] = await reader.readexactly(len(request_bytes))
        writer.write(reply)
        await writer.drain()
        if ack is not None:
            captured["ack"] = await reader.readexactly(4)
        await reader.readexactly(4)
        writer.write(b"\x00\x00\x00\x02")
        await writer.drain()
        writer.close()

    listener = await asyncio.start_server(handler, "127.0.0.1", 0)
    async with listener:
        port = listener.sockets[0].getsockname()[1]
        pool = ConnectionPool(f"127.0.0.1:{port}", 1)
        await pool.initialize_conns()
        result = await call(Client(pool))
        await asyncio.wait_for(pool.close(), 5)
    assert result == expected
    assert captured["request"] == request_bytes
    assert captured.get("ack") == ack