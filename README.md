# burstrelay

burstrelay is a small asyncio TCP message relay. One server holds numbered
point-to-point queues and numbered broadcast groups. Clients push byte
payloads into them and pull payloads back out. Client and server talk over a
simple big-endian binary protocol. The package has no third-party
dependencies.

## Install

```
pip install .
```

## Running the server

```
burstrelay-server                  # listens on 127.0.0.1:8000
burstrelay-server 0.0.0.0:9000     # any host:port
burstrelay-server -v               # debug logging
```

Each accepted connection gets its own worker task, numbered from 0 in the
order of arrival. A single manager task owns the registry of clients, the
queues and the groups.

You can also run the server from your own code:

```python
import asyncio
from burstrelay.server import Server

async def main():
    server = Server("127.0.0.1:0")   # port 0 picks a free port
    await server.bind()
    print(server.port)
    try:
        await server.serve_forever()
    finally:
        await server.close()

asyncio.run(main())
```

`Server.start_manager()` and `Server.start_client(queue)` are the separate
steps that `serve_forever()` runs. `close()` stops listening and cancels the
manager and every worker.

## Using the client

```python
import asyncio
from burstrelay.connection_pool import ConnectionPool
from burstrelay.client import Client

async def main():
    pool = ConnectionPool("127.0.0.1:8000", 1)
    await pool.initialize_conns()
    client = Client(pool)

    await client.send(0, b"\x01" * 1024)    # returns the server code (1 = Accepted)
    data = await client.recv(0)             # waits until a message is there

    await client.create_bc_group("0", 1)
    await client.broadcast_root("0", b"hello")
    payload = await client.broadcast("0")

    await pool.close()

asyncio.run(main())
```

- Queue ids are integers. Group names are strings of decimal digits, such as
  `"0"`. Any other group name raises `ValueError`, and so does a value that
  does not fit in 32 bits.
- `send_refs` and `broadcast_root_refs` take an iterable of byte chunks and
  send them as one message.
- A queue is created the first time anyone sends to it or receives from it.
- A broadcast group is a single shared queue. Each published message goes to
  exactly one `broadcast` call. It is not copied to every reader.
- `ConnectionPool.get_connection()` is an async context manager. It lends out
  a `(reader, writer)` pair and takes it back when the block ends. If the
  block raises, the connection is closed and dropped from the pool.
- `ConnectionPool.close()` sends `Close` on every pooled connection. It drops
  each connection that the server confirms.

## Demo

Start a server first, then run one of these:

```
burstrelay-demo sendrecv
burstrelay-demo broadcast
burstrelay-demo sendrecv 127.0.0.1:9000
```

`sendrecv` sends a 1 MiB payload to queue 0 and receives it back.
`broadcast` creates group `"0"`, publishes 1 MiB to it and reads it back. Each
demo prints the server codes and the number of bytes it received. The same
sessions are available as `burstrelay.demo.run_sendrecv(address)` and
`run_broadcast(address)`.

## Protocol

Every integer on the wire is an unsigned 32-bit big-endian value
(`burstrelay.protocol.ClientOperation` and `ServerResponse`).

| Operation       | Code | Request                    | Reply                           |
|-----------------|------|----------------------------|---------------------------------|
| CreateBcGroup   | 0    | op, group, n_queues        | code                            |
| Send            | 1    | op, queue, length, payload | code                            |
| Receive         | 2    | op, queue                  | length, payload; client acks    |
| BroadcastRoot   | 3    | op, group, length, payload | code                            |
| Broadcast       | 4    | op, group                  | length, payload; client acks    |
| Close           | 5    | op                         | code                            |

Response codes: `Denied` = 0, `Accepted` = 1, `Close` = 2, `Error` = 3.

## Limitations

- Everything is kept in memory. Queues and groups are lost when the server
  stops.
- There is no authentication and no encryption.
- The `n_queues` field of CreateBcGroup is read but not used.
- `BroadcastRoot` or `Broadcast` on a group that does not exist gets no reply
  from the server. A client waiting for one will block.

## Tests

```
pip install .[test]
pytest
```