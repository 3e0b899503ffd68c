"""TCP front end: accepts connections and hands each to a worker task."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
from typing import Optional

from burstrelay import manager
from burstrelay.worker import worker_task

__all__ = ["Server", "main", "DEFAULT_ADDRESS"]

log = logging.getLogger(__name__)

DEFAULT_ADDRESS = "127.0.0.1:8000"
_QUEUE_CAPACITY = 1024 * 1024


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"address must be host:port, got {address!r}")
    try:
        number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}") from None
    if not 0 <= number <= 65535:
        raise ValueError(f"port out of range in address {address!r}")
    return host, number


def _report(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        log.error("Task %s failed", task.get_name(), exc_info=error)


class Server:
    """Relay server listening on ``host:port``."""

    def __init__(self, address: str = DEFAULT_ADDRESS) -> None:
        self.host, self.port = _split_address(address)
        self.client_id = 0
        self._listener: Optional[asyncio.AbstractServer] = None
        self._pending: Optional[asyncio.Queue] = None
        self._tasks: set[asyncio.Task] = set()

    async def bind(self) -> None:
        """Open the listening socket; port 0 picks a free port."""
        if self._listener is not None:
            raise RuntimeError("server is already bound")
        self._pending = asyncio.Queue()
        self._listener = await asyncio.start_server(
            self._on_connect, self.host, self.port
        )
        self.port = self._listener.sockets[0].getsockname()[1]
        log.info("Server: listening on %s:%s", self.host, self.port)

    def _on_connect(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._pending.put_nowait((reader, writer))

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_report)
        return task

    async def start_manager(self) -> asyncio.Queue:
        """Start the manager task and return the queue that feeds it."""
        inbox: asyncio.Queue = asyncio.Queue(maxsize=_QUEUE_CAPACITY)
        self._spawn(manager.start(inbox), "manager")
        return inbox

    async def start_client(self, manager_queue: asyncio.Queue) -> None:
        """Wait for one connection and start a worker for it."""
        if self._listener is None:
            raise RuntimeError("server is not bound")
        reader, writer = await self._pending.get()
        log.info("Server: accepted request from %s", writer.get_extra_info("peername"))
        client_id = self.client_id
        self._spawn(
            worker_task(client_id, reader, writer, manager_queue),
            f"client-{client_id}",
        )
        self.client_id += 1

    async def serve_forever(self) -> None:
        """Bind if needed, start the manager and accept clients forever."""
        if self._listener is None:
            await self.bind()
        inbox = await self.start_manager()
        while True:
            await self.start_client(inbox)

    async def close(self) -> None:
        """Stop listening and cancel the manager and every worker."""
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._pending is not None:
            while not self._pending.empty():
                _, writer = self._pending.get_nowait()
                writer.close()
            self._pending = None


def main(argv: Optional[list[str]] = None) -> int:
    """Run the relay server from the command line."""
    parser = argparse.ArgumentParser(
        prog="burstrelay-server", description="Run the burst message relay server."
    )
    parser.add_argument(
        "address",
        nargs="?",
        default=DEFAULT_ADDRESS,
        help=f"host:port to listen on (default {DEFAULT_ADDRESS})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="enable debug logging"
    )
    args = parser.parse_args(argv)

    try:
        server = Server(args.address)
    except ValueError as error:
        parser.error(str(error))

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    async def run() -> None:
        try:
            await server.serve_forever()
        finally:
            await server.close()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())
    return 0