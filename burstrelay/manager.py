"""Central task that owns the client registry, queues and broadcast groups."""

from __future__ import annotations

import asyncio
import logging
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
    FromManager,
    ReceiveRequest,
    ReceiveResponse,
    Register,
    SendRequest,
    SendResponse,
    ToManager,
)
from burstrelay.protocol import ServerResponse

__all__ = ["Manager", "start"]

log = logging.getLogger(__name__)

_QUEUE_CAPACITY = 1024 * 1024


class Manager:
    """Keeps track of clients, point-to-point queues and broadcast groups."""

    def __init__(self) -> None:
        self._clients: dict[int, asyncio.Queue] = {}
        self._queues: dict[int, asyncio.Queue] = {}
        self._groups: dict[int, asyncio.Queue] = {}

    def _client(self, client_id: int) -> asyncio.Queue:
        try:
            return self._clients[client_id]
        except KeyError:
            raise KeyError(f"client {client_id} is not registered") from None

    def _queue(self, queue_id: int) -> asyncio.Queue:
        queue = self._queues.get(queue_id)
        if queue is None:
            queue = asyncio.Queue(maxsize=_QUEUE_CAPACITY)
            self._queues[queue_id] = queue
        return queue

    async def _reply(self, client_id: int, reply: FromManager) -> None:
        await self._client(client_id).put(reply)

    async def handle(self, message: ToManager) -> None:
        """Process a single message from a worker."""
        match message:
            case Register(client_id=client_id, channel=channel):
                log.debug("Manager: register client %s", client_id)
                if client_id in self._clients:
                    log.debug("Manager: client %s is already registered", client_id)
                    await channel.put(Accept(ServerResponse.DENIED))
                else:
                    self._clients[client_id] = channel
                await channel.put(Accept(ServerResponse.ACCEPTED))

            case CreateBroadcastGroup(client_id=client_id, group_name=group):
                channel = self._client(client_id)
                if group in self._groups:
                    log.debug("Manager: broadcast group %s is already registered", group)
                else:
                    self._groups[group] = asyncio.Queue(maxsize=_QUEUE_CAPACITY)
                await channel.put(CreateBroadcastGroupResponse(ServerResponse.ACCEPTED))

            case SendRequest(client_id=client_id, queue_id=queue_id):
                channel = self._client(client_id)
                await channel.put(
                    SendResponse(ServerResponse.ACCEPTED, self._queue(queue_id))
                )

            case ReceiveRequest(client_id=client_id, queue_id=queue_id):
                channel = self._client(client_id)
                await channel.put(
                    ReceiveResponse(ServerResponse.ACCEPTED, self._queue(queue_id))
                )

            case BroadcastRootRequest(client_id=client_id, group_name=group):
                channel = self._client(client_id)
                queue = self._groups.get(group)
                await channel.put(BroadcastRootResponse(*self._lookup(queue)))

            case BroadcastRequest(client_id=client_id, group_name=group):
                channel = self._client(client_id)
                queue = self._groups.get(group)
                await channel.put(BroadcastResponse(*self._lookup(queue)))

            case CloseRequest(client_id=client_id):
                log.debug("Manager: removing client %s", client_id)
                channel = self._client(client_id)
                del self._clients[client_id]
                await channel.put(CloseResponse())

            case _:
                raise TypeError(f"unexpected manager message: {message!r}")

    @staticmethod
    def _lookup(
        queue: Optional[asyncio.Queue],
    ) -> tuple[ServerResponse, Optional[asyncio.Queue]]:
        if queue is None:
            return ServerResponse.DENIED, None
        return ServerResponse.ACCEPTED, queue

    async def run(self, inbox: asyncio.Queue) -> None:
        """Handle messages from ``inbox`` until a ``None`` item closes it."""
        while True:
            message = await inbox.get()
            if message is None:
                log.debug("Manager: inbox closed")
                return
            await self.handle(message)


async def start(inbox: asyncio.Queue) -> None:
    """Run a fresh manager over ``inbox``."""
    await Manager().run(inbox)