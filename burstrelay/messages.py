"""Messages passed between client workers and the manager task."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

from burstrelay.protocol import ServerResponse

_message = dataclass(frozen=True)


def _kind(name: str, base: type, doc: str) -> type:
    """Create a message type that carries exactly the fields of ``base``."""
    return type(name, (base,), {"__doc__": doc, "__module__": __name__, "__qualname__": name})


# Worker -> manager


@_message
class _FromClient:
    client_id: int


@_message
class Register(_FromClient):
    """A worker announces itself and the channel the manager answers on."""

    channel: asyncio.Queue


@_message
class _QueueRequest(_FromClient):
    queue_id: int


@_message
class _GroupRequest(_FromClient):
    group_name: int


@_message
class CreateBroadcastGroup(_GroupRequest):
    """A worker asks for a broadcast group to exist."""

    n_queues: int


SendRequest = _kind(
    "SendRequest", _QueueRequest, "A worker asks for the sending end of a point-to-point queue."
)
ReceiveRequest = _kind(
    "ReceiveRequest", _QueueRequest, "A worker asks for the receiving end of a point-to-point queue."
)
BroadcastRootRequest = _kind(
    "BroadcastRootRequest", _GroupRequest, "A worker asks for the publishing end of a broadcast group."
)
BroadcastRequest = _kind(
    "BroadcastRequest", _GroupRequest, "A worker asks for the reading end of a broadcast group."
)
CloseRequest = _kind("CloseRequest", _FromClient, "A worker asks to be removed from the manager.")


# Manager -> worker


@_message
class _Reply:
    response: ServerResponse


@_message
class _QueueReply(_Reply):
    queue: Optional[asyncio.Queue] = None


@_message
class CloseResponse:
    """The manager confirms that the client has been removed."""


Accept = _kind("Accept", _Reply, "Answer to a registration.")
CreateBroadcastGroupResponse = _kind(
    "CreateBroadcastGroupResponse", _Reply, "Answer to a group creation."
)
SendResponse = _kind(
    "SendResponse", _QueueReply, "Answer to a send request, carrying the queue to write to."
)
ReceiveResponse = _kind(
    "ReceiveResponse", _QueueReply, "Answer to a receive request, carrying the queue to read from."
)
BroadcastRootResponse = _kind(
    "BroadcastRootResponse",
    _QueueReply,
    "Answer to a publish request, carrying the group's queue if it exists.",
)
BroadcastResponse = _kind(
    "BroadcastResponse",
    _QueueReply,
    "Answer to a broadcast read, carrying the group's queue if it exists.",
)

ToManager = Union[
    Register,
    CreateBroadcastGroup,
    SendRequest,
    ReceiveRequest,
    BroadcastRootRequest,
    BroadcastRequest,
    CloseRequest,
]

FromManager = Union[
    Accept,
    CreateBroadcastGroupResponse,
    SendResponse,
    ReceiveResponse,
    BroadcastRootResponse,
    BroadcastResponse,
    CloseResponse,
]