"""Operation and response codes exchanged between relay clients and the server."""

from __future__ import annotations

from enum import IntEnum

__all__ = ["ClientOperation", "ServerResponse", "parse_operation", "parse_response"]


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


class ClientOperation(IntEnum):
    """Operation a client asks the server to perform."""

    CREATE_BC_GROUP = 0
    SEND = 1
    RECEIVE = 2
    BROADCAST_ROOT = 3
    BROADCAST = 4
    CLOSE = 5
    ERROR = 6

    def __str__(self) -> str:
        return _camel(self.name)


class ServerResponse(IntEnum):
    """Status code the server answers with."""

    DENIED = 0
    ACCEPTED = 1
    CLOSE = 2
    ERROR = 3

    def __str__(self) -> str:
        return _camel(self.name)


def parse_operation(code: int) -> ClientOperation:
    """Map a wire code to an operation; unknown codes become ``ERROR``."""
    try:
        return ClientOperation(code)
    except ValueError:
        return ClientOperation.ERROR


def parse_response(code: int) -> ServerResponse:
    """Map a wire code to a server response; unknown codes become ``ERROR``."""
    try:
        return ServerResponse(code)
    except ValueError:
        return ServerResponse.ERROR