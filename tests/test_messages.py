import asyncio
import dataclasses

import pytest

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
from burstrelay.protocol import ServerResponse


def test_requests_keep_their_fields():
    assert SendRequest(3, 9).queue_id == 9
    assert ReceiveRequest(4, 2).client_id == 4
    assert CreateBroadcastGroup(1, 7, 5).n_queues == 5
    assert BroadcastRootRequest(1, 7).group_name == 7
    assert BroadcastRequest(2, 8).group_name == 8
    assert CloseRequest(6).client_id == 6


def test_register_holds_channel():
    channel = asyncio.Queue()
    msg = Register(1, channel)
    assert msg.channel is channel


@pytest.mark.parametrize(
    "cls", [SendResponse, ReceiveResponse, BroadcastRootResponse, BroadcastResponse]
)
def test_queue_defaults_to_none(cls):
    msg = cls(ServerResponse.DENIED)
    assert msg.queue is None
    assert msg.response is ServerResponse.DENIED


def test_messages_are_immutable():
    msg = Accept(ServerResponse.ACCEPTED)
    with pytest.raises(dataclasses.FrozenInstanceError):
        msg.response = ServerResponse.DENIED
    assert msg.response is ServerResponse.ACCEPTED


def test_equality_by_value():
    assert SendRequest(1, 2) == SendRequest(1, 2)
    assert CreateBroadcastGroupResponse(ServerResponse.ACCEPTED) == (
        CreateBroadcastGroupResponse(ServerResponse.ACCEPTED)
    )
    assert CloseResponse() == CloseResponse()
    assert SendRequest(1, 2) != ReceiveRequest(1, 2)