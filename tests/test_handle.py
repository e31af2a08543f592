import asyncio
import socket
from unittest import mock

import pytest

from rtlink.addr import AddressHandle
from rtlink.constants import (
    IFLA_IFNAME,
    NETLINK_ROUTE,
    NLM_F_DUMP,
    NLM_F_MULTI,
    NLM_F_REQUEST,
)
from rtlink.errors import NetlinkError, RequestFailed
from rtlink.handle import Connection, Handle, new_connection
from rtlink.link import LinkHandle
from rtlink.messages import (
    ErrorMessage,
    LinkHeader,
    LinkMessage,
    MessageType,
    NetlinkHeader,
    NetlinkMessage,
    Nla,
)


def link_reply(sequence, index, name, flags=NLM_F_MULTI):
    payload = LinkMessage(LinkHeader(index=index), [Nla.from_str(IFLA_IFNAME, name)])
    return NetlinkMessage(NetlinkHeader(MessageType.NEWLINK, flags, sequence), payload)


def done(sequence):
    return NetlinkMessage(NetlinkHeader(MessageType.DONE, NLM_F_MULTI, sequence), b"\0\0\0\0")


def error(sequence, code):
    return NetlinkMessage(NetlinkHeader(MessageType.ERROR, 0, sequence), ErrorMessage(code))


class FakeConnection:
    def __init__(self, batches=(), fail_send=False):
        self.batches = [list(batch) for batch in batches]
        self.fail_send = fail_send
        self.sent = []

    async def send(self, data):
        if self.fail_send:
            raise OSError("socket closed")
        self.sent.append(data)

    async def receive(self):
        if not self.batches:
            raise OSError("nothing left to read")
        return self.batches.pop(0)


async def collect(stream):
    return [item async for item in stream]


def names(links):
    return [Nla.find(link.nlas, IFLA_IFNAME).as_str() for link in links]


@pytest.fixture
def pair():
    left, right = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
    yield Connection(left), right
    left.close()
    right.close()


@pytest.mark.asyncio
async def test_dump_over_socket_collects_multipart_reply(pair):
    conn, peer = pair
    reply = link_reply(1, 1, "lo").encode() + link_reply(1, 2, "eth0").encode() + done(1).encode()
    peer.send(reply)
    handle = Handle(conn)

    links = await collect(handle.link().get().execute())

    assert names(links) == ["lo", "eth0"]
    assert [link.header.index for link in links] == [1, 2]
    sent = NetlinkMessage.decode(peer.recv(65536))
    assert sent.header.message_type == MessageType.GETLINK
    assert sent.header.flags == NLM_F_REQUEST | NLM_F_DUMP
    assert sent.header.sequence == 1


@pytest.mark.asyncio
async def test_connection_receive_parses_every_message(pair):
    conn, peer = pair
    peer.send(link_reply(7, 3, "br0").encode() + done(7).encode())

    messages = await conn.receive()

    assert [m.header.message_type for m in messages] == [MessageType.NEWLINK, MessageType.DONE]
    assert messages[0].payload.header.index == 3


@pytest.mark.asyncio
async def test_connection_send_writes_datagram(pair):
    conn, peer = pair
    data = done(4).encode()
    await conn.send(data)
    assert peer.recv(65536) == data


@pytest.mark.asyncio
async def test_single_reply_without_multi_flag_ends_stream():
    fake = FakeConnection([[link_reply(1, 5, "wg142", flags=0)]])
    handle = Handle(fake)

    links = await collect(handle.link().get().match_index(5).execute())

    assert names(links) == ["wg142"]
    assert fake.batches == []
    sent = NetlinkMessage.decode(fake.sent[0])
    assert sent.header.flags == NLM_F_REQUEST


@pytest.mark.asyncio
async def test_acknowledged_request_completes():
    fake = FakeConnection([[error(1, 0)]])
    handle = Handle(fake)

    await handle.address().add(2, "192.0.2.1", 24).execute()

    sent = NetlinkMessage.decode(fake.sent[0])
    assert sent.header.message_type == MessageType.NEWADDR
    assert sent.payload.header.index == 2
    assert sent.payload.header.prefix_len == 24


@pytest.mark.asyncio
async def test_error_reply_raises_netlink_error():
    fake = FakeConnection([[error(1, -17)]])
    handle = Handle(fake)

    with pytest.raises(NetlinkError) as info:
        await handle.link().delete(3).execute()

    assert info.value.error.code == -17


@pytest.mark.asyncio
async def test_replies_with_other_sequence_are_dropped():
    fake = FakeConnection([[link_reply(99, 9, "other", flags=0)], [link_reply(1, 1, "lo", flags=0)]])
    handle = Handle(fake)

    links = await collect(handle.link().get().match_name("lo").execute())

    assert names(links) == ["lo"]


@pytest.mark.asyncio
async def test_sequence_numbers_increase_per_request():
    fake = FakeConnection([[error(1, 0)], [error(2, 0)]])
    handle = Handle(fake)

    await handle.link().set(1).up().execute()
    await handle.link().set(1).down().execute()

    sequences = [NetlinkMessage.decode(data).header.sequence for data in fake.sent]
    assert sequences == [1, 2]


@pytest.mark.asyncio
async def test_nested_request_during_dump_is_dispatched():
    fake = FakeConnection([[link_reply(1, 4, "veth0")], [error(2, 0)], [done(1)]])
    handle = Handle(fake)
    dump = handle.link().get().execute()

    first = await dump.__anext__()
    await handle.link().delete(first.header.index).execute()
    rest = await collect(dump)

    assert rest == []
    sent = [NetlinkMessage.decode(data) for data in fake.sent]
    assert [m.header.message_type for m in sent] == [MessageType.GETLINK, MessageType.DELLINK]
    assert sent[1].payload.header.index == 4


@pytest.mark.asyncio
async def test_send_failure_raises_request_failed():
    handle = Handle(FakeConnection(fail_send=True))
    with pytest.raises(RequestFailed):
        await collect(handle.link().get().execute())


@pytest.mark.asyncio
async def test_receive_failure_raises_request_failed():
    fake = FakeConnection([])
    handle = Handle(fake)
    with pytest.raises(RequestFailed):
        await handle.link().set(1).mtu(1400).execute()
    assert len(fake.sent) == 1


@pytest.mark.asyncio
async def test_notify_sends_without_reading():
    fake = FakeConnection([[done(1)]])
    handle = Handle(fake)
    message = NetlinkMessage(NetlinkHeader(MessageType.SETLINK, NLM_F_REQUEST), LinkMessage())

    await handle.notify(message)

    decoded = NetlinkMessage.decode(fake.sent[0])
    assert decoded.header.message_type == MessageType.SETLINK
    assert decoded.header.sequence == 1
    assert len(fake.batches) == 1


@pytest.mark.asyncio
async def test_notify_failure_raises_request_failed():
    handle = Handle(FakeConnection(fail_send=True))
    message = NetlinkMessage(NetlinkHeader(MessageType.SETLINK, NLM_F_REQUEST), LinkMessage())
    with pytest.raises(RequestFailed):
        await handle.notify(message)


def test_sub_handles_share_the_handle():
    handle = Handle(FakeConnection())
    link = handle.link()
    address = handle.address()
    assert isinstance(link, LinkHandle) and link.handle is handle
    assert isinstance(address, AddressHandle) and address.handle is handle


def test_bind_passes_groups_to_socket():
    sock = mock.Mock()
    conn = Connection(sock)
    conn.bind(64 | 1024)
    assert sock.bind.call_args == mock.call((0, 1088))
    assert sock.setblocking.call_args == mock.call(False)


@pytest.mark.parametrize("groups", [-1, 1 << 32, "64"])
def test_bind_rejects_invalid_groups(groups):
    sock = mock.Mock()
    conn = Connection(sock)
    with pytest.raises(ValueError):
        conn.bind(groups)
    assert sock.bind.call_count == 0


def test_close_and_context_manager_close_socket():
    sock = mock.Mock()
    with Connection(sock) as conn:
        assert conn.sock is sock
    assert sock.close.call_count == 1


def test_invalid_buffer_size_rejected():
    with pytest.raises(ValueError):
        Connection(mock.Mock(), buffer_size=0)


def test_new_connection_opens_routing_socket():
    with mock.patch("rtlink.handle.socket") as fake_socket:
        connection, handle = new_connection()
    assert fake_socket.socket.call_args == mock.call(
        fake_socket.AF_NETLINK, fake_socket.SOCK_RAW, NETLINK_ROUTE
    )
    assert connection.sock is fake_socket.socket.return_value
    assert handle.connection is connection


@pytest.mark.asyncio
async def test_unmatched_reply_is_not_delivered_to_later_request():
    fake = FakeConnection([[link_reply(2, 8, "late", flags=0)], [link_reply(1, 1, "lo", flags=0)]])
    handle = Handle(fake)
    first = await collect(handle.link().get().match_index(1).execute())
    assert names(first) == ["lo"]
    assert await asyncio.wait_for(asyncio.sleep(0, result=fake.batches), 1) == []