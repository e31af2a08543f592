import os
import struct

import pytest

from rtlink.constants import AF_INET, IFLA_IFNAME, IFLA_LINKINFO, IFLA_MTU, NLA_F_NESTED
from rtlink.errors import NetlinkError, UnexpectedMessage
from rtlink.messages import (
    AddressHeader,
    AddressMessage,
    ErrorMessage,
    LinkHeader,
    LinkMessage,
    MessageType,
    NetlinkHeader,
    NetlinkMessage,
    Nla,
    parse_messages,
    try_nl,
    try_rtnl,
)


def _link_message():
    return LinkMessage(
        LinkHeader(interface_family=AF_INET, index=3, flags=1, change_mask=1),
        [Nla.from_str(IFLA_IFNAME, "eth0"), Nla.from_u32(IFLA_MTU, 1500)],
    )


def test_nla_encode_is_padded_to_four_bytes():
    encoded = Nla.from_str(IFLA_IFNAME, "lo").encode()
    assert len(encoded) % 4 == 0
    (length,) = struct.unpack_from("=H", encoded)
    assert length == 4 + len(b"lo\0")
    assert encoded[length:] == b"\0" * (len(encoded) - length)


def test_nla_scalar_round_trips():
    assert Nla.from_u8(1, 200).as_u8() == 200
    assert Nla.from_u16(1, 4789).as_u16() == 4789
    assert Nla.from_u32(1, 1500).as_u32() == 1500
    assert Nla.from_i32(1, -5).as_i32() == -5
    assert Nla.from_str(1, "veth-a").as_str() == "veth-a"


def test_nla_wrong_width_raises_value_error():
    with pytest.raises(ValueError):
        Nla(1, b"\x01\x02").as_u32()


def test_nested_round_trip():
    children = [Nla.from_str(1, "bond"), Nla.from_u32(2, 7)]
    nested = Nla.from_nested(IFLA_LINKINFO, children)
    assert nested.children() == children


def test_decode_masks_nested_flag():
    raw = struct.pack("=HH", 8, IFLA_LINKINFO | NLA_F_NESTED) + b"\x01\x02\x03\x04"
    (nla,) = Nla.decode_all(raw)
    assert nla == Nla(IFLA_LINKINFO, b"\x01\x02\x03\x04")


def test_decode_all_rejects_overlong_attribute():
    raw = struct.pack("=HH", 40, 1) + b"\x00" * 4
    with pytest.raises(ValueError):
        Nla.decode_all(raw)


def test_find_returns_first_match_or_none():
    nlas = [Nla.from_u32(4, 1), Nla.from_str(3, "a"), Nla.from_str(3, "b")]
    assert Nla.find(nlas, 3).as_str() == "a"
    assert Nla.find(nlas, 99) is None


def test_link_message_round_trip():
    message = _link_message()
    assert LinkMessage.decode(message.encode()) == message


def test_link_header_is_sixteen_bytes():
    assert len(LinkMessage().encode()) == 16


def test_address_message_round_trip():
    message = AddressMessage(
        AddressHeader(family=AF_INET, prefix_len=24, index=2),
        [Nla(1, bytes([10, 0, 0, 1]))],
    )
    assert AddressMessage.decode(message.encode()) == message


def test_netlink_message_round_trip_and_length():
    message = NetlinkMessage(NetlinkHeader(MessageType.NEWLINK, 5, 9, 0), _link_message())
    encoded = message.encode()
    decoded = NetlinkMessage.decode(encoded)
    assert decoded == message
    assert decoded.header.length == len(encoded)
    assert decoded.header.message_type is MessageType.NEWLINK


def test_unknown_type_keeps_raw_payload():
    message = NetlinkMessage(NetlinkHeader(MessageType.NEWROUTE), b"\x01\x02\x03\x04")
    assert NetlinkMessage.decode(message.encode()).payload == b"\x01\x02\x03\x04"


def test_parse_messages_splits_buffer():
    first = NetlinkMessage(NetlinkHeader(MessageType.NEWLINK, sequence=1), _link_message())
    second = NetlinkMessage(NetlinkHeader(MessageType.ERROR, sequence=2), ErrorMessage(0))
    assert list(parse_messages(first.encode() + second.encode())) == [first, second]


def test_decode_truncated_raises():
    encoded = NetlinkMessage(NetlinkHeader(MessageType.NEWLINK), _link_message()).encode()
    with pytest.raises(ValueError):
        NetlinkMessage.decode(encoded[:10])
    with pytest.raises(ValueError):
        NetlinkMessage.decode(encoded[:-4])


def test_error_message_text_and_ack():
    err = ErrorMessage(-1)
    assert not err.is_ack
    assert os.strerror(1) in str(err)
    assert ErrorMessage(0).is_ack


def test_try_rtnl_returns_payload():
    payload = _link_message()
    message = NetlinkMessage(NetlinkHeader(MessageType.NEWLINK), payload)
    assert try_rtnl(message, MessageType.NEWLINK) is payload


def test_try_rtnl_raises_on_error():
    message = NetlinkMessage(NetlinkHeader(MessageType.ERROR), ErrorMessage(-19))
    with pytest.raises(NetlinkError) as info:
        try_rtnl(message, MessageType.NEWLINK)
    assert info.value.error.code == -19


def test_try_rtnl_raises_on_wrong_type():
    message = NetlinkMessage(NetlinkHeader(MessageType.NEWADDR), AddressMessage())
    with pytest.raises(UnexpectedMessage) as info:
        try_rtnl(message, MessageType.NEWLINK)
    assert info.value.message is message


def test_try_rtnl_treats_ack_as_unexpected():
    message = NetlinkMessage(NetlinkHeader(MessageType.ERROR), ErrorMessage(0))
    with pytest.raises(UnexpectedMessage):
        try_rtnl(message, MessageType.NEWLINK)


def test_try_nl_ignores_ack_and_raises_error():
    ack = NetlinkMessage(NetlinkHeader(MessageType.ERROR), ErrorMessage(0))
    assert try_nl(ack) is None
    failure = NetlinkMessage(NetlinkHeader(MessageType.ERROR), ErrorMessage(-17))
    with pytest.raises(NetlinkError) as info:
        try_nl(failure)
    assert info.value.error.code == -17