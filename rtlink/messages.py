"""Netlink and rtnetlink message structures and their wire encoding."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Union

from .constants import NLA_F_NESTED, NLA_F_NET_BYTEORDER
from .errors import NetlinkError, UnexpectedMessage

_NLA_HEADER = struct.Struct("=HH")
_NL_HEADER = struct.Struct("=IHHII")
_LINK_HEADER = struct.Struct("=BxHIII")
_ADDR_HEADER = struct.Struct("=BBBBI")
_ERROR_CODE = struct.Struct("=i")
_NLA_TYPE_MASK = ~(NLA_F_NESTED | NLA_F_NET_BYTEORDER) & 0xFFFF


def _align(length: int) -> int:
    return (length + 3) & ~3


def _unpack(fmt: str, value: bytes) -> int:
    try:
        (result,) = struct.unpack(fmt, value)
    except struct.error as exc:
        raise ValueError(f"attribute holds {len(value)} bytes: {exc}") from None
    return result


class MessageType(enum.IntEnum):
    """Netlink message types used by the routing family."""

    NOOP = 1
    ERROR = 2
    DONE = 3
    OVERRUN = 4
    NEWLINK = 16
    DELLINK = 17
    GETLINK = 18
    SETLINK = 19
    NEWADDR = 20
    DELADDR = 21
    GETADDR = 22
    NEWROUTE = 24
    DELROUTE = 25
    GETROUTE = 26
    NEWLINKPROP = 108
    DELLINKPROP = 109


_LINK_TYPES = frozenset(
    {
        MessageType.NEWLINK,
        MessageType.DELLINK,
        MessageType.GETLINK,
        MessageType.SETLINK,
        MessageType.NEWLINKPROP,
        MessageType.DELLINKPROP,
    }
)
_ADDRESS_TYPES = frozenset(
    {MessageType.NEWADDR, MessageType.DELADDR, MessageType.GETADDR}
)


@dataclass(frozen=True)
class Nla:
    """A netlink attribute: a type number and its raw payload."""

    kind: int
    value: bytes = b""

    @classmethod
    def from_u8(cls, kind: int, number: int) -> "Nla":
        return cls(kind, struct.pack("=B", number))

    @classmethod
    def from_u16(cls, kind: int, number: int) -> "Nla":
        return cls(kind, struct.pack("=H", number))

    @classmethod
    def from_u32(cls, kind: int, number: int) -> "Nla":
        return cls(kind, struct.pack("=I", number))

    @classmethod
    def from_i32(cls, kind: int, number: int) -> "Nla":
        return cls(kind, struct.pack("=i", number))

    @classmethod
    def from_str(cls, kind: int, text: str) -> "Nla":
        return cls(kind, text.encode() + b"\0")

    @classmethod
    def from_nested(cls, kind: int, children: Iterable["Nla"]) -> "Nla":
        return cls(kind, b"".join(child.encode() for child in children))

    def as_u8(self) -> int:
        return _unpack("=B", self.value)

    def as_u16(self) -> int:
        return _unpack("=H", self.value)

    def as_u32(self) -> int:
        return _unpack("=I", self.value)

    def as_i32(self) -> int:
        return _unpack("=i", self.value)

    def as_str(self) -> str:
        return self.value.split(b"\0", 1)[0].decode()

    def children(self) -> list["Nla"]:
        """Decode the payload as a sequence of nested attributes."""
        return Nla.decode_all(self.value)

    def encode(self) -> bytes:
        length = _NLA_HEADER.size + len(self.value)
        padding = b"\0" * (_align(length) - length)
        return _NLA_HEADER.pack(length, self.kind) + self.value + padding

    @staticmethod
    def find(nlas: Iterable["Nla"], kind: int) -> Optional["Nla"]:
        """Return the first attribute of the given kind, or None."""
        return next((nla for nla in nlas if nla.kind == kind), None)

    @staticmethod
    def decode_all(data: bytes) -> list["Nla"]:
        return list(_iter_nlas(data))


def _iter_nlas(data: bytes) -> Iterator[Nla]:
    view = memoryview(data)
    offset = 0
    while len(view) - offset >= _NLA_HEADER.size:
        length, kind = _NLA_HEADER.unpack_from(view, offset)
        if length < _NLA_HEADER.size or offset + length > len(view):
            raise ValueError(f"malformed attribute at offset {offset}")
        yield Nla(kind & _NLA_TYPE_MASK, bytes(view[offset + _NLA_HEADER.size : offset + length]))
        offset += _align(length)


@dataclass
class ErrorMessage:
    """An NLMSG_ERROR payload; a code of zero is an acknowledgement."""

    code: int = 0
    header: bytes = b""

    @property
    def is_ack(self) -> bool:
        return self.code == 0

    def encode(self) -> bytes:
        return _ERROR_CODE.pack(self.code) + self.header

    @classmethod
    def decode(cls, data: bytes) -> "ErrorMessage":
        if len(data) < _ERROR_CODE.size:
            raise ValueError("truncated netlink error message")
        (code,) = _ERROR_CODE.unpack_from(data)
        return cls(code, bytes(data[_ERROR_CODE.size :]))

    def __str__(self) -> str:
        return f"{os.strerror(-self.code)} (code {self.code})"


@dataclass
class LinkHeader:
    interface_family: int = 0
    link_layer_type: int = 0
    index: int = 0
    flags: int = 0
    change_mask: int = 0


@dataclass
class LinkMessage:
    """An ifinfomsg header followed by link attributes."""

    header: LinkHeader = field(default_factory=LinkHeader)
    nlas: list[Nla] = field(default_factory=list)

    def encode(self) -> bytes:
        h = self.header
        packed = _LINK_HEADER.pack(
            h.interface_family, h.link_layer_type, h.index, h.flags, h.change_mask
        )
        return packed + b"".join(nla.encode() for nla in self.nlas)

    @classmethod
    def decode(cls, data: bytes) -> "LinkMessage":
        if len(data) < _LINK_HEADER.size:
            raise ValueError("truncated link message")
        header = LinkHeader(*_LINK_HEADER.unpack_from(data))
        return cls(header, Nla.decode_all(bytes(data[_LINK_HEADER.size :])))


@dataclass
class AddressHeader:
    family: int = 0
    prefix_len: int = 0
    flags: int = 0
    scope: int = 0
    index: int = 0


@dataclass
class AddressMessage:
    """An ifaddrmsg header followed by address attributes."""

    header: AddressHeader = field(default_factory=AddressHeader)
    nlas: list[Nla] = field(default_factory=list)

    def encode(self) -> bytes:
        h = self.header
        packed = _ADDR_HEADER.pack(h.family, h.prefix_len, h.flags, h.scope, h.index)
        return packed + b"".join(nla.encode() for nla in self.nlas)

    @classmethod
    def decode(cls, data: bytes) -> "AddressMessage":
        if len(data) < _ADDR_HEADER.size:
            raise ValueError("truncated address message")
        header = AddressHeader(*_ADDR_HEADER.unpack_from(data))
        return cls(header, Nla.decode_all(bytes(data[_ADDR_HEADER.size :])))


Payload = Union[LinkMessage, AddressMessage, ErrorMessage, bytes, None]


@dataclass
class NetlinkHeader:
    message_type: int = 0
    flags: int = 0
    sequence: int = 0
    port: int = 0
    length: int = field(default=0, compare=False)


def _message_type(value: int) -> int:
    try:
        return MessageType(value)
    except ValueError:
        return value


def _decode_payload(message_type: int, body: bytes) -> Payload:
    if message_type == MessageType.ERROR:
        return ErrorMessage.decode(body)
    if message_type in _LINK_TYPES:
        return LinkMessage.decode(body)
    if message_type in _ADDRESS_TYPES:
        return AddressMessage.decode(body)
    return body or None


@dataclass
class NetlinkMessage:
    """A netlink header with its payload."""

    header: NetlinkHeader
    payload: Payload = None

    def encode(self) -> bytes:
        if self.payload is None:
            body = b""
        elif isinstance(self.payload, (bytes, bytearray)):
            body = bytes(self.payload)
        else:
            body = self.payload.encode()
        h = self.header
        length = _NL_HEADER.size + len(body)
        return _NL_HEADER.pack(length, h.message_type, h.flags, h.sequence, h.port) + body

    @classmethod
    def decode(cls, data: bytes) -> "NetlinkMessage":
        """Decode the first message held in ``data``."""
        if len(data) < _NL_HEADER.size:
            raise ValueError("truncated netlink header")
        length, message_type, flags, sequence, port = _NL_HEADER.unpack_from(data)
        if length < _NL_HEADER.size or length > len(data):
            raise ValueError(f"invalid netlink message length {length}")
        header = NetlinkHeader(_message_type(message_type), flags, sequence, port, length)
        body = bytes(data[_NL_HEADER.size : length])
        return cls(header, _decode_payload(message_type, body))


def parse_messages(data: bytes) -> Iterator[NetlinkMessage]:
    """Yield every netlink message packed in a received buffer."""
    view = memoryview(data)
    offset = 0
    while offset < len(view):
        message = NetlinkMessage.decode(view[offset:])
        yield message
        offset += _align(message.header.length)


def try_rtnl(message: NetlinkMessage, message_type: int) -> Payload:
    """Return the payload if the message has the expected type, else raise."""
    payload = message.payload
    if isinstance(payload, ErrorMessage) and not payload.is_ack:
        raise NetlinkError(payload)
    if message.header.message_type == message_type and not isinstance(payload, ErrorMessage):
        return payload
    raise UnexpectedMessage(message)


def try_nl(message: NetlinkMessage) -> None:
    """Raise if the message is a netlink error other than an acknowledgement."""
    payload = message.payload
    if isinstance(payload, ErrorMessage) and not payload.is_ack:
        raise NetlinkError(payload)