"""Address requests: adding, deleting and listing interface addresses.

Every request talks to a handle whose ``request(message)`` method returns an
async iterable of the response messages.
"""

from __future__ import annotations

import ipaddress
from typing import Any, AsyncIterator, Optional, Union

from .constants import (
    AF_INET,
    AF_INET6,
    IFA_ADDRESS,
    IFA_ANYCAST,
    IFA_BROADCAST,
    IFA_LOCAL,
    IFA_MULTICAST,
    IFA_UNSPEC,
    NLM_F_ACK,
    NLM_F_CREATE,
    NLM_F_DUMP,
    NLM_F_EXCL,
    NLM_F_REPLACE,
    NLM_F_REQUEST,
)
from .messages import (
    AddressHeader,
    AddressMessage,
    MessageType,
    NetlinkHeader,
    NetlinkMessage,
    Nla,
    try_nl,
    try_rtnl,
)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
_MATCHED_KINDS = frozenset({IFA_UNSPEC, IFA_ADDRESS, IFA_LOCAL, IFA_MULTICAST, IFA_ANYCAST})


async def _send_acked(handle: Any, message_type: int, flags: int, payload: AddressMessage) -> None:
    request = NetlinkMessage(NetlinkHeader(message_type, flags), payload)
    async for response in handle.request(request):
        try_nl(response)


def _ipv4_broadcast(address: ipaddress.IPv4Address, prefix_len: int) -> bytes:
    if prefix_len == 32:
        return address.packed
    if prefix_len > 32:
        raise ValueError(f"invalid IPv4 prefix length {prefix_len}")
    return ((0xFFFF_FFFF >> prefix_len) | int(address)).to_bytes(4, "big")


class AddressAddRequest:
    """Add an address to an interface, like ``ip address add``."""

    def __init__(self, handle: Any, index: int, address: Any, prefix_len: int) -> None:
        if not 0 <= prefix_len <= 0xFF:
            raise ValueError(f"invalid prefix length {prefix_len}")
        address = ipaddress.ip_address(address)
        packed = address.packed
        family = AF_INET if address.version == 4 else AF_INET6
        header = AddressHeader(family=family, prefix_len=prefix_len, index=index)

        if address.is_multicast:
            nlas = [Nla(IFA_MULTICAST, packed)]
        elif address.is_unspecified:
            nlas = [Nla(IFA_UNSPEC, packed)]
        elif address.version == 6:
            nlas = [Nla(IFA_ADDRESS, packed)]
        else:
            # IPv4 also gets IFA_LOCAL and a broadcast address; IPv6 has no broadcast.
            nlas = [
                Nla(IFA_ADDRESS, packed),
                Nla(IFA_LOCAL, packed),
                Nla(IFA_BROADCAST, _ipv4_broadcast(address, prefix_len)),
            ]

        self.handle = handle
        self.message = AddressMessage(header, nlas)
        self._replace = False

    def replace(self) -> "AddressAddRequest":
        """Replace an existing matching address instead of failing."""
        self._replace = True
        return self

    async def execute(self) -> None:
        mode = NLM_F_REPLACE if self._replace else NLM_F_EXCL
        flags = NLM_F_REQUEST | NLM_F_ACK | mode | NLM_F_CREATE
        await _send_acked(self.handle, MessageType.NEWADDR, flags, self.message)


class AddressDelRequest:
    """Delete the address described by a message."""

    def __init__(self, handle: Any, message: AddressMessage) -> None:
        self.handle = handle
        self.message = message

    async def execute(self) -> None:
        await _send_acked(
            self.handle, MessageType.DELADDR, NLM_F_REQUEST | NLM_F_ACK, self.message
        )


class AddressGetRequest:
    """Dump addresses, filtered on the client side, like ``ip address show``."""

    def __init__(self, handle: Any) -> None:
        self.handle = handle
        self.message = AddressMessage()
        self._index: Optional[int] = None
        self._prefix_len: Optional[int] = None
        self._address: Optional[IPAddress] = None

    def set_link_index_filter(self, index: int) -> "AddressGetRequest":
        """Return only the addresses of the given interface."""
        self._index = index
        return self

    def set_prefix_length_filter(self, prefix: int) -> "AddressGetRequest":
        """Return only the addresses of the given prefix length."""
        self._prefix_len = prefix
        return self

    def set_address_filter(self, address: Any) -> "AddressGetRequest":
        """Return only the entries carrying the given address."""
        self._address = ipaddress.ip_address(address)
        return self

    def _matches(self, message: AddressMessage) -> bool:
        if self._index is not None and message.header.index != self._index:
            return False
        if self._prefix_len is not None and message.header.prefix_len != self._prefix_len:
            return False
        if self._address is None:
            return True
        packed = self._address.packed
        return any(nla.kind in _MATCHED_KINDS and nla.value == packed for nla in message.nlas)

    async def execute(self) -> AsyncIterator[AddressMessage]:
        request = NetlinkMessage(
            NetlinkHeader(MessageType.GETADDR, NLM_F_REQUEST | NLM_F_DUMP), self.message
        )
        async for response in self.handle.request(request):
            address = try_rtnl(response, MessageType.NEWADDR)
            if self._matches(address):
                yield address


class AddressHandle:
    """Entry point for address requests."""

    def __init__(self, handle: Any) -> None:
        self.handle = handle

    def get(self) -> AddressGetRequest:
        return AddressGetRequest(self.handle)

    def add(self, index: int, address: Any, prefix_len: int) -> AddressAddRequest:
        return AddressAddRequest(self.handle, index, address, prefix_len)

    def delete(self, message: AddressMessage) -> AddressDelRequest:
        return AddressDelRequest(self.handle, message)