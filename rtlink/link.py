"""Link requests: listing, changing, deleting links and their properties.

Every request talks to a handle whose ``request(message)`` method returns an
async iterable of the response messages.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Iterable

from .constants import (
    IFF_NOARP,
    IFF_PROMISC,
    IFF_UP,
    IFLA_ADDRESS,
    IFLA_ALT_IFNAME,
    IFLA_EXT_MASK,
    IFLA_IFNAME,
    IFLA_MASTER,
    IFLA_MTU,
    IFLA_NET_NS_FD,
    IFLA_NET_NS_PID,
    IFLA_PROP_LIST,
    NLM_F_ACK,
    NLM_F_APPEND,
    NLM_F_CREATE,
    NLM_F_DUMP,
    NLM_F_EXCL,
    NLM_F_REQUEST,
)
from .link_add import LinkAddRequest
from .messages import (
    LinkHeader,
    LinkMessage,
    MessageType,
    NetlinkHeader,
    NetlinkMessage,
    Nla,
    try_nl,
    try_rtnl,
)


def _unsigned(name: str, value: int, bits: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an integer, not {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in {bits} unsigned bits, got {value}")
    return value


def _signed32(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an integer, not {type(value).__name__}")
    if not -(1 << 31) <= value < (1 << 31):
        raise ValueError(f"{name} must fit in 32 signed bits, got {value}")
    return value


def _indexed_message(index: int) -> LinkMessage:
    return LinkMessage(LinkHeader(index=_unsigned("index", index, 32)))


def _alt_ifname_list(alt_ifnames: Iterable[str]) -> Nla:
    if isinstance(alt_ifnames, str):
        raise TypeError("alt_ifnames must be a collection of names, not a single string")
    return Nla.from_nested(
        IFLA_PROP_LIST, [Nla.from_str(IFLA_ALT_IFNAME, name) for name in alt_ifnames]
    )


async def _send_acked(handle: Any, message_type: int, flags: int, payload: LinkMessage) -> None:
    request = NetlinkMessage(NetlinkHeader(message_type, flags), payload)
    async for response in handle.request(request):
        try_nl(response)


class LinkDelRequest:
    """Delete the link with a given index."""

    def __init__(self, handle: Any, index: int) -> None:
        self.handle = handle
        self.message = _indexed_message(index)

    async def execute(self) -> None:
        await _send_acked(
            self.handle, MessageType.DELLINK, NLM_F_REQUEST | NLM_F_ACK, self.message
        )


class LinkGetRequest:
    """Retrieve links, like ``ip link show``.

    Without a match every link is dumped; after :meth:`match_index` or
    :meth:`match_name` only the matching link is asked for.
    """

    def __init__(self, handle: Any) -> None:
        self.handle = handle
        self.message = LinkMessage()
        self.dump = True

    def set_filter_mask(self, family: int, filter_mask: int) -> "LinkGetRequest":
        """Set the interface family and an extended filter mask."""
        self.message.header.interface_family = _unsigned("family", family, 8)
        self.message.nlas.append(
            Nla.from_u32(IFLA_EXT_MASK, _unsigned("filter_mask", filter_mask, 32))
        )
        return self

    async def execute(self) -> AsyncIterator[LinkMessage]:
        flags = NLM_F_REQUEST | NLM_F_DUMP if self.dump else NLM_F_REQUEST
        request = NetlinkMessage(NetlinkHeader(MessageType.GETLINK, flags), self.message)
        async for response in self.handle.request(request):
            yield try_rtnl(response, MessageType.NEWLINK)

    def match_index(self, index: int) -> "LinkGetRequest":
        """Look up a single link by index."""
        self.dump = False
        self.message.header.index = _unsigned("index", index, 32)
        return self

    def match_name(self, name: str) -> "LinkGetRequest":
        """Look up a single link by name."""
        self.dump = False
        self.message.nlas.append(Nla.from_str(IFLA_IFNAME, name))
        return self


class LinkSetRequest:
    """Change attributes of the link with a given index, like ``ip link set``."""

    def __init__(self, handle: Any, index: int) -> None:
        self.handle = handle
        self.message = _indexed_message(index)

    async def execute(self) -> None:
        flags = NLM_F_REQUEST | NLM_F_ACK | NLM_F_EXCL | NLM_F_CREATE
        await _send_acked(self.handle, MessageType.SETLINK, flags, self.message)

    def _append(self, nla: Nla) -> "LinkSetRequest":
        self.message.nlas.append(nla)
        return self

    def master(self, master_index: int) -> "LinkSetRequest":
        """Attach the link to a master such as a bridge; zero detaches it."""
        return self._append(
            Nla.from_u32(IFLA_MASTER, _unsigned("master_index", master_index, 32))
        )

    def nomaster(self) -> "LinkSetRequest":
        """Detach the link from its master."""
        return self._append(Nla.from_u32(IFLA_MASTER, 0))

    def up(self) -> "LinkSetRequest":
        header = self.message.header
        header.flags |= IFF_UP
        header.change_mask |= IFF_UP
        return self

    def down(self) -> "LinkSetRequest":
        header = self.message.header
        header.flags &= ~IFF_UP
        header.change_mask |= IFF_UP
        return self

    def promiscuous(self, enable: bool) -> "LinkSetRequest":
        header = self.message.header
        if enable:
            header.flags |= IFF_PROMISC
        else:
            header.flags &= ~IFF_PROMISC
        header.change_mask |= IFF_PROMISC
        return self

    def arp(self, enable: bool) -> "LinkSetRequest":
        header = self.message.header
        if enable:
            header.flags &= ~IFF_NOARP
        else:
            header.flags |= IFF_NOARP
        header.change_mask |= IFF_NOARP
        return self

    def name(self, name: str) -> "LinkSetRequest":
        return self._append(Nla.from_str(IFLA_IFNAME, name))

    def mtu(self, mtu: int) -> "LinkSetRequest":
        return self._append(Nla.from_u32(IFLA_MTU, _unsigned("mtu", mtu, 32)))

    def address(self, address: bytes) -> "LinkSetRequest":
        """Set the hardware address."""
        return self._append(Nla(IFLA_ADDRESS, bytes(address)))

    def setns_by_pid(self, pid: int) -> "LinkSetRequest":
        """Move the link into the network namespace of process ``pid``."""
        return self._append(Nla.from_u32(IFLA_NET_NS_PID, _unsigned("pid", pid, 32)))

    def setns_by_fd(self, fd: int) -> "LinkSetRequest":
        """Move the link into the network namespace open as ``fd``."""
        return self._append(Nla.from_i32(IFLA_NET_NS_FD, _signed32("fd", fd)))


class LinkNewPropRequest:
    """Add properties, such as alternative names, to a link."""

    def __init__(self, handle: Any, index: int) -> None:
        self.handle = handle
        self.message = _indexed_message(index)

    async def execute(self) -> None:
        flags = NLM_F_REQUEST | NLM_F_ACK | NLM_F_EXCL | NLM_F_CREATE | NLM_F_APPEND
        await _send_acked(self.handle, MessageType.NEWLINKPROP, flags, self.message)

    def alt_ifname(self, alt_ifnames: Iterable[str]) -> "LinkNewPropRequest":
        """Add alternative names, like ``ip link property add altname``."""
        self.message.nlas.append(_alt_ifname_list(alt_ifnames))
        return self


class LinkDelPropRequest:
    """Remove properties, such as alternative names, from a link."""

    def __init__(self, handle: Any, index: int) -> None:
        self.handle = handle
        self.message = _indexed_message(index)

    async def execute(self) -> None:
        flags = NLM_F_REQUEST | NLM_F_ACK | NLM_F_EXCL
        await _send_acked(self.handle, MessageType.DELLINKPROP, flags, self.message)

    def alt_ifname(self, alt_ifnames: Iterable[str]) -> "LinkDelPropRequest":
        """Remove alternative names, like ``ip link property del altname``."""
        self.message.nlas.append(_alt_ifname_list(alt_ifnames))
        return self


class LinkHandle:
    """Entry point for link requests."""

    def __init__(self, handle: Any) -> None:
        self.handle = handle

    def set(self, index: int) -> LinkSetRequest:
        return LinkSetRequest(self.handle, index)

    def add(self) -> LinkAddRequest:
        return LinkAddRequest(self.handle)

    def property_add(self, index: int) -> LinkNewPropRequest:
        return LinkNewPropRequest(self.handle, index)

    def property_del(self, index: int) -> LinkDelPropRequest:
        return LinkDelPropRequest(self.handle, index)

    def delete(self, index: int) -> LinkDelRequest:
        return LinkDelRequest(self.handle, index)

    def get(self) -> LinkGetRequest:
        """Retrieve links, like ``ip link show``."""
        return LinkGetRequest(self.handle)