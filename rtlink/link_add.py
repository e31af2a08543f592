"""Link creation requests, like ``ip link add``."""

from __future__ import annotations

import enum
import ipaddress
import struct
from typing import Any, Iterable, Optional

from .bond import BondAddRequest
from .constants import (
    IFF_UP,
    IFLA_IFNAME,
    IFLA_INFO_DATA,
    IFLA_INFO_KIND,
    IFLA_LINK,
    IFLA_LINKINFO,
    NLM_F_ACK,
    NLM_F_CREATE,
    NLM_F_EXCL,
    NLM_F_REPLACE,
    NLM_F_REQUEST,
)
from .messages import LinkMessage, MessageType, NetlinkHeader, NetlinkMessage, Nla, try_nl

VETH_INFO_PEER = 1
IFLA_VLAN_ID = 1
IFLA_MACVLAN_MODE = 1
IFLA_XFRM_IF_ID = 2


class _VxlanAttr(enum.IntEnum):
    ID = 1
    GROUP = 2
    LINK = 3
    LOCAL = 4
    TTL = 5
    TOS = 6
    LEARNING = 7
    AGEING = 8
    LIMIT = 9
    PORT_RANGE = 10
    PROXY = 11
    RSC = 12
    L2MISS = 13
    L3MISS = 14
    PORT = 15
    GROUP6 = 16
    LOCAL6 = 17
    UDP_CSUM = 18
    COLLECT_METADATA = 25
    LABEL = 26


def _check(name: str, value: int, bits: int) -> int:
    if not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, not {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in {bits} unsigned bits, got {value}")
    return int(value)


def _link_info(kind: str, data: Optional[Iterable[Nla]]) -> Nla:
    children = [Nla.from_str(IFLA_INFO_KIND, kind)]
    if data is not None:
        children.append(Nla.from_nested(IFLA_INFO_DATA, data))
    return Nla.from_nested(IFLA_LINKINFO, children)


class LinkAddRequest:
    """A request to create a link; ``message`` may be edited before sending."""

    def __init__(self, handle: Any) -> None:
        self.handle = handle
        self.message = LinkMessage()
        self._replace = False

    async def execute(self) -> None:
        """Send the request and wait for the kernel's acknowledgement."""
        mode = NLM_F_REPLACE if self._replace else NLM_F_EXCL
        flags = NLM_F_REQUEST | NLM_F_ACK | mode | NLM_F_CREATE
        request = NetlinkMessage(NetlinkHeader(MessageType.NEWLINK, flags), self.message)
        async for response in self.handle.request(request):
            try_nl(response)

    def _set_up(self) -> "LinkAddRequest":
        self.message.header.flags = IFF_UP
        self.message.header.change_mask = IFF_UP
        return self

    def _name(self, name: str) -> "LinkAddRequest":
        self.message.nlas.append(Nla.from_str(IFLA_IFNAME, name))
        return self

    def _append(self, nla: Nla) -> "LinkAddRequest":
        self.message.nlas.append(nla)
        return self

    def _with_info(self, kind: str, data: Optional[Iterable[Nla]]) -> "LinkAddRequest":
        return self._append(_link_info(kind, data))

    def dummy(self, name: str) -> "LinkAddRequest":
        """Create a dummy link, like ``ip link add NAME type dummy``."""
        return self._name(name)._with_info("dummy", None)._set_up()

    def veth(self, name: str, peer_name: str) -> "LinkAddRequest":
        """Create a veth pair, like ``ip link add NAME1 type veth peer name NAME2``.

        ``name`` goes in the peer attribute and ``peer_name`` in the main message.
        """
        peer = LinkMessage(nlas=[Nla.from_str(IFLA_IFNAME, name)])
        data = [Nla(VETH_INFO_PEER, peer.encode())]
        return self._name(peer_name)._set_up()._with_info("veth", data)

    def vlan(self, name: str, index: int, vlan_id: int) -> "LinkAddRequest":
        """Create a VLAN with id ``vlan_id`` on the link with index ``index``."""
        data = [Nla.from_u16(IFLA_VLAN_ID, _check("vlan_id", vlan_id, 16))]
        return (
            self._name(name)
            ._with_info("vlan", data)
            ._append(Nla.from_u32(IFLA_LINK, _check("index", index, 32)))
            ._set_up()
        )

    def macvlan(self, name: str, index: int, mode: int) -> "LinkAddRequest":
        """Create a macvlan on the link with index ``index``; ``mode`` is a flag set."""
        data = [Nla.from_u32(IFLA_MACVLAN_MODE, _check("mode", mode, 32))]
        return (
            self._name(name)
            ._with_info("macvlan", data)
            ._append(Nla.from_u32(IFLA_LINK, _check("index", index, 32)))
            ._set_up()
        )

    def macvtap(self, name: str, index: int, mode: int) -> "LinkAddRequest":
        """Create a macvtap on the link with index ``index``; ``mode`` is a flag set."""
        data = [Nla.from_u32(IFLA_MACVLAN_MODE, _check("mode", mode, 32))]
        return (
            self._name(name)
            ._with_info("macvtap", data)
            ._append(Nla.from_u32(IFLA_LINK, _check("index", index, 32)))
            ._set_up()
        )

    def vxlan(self, name: str, vni: int) -> "VxlanAddRequest":
        """Start a VXLAN creation request that can be customised further."""
        self._name(name)
        return VxlanAddRequest(self, [Nla.from_u32(_VxlanAttr.ID, _check("vni", vni, 32))])

    def xfrmtun(self, name: str, ifid: int) -> "LinkAddRequest":
        """Create an xfrm tunnel with the given interface id."""
        data = [Nla.from_u32(IFLA_XFRM_IF_ID, _check("ifid", ifid, 32))]
        return self._name(name)._with_info("xfrm", data)._set_up()

    def bond(self, name: str) -> BondAddRequest:
        """Start a bond creation request that can be customised further."""
        self._name(name)
        return BondAddRequest(self, [])

    def bridge(self, name: str) -> "LinkAddRequest":
        """Create a bridge, like ``ip link add NAME type bridge``."""
        return self._name(name)._with_info("bridge", None)._append(
            Nla.from_str(IFLA_IFNAME, name)
        )

    def replace(self) -> "LinkAddRequest":
        """Replace an existing matching link instead of failing."""
        self._replace = True
        return self


class VxlanAddRequest:
    """Options for a new VXLAN link, sent when :meth:`execute` is awaited."""

    def __init__(self, request: LinkAddRequest, info_data: Iterable[Nla] = ()) -> None:
        self.request = request
        self.info_data: list[Nla] = list(info_data)

    def _add(self, nla: Nla) -> "VxlanAddRequest":
        self.info_data.append(nla)
        return self

    def _u8(self, attr: _VxlanAttr, name: str, value: int) -> "VxlanAddRequest":
        return self._add(Nla.from_u8(attr, _check(name, value, 8)))

    def _u32(self, attr: _VxlanAttr, name: str, value: int) -> "VxlanAddRequest":
        return self._add(Nla.from_u32(attr, _check(name, value, 32)))

    async def execute(self) -> None:
        """Attach the VXLAN link info to the request and send it."""
        self.request._with_info("vxlan", self.info_data)
        await self.request.execute()

    def up(self) -> "VxlanAddRequest":
        """Bring the interface up once it is created."""
        self.request._set_up()
        return self

    def link(self, index: int) -> "VxlanAddRequest":
        """Set the underlying device, by index, used for tunnel traffic."""
        return self._u32(_VxlanAttr.LINK, "index", index)

    def port(self, port: int) -> "VxlanAddRequest":
        """Set the UDP destination port (sent in network byte order)."""
        return self._add(Nla(_VxlanAttr.PORT, struct.pack("!H", _check("port", port, 16))))

    def group(self, addr: Any) -> "VxlanAddRequest":
        """Set the IPv4 multicast group; exclusive with ``remote``."""
        return self._add(Nla(_VxlanAttr.GROUP, ipaddress.IPv4Address(addr).packed))

    def group6(self, addr: Any) -> "VxlanAddRequest":
        """Set the IPv6 multicast group; exclusive with ``remote6``."""
        return self._add(Nla(_VxlanAttr.GROUP6, ipaddress.IPv6Address(addr).packed))

    def remote(self, addr: Any) -> "VxlanAddRequest":
        """Set the IPv4 unicast destination; exclusive with ``group``."""
        return self.group(addr)

    def remote6(self, addr: Any) -> "VxlanAddRequest":
        """Set the IPv6 unicast destination; exclusive with ``group6``."""
        return self.group6(addr)

    def local(self, addr: Any) -> "VxlanAddRequest":
        """Set the IPv4 source address of outgoing packets."""
        return self._add(Nla(_VxlanAttr.LOCAL, ipaddress.IPv4Address(addr).packed))

    def local6(self, addr: Any) -> "VxlanAddRequest":
        """Set the IPv6 source address of outgoing packets."""
        return self._add(Nla(_VxlanAttr.LOCAL6, ipaddress.IPv6Address(addr).packed))

    def tos(self, tos: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.TOS, "tos", tos)

    def ttl(self, ttl: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.TTL, "ttl", ttl)

    def label(self, label: int) -> "VxlanAddRequest":
        """Set the flow label of outgoing packets."""
        return self._u32(_VxlanAttr.LABEL, "label", label)

    def learning(self, learning: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.LEARNING, "learning", learning)

    def ageing(self, seconds: int) -> "VxlanAddRequest":
        """Set the lifetime, in seconds, of learnt forwarding entries."""
        return self._u32(_VxlanAttr.AGEING, "seconds", seconds)

    def limit(self, limit: int) -> "VxlanAddRequest":
        """Set the maximum number of forwarding entries."""
        return self._u32(_VxlanAttr.LIMIT, "limit", limit)

    def port_range(self, low: int, high: int) -> "VxlanAddRequest":
        """Set the range of UDP source ports (sent in network byte order)."""
        value = struct.pack("!HH", _check("low", low, 16), _check("high", high, 16))
        return self._add(Nla(_VxlanAttr.PORT_RANGE, value))

    def proxy(self, proxy: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.PROXY, "proxy", proxy)

    def rsc(self, rsc: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.RSC, "rsc", rsc)

    def l2miss(self, l2miss: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.L2MISS, "l2miss", l2miss)

    def l3miss(self, l3miss: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.L3MISS, "l3miss", l3miss)

    def collect_metadata(self, collect_metadata: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.COLLECT_METADATA, "collect_metadata", collect_metadata)

    def udp_csum(self, udp_csum: int) -> "VxlanAddRequest":
        return self._u8(_VxlanAttr.UDP_CSUM, "udp_csum", udp_csum)