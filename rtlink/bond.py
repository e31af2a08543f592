"""Creation of bonding interfaces, like ``ip link add NAME type bond``."""

from __future__ import annotations

import enum
import ipaddress
from typing import Any, Iterable

from .constants import IFF_UP, IFLA_INFO_DATA, IFLA_INFO_KIND, IFLA_LINKINFO
from .messages import Nla

BOND_KIND = "bond"


class _BondAttr(enum.IntEnum):
    MODE = 1
    ACTIVE_SLAVE = 2
    MIIMON = 3
    UPDELAY = 4
    DOWNDELAY = 5
    USE_CARRIER = 6
    ARP_INTERVAL = 7
    ARP_IP_TARGET = 8
    ARP_VALIDATE = 9
    ARP_ALL_TARGETS = 10
    PRIMARY = 11
    PRIMARY_RESELECT = 12
    FAIL_OVER_MAC = 13
    XMIT_HASH_POLICY = 14
    RESEND_IGMP = 15
    NUM_PEER_NOTIF = 16
    ALL_SLAVES_ACTIVE = 17
    MIN_LINKS = 18
    LP_INTERVAL = 19
    PACKETS_PER_SLAVE = 20
    AD_LACP_RATE = 21
    AD_SELECT = 22
    AD_ACTOR_SYS_PRIO = 24
    AD_USER_PORT_KEY = 25
    AD_ACTOR_SYSTEM = 26
    TLB_DYNAMIC_LB = 27
    PEER_NOTIF_DELAY = 28
    AD_LACP_ACTIVE = 29
    MISSED_MAX = 30
    NS_IP6_TARGET = 31


def _check(name: str, value: int, bits: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) and bits != 8:
        raise TypeError(f"{name} must be an integer, not {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in {bits} unsigned bits, got {value}")
    return int(value)


class BondAddRequest:
    """Options for a new bond, sent when :meth:`execute` is awaited.

    ``request`` is the underlying link creation request: it must expose a
    ``message`` (a :class:`~rtlink.messages.LinkMessage`) and an awaitable
    ``execute()`` method.
    """

    def __init__(self, request: Any, info_data: Iterable[Nla] = ()) -> None:
        self.request = request
        self.info_data: list[Nla] = list(info_data)

    def _u8(self, attr: _BondAttr, name: str, value: int) -> "BondAddRequest":
        self.info_data.append(Nla.from_u8(attr, _check(name, value, 8)))
        return self

    def _u16(self, attr: _BondAttr, name: str, value: int) -> "BondAddRequest":
        self.info_data.append(Nla.from_u16(attr, _check(name, value, 16)))
        return self

    def _u32(self, attr: _BondAttr, name: str, value: int) -> "BondAddRequest":
        self.info_data.append(Nla.from_u32(attr, _check(name, value, 32)))
        return self

    async def execute(self) -> None:
        """Attach the bond link info to the request and send it."""
        link_info = Nla.from_nested(
            IFLA_LINKINFO,
            [
                Nla.from_str(IFLA_INFO_KIND, BOND_KIND),
                Nla.from_nested(IFLA_INFO_DATA, self.info_data),
            ],
        )
        self.request.message.nlas.append(link_info)
        await self.request.execute()

    def up(self) -> "BondAddRequest":
        """Bring the interface up once it is created."""
        header = self.request.message.header
        header.flags = IFF_UP
        header.change_mask = IFF_UP
        return self

    def mode(self, mode: int) -> "BondAddRequest":
        return self._u8(_BondAttr.MODE, "mode", mode)

    def active_slave(self, active_slave: int) -> "BondAddRequest":
        """Set the active slave by the interface index of an enslaved link."""
        return self._u32(_BondAttr.ACTIVE_SLAVE, "active_slave", active_slave)

    def miimon(self, miimon: int) -> "BondAddRequest":
        return self._u32(_BondAttr.MIIMON, "miimon", miimon)

    def updelay(self, updelay: int) -> "BondAddRequest":
        return self._u32(_BondAttr.UPDELAY, "updelay", updelay)

    def downdelay(self, downdelay: int) -> "BondAddRequest":
        return self._u32(_BondAttr.DOWNDELAY, "downdelay", downdelay)

    def use_carrier(self, use_carrier: int) -> "BondAddRequest":
        return self._u8(_BondAttr.USE_CARRIER, "use_carrier", use_carrier)

    def arp_interval(self, arp_interval: int) -> "BondAddRequest":
        return self._u32(_BondAttr.ARP_INTERVAL, "arp_interval", arp_interval)

    def arp_validate(self, arp_validate: int) -> "BondAddRequest":
        return self._u32(_BondAttr.ARP_VALIDATE, "arp_validate", arp_validate)

    def arp_all_targets(self, arp_all_targets: int) -> "BondAddRequest":
        return self._u32(_BondAttr.ARP_ALL_TARGETS, "arp_all_targets", arp_all_targets)

    def primary(self, primary: int) -> "BondAddRequest":
        """Set the primary slave by interface index."""
        return self._u32(_BondAttr.PRIMARY, "primary", primary)

    def primary_reselect(self, primary_reselect: int) -> "BondAddRequest":
        return self._u8(_BondAttr.PRIMARY_RESELECT, "primary_reselect", primary_reselect)

    def fail_over_mac(self, fail_over_mac: int) -> "BondAddRequest":
        return self._u8(_BondAttr.FAIL_OVER_MAC, "fail_over_mac", fail_over_mac)

    def xmit_hash_policy(self, xmit_hash_policy: int) -> "BondAddRequest":
        return self._u8(_BondAttr.XMIT_HASH_POLICY, "xmit_hash_policy", xmit_hash_policy)

    def resend_igmp(self, resend_igmp: int) -> "BondAddRequest":
        return self._u32(_BondAttr.RESEND_IGMP, "resend_igmp", resend_igmp)

    def num_peer_notif(self, num_peer_notif: int) -> "BondAddRequest":
        return self._u8(_BondAttr.NUM_PEER_NOTIF, "num_peer_notif", num_peer_notif)

    def all_slaves_active(self, all_slaves_active: int) -> "BondAddRequest":
        return self._u8(_BondAttr.ALL_SLAVES_ACTIVE, "all_slaves_active", all_slaves_active)

    def min_links(self, min_links: int) -> "BondAddRequest":
        return self._u32(_BondAttr.MIN_LINKS, "min_links", min_links)

    def lp_interval(self, lp_interval: int) -> "BondAddRequest":
        return self._u32(_BondAttr.LP_INTERVAL, "lp_interval", lp_interval)

    def packets_per_slave(self, packets_per_slave: int) -> "BondAddRequest":
        return self._u32(_BondAttr.PACKETS_PER_SLAVE, "packets_per_slave", packets_per_slave)

    def ad_lacp_rate(self, ad_lacp_rate: int) -> "BondAddRequest":
        return self._u8(_BondAttr.AD_LACP_RATE, "ad_lacp_rate", ad_lacp_rate)

    def ad_select(self, ad_select: int) -> "BondAddRequest":
        return self._u8(_BondAttr.AD_SELECT, "ad_select", ad_select)

    def ad_actor_sys_prio(self, ad_actor_sys_prio: int) -> "BondAddRequest":
        return self._u16(_BondAttr.AD_ACTOR_SYS_PRIO, "ad_actor_sys_prio", ad_actor_sys_prio)

    def ad_user_port_key(self, ad_user_port_key: int) -> "BondAddRequest":
        return self._u16(_BondAttr.AD_USER_PORT_KEY, "ad_user_port_key", ad_user_port_key)

    def ad_actor_system(self, ad_actor_system: Any) -> "BondAddRequest":
        """Set the actor system hardware address: six bytes."""
        value = bytes(ad_actor_system)
        if len(value) != 6:
            raise ValueError(f"ad_actor_system must be 6 bytes, got {len(value)}")
        self.info_data.append(Nla(_BondAttr.AD_ACTOR_SYSTEM, value))
        return self

    def tlb_dynamic_lb(self, tlb_dynamic_lb: int) -> "BondAddRequest":
        return self._u8(_BondAttr.TLB_DYNAMIC_LB, "tlb_dynamic_lb", tlb_dynamic_lb)

    def peer_notif_delay(self, peer_notif_delay: int) -> "BondAddRequest":
        return self._u32(_BondAttr.PEER_NOTIF_DELAY, "peer_notif_delay", peer_notif_delay)

    def ad_lacp_active(self, ad_lacp_active: int) -> "BondAddRequest":
        return self._u8(_BondAttr.AD_LACP_ACTIVE, "ad_lacp_active", ad_lacp_active)

    def missed_max(self, missed_max: int) -> "BondAddRequest":
        return self._u8(_BondAttr.MISSED_MAX, "missed_max", missed_max)

    def arp_ip_target(self, arp_ip_target: Iterable[Any]) -> "BondAddRequest":
        """Set the IPv4 ARP monitoring targets."""
        targets = [ipaddress.IPv4Address(target) for target in arp_ip_target]
        self.info_data.append(
            Nla.from_nested(
                _BondAttr.ARP_IP_TARGET,
                [Nla(position, target.packed) for position, target in enumerate(targets)],
            )
        )
        return self

    def ns_ip6_target(self, ns_ip6_target: Iterable[Any]) -> "BondAddRequest":
        """Set the IPv6 neighbour solicitation targets."""
        targets = [ipaddress.IPv6Address(target) for target in ns_ip6_target]
        self.info_data.append(
            Nla.from_nested(
                _BondAttr.NS_IP6_TARGET,
                [Nla(position, target.packed) for position, target in enumerate(targets)],
            )
        )
        return self