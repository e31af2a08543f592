"""Command-line tool for inspecting and changing links and addresses."""

from __future__ import annotations

import argparse
import asyncio
import errno
import ipaddress
import sys
from dataclasses import dataclass
from typing import Any, Optional, Sequence, TextIO

from .constants import (
    AF_BRIDGE,
    IFLA_AF_SPEC,
    IFLA_ALT_IFNAME,
    IFLA_IFNAME,
    IFLA_PROP_LIST,
    RTEXT_FILTER_BRVLAN,
    RTMGRP_IPV4_ROUTE,
    RTMGRP_IPV6_ROUTE,
)
from .errors import NetlinkError, RequestFailed, RtnlError
from .handle import new_connection
from .messages import LinkMessage, Nla

MACVLAN_MODE_BRIDGE = 4
VXLAN_PORT = 4789


@dataclass
class _Session:
    connection: Any
    handle: Any
    out: TextIO
    err: TextIO

    def say(self, text: str) -> None:
        print(text, file=self.out)

    def warn(self, text: str) -> None:
        print(text, file=self.err)


def _link_name(message: LinkMessage) -> Optional[str]:
    nla = Nla.find(message.nlas, IFLA_IFNAME)
    return nla.as_str() if nla is not None else None


async def _first_link(request: Any) -> Optional[LinkMessage]:
    try:
        links = [link async for link in request.execute()]
    except NetlinkError as exc:
        if getattr(exc.error, "code", None) == -errno.ENODEV:
            return None
        raise
    return links[0] if links else None


async def _find_link(handle: Any, name: str) -> Optional[LinkMessage]:
    """Return the link with the given name, or None if there is none."""
    return await _first_link(handle.link().get().match_name(name))


async def _add_address(session: _Session, args: argparse.Namespace) -> None:
    interface = args.address
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.warn(f"link {args.link} not found")
        return
    await session.handle.address().add(
        link.header.index, interface.ip, interface.network.prefixlen
    ).execute()


async def _create_bond(session: _Session, args: argparse.Namespace) -> None:
    await (
        session.handle.link()
        .add()
        .bond(args.name)
        .mode(1)
        .miimon(100)
        .updelay(100)
        .downdelay(100)
        .min_links(2)
        .arp_ip_target(
            [ipaddress.IPv4Address("6.6.7.7"), ipaddress.IPv4Address("8.8.9.10")]
        )
        .ns_ip6_target(
            [ipaddress.IPv6Address("fd01::1"), ipaddress.IPv6Address("fd02::2")]
        )
        .up()
        .execute()
    )


async def _create_bridge(session: _Session, args: argparse.Namespace) -> None:
    await session.handle.link().add().bridge(args.name).execute()


async def _create_veth(session: _Session, args: argparse.Namespace) -> None:
    await session.handle.link().add().veth(args.name, args.peer).execute()


async def _create_macvlan(session: _Session, args: argparse.Namespace) -> None:
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.say(f"no link {args.link} found")
        return
    await session.handle.link().add().macvlan(
        args.name, link.header.index, MACVLAN_MODE_BRIDGE
    ).execute()


async def _create_macvtap(session: _Session, args: argparse.Namespace) -> None:
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.say(f"no link {args.link} found")
        return
    await session.handle.link().add().macvtap(
        args.name, link.header.index, MACVLAN_MODE_BRIDGE
    ).execute()


async def _create_vxlan(session: _Session, args: argparse.Namespace) -> None:
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.say(f"no link {args.link} found")
        return
    await (
        session.handle.link()
        .add()
        .vxlan(args.name, args.vni)
        .link(link.header.index)
        .port(VXLAN_PORT)
        .up()
        .execute()
    )


async def _del_link(session: _Session, args: argparse.Namespace) -> None:
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.warn(f"link {args.link} not found")
        return
    await session.handle.link().delete(link.header.index).execute()


async def _set_link_down(session: _Session, args: argparse.Namespace) -> None:
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.say(f"no link {args.link} found")
        return
    await session.handle.link().set(link.header.index).down().execute()


async def _flush_addresses(session: _Session, args: argparse.Namespace) -> None:
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.warn(f"link {args.link} not found")
        return
    request = session.handle.address().get().set_link_index_filter(link.header.index)
    addresses = [address async for address in request.execute()]
    for address in addresses:
        await session.handle.address().delete(address).execute()


async def _get_address(session: _Session, args: argparse.Namespace) -> None:
    session.say(f'dumping address for link "{args.link}"')
    link = await _find_link(session.handle, args.link)
    if link is None:
        session.warn(f"link {args.link} not found")
        return
    request = session.handle.address().get().set_link_index_filter(link.header.index)
    async for address in request.execute():
        session.say(repr(address))


async def _link_by_index(session: _Session, index: int) -> None:
    link = await _first_link(session.handle.link().get().match_index(index))
    if link is None:
        session.warn(f"no link with index {index} found")
        return
    name = _link_name(link)
    if name is None:
        session.warn(f"found link with index {index}, but this link does not have a name")
    else:
        session.say(f"found link with index {index} (name = {name})")


async def _link_by_name(session: _Session, name: str) -> None:
    if await _find_link(session.handle, name) is None:
        session.say(f"no link {name} found")
    else:
        session.say(f"found link {name}")


async def _dump_links(session: _Session) -> None:
    async for link in session.handle.link().get().execute():
        name = _link_name(link)
        if name is None:
            session.warn(f"found link {link.header.index}, but the link has no name")
        else:
            session.say(f"found link {link.header.index} ({name})")


async def _dump_bridge_filter_info(session: _Session) -> None:
    request = session.handle.link().get().set_filter_mask(AF_BRIDGE, RTEXT_FILTER_BRVLAN)
    async for link in request.execute():
        spec = Nla.find(link.nlas, IFLA_AF_SPEC)
        if spec is None:
            continue
        try:
            data: Any = spec.children()
        except ValueError:
            data = spec.value
        session.say(f"found interface {link.header.index} with AfSpecBridge data {data!r}")


async def _get_links(session: _Session, args: argparse.Namespace) -> None:
    steps = [
        (f"*** retrieving link with index {args.index} ***", _link_by_index(session, args.index)),
        (f'*** retrieving link named "{args.name}" ***', _link_by_name(session, args.name)),
        ("*** dumping links ***", _dump_links(session)),
        (None, _dump_bridge_filter_info(session)),
    ]
    for title, step in steps:
        if title is not None:
            session.say(title)
        try:
            await step
        except RtnlError as exc:
            session.warn(str(exc))


async def _require_link(session: _Session, name: str) -> LinkMessage:
    link = await _find_link(session.handle, name)
    if link is None:
        session.warn(f"Interface {name} not found")
        raise RequestFailed()
    return link


async def _property_altname(session: _Session, args: argparse.Namespace) -> None:
    link = await _require_link(session, args.link)
    if args.action == "show":
        for prop_list in (nla for nla in link.nlas if nla.kind == IFLA_PROP_LIST):
            for prop in prop_list.children():
                if prop.kind == IFLA_ALT_IFNAME:
                    session.say(f"altname: {prop.as_str()}")
        return
    links = session.handle.link()
    if args.action == "add":
        request = links.property_add(link.header.index)
    else:
        request = links.property_del(link.header.index)
    await request.alt_ifname(args.altnames).execute()


async def _listen(session: _Session, args: argparse.Namespace) -> None:
    session.connection.bind(RTMGRP_IPV4_ROUTE | RTMGRP_IPV6_ROUTE)
    seen = 0
    while args.count is None or seen < args.count:
        for message in await session.connection.receive():
            session.say(f"Route change message - {message.payload!r}")
            seen += 1
            if args.count is not None and seen >= args.count:
                return


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rtlink",
        description="Manage network links and addresses over routing netlink. "
        "Most commands need root privileges.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    def command(name: str, func: Any, help_text: str) -> argparse.ArgumentParser:
        sub = commands.add_parser(name, help=help_text)
        sub.set_defaults(func=func)
        return sub

    sub = command("add-address", _add_address, "add an address to a link")
    sub.add_argument("link")
    sub.add_argument("address", type=ipaddress.ip_interface, help="ADDRESS[/PREFIX]")

    sub = command("create-bond", _create_bond, "create a bond interface")
    sub.add_argument("name", nargs="?", default="my-bond")

    sub = command("create-bridge", _create_bridge, "create a bridge")
    sub.add_argument("name", nargs="?", default="my-bridge-1")

    sub = command("create-veth", _create_veth, "create a veth pair")
    sub.add_argument("name", nargs="?", default="veth-rs-1")
    sub.add_argument("peer", nargs="?", default="veth-rs-2")

    sub = command("create-macvlan", _create_macvlan, "create a bridge-mode macvlan")
    sub.add_argument("link")
    sub.add_argument("--name", default="test_macvlan")

    sub = command("create-macvtap", _create_macvtap, "create a bridge-mode macvtap")
    sub.add_argument("link")
    sub.add_argument("--name", default="test_macvtap")

    sub = command("create-vxlan", _create_vxlan, "create a vxlan over a link")
    sub.add_argument("link")
    sub.add_argument("--name", default="vxlan0")
    sub.add_argument("--vni", type=int, default=10)

    sub = command("del-link", _del_link, "delete a link")
    sub.add_argument("link")

    sub = command("set-link-down", _set_link_down, "set a link down")
    sub.add_argument("link")

    sub = command("flush-addresses", _flush_addresses, "remove every address of a link")
    sub.add_argument("link")

    sub = command("get-address", _get_address, "show the addresses of a link")
    sub.add_argument("link", nargs="?", default="lo")

    sub = command("get-links", _get_links, "look up and dump links")
    sub.add_argument("--index", type=int, default=1)
    sub.add_argument("--name", default="lo")

    sub = command("property-altname", _property_altname, "manage alternative names")
    sub.add_argument("link")
    sub.add_argument("action", choices=("add", "del", "show"))
    sub.add_argument("altnames", nargs="*")

    sub = command("listen", _listen, "print IPv4 and IPv6 route changes")
    sub.add_argument("--count", type=int, default=None, help="stop after COUNT messages")

    return parser


async def _execute(
    args: argparse.Namespace, connection: Any, handle: Any, out: TextIO, err: TextIO
) -> None:
    """Run the parsed command against a connection and its handle."""
    await args.func(_Session(connection, handle, out, err), args)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        connection, handle = new_connection()
    except OSError as exc:
        print(f"cannot open a netlink socket: {exc}", file=sys.stderr)
        return 1
    with connection:
        try:
            asyncio.run(_execute(args, connection, handle, sys.stdout, sys.stderr))
        except RtnlError as exc:
            print(exc, file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())