# rtlink

`rtlink` manages Linux network links (interfaces) and IP addresses over the
kernel's rtnetlink socket. It is pure Python on top of the standard library,
with an asyncio interface, and comes with an `rtlink` command for the common
tasks.

## Installation

```
pip install rtlink
```

Changing links or addresses needs root privileges, or `CAP_NET_ADMIN`.
Reading them does not.

## Library use

`rtlink.handle.new_connection()` opens a routing netlink socket and returns a
pair: the `Connection` and a `Handle` on it. The `Connection` is a context
manager that closes the socket. The `Handle` makes requests for one kind of
resource at a time:

- `handle.link()` returns a `LinkHandle` for link requests, like `ip link`.
- `handle.address()` returns an `AddressHandle` for address requests, like
  `ip addr`.

Each request is built by chaining methods and sent by awaiting `execute()`.
Requests that list things return an async iterator from `execute()` instead.
All of this must run inside an asyncio event loop.

```python
import asyncio

from rtlink.handle import new_connection


async def run():
    connection, handle = new_connection()
    with connection:
        # Create a bridge and a veth pair
        await handle.link().add().bridge("br0").execute()
        await handle.link().add().veth("veth0", "veth1").execute()

        # Find a link by name and give it an address
        async for link in handle.link().get().match_name("veth0").execute():
            await handle.address().add(link.header.index, "192.0.2.10", 24).execute()

        # Bring the link down
        async for link in handle.link().get().match_name("veth0").execute():
            await handle.link().set(link.header.index).down().execute()


asyncio.run(run())
```

Several requests may be in flight on one handle at once; replies are matched
to their request by sequence number.

### Links (`rtlink.link`, `rtlink.link_add`, `rtlink.bond`)

`LinkHandle.add()` builds a `LinkAddRequest` that creates `dummy()`,
`veth()`, `vlan()`, `macvlan()`, `macvtap()`, `xfrmtun()` and `bridge()`
links. `vxlan()` and `bond()` return a `VxlanAddRequest` and a
`BondAddRequest` with their own options, such as `port()`, `group()`,
`remote()` and `local()` for VXLAN, or `mode()`, `miimon()`,
`arp_ip_target()` and `ns_ip6_target()` for bonds. `replace()` replaces an
existing link instead of failing. The request's `message` attribute, a
`LinkMessage`, may be edited before sending.

`LinkHandle.set(index)` changes a link: `up()`, `down()`, `promiscuous()`,
`arp()`, `name()`, `mtu()`, `address()`, `master()`, `nomaster()`,
`setns_by_pid()` and `setns_by_fd()`.

`LinkHandle.get()` dumps every link, or asks for one link with
`match_index()` or `match_name()`; `set_filter_mask()` sets the family and an
extended filter mask. `LinkHandle.delete(index)` removes a link, and
`property_add(index)` / `property_del(index)` manage alternative interface
names with `alt_ifname()`.

### Addresses (`rtlink.addr`)

`AddressHandle.get()` dumps addresses. Narrow the result with
`set_link_index_filter()`, `set_prefix_length_filter()` and
`set_address_filter()`; the filtering is done on the client side.
`AddressHandle.add(index, address, prefix_len)` adds an address, given as an
`ipaddress` object or a string; for an ordinary IPv4 address the local and
broadcast addresses are filled in as well. `AddressHandle.delete(message)`
removes an address that `get()` returned.

### Messages (`rtlink.messages`)

`LinkMessage`, `AddressMessage` and `NetlinkMessage` encode to and decode from
the wire format, and `Nla` is a single attribute with helpers such as
`from_u32()`, `from_str()`, `as_str()`, `children()` and `Nla.find()`.
`parse_messages()` splits a received buffer into messages. Numeric protocol
values live in `rtlink.constants`.

### Errors (`rtlink.errors`)

Failures raise subclasses of `RtnlError`. A `NetlinkError` carries the error
the kernel sent back (its `error.code` is a negative errno; looking up a link
name that does not exist, for instance, gives `-ENODEV`); `RequestFailed`
means the request could not be sent or its reply not received;
`UnexpectedMessage` means the kernel answered with a message of the wrong
kind.

### Listening for changes

`Connection.bind(groups)` subscribes a connection to multicast groups, built
from the `RTMGRP_*` values in `rtlink.constants`. After that, each await of
`Connection.receive()` returns the list of notification messages held in the
next datagram.

## Command line

```
rtlink --help
```

lists the commands:

- `add-address LINK ADDRESS[/PREFIX]`
- `create-bond [NAME]`, `create-bridge [NAME]`, `create-veth [NAME] [PEER]`
- `create-macvlan LINK [--name NAME]`, `create-macvtap LINK [--name NAME]`
  (bridge mode)
- `create-vxlan LINK [--name NAME] [--vni VNI]` (destination port 4789)
- `del-link LINK`, `set-link-down LINK`
- `flush-addresses LINK`, `get-address [LINK]`
- `get-links [--index INDEX] [--name NAME]`
- `property-altname LINK {add,del,show} [ALTNAME ...]`
- `listen [--count COUNT]`: print IPv4 and IPv6 route changes

The command exits with status 1 when the socket cannot be opened or a request
fails, and prints the error.

## What it does not do

`rtlink` handles links and addresses only. It does not manage routes,
routing rules, neighbour tables, traffic control (qdiscs, classes, filters)
or network namespaces.

## Running the tests

```
pip install -e ".[test]"
pytest
```