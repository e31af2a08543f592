"""Numeric constants of the netlink and rtnetlink protocols."""

# Legacy multicast group bitmasks for binding a routing socket.
RTMGRP_LINK = 1
RTMGRP_NOTIFY = 2
RTMGRP_NEIGH = 4
RTMGRP_TC = 8
RTMGRP_IPV4_IFADDR = 16
RTMGRP_IPV4_MROUTE = 32
RTMGRP_IPV4_ROUTE = 64
RTMGRP_IPV4_RULE = 128
RTMGRP_IPV6_IFADDR = 256
RTMGRP_IPV6_MROUTE = 512
RTMGRP_IPV6_ROUTE = 1024
RTMGRP_IPV6_IFINFO = 2048
RTMGRP_DECNET_IFADDR = 4096
RTMGRP_DECNET_ROUTE = 16_384
RTMGRP_IPV6_PREFIX = 131_072

# Netlink protocol number of the routing family.
NETLINK_ROUTE = 0

# Netlink message header flags.
NLM_F_REQUEST = 0x01
NLM_F_MULTI = 0x02
NLM_F_ACK = 0x04
NLM_F_ECHO = 0x08
NLM_F_DUMP_INTR = 0x10
NLM_F_ROOT = 0x100
NLM_F_MATCH = 0x200
NLM_F_ATOMIC = 0x400
NLM_F_DUMP = NLM_F_ROOT | NLM_F_MATCH
NLM_F_REPLACE = 0x100
NLM_F_EXCL = 0x200
NLM_F_CREATE = 0x400
NLM_F_APPEND = 0x800

# Netlink control message types.
NLMSG_NOOP = 1
NLMSG_ERROR = 2
NLMSG_DONE = 3
NLMSG_OVERRUN = 4

# Attribute type flags.
NLA_F_NESTED = 0x8000
NLA_F_NET_BYTEORDER = 0x4000

# Address families.
AF_UNSPEC = 0
AF_INET = 2
AF_BRIDGE = 7
AF_INET6 = 10

# Interface flags.
IFF_UP = 0x1
IFF_BROADCAST = 0x2
IFF_DEBUG = 0x4
IFF_LOOPBACK = 0x8
IFF_POINTOPOINT = 0x10
IFF_RUNNING = 0x40
IFF_NOARP = 0x80
IFF_PROMISC = 0x100
IFF_MULTICAST = 0x1000

# Extended link filter masks.
RTEXT_FILTER_VF = 1
RTEXT_FILTER_BRVLAN = 2
RTEXT_FILTER_BRVLAN_COMPRESSED = 4

# Address attributes.
IFA_UNSPEC = 0
IFA_ADDRESS = 1
IFA_LOCAL = 2
IFA_LABEL = 3
IFA_BROADCAST = 4
IFA_ANYCAST = 5
IFA_CACHEINFO = 6
IFA_MULTICAST = 7
IFA_FLAGS = 8

# Link attributes.
IFLA_UNSPEC = 0
IFLA_ADDRESS = 1
IFLA_BROADCAST = 2
IFLA_IFNAME = 3
IFLA_MTU = 4
IFLA_LINK = 5
IFLA_QDISC = 6
IFLA_STATS = 7
IFLA_MASTER = 10
IFLA_LINKINFO = 18
IFLA_NET_NS_PID = 19
IFLA_AF_SPEC = 26
IFLA_NET_NS_FD = 28
IFLA_EXT_MASK = 29
IFLA_PROP_LIST = 52
IFLA_ALT_IFNAME = 53

# Attributes nested inside IFLA_LINKINFO.
IFLA_INFO_KIND = 1
IFLA_INFO_DATA = 2
IFLA_INFO_XSTATS = 3
IFLA_INFO_SLAVE_KIND = 4
IFLA_INFO_SLAVE_DATA = 5