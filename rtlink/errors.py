"""Exceptions raised by routing netlink requests."""

from __future__ import annotations

from typing import Any


class RtnlError(Exception):
    """Base class of every error raised by this package."""


class UnexpectedMessage(RtnlError):
    """A response of an unexpected kind was received."""

    def __init__(self, message: Any) -> None:
        super().__init__(f"Received an unexpected message {message!r}")
        self.message = message


class NetlinkError(RtnlError):
    """The kernel answered a request with a netlink error message."""

    def __init__(self, error: Any) -> None:
        super().__init__(f"Received a netlink error message {error}")
        self.error = error


class RequestFailed(RtnlError):
    """A request could not be sent."""

    def __init__(self) -> None:
        super().__init__("A netlink request failed")


class NamespaceError(RtnlError):
    """A network namespace operation failed."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Namespace error {detail}")
        self.detail = detail


class InvalidHardwareAddress(RtnlError):
    """A link message carried a malformed hardware address attribute."""

    def __init__(self, address: bytes) -> None:
        super().__init__(
            "Received a link message (RTM_GETLINK, RTM_NEWLINK, RTM_SETLINK or "
            "RTMGETLINK) with an invalid hardware address attribute: "
            f"{address!r}."
        )
        self.address = address


class InvalidIp(RtnlError):
    """Bytes that should hold an IP address could not be parsed."""

    def __init__(self, address: bytes) -> None:
        super().__init__(f"Failed to parse an IP address: {address!r}")
        self.address = address


class InvalidAddress(RtnlError):
    """Bytes that should hold an address and mask could not be parsed."""

    def __init__(self, address: bytes, mask: bytes) -> None:
        super().__init__(
            "Failed to parse a network address (IP and mask): "
            f"{address!r}/{mask!r}"
        )
        self.address = address
        self.mask = mask