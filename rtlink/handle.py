"""Routing netlink connection and the handle that sends requests over it."""

from __future__ import annotations

import asyncio
import socket
from collections import deque
from typing import Any, AsyncIterator, Optional

from .addr import AddressHandle
from .constants import NETLINK_ROUTE, NLM_F_MULTI
from .errors import RequestFailed
from .link import LinkHandle
from .messages import ErrorMessage, MessageType, NetlinkMessage, parse_messages

DEFAULT_BUFFER_SIZE = 65536
_MAX_SEQUENCE = 0xFFFF_FFFF


class Connection:
    """A non-blocking routing netlink socket used from asyncio."""

    def __init__(
        self, sock: Optional[socket.socket] = None, buffer_size: int = DEFAULT_BUFFER_SIZE
    ) -> None:
        if buffer_size <= 0:
            raise ValueError(f"buffer size must be positive, got {buffer_size}")
        if sock is None:
            family = getattr(socket, "AF_NETLINK", None)
            if family is None:
                raise OSError("netlink sockets are not available on this platform")
            sock = socket.socket(family, socket.SOCK_RAW, NETLINK_ROUTE)
        sock.setblocking(False)
        self.sock = sock
        self.buffer_size = buffer_size

    async def send(self, data: bytes) -> None:
        """Send one encoded datagram to the kernel."""
        await asyncio.get_running_loop().sock_sendall(self.sock, data)

    async def receive(self) -> list[NetlinkMessage]:
        """Wait for one datagram and return the messages it holds."""
        data = await asyncio.get_running_loop().sock_recv(self.sock, self.buffer_size)
        return list(parse_messages(data))

    def bind(self, groups: int) -> None:
        """Subscribe to the multicast groups given as a bitmask."""
        if not isinstance(groups, int) or not 0 <= groups <= _MAX_SEQUENCE:
            raise ValueError(f"groups must be a 32-bit unsigned bitmask, got {groups!r}")
        self.sock.bind((0, groups))

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class Handle:
    """Sends requests over a connection and routes the replies back to them.

    Several requests may be in flight at once: replies are matched to their
    request by sequence number, and those that match no request are dropped.
    """

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self._sequence = 0
        self._pending: dict[int, deque[NetlinkMessage]] = {}
        self._reader = asyncio.Lock()

    def _next_sequence(self) -> int:
        self._sequence = self._sequence % _MAX_SEQUENCE + 1
        return self._sequence

    async def _send(self, message: NetlinkMessage) -> None:
        try:
            await self.connection.send(message.encode())
        except OSError as exc:
            raise RequestFailed() from exc

    async def _next_response(self, queue: deque[NetlinkMessage]) -> NetlinkMessage:
        while not queue:
            async with self._reader:
                if queue:
                    break
                try:
                    batch = await self.connection.receive()
                except OSError as exc:
                    raise RequestFailed() from exc
                for response in batch:
                    target = self._pending.get(response.header.sequence)
                    if target is not None:
                        target.append(response)
        return queue.popleft()

    async def request(self, message: NetlinkMessage) -> AsyncIterator[NetlinkMessage]:
        """Send a request and yield its replies until the exchange is over.

        The end-of-dump marker and acknowledgements are consumed; an error
        reply is yielded and ends the exchange.
        """
        sequence = self._next_sequence()
        message.header.sequence = sequence
        queue: deque[NetlinkMessage] = deque()
        self._pending[sequence] = queue
        try:
            await self._send(message)
            while True:
                response = await self._next_response(queue)
                if response.header.message_type == MessageType.DONE:
                    return
                if isinstance(response.payload, ErrorMessage):
                    if not response.payload.is_ack:
                        yield response
                    return
                yield response
                if not response.header.flags & NLM_F_MULTI:
                    return
        finally:
            self._pending.pop(sequence, None)

    async def notify(self, message: NetlinkMessage) -> None:
        """Send a message without waiting for any reply."""
        message.header.sequence = self._next_sequence()
        await self._send(message)

    def link(self) -> LinkHandle:
        """Requests on links, like ``ip link``."""
        return LinkHandle(self)

    def address(self) -> AddressHandle:
        """Requests on addresses, like ``ip addr``."""
        return AddressHandle(self)


def new_connection() -> tuple[Connection, Handle]:
    """Open a routing netlink socket and return it with a handle on it."""
    connection = Connection()
    return connection, Handle(connection)