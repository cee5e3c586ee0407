"""
One accepted client socket and the bytes buffered from it.

A Connection lives as long as the TCP connection. With keep-alive one
connection carries several requests, so ``read_request`` keeps whatever
arrived past the end of the current request for the next call.

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
               ▲                                                │
               └────────────────────────────────────────────────┘
                                      │
                                      ▼
                              CLOSING ──► CLOSED
"""

import re
import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"

# Only used to know how many body bytes to wait for; the parser validates it
_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLargeError(ValueError):
    """The client sent more than ``max_request_size`` bytes for one request."""


@dataclass
class Connection:
    """
    A client socket with request framing.

    ``timeout`` bounds the wait for the first request; later requests on
    the same connection get the shorter ``keep_alive_timeout``.
    """

    socket: socket.socket
    address: Tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    opened_at: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _pending: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    def read_request(self) -> Optional[bytes]:
        """
        Read exactly one request (headers plus Content-Length bytes of body).

        Returns:
            The raw request, or ``None`` when the client closed the
            connection or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLargeError: The request exceeds ``max_request_size``.
        """
        self.state = ConnectionState.READING
        waiting_for_next = self.requests_handled > 0
        if waiting_for_next:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while HEADER_END not in self._pending:
                if not self._fill():
                    return None
            if waiting_for_next:
                self.socket.settimeout(self.timeout)

            body_start = self._pending.index(HEADER_END) + len(HEADER_END)
            match = _CONTENT_LENGTH.search(bytes(self._pending[:body_start]))
            end = body_start + (int(match.group(1)) if match else 0)

            # A short body is passed on as-is; the parser answers it with 400
            while len(self._pending) < end and self._fill():
                pass
        except socket.timeout:
            if waiting_for_next and HEADER_END not in self._pending:
                logger.debug("[%s] Idle keep-alive connection timed out", self.id)
                return None
            raise TimeoutError(f"No complete request within {self.socket.gettimeout()}s") from None

        request = bytes(self._pending[:end])
        del self._pending[:end]
        self.requests_handled += 1
        self.state = ConnectionState.PROCESSING
        return request

    def _fill(self) -> bool:
        """Receive one chunk into the buffer. False when the peer has closed."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        if not chunk:
            return False
        self._pending += chunk
        if len(self._pending) > self.max_request_size:
            raise RequestTooLargeError(
                f"Request exceeds {self.max_request_size} bytes"
            )
        return True

    def send_response(self, data: bytes) -> bool:
        """Write ``data`` in full. Returns False if the client went away."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning("[%s] Send failed: %s", self.id, e)
            return False
        return True

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """Half-close, drain what the client still sends, then close. Idempotent."""
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass
        finally:
            self.socket.close()
            self.state = ConnectionState.CLOSED

        logger.debug(
            "[%s] Closed after %d requests in %.2fs",
            self.id, self.requests_handled, time.monotonic() - self.opened_at,
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
