"""
=============================================================================
SOCKET SERVER
=============================================================================

The TCP layer: bind, listen, accept, hand each Connection to a callback.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   start(handler)                                                     │
    │       │                                                              │
    │       ├── socket()  SO_REUSEADDR, TCP_NODELAY, 1s accept timeout     │
    │       ├── bind()    port 0 → the OS picks; see .address afterwards   │
    │       ├── listen()                                                   │
    │       │                                                              │
    │       └── loop ──► accept() ──► Connection ──► handler(conn)         │
    │              ▲        │                                              │
    │              │        └── timeout: check the stop flag again         │
    │              └──────────────────────────────────────────────────────│
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The 1 second accept timeout is how ``shutdown()`` from another thread (or
from a signal handler) gets noticed: the loop wakes up at least once a
second and re-checks the stop flag.

SIGINT and SIGTERM trigger a graceful shutdown, but only when the server
runs on the main thread. Python refuses to install signal handlers
anywhere else, and a server started from a test fixture lives in a
background thread.

=============================================================================
"""

import socket
import signal
import logging
import threading
from contextlib import contextmanager
from typing import Optional, Callable, Tuple, Iterator

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ConnectionHandler = Callable[[Connection], None]

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Accepts TCP connections and passes them to a handler.

        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None
        self._listening = threading.Event()
        self._stopped = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._listening.is_set() and not self._stopped.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound ``(host, port)``; the configured one before binding."""
        return self._bound_address or (self.config.host, self.config.port)

    def start(
        self,
        handler: ConnectionHandler,
        on_listening: Optional[Callable[[Tuple[str, int]], None]] = None
    ):
        """
        Bind, listen and run the accept loop. Blocks until ``shutdown()``.

        ``on_listening`` is called with the bound address once the socket
        accepts connections.

        Raises:
            OSError: The address could not be bound.
        """
        self._stopped.clear()
        self._socket = self._listen()
        try:
            with self._signals_installed():
                self._listening.set()
                logger.info("Server listening on %s:%d", *self._bound_address)
                if on_listening is not None:
                    on_listening(self._bound_address)
                while not self._stopped.is_set():
                    conn = self._accept()
                    if conn is not None:
                        handler(conn)
        finally:
            self._listening.clear()
            self._socket.close()
            self._socket = None
            logger.info("Socket server stopped")

    def _listen(self) -> socket.socket:
        host, port = self.config.host, self.config.port
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.bind((host, port))
            sock.listen(self.config.backlog)
        except OSError as e:
            logger.error("Failed to bind to %s:%s: %s", host, port, e)
            sock.close()
            raise
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        self._bound_address = sock.getsockname()[:2]
        return sock

    def _accept(self) -> Optional[Connection]:
        """Wait up to one poll interval for a client. None when nobody came."""
        try:
            client, address = self._socket.accept()
        except socket.timeout:
            return None
        except OSError as e:
            if not self._stopped.is_set():
                logger.error("Accept error: %s", e)
            self._stopped.set()
            return None

        logger.debug("Accepted connection from %s:%s", *address[:2])
        return Connection(
            socket=client,
            address=address,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )

    @contextmanager
    def _signals_installed(self) -> Iterator[None]:
        """SIGINT/SIGTERM call ``shutdown()`` while the block runs (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            yield
            return

        def on_signal(signum, frame):
            logger.info("Received %s, initiating shutdown...", signal.Signals(signum).name)
            self.shutdown()

        previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            yield
        finally:
            for sig, old in previous.items():
                signal.signal(sig, old)

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._listening.wait(timeout)

    def shutdown(self):
        """Ask the accept loop to stop. Safe to call more than once, from any thread."""
        if not self._stopped.is_set():
            logger.info("Shutting down socket server...")
            self._stopped.set()
