"""
Networking and shared runtime state.

    socket_server.py   accept loop, graceful shutdown
    connection.py      per-client socket with request framing
    thread_pool.py     worker threads serving connections
    hit_counter.py     the request counter behind /admin/metrics
"""

from .connection import Connection, ConnectionState, RequestTooLargeError
from .hit_counter import HitCounter
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "HitCounter",
    "SocketServer",
    "ThreadPool",
]
