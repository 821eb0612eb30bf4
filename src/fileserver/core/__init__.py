"""
Core networking and concurrency components.

    SocketServer  listening socket and accept loop
    Connection    one accepted client socket
    WorkerPool    fixed-size pool of worker threads
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .worker_pool import WorkerPool, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "WorkerPool",
    "Worker",
    "WorkerState",
]
