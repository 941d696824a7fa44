"""
Cheap liveness checks for the daemon endpoint.

Unix sockets get a protocol-level ping because a socket file can outlive
its daemon; a confirmed-dead file is removed so the next start is not
blocked by it. TCP ports are released by the OS with the process, so a
bare connect is enough there.
"""

import json
import logging
import socket
from pathlib import Path

from .addressing import ConnectionInfo, TcpAddress, UnixAddress

logger = logging.getLogger(__name__)

DEFAULT_REACHABILITY_TIMEOUT = 0.2

_PING = json.dumps({"cmd": "ping"}).encode() + b"\n"


def _remove_stale_socket(path: Path) -> None:
    try:
        path.unlink()
        logger.debug(f"Removed stale socket {path}")
    except OSError:
        pass


def _ping_unix_socket(path: Path, timeout: float) -> bool:
    """Send a ping and wait for one reply line."""
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        try:
            sock.connect(str(path))
        except (ConnectionRefusedError, FileNotFoundError) as e:
            logger.debug(f"Socket {path} is dead: {e}")
            _remove_stale_socket(path)
            return False

        sock.sendall(_PING)
        data = b""
        while b"\n" not in data:
            chunk = sock.recv(4096)
            if not chunk:
                return False
            data += chunk
        return True
    except OSError as e:
        # Includes socket.timeout: a slow daemon is not a dead one.
        logger.debug(f"Ping on {path} failed: {e}")
        return False
    finally:
        sock.close()


def _can_connect_tcp(host: str, port: int, timeout: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def is_reachable(info: ConnectionInfo, timeout: float = DEFAULT_REACHABILITY_TIMEOUT) -> bool:
    """Check whether a daemon is listening at ``info``.

    Args:
        info: Resolved transport address
        timeout: Per-probe socket timeout in seconds

    Returns:
        True if the daemon answered (Unix) or accepted a connection (TCP)
    """
    if isinstance(info, UnixAddress):
        path = Path(info.path)
        if not path.exists():
            return False
        return _ping_unix_socket(path, timeout)
    if isinstance(info, TcpAddress):
        return _can_connect_tcp(info.host, info.port, timeout)
    raise TypeError(f"Unknown connection info: {info!r}")
