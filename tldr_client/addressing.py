"""
Deterministic transport addressing for the per-project daemon.

The daemon and every client derive the same address from the project path,
so no registry or discovery step is needed:

- Linux/macOS: Unix domain socket at /tmp/tldr-<hash8>.sock
- Windows: TCP on 127.0.0.1 with a port in the dynamic range
"""

import hashlib
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Union

TCP_HOST = "127.0.0.1"
TCP_PORT_BASE = 49152
TCP_PORT_SPAN = 10000


@dataclass(frozen=True)
class UnixAddress:
    """Unix domain socket endpoint."""

    path: str
    kind: str = "unix"

    def describe(self) -> str:
        return self.path


@dataclass(frozen=True)
class TcpAddress:
    """TCP loopback endpoint (Windows)."""

    host: str
    port: int
    kind: str = "tcp"

    def describe(self) -> str:
        return f"{self.host}:{self.port}"


ConnectionInfo = Union[UnixAddress, TcpAddress]


def project_hash(project: str | Path) -> str:
    """First 8 hex chars of the MD5 of the project path."""
    return hashlib.md5(str(project).encode()).hexdigest()[:8]


def get_socket_path(project: str | Path) -> Path:
    """Get socket path for daemon communication."""
    return Path(f"/tmp/tldr-{project_hash(project)}.sock")


def get_tcp_port(project: str | Path) -> int:
    """Deterministic loopback port derived from the project hash."""
    return TCP_PORT_BASE + (int(project_hash(project), 16) % TCP_PORT_SPAN)


def resolve_connection(project: str | Path, platform: str | None = None) -> ConnectionInfo:
    """Return the transport address of the daemon serving ``project``.

    Args:
        project: Absolute path of the project root
        platform: Override for sys.platform (tests)

    Returns:
        UnixAddress on non-Windows platforms, TcpAddress on Windows
    """
    platform = platform or sys.platform
    if platform == "win32":
        return TcpAddress(host=TCP_HOST, port=get_tcp_port(project))
    return UnixAddress(path=str(get_socket_path(project)))
