"""
Request/response exchange with the daemon.

Both transports carry exactly one newline-framed JSON request and read one
newline-framed reply, then close:

- AsyncSocketTransport: asyncio streams, for callers with an event loop
- SubprocessTransport: blocking, delegates the socket work to a helper
  process (tldr_client.oneshot) that is killed at the deadline
"""

import asyncio
import errno
import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar

from .addressing import ConnectionInfo, TcpAddress, UnixAddress
from .response import (
    TIMEOUT,
    ErrorResponse,
    Response,
    UnavailableResponse,
    decode_reply,
    split_reply,
)

logger = logging.getLogger(__name__)

# Call graphs and trees of large projects easily exceed asyncio's 64 KiB default.
STREAM_LIMIT = 64 * 1024 * 1024

# Exit codes of the oneshot helper
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNAVAILABLE = 3
EXIT_TIMEOUT = 4

# Directory holding the tldr_client package, so the helper imports this copy
# even when the caller found it through sys.path rather than an install.
PACKAGE_ROOT = str(Path(__file__).resolve().parent.parent)

_UNREACHABLE_ERRNOS = {errno.ECONNREFUSED, errno.ENOENT}


def is_unreachable_error(exc: OSError) -> bool:
    """True for "connection refused" and "no such endpoint" failures."""
    if isinstance(exc, (ConnectionRefusedError, FileNotFoundError)):
        return True
    return exc.errno in _UNREACHABLE_ERRNOS


def transport_error(exc: OSError) -> Response:
    if is_unreachable_error(exc):
        return UnavailableResponse(f"Daemon not reachable: {exc}")
    return ErrorResponse(str(exc))


def helper_env() -> dict[str, str]:
    """Environment for the helper process, with PACKAGE_ROOT first on PYTHONPATH."""
    env = dict(os.environ)
    existing = env.get("PYTHONPATH")
    env["PYTHONPATH"] = os.pathsep.join([PACKAGE_ROOT, existing]) if existing else PACKAGE_ROOT
    return env


def address_args(info: ConnectionInfo) -> list[str]:
    """Command-line form of an address, understood by tldr_client.oneshot."""
    if isinstance(info, UnixAddress):
        return ["--unix", info.path]
    return ["--tcp", info.host, str(info.port)]


class QueryTransport(ABC):
    """Carries one encoded request to the daemon and decodes the reply.

    ``exchange`` is a coroutine function on non-blocking transports and a
    plain function on blocking ones; ``blocking`` tells them apart.
    """

    blocking: ClassVar[bool]

    @abstractmethod
    def exchange(self, info: ConnectionInfo, request: bytes, timeout: float) -> Any:
        ...


class AsyncSocketTransport(QueryTransport):
    blocking = False

    async def _open(self, info: ConnectionInfo):
        if isinstance(info, TcpAddress):
            return await asyncio.open_connection(info.host, info.port, limit=STREAM_LIMIT)
        return await asyncio.open_unix_connection(info.path, limit=STREAM_LIMIT)

    async def _round_trip(self, info: ConnectionInfo, request: bytes) -> Response:
        reader, writer = await self._open(info)
        try:
            writer.write(request)
            await writer.drain()
            try:
                data = await reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                return decode_reply(e.partial, terminated=False)
            return decode_reply(data[:-1], terminated=True)
        finally:
            # Runs on cancellation too, so a timed-out call drops the connection.
            writer.close()

    async def exchange(self, info: ConnectionInfo, request: bytes, timeout: float) -> Response:
        try:
            return await asyncio.wait_for(self._round_trip(info, request), timeout)
        except asyncio.TimeoutError:
            logger.debug(f"No response from {info.describe()} within {timeout}s")
            return ErrorResponse(TIMEOUT)
        except asyncio.LimitOverrunError:
            return ErrorResponse("Response too large")
        except OSError as e:
            logger.debug(f"Transport error on {info.describe()}: {e}")
            return transport_error(e)


class SubprocessTransport(QueryTransport):
    blocking = True

    def __init__(self, python: str = sys.executable):
        self.python = python

    def exchange(self, info: ConnectionInfo, request: bytes, timeout: float) -> Response:
        args = [
            self.python,
            "-m",
            "tldr_client.oneshot",
            *address_args(info),
            "--timeout",
            str(timeout),
        ]
        try:
            completed = subprocess.run(
                args,
                input=request,
                capture_output=True,
                timeout=timeout,
                env=helper_env(),
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"Helper for {info.describe()} killed after {timeout}s")
            return ErrorResponse(TIMEOUT)
        except OSError as e:
            return ErrorResponse(f"Could not run query helper: {e}")

        stderr = completed.stderr.decode(errors="replace").strip()
        if completed.returncode == EXIT_UNAVAILABLE:
            return UnavailableResponse(stderr or "Daemon not reachable")
        if completed.returncode == EXIT_TIMEOUT:
            return ErrorResponse(TIMEOUT)
        if completed.returncode != EXIT_OK:
            return ErrorResponse(stderr or f"Query helper exited with {completed.returncode}")

        line, terminated = split_reply(completed.stdout)
        return decode_reply(line, terminated)
