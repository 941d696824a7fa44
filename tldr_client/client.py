"""
Query client for the per-project TLDR daemon.

Each call is independent: the address and status marker are read fresh,
the daemon is started if nobody is listening, one request is exchanged,
and the connection is torn down. Every outcome is returned as a Response;
nothing here raises for an absent, busy or misbehaving daemon.

Usage:
    response = await query_daemon({"cmd": "search", "pattern": "auth"}, project)
    response = query_daemon_sync({"cmd": "ping"}, project)
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from .addressing import ConnectionInfo, resolve_connection
from .config import ClientConfig, load_client_config, resolve_project
from .launcher import ensure_running
from .response import COULD_NOT_START, IndexingResponse, Response, UnavailableResponse
from .status import is_indexing
from .transport import AsyncSocketTransport, QueryTransport, SubprocessTransport

logger = logging.getLogger(__name__)


def encode_query(query: Mapping[str, Any]) -> bytes:
    """Serialize a query to its wire form (one JSON line)."""
    if not isinstance(query.get("cmd"), str) or not query["cmd"]:
        raise ValueError(f"Query needs a 'cmd' string: {dict(query)!r}")
    return json.dumps(dict(query)).encode() + b"\n"


class DaemonClient:
    """Client bound to one project root.

    Args:
        project: Project root; defaults to the environment / working directory
        config: Timeouts and launch settings; loaded from the project if omitted
        transport: Non-blocking transport used by query()
        sync_transport: Blocking transport used by query_sync()
    """

    def __init__(
        self,
        project: str | Path | None = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[QueryTransport] = None,
        sync_transport: Optional[QueryTransport] = None,
    ):
        self.project = resolve_project(project)
        self.config = config or load_client_config(self.project)
        self.transport = transport or AsyncSocketTransport()
        self.sync_transport = sync_transport or SubprocessTransport()

    def connection_info(self) -> ConnectionInfo:
        return resolve_connection(self.project)

    def _preflight(self) -> tuple[ConnectionInfo, Optional[Response]]:
        """Steps shared by both calling conventions.

        Returns the resolved address and, if the call must stop here, the
        response to return instead of talking to the daemon.
        """
        if is_indexing(self.project):
            logger.debug(f"Daemon for {self.project} is indexing")
            return self.connection_info(), IndexingResponse()

        info = self.connection_info()
        # ensure_running returns at once when the daemon already answers.
        if not ensure_running(self.project, self.config):
            logger.debug(f"No daemon at {info.describe()}")
            return info, UnavailableResponse(COULD_NOT_START)
        return info, None

    async def query(self, query: Mapping[str, Any]) -> Response:
        """Send one query over the event-driven transport."""
        request = encode_query(query)
        info, early = await asyncio.to_thread(self._preflight)
        if early is not None:
            return early
        return await self.transport.exchange(info, request, self.config.timeout)

    def query_sync(self, query: Mapping[str, Any]) -> Response:
        """Send one query, blocking the calling thread until it resolves."""
        request = encode_query(query)
        info, early = self._preflight()
        if early is not None:
            return early
        return self.sync_transport.exchange(info, request, self.config.timeout)


async def query_daemon(query: Mapping[str, Any], project: str | Path | None = None) -> Response:
    """Send a command to the daemon and return its Response."""
    return await DaemonClient(project).query(query)


def query_daemon_sync(query: Mapping[str, Any], project: str | Path | None = None) -> Response:
    """Blocking form of query_daemon()."""
    return DaemonClient(project).query_sync(query)
