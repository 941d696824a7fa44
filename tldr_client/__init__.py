"""
Client for the per-project TLDR analysis daemon.

Locates the daemon from the project path, starts it on demand and sends
one JSON request per connection. Failures come back as Response values
(indexing / unavailable / error) instead of exceptions.
"""

__version__ = "0.1.0"

from .addressing import ConnectionInfo, TcpAddress, UnixAddress, resolve_connection
from .client import DaemonClient, query_daemon, query_daemon_sync
from .config import ClientConfig, load_client_config, resolve_project
from .launcher import ensure_running
from .reachability import is_reachable
from .response import (
    ErrorResponse,
    IndexingResponse,
    OkResponse,
    Response,
    UnavailableResponse,
)
from .status import is_indexing
from .commands import *  # noqa: F401,F403
