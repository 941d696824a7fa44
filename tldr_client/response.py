"""
Response model for daemon queries.

Every query ends in exactly one of four variants, discriminated by status:

- OkResponse: the daemon answered; payload is the decoded reply
- IndexingResponse: the daemon is warming up, ask again later
- UnavailableResponse: the daemon is not running and could not be reached
- ErrorResponse: timeout, protocol or transport failure, or a daemon error

The client never raises for these; callers branch on the variant.
"""

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

TIMEOUT = "timeout"
INVALID_JSON = "Invalid JSON response from daemon"
INCOMPLETE = "Incomplete response"
CLOSED_EMPTY = "Connection closed without response"
COULD_NOT_START = "Daemon not running and could not start"
INDEXING_MESSAGE = "Daemon is indexing, results will be available shortly"


@dataclass(frozen=True)
class OkResponse:
    payload: dict[str, Any] = field(default_factory=dict)
    status: ClassVar[str] = "ok"

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, **self.payload}


@dataclass(frozen=True)
class IndexingResponse:
    message: str = INDEXING_MESSAGE
    status: ClassVar[str] = "indexing"

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "message": self.message}


@dataclass(frozen=True)
class UnavailableResponse:
    error: str = COULD_NOT_START
    status: ClassVar[str] = "unavailable"

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "error": self.error}


@dataclass(frozen=True)
class ErrorResponse:
    error: str
    status: ClassVar[str] = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "error": self.error}


Response = Union[OkResponse, IndexingResponse, UnavailableResponse, ErrorResponse]


def from_reply(data: Any) -> Response:
    """Map a decoded daemon reply onto a Response variant.

    The daemon reports its own failures as {"status": "error", "message": ...}.
    Any other object is a successful answer; its own status field (for
    example "ready" from the status command) is kept in the payload.
    """
    if not isinstance(data, dict):
        return ErrorResponse(INVALID_JSON)

    status = data.get("status")
    if status == "error":
        message = data.get("error", data.get("message"))
        return ErrorResponse(str(message) if message is not None else "Unknown daemon error")
    # A bare indexing notice. The status command also reports "indexing" but
    # carries uptime and counts, which stay a regular answer.
    if status == "indexing" and set(data) <= {"status", "message"}:
        return IndexingResponse(data.get("message", INDEXING_MESSAGE))

    payload = dict(data)
    if status == "ok":
        del payload["status"]
    return OkResponse(payload)


def decode_reply(buffer: bytes, terminated: bool) -> Response:
    """Decode the bytes received for one request.

    Args:
        buffer: Everything read from the connection, newline excluded
        terminated: True if a newline was seen, False if the peer closed first
    """
    if terminated:
        try:
            return from_reply(json.loads(buffer.decode()))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return ErrorResponse(INVALID_JSON)

    if not buffer.strip():
        return ErrorResponse(CLOSED_EMPTY)
    try:
        return from_reply(json.loads(buffer.decode()))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return ErrorResponse(INCOMPLETE)


def split_reply(data: bytes) -> tuple[bytes, bool]:
    """Cut raw bytes at the first newline, reporting whether one was found."""
    line, sep, _ = data.partition(b"\n")
    return line, bool(sep)
