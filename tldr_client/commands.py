"""
Typed entry points for every daemon command.

Each command has an async function and a blocking ``*_sync`` twin. They only
build the query and pick the relevant field out of the Response; timeouts,
auto-start and degradation all come from DaemonClient. When the daemon
cannot answer, list-returning commands give [] and the others hand back the
status object (e.g. {"status": "unavailable", "error": ...}).

``project`` is the project root, or an existing DaemonClient to reuse.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .client import DaemonClient
from .config import resolve_project
from .response import OkResponse, Response
from .tldrignore import should_ignore

logger = logging.getLogger(__name__)

ProjectArg = Union[str, Path, DaemonClient, None]

DEFAULT_LANGUAGE = "python"

__all__ = [
    "ping_daemon",
    "ping_daemon_sync",
    "search_daemon",
    "search_daemon_sync",
    "impact_daemon",
    "impact_daemon_sync",
    "extract_daemon",
    "extract_daemon_sync",
    "status_daemon",
    "status_daemon_sync",
    "dead_code_daemon",
    "dead_code_daemon_sync",
    "arch_daemon",
    "arch_daemon_sync",
    "cfg_daemon",
    "cfg_daemon_sync",
    "dfg_daemon",
    "dfg_daemon_sync",
    "slice_daemon",
    "slice_daemon_sync",
    "calls_daemon",
    "calls_daemon_sync",
    "warm_daemon",
    "warm_daemon_sync",
    "semantic_search_daemon",
    "semantic_search_daemon_sync",
    "semantic_index_daemon",
    "semantic_index_daemon_sync",
    "tree_daemon",
    "tree_daemon_sync",
    "structure_daemon",
    "structure_daemon_sync",
    "context_daemon",
    "context_daemon_sync",
    "imports_daemon",
    "imports_daemon_sync",
    "importers_daemon",
    "importers_daemon_sync",
    "notify_daemon",
    "notify_daemon_sync",
    "diagnostics_daemon",
    "diagnostics_daemon_sync",
    "change_impact_daemon",
    "change_impact_daemon_sync",
    "shutdown_daemon",
    "shutdown_daemon_sync",
    "SymbolIndex",
]


def _client(project: ProjectArg) -> DaemonClient:
    if isinstance(project, DaemonClient):
        return project
    return DaemonClient(project)


async def _send(project: ProjectArg, query: dict) -> Response:
    return await _client(project).query(query)


def _send_sync(project: ProjectArg, query: dict) -> Response:
    return _client(project).query_sync(query)


# -------------------------------------------------------------------------
# Response unwrapping
# -------------------------------------------------------------------------

def _status(response: Response) -> str:
    """Status string: "ok" or the daemon's own status, else the variant's."""
    return response.to_dict()["status"]


def _whole(response: Response) -> dict:
    return response.to_dict()


def _result(response: Response) -> Any:
    """The ``result`` field when set, otherwise the whole response."""
    if isinstance(response, OkResponse) and response.payload.get("result") is not None:
        return response.payload["result"]
    return response.to_dict()


def _items(response: Response, key: str) -> list:
    """A list field of a successful response; [] in every other case."""
    if not isinstance(response, OkResponse):
        return []
    value = response.payload.get(key)
    if isinstance(value, list):
        return value
    return []


# -------------------------------------------------------------------------
# Query builders
# -------------------------------------------------------------------------

def _search_query(pattern: str, max_results: int) -> dict:
    return {"cmd": "search", "pattern": pattern, "max_results": max_results}


def _dead_query(entry_points: Optional[list[str]], language: str) -> dict:
    return {"cmd": "dead", "entry_points": entry_points, "language": language}


def _flow_query(cmd: str, file: str, function: str, language: str) -> dict:
    return {"cmd": cmd, "file": file, "function": function, "language": language}


def _slice_query(file: str, function: str, line: int, direction: str, variable: Optional[str]) -> dict:
    return {
        "cmd": "slice",
        "file": file,
        "function": function,
        "line": line,
        "direction": direction,
        "variable": variable,
    }


def _tree_query(extensions: Optional[list[str]], exclude_hidden: bool) -> dict:
    return {"cmd": "tree", "extensions": extensions, "exclude_hidden": exclude_hidden}


def _structure_query(language: str, max_results: int) -> dict:
    return {"cmd": "structure", "language": language, "max_results": max_results}


def _context_query(entry: str, language: str, depth: int) -> dict:
    return {"cmd": "context", "entry": entry, "language": language, "depth": depth}


def _diagnostics_query(file: Optional[str], project_wide: bool, no_lint: bool) -> dict:
    query: dict[str, Any] = {"cmd": "diagnostics", "project": project_wide, "no_lint": no_lint}
    if file is not None:
        query["file"] = file
    return query


def _change_impact_query(files: Optional[list[str]], session: bool, git: bool) -> dict:
    return {"cmd": "change_impact", "files": files or [], "session": session, "git": git}


# -------------------------------------------------------------------------
# Commands
# -------------------------------------------------------------------------

async def ping_daemon(project: ProjectArg = None) -> str:
    """Ping the daemon; returns "ok" when it answered."""
    return _status(await _send(project, {"cmd": "ping"}))


def ping_daemon_sync(project: ProjectArg = None) -> str:
    return _status(_send_sync(project, {"cmd": "ping"}))


async def search_daemon(pattern: str, max_results: int = 100, project: ProjectArg = None) -> list:
    """Regex search over the project; [] if the daemon has no answer."""
    return _items(await _send(project, _search_query(pattern, max_results)), "results")


def search_daemon_sync(pattern: str, max_results: int = 100, project: ProjectArg = None) -> list:
    return _items(_send_sync(project, _search_query(pattern, max_results)), "results")


async def impact_daemon(func: str, project: ProjectArg = None) -> list:
    """Callers of ``func`` from the call graph."""
    return _items(await _send(project, {"cmd": "impact", "func": func}), "callers")


def impact_daemon_sync(func: str, project: ProjectArg = None) -> list:
    return _items(_send_sync(project, {"cmd": "impact", "func": func}), "callers")


async def extract_daemon(file: str, project: ProjectArg = None) -> Any:
    """Structural summary of one file."""
    return _result(await _send(project, {"cmd": "extract", "file": file}))


def extract_daemon_sync(file: str, project: ProjectArg = None) -> Any:
    return _result(_send_sync(project, {"cmd": "extract", "file": file}))


async def status_daemon(project: ProjectArg = None) -> dict:
    """Daemon status, uptime and cache statistics."""
    return _whole(await _send(project, {"cmd": "status"}))


def status_daemon_sync(project: ProjectArg = None) -> dict:
    return _whole(_send_sync(project, {"cmd": "status"}))


async def dead_code_daemon(
    entry_points: Optional[list[str]] = None,
    language: str = DEFAULT_LANGUAGE,
    project: ProjectArg = None,
) -> Any:
    """Functions unreachable from ``entry_points``."""
    return _result(await _send(project, _dead_query(entry_points, language)))


def dead_code_daemon_sync(
    entry_points: Optional[list[str]] = None,
    language: str = DEFAULT_LANGUAGE,
    project: ProjectArg = None,
) -> Any:
    return _result(_send_sync(project, _dead_query(entry_points, language)))


async def arch_daemon(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    """Architecture layers inferred from the call graph."""
    return _result(await _send(project, {"cmd": "arch", "language": language}))


def arch_daemon_sync(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    return _result(_send_sync(project, {"cmd": "arch", "language": language}))


async def cfg_daemon(file: str, function: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    """Control flow graph of one function."""
    return _result(await _send(project, _flow_query("cfg", file, function, language)))


def cfg_daemon_sync(file: str, function: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    return _result(_send_sync(project, _flow_query("cfg", file, function, language)))


async def dfg_daemon(file: str, function: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    """Data flow graph of one function."""
    return _result(await _send(project, _flow_query("dfg", file, function, language)))


def dfg_daemon_sync(file: str, function: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    return _result(_send_sync(project, _flow_query("dfg", file, function, language)))


async def slice_daemon(
    file: str,
    function: str,
    line: int,
    direction: str = "backward",
    variable: Optional[str] = None,
    project: ProjectArg = None,
) -> dict:
    """Program slice; the whole response carries ``lines`` and ``count``."""
    return _whole(await _send(project, _slice_query(file, function, line, direction, variable)))


def slice_daemon_sync(
    file: str,
    function: str,
    line: int,
    direction: str = "backward",
    variable: Optional[str] = None,
    project: ProjectArg = None,
) -> dict:
    return _whole(_send_sync(project, _slice_query(file, function, line, direction, variable)))


async def calls_daemon(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    """Project call graph."""
    return _result(await _send(project, {"cmd": "calls", "language": language}))


def calls_daemon_sync(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> Any:
    return _result(_send_sync(project, {"cmd": "calls", "language": language}))


async def warm_daemon(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> dict:
    """Rebuild the call graph cache."""
    return _whole(await _send(project, {"cmd": "warm", "language": language}))


def warm_daemon_sync(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> dict:
    return _whole(_send_sync(project, {"cmd": "warm", "language": language}))


async def semantic_search_daemon(query: str, k: int = 10, project: ProjectArg = None) -> list:
    """Embedding search; top ``k`` matches."""
    return _items(
        await _send(project, {"cmd": "semantic", "action": "search", "query": query, "k": k}),
        "results",
    )


def semantic_search_daemon_sync(query: str, k: int = 10, project: ProjectArg = None) -> list:
    return _items(
        _send_sync(project, {"cmd": "semantic", "action": "search", "query": query, "k": k}),
        "results",
    )


async def semantic_index_daemon(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> dict:
    """Build the semantic index."""
    return _whole(await _send(project, {"cmd": "semantic", "action": "index", "language": language}))


def semantic_index_daemon_sync(language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> dict:
    return _whole(_send_sync(project, {"cmd": "semantic", "action": "index", "language": language}))


async def tree_daemon(
    extensions: Optional[list[str]] = None,
    exclude_hidden: bool = True,
    project: ProjectArg = None,
) -> Any:
    """File tree of the project."""
    return _result(await _send(project, _tree_query(extensions, exclude_hidden)))


def tree_daemon_sync(
    extensions: Optional[list[str]] = None,
    exclude_hidden: bool = True,
    project: ProjectArg = None,
) -> Any:
    return _result(_send_sync(project, _tree_query(extensions, exclude_hidden)))


async def structure_daemon(language: str = DEFAULT_LANGUAGE, max_results: int = 100, project: ProjectArg = None) -> Any:
    """Functions and classes per file."""
    return _result(await _send(project, _structure_query(language, max_results)))


def structure_daemon_sync(language: str = DEFAULT_LANGUAGE, max_results: int = 100, project: ProjectArg = None) -> Any:
    return _result(_send_sync(project, _structure_query(language, max_results)))


async def context_daemon(entry: str, language: str = DEFAULT_LANGUAGE, depth: int = 2, project: ProjectArg = None) -> Any:
    """Code context reachable from ``entry`` up to ``depth`` calls away."""
    return _result(await _send(project, _context_query(entry, language, depth)))


def context_daemon_sync(entry: str, language: str = DEFAULT_LANGUAGE, depth: int = 2, project: ProjectArg = None) -> Any:
    return _result(_send_sync(project, _context_query(entry, language, depth)))


async def imports_daemon(file: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> list:
    """Import statements of one file."""
    return _items(await _send(project, {"cmd": "imports", "file": file, "language": language}), "imports")


def imports_daemon_sync(file: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> list:
    return _items(_send_sync(project, {"cmd": "imports", "file": file, "language": language}), "imports")


async def importers_daemon(module: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> dict:
    """Files importing ``module``."""
    return _whole(await _send(project, {"cmd": "importers", "module": module, "language": language}))


def importers_daemon_sync(module: str, language: str = DEFAULT_LANGUAGE, project: ProjectArg = None) -> dict:
    return _whole(_send_sync(project, {"cmd": "importers", "module": module, "language": language}))


def _ignored_notice(file: str, project: ProjectArg) -> Optional[dict]:
    root = project.project if isinstance(project, DaemonClient) else resolve_project(project)
    if should_ignore(file, root):
        logger.debug(f"Not notifying daemon about ignored file {file}")
        return {"status": "ok", "ignored": True}
    return None


async def notify_daemon(file: str, project: ProjectArg = None) -> dict:
    """Tell the daemon ``file`` changed; ignored files are not sent."""
    notice = _ignored_notice(file, project)
    if notice is not None:
        return notice
    return _whole(await _send(project, {"cmd": "notify", "file": file}))


def notify_daemon_sync(file: str, project: ProjectArg = None) -> dict:
    notice = _ignored_notice(file, project)
    if notice is not None:
        return notice
    return _whole(_send_sync(project, {"cmd": "notify", "file": file}))


async def diagnostics_daemon(
    file: Optional[str] = None,
    project_wide: bool = False,
    no_lint: bool = False,
    project: ProjectArg = None,
) -> dict:
    """Type check and lint results."""
    return _whole(await _send(project, _diagnostics_query(file, project_wide, no_lint)))


def diagnostics_daemon_sync(
    file: Optional[str] = None,
    project_wide: bool = False,
    no_lint: bool = False,
    project: ProjectArg = None,
) -> dict:
    return _whole(_send_sync(project, _diagnostics_query(file, project_wide, no_lint)))


async def change_impact_daemon(
    files: Optional[list[str]] = None,
    session: bool = False,
    git: bool = False,
    project: ProjectArg = None,
) -> dict:
    """Tests affected by changed files."""
    return _whole(await _send(project, _change_impact_query(files, session, git)))


def change_impact_daemon_sync(
    files: Optional[list[str]] = None,
    session: bool = False,
    git: bool = False,
    project: ProjectArg = None,
) -> dict:
    return _whole(_send_sync(project, _change_impact_query(files, session, git)))


def _no_autostart(project: ProjectArg) -> DaemonClient:
    client = _client(project)
    return DaemonClient(
        client.project,
        config=replace(client.config, auto_start=False),
        transport=client.transport,
        sync_transport=client.sync_transport,
    )


async def shutdown_daemon(project: ProjectArg = None) -> dict:
    """Ask a running daemon to exit. Never starts one."""
    return _whole(await _no_autostart(project).query({"cmd": "shutdown"}))


def shutdown_daemon_sync(project: ProjectArg = None) -> dict:
    return _whole(_no_autostart(project).query_sync({"cmd": "shutdown"}))


# -------------------------------------------------------------------------
# Caller-owned caches
# -------------------------------------------------------------------------

class SymbolIndex:
    """Symbol name -> definitions, built from the structure command.

    The index is loaded on the first lookup and kept by whoever owns this
    object; the client itself holds no state between calls. A load that
    yields no files (daemon unavailable, still indexing) is not cached, so
    the next lookup tries again.

    Args:
        project: Project root or DaemonClient
        language: Language passed to the structure command
        loader: Replaces the structure query (tests, alternative sources)
    """

    def __init__(
        self,
        project: ProjectArg = None,
        language: str = DEFAULT_LANGUAGE,
        max_results: int = 1000,
        loader: Optional[Callable[[], Any]] = None,
    ):
        self._loader = loader or (lambda: structure_daemon_sync(language, max_results, project=project))
        self._symbols: Optional[dict[str, list[dict]]] = None

    @staticmethod
    def _names(entries: Any) -> list[str]:
        names = []
        for entry in entries if isinstance(entries, list) else []:
            if isinstance(entry, str):
                names.append(entry)
            elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
                names.append(entry["name"])
        return names

    def _build(self, structure: Any) -> dict[str, list[dict]]:
        symbols: dict[str, list[dict]] = {}
        files = structure.get("files") if isinstance(structure, dict) else None
        for info in files if isinstance(files, list) else []:
            if not isinstance(info, dict):
                continue
            path = info.get("path", info.get("file"))
            for kind, key in (("function", "functions"), ("class", "classes"), ("method", "methods")):
                for name in self._names(info.get(key)):
                    symbols.setdefault(name, []).append({"file": path, "kind": kind})
        return symbols

    @property
    def loaded(self) -> bool:
        return self._symbols is not None

    def symbols(self) -> dict[str, list[dict]]:
        if self._symbols is None:
            built = self._build(self._loader())
            if not built:
                return {}
            self._symbols = built
        return self._symbols

    def lookup(self, name: str) -> list[dict]:
        """Definitions of ``name``; [] if unknown."""
        return self.symbols().get(name, [])

    def invalidate(self) -> None:
        self._symbols = None
