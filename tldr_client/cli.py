"""
Command-line access to the project daemon.

Usage:
    tldr-client query ping
    tldr-client query --json '{"cmd": "search", "pattern": "auth"}'
    tldr-client query status --sync --project /path/to/repo
    tldr-client address
    tldr-client notify src/app.py
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace

from . import __version__
from .client import DaemonClient
from .commands import notify_daemon_sync


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2))


def _cmd_query(args: argparse.Namespace) -> int:
    if args.json is not None:
        try:
            command = json.loads(args.json)
        except json.JSONDecodeError as e:
            print(f"Error: invalid JSON for --json: {e}", file=sys.stderr)
            return 1
        if not isinstance(command, dict) or not isinstance(command.get("cmd"), str):
            print("Error: --json must be an object with a \"cmd\" string", file=sys.stderr)
            return 1
    elif args.cmd:
        command = {"cmd": args.cmd}
    else:
        print("Error: either CMD or --json must be provided", file=sys.stderr)
        return 1

    client = DaemonClient(args.project)
    if args.timeout is not None:
        client.config = replace(client.config, timeout=args.timeout)

    if args.sync:
        response = client.query_sync(command)
    else:
        response = asyncio.run(client.query(command))

    _print_json(response.to_dict())
    return 0 if response.status == "ok" else 2


def _cmd_address(args: argparse.Namespace) -> int:
    info = DaemonClient(args.project).connection_info()
    print(info.describe())
    return 0


def _cmd_notify(args: argparse.Namespace) -> int:
    result = notify_daemon_sync(args.file, project=args.project)
    _print_json(result)
    return 0 if result.get("status") == "ok" else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tldr-client", description="Query the TLDR daemon")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="Send one command to the daemon")
    query.add_argument("cmd", nargs="?", help="Command name (ping, status, ...)")
    query.add_argument("--json", help="Full JSON payload; overrides CMD")
    query.add_argument("--project", help="Project root (default: $CLAUDE_PROJECT_DIR or cwd)")
    query.add_argument("--sync", action="store_true", help="Use the blocking transport")
    query.add_argument("--timeout", type=float, help="Request timeout in seconds")
    query.set_defaults(func=_cmd_query)

    address = subparsers.add_parser("address", help="Print the daemon's transport address")
    address.add_argument("--project", help="Project root")
    address.set_defaults(func=_cmd_address)

    notify = subparsers.add_parser("notify", help="Report a changed file to the daemon")
    notify.add_argument("file", help="Changed file")
    notify.add_argument("--project", help="Project root")
    notify.set_defaults(func=_cmd_notify)

    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
