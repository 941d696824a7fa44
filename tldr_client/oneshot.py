"""
One-shot query helper used by the blocking transport.

Reads a single request line from stdin, sends it to the daemon, and writes
the raw reply bytes to stdout. The request never passes through a shell or
the command line.

Usage:
    python -m tldr_client.oneshot --unix /tmp/tldr-1a2b3c4d.sock < request
    python -m tldr_client.oneshot --tcp 127.0.0.1 51234 < request
"""

import argparse
import socket
import sys

from .addressing import ConnectionInfo, TcpAddress, UnixAddress
from .transport import EXIT_ERROR, EXIT_OK, EXIT_TIMEOUT, EXIT_UNAVAILABLE, is_unreachable_error


def _create_client_socket(info: ConnectionInfo, timeout: float) -> socket.socket:
    """Create and connect the platform's client socket."""
    if isinstance(info, TcpAddress):
        return socket.create_connection((info.host, info.port), timeout=timeout)
    client = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    client.settimeout(timeout)
    try:
        client.connect(info.path)
    except OSError:
        client.close()
        raise
    return client


def send_request(info: ConnectionInfo, request: bytes, timeout: float) -> bytes:
    """Send one request and return everything read up to the first newline."""
    client = _create_client_socket(info, timeout)
    try:
        client.sendall(request)
        data = b""
        while b"\n" not in data:
            chunk = client.recv(65536)
            if not chunk:
                break
            data += chunk
        return data
    finally:
        client.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send one request to a TLDR daemon")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--unix", metavar="PATH", help="Unix socket path")
    group.add_argument("--tcp", nargs=2, metavar=("HOST", "PORT"), help="TCP endpoint")
    parser.add_argument("--timeout", type=float, default=3.0)
    args = parser.parse_args(argv)

    if args.unix:
        info: ConnectionInfo = UnixAddress(path=args.unix)
    else:
        info = TcpAddress(host=args.tcp[0], port=int(args.tcp[1]))

    request = sys.stdin.buffer.readline()
    if not request.endswith(b"\n"):
        request += b"\n"

    try:
        reply = send_request(info, request, args.timeout)
    except socket.timeout:
        print("timeout", file=sys.stderr)
        return EXIT_TIMEOUT
    except OSError as e:
        print(str(e), file=sys.stderr)
        return EXIT_UNAVAILABLE if is_unreachable_error(e) else EXIT_ERROR

    sys.stdout.buffer.write(reply)
    sys.stdout.buffer.flush()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
