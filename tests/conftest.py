"""Shared fixtures: a throwaway project and an in-process fake daemon."""

import json
import socket
import sys
import threading
from pathlib import Path

import pytest

unix_only = pytest.mark.skipif(sys.platform == "win32", reason="Unix domain sockets")


class FakeDaemon:
    """Unix socket server speaking the daemon's line protocol.

    Pings are always answered so reachability checks pass. Every other
    request gets ``reply``: bytes to send verbatim, a callable taking the
    request dict and returning bytes, or None to stay silent until the
    client hangs up.
    """

    def __init__(self, path: Path, reply=b'{"status": "ok"}\n'):
        self.path = path
        self.reply = reply
        self.requests: list[dict] = []
        self.pings = 0
        self.connections = 0
        self.client_closed = threading.Event()
        self._stop = threading.Event()
        self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._sock.bind(str(path))
        self._sock.listen(5)
        self._sock.settimeout(0.05)
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "FakeDaemon":
        self._thread.start()
        return self

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket):
        with conn:
            conn.settimeout(5.0)
            data = b""
            try:
                while b"\n" not in data:
                    chunk = conn.recv(4096)
                    if not chunk:
                        return
                    data += chunk
            except OSError:
                return

            request = json.loads(data.split(b"\n", 1)[0])
            if request.get("cmd") == "ping":
                self.pings += 1
                conn.sendall(b'{"status": "ok"}\n')
                return

            self.requests.append(request)
            reply = self.reply(request) if callable(self.reply) else self.reply
            if reply is None:
                # Hold the connection until the client gives up.
                try:
                    while conn.recv(4096):
                        pass
                except OSError:
                    pass
                self.client_closed.set()
                return
            conn.sendall(reply)

    def stop(self):
        self._stop.set()
        self._sock.close()
        self._thread.join(timeout=1.0)
        try:
            self.path.unlink()
        except OSError:
            pass


@pytest.fixture
def project(tmp_path):
    """Resolved project root, as DaemonClient would hash it."""
    return tmp_path.resolve()


@pytest.fixture
def fake_daemon(project):
    """Factory starting a FakeDaemon on the project's real socket path."""
    from tldr_client.addressing import get_socket_path

    started = []

    def start(reply=b'{"status": "ok"}\n') -> FakeDaemon:
        daemon = FakeDaemon(get_socket_path(project), reply).start()
        started.append(daemon)
        return daemon

    yield start

    for daemon in started:
        daemon.stop()


@pytest.fixture
def no_autostart():
    from tldr_client.config import ClientConfig

    return ClientConfig(auto_start=False, timeout=1.0, launch_wait=0.1)
