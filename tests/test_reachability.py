"""Tests for daemon liveness probing."""

import socket
from pathlib import Path
from unittest.mock import patch

from conftest import unix_only


def _dead_socket_file(path: Path) -> None:
    """Leave a socket file behind with nobody listening on it."""
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.bind(str(path))
    sock.close()


@unix_only
class TestUnixReachability:
    """Protocol-level ping for Unix sockets."""

    def test_missing_socket_file(self, project):
        from tldr_client.addressing import resolve_connection
        from tldr_client.reachability import is_reachable

        with patch("tldr_client.reachability.socket.socket") as mock_socket:
            assert is_reachable(resolve_connection(project)) is False
            mock_socket.assert_not_called()

    def test_live_daemon(self, project, fake_daemon):
        from tldr_client.addressing import resolve_connection
        from tldr_client.reachability import is_reachable

        daemon = fake_daemon()
        assert is_reachable(resolve_connection(project)) is True
        assert daemon.pings == 1

    def test_stale_socket_is_removed(self, project):
        """A socket file without a listener should be cleaned up."""
        from tldr_client.addressing import get_socket_path, resolve_connection
        from tldr_client.reachability import is_reachable

        path = get_socket_path(project)
        _dead_socket_file(path)
        assert path.exists()

        assert is_reachable(resolve_connection(project)) is False
        assert not path.exists()

    def test_unlink_failure_swallowed(self, project):
        from tldr_client.addressing import get_socket_path, resolve_connection
        from tldr_client.reachability import is_reachable

        path = get_socket_path(project)
        _dead_socket_file(path)
        try:
            with patch.object(Path, "unlink", side_effect=PermissionError("read-only")):
                assert is_reachable(resolve_connection(project)) is False
        finally:
            path.unlink()

    def test_silent_daemon_times_out_without_cleanup(self, project):
        """A listener that never answers is slow, not dead: keep its socket."""
        from tldr_client.addressing import get_socket_path, resolve_connection
        from tldr_client.reachability import is_reachable

        path = get_socket_path(project)
        server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        server.bind(str(path))
        server.listen(1)
        try:
            assert is_reachable(resolve_connection(project), timeout=0.1) is False
            assert path.exists()
        finally:
            server.close()
            path.unlink()


class TestTcpReachability:
    """Bare connect for TCP endpoints."""

    def test_listening_port(self):
        from tldr_client.addressing import TcpAddress
        from tldr_client.reachability import is_reachable

        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        try:
            port = server.getsockname()[1]
            assert is_reachable(TcpAddress(host="127.0.0.1", port=port)) is True
        finally:
            server.close()

    def test_closed_port(self):
        from tldr_client.addressing import TcpAddress
        from tldr_client.reachability import is_reachable

        probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
        probe.close()

        assert is_reachable(TcpAddress(host="127.0.0.1", port=port)) is False

    def test_no_protocol_exchange(self):
        """Only connect; nothing is sent over TCP."""
        from tldr_client.addressing import TcpAddress
        from tldr_client.reachability import is_reachable

        with patch("tldr_client.reachability.socket.create_connection") as mock_connect:
            assert is_reachable(TcpAddress(host="127.0.0.1", port=50000), timeout=0.2) is True

        mock_connect.assert_called_once_with(("127.0.0.1", 50000), timeout=0.2)
        conn = mock_connect.return_value.__enter__.return_value
        conn.sendall.assert_not_called()
