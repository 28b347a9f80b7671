"""Tests for loom.server — static serving, injection, and the reload socket."""

from __future__ import annotations

import socket
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from loom._errors import ServerError
from loom.reactive.hmr import RELOAD_SCRIPT
from loom.reactive.hub import RELOAD, ReloadHub
from loom.server import bind_socket, create_app


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "public"
    (out / "posts").mkdir(parents=True)
    (out / "index.html").write_text("<html><body><h1>Home</h1></body></html>")
    (out / "posts" / "a.html").write_text("<html><body>A</body></html>")
    (out / "style.css").write_text("body { color: red; }")
    return out


def _wait_for_clients(hub: ReloadHub, count: int, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while hub.client_count != count:
        if time.monotonic() > deadline:
            msg = f"expected {count} clients, have {hub.client_count}"
            raise AssertionError(msg)
        time.sleep(0.01)


class TestStaticServing:
    """GET requests against the output directory."""

    def test_index_has_script(self, output_dir: Path) -> None:
        client = TestClient(create_app(output_dir, ReloadHub()))
        response = client.get("/")
        assert response.status_code == 200
        assert response.text.count(RELOAD_SCRIPT) == 1
        assert response.text.endswith(RELOAD_SCRIPT + "</body></html>")
        assert int(response.headers["content-length"]) == len(response.content)
        assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"

    def test_nested_page(self, output_dir: Path) -> None:
        client = TestClient(create_app(output_dir, ReloadHub()))
        response = client.get("/posts/a.html")
        assert RELOAD_SCRIPT in response.text

    def test_asset_untouched(self, output_dir: Path) -> None:
        client = TestClient(create_app(output_dir, ReloadHub()))
        response = client.get("/style.css")
        assert response.text == "body { color: red; }"

    def test_missing_page(self, output_dir: Path) -> None:
        client = TestClient(create_app(output_dir, ReloadHub()))
        response = client.get("/missing.html")
        assert response.status_code == 404
        assert RELOAD_SCRIPT not in response.text

    def test_sees_rebuilt_files(self, output_dir: Path) -> None:
        client = TestClient(create_app(output_dir, ReloadHub()))
        client.get("/")
        (output_dir / "index.html").write_text("<html><body>New</body></html>")
        assert "New" in client.get("/").text


class TestReloadSocket:
    """The /ws endpoint and hub integration."""

    def test_receives_reload(self, output_dir: Path) -> None:
        hub = ReloadHub()
        client = TestClient(create_app(output_dir, hub))
        with client.websocket_connect("/ws") as ws:
            _wait_for_clients(hub, 1)
            assert hub.broadcast(RELOAD) == 1
            assert ws.receive_text() == RELOAD

    def test_multiple_clients(self, output_dir: Path) -> None:
        hub = ReloadHub()
        client = TestClient(create_app(output_dir, hub))
        with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
            _wait_for_clients(hub, 2)
            assert hub.broadcast() == 2
            assert first.receive_text() == RELOAD
            assert second.receive_text() == RELOAD

    def test_disconnect_unregisters(self, output_dir: Path) -> None:
        hub = ReloadHub()
        client = TestClient(create_app(output_dir, hub))
        with client.websocket_connect("/ws"):
            _wait_for_clients(hub, 1)
        _wait_for_clients(hub, 0)

    def test_client_messages_ignored(self, output_dir: Path) -> None:
        hub = ReloadHub()
        client = TestClient(create_app(output_dir, hub))
        with client.websocket_connect("/ws") as ws:
            _wait_for_clients(hub, 1)
            ws.send_text("hello")
            hub.broadcast()
            assert ws.receive_text() == RELOAD
            assert hub.client_count == 1


class TestBindSocket:
    """bind_socket — listener setup."""

    def test_binds_free_port(self) -> None:
        sock = bind_socket("127.0.0.1", 0)
        try:
            assert sock.getsockname()[1] > 0
        finally:
            sock.close()

    def test_port_in_use(self) -> None:
        holder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        holder.bind(("127.0.0.1", 0))
        holder.listen()
        port = holder.getsockname()[1]
        try:
            with pytest.raises(ServerError, match="could not listen"):
                bind_socket("127.0.0.1", port)
        finally:
            holder.close()
