"""Dev server — static output, the reload websocket, and script injection.

``GET /ws`` upgrades to a websocket that the injected client script keeps
open; the server only ever writes to it (the reload token) and reads from
it solely to notice when the browser goes away.  Everything else is served
from the output directory through :class:`LiveReloadMiddleware`.

The hub is shared with the rebuild scheduler, which broadcasts from its
own thread.  :class:`WebSocketClient` bridges that thread onto the event
loop that owns the socket.
"""

from __future__ import annotations

import asyncio
import socket
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.staticfiles import StaticFiles
from starlette.websockets import WebSocketDisconnect, WebSocketState

from loom._errors import ClientGoneError, ServerError
from loom.reactive.hmr import LiveReloadMiddleware

if TYPE_CHECKING:
    from pathlib import Path

    from loom._types import ReloadPayload
    from loom.reactive.hub import ReloadHub

WS_ENDPOINT = "/ws"

# Upper bound for one send; a stalled client delays a broadcast at most this long.
SEND_TIMEOUT = 5.0


class WebSocketClient:
    """Adapts a Starlette websocket to the hub's ``ReloadClient`` protocol.

    ``send`` must be called from a thread other than the event loop's (the
    scheduler thread); it blocks until the frame is written.  ``close`` may
    be called from any thread and does not wait.

    Args:
        websocket: The accepted websocket.
        loop: Event loop serving the websocket.

    """

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop) -> None:
        self._websocket = websocket
        self._loop = loop

    def send(self, payload: ReloadPayload) -> None:
        future = asyncio.run_coroutine_threadsafe(self._websocket.send_text(payload), self._loop)
        try:
            future.result(timeout=SEND_TIMEOUT)
        except (WebSocketDisconnect, RuntimeError, OSError, TimeoutError) as exc:
            future.cancel()
            msg = f"reload client write failed: {exc!r}"
            raise ClientGoneError(msg) from exc

    def close(self) -> None:
        if self._loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self._close(), self._loop)

    async def _close(self) -> None:
        ws = self._websocket
        if (
            ws.application_state is WebSocketState.CONNECTED
            and ws.client_state is WebSocketState.CONNECTED
        ):
            await ws.close()


def create_app(output_dir: Path, hub: ReloadHub) -> FastAPI:
    """Create the dev server app serving *output_dir*.

    Args:
        output_dir: Directory of built pages (must exist).
        hub: Reload hub shared with the rebuild scheduler.

    """
    app = FastAPI(title="loom dev server", docs_url=None, redoc_url=None, openapi_url=None)

    @app.websocket(WS_ENDPOINT)
    async def reload_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        client = WebSocketClient(websocket, asyncio.get_running_loop())
        # The hub lock may be held by a broadcast waiting on this loop;
        # take it from a worker thread so the loop keeps running.
        await asyncio.to_thread(hub.register, client)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            await asyncio.to_thread(hub.unregister, client)

    app.mount(
        "/",
        LiveReloadMiddleware(StaticFiles(directory=output_dir, html=True)),
        name="site",
    )
    return app


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket up front so failures surface before serving.

    Raises:
        ServerError: If the address can't be bound.

    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        msg = f"could not listen on {host}:{port}: {exc}"
        raise ServerError(msg) from exc
    sock.set_inheritable(True)
    return sock


def serve(app: FastAPI, host: str, port: int, *, debug: bool = False) -> None:
    """Serve *app* until interrupted."""
    sock = bind_socket(host, port)
    config = uvicorn.Config(
        app,
        log_level="debug" if debug else "warning",
        access_log=debug,
        ws="auto",
    )
    server = uvicorn.Server(config)
    server.run(sockets=[sock])
