"""Live reload injection — rewrite HTML pages on their way to the browser.

Wraps the static file app.  Page-like requests (paths ending in ``.html``
or ``/``) are answered into a :class:`ResponseBuffer` instead of the real
transport; once the inner app has finished, a successful response gets
the reload client script inserted before its first ``</body>`` and a
corrected ``content-length``.  Any other status is forwarded byte for
byte.  A page-like ``HEAD`` request only has its cache headers replaced;
every other request passes straight through without buffering.

The injected script opens a websocket to ``/ws`` on the current host and
reloads the page when any message arrives.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from starlette.types import ASGIApp, Message, Receive, Scope, Send

RELOAD_SCRIPT = """
<script>
  (function() {
    var scheme = window.location.protocol === "https:" ? "wss://" : "ws://";
    var socket = new WebSocket(scheme + window.location.host + "/ws");
    socket.onmessage = function(event) {
      console.log("Reloading page...");
      window.location.reload();
    };
    socket.onclose = function() {
      // Normal close; nothing to report.
    };
    socket.onerror = function(error) {
      console.error("Live reload connection error. Please restart 'loom dev'.");
    };
  })();
</script>
"""

CLOSING_BODY = b"</body>"
PAGE_SUFFIXES = (".html", "/")

NO_CACHE_HEADERS: tuple[tuple[bytes, bytes], ...] = (
    (b"cache-control", b"no-cache, no-store, must-revalidate"),
    (b"pragma", b"no-cache"),
    (b"expires", b"0"),
)
_NO_CACHE_NAMES = frozenset(name for name, _ in NO_CACHE_HEADERS)


def with_no_cache(headers: Iterable[tuple[bytes, bytes]]) -> list[tuple[bytes, bytes]]:
    """Replace any cache headers in *headers* with :data:`NO_CACHE_HEADERS`."""
    kept = [(k, v) for k, v in headers if k.lower() not in _NO_CACHE_NAMES]
    kept.extend(NO_CACHE_HEADERS)
    return kept


def is_page_like(path: str) -> bool:
    """Whether a request path names an HTML document."""
    return path.endswith(PAGE_SUFFIXES)


def inject_reload_script(body: bytes, script: str = RELOAD_SCRIPT) -> bytes:
    """Insert *script* before the first ``</body>``; other bytes are untouched."""
    return body.replace(CLOSING_BODY, script.encode("utf-8") + CLOSING_BODY, 1)


@dataclass(slots=True)
class ResponseBuffer:
    """Status, headers, and body captured from an ASGI app.

    :meth:`record` stands in for the ASGI ``send`` callable.
    """

    status: int = 200
    headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    body: bytearray = field(default_factory=bytearray)
    started: bool = False

    async def record(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            self.headers = list(message.get("headers", ()))
            self.started = True
        elif message["type"] == "http.response.body":
            self.body.extend(message.get("body", b""))

    def rewrite(self, script: str = RELOAD_SCRIPT) -> tuple[int, list[tuple[bytes, bytes]], bytes]:
        """Produce the response to forward to the client.

        Inner headers are kept (minus the cache headers, which are always
        replaced).  Only a 200 response is rewritten.
        """
        headers = with_no_cache(self.headers)
        body = bytes(self.body)
        if self.status != 200:
            return self.status, headers, body

        body = inject_reload_script(body, script)
        headers = [(k, v) for k, v in headers if k.lower() != b"content-length"]
        headers.append((b"content-length", str(len(body)).encode("latin-1")))
        return self.status, headers, body


class LiveReloadMiddleware:
    """ASGI middleware injecting the reload client into HTML pages.

    ``GET`` requests are buffered and rewritten.  A ``HEAD`` response has
    no body to rewrite and its length must keep describing the untouched
    file, so only its headers are adjusted on the way out.

    Args:
        app: The wrapped ASGI app (typically a static file server).
        script: Markup inserted before ``</body>``.

    """

    def __init__(self, app: ASGIApp, script: str = RELOAD_SCRIPT) -> None:
        self.app = app
        self.script = script

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not is_page_like(scope["path"]):
            await self.app(scope, receive, send)
            return

        if scope.get("method") == "HEAD":
            async def send_no_cache(message: Message) -> None:
                if message["type"] == "http.response.start":
                    message = {**message, "headers": with_no_cache(message.get("headers", ()))}
                await send(message)

            await self.app(scope, receive, send_no_cache)
            return

        if scope.get("method") != "GET":
            await self.app(scope, receive, send)
            return

        # The inner app must stream its body through ``send`` so it can be
        # captured; a zero-copy file send would bypass the buffer.
        extensions = {
            k: v for k, v in scope.get("extensions", {}).items() if k != "http.response.pathsend"
        }
        buffer = ResponseBuffer()
        await self.app({**scope, "extensions": extensions}, receive, buffer.record)
        if not buffer.started:
            return

        status, headers, body = buffer.rewrite(self.script)
        await send({"type": "http.response.start", "status": status, "headers": headers})
        await send({"type": "http.response.body", "body": body})
