"""Reload hub — pushes the reload token to every connected browser tab.

Holds the set of live reload clients.  The HTTP upgrade handler registers
and unregisters clients; the rebuild scheduler broadcasts after each
successful build.  The hub is created once per dev server and handed to
both explicitly.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol

from loom._errors import ReactiveError

if TYPE_CHECKING:
    from loom._types import ReloadPayload
    from loom.observability import DevCollector

RELOAD = "reload"


class ReloadClient(Protocol):
    """One accepted persistent connection.

    ``send`` blocks until the payload is handed to the transport and raises
    :class:`~loom._errors.ClientGoneError` (or ``OSError``) when it can't
    be.  ``close`` must be safe to call on an already-closed connection.
    """

    def send(self, payload: ReloadPayload) -> None: ...

    def close(self) -> None: ...


class ReloadHub:
    """Membership registry and best-effort broadcaster.

    Thread-safe: membership is protected by a single lock, held for each
    mutation and for the whole of a broadcast pass.  Sends happen one
    client at a time inside that pass, so a stalled client delays the
    others by at most one send attempt.

    Args:
        collector: Optional event collector.

    """

    def __init__(self, collector: DevCollector | None = None) -> None:
        # dict as an insertion-ordered set; values are unused.
        self._clients: dict[ReloadClient, None] = {}
        self._lock = threading.Lock()
        self._collector = collector

    @property
    def client_count(self) -> int:
        """Number of registered clients."""
        with self._lock:
            return len(self._clients)

    def register(self, client: ReloadClient) -> None:
        """Add *client* to the membership set."""
        with self._lock:
            self._clients[client] = None
            count = len(self._clients)
        if self._collector is not None:
            self._collector.record_client("connected", clients=count)

    def unregister(self, client: ReloadClient) -> None:
        """Remove *client* and close its connection.

        Safe to call repeatedly; only the first call closes the connection.
        """
        with self._lock:
            if client not in self._clients:
                return
            del self._clients[client]
            client.close()
            count = len(self._clients)
        if self._collector is not None:
            self._collector.record_client("disconnected", clients=count)

    def broadcast(self, payload: ReloadPayload = RELOAD) -> int:
        """Send *payload* to every registered client.

        Clients whose send fails are closed and removed during the same
        pass.  There is no retry, acknowledgement, or queueing.

        Returns:
            Number of clients the payload was handed to.

        """
        notified = 0
        dropped = 0
        with self._lock:
            for client in list(self._clients):
                try:
                    client.send(payload)
                except (ReactiveError, OSError):
                    client.close()
                    del self._clients[client]
                    dropped += 1
                else:
                    notified += 1
        if self._collector is not None:
            self._collector.record_reload(clients_notified=notified, clients_dropped=dropped)
        return notified
