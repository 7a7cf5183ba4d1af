"""Splitting one listening socket into HTTP and raw EO protocol listeners."""

from __future__ import annotations

import collections
import socket
import threading
from typing import Any, Optional

CHANNEL_CAPACITY = 16


class ListenerClosed(OSError):
    """Raised by :meth:`ChannelListener.accept` once the listener is closed."""

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        message = "listener closed" if cause is None else f"listener closed: {cause}"
        super().__init__(message)
        self.cause = cause


def is_http_start(first_byte: int) -> bool:
    """Report whether a connection's first byte starts an HTTP request.

    HTTP methods begin with an uppercase ASCII letter; the EO length prefix
    never does.
    """
    return ord("A") <= first_byte <= ord("Z")


class PeekedConnection:
    """A socket whose already-read leading bytes are returned first."""

    def __init__(self, conn: socket.socket, buffered: bytes) -> None:
        self._conn = conn
        self._buffered = buffered

    def recv(self, size: int) -> bytes:
        """Return buffered bytes first, then read from the socket."""
        if self._buffered:
            data, self._buffered = self._buffered[:size], self._buffered[size:]
            return data
        return self._conn.recv(size)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "PeekedConnection":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._conn, name)


class ChannelListener:
    """A listener fed with connections by a :class:`ProtocolMux`."""

    def __init__(self, addr: Any) -> None:
        self.addr = addr
        self._cond = threading.Condition()
        self._pending: collections.deque[PeekedConnection] = collections.deque()
        self._closed = False
        self._error: Optional[BaseException] = None

    def accept(self, timeout: Optional[float] = None) -> PeekedConnection:
        """Wait for the next connection.

        Raises :class:`ListenerClosed` once closed and :class:`TimeoutError`
        if ``timeout`` seconds pass first.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._pending or self._closed, timeout):
                raise TimeoutError("no connection within timeout")
            if self._pending:
                conn = self._pending.popleft()
                self._cond.notify_all()
                return conn
            raise ListenerClosed(self._error)

    def close(self) -> None:
        """Close the listener; pending and later accepts fail."""
        self._close_with_error(None)

    def _close_with_error(self, error: Optional[BaseException]) -> None:
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._error = error
            self._cond.notify_all()

    def _put(self, conn: PeekedConnection) -> None:
        with self._cond:
            while len(self._pending) >= CHANNEL_CAPACITY and not self._closed:
                self._cond.wait()
            if self._closed:
                conn.close()
                return
            self._pending.append(conn)
            self._cond.notify_all()


class ProtocolMux:
    """Routes each accepted connection by its first byte.

    Connections starting like an HTTP request go to :meth:`http_listener`,
    everything else to :meth:`tcp_listener`.
    """

    def __init__(self, listener: socket.socket) -> None:
        self._root = listener
        addr = listener.getsockname()
        self._http = ChannelListener(addr)
        self._tcp = ChannelListener(addr)
        self._thread = threading.Thread(target=self._serve, name="protocol-mux", daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while True:
            try:
                conn, _ = self._root.accept()
            except OSError as err:
                self._http._close_with_error(err)
                self._tcp._close_with_error(err)
                return

            try:
                first = conn.recv(1)
            except OSError:
                conn.close()
                continue
            if not first:
                conn.close()
                continue

            peeked = PeekedConnection(conn, first)
            target = self._http if is_http_start(first[0]) else self._tcp
            target._put(peeked)

    def http_listener(self) -> ChannelListener:
        """Return the listener receiving HTTP connections."""
        return self._http

    def tcp_listener(self) -> ChannelListener:
        """Return the listener receiving raw EO protocol connections."""
        return self._tcp

    def close(self) -> None:
        """Close the underlying socket and both routed listeners."""
        try:
            self._root.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._root.close()
        self._http.close()
        self._tcp.close()