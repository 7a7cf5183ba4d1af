import socket

import pytest

from geoserv.server.mux import (
    ChannelListener,
    ListenerClosed,
    PeekedConnection,
    ProtocolMux,
    is_http_start,
)


def _read_exact(conn, size):
    data = b""
    while len(data) < size:
        chunk = conn.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


@pytest.fixture
def mux():
    root = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    root.bind(("127.0.0.1", 0))
    root.listen()
    addr = root.getsockname()
    m = ProtocolMux(root)
    yield m, addr
    m.close()


@pytest.mark.parametrize(
    "byte,expected",
    [(ord("G"), True), (ord("P"), True), (ord("A"), True), (ord("Z"), True),
     (ord("a"), False), (0x01, False), (0xFE, False), (ord("@"), False)],
)
def test_is_http_start(byte, expected):
    assert is_http_start(byte) is expected


def test_http_connection_routed_with_first_byte_preserved(mux):
    m, addr = mux
    with socket.create_connection(addr) as client:
        client.sendall(b"GET / HTTP/1.1\r\n\r\n")
        conn = m.http_listener().accept(timeout=5)
        try:
            assert _read_exact(conn, 5) == b"GET /"
        finally:
            conn.close()
    with pytest.raises(TimeoutError):
        m.tcp_listener().accept(timeout=0.2)


def test_eo_connection_routed_to_tcp(mux):
    m, addr = mux
    payload = b"\x05\x01\xff\xff\x01"
    with socket.create_connection(addr) as client:
        client.sendall(payload)
        conn = m.tcp_listener().accept(timeout=5)
        try:
            assert _read_exact(conn, len(payload)) == payload
        finally:
            conn.close()
    with pytest.raises(TimeoutError):
        m.http_listener().accept(timeout=0.2)


def test_routed_connection_can_reply(mux):
    m, addr = mux
    with socket.create_connection(addr) as client:
        client.sendall(b"\x01")
        conn = m.tcp_listener().accept(timeout=5)
        try:
            conn.sendall(b"pong")
            assert _read_exact(client, 4) == b"pong"
        finally:
            conn.close()


def test_mux_close_closes_listeners(mux):
    m, _ = mux
    m.close()
    with pytest.raises(ListenerClosed):
        m.http_listener().accept(timeout=5)
    with pytest.raises(ListenerClosed):
        m.tcp_listener().accept(timeout=5)


def test_channel_listener_close_and_timeout():
    listener = ChannelListener(("127.0.0.1", 0))
    assert listener.addr == ("127.0.0.1", 0)
    with pytest.raises(TimeoutError):
        listener.accept(timeout=0.05)
    listener.close()
    with pytest.raises(ListenerClosed) as info:
        listener.accept(timeout=0.05)
    assert info.value.cause is None


def test_peeked_connection_returns_buffer_first():
    left, right = socket.socketpair()
    try:
        right.sendall(b"cd")
        conn = PeekedConnection(left, b"ab")
        assert conn.recv(1) == b"a"
        assert conn.recv(10) == b"b"
        assert _read_exact(conn, 2) == b"cd"
    finally:
        left.close()
        right.close()