import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from geoserv.sln import SlnConfig, build_heartbeat_url, ping, run


def _config(url="http://example.com/", **kwargs):
    defaults = dict(
        enabled=True,
        url=url,
        rate=5,
        hostname="game.example.com",
        server_name="My Server",
        site="http://example.com/site",
        zone="EU",
    )
    defaults.update(kwargs)
    return SlnConfig(**defaults)


@pytest.fixture
def listing_server():
    requests = []
    state = {"status": 200}

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            requests.append((self.path, self.headers.get("User-Agent")))
            self.send_response(state["status"])
            self.send_header("Content-Length", "0")
            self.end_headers()

        def log_message(self, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base = f"http://127.0.0.1:{server.server_address[1]}/"
    yield base, requests, state
    server.shutdown()
    server.server_close()


def test_heartbeat_url_parameters():
    url = build_heartbeat_url(_config(), "8078", 12)
    base, query = url.split("?", 1)
    assert base == "http://example.com/check"
    params = dict(urllib.parse.parse_qsl(query))
    assert params["software"] == "GOEOSERV"
    assert params["v"] == "0.1.0"
    assert params["host"] == "game.example.com"
    assert params["port"] == "8078"
    assert params["name"] == "My Server"
    assert params["url"] == "http://example.com/site"
    assert params["zone"] == "EU"
    assert params["players"] == "12"
    assert params["retry"] == str(5 * 60)


def test_heartbeat_url_keys_sorted():
    url = build_heartbeat_url(_config(), "8078", 0)
    keys = [k for k, _ in urllib.parse.parse_qsl(url.split("?", 1)[1])]
    assert keys == sorted(keys)


def test_ping_sends_request(listing_server):
    base, requests, _ = listing_server
    assert ping(_config(url=base), "8078", lambda: 3) is True
    (path, agent), = requests
    assert agent == "EOSERV"
    assert path.startswith("/check?")
    assert dict(urllib.parse.parse_qsl(path.split("?", 1)[1]))["players"] == "3"


def test_ping_reports_non_200(listing_server):
    base, requests, state = listing_server
    state["status"] = 500
    assert ping(_config(url=base), "8078", lambda: 0) is False
    assert len(requests) == 1


def test_ping_reports_unreachable_service():
    assert ping(_config(url="http://127.0.0.1:1/"), "8078", lambda: 0) is False


def test_run_disabled_does_nothing():
    calls = []
    run(_config(enabled=False), "8078", lambda: calls.append(1) or 0, threading.Event())
    assert calls == []


def test_run_sends_initial_heartbeat_then_stops(listing_server):
    base, requests, _ = listing_server
    config = _config(url=base, rate=0)
    stop = threading.Event()
    stop.set()
    run(config, "8078", lambda: 4, stop)
    expected = urllib.parse.urlsplit(build_heartbeat_url(config, "8078", 4))
    assert [path for path, _ in requests] == [f"{expected.path}?{expected.query}"]
    params = dict(urllib.parse.parse_qsl(expected.query))
    assert params["players"] == "4"
    assert params["retry"] == "0"