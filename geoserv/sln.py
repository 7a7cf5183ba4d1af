"""Heartbeat to a server listing network (SLN)."""

from __future__ import annotations

import logging
import threading
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Callable

log = logging.getLogger(__name__)

VERSION = "0.1.0"
SOFTWARE = "GOEOSERV"
USER_AGENT = "EOSERV"
DEFAULT_RATE_MINUTES = 5
REQUEST_TIMEOUT = 10.0


@dataclass
class SlnConfig:
    """Settings for announcing the server to a listing service."""

    enabled: bool = False
    url: str = ""
    rate: int = DEFAULT_RATE_MINUTES
    hostname: str = ""
    server_name: str = ""
    site: str = ""
    zone: str = ""


def build_heartbeat_url(config: SlnConfig, server_port: str, player_count: int) -> str:
    """Return the heartbeat request URL, with parameters sorted by name."""
    params = {
        "software": SOFTWARE,
        "v": VERSION,
        "retry": str(config.rate * 60),
        "host": config.hostname,
        "port": str(server_port),
        "name": config.server_name,
        "url": config.site,
        "zone": config.zone,
        "players": str(player_count),
    }
    query = urllib.parse.urlencode(sorted(params.items()))
    return f"{config.url}check?{query}"


def ping(config: SlnConfig, server_port: str, player_count_fn: Callable[[], int]) -> bool:
    """Send one heartbeat; return True if the service answered 200.

    Failures are logged, never raised.
    """
    request = urllib.request.Request(
        build_heartbeat_url(config, server_port, player_count_fn()),
        headers={"User-Agent": USER_AGENT},
        method="GET",
    )
    try:
        with urllib.request.urlopen(request, timeout=REQUEST_TIMEOUT) as response:
            status = response.status
    except urllib.error.HTTPError as err:
        log.warning("sln heartbeat non-200: status %d", err.code)
        return False
    except (urllib.error.URLError, OSError, ValueError) as err:
        log.warning("sln heartbeat failed: %s", err)
        return False

    if status != 200:
        log.warning("sln heartbeat non-200: status %d", status)
        return False
    log.debug("sln heartbeat sent")
    return True


def run(
    config: SlnConfig,
    server_port: str,
    player_count_fn: Callable[[], int],
    stop_event: threading.Event,
) -> None:
    """Send heartbeats every ``config.rate`` minutes until ``stop_event`` is set.

    The first heartbeat goes out immediately. Does nothing when disabled.
    """
    if not config.enabled:
        return
    rate = config.rate if config.rate > 0 else DEFAULT_RATE_MINUTES
    ping(config, server_port, player_count_fn)
    while not stop_event.wait(rate * 60):
        ping(config, server_port, player_count_fn)