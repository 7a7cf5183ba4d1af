"""Online player index: names, maps, mutes, captchas and logged-in accounts."""

from __future__ import annotations

import random
import string
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

CAPTCHA_LENGTH = 5
CAPTCHA_MAX_ATTEMPTS = 5
CAPTCHA_ID = 1

_rng = random.Random()


def random_captcha() -> str:
    """Return a fresh challenge of five uppercase ASCII letters."""
    return "".join(_rng.choice(string.ascii_uppercase) for _ in range(CAPTCHA_LENGTH))


@dataclass(frozen=True)
class CaptchaOpen:
    """Opens the captcha dialog with a new challenge."""

    id: int
    reward: int
    challenge: str


@dataclass(frozen=True)
class CaptchaAgree:
    """Replaces the challenge of an open captcha dialog."""

    id: int
    challenge: str


@dataclass
class _PlayerEntry:
    map_id: int = 0
    name: str = ""
    bus: Any = None


@dataclass
class _Captcha:
    challenge: str
    reward: int
    attempts: int = 0


class SessionRegistry:
    """Tracks online players by ID and name, with their mutes and captchas.

    A bus is anything with a ``send_packet(packet)`` method. Times are
    seconds since the epoch, as returned by :func:`time.time`.
    """

    def __init__(self) -> None:
        self._player_lock = threading.RLock()
        self._players: dict[int, _PlayerEntry] = {}
        self._names: dict[str, int] = {}
        self._mute_until: dict[int, float] = {}
        self._captchas: dict[int, _Captcha] = {}
        self._account_lock = threading.Lock()
        self._logged_accounts: set[int] = set()

    def register_player(self, player_id: int, map_id: int, name: str, bus: Any) -> None:
        """Add or update an online player."""
        with self._player_lock:
            entry = self._players.setdefault(player_id, _PlayerEntry())
            entry.map_id = map_id
            entry.name = name
            entry.bus = bus
            if name:
                self._names[name.lower()] = player_id

    def unregister_player(self, player_id: int) -> None:
        """Forget a player along with any mute or captcha they had."""
        with self._player_lock:
            entry = self._players.pop(player_id, None)
            if entry is not None and entry.name:
                self._names.pop(entry.name.lower(), None)
            self._mute_until.pop(player_id, None)
            self._captchas.pop(player_id, None)

    def set_muted_until(self, player_id: int, until: float) -> None:
        """Mute a player until the given time."""
        with self._player_lock:
            self._mute_until[player_id] = until

    def clear_muted(self, player_id: int) -> None:
        """Lift a player's mute."""
        with self._player_lock:
            self._mute_until.pop(player_id, None)

    def muted_until(self, player_id: int) -> Optional[float]:
        """Return when the player's mute ends, or None if not muted."""
        with self._player_lock:
            return self._mute_until.get(player_id)

    def is_muted(self, player_id: int, now: Optional[float] = None) -> bool:
        """Report whether the player is muted at ``now`` (default: the current time)."""
        if now is None:
            now = time.time()
        with self._player_lock:
            until = self._mute_until.get(player_id)
        return until is not None and now < until

    def has_captcha(self, player_id: int) -> bool:
        """Report whether the player has an unsolved captcha."""
        with self._player_lock:
            return player_id in self._captchas

    def start_captcha(self, player_id: int, reward: int) -> bool:
        """Give the player a new captcha; return whether it was sent."""
        with self._player_lock:
            entry = self._players.get(player_id)
            if entry is None or entry.bus is None:
                return False
            challenge = random_captcha()
            self._captchas[player_id] = _Captcha(challenge=challenge, reward=reward)
            bus = entry.bus
        return _send(bus, CaptchaOpen(id=CAPTCHA_ID, reward=reward, challenge=challenge))

    def refresh_captcha(self, player_id: int) -> bool:
        """Replace the player's challenge and reset their attempts."""
        with self._player_lock:
            entry = self._players.get(player_id)
            state = self._captchas.get(player_id)
            if entry is None or entry.bus is None or state is None:
                return False
            state.challenge = random_captcha()
            state.attempts = 0
            challenge = state.challenge
            bus = entry.bus
        return _send(bus, CaptchaAgree(id=CAPTCHA_ID, challenge=challenge))

    def verify_captcha(self, player_id: int, value: str) -> Optional[int]:
        """Check an answer; return the reward if solved, otherwise None.

        The captcha is dropped once solved or after too many wrong answers.
        """
        with self._player_lock:
            state = self._captchas.get(player_id)
            if state is None:
                return None
            state.attempts += 1
            if value.strip().upper() == state.challenge.upper():
                del self._captchas[player_id]
                return state.reward
            if state.attempts > CAPTCHA_MAX_ATTEMPTS:
                del self._captchas[player_id]
            return None

    def update_player_map(self, player_id: int, map_id: int) -> None:
        """Record that a registered player moved to another map."""
        with self._player_lock:
            entry = self._players.get(player_id)
            if entry is not None:
                entry.map_id = map_id

    def player_map(self, player_id: int) -> Optional[int]:
        """Return the map a registered player is on, or None."""
        with self._player_lock:
            entry = self._players.get(player_id)
            return None if entry is None else entry.map_id

    def find_player_by_name(self, name: str) -> Optional[int]:
        """Return the ID of the online player with this name, ignoring case."""
        with self._player_lock:
            return self._names.get(name.lower())

    def player_name(self, player_id: int) -> str:
        """Return the player's name, or an empty string if unknown."""
        with self._player_lock:
            entry = self._players.get(player_id)
            return "" if entry is None else entry.name

    def player_bus(self, player_id: int) -> Any:
        """Return the player's bus, or None if unknown."""
        with self._player_lock:
            entry = self._players.get(player_id)
            return None if entry is None else entry.bus

    def online_player_count(self) -> int:
        """Return the number of registered players."""
        with self._player_lock:
            return len(self._players)

    def is_logged_in(self, account_id: int) -> bool:
        """Report whether the account is logged in."""
        with self._account_lock:
            return account_id in self._logged_accounts

    def add_logged_in_account(self, account_id: int) -> None:
        """Mark the account as logged in."""
        with self._account_lock:
            self._logged_accounts.add(account_id)

    def remove_logged_in_account(self, account_id: int) -> None:
        """Mark the account as logged out."""
        with self._account_lock:
            self._logged_accounts.discard(account_id)


def _send(bus: Any, packet: Any) -> bool:
    try:
        bus.send_packet(packet)
    except OSError:
        return False
    return True