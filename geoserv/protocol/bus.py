"""Per-connection packet state: ping tracking and sequence validation."""

from __future__ import annotations

import enum
import threading
from typing import Any, Optional

from geoserv.protocol.sequencer import Sequencer


class PingStartResult(enum.Enum):
    """Outcome of trying to start a ping."""

    STARTED = 0
    AWAITING_PONG = 1
    TIMED_OUT = 2


class PacketFamily(enum.IntEnum):
    """Packet family identifiers of the EO protocol."""

    CONNECTION = 1
    ACCOUNT = 2
    CHARACTER = 3
    LOGIN = 4
    WELCOME = 5
    WALK = 6
    FACE = 7
    CHAIR = 8
    EMOTE = 9
    ATTACK = 11
    SPELL = 12
    SHOP = 13
    ITEM = 14
    STAT_SKILL = 16
    GLOBAL = 17
    TALK = 18
    WARP = 19
    JUKEBOX = 21
    PLAYERS = 22
    AVATAR = 23
    PARTY = 24
    REFRESH = 25
    NPC = 26
    PLAYER_RANGE = 27
    NPC_RANGE = 28
    RANGE = 29
    PAPERDOLL = 30
    EFFECT = 31
    TRADE = 32
    CHEST = 33
    DOOR = 34
    MESSAGE = 35
    BANK = 36
    LOCKER = 37
    BARBER = 38
    GUILD = 39
    MUSIC = 40
    SIT = 41
    RECOVER = 42
    BOARD = 43
    CAST = 44
    ARENA = 45
    PRIEST = 46
    MARRIAGE = 47
    ADMIN_INTERACT = 48
    CITIZEN = 49
    QUEST = 50
    BOOK = 51
    ERROR = 250
    INIT = 255


class PacketAction(enum.IntEnum):
    """Packet action identifiers of the EO protocol."""

    REQUEST = 1
    ACCEPT = 2
    REPLY = 3
    REMOVE = 4
    AGREE = 5
    CREATE = 6
    ADD = 7
    PLAYER = 8
    TAKE = 9
    USE = 10
    BUY = 11
    SELL = 12
    OPEN = 13
    CLOSE = 14
    MSG = 15
    SPEC = 16
    ADMIN = 17
    LIST = 18
    TELL = 20
    REPORT = 21
    ANNOUNCE = 22
    SERVER = 23
    DROP = 24
    JUNK = 25
    OBTAIN = 26
    GET = 27
    KICK = 28
    RANK = 29
    TARGET_SELF = 30
    TARGET_OTHER = 31
    TARGET_GROUP = 33
    DIALOG = 34
    PING = 240
    PONG = 241
    ERROR = 250
    INIT = 255


class SequenceError(ValueError):
    """Raised when a client packet carries an unexpected sequence number."""

    def __init__(self, got: int, expected: int) -> None:
        super().__init__(f"invalid sequence: got={got} expected={expected}")
        self.got = got
        self.expected = expected


class PacketBus:
    """Holds the sequencing and ping state of one client connection.

    Times passed to :meth:`start_ping` are seconds on any monotonic clock.
    """

    def __init__(self, conn: Any) -> None:
        self.conn = conn
        self.sequencer = Sequencer()
        self._lock = threading.Lock()
        self._need_pong = False
        self._last_ping_at: Optional[float] = None
        self._pending_sequence_start = 0
        self._has_pending_sequence = False

    def start_ping(
        self, now: float, timeout: float, sequence_start: int
    ) -> PingStartResult:
        """Mark a ping as in flight, remembering its pending sequence start.

        If a ping is already outstanding, report whether to keep waiting
        for the pong or to treat the connection as timed out.
        """
        with self._lock:
            if self._need_pong:
                if (
                    timeout > 0
                    and self._last_ping_at is not None
                    and now - self._last_ping_at >= timeout
                ):
                    return PingStartResult.TIMED_OUT
                return PingStartResult.AWAITING_PONG

            self._need_pong = True
            self._last_ping_at = now
            self._pending_sequence_start = sequence_start
            self._has_pending_sequence = True
            return PingStartResult.STARTED

    def complete_pong(self) -> None:
        """Clear the outstanding ping marker."""
        with self._lock:
            self._need_pong = False
            self._last_ping_at = None

    def has_pending_sequence(self) -> bool:
        """Report whether a ping-driven sequence reset is waiting."""
        with self._lock:
            return self._has_pending_sequence

    def consume_sequence(
        self,
        family: int,
        action: int,
        client_sequence: int,
        enforce_sequence: bool,
    ) -> None:
        """Validate and advance packet sequencing for one received packet.

        Raises :class:`SequenceError` when enforcement is on and the client
        sequence does not match the expected value.
        """
        with self._lock:
            if family == PacketFamily.INIT:
                self.sequencer.next_sequence()
                return

            if (
                family == PacketFamily.CONNECTION
                and action == PacketAction.PING
                and self._has_pending_sequence
            ):
                expected = self.sequencer.peek_next_sequence_with_start(
                    self._pending_sequence_start
                )
                if enforce_sequence and client_sequence != expected:
                    raise SequenceError(client_sequence, expected)

                self._need_pong = False
                self._last_ping_at = None
                self.sequencer.set_start(self._pending_sequence_start)
                self.sequencer.next_sequence()
                self._pending_sequence_start = 0
                self._has_pending_sequence = False
                return

            expected = self.sequencer.next_sequence()
            if enforce_sequence and client_sequence != expected:
                raise SequenceError(client_sequence, expected)

    def current_sequence_start(self) -> int:
        """Return the active sequence start."""
        with self._lock:
            return self.sequencer.start()