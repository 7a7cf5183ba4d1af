"""Marriage ceremony state machines, one per map."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, ClassVar, Optional

CANCELLED_MESSAGE = "Wedding ceremony cancelled."
COMPLETE_MESSAGE = "The wedding ceremony is complete."

_TICKS_PER_SECOND = 8
_REQUEST_TIMEOUT_TICKS = 30 * _TICKS_PER_SECOND
_ANSWER_TIMEOUT_TICKS = 20 * _TICKS_PER_SECOND
_PLAYER_QUESTION_DELAY_TICKS = _TICKS_PER_SECOND
_CELEBRATION_TICKS = 2 * _TICKS_PER_SECOND


class WeddingState(enum.IntEnum):
    """Progress of a ceremony."""

    REQUESTED = 0
    ACCEPTED = 1
    PRIEST_DIALOG1 = 2
    PRIEST_DO_YOU_PARTNER = 3
    WAITING_FOR_PARTNER = 4
    PARTNER_AGREES = 5
    PRIEST_DO_YOU_PLAYER = 6
    WAITING_FOR_PLAYER = 7
    PLAYER_AGREES = 8
    FINALIZING = 9
    PRIEST_ANNOUNCE = 10
    DONE = 11


@dataclass(frozen=True)
class PriestReply:
    """Priest reply packet sent to a participant."""

    DO_YOU: ClassVar[str] = "do_you"

    reply_code: str = DO_YOU


@dataclass(frozen=True)
class ServerMessage:
    """Server talk packet carrying a plain message."""

    message: str


@dataclass
class Wedding:
    """An active ceremony on a map.

    ``player_bus`` and ``partner_bus`` are anything with a
    ``send_packet(packet)`` method.
    """

    player_id: int
    partner_id: int
    npc_index: int
    map_id: int
    player_bus: Any
    partner_bus: Any
    state: WeddingState = WeddingState.REQUESTED
    ticks: int = 0

    def _send_both(self, packet: Any) -> None:
        self.player_bus.send_packet(packet)
        self.partner_bus.send_packet(packet)


class WeddingRegistry:
    """Tracks active ceremonies; at most one per map."""

    def __init__(self) -> None:
        self._weddings: dict[int, Wedding] = {}

    def start(
        self,
        map_id: int,
        player_id: int,
        partner_id: int,
        npc_index: int,
        player_bus: Any,
        partner_bus: Any,
    ) -> bool:
        """Begin a ceremony; return False if one is already running there."""
        if map_id in self._weddings:
            return False
        self._weddings[map_id] = Wedding(
            player_id=player_id,
            partner_id=partner_id,
            npc_index=npc_index,
            map_id=map_id,
            player_bus=player_bus,
            partner_bus=partner_bus,
        )
        return True

    def get(self, map_id: int) -> Optional[Wedding]:
        """Return the ceremony on ``map_id``, or None."""
        return self._weddings.get(map_id)

    def end(self, map_id: int) -> None:
        """Remove the ceremony on ``map_id`` if there is one."""
        self._weddings.pop(map_id, None)

    def tick(self, delay_ticks: int) -> None:
        """Advance every ceremony by one tick."""
        for map_id, wedding in list(self._weddings.items()):
            wedding.ticks -= 1
            if wedding.ticks > 0:
                continue
            self._advance(map_id, wedding, delay_ticks)

    def _advance(self, map_id: int, wedding: Wedding, delay_ticks: int) -> None:
        state = wedding.state
        if state is WeddingState.REQUESTED:
            if wedding.ticks <= -_REQUEST_TIMEOUT_TICKS:
                self.end(map_id)
        elif state is WeddingState.ACCEPTED:
            wedding.state = WeddingState.PRIEST_DIALOG1
            wedding.ticks = delay_ticks
        elif state is WeddingState.PRIEST_DIALOG1:
            wedding.state = WeddingState.PRIEST_DO_YOU_PARTNER
            wedding.ticks = 0
            wedding.partner_bus.send_packet(PriestReply())
        elif state is WeddingState.PRIEST_DO_YOU_PARTNER:
            wedding.state = WeddingState.WAITING_FOR_PARTNER
            wedding.ticks = _ANSWER_TIMEOUT_TICKS
        elif state in (WeddingState.WAITING_FOR_PARTNER, WeddingState.WAITING_FOR_PLAYER):
            wedding._send_both(ServerMessage(CANCELLED_MESSAGE))
            self.end(map_id)
        elif state is WeddingState.PARTNER_AGREES:
            wedding.state = WeddingState.PRIEST_DO_YOU_PLAYER
            wedding.ticks = _PLAYER_QUESTION_DELAY_TICKS
            wedding.player_bus.send_packet(PriestReply())
        elif state is WeddingState.PRIEST_DO_YOU_PLAYER:
            wedding.state = WeddingState.WAITING_FOR_PLAYER
            wedding.ticks = _ANSWER_TIMEOUT_TICKS
        elif state is WeddingState.PLAYER_AGREES:
            wedding.state = WeddingState.PRIEST_ANNOUNCE
            wedding.ticks = _CELEBRATION_TICKS
        elif state is WeddingState.FINALIZING:
            # The priest handler finishes persistence and ends the ceremony.
            return
        elif state is WeddingState.PRIEST_ANNOUNCE:
            wedding.state = WeddingState.DONE
            wedding._send_both(ServerMessage(COMPLETE_MESSAGE))
        elif state is WeddingState.DONE:
            self.end(map_id)

    def accept(self, map_id: int, partner_id: int) -> bool:
        """Record that the partner accepted the ceremony request."""
        wedding = self._weddings.get(map_id)
        if (
            wedding is None
            or wedding.partner_id != partner_id
            or wedding.state is not WeddingState.REQUESTED
        ):
            return False
        wedding.state = WeddingState.ACCEPTED
        wedding.ticks = 0
        return True

    def respond_i_do(self, map_id: int, player_id: int) -> bool:
        """Record an "I do" from whichever participant is being asked."""
        wedding = self._weddings.get(map_id)
        if wedding is None:
            return False
        if player_id == wedding.partner_id and wedding.state is WeddingState.WAITING_FOR_PARTNER:
            wedding.state = WeddingState.PARTNER_AGREES
            wedding.ticks = 0
            return True
        if player_id == wedding.player_id and wedding.state is WeddingState.WAITING_FOR_PLAYER:
            wedding.state = WeddingState.PLAYER_AGREES
            wedding.ticks = 0
            return True
        return False

    def ready_to_finalize(self, map_id: int) -> bool:
        """Report whether both participants have said "I do"."""
        wedding = self._weddings.get(map_id)
        return wedding is not None and wedding.state is WeddingState.PLAYER_AGREES

    def begin_finalization(self, map_id: int) -> Optional[tuple[int, int]]:
        """Mark a ready ceremony as finalizing; return (player, partner) ids."""
        wedding = self._weddings.get(map_id)
        if wedding is None or wedding.state is not WeddingState.PLAYER_AGREES:
            return None
        wedding.state = WeddingState.FINALIZING
        wedding.ticks = 0
        return wedding.player_id, wedding.partner_id

    def participants(self, map_id: int) -> Optional[tuple[int, int]]:
        """Return (player, partner) ids of the ceremony on ``map_id``."""
        wedding = self._weddings.get(map_id)
        if wedding is None:
            return None
        return wedding.player_id, wedding.partner_id