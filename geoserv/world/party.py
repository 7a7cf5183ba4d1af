"""Player parties and the packets sent to their members."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional


def hp_percentage(hp: int, max_hp: int) -> int:
    """Return hit points as a whole percentage; 100 when the maximum is unknown."""
    if max_hp <= 0:
        return 100
    return int(hp / max_hp * 100)


@dataclass(frozen=True)
class PartyMember:
    """One entry of a party list as sent to clients."""

    player_id: int
    leader: bool
    level: int
    hp_percentage: int
    name: str


@dataclass
class PartyMemberInfo:
    """Server-side record of a party member.

    ``bus`` is anything with a ``send_packet(packet)`` method.
    """

    player_id: int
    name: str
    level: int = 0
    hp: int = 0
    max_hp: int = 0
    map_id: int = 0
    bus: Any = None
    player: Any = None


@dataclass(frozen=True)
class PartyAdd:
    """Tells existing members that someone joined."""

    member: PartyMember


@dataclass(frozen=True)
class PartyCreate:
    """Full party list sent to a new member."""

    members: tuple[PartyMember, ...]


@dataclass(frozen=True)
class PartyRemove:
    """Tells remaining members that someone left."""

    player_id: int


@dataclass(frozen=True)
class PartyClose:
    """Tells members that the party was disbanded."""


@dataclass(eq=False)
class Party:
    """A group of players with a leader."""

    id: int
    leader_id: int
    members: list[PartyMemberInfo]
    _registry: "PartyRegistry" = field(repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add_member(self, member: PartyMemberInfo, max_size: int) -> bool:
        """Add ``member`` unless the party is full, and notify everyone."""
        with self._registry._lock, self._lock:
            if len(self.members) >= max_size:
                return False
            self.members.append(member)
            self._registry._player_party[member.player_id] = self.id
            others = [m.bus for m in self.members if m.player_id != member.player_id]
            members = self._member_list()

        added = PartyAdd(
            PartyMember(
                player_id=member.player_id,
                leader=False,
                level=member.level,
                hp_percentage=hp_percentage(member.hp, member.max_hp),
                name=member.name,
            )
        )
        for bus in others:
            bus.send_packet(added)
        member.bus.send_packet(PartyCreate(members))
        return True

    def remove_member(self, player_id: int) -> None:
        """Remove a player; disband if at most one member is left."""
        with self._registry._lock, self._lock:
            self._registry._player_party.pop(player_id, None)
            self.members = [m for m in self.members if m.player_id != player_id] + []
            if len(self.members) <= 1:
                self._disband_locked()
                return
            if self.leader_id == player_id:
                self.leader_id = self.members[0].player_id
            buses = [m.bus for m in self.members]

        removed = PartyRemove(player_id)
        for bus in buses:
            bus.send_packet(removed)

    def _disband_locked(self) -> None:
        closed = PartyClose()
        for member in self.members:
            self._registry._player_party.pop(member.player_id, None)
            member.bus.send_packet(closed)
        self._registry._parties.pop(self.id, None)

    def build_member_list(self) -> tuple[PartyMember, ...]:
        """Return the party list as sent to clients."""
        with self._lock:
            return self._member_list()

    def _member_list(self) -> tuple[PartyMember, ...]:
        return tuple(
            PartyMember(
                player_id=m.player_id,
                leader=m.player_id == self.leader_id,
                level=m.level,
                hp_percentage=hp_percentage(m.hp, m.max_hp),
                name=m.name,
            )
            for m in self.members
        )

    def broadcast(self, packet: Any) -> None:
        """Send ``packet`` to every member."""
        with self._lock:
            buses = [m.bus for m in self.members]
        for bus in buses:
            bus.send_packet(packet)

    def members_on_map(self, map_id: int) -> list[PartyMemberInfo]:
        """Return the members currently on ``map_id``."""
        with self._lock:
            return [m for m in self.members if m.map_id == map_id]


class PartyRegistry:
    """All parties and the party each player belongs to."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._parties: dict[int, Party] = {}
        self._player_party: dict[int, int] = {}
        self._next_id = 1

    def create_party(self, leader: PartyMemberInfo) -> Party:
        """Create a party led by ``leader``."""
        with self._lock:
            party_id = self._next_id
            self._next_id += 1
            party = Party(
                id=party_id,
                leader_id=leader.player_id,
                members=[leader],
                _registry=self,
            )
            self._parties[party_id] = party
            self._player_party[leader.player_id] = party_id
            return party

    def get_party(self, player_id: int) -> Optional[Party]:
        """Return the party ``player_id`` belongs to, or None."""
        with self._lock:
            party_id = self._player_party.get(player_id)
            if party_id is None:
                return None
            return self._parties.get(party_id)