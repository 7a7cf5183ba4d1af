import pytest

from geoserv.world.wedding import (
    CANCELLED_MESSAGE,
    COMPLETE_MESSAGE,
    PriestReply,
    ServerMessage,
    WeddingRegistry,
    WeddingState,
)

MAP = 5
PLAYER = 1
PARTNER = 2


class FakeBus:
    def __init__(self):
        self.sent = []

    def send_packet(self, packet):
        self.sent.append(packet)


@pytest.fixture
def setup():
    registry = WeddingRegistry()
    player_bus, partner_bus = FakeBus(), FakeBus()
    assert registry.start(MAP, PLAYER, PARTNER, 3, player_bus, partner_bus)
    return registry, player_bus, partner_bus


def tick_until(registry, state, delay=5, limit=1000):
    for count in range(1, limit + 1):
        registry.tick(delay)
        wedding = registry.get(MAP)
        if wedding is not None and wedding.state is state:
            return count
    raise AssertionError(f"never reached {state}")


def test_only_one_wedding_per_map(setup):
    registry, player_bus, partner_bus = setup
    assert not registry.start(MAP, 7, 8, 0, player_bus, partner_bus)
    assert registry.participants(MAP) == (PLAYER, PARTNER)


def test_participants_and_end(setup):
    registry, _, _ = setup
    assert registry.get(MAP).state is WeddingState.REQUESTED
    registry.end(MAP)
    assert registry.get(MAP) is None
    assert registry.participants(MAP) is None


def test_accept_requires_partner_and_requested_state(setup):
    registry, _, _ = setup
    assert not registry.accept(MAP, PLAYER)
    assert not registry.accept(99, PARTNER)
    assert registry.accept(MAP, PARTNER)
    assert registry.get(MAP).state is WeddingState.ACCEPTED
    assert not registry.accept(MAP, PARTNER)


def test_request_times_out(setup):
    registry, _, _ = setup
    for _ in range(30 * 8 - 1):
        registry.tick(5)
    assert registry.get(MAP) is not None
    registry.tick(5)
    assert registry.get(MAP) is None


def test_full_ceremony(setup):
    registry, player_bus, partner_bus = setup
    assert registry.accept(MAP, PARTNER)

    registry.tick(5)
    assert registry.get(MAP).state is WeddingState.PRIEST_DIALOG1

    tick_until(registry, WeddingState.PRIEST_DO_YOU_PARTNER)
    assert partner_bus.sent == [PriestReply()]
    assert partner_bus.sent[0].reply_code == PriestReply.DO_YOU

    tick_until(registry, WeddingState.WAITING_FOR_PARTNER)
    assert not registry.respond_i_do(MAP, PLAYER)
    assert registry.respond_i_do(MAP, PARTNER)
    assert registry.get(MAP).state is WeddingState.PARTNER_AGREES

    registry.tick(5)
    assert registry.get(MAP).state is WeddingState.PRIEST_DO_YOU_PLAYER
    assert player_bus.sent == [PriestReply()]

    tick_until(registry, WeddingState.WAITING_FOR_PLAYER)
    assert not registry.ready_to_finalize(MAP)
    assert registry.respond_i_do(MAP, PLAYER)
    assert registry.ready_to_finalize(MAP)

    tick_until(registry, WeddingState.DONE)
    assert player_bus.sent[-1] == ServerMessage(COMPLETE_MESSAGE)
    assert partner_bus.sent[-1] == ServerMessage(COMPLETE_MESSAGE)

    registry.tick(5)
    assert registry.get(MAP) is None


def test_partner_silence_cancels(setup):
    registry, player_bus, partner_bus = setup
    registry.accept(MAP, PARTNER)
    tick_until(registry, WeddingState.WAITING_FOR_PARTNER)
    for _ in range(200):
        registry.tick(5)
    assert registry.get(MAP) is None
    assert player_bus.sent[-1] == ServerMessage(CANCELLED_MESSAGE)
    assert partner_bus.sent[-1] == ServerMessage(CANCELLED_MESSAGE)


def test_begin_finalization_holds_state(setup):
    registry, _, _ = setup
    assert registry.begin_finalization(MAP) is None
    registry.accept(MAP, PARTNER)
    tick_until(registry, WeddingState.WAITING_FOR_PARTNER)
    registry.respond_i_do(MAP, PARTNER)
    tick_until(registry, WeddingState.WAITING_FOR_PLAYER)
    registry.respond_i_do(MAP, PLAYER)

    assert registry.begin_finalization(MAP) == (PLAYER, PARTNER)
    assert not registry.ready_to_finalize(MAP)
    for _ in range(100):
        registry.tick(5)
    assert registry.get(MAP).state is WeddingState.FINALIZING
    assert registry.begin_finalization(MAP) is None