# geoserv

Building blocks for an Endless Online game server. Each module can be used
on its own and none needs anything beyond the standard library.

## Modules

### `geoserv.protocol.sequencer`

- `Sequencer` tracks the expected sequence number of incoming packets:
  `start + counter`, where the counter cycles from 0 to 9.
  Methods: `next_sequence()`, `peek_next_sequence()`,
  `peek_next_sequence_with_start(start)`, `set_start(start)` (leaves the
  counter alone), `reset(start)` (also sets the counter to 0) and `start()`.
- `generate_init_sequence_bytes()` returns `(seq1, seq2, start)` such that
  `start == seq1 * 7 + seq2 - 13`.
- `generate_ping_sequence_bytes()` returns `(seq1, seq2, start)` such that
  `start == seq1 - seq2`.
- `generate_swap_multiple_value()` returns a random encryption multiple
  from 6 to 12.

### `geoserv.protocol.bus`

- `PacketBus(conn)` holds the ping and sequence state of one connection.
  - `start_ping(now, timeout, sequence_start)` returns a `PingStartResult`:
    `STARTED`, `AWAITING_PONG` while a ping is outstanding, or `TIMED_OUT`
    once `timeout` seconds have passed since it was sent.
  - `complete_pong()` clears the outstanding ping.
  - `has_pending_sequence()` reports whether a ping-driven sequence reset is
    waiting to be applied.
  - `consume_sequence(family, action, client_sequence, enforce_sequence)`
    checks and advances the sequence for one received packet. Init packets
    only advance it; a `Connection`/`Ping` reply applies the pending start.
    A mismatch with enforcement on raises `SequenceError` (a `ValueError`
    with `got` and `expected` attributes).
  - `current_sequence_start()` returns the active start.
- `PacketFamily` and `PacketAction` are the protocol's identifier enums.

### `geoserv.quest.parser`

`parse(quest_id, text)` reads an EO+ quest script (case-insensitive
keywords, `//` comments) into a `Quest` with `id`, `name`, `version` and
`states`. Each `State` has a `description`, `actions` and `rules`; an
`Action` or `Rule` has a `name` and `args`, and a rule also a `goto`.
Each `Arg` is an integer (`int_val`) or a string (`str_val`, `is_str=True`).
`Quest.get_state(name)` returns a state or `None`.

### `geoserv.quest.engine`

- `load_quests(directory)` parses every `.eqf` file in a directory and
  returns a dict keyed by quest ID, taken from the file name
  (`00001.eqf` is quest 1). Unreadable or badly named files are skipped with
  a warning; an unreadable directory raises `OSError`.
- `process_rule(rule, npc_input_choice, context)` returns the rule's `goto`
  state when it is satisfied, otherwise `None`. Understood rules:
  `InputNpc`, `TalkedToNpc`, `Always`, `KilledNpcs(npc, count)` and
  `GotItems(item, count)`; the last two look at a `QuestPlayerContext`
  (`npc_kills`, `inventory`).

### `geoserv.world.wedding`

`WeddingRegistry` runs at most one marriage ceremony per map as a
tick-driven state machine (`WeddingState`). Methods: `start`, `get`, `end`,
`tick(delay_ticks)`, `accept`, `respond_i_do`, `ready_to_finalize`,
`begin_finalization` and `participants`. Participants' buses are any objects
with a `send_packet(packet)` method; they receive `PriestReply` and
`ServerMessage` values.

### `geoserv.world.party`

`PartyRegistry.create_party(leader)` and `get_party(player_id)` manage
`Party` objects. A party's `add_member(member, max_size)`,
`remove_member(player_id)` (disbanding at one member left),
`build_member_list()`, `broadcast(packet)` and `members_on_map(map_id)`
work on `PartyMemberInfo` records and send `PartyAdd`, `PartyCreate`,
`PartyRemove` and `PartyClose` values to member buses.
`hp_percentage(hp, max_hp)` gives the whole percentage shown to clients.

### `geoserv.world.sessions`

`SessionRegistry` indexes online players by ID and by name (ignoring case),
with their map and bus, mutes (`set_muted_until`, `clear_muted`,
`muted_until`, `is_muted`), captchas (`start_captcha`, `refresh_captcha`,
`verify_captcha`, `has_captcha`) and logged-in accounts
(`is_logged_in`, `add_logged_in_account`, `remove_logged_in_account`).
`verify_captcha` returns the reward when solved and `None` otherwise; a
captcha is dropped after more than five wrong answers. `random_captcha()`
makes a five-letter uppercase challenge.

### `geoserv.server.mux`

`ProtocolMux(listener)` takes a listening socket and routes each accepted
connection by its first byte: connections that start like an HTTP request
(`is_http_start`) go to `http_listener()`, all others to `tcp_listener()`.
Each is a `ChannelListener` whose `accept(timeout=None)` returns a
`PeekedConnection` (the first byte is returned again by `recv`), raises
`TimeoutError` on timeout and `ListenerClosed` once closed.

### `geoserv.sln`

Heartbeats to a server listing service, configured by `SlnConfig`:
`build_heartbeat_url(config, server_port, player_count)`,
`ping(config, server_port, player_count_fn)` (returns whether the service
answered 200, never raises) and `run(config, server_port, player_count_fn,
stop_event)`, which pings at once and then every `config.rate` minutes
until the `threading.Event` is set.

## What this package does not do

It is a set of parts, not a running game server. There is no command to
start, no game loop, no map, NPC or item data, no character storage, and no
encoding, encryption or sending of protocol packets on the wire: the
`send_packet` buses that the world modules use are supplied by the caller.

## Install

```
pip install .
```

## Example

```python
from geoserv.quest.parser import parse
from geoserv.quest.engine import QuestPlayerContext, process_rule

quest = parse(1, '''
state Begin
{
  rule KilledNpcs(10, 5) goto Done
}
''')
rule = quest.get_state("Begin").rules[0]
context = QuestPlayerContext(npc_kills={10: 7})
print(process_rule(rule, 0, context))   # Done
```

```python
from geoserv.protocol.sequencer import Sequencer

seq = Sequencer()
seq.set_start(100)
print(seq.next_sequence())   # 100
```

## Tests

```
pip install .[test]
pytest
```