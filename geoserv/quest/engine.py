"""Loading quest files and evaluating quest rules."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from geoserv.quest.parser import Quest, Rule, parse

log = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass
class QuestPlayerContext:
    """Player state needed to evaluate kill and inventory rules."""

    npc_kills: dict[int, int] = field(default_factory=dict)
    inventory: dict[int, int] = field(default_factory=dict)


def load_quests(directory: Union[str, os.PathLike]) -> dict[int, Quest]:
    """Load every ``.eqf`` file in ``directory``, keyed by quest ID.

    The quest ID is the file's base name (``00001.eqf`` is quest 1). Files
    that cannot be read or are badly named are skipped with a warning.
    Raises :class:`OSError` if the directory itself cannot be read.
    """
    quests: dict[int, Quest] = {}
    for entry in sorted(Path(directory).iterdir(), key=lambda p: p.name):
        if entry.is_dir() or not entry.name.lower().endswith(".eqf"):
            continue

        try:
            content = entry.read_text(encoding="utf-8", errors="replace")
        except OSError as err:
            log.warning("failed to read quest file %s: %s", entry, err)
            continue

        base = entry.name.rsplit(".", 1)[0]
        if not _INTEGER.fullmatch(base):
            log.warning("invalid quest filename %s", entry.name)
            continue
        quest_id = int(base)

        quests[quest_id] = parse(quest_id, content)

    log.info("quests loaded: %d", len(quests))
    return quests


def process_rule(
    rule: Rule, npc_input_choice: int, context: Optional[QuestPlayerContext]
) -> Optional[str]:
    """Return the target state if ``rule`` is satisfied, otherwise None."""
    kind = rule.name.lower()

    if kind == "inputnpc":
        if rule.args and not rule.args[0].is_str and rule.args[0].int_val == npc_input_choice:
            return rule.goto
        return None

    if kind in ("talkedtonpc", "always"):
        return rule.goto

    if kind in ("killednpcs", "gotitems"):
        if context is None or len(rule.args) < 2:
            return None
        key = rule.args[0].int_val
        required = rule.args[1].int_val
        counts = context.npc_kills if kind == "killednpcs" else context.inventory
        if counts.get(key, 0) >= required:
            return rule.goto
        return None

    return None