"""Parser for EO+ quest scripts."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, Optional

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> Optional[int]:
    """Parse a plain decimal integer, or return None if ``text`` is not one."""
    if _INTEGER.fullmatch(text):
        return int(text)
    return None


@dataclass(frozen=True)
class Arg:
    """An argument of an action or rule: either an integer or a string."""

    int_val: int = 0
    str_val: str = ""
    is_str: bool = False


@dataclass
class Action:
    """A quest action such as ``AddNpcText`` or ``GiveItem``."""

    name: str
    args: list[Arg] = field(default_factory=list)


@dataclass
class Rule:
    """A condition that moves the quest to the state named by ``goto``."""

    name: str
    args: list[Arg] = field(default_factory=list)
    goto: str = ""


@dataclass
class State:
    """A quest state with its actions and transition rules."""

    name: str
    description: str = ""
    actions: list[Action] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)


@dataclass
class Quest:
    """A parsed quest script."""

    id: int
    name: str = ""
    version: int = 0
    states: dict[str, State] = field(default_factory=dict)

    def get_state(self, name: str) -> Optional[State]:
        """Return the state called ``name``, or None."""
        return self.states.get(name)


def _starts_with_keyword(line: str, keyword: str) -> bool:
    return len(line) >= len(keyword) and line[: len(keyword)].lower() == keyword


def parse(quest_id: int, text: str) -> Quest:
    """Parse a quest script into a :class:`Quest`."""
    quest = Quest(id=quest_id)
    lines = (raw.strip() for raw in text.split("\n"))

    for line in lines:
        if not line or line.startswith("//"):
            continue
        if line.lower() == "main":
            _parse_main(quest, lines)
        elif len(line) > 6 and line[:6].lower() == "state ":
            state = State(name=line[6:].strip())
            _parse_state(state, lines)
            quest.states[state.name] = state

    return quest


def _parse_main(quest: Quest, lines: Iterator[str]) -> None:
    for line in lines:
        if line == "{":
            continue
        if line == "}":
            return
        if _starts_with_keyword(line, "questname"):
            quest.name = _extract_quoted_string(line)
        elif _starts_with_keyword(line, "version"):
            parts = line.split()
            if len(parts) >= 2:
                quest.version = _atoi(parts[1]) or 0


def _parse_state(state: State, lines: Iterator[str]) -> None:
    for line in lines:
        if line == "{":
            continue
        if line == "}":
            return
        if not line or line.startswith("//"):
            continue

        if _starts_with_keyword(line, "desc"):
            state.description = _extract_quoted_string(line)
        elif _starts_with_keyword(line, "action"):
            action = _parse_action(line)
            if action is not None:
                state.actions.append(action)
        elif _starts_with_keyword(line, "rule"):
            rule = _parse_rule(line)
            if rule is not None:
                state.rules.append(rule)


def _parse_action(line: str) -> Optional[Action]:
    # action FuncName( arg1 , arg2 , ... );
    idx = line.lower().find("action")
    if idx < 0:
        return None
    rest = line[idx + 6 :].strip()
    rest = rest.removesuffix(";").strip()

    name, args = _parse_func_call(rest)
    if not name:
        return None
    return Action(name=name, args=args)


def _parse_rule(line: str) -> Optional[Rule]:
    # rule Condition( args ) goto StateName
    idx = line.lower().find("rule")
    if idx < 0:
        return None
    rest = line[idx + 4 :].strip()

    goto_idx = rest.lower().find("goto")
    if goto_idx < 0:
        return None

    condition = rest[:goto_idx].strip()
    goto_state = rest[goto_idx + 4 :].strip()

    name, args = _parse_func_call(condition)
    if not name:
        return None
    return Rule(name=name, args=args, goto=goto_state)


def _parse_func_call(text: str) -> tuple[str, list[Arg]]:
    paren_idx = text.find("(")
    if paren_idx < 0:
        return text.strip(), []

    name = text[:paren_idx].strip()
    close_idx = text.rfind(")")
    if close_idx < 0:
        close_idx = len(text)

    args: list[Arg] = []
    for part in text[paren_idx + 1 : close_idx].split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith('"') and part.endswith('"'):
            args.append(Arg(str_val=part[1:-1], is_str=True))
            continue
        number = _atoi(part)
        if number is not None:
            args.append(Arg(int_val=number))
        else:
            args.append(Arg(str_val=part, is_str=True))

    return name, args


def _extract_quoted_string(line: str) -> str:
    first = line.find('"')
    if first < 0:
        parts = line.split()
        return parts[1] if len(parts) >= 2 else ""
    last = line.rfind('"')
    if last <= first:
        return ""
    return line[first + 1 : last]