"""Typed identifiers, one per entity kind.

Ids are integers in storage. At the boundary they are parsed once into the
matching ``NewType`` so a player id is never passed where a game id belongs.
"""
from typing import NewType

from .errors import InvalidIdentifier

GameId = NewType('GameId', int)
PlayerId = NewType('PlayerId', int)
AssignmentId = NewType('AssignmentId', int)
UserId = NewType('UserId', int)


def _parse(kind: str, raw) -> int:
    if isinstance(raw, bool):
        raise InvalidIdentifier(kind, raw)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        raise InvalidIdentifier(kind, raw)
    if value <= 0:
        raise InvalidIdentifier(kind, raw)
    return value


def game_id(raw) -> GameId:
    return GameId(_parse('game', raw))


def player_id(raw) -> PlayerId:
    return PlayerId(_parse('player', raw))


def assignment_id(raw) -> AssignmentId:
    return AssignmentId(_parse('assignment', raw))


def user_id(raw) -> UserId:
    return UserId(_parse('user', raw))
