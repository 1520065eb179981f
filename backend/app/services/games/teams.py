"""Team resolution: partition eligible players into teams of one or two."""
import enum
from typing import Iterable, List, Sequence, Tuple

from flask import current_app
from sqlalchemy import or_

from app import db
from app.models import AssignmentStatus, LIVE_STATUSES, Player, PlayerStatus, TargetAssignment
from . import directory
from .ids import PlayerId

# A team is one or two player ids. Teams are derived, never stored.
Team = Tuple[PlayerId, ...]


class PairingPolicy(enum.Enum):
    SOLO_ALLOWED = 'solo_allowed'
    STRICT_PAIRS = 'strict_pairs'

    @classmethod
    def parse(cls, raw) -> 'PairingPolicy':
        if isinstance(raw, cls):
            return raw
        if raw is not None and not isinstance(raw, str):
            raise ValueError(f"{raw!r} is not a valid {cls.__name__}")
        return cls((raw or '').strip().lower())


def resolve_teams(
    players: Sequence[Player],
    eligible_statuses: Iterable[PlayerStatus] = LIVE_STATUSES,
    policy: PairingPolicy = PairingPolicy.SOLO_ALLOWED,
) -> List[Team]:
    """Group players into teams in a single pass.

    A player whose partner is eligible and not yet grouped forms a pair with
    them. A player whose partner is gone (killed, disqualified, missing) plays
    on alone. Under STRICT_PAIRS a player who never had a partner is left out;
    see ``unpartnered_players``.
    """
    eligible_statuses = set(eligible_statuses)
    eligible = {p.id: p for p in players if p.status in eligible_statuses}
    grouped = set()
    teams: List[Team] = []

    for player in players:
        if player.id not in eligible or player.id in grouped:
            continue
        partner_id = player.team_partner_id
        if partner_id is None:
            if policy == PairingPolicy.STRICT_PAIRS:
                continue
            teams.append((PlayerId(player.id),))
            grouped.add(player.id)
        elif partner_id in eligible and partner_id not in grouped:
            teams.append((PlayerId(player.id), PlayerId(partner_id)))
            grouped.update((player.id, partner_id))
        else:
            teams.append((PlayerId(player.id),))
            grouped.add(player.id)

    return teams


def unpartnered_players(
    players: Sequence[Player],
    eligible_statuses: Iterable[PlayerStatus] = LIVE_STATUSES,
) -> List[Player]:
    """Eligible players with no partner link at all."""
    eligible_statuses = set(eligible_statuses)
    return [p for p in players if p.status in eligible_statuses and p.team_partner_id is None]


def resolve_game_teams(
    game_id: int,
    eligible_statuses: Iterable[PlayerStatus] = LIVE_STATUSES,
    policy: PairingPolicy = PairingPolicy.SOLO_ALLOWED,
) -> List[Team]:
    players = directory.find_by_game(game_id)
    return resolve_teams(players, eligible_statuses, policy)


def disqualify_players(game_id: int, players: Sequence[Player]) -> List[PlayerId]:
    """Mark players DISQUALIFIED and expire every pending edge naming them. Caller commits."""
    disqualified: List[PlayerId] = []
    for player in players:
        if player.status not in LIVE_STATUSES:
            continue
        player.status = PlayerStatus.DISQUALIFIED
        disqualified.append(PlayerId(player.id))
    if not disqualified:
        return disqualified

    pending = TargetAssignment.query.filter(
        TargetAssignment.game_id == game_id,
        TargetAssignment.status == AssignmentStatus.PENDING,
        or_(
            TargetAssignment.player_id.in_(disqualified),
            TargetAssignment.target_id.in_(disqualified),
        ),
    ).all()
    for edge in pending:
        edge.status = AssignmentStatus.EXPIRED
    db.session.flush()
    current_app.logger.info(f"[disqualify] game={game_id} players={disqualified} expired_edges={len(pending)}")
    return disqualified
