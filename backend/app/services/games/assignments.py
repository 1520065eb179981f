"""Assignment generation: seed the circular target graph of a game.

Team ``i`` hunts team ``(i + 1) % n``; every member of a team gets one edge
to every member of the team it hunts. Reseeding expires the previous PENDING
edges and inserts the new ones in the same transaction, so readers never see
a game with its old edges gone and its new ones missing.
"""
from dataclasses import dataclass, field
import enum
import random
from typing import List, Optional, Sequence, Tuple

from flask import current_app

from app import db
from app.models import AssignmentStatus, GameStatus, LIVE_STATUSES, Player, TargetAssignment
from . import directory, registry
from .errors import InvalidGameState, InvalidPlayerState, NoTeamsToMatch, PlayerNotFound, Unprocessable
from .ids import PlayerId
from .locking import lock_game_row, retry_on_contention, serialized, transactional
from .teams import PairingPolicy, Team, disqualify_players, resolve_teams, unpartnered_players


class GenerationOutcome(enum.Enum):
    MATCHED = 'matched'
    # One team left: nothing to hunt, the game is over
    SINGLE_TEAM = 'single_team'
    NO_TEAMS = 'no_teams'


@dataclass
class MatchResult:
    outcome: GenerationOutcome
    teams: List[Team]
    assignment_count: int
    disqualified: List[PlayerId] = field(default_factory=list)

    @property
    def game_complete(self) -> bool:
        return self.outcome == GenerationOutcome.SINGLE_TEAM

    def to_dict(self):
        return {
            'outcome': self.outcome.value,
            'teams': [list(t) for t in self.teams],
            'assignment_count': self.assignment_count,
            'disqualified': list(self.disqualified),
            'game_complete': self.game_complete,
        }


def shuffle_teams(teams: Sequence[Team], rng: Optional[random.Random] = None) -> List[Team]:
    """Fisher-Yates over whole teams, so partners stay together."""
    shuffled = list(teams)
    (rng or random).shuffle(shuffled)
    return shuffled


def build_cycle(teams: Sequence[Team]) -> List[Tuple[PlayerId, PlayerId]]:
    """(from, to) pairs of the circular assignment. Fewer than two teams yields none."""
    seen = set()
    for team in teams:
        if not 1 <= len(team) <= 2:
            raise Unprocessable(f"Teams have one or two members, got {len(team)}", team=list(team))
        for member in team:
            if member in seen:
                raise Unprocessable(f"Player {member} appears in more than one team", player_id=member)
            seen.add(member)

    n = len(teams)
    if n < 2:
        return []
    pairs = []
    for i, team in enumerate(teams):
        target_team = teams[(i + 1) % n]
        for hunter in team:
            for hunted in target_team:
                pairs.append((hunter, hunted))
    return pairs


def _outcome_for(teams: Sequence[Team]) -> GenerationOutcome:
    if not teams:
        return GenerationOutcome.NO_TEAMS
    if len(teams) == 1:
        return GenerationOutcome.SINGLE_TEAM
    return GenerationOutcome.MATCHED


def expire_pending(game_id: int) -> int:
    pending = TargetAssignment.query.filter_by(game_id=game_id, status=AssignmentStatus.PENDING).all()
    for edge in pending:
        edge.status = AssignmentStatus.EXPIRED
    return len(pending)


def _check_members(game_id: int, teams: Sequence[Team]) -> None:
    member_ids = [m for team in teams for m in team]
    if not member_ids:
        return
    players = {p.id: p for p in Player.query.filter(Player.id.in_(member_ids)).all()}
    for member in member_ids:
        player = players.get(member)
        if not player or player.game_id != game_id:
            raise PlayerNotFound(player_id=member)
        if player.status not in LIVE_STATUSES:
            raise InvalidPlayerState(member, player.status.value)


def replace_assignments(game_id: int, teams: Sequence[Team]) -> Tuple[GenerationOutcome, int]:
    """Expire the game's PENDING edges and insert the cycle for ``teams``. Caller commits."""
    _check_members(game_id, teams)
    pairs = build_cycle(teams)
    expired = expire_pending(game_id)
    for hunter, hunted in pairs:
        db.session.add(TargetAssignment(
            game_id=game_id,
            player_id=hunter,
            target_id=hunted,
            status=AssignmentStatus.PENDING,
        ))
    db.session.flush()
    outcome = _outcome_for(teams)
    current_app.logger.info(
        f"[assign] game={game_id} teams={len(teams)} expired={expired} created={len(pairs)} outcome={outcome.value}"
    )
    return outcome, len(pairs)


@retry_on_contention
@serialized
@transactional
def generate_assignments(game_id: int, teams: Sequence[Team]) -> GenerationOutcome:
    """Replace the game's pending target graph with the cycle over ``teams`` (in order)."""
    lock_game_row(game_id)
    outcome, _ = replace_assignments(game_id, teams)
    return outcome


@retry_on_contention
@serialized
@transactional
def match_players(game_id: int, admin_user_id: int, policy: PairingPolicy = None,
                  rng: Optional[random.Random] = None) -> MatchResult:
    """Admin action: resolve teams over live players, shuffle them and reseed the graph."""
    directory.require_admin(game_id, admin_user_id)
    game = lock_game_row(game_id)
    if game.status == GameStatus.FINISHED:
        raise InvalidGameState(game_id, game.status.value)
    if policy is None:
        policy = PairingPolicy.parse(current_app.config.get('DEFAULT_PAIRING_POLICY', 'solo_allowed'))

    players = directory.find_by_game(game_id)
    disqualified: List[PlayerId] = []
    if policy == PairingPolicy.STRICT_PAIRS:
        disqualified = disqualify_players(game_id, unpartnered_players(players))

    teams = shuffle_teams(resolve_teams(players, LIVE_STATUSES, policy), rng)
    if not teams:
        raise NoTeamsToMatch(game_id)

    outcome, created = replace_assignments(game_id, teams)
    if outcome == GenerationOutcome.SINGLE_TEAM:
        registry.finish_game(game)
    else:
        registry.start_game(game)

    current_app.logger.info(
        f"[match] game={game_id} admin={admin_user_id} policy={policy.value} teams={len(teams)} disqualified={disqualified}"
    )
    return MatchResult(outcome=outcome, teams=teams, assignment_count=created, disqualified=disqualified)
