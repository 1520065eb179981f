"""Elimination resolver.

``report_kill`` consumes one PENDING edge and repairs the target graph:

- the victim is KILLED and the consumed edge COMPLETE
- every other PENDING edge naming the victim is EXPIRED
- if the victim's partner is still in play, nothing else changes
- if the victim's team is now out, the killer's team inherits the team the
  victim's team was hunting

All of it commits together or not at all.
"""
from dataclasses import dataclass, field
from typing import List, Set

from flask import current_app

from app import db
from app.models import (
    AssignmentStatus,
    GameStatus,
    LIVE_STATUSES,
    Player,
    PlayerStatus,
    TargetAssignment,
)
from . import directory, registry
from .errors import InvalidEdgeState, InvalidGameState, InvalidPlayerState, TargetNotFound
from .ids import AssignmentId, PlayerId
from .locking import lock_game_row, retry_on_contention, serialized, transactional


@dataclass
class KillReport:
    victim_id: PlayerId
    team_eliminated: bool
    game_complete: bool
    new_assignment_ids: List[AssignmentId] = field(default_factory=list)

    def to_dict(self):
        return {
            'victim_id': self.victim_id,
            'team_eliminated': self.team_eliminated,
            'game_complete': self.game_complete,
            'new_assignment_ids': list(self.new_assignment_ids),
        }


def _combat_statuses():
    if current_app.config.get('SAFE_PLAYERS_CAN_FIGHT'):
        return (PlayerStatus.ALIVE, PlayerStatus.SAFE)
    return (PlayerStatus.ALIVE,)


def _live_partner(player: Player):
    if not player.team_partner_id:
        return None
    partner = db.session.get(Player, player.team_partner_id)
    if partner and partner.status in LIVE_STATUSES:
        return partner
    return None


def _live_team(player: Player) -> List[Player]:
    """The player (if live) and their live partner."""
    team = [player] if player.status in LIVE_STATUSES else []
    partner = _live_partner(player)
    if partner:
        team.append(partner)
    return team


def _pending_edges(game_id: int, **filters) -> List[TargetAssignment]:
    return TargetAssignment.query.filter_by(
        game_id=game_id, status=AssignmentStatus.PENDING, **filters
    ).order_by(TargetAssignment.id).all()


def _expire(edges) -> int:
    for edge in edges:
        edge.status = AssignmentStatus.EXPIRED
    return len(edges)


def _hunted_team(hunted_ids: Set[int], excluded: Set[int]) -> List[Player]:
    """Live members of the team(s) named by ``hunted_ids``, minus ``excluded``."""
    members = {}
    for pid in sorted(hunted_ids):
        player = db.session.get(Player, pid)
        if not player:
            continue
        for member in _live_team(player):
            if member.id not in excluded:
                members[member.id] = member
    return [members[k] for k in sorted(members)]


def count_live_teams(game_id: int) -> int:
    live = directory.find_by_game_and_status(game_id, LIVE_STATUSES)
    live_ids = {p.id for p in live}
    seen = set()
    teams = 0
    for player in live:
        if player.id in seen:
            continue
        seen.add(player.id)
        if player.team_partner_id in live_ids:
            seen.add(player.team_partner_id)
        teams += 1
    return teams


@retry_on_contention
@serialized
@transactional
def report_kill(game_id: int, reporter_user_id: int, assignment_id: int) -> KillReport:
    directory.require_admin(game_id, reporter_user_id)
    game = lock_game_row(game_id)
    if game.status != GameStatus.IN_PROGRESS:
        raise InvalidGameState(game_id, game.status.value)

    edge = db.session.get(TargetAssignment, assignment_id)
    if not edge or edge.game_id != game_id:
        raise TargetNotFound(assignment_id)
    if edge.status != AssignmentStatus.PENDING:
        raise InvalidEdgeState(assignment_id, edge.status.value)

    killer = directory.find_by_id(edge.player_id, game_id)
    victim = directory.find_by_id(edge.target_id, game_id)
    combat = _combat_statuses()
    if killer.status not in combat:
        raise InvalidPlayerState(killer.id, killer.status.value)
    if victim.status not in combat:
        raise InvalidPlayerState(victim.id, victim.status.value)

    # What the victim was hunting, before its edges go away
    victim_outgoing = {e.target_id for e in _pending_edges(game_id, player_id=victim.id)}

    victim.status = PlayerStatus.KILLED
    edge.status = AssignmentStatus.COMPLETE

    expired = _expire(_pending_edges(game_id, player_id=victim.id))
    expired += _expire(_pending_edges(game_id, target_id=victim.id))

    partner = _live_partner(victim)
    team_eliminated = partner is None
    new_edges: List[TargetAssignment] = []

    if team_eliminated:
        killer_team = _live_team(killer)
        killer_team_ids = {p.id for p in killer_team}
        hunted = _hunted_team(victim_outgoing, killer_team_ids)
        if hunted:
            # A team holds one outgoing target set at a time
            for member in killer_team:
                expired += _expire(_pending_edges(game_id, player_id=member.id))
            for member in killer_team:
                for target in hunted:
                    new_edge = TargetAssignment(
                        game_id=game_id,
                        player_id=member.id,
                        target_id=target.id,
                        status=AssignmentStatus.PENDING,
                    )
                    db.session.add(new_edge)
                    new_edges.append(new_edge)
        else:
            current_app.logger.info(
                f"[kill] game={game_id} killer_team={sorted(killer_team_ids)} left without target until rematch"
            )

    db.session.flush()

    game_complete = count_live_teams(game_id) <= 1
    if game_complete:
        registry.finish_game(game)

    current_app.logger.info(
        f"[kill] game={game_id} edge={assignment_id} killer={killer.id} victim={victim.id} "
        f"team_eliminated={team_eliminated} expired={expired} created={len(new_edges)} game_complete={game_complete}"
    )
    return KillReport(
        victim_id=PlayerId(victim.id),
        team_eliminated=team_eliminated,
        game_complete=game_complete,
        new_assignment_ids=[AssignmentId(e.id) for e in new_edges],
    )


@retry_on_contention
@serialized
@transactional
def toggle_safe(game_id: int, admin_user_id: int, player_id: int) -> PlayerStatus:
    """Flip ALIVE <-> SAFE. Pending edges against the player are left as they are."""
    directory.require_admin(game_id, admin_user_id)
    lock_game_row(game_id)
    player = directory.find_by_id(player_id, game_id)
    if player.status not in (PlayerStatus.ALIVE, PlayerStatus.SAFE):
        raise InvalidPlayerState(player.id, player.status.value)

    player.status = PlayerStatus.SAFE if player.status == PlayerStatus.ALIVE else PlayerStatus.ALIVE
    current_app.logger.info(f"[safe] game={game_id} player={player.id} status={player.status.value}")
    return player.status
