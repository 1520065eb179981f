"""Leaderboard projection.

``build_leaderboard`` is a pure function over a snapshot of players, users and
assignments; the ``fetch_*`` helpers only load that snapshot.
"""
from collections import Counter
from typing import Dict, Iterable, List, Optional

from app.models import AssignmentStatus, Player, PlayerStatus, TargetAssignment, User
from . import directory, registry


def build_leaderboard(
    players: Iterable[Player],
    users: Dict[int, User],
    assignments: Iterable[TargetAssignment],
    exclude_user_id: Optional[int] = None,
) -> List[dict]:
    players = list(players)
    by_id = {p.id: p for p in players}
    kills = Counter()
    killed_by: Dict[int, int] = {}
    for edge in assignments:
        if edge.status != AssignmentStatus.COMPLETE:
            continue
        kills[edge.player_id] += 1
        killed_by[edge.target_id] = edge.player_id

    def name_of(player_id):
        player = by_id.get(player_id)
        user = users.get(player.user_id) if player else None
        return user.full_name if user else 'Unknown'

    entries = []
    for p in players:
        if exclude_user_id is not None and p.user_id == exclude_user_id:
            continue
        killer_id = killed_by.get(p.id)
        entries.append({
            'playerId': p.id,
            'userId': p.user_id,
            'teamPartnerId': p.team_partner_id,
            'name': name_of(p.id),
            'kills': kills.get(p.id, 0),
            'status': p.status.value,
            'alive': p.status == PlayerStatus.ALIVE,
            'safe': p.status == PlayerStatus.SAFE,
            'killedBy': name_of(killer_id) if killer_id is not None else None,
        })
    return entries


def _snapshot(game_id: int):
    registry.find_game(game_id)
    players = directory.find_by_game(game_id)
    user_ids = [p.user_id for p in players]
    users = {u.id: u for u in User.query.filter(User.id.in_(user_ids)).all()} if user_ids else {}
    assignments = TargetAssignment.query.filter_by(game_id=game_id, status=AssignmentStatus.COMPLETE).all()
    return players, users, assignments


def fetch_leaderboard(game_id: int) -> List[dict]:
    players, users, assignments = _snapshot(game_id)
    entries = build_leaderboard(players, users, assignments)
    return sorted(entries, key=lambda e: (-e['kills'], e['name']))


def fetch_players_except(game_id: int, user_id: int) -> List[dict]:
    """Everyone in the game but the caller, e.g. to pick a partner to invite."""
    players, users, assignments = _snapshot(game_id)
    return build_leaderboard(players, users, assignments, exclude_user_id=user_id)
