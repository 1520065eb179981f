"""Read paths over the target graph."""
from typing import List, Optional

from app import db
from app.models import AssignmentStatus, GameStatus, LIVE_STATUSES, Player, PlayerStatus, TargetAssignment, User
from . import directory, registry
from .errors import InvalidGameState, InvalidPlayerState, PlayerNotFound


def get_current_assignment(game_id: int, player_id: int) -> Optional[TargetAssignment]:
    """The player's oldest PENDING edge, or None when they have no target right now."""
    return (
        TargetAssignment.query
        .filter_by(game_id=game_id, player_id=player_id, status=AssignmentStatus.PENDING)
        .order_by(TargetAssignment.id)
        .first()
    )


def get_pending_assignments(game_id: int, player_id: int) -> List[TargetAssignment]:
    return (
        TargetAssignment.query
        .filter_by(game_id=game_id, player_id=player_id, status=AssignmentStatus.PENDING)
        .order_by(TargetAssignment.id)
        .all()
    )


def list_assignments(game_id: int) -> List[TargetAssignment]:
    return TargetAssignment.query.filter_by(game_id=game_id).order_by(TargetAssignment.id).all()


def describe_assignments(game_id: int, admin_user_id: int) -> List[dict]:
    """Admin audit view: every edge with the names on both ends."""
    directory.require_admin(game_id, admin_user_id)
    names = {
        player.id: user.full_name
        for player, user in db.session.query(Player, User).join(User, Player.user_id == User.id)
        .filter(Player.game_id == game_id).all()
    }
    return [
        {
            'targetId': edge.id,
            'fromPlayerId': edge.player_id,
            'toPlayerId': edge.target_id,
            'fromName': names.get(edge.player_id),
            'toName': names.get(edge.target_id),
            'status': edge.status.value,
        }
        for edge in list_assignments(game_id)
    ]


def _member_info(player: Player) -> dict:
    return {
        'playerId': player.id,
        'name': player.user.full_name,
        'safe': player.status == PlayerStatus.SAFE,
        'status': player.status.value,
    }


def fetch_target(game_id: int, user_id: int) -> dict:
    """Target team of the calling user: their current target and that player's partner."""
    player = directory.find(user_id, game_id)
    if player is None:
        raise PlayerNotFound(user_id=user_id, game_id=game_id)
    if player.status not in LIVE_STATUSES:
        raise InvalidPlayerState(player.id, player.status.value)
    game = registry.find_game(game_id)
    if game.status != GameStatus.IN_PROGRESS:
        raise InvalidGameState(game_id, game.status.value)

    current = get_current_assignment(game_id, player.id)
    if current is None:
        return {'members': []}

    target = directory.find_by_id(current.target_id)
    members = [_member_info(target)]
    if target.team_partner_id:
        members.append(_member_info(directory.find_by_id(target.team_partner_id)))
    return {'assignmentId': current.id, 'members': members}
