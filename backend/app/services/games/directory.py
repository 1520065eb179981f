"""Player directory: (game, user) -> Player lookups, roles and partner formation."""
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app import db
from app.models import GameStatus, Player, PlayerRole, PlayerStatus, User
from .errors import (
    EmailNotWhitelisted,
    InvalidGameState,
    InvalidInvite,
    PlayerNotFound,
    Unauthorized,
)
from .locking import transactional
from .registry import find_game


def find_by_id(player_id: int, game_id: int = None) -> Player:
    player = db.session.get(Player, player_id)
    if not player or (game_id is not None and player.game_id != game_id):
        raise PlayerNotFound(player_id=player_id)
    return player


def find(user_id: int, game_id: int) -> Optional[Player]:
    return Player.query.filter_by(game_id=game_id, user_id=user_id).first()


def find_by_game(game_id: int) -> List[Player]:
    return Player.query.filter_by(game_id=game_id).order_by(Player.id).all()


def find_by_game_and_status(game_id: int, statuses: Iterable[PlayerStatus]) -> List[Player]:
    return (
        Player.query
        .filter(Player.game_id == game_id, Player.status.in_(list(statuses)))
        .order_by(Player.id)
        .all()
    )


def get_role(game_id: int, user_id: int) -> PlayerRole:
    """ADMIN if the user's email is listed on the game, PLAYER if registered, else NONE."""
    game = find_game(game_id)
    user = db.session.get(User, user_id)
    if user and user.email.lower() in game.admins:
        return PlayerRole.ADMIN
    if find(user_id, game_id) is not None:
        return PlayerRole.PLAYER
    return PlayerRole.NONE


def is_admin(game_id: int, user_id: int) -> bool:
    return get_role(game_id, user_id) == PlayerRole.ADMIN


def require_admin(game_id: int, user_id: int) -> None:
    role = get_role(game_id, user_id)
    if role != PlayerRole.ADMIN:
        raise Unauthorized(user_id, game_id, role.value)


def register(game_id: int, user_id: int) -> Player:
    """Register a user for a game. A second registration returns the existing player."""
    game = find_game(game_id)
    existing = find(user_id, game_id)
    if existing is not None:
        return existing

    if game.status != GameStatus.SETUP:
        raise InvalidGameState(game_id, game.status.value)

    user = db.session.get(User, user_id)
    whitelist = game.whitelisted_emails
    if whitelist and (not user or user.email.lower() not in whitelist):
        raise EmailNotWhitelisted(user_id, game_id)

    player = Player(game_id=game_id, user_id=user_id, status=PlayerStatus.ALIVE)
    db.session.add(player)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same user
        db.session.rollback()
        return find(user_id, game_id)
    current_app.logger.info(f"[register] game={game_id} user={user_id} player={player.id}")
    return player


def _require_registered(user_id: int, game_id: int) -> Player:
    player = find(user_id, game_id)
    if player is None:
        raise PlayerNotFound(user_id=user_id, game_id=game_id)
    return player


def _require_team_formation(game_id: int) -> None:
    game = find_game(game_id)
    if game.status != GameStatus.SETUP:
        raise InvalidGameState(game_id, game.status.value)


@transactional
def invite_partner(game_id: int, user_id: int, partner_player_id: int) -> None:
    _require_team_formation(game_id)
    inviter = _require_registered(user_id, game_id)
    partner = find_by_id(partner_player_id, game_id)

    if partner.id == inviter.id:
        raise InvalidInvite('You cannot invite yourself', player_id=partner.id)
    if inviter.team_partner_id or partner.team_partner_id:
        raise InvalidInvite('Both players must be without a partner', player_id=partner.id)
    if inviter.user_id in partner.invited_by:
        raise InvalidInvite('Team partner has already been invited by this user', player_id=partner.id)

    partner.invited_by = partner.invited_by + [inviter.user_id]
    inviter.invited = inviter.invited + [partner.user_id]
    current_app.logger.info(f"[invite] game={game_id} from_user={inviter.user_id} to_user={partner.user_id}")


def _take_invite(current: Player, inviter: Player) -> None:
    if inviter.user_id not in current.invited_by:
        raise InvalidInvite('No invite from this user', user_id=inviter.user_id)
    current.invited_by = [u for u in current.invited_by if u != inviter.user_id]
    inviter.invited = [u for u in inviter.invited if u != current.user_id]


@transactional
def accept_invite(game_id: int, user_id: int, inviter_user_id: int) -> Player:
    _require_team_formation(game_id)
    current = _require_registered(user_id, game_id)
    inviter = _require_registered(inviter_user_id, game_id)

    _take_invite(current, inviter)
    if current.team_partner_id or inviter.team_partner_id:
        raise InvalidInvite('Both players must be without a partner', user_id=inviter_user_id)

    current.team_partner_id = inviter.id
    inviter.team_partner_id = current.id
    current_app.logger.info(f"[team] game={game_id} players={current.id},{inviter.id}")
    return current


@transactional
def reject_invite(game_id: int, user_id: int, inviter_user_id: int) -> None:
    current = _require_registered(user_id, game_id)
    inviter = _require_registered(inviter_user_id, game_id)
    _take_invite(current, inviter)


def get_invites(game_id: int, user_id: int) -> List[int]:
    """User ids this player has invited."""
    return list(_require_registered(user_id, game_id).invited)


def get_invited_by(game_id: int, user_id: int) -> List[int]:
    """User ids who have invited this player."""
    return list(_require_registered(user_id, game_id).invited_by)


def current_player_info(game_id: int, user_id: int) -> dict:
    player = _require_registered(user_id, game_id)
    info = {'player': player.to_dict(), 'has_partner': False}
    if player.team_partner_id:
        partner = find_by_id(player.team_partner_id)
        info['has_partner'] = True
        info['partner_name'] = partner.user.full_name
    return info
