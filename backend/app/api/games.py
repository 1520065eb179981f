from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from app.services.games import directory, ids, leaderboard, registry


games = Blueprint('games', __name__)


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    """
    Creates a new game in setup. The creator is always one of its admins.
    """
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Game name is required'}), 400
    admins = [e for e in (data.get('admins') or []) if isinstance(e, str)]
    if current_user.email.lower() not in [a.lower() for a in admins]:
        admins.append(current_user.email)
    whitelist = [e for e in (data.get('whitelisted_emails') or []) if isinstance(e, str)]

    game = registry.create_game(name, admins, whitelist)
    return jsonify({'message': 'New game created!', 'game': game.to_dict()}), 201


@games.route('/<game_id>', methods=['GET'])
@login_required
def get_game(game_id):
    game = registry.find_game(ids.game_id(game_id))
    payload = game.to_dict()
    payload['role'] = directory.get_role(game.id, current_user.id).value
    return jsonify(payload)


@games.route('/<game_id>/register', methods=['POST'])
@login_required
def register(game_id):
    player = directory.register(ids.game_id(game_id), current_user.id)
    return jsonify({'msg': 'success', 'player': player.to_dict()}), 201


@games.route('/<game_id>/me', methods=['GET'])
@login_required
def me(game_id):
    return jsonify(directory.current_player_info(ids.game_id(game_id), current_user.id))


@games.route('/<game_id>/invites', methods=['POST'])
@login_required
def invite_team(game_id):
    data = request.get_json(silent=True) or {}
    partner_id = ids.player_id(data.get('team_partner_id'))
    directory.invite_partner(ids.game_id(game_id), current_user.id, partner_id)
    return jsonify({'msg': 'success'}), 201


@games.route('/<game_id>/invites', methods=['GET'])
@login_required
def get_invites(game_id):
    return jsonify(directory.get_invites(ids.game_id(game_id), current_user.id))


@games.route('/<game_id>/invited-by', methods=['GET'])
@login_required
def get_invited_by(game_id):
    return jsonify(directory.get_invited_by(ids.game_id(game_id), current_user.id))


@games.route('/<game_id>/invites/<inviter_user_id>/accept', methods=['POST'])
@login_required
def accept_invite(game_id, inviter_user_id):
    player = directory.accept_invite(ids.game_id(game_id), current_user.id, ids.user_id(inviter_user_id))
    return jsonify({'msg': 'success', 'player': player.to_dict()})


@games.route('/<game_id>/invites/<inviter_user_id>/reject', methods=['POST'])
@login_required
def reject_invite(game_id, inviter_user_id):
    directory.reject_invite(ids.game_id(game_id), current_user.id, ids.user_id(inviter_user_id))
    return jsonify({'msg': 'success'})


@games.route('/<game_id>/players', methods=['GET'])
@login_required
def get_all_players_info(game_id):
    """
    Every player in the game except the caller, in leaderboard shape.
    """
    return jsonify(leaderboard.fetch_players_except(ids.game_id(game_id), current_user.id))
