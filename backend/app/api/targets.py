from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from app.models import LIVE_STATUSES, PlayerStatus
from app.services.games import directory, ids, leaderboard, queries
from app.services.games.assignments import match_players
from app.services.games.elimination import report_kill, toggle_safe
from app.services.games.errors import Unprocessable
from app.services.games.teams import PairingPolicy, resolve_game_teams


targets = Blueprint('targets', __name__)


def _policy_from(raw):
    if raw is None:
        return None
    try:
        return PairingPolicy.parse(raw)
    except ValueError:
        raise Unprocessable(f"Unknown pairing policy: {raw!r}", pairing_policy=raw)


def _statuses_from(raw):
    if not raw:
        return LIVE_STATUSES
    try:
        return tuple(PlayerStatus(s.strip().upper()) for s in raw.split(',') if s.strip())
    except ValueError:
        raise Unprocessable(f"Unknown player status in {raw!r}", statuses=raw)


@targets.route('/teams', methods=['GET'])
@login_required
def get_teams(game_id):
    gid = ids.game_id(game_id)
    directory.require_admin(gid, current_user.id)
    policy = _policy_from(request.args.get('pairing_policy')) or PairingPolicy.SOLO_ALLOWED
    teams = resolve_game_teams(gid, _statuses_from(request.args.get('statuses')), policy)
    return jsonify({'teams': [list(t) for t in teams]})


@targets.route('/match', methods=['POST'])
@login_required
def match(game_id):
    """
    Admin: expire all pending targets and reseed the circular assignment.
    """
    data = request.get_json(silent=True) or {}
    result = match_players(ids.game_id(game_id), current_user.id, _policy_from(data.get('pairing_policy')))
    return jsonify(result.to_dict())


@targets.route('/kill', methods=['POST'])
@login_required
def kill(game_id):
    data = request.get_json(silent=True) or {}
    report = report_kill(ids.game_id(game_id), current_user.id, ids.assignment_id(data.get('assignment_id')))
    return jsonify(report.to_dict())


@targets.route('/players/<player_id>/safe', methods=['POST'])
@login_required
def make_safe(game_id, player_id):
    pid = ids.player_id(player_id)
    status = toggle_safe(ids.game_id(game_id), current_user.id, pid)
    return jsonify({'player_id': pid, 'status': status.value})


@targets.route('/target', methods=['GET'])
@login_required
def get_target(game_id):
    return jsonify(queries.fetch_target(ids.game_id(game_id), current_user.id))


@targets.route('/assignments', methods=['GET'])
@login_required
def get_assignments(game_id):
    return jsonify(queries.describe_assignments(ids.game_id(game_id), current_user.id))


@targets.route('/leaderboard', methods=['GET'])
@login_required
def get_leaderboard(game_id):
    return jsonify(leaderboard.fetch_leaderboard(ids.game_id(game_id)))
