import itertools
import os
import sys
import pytest

# Ensure the backend root (containing the `app` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from app import create_app, db
from app.models import AssignmentStatus, Game, GameStatus, Player, PlayerStatus, TargetAssignment, User


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = []
    SAFE_PLAYERS_CAN_FIGHT = False
    DEFAULT_PAIRING_POLICY = 'solo_allowed'
    CONTENTION_RETRIES = 2
    GAME_LOCK_TIMEOUT_SEC = 0.05


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import app.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def http_app():
    # No context stays pushed, so each request gets its own `g` and login state.
    # In-memory SQLite shares one connection across contexts.
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def http_client(http_app):
    return http_app.test_client()


@pytest.fixture()
def make_user(flask_app):
    counter = itertools.count(1)

    def _make(email=None, first_name=None, surname=None, password='password'):
        n = next(counter)
        user = User(
            email=email or f'user{n}@example.com',
            first_name=first_name or f'First{n}',
            surname=surname or f'Last{n}',
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def admin(make_user):
    return make_user(email='admin@example.com', first_name='Ada', surname='Admin')


@pytest.fixture()
def make_game(admin):
    def _make(status=GameStatus.IN_PROGRESS, name='Test game', whitelist=()):
        game = Game(name=name, status=status)
        game.admins = [admin.email]
        game.whitelisted_emails = list(whitelist)
        db.session.add(game)
        db.session.commit()
        return game

    return _make


@pytest.fixture()
def game(make_game):
    return make_game()


@pytest.fixture()
def make_player(make_user):
    def _make(game, partner=None, status=PlayerStatus.ALIVE, name=None):
        user = make_user(first_name=name)
        player = Player(game_id=game.id, user_id=user.id, status=status)
        db.session.add(player)
        db.session.flush()
        if partner is not None:
            player.team_partner_id = partner.id
            partner.team_partner_id = player.id
        db.session.commit()
        return player

    return _make


@pytest.fixture()
def make_pair(make_player):
    def _make(game, names=(None, None)):
        first = make_player(game, name=names[0])
        second = make_player(game, partner=first, name=names[1])
        return first, second

    return _make


def pending_edges(game_id):
    return TargetAssignment.query.filter_by(game_id=game_id, status=AssignmentStatus.PENDING).all()


def edge_between(game_id, hunter, hunted, status=AssignmentStatus.PENDING):
    return TargetAssignment.query.filter_by(
        game_id=game_id, player_id=hunter.id, target_id=hunted.id, status=status
    ).first()


def assert_graph_invariants(game_id):
    edges = TargetAssignment.query.filter_by(game_id=game_id).all()
    assert all(e.player_id != e.target_id for e in edges)

    pending = [e for e in edges if e.status == AssignmentStatus.PENDING]
    pairs = [(e.player_id, e.target_id) for e in pending]
    assert len(pairs) == len(set(pairs))

    players = {p.id: p for p in Player.query.filter_by(game_id=game_id).all()}
    for edge in pending:
        # Both ends of a pending edge are still in play
        assert players[edge.player_id].status in (PlayerStatus.ALIVE, PlayerStatus.SAFE)
        assert players[edge.target_id].status in (PlayerStatus.ALIVE, PlayerStatus.SAFE)

    # Every hunter's pending targets belong to one team, never their own
    by_hunter = {}
    for edge in pending:
        by_hunter.setdefault(edge.player_id, set()).add(edge.target_id)
    for hunter_id, target_ids in by_hunter.items():
        hunter = players[hunter_id]
        assert hunter.team_partner_id not in target_ids
        team_keys = {min(t, players[t].team_partner_id or t) for t in target_ids}
        assert len(team_keys) == 1
