import pytest

from app import db
from app.models import GameStatus, Player, PlayerRole
from app.services.games import directory, ids
from app.services.games.errors import (
    EmailNotWhitelisted,
    InvalidGameState,
    InvalidIdentifier,
    InvalidInvite,
    PlayerNotFound,
)


@pytest.fixture()
def setup_game(make_game):
    return make_game(status=GameStatus.SETUP)


def test_register_is_idempotent(setup_game, make_user):
    user = make_user()
    first = directory.register(setup_game.id, user.id)
    second = directory.register(setup_game.id, user.id)
    assert first.id == second.id
    assert Player.query.filter_by(game_id=setup_game.id, user_id=user.id).count() == 1


def test_register_only_during_setup(game, make_user):
    with pytest.raises(InvalidGameState):
        directory.register(game.id, make_user().id)


def test_register_honours_whitelist(make_game, make_user):
    game = make_game(status=GameStatus.SETUP, whitelist=['invited@example.com'])
    with pytest.raises(EmailNotWhitelisted):
        directory.register(game.id, make_user().id)
    player = directory.register(game.id, make_user(email='Invited@example.com').id)
    assert player.id is not None


def test_roles(setup_game, admin, make_user):
    player_user = make_user()
    directory.register(setup_game.id, player_user.id)
    assert directory.get_role(setup_game.id, admin.id) == PlayerRole.ADMIN
    assert directory.get_role(setup_game.id, player_user.id) == PlayerRole.PLAYER
    assert directory.get_role(setup_game.id, make_user().id) == PlayerRole.NONE
    assert directory.is_admin(setup_game.id, admin.id)


def test_find_by_id_checks_game(setup_game, make_game, make_user):
    player = directory.register(setup_game.id, make_user().id)
    other = make_game(name='Other')
    assert directory.find_by_id(player.id, setup_game.id).id == player.id
    with pytest.raises(PlayerNotFound):
        directory.find_by_id(player.id, other.id)


def test_invite_and_accept_links_partners(setup_game, make_user):
    alice, bob = make_user(first_name='Alice'), make_user(first_name='Bob')
    alice_player = directory.register(setup_game.id, alice.id)
    bob_player = directory.register(setup_game.id, bob.id)

    directory.invite_partner(setup_game.id, alice.id, bob_player.id)
    assert directory.get_invites(setup_game.id, alice.id) == [bob.id]
    assert directory.get_invited_by(setup_game.id, bob.id) == [alice.id]

    directory.accept_invite(setup_game.id, bob.id, alice.id)

    a = db.session.get(Player, alice_player.id)
    b = db.session.get(Player, bob_player.id)
    assert a.team_partner_id == b.id
    assert b.team_partner_id == a.id
    assert a.invited == [] and b.invited_by == []
    info = directory.current_player_info(setup_game.id, alice.id)
    assert info['has_partner']
    assert info['partner_name'].startswith('Bob')


def test_reject_invite_clears_both_sides(setup_game, make_user):
    alice, bob = make_user(), make_user()
    directory.register(setup_game.id, alice.id)
    bob_player = directory.register(setup_game.id, bob.id)
    directory.invite_partner(setup_game.id, alice.id, bob_player.id)

    directory.reject_invite(setup_game.id, bob.id, alice.id)

    assert directory.get_invites(setup_game.id, alice.id) == []
    assert directory.get_invited_by(setup_game.id, bob.id) == []
    assert db.session.get(Player, bob_player.id).team_partner_id is None


def test_invalid_invites(setup_game, make_user):
    alice, bob, cara = make_user(), make_user(), make_user()
    alice_player = directory.register(setup_game.id, alice.id)
    bob_player = directory.register(setup_game.id, bob.id)
    cara_player = directory.register(setup_game.id, cara.id)

    with pytest.raises(InvalidInvite):
        directory.invite_partner(setup_game.id, alice.id, alice_player.id)

    directory.invite_partner(setup_game.id, alice.id, bob_player.id)
    with pytest.raises(InvalidInvite):
        directory.invite_partner(setup_game.id, alice.id, bob_player.id)

    with pytest.raises(InvalidInvite):
        directory.accept_invite(setup_game.id, cara.id, alice.id)

    directory.accept_invite(setup_game.id, bob.id, alice.id)
    with pytest.raises(InvalidInvite):
        directory.invite_partner(setup_game.id, cara.id, bob_player.id)
    assert db.session.get(Player, cara_player.id).invited == []


def test_ids_are_validated_at_the_boundary():
    assert ids.game_id('12') == 12
    assert ids.player_id(5) == 5
    for bad in ('abc', '', None, 0, -3, True, '1.5', '\u00b2', '\u0663'):
        with pytest.raises(InvalidIdentifier):
            ids.assignment_id(bad)
