import pytest


def _signup(http_app, email, first_name):
    client = http_app.test_client()
    res = client.post('/register', json={
        'email': email, 'password': 'secret', 'first_name': first_name, 'surname': 'Test',
    })
    assert res.status_code == 201
    return client, res.get_json()['user']


@pytest.fixture()
def lobby(http_app):
    admin_client, _ = _signup(http_app, 'boss@example.com', 'Boss')
    res = admin_client.post('/api/games/create', json={'name': 'Spring game'})
    assert res.status_code == 201
    game = res.get_json()['game']

    players = {}
    for name in ('Alice', 'Bob', 'Cara', 'Dan'):
        client, user = _signup(http_app, f'{name.lower()}@example.com', name)
        res = client.post(f"/api/games/{game['id']}/register")
        assert res.status_code == 201
        players[name] = {'client': client, 'user': user, 'player': res.get_json()['player']}
    return admin_client, game, players


def _pair(game, players, inviter, invitee):
    res = players[inviter]['client'].post(
        f"/api/games/{game['id']}/invites",
        json={'team_partner_id': players[invitee]['player']['id']},
    )
    assert res.status_code == 201
    res = players[invitee]['client'].post(
        f"/api/games/{game['id']}/invites/{players[inviter]['user']['id']}/accept"
    )
    assert res.status_code == 200


def test_login_logout(http_client, http_app):
    _signup(http_app, 'eve@example.com', 'Eve')
    res = http_client.post('/login', json={'email': 'eve@example.com', 'password': 'wrong'})
    assert res.status_code == 401
    res = http_client.post('/login', json={'email': 'eve@example.com', 'password': 'secret'})
    assert res.get_json()['success']
    assert http_client.get('/check_login').get_json()['user']['email'] == 'eve@example.com'
    assert http_client.post('/logout').get_json()['success']


def test_game_routes_require_login(http_client):
    assert http_client.post('/api/games/create', json={'name': 'x'}).status_code == 401
    assert http_client.get('/api/games/1/leaderboard').status_code == 401


def test_full_game_over_http(lobby):
    admin_client, game, players = lobby
    gid = game['id']
    _pair(game, players, 'Alice', 'Bob')
    _pair(game, players, 'Cara', 'Dan')

    me = players['Alice']['client'].get(f'/api/games/{gid}/me').get_json()
    assert me['has_partner']

    teams = admin_client.get(f'/api/games/{gid}/teams').get_json()['teams']
    assert len(teams) == 2

    res = admin_client.post(f'/api/games/{gid}/match', json={'pairing_policy': 'strict_pairs'})
    assert res.status_code == 200
    match = res.get_json()
    assert match['outcome'] == 'matched'
    assert match['assignment_count'] == 8

    target = players['Alice']['client'].get(f'/api/games/{gid}/target').get_json()
    assert sorted(m['name'] for m in target['members']) == ['Cara Test', 'Dan Test']

    audit = admin_client.get(f'/api/games/{gid}/assignments').get_json()
    alice_id = players['Alice']['player']['id']
    cara_id = players['Cara']['player']['id']
    dan_id = players['Dan']['player']['id']
    first = next(r for r in audit if r['fromPlayerId'] == alice_id and r['toPlayerId'] == cara_id)

    res = admin_client.post(f'/api/games/{gid}/kill', json={'assignment_id': first['targetId']})
    assert res.status_code == 200
    assert res.get_json() == {
        'victim_id': cara_id, 'team_eliminated': False, 'game_complete': False, 'new_assignment_ids': [],
    }

    res = admin_client.post(f'/api/games/{gid}/kill', json={'assignment_id': first['targetId']})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'invalid_state'

    audit = admin_client.get(f'/api/games/{gid}/assignments').get_json()
    second = next(r for r in audit if r['fromPlayerId'] == alice_id and r['toPlayerId'] == dan_id)
    report = admin_client.post(f'/api/games/{gid}/kill', json={'assignment_id': second['targetId']}).get_json()
    assert report['team_eliminated'] and report['game_complete']

    board = players['Bob']['client'].get(f'/api/games/{gid}/leaderboard').get_json()
    assert board[0]['playerId'] == alice_id
    assert board[0]['kills'] == 2
    assert admin_client.get(f'/api/games/{gid}').get_json()['status'] == 'FINISHED'


def test_safe_toggle_over_http(lobby):
    admin_client, game, players = lobby
    gid = game['id']
    admin_client.post(f'/api/games/{gid}/match', json={})
    bob_id = players['Bob']['player']['id']

    res = admin_client.post(f'/api/games/{gid}/players/{bob_id}/safe')
    assert res.get_json() == {'player_id': bob_id, 'status': 'SAFE'}
    res = players['Alice']['client'].post(f'/api/games/{gid}/players/{bob_id}/safe')
    assert res.status_code == 403


def test_error_responses(lobby):
    admin_client, game, players = lobby
    gid = game['id']
    assert admin_client.post(f'/api/games/{gid}/match', json={}).status_code == 200
    assert admin_client.get('/api/games/999').status_code == 404
    res = admin_client.post(f'/api/games/{gid}/kill', json={'assignment_id': 'abc'})
    assert res.status_code == 422
    assert res.get_json()['code'] == 'unprocessable'
    assert admin_client.post(f'/api/games/{gid}/match', json={'pairing_policy': 'trios'}).status_code == 422
    assert admin_client.post(f'/api/games/{gid}/kill', json={'assignment_id': 12345}).status_code == 404
    assert players['Alice']['client'].post(f'/api/games/{gid}/match', json={}).status_code == 403

    others = players['Alice']['client'].get(f'/api/games/{gid}/players').get_json()
    assert players['Alice']['player']['id'] not in [p['playerId'] for p in others]


def test_malformed_input_is_unprocessable(lobby):
    admin_client, game, _ = lobby
    gid = game['id']

    res = admin_client.post(f'/api/games/{gid}/match', json={'pairing_policy': 5})
    assert res.status_code == 422
    assert res.get_json()['code'] == 'unprocessable'

    res = admin_client.get('/api/games/²')
    assert res.status_code == 422
    assert res.get_json()['code'] == 'unprocessable'
