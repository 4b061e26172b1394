def test_create_lobby(client):
    res = client.post('/api/lobby/create', json={'display_name': 'Coach', 'mode': 'football'})
    assert res.status_code == 201
    data = res.get_json()
    assert len(data['game_code']) == 6
    assert data['player']['role'] == 'ref'
    assert data['player']['ready'] is True
    assert data['game']['host_player_id'] == data['player']['id']
    assert data['game']['status'] == 'lobby_open'


def test_create_lobby_requires_name_and_valid_mode(client):
    res = client.post('/api/lobby/create', json={'display_name': '   '})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Display name is required.'
    res = client.post('/api/lobby/create', json={'display_name': 'Coach', 'mode': 'chess'})
    assert res.status_code == 400


def test_join_and_state(api, client):
    code, ref = api.create_lobby('Coach')
    player = api.join(code.lower(), 'Alice')
    assert player['role'] == 'player'
    assert player['ready'] is False
    game = api.get(f'/api/lobby/{code}')
    assert game['code'] == code
    assert [p['display_name'] for p in game['players']] == ['Coach', 'Alice']


def test_join_rejects_duplicate_name(api, client):
    code, _ = api.create_lobby('Coach')
    api.join(code, 'Alice')
    res = client.post('/api/lobby/join', json={'display_name': 'Alice', 'game_code': code})
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Name already taken in this lobby.'


def test_join_unknown_code(client):
    res = client.post('/api/lobby/join', json={'display_name': 'Alice', 'game_code': 'NOPE00'})
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Lobby not found.'


def test_locked_lobby_rejects_joins(api, client):
    code, ref = api.create_lobby('Coach')
    api.ok(f'/api/lobby/{code}/lock', requester_id=ref['id'], locked=True)
    res = client.post('/api/lobby/join', json={'display_name': 'Late', 'game_code': code})
    assert res.status_code == 403
    assert res.get_json()['error'] == 'Lobby is locked.'
    api.ok(f'/api/lobby/{code}/lock', requester_id=ref['id'], locked=False)
    assert api.join(code, 'Late')['display_name'] == 'Late'


def test_flags_must_be_json_booleans(api):
    code, ref = api.create_lobby('Coach')
    alice = api.join(code, 'Alice')
    res = api.post(f'/api/lobby/{code}/ready', player_id=alice['id'], ready='false')
    assert res.status_code == 400
    assert res.get_json()['error'] == 'ready must be true or false.'
    res = api.post(f'/api/lobby/{code}/lock', requester_id=ref['id'], locked='no')
    assert res.status_code == 400
    game = api.get(f'/api/lobby/{code}')
    assert game['lobby_locked'] is False
    assert not any(p['ready'] for p in game['players'] if p['id'] == alice['id'])


def test_only_host_assigns_sides(api):
    code, ref = api.create_lobby('Coach')
    alice = api.join(code, 'Alice')
    res = api.post(f'/api/lobby/{code}/side', requester_id=alice['id'], player_id=alice['id'], side='home')
    assert res.status_code == 403
    res = api.post(f'/api/lobby/{code}/side', requester_id=ref['id'], player_id=alice['id'], side='left')
    assert res.status_code == 400
    player = api.ok(f'/api/lobby/{code}/side', requester_id=ref['id'], player_id=alice['id'], side='home')
    assert player['side'] == 'home'


def test_team_names(api):
    code, ref = api.create_lobby('Coach')
    game = api.ok(f'/api/lobby/{code}/team-names', requester_id=ref['id'], home_team_name='Bears', away_team_name='  ')
    assert game['home_team_name'] == 'Bears'
    assert game['away_team_name'] == 'Away'


def test_start_requires_both_sides_ready(api):
    code, ref = api.create_lobby('Coach')
    alice = api.join(code, 'Alice')
    bob = api.join(code, 'Bob')
    api.ok(f'/api/lobby/{code}/side', requester_id=ref['id'], player_id=alice['id'], side='home')
    res = api.post(f'/api/lobby/{code}/start', requester_id=ref['id'])
    assert res.status_code == 400
    assert 'Both teams' in res.get_json()['error']

    api.ok(f'/api/lobby/{code}/side', requester_id=ref['id'], player_id=bob['id'], side='away')
    api.ok(f'/api/lobby/{code}/ready', player_id=alice['id'], ready=True)
    res = api.post(f'/api/lobby/{code}/start', requester_id=ref['id'])
    assert res.status_code == 400
    assert res.get_json()['error'] == 'All players must be ready to start.'

    api.ok(f'/api/lobby/{code}/ready', player_id=bob['id'], ready=True)
    res = api.post(f'/api/lobby/{code}/start', requester_id=alice['id'])
    assert res.status_code == 403
    game = api.ok(f'/api/lobby/{code}/start', requester_id=ref['id'])
    assert game['status'] == 'in_progress'
    assert not any(p['ready'] for p in game['players'])

    res = api.post(f'/api/lobby/{code}/start', requester_id=ref['id'])
    assert res.status_code == 409


def test_host_leaving_hands_over(api):
    code, ref = api.create_lobby('Coach')
    alice = api.join(code, 'Alice')
    api.join(code, 'Bob')
    data = api.ok(f'/api/lobby/{code}/leave', player_id=ref['id'])
    assert data['new_host']['id'] == alice['id']
    assert data['new_host']['role'] == 'ref'
    game = api.get(f'/api/lobby/{code}')
    assert game['host_player_id'] == alice['id']
    assert len(game['players']) == 2


def test_kick_player(api):
    code, ref = api.create_lobby('Coach')
    alice = api.join(code, 'Alice')
    res = api.post(f'/api/lobby/{code}/kick', requester_id=ref['id'], player_id=ref['id'])
    assert res.status_code == 400
    res = api.post(f'/api/lobby/{code}/kick', requester_id=alice['id'], player_id=ref['id'])
    assert res.status_code == 403
    api.ok(f'/api/lobby/{code}/kick', requester_id=ref['id'], player_id=alice['id'])
    game = api.get(f'/api/lobby/{code}')
    assert [p['id'] for p in game['players']] == [ref['id']]


def test_lobby_events_are_logged(api):
    code, _ = api.create_lobby('Coach')
    api.join(code, 'Alice')
    events = api.get(f'/api/games/{code}/events')
    assert [e['type'] for e in events] == ['lobby_created', 'player_joined']
    assert events[1]['payload']['display_name'] == 'Alice'


def test_missing_game_is_404(client):
    assert client.get('/api/lobby/ZZZZZZ').status_code == 404
    assert client.get('/api/games/ZZZZZZ/state').status_code == 404
