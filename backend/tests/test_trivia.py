import logging

import pytest

from gridiron import db
from gridiron.models import Game, Player, Round
from gridiron.services import trivia


@pytest.fixture()
def trivia_game(api, fixed_rng, add_questions):
    add_questions(3, difficulty='easy', category='Sports')
    code, host = api.create_lobby('Quizmaster', 'trivia')
    ann = api.join(code, 'Ann')
    ben = api.join(code, 'Ben')
    data = api.ok(f'/api/trivia/{code}/start', requester_id=host['id'])
    assert data['game']['picker_player_id'] == ann['id']
    return {'code': code, 'host': host, 'ann': ann, 'ben': ben}


def _state(api, code):
    return api.get(f'/api/trivia/{code}/state')


def test_start_requires_host_and_players(api):
    code, host = api.create_lobby('Quizmaster', 'trivia')
    res = api.post(f'/api/trivia/{code}/start', requester_id=host['id'])
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Need at least one player.'
    ann = api.join(code, 'Ann')
    res = api.post(f'/api/trivia/{code}/start', requester_id=ann['id'])
    assert res.status_code == 403


def test_trivia_routes_reject_football_games(api):
    code, host = api.create_lobby('Coach', 'football')
    api.join(code, 'Ann')
    res = api.post(f'/api/trivia/{code}/start', requester_id=host['id'])
    assert res.status_code == 409


def test_only_picker_or_host_chooses(api, trivia_game):
    code, ben = trivia_game['code'], trivia_game['ben']
    res = api.post(f'/api/trivia/{code}/pick', player_id=ben['id'], category='Sports', difficulty='easy')
    assert res.status_code == 403
    res = api.post(f'/api/trivia/{code}/pick', player_id=trivia_game['ann']['id'], category='Sports', difficulty='extreme')
    assert res.status_code == 400


def test_pick_seeds_block_with_first_round_live(api, trivia_game):
    code, ann = trivia_game['code'], trivia_game['ann']
    data = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='sports', difficulty='easy')
    assert data['round']['seq'] == 1
    assert data['round']['status'] == 'live'

    state = _state(api, code)
    assert state['round']['id'] == data['round']['id']
    assert 'correct_index' not in state['question']
    assert state['counts']['totalPlayers'] == 2
    assert state['counts']['pendingCount'] == 2
    assert state['counts']['answersCount'] == 0


def test_answers_lock_and_score_round(api, trivia_game):
    code, ann, ben = trivia_game['code'], trivia_game['ann'], trivia_game['ben']
    round_id = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')['round']['id']

    res = api.post(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=trivia_game['host']['id'], choice_index=0)
    assert res.status_code == 403
    res = api.post(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=9)
    assert res.status_code == 400

    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=1)
    # Changing an answer before the lock overwrites it
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=0)
    state = _state(api, code)
    assert state['round']['status'] == 'live'
    assert state['counts']['answersCount'] == 1
    # Picks stay hidden until the round is revealed
    assert [a['display_name'] for a in state['answersSummary']] == ['Ann']
    assert 'choice_index' not in state['answersSummary'][0]

    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ben['id'], choice_index=2)
    state = _state(api, code)
    assert state['round']['status'] == 'revealed'
    assert state['question']['correct_index'] == 0
    summary = {a['display_name']: a for a in state['answersSummary']}
    assert summary['Ann']['correct'] is True
    assert summary['Ann']['points'] == 1
    assert summary['Ben']['correct'] is False
    assert summary['Ann']['choice_index'] == 0
    assert summary['Ben']['choice_index'] == 2
    players = {p['display_name']: p for p in state['game']['players']}
    assert players['Ann']['score'] == 1
    assert players['Ann']['correct_count'] == 1
    assert players['Ben']['incorrect_count'] == 1

    res = api.post(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ben['id'], choice_index=0)
    assert res.status_code == 409


def test_rescoring_a_revealed_round_is_a_noop(flask_app, api, trivia_game):
    code, ann, ben = trivia_game['code'], trivia_game['ann'], trivia_game['ben']
    round_id = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')['round']['id']
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=0)
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/lock', requester_id=trivia_game['host']['id'])

    game = Game.query.filter_by(code=code).one()
    trivia.lock_and_score_round(game, db.session.get(Round, round_id))
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/lock', requester_id=trivia_game['host']['id'])
    assert db.session.get(Player, ann['id']).score == 1


def test_answer_timer_gives_way_to_a_manual_lock(flask_app, api, trivia_game, monkeypatch, caplog):
    from gridiron.services.errors import WrongPhase
    from gridiron.services.scheduler import schedule_round_timer

    code, ann, ben = trivia_game['code'], trivia_game['ann'], trivia_game['ben']
    round_id = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')['round']['id']

    def already_locked(game, round_, rng=None):
        raise WrongPhase('Round cannot go from locked to locked.')

    monkeypatch.setattr(trivia, 'lock_and_score_round', already_locked)
    flask_app.config['ENABLE_SCHEDULER_IN_TESTS'] = True
    with caplog.at_level(logging.INFO):
        schedule_round_timer(flask_app, round_id)
    assert f'[timer-abort] round={round_id} Round cannot go from locked to locked.' in caplog.text
    db.session.expire_all()
    assert db.session.get(Round, round_id).status == 'live'
    assert db.session.get(Player, ben['id']).score == 0


def test_ready_next_starts_following_round(api, trivia_game):
    code, ann, ben = trivia_game['code'], trivia_game['ann'], trivia_game['ben']
    first = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')['round']
    res = api.post(f'/api/trivia/{code}/rounds/{first["id"]}/ready', player_id=ann['id'])
    assert res.status_code == 409

    api.ok(f'/api/trivia/{code}/rounds/{first["id"]}/lock', requester_id=trivia_game['host']['id'])
    res = api.post(f'/api/trivia/{code}/rounds/{first["id"]}/ready', player_id=trivia_game['host']['id'])
    assert res.status_code == 403
    data = api.ok(f'/api/trivia/{code}/rounds/{first["id"]}/ready', player_id=ann['id'])
    assert data == {'ready': 1, 'total': 2, 'next_round_id': None}
    data = api.ok(f'/api/trivia/{code}/rounds/{first["id"]}/ready', player_id=ben['id'])
    assert data['next_round_id'] is not None

    state = _state(api, code)
    assert state['round']['seq'] == 2
    assert state['round']['status'] == 'live'


def test_block_completion_picks_top_scorer(api, trivia_game):
    code, ann, ben = trivia_game['code'], trivia_game['ann'], trivia_game['ben']
    api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')
    for _ in range(3):
        round_id = _state(api, code)['round']['id']
        api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=0)
        api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ben['id'], choice_index=3)
        api.ok(f'/api/trivia/{code}/rounds/{round_id}/ready', player_id=ann['id'])
        api.ok(f'/api/trivia/{code}/rounds/{round_id}/ready', player_id=ben['id'])

    game = _state(api, code)['game']
    assert game['status'] == 'completed'
    assert game['winner_player_id'] == ann['id']
    types = [e['type'] for e in api.get(f'/api/games/{code}/events?limit=200')]
    assert 'trivia_block_completed' in types
    assert types[-1] == 'trivia_completed'


def test_reaching_target_score_wins(api, trivia_game):
    code, ann, ben = trivia_game['code'], trivia_game['ann'], trivia_game['ben']
    game = Game.query.filter_by(code=code).one()
    game.target_score = 1
    db.session.commit()
    round_id = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')['round']['id']
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ben['id'], choice_index=0)
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=1)
    state = _state(api, code)
    assert state['game']['status'] == 'completed'
    assert state['game']['winner_player_id'] == ben['id']


def test_manual_round_and_next_pending(api, trivia_game, add_questions):
    code, host, ann = trivia_game['code'], trivia_game['host'], trivia_game['ann']
    extra = add_questions(1, difficulty='hard', category='History')[0]
    res = api.post(f'/api/trivia/{code}/rounds', requester_id=ann['id'], question_id=extra.id, seq=1)
    assert res.status_code == 403
    round_ = api.ok(f'/api/trivia/{code}/rounds', requester_id=host['id'], question_id=extra.id, seq=1)
    assert round_['status'] == 'live'
    assert round_['difficulty'] == 'hard'

    res = api.post(f'/api/trivia/{code}/rounds/next', requester_id=host['id'])
    assert res.status_code == 409
    assert api.ok(f'/api/trivia/{code}/rounds/ensure-live')['id'] == round_['id']

    api.ok(f'/api/trivia/{code}/rounds/{round_["id"]}/answer', player_id=ann['id'], choice_index=0)
    api.ok(f'/api/trivia/{code}/rounds/{round_["id"]}/lock', requester_id=host['id'])
    players = {p['display_name']: p for p in _state(api, code)['game']['players']}
    assert players['Ann']['score'] == 3

    # The only round of the block has been played, so the game is over
    assert _state(api, code)['game']['status'] == 'completed'
    res = api.post(f'/api/trivia/{code}/rounds/ensure-live')
    assert res.status_code == 409


def test_reset_returns_to_lobby(api, trivia_game):
    code, host, ann = trivia_game['code'], trivia_game['host'], trivia_game['ann']
    round_id = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')['round']['id']
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=0)
    res = api.post(f'/api/trivia/{code}/reset', requester_id=ann['id'])
    assert res.status_code == 403
    data = api.ok(f'/api/trivia/{code}/reset', requester_id=host['id'])
    assert data['game']['status'] == 'lobby_open'
    assert data['game']['picker_player_id'] is None
    assert all(p['score'] == 0 for p in data['game']['players'])
    assert Round.query.count() == 0


def test_close_deletes_game(api, client, trivia_game):
    code, host, ann = trivia_game['code'], trivia_game['host'], trivia_game['ann']
    api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')
    res = api.post(f'/api/trivia/{code}/close', requester_id=ann['id'])
    assert res.status_code == 403
    data = api.ok(f'/api/trivia/{code}/close', requester_id=host['id'])
    assert data['message'] == f'Game {code} closed.'
    assert client.get(f'/api/trivia/{code}/state').status_code == 404
    assert Player.query.count() == 0


def test_no_questions_blocks_seeding(api, fixed_rng):
    code, host = api.create_lobby('Quizmaster', 'trivia')
    ann = api.join(code, 'Ann')
    api.ok(f'/api/trivia/{code}/start', requester_id=host['id'])
    res = api.post(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Not enough questions for that category/difficulty.'


def test_answer_timer_locks_live_round(flask_app, api, trivia_game):
    from gridiron.services.scheduler import schedule_round_timer

    code, ann = trivia_game['code'], trivia_game['ann']
    round_id = api.ok(f'/api/trivia/{code}/pick', player_id=ann['id'], category='Sports', difficulty='easy')['round']['id']
    api.ok(f'/api/trivia/{code}/rounds/{round_id}/answer', player_id=ann['id'], choice_index=0)

    flask_app.config['ENABLE_SCHEDULER_IN_TESTS'] = True
    schedule_round_timer(flask_app, round_id)
    db.session.expire_all()
    assert db.session.get(Round, round_id).status == 'revealed'
    assert db.session.get(Player, ann['id']).score == 1


def test_points_by_difficulty():
    assert trivia.points_for('easy') == 1
    assert trivia.points_for('medium') == 2
    assert trivia.points_for('hard') == 3
    assert trivia.points_for(None) == 2
