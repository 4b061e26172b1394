from flask import Blueprint, jsonify, request

from gridiron.models import Play
from gridiron.services import football, plays
from gridiron.services.events import recent_events
from . import bool_field, int_field, payload

games = Blueprint('games', __name__)


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    game = football.get_game_by_code(game_code)
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/events', methods=['GET'])
def get_events(game_code):
    game = football.get_game_by_code(game_code)
    limit = request.args.get('limit', default=50, type=int)
    return jsonify([e.to_dict() for e in recent_events(game, max(1, min(limit, 200)))])


@games.route('/<string:game_code>/plays', methods=['GET'])
def get_plays(game_code):
    game = football.get_game_by_code(game_code)
    rows = Play.query.filter_by(game_id=game.id).order_by(Play.seq.asc(), Play.id.asc()).all()
    return jsonify([p.to_dict() for p in rows])


@games.route('/<string:game_code>/coin-toss/start', methods=['POST'])
def start_coin_toss(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    football.start_coin_toss(game, int_field(data, 'requester_id'))
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/coin-toss/resolve', methods=['POST'])
def resolve_coin_toss(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    result = football.resolve_coin_toss(game, data.get('away_call'), data.get('choice'))
    return jsonify({**result, 'game': game.to_dict()})


@games.route('/<string:game_code>/coin-toss/flip', methods=['POST'])
def flip_coin(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    result = football.flip_coin(game, int_field(data, 'player_id'), data.get('away_call'))
    return jsonify({**result, 'game': game.to_dict()})


@games.route('/<string:game_code>/coin-toss/choose', methods=['POST'])
def choose_toss_option(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    football.choose_toss_option(game, int_field(data, 'player_id'), data.get('choice'))
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/kickoff', methods=['POST'])
def kickoff(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    football.resolve_kickoff_touchback(game, int_field(data, 'player_id', required=False))
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/drive/reset', methods=['POST'])
def reset_drive(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    football.reset_drive(
        game,
        int_field(data, 'requester_id'),
        possession=data.get('possession_side'),
        yard_line=int_field(data, 'yard_line', required=False),
    )
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/play-call', methods=['POST'])
def submit_play_call(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    plays.submit_play_call(game, int_field(data, 'player_id'), data.get('role'), data.get('play_call'), data.get('difficulty'))
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/answer', methods=['POST'])
def submit_answer(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    result = plays.submit_question_answer(
        game,
        int_field(data, 'player_id'),
        correct=bool_field(data, 'correct'),
        choice_index=int_field(data, 'choice_index', required=False),
        for_side=data.get('for_side'),
    )
    return jsonify({**result, 'game': game.to_dict()})


@games.route('/<string:game_code>/roll', methods=['POST'])
def submit_roll(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    result = plays.submit_roll(
        game,
        int_field(data, 'player_id'),
        manual_roll=int_field(data, 'manual_roll', required=False),
        for_side=data.get('for_side'),
    )
    return jsonify({**result, 'game': game.to_dict()})


@games.route('/<string:game_code>/continue', methods=['POST'])
def continue_after_roll(game_code):
    data = payload()
    game = football.get_game_by_code(game_code)
    result = plays.continue_after_roll(game, int_field(data, 'player_id'), for_side=data.get('for_side'))
    return jsonify({**result, 'game': game.to_dict()})
