from flask import Blueprint, jsonify

from gridiron.services import trivia as svc
from gridiron.services.football import get_game_by_code
from gridiron.services.questions import category_id, import_open_trivia_batch
from gridiron.services.errors import ActionError
from . import int_field, payload

trivia = Blueprint('trivia', __name__)


@trivia.route('/<string:game_code>/state', methods=['GET'])
def get_trivia_state(game_code):
    return jsonify(svc.trivia_state(game_code))


@trivia.route('/<string:game_code>/start', methods=['POST'])
def start_trivia(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    svc.start_trivia_game(game, int_field(data, 'requester_id'))
    return jsonify({'message': 'Trivia game started.', 'game': game.to_dict()})


@trivia.route('/<string:game_code>/pick', methods=['POST'])
def pick_category(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    round_ = svc.choose_category_difficulty(game, int_field(data, 'player_id'), data.get('category'), data.get('difficulty'))
    return jsonify({'message': 'Category/difficulty set. First question is live.', 'round': round_.to_dict()})


@trivia.route('/<string:game_code>/rounds', methods=['POST'])
def start_round(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    round_ = svc.start_trivia_round(game, int_field(data, 'requester_id'), int_field(data, 'question_id'), int_field(data, 'seq'))
    return jsonify(round_.to_dict()), 201


@trivia.route('/<string:game_code>/rounds/<int:round_id>/answer', methods=['POST'])
def submit_answer(game_code, round_id):
    data = payload()
    game = get_game_by_code(game_code)
    answer = svc.submit_trivia_answer(game, round_id, int_field(data, 'player_id'), data.get('choice_index'))
    return jsonify({'success': True, 'answer_id': answer.id})


@trivia.route('/<string:game_code>/rounds/<int:round_id>/lock', methods=['POST'])
def lock_round(game_code, round_id):
    data = payload()
    game = get_game_by_code(game_code)
    round_ = svc.lock_round(game, int_field(data, 'requester_id'), round_id)
    return jsonify(round_.to_dict())


@trivia.route('/<string:game_code>/rounds/<int:round_id>/ready', methods=['POST'])
def ready_next(game_code, round_id):
    data = payload()
    game = get_game_by_code(game_code)
    return jsonify(svc.confirm_ready_next(game, round_id, int_field(data, 'player_id')))


@trivia.route('/<string:game_code>/rounds/next', methods=['POST'])
def next_round(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    round_ = svc.start_next_pending_round(game, int_field(data, 'requester_id'))
    return jsonify(round_.to_dict())


@trivia.route('/<string:game_code>/rounds/ensure-live', methods=['POST'])
def ensure_live(game_code):
    game = get_game_by_code(game_code)
    return jsonify(svc.ensure_live_round(game).to_dict())


@trivia.route('/<string:game_code>/reset', methods=['POST'])
def reset_trivia(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    svc.reset_trivia_game(game, int_field(data, 'requester_id'))
    return jsonify({'message': 'Trivia game reset. Start again when ready.', 'game': game.to_dict()})


@trivia.route('/<string:game_code>/close', methods=['POST'])
def close_trivia(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    code = svc.close_trivia_game(game, int_field(data, 'requester_id', required=False))
    return jsonify({'message': f'Game {code} closed.'})


@trivia.route('/questions/import', methods=['POST'])
def import_questions():
    data = payload()
    category = None
    if data.get('category'):
        category = category_id(str(data['category']))
        if category is None:
            raise ActionError('Unknown category.')
    amount = int_field(data, 'amount', required=False) or 20
    if not 1 <= amount <= 50:
        raise ActionError('amount must be between 1 and 50.')
    count = import_open_trivia_batch(amount, data.get('difficulty'), category)
    return jsonify({'message': f'Imported {count} questions from OTDB.', 'imported': count}), 201
