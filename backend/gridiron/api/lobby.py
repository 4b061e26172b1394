from flask import Blueprint, jsonify

from gridiron.services import lobby as svc
from gridiron.services.football import get_game_by_code
from . import bool_field, int_field, payload

lobby = Blueprint('lobby', __name__)


@lobby.route('/create', methods=['POST'])
def create_lobby():
    data = payload()
    game, host = svc.create_lobby(data.get('display_name'), data.get('mode') or 'football')
    return jsonify({
        'message': 'Lobby created!',
        'game_code': game.code,
        'game': game.to_dict(),
        'player': host.to_dict(),
    }), 201


@lobby.route('/join', methods=['POST'])
def join_lobby():
    data = payload()
    game, player = svc.join_lobby(data.get('display_name'), data.get('game_code'))
    return jsonify({'game_code': game.code, 'game': game.to_dict(), 'player': player.to_dict()}), 201


@lobby.route('/<string:game_code>', methods=['GET'])
def get_lobby(game_code):
    game = get_game_by_code(game_code)
    return jsonify(game.to_dict())


@lobby.route('/<string:game_code>/side', methods=['POST'])
def set_side(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    player = svc.update_player_side(game, int_field(data, 'requester_id'), int_field(data, 'player_id'), data.get('side'))
    return jsonify(player.to_dict())


@lobby.route('/<string:game_code>/team-names', methods=['POST'])
def set_team_names(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    svc.update_team_names(game, int_field(data, 'requester_id'), data.get('home_team_name'), data.get('away_team_name'))
    return jsonify(game.to_dict())


@lobby.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    svc.start_game(game, int_field(data, 'requester_id'))
    return jsonify(game.to_dict())


@lobby.route('/<string:game_code>/leave', methods=['POST'])
def leave_lobby(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    new_host = svc.leave_lobby(game, int_field(data, 'player_id'))
    return jsonify({'success': True, 'new_host': new_host.to_dict() if new_host else None})


@lobby.route('/<string:game_code>/ready', methods=['POST'])
def set_ready(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    player = svc.set_ready(game, int_field(data, 'player_id'), bool_field(data, 'ready', default=True))
    return jsonify(player.to_dict())


@lobby.route('/<string:game_code>/kick', methods=['POST'])
def kick_player(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    svc.kick_player(game, int_field(data, 'requester_id'), int_field(data, 'player_id'))
    return jsonify({'success': True})


@lobby.route('/<string:game_code>/lock', methods=['POST'])
def lock_lobby(game_code):
    data = payload()
    game = get_game_by_code(game_code)
    svc.set_lobby_locked(game, int_field(data, 'requester_id'), bool_field(data, 'locked', default=True))
    return jsonify(game.to_dict())
