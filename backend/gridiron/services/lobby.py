from flask import current_app
from sqlalchemy.exc import IntegrityError

from gridiron import db
from gridiron.models import Answer, Game, Player, PlayCall, SIDES, ROLE_REF, ROLE_PLAYER
from .errors import ActionError, NotAllowed, WrongPhase
from .events import broadcast_state, log_game_event

MODES = ('football', 'trivia')
CODE_ATTEMPTS = 3


def _clean_name(display_name):
    name = (display_name or '').strip()
    if not name:
        raise ActionError('Display name is required.')
    if len(name) > 64:
        raise ActionError('Display name is too long.')
    return name


def _add_player(game, **fields):
    player = Player(game_id=game.id, **fields)
    db.session.add(player)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        message = str(exc.orig)
        if 'unique_game_display_name' in message or 'player.display_name' in message:
            raise ActionError('Name already taken in this lobby.', 409)
        raise
    return player


def host_of(game):
    """The lobby host: the game's recorded host, else its earliest ref."""
    if game.host_player_id:
        host = game.find_player(game.host_player_id)
        if host is not None:
            return host
    refs = [p for p in game.players if p.role == ROLE_REF]
    return refs[0] if refs else None


def require_host(game, requester_id, message='Only the host can do that.'):
    host = host_of(game)
    if host is None or host.id != requester_id:
        raise NotAllowed(message)
    return host


def require_player(game, player_id):
    player = game.find_player(player_id) if player_id is not None else None
    if player is None:
        raise ActionError('Player not found.', 404)
    return player


def create_lobby(display_name, mode='football'):
    name = _clean_name(display_name)
    mode = mode or 'football'
    if mode not in MODES:
        raise ActionError('Mode must be football or trivia.')

    length = int(current_app.config.get('GAME_CODE_LENGTH', 6))
    game = None
    for attempt in range(CODE_ATTEMPTS):
        game = Game(mode=mode, code_length=length, target_score=int(current_app.config.get('TRIVIA_TARGET_SCORE', 25)))
        db.session.add(game)
        try:
            db.session.commit()
            break
        except IntegrityError:
            # Lost a race on the code; try a fresh one
            db.session.rollback()
            game = None
            current_app.logger.warning(f"[lobby-create] code collision attempt={attempt + 1}")
    if game is None:
        raise ActionError('Could not create lobby.', 503)

    host = _add_player(game, display_name=name, role=ROLE_REF, side=None, ready=True)
    game.host_player_id = host.id
    db.session.commit()
    current_app.logger.info(f"[lobby-create] game={game.id} code={game.code} mode={mode} host={host.id}")
    log_game_event(game, 'lobby_created', {'host_player_id': host.id, 'mode': mode})
    return game, host


def join_lobby(display_name, code):
    name = _clean_name(display_name)
    code = (code or '').strip().upper()
    if not code:
        raise ActionError('Game code is required.')

    game = Game.query.filter_by(code=code, status='lobby_open').first()
    if game is None:
        raise ActionError('Lobby not found.', 404)
    if game.lobby_locked:
        raise NotAllowed('Lobby is locked.')

    player = _add_player(game, display_name=name, role=ROLE_PLAYER, ready=False)
    current_app.logger.info(f"[lobby-join] game={game.id} player={player.id} name={name!r}")
    log_game_event(game, 'player_joined', {'player_id': player.id, 'display_name': name})
    broadcast_state(game)
    return game, player


def update_player_side(game, requester_id, player_id, side):
    require_host(game, requester_id, 'Only the host can assign sides.')
    if side is not None and side not in SIDES:
        raise ActionError('Side must be home, away or empty.')
    player = require_player(game, player_id)
    player.side = side
    db.session.commit()
    broadcast_state(game)
    return player


def update_team_names(game, requester_id, home_name, away_name):
    require_host(game, requester_id, 'Only the host can rename teams.')
    game.home_team_name = (home_name or '').strip()[:64] or 'Home'
    game.away_team_name = (away_name or '').strip()[:64] or 'Away'
    db.session.commit()
    broadcast_state(game)
    return game


def check_start_ready(game):
    """Raise unless the lobby has enough ready players for the game's mode."""
    if game.mode == 'trivia':
        participants = game.participants
        if not participants:
            raise ActionError('Need at least one player to start.')
        if not all(p.ready for p in participants):
            raise ActionError('All players must be ready to start.')
        return
    sided = [p for p in game.players if p.side in SIDES]
    if not any(p.side == 'home' for p in sided) or not any(p.side == 'away' for p in sided):
        raise ActionError('Both teams need at least one player before starting.')
    if not all(p.ready for p in sided):
        raise ActionError('All players must be ready to start.')


def start_game(game, requester_id):
    require_host(game, requester_id, 'Only the ref can start the game.')
    if game.status != 'lobby_open':
        raise WrongPhase('Game has already started or is finished.')
    check_start_ready(game)
    game.status = 'in_progress'
    # Clear ready flags for next phase
    for p in game.players:
        p.ready = False
    db.session.commit()
    current_app.logger.info(f"[start] game={game.id} mode={game.mode} players={len(game.players)}")
    log_game_event(game, 'game_started', {'mode': game.mode})
    broadcast_state(game)
    return game


def remove_player(game, player):
    """Delete a player and the rows that hang off it."""
    PlayCall.query.filter_by(player_id=player.id).delete()
    Answer.query.filter_by(player_id=player.id).delete()
    db.session.delete(player)
    db.session.commit()


def leave_lobby(game, player_id):
    player = require_player(game, player_id)
    was_host = player.role == ROLE_REF or player.id == game.host_player_id
    remove_player(game, player)

    new_host = None
    if was_host:
        # Hand the lobby to the earliest remaining player
        remaining = list(game.players)
        if remaining:
            new_host = remaining[0]
            new_host.role = ROLE_REF
            game.host_player_id = new_host.id
        else:
            game.host_player_id = None
        db.session.commit()
    current_app.logger.info(f"[lobby-leave] game={game.id} player={player_id} new_host={new_host.id if new_host else None}")
    log_game_event(game, 'player_left', {'player_id': player_id, 'new_host_id': new_host.id if new_host else None})
    broadcast_state(game)
    return new_host


def set_ready(game, player_id, ready):
    player = require_player(game, player_id)
    player.ready = bool(ready)
    db.session.commit()
    broadcast_state(game)
    return player


def kick_player(game, requester_id, player_id):
    host = require_host(game, requester_id, 'Only the ref can kick players.')
    player = require_player(game, player_id)
    if player.id == host.id:
        raise ActionError('The host cannot kick themselves.')
    remove_player(game, player)
    log_game_event(game, 'player_kicked', {'player_id': player_id})
    broadcast_state(game)


def set_lobby_locked(game, requester_id, locked):
    require_host(game, requester_id, 'Only the ref can lock or unlock the lobby.')
    game.lobby_locked = bool(locked)
    db.session.commit()
    log_game_event(game, 'lobby_locked' if game.lobby_locked else 'lobby_unlocked', {})
    broadcast_state(game)
    return game
