"""Football setup actions: coin toss, kickoff and ref drive resets."""

import random

from flask import current_app
from gridiron import db
from gridiron.models import Game, PlayCall, SIDES, ROLE_REF, other_side
from .errors import ActionError, NotAllowed, WrongPhase
from .events import broadcast_state, log_game_event
from .fsm import move_phase, require_phase
from .lobby import require_player
from .resolution import FIRST_DOWN_DISTANCE, touchback_yard_line

COIN_FACES = ('heads', 'tails')
TOSS_CHOICES = ('receive', 'kick', 'defer')

_rng = random.Random()


def get_game_by_code(code: str) -> Game:
    return Game.query.filter_by(code=code.strip().upper()).first_or_404()


def require_in_progress(game):
    if game.status != 'in_progress':
        raise WrongPhase('Game is not in progress.')
    if game.mode != 'football':
        raise WrongPhase('Not a football game.')


def flip(rng=None) -> str:
    return (rng or _rng).choice(COIN_FACES)


def toss_outcome(winner: str, choice: str) -> dict:
    """Possession after the toss. Receive gives the winner the ball; kick and
    defer both hand it to the other side. The second-half receiver is
    whoever did not receive first."""
    if choice not in TOSS_CHOICES:
        raise ActionError('Choice must be receive, kick or defer.')
    possession = winner if choice == 'receive' else other_side(winner)
    # Intentional: after kick or defer alike, the toss winner receives the second half
    return {
        'possession_side': possession,
        'offense_side': possession,
        'defense_side': other_side(possession),
        'second_half_kickoff_side': other_side(possession),
    }


def _reset_clock(game):
    cfg = current_app.config
    game.quarter = 1
    game.clock_seconds = int(cfg.get('QUARTER_SECONDS', 900))
    game.play_clock_seconds = int(cfg.get('PLAY_CLOCK_SECONDS', 40))


def _apply_toss(game, choice):
    outcome = toss_outcome(game.toss_winner_side, choice)
    game.toss_choice = choice
    game.possession_side = outcome['possession_side']
    game.offense_side = outcome['offense_side']
    game.defense_side = outcome['defense_side']
    game.second_half_kickoff_side = outcome['second_half_kickoff_side']
    game.down = 1
    game.distance = FIRST_DOWN_DISTANCE
    game.yard_line = touchback_yard_line(outcome['possession_side'])
    game.last_play_id = None
    _reset_clock(game)
    move_phase(game, 'kickoff')
    return outcome


def start_coin_toss(game, requester_id) -> Game:
    require_in_progress(game)
    requester = require_player(game, requester_id)
    if not requester.is_official:
        raise NotAllowed('Only the ref can start the coin toss.')
    move_phase(game, 'coin_toss')
    _reset_clock(game)
    game.down = 1
    game.distance = FIRST_DOWN_DISTANCE
    game.yard_line = 25
    game.possession_side = None
    game.offense_side = None
    game.defense_side = None
    game.toss_result = None
    game.toss_winner_side = None
    game.toss_choice = None
    game.second_half_kickoff_side = None
    game.play_question_id = None
    PlayCall.query.filter_by(game_id=game.id).delete()
    db.session.commit()
    current_app.logger.info(f"[coin-toss] game={game.id} started")
    log_game_event(game, 'coin_toss_started', {})
    broadcast_state(game)
    return game


def resolve_coin_toss(game, away_call: str, winner_choice: str, rng=None) -> dict:
    """One-step toss: flip, the away side's call decides the winner, and the
    winner's choice is applied immediately."""
    require_in_progress(game)
    require_phase(game, ('coin_toss',), 'Not in coin toss phase.')
    if away_call not in COIN_FACES:
        raise ActionError('Call must be heads or tails.')
    coin = flip(rng)
    game.toss_result = coin
    game.toss_winner_side = 'away' if coin == away_call else 'home'
    outcome = _apply_toss(game, winner_choice)
    db.session.commit()
    result = {'coin': coin, 'winner': game.toss_winner_side, 'choice': winner_choice}
    log_game_event(game, 'coin_toss_result', {**result, 'possession_side': outcome['possession_side']})
    broadcast_state(game)
    return result


def flip_coin(game, requester_id, away_call: str, rng=None) -> dict:
    require_in_progress(game)
    require_phase(game, ('coin_toss',), 'Not in coin toss phase.')
    player = require_player(game, requester_id)
    if player.side != 'away' and player.role != ROLE_REF:
        raise NotAllowed('Only away side (or ref) can call the toss.')
    if away_call not in COIN_FACES:
        raise ActionError('Call must be heads or tails.')
    coin = flip(rng)
    winner = 'away' if coin == away_call else 'home'
    game.toss_result = coin
    game.toss_winner_side = winner
    game.toss_choice = None
    move_phase(game, 'coin_toss_choice')
    db.session.commit()
    current_app.logger.info(f"[coin-toss] game={game.id} call={away_call} coin={coin} winner={winner}")
    log_game_event(game, 'coin_toss_flipped', {'coin': coin, 'winner': winner, 'call': away_call})
    broadcast_state(game)
    return {'coin': coin, 'winner': winner}


def choose_toss_option(game, requester_id, choice: str) -> Game:
    require_in_progress(game)
    if not game.toss_winner_side:
        raise WrongPhase('Toss not resolved yet.')
    require_phase(game, ('coin_toss_choice',), 'Not waiting on a toss choice.')
    player = require_player(game, requester_id)
    if player.role != ROLE_REF and player.side != game.toss_winner_side:
        raise NotAllowed('Only the toss winner (or ref) can choose.')
    outcome = _apply_toss(game, choice)
    db.session.commit()
    log_game_event(game, 'coin_toss_choice', {'choice': choice, **outcome})
    broadcast_state(game)
    return game


def resolve_kickoff_touchback(game, requester_id=None) -> Game:
    require_in_progress(game)
    require_phase(game, ('kickoff',), 'Not in kickoff phase.')
    if requester_id is not None:
        require_player(game, requester_id)
    possession = game.possession_side or 'home'
    yard_line = touchback_yard_line(possession)
    game.possession_side = possession
    game.offense_side = possession
    game.defense_side = other_side(possession)
    game.down = 1
    game.distance = FIRST_DOWN_DISTANCE
    game.yard_line = yard_line
    move_phase(game, 'drive', subphase='play_call')
    db.session.commit()
    log_game_event(game, 'kickoff_touchback', {'possession_side': possession, 'yard_line': yard_line})
    broadcast_state(game)
    return game


def reset_drive(game, requester_id, possession=None, yard_line=None) -> Game:
    require_in_progress(game)
    requester = require_player(game, requester_id)
    if requester.role != ROLE_REF:
        raise NotAllowed('Only the ref can reset the drive.')
    require_phase(game, ('kickoff', 'drive'), 'No drive to reset.')
    if possession is not None and possession not in SIDES:
        raise ActionError('Possession must be home or away.')
    possession = possession or game.possession_side or 'home'
    if yard_line is None:
        yard_line = touchback_yard_line(possession)
    elif not 0 < int(yard_line) < 100:
        raise ActionError('Yard line must be between 1 and 99.')
    game.possession_side = possession
    game.offense_side = possession
    game.defense_side = other_side(possession)
    game.down = 1
    game.distance = FIRST_DOWN_DISTANCE
    game.yard_line = int(yard_line)
    game.current_play_seq = 1
    game.play_question_id = None
    move_phase(game, 'drive', subphase='play_call')
    # Clear any existing play calls for a clean drive start
    PlayCall.query.filter_by(game_id=game.id).delete()
    db.session.commit()
    current_app.logger.info(f"[drive-reset] game={game.id} possession={possession} yard_line={yard_line}")
    log_game_event(game, 'drive_reset', {'possession_side': possession, 'yard_line': game.yard_line})
    broadcast_state(game)
    return game
