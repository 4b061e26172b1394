"""Drive play cycle: play calls, question answers, rolls and resolution.

Each play runs ``play_call -> question -> rolls -> rolls_done`` and is
resolved once both sides confirm the rolls. Rows in ``play_call`` are keyed
by (game, player, seq), so resubmitting from a flaky client only updates the
existing call.
"""

import random
from typing import Optional

from flask import current_app
from gridiron import db
from gridiron.models import Game, Play, PlayCall, Question, ROLE_REF, other_side
from .errors import ActionError, NotAllowed
from .events import broadcast_state, log_game_event
from .fsm import move_phase, move_subphase, require_subphase
from .football import require_in_progress
from .lobby import require_player
from .resolution import (
    DIFFICULTIES,
    FieldState,
    PlayInputs,
    advance_field,
    compute_yards,
    defense_roll,
    roll_by_difficulty,
    touchback_yard_line,
)
from .store import upsert

ROLES = ('offense', 'defense')
DEFAULT_OFFENSE_CALL = 'Run'
DEFAULT_DEFENSE_CALL = 'Pass D'
DEFENSE_DIFFICULTY = 'n/a'
MAX_MANUAL_ROLL = 20

_rng = random.Random()


def _calls_for(game, seq=None):
    seq = game.current_play_seq if seq is None else seq
    return {c.role: c for c in PlayCall.query.filter_by(game_id=game.id, seq=seq).order_by(PlayCall.id).all()}


def _target_role(game, player, for_side: Optional[str]) -> str:
    """Role a player acts for. The ref may act for either side; everyone
    else acts for the side they play on."""
    own_role = None
    if player.side and player.side == game.offense_side:
        own_role = 'offense'
    elif player.side and player.side == game.defense_side:
        own_role = 'defense'

    if for_side is not None and for_side not in ROLES:
        raise ActionError('for_side must be offense or defense.')
    if player.role == ROLE_REF:
        return for_side or own_role or 'offense'
    if own_role is None:
        raise NotAllowed('Not part of this play.')
    if for_side is not None and for_side != own_role:
        raise NotAllowed('You can only act for your own side.')
    return own_role


def _pick_question(difficulty: str) -> Optional[Question]:
    level = 'hard' if difficulty == 'hail_mary' else difficulty
    question = Question.query.filter_by(difficulty=level).order_by(db.func.random()).first()
    if question is None:
        question = Question.query.order_by(db.func.random()).first()
    return question


def submit_play_call(game, player_id, role: str, play_call: str, difficulty: str = None) -> Game:
    require_in_progress(game)
    # Late submissions are fine while the question is up, as long as this side hasn't called yet
    require_subphase(game, ('play_call', 'question', None), 'Not accepting play calls right now.')
    if role not in ROLES:
        raise ActionError('Role must be offense or defense.')
    play_call = (play_call or '').strip()
    if not play_call or len(play_call) > 64:
        raise ActionError('A play call is required.')
    if role == 'offense':
        difficulty = difficulty or 'easy'
        if difficulty not in DIFFICULTIES:
            raise ActionError(f"Difficulty must be one of {', '.join(DIFFICULTIES)}.")
    else:
        difficulty = DEFENSE_DIFFICULTY

    player = require_player(game, player_id)
    if player.side != game.side_for_role(role):
        raise NotAllowed('You are not on this side for the current play.')

    seq = game.current_play_seq
    upsert(PlayCall, {'game_id': game.id, 'player_id': player.id, 'seq': seq},
           side=player.side, role=role, play_call=play_call, difficulty=difficulty)

    calls = _calls_for(game, seq)
    offense_done = 'offense' in calls
    defense_done = 'defense' in calls
    payload = {'seq': seq, 'offense_ready': offense_done, 'defense_ready': defense_done}
    if offense_done and defense_done:
        if game.play_subphase != 'question':
            question = _pick_question(calls['offense'].difficulty)
            game.play_question_id = question.id if question else None
        move_subphase(game, 'question')
        db.session.commit()
        log_game_event(game, 'play_calls_locked', payload)
    else:
        move_subphase(game, 'play_call')
        db.session.commit()
        log_game_event(game, 'play_call_submitted', payload)
    current_app.logger.info(f"[play-call] game={game.id} seq={seq} role={role} call={play_call!r}")
    broadcast_state(game)
    return game


def submit_question_answer(game, player_id, correct: Optional[bool] = None, choice_index: Optional[int] = None,
                           for_side: Optional[str] = None) -> dict:
    """Record whether a side answered its question correctly.

    With a question attached, ``choice_index`` is checked against it;
    otherwise the reported ``correct`` flag is taken as-is (the ref may
    adjudicate for either side).
    """
    require_in_progress(game)
    require_subphase(game, ('question',), 'Not accepting answers right now.')
    player = require_player(game, player_id)
    role = _target_role(game, player, for_side)

    if choice_index is not None and game.play_question is not None:
        is_correct = int(choice_index) == game.play_question.correct_index
    elif correct is not None:
        is_correct = bool(correct)
    else:
        raise ActionError('An answer is required.')

    seq = game.current_play_seq
    calls = _calls_for(game, seq)
    existing = calls.get(role)
    if existing is not None:
        existing.answer = is_correct
        db.session.commit()
    else:
        upsert(PlayCall, {'game_id': game.id, 'player_id': player.id, 'seq': seq},
               side=player.side, role=role,
               play_call=DEFAULT_OFFENSE_CALL if role == 'offense' else DEFAULT_DEFENSE_CALL,
               difficulty='easy' if role == 'offense' else DEFENSE_DIFFICULTY,
               answer=is_correct)
        calls = _calls_for(game, seq)

    offense = calls.get('offense')
    defense = calls.get('defense')
    offense_answered = offense is not None and offense.answer is not None
    defense_answered = defense is not None and defense.answer is not None
    if not (offense_answered and defense_answered):
        log_game_event(game, 'answer_submitted', {
            'seq': seq,
            'offense_answered': offense_answered,
            'defense_answered': defense_answered,
        })
        broadcast_state(game)
        return {'message': 'Answer recorded. Waiting for other side.', 'correct': is_correct}

    move_subphase(game, 'rolls')
    db.session.commit()
    log_game_event(game, 'rolls_started', {'seq': seq})
    broadcast_state(game)
    return {'message': 'Answers locked. Proceed to roll.', 'correct': is_correct}


def submit_roll(game, player_id, manual_roll: Optional[int] = None, for_side: Optional[str] = None, rng=None) -> dict:
    require_in_progress(game)
    require_subphase(game, ('rolls',), 'Not accepting rolls right now.')
    player = require_player(game, player_id)
    role = _target_role(game, player, for_side)
    rng = rng or _rng

    seq = game.current_play_seq
    calls = _calls_for(game, seq)
    existing = calls.get(role)
    if existing is None:
        raise ActionError('No play call for this side.')
    if existing.roll is not None:
        raise ActionError('Roll already submitted for this side.')

    if manual_roll is not None:
        if player.role != ROLE_REF:
            raise NotAllowed('Only the ref can enter a manual roll.')
        manual_roll = int(manual_roll)
        if not 1 <= manual_roll <= MAX_MANUAL_ROLL:
            raise ActionError(f'Manual roll must be between 1 and {MAX_MANUAL_ROLL}.')
        roll = manual_roll
    elif role == 'offense':
        roll = roll_by_difficulty(existing.difficulty or 'easy', rng)
    else:
        roll = defense_roll(rng)
    existing.roll = roll
    db.session.commit()

    offense_roll = calls['offense'].roll if 'offense' in calls else None
    defense_roll_value = calls['defense'].roll if 'defense' in calls else None
    log_game_event(game, 'roll_submitted', {'seq': seq, 'offense_roll': offense_roll, 'defense_roll': defense_roll_value})
    if offense_roll is not None and defense_roll_value is not None:
        move_subphase(game, 'rolls_done')
        db.session.commit()
        log_game_event(game, 'rolls_completed', {'seq': seq, 'offense_roll': offense_roll, 'defense_roll': defense_roll_value})
    broadcast_state(game)
    return {'message': 'Roll recorded.', 'role': role, 'roll': roll}


def continue_after_roll(game, player_id, for_side: Optional[str] = None, rng=None) -> dict:
    require_in_progress(game)
    require_subphase(game, ('rolls_done',), 'Not ready to resolve yet.')
    player = require_player(game, player_id)
    role = _target_role(game, player, for_side)

    seq = game.current_play_seq
    calls = _calls_for(game, seq)
    if role in calls:
        calls[role].ready_after_roll = True
        db.session.commit()

    offense_ready = 'offense' in calls and calls['offense'].ready_after_roll
    defense_ready = 'defense' in calls and calls['defense'].ready_after_roll
    log_game_event(game, 'ready_after_roll', {'seq': seq, 'offense_ready': offense_ready, 'defense_ready': defense_ready})

    if offense_ready and defense_ready:
        play = finalize_play_resolution(game, seq, rng=rng)
        return {'message': play.result_text, 'play': play.to_dict()}
    broadcast_state(game)
    return {'message': 'Continue recorded. Waiting for other side.'}


def _run_clock(game) -> Optional[str]:
    """Run one play off the clock. Returns 'quarter_end', 'halftime' or
    'game_over' when the quarter expires."""
    cfg = current_app.config
    quarter_seconds = int(cfg.get('QUARTER_SECONDS', 900))
    quarters = int(cfg.get('QUARTERS', 4))
    game.clock_seconds = max(0, game.clock_seconds - int(cfg.get('SECONDS_PER_PLAY', 30)))
    game.play_clock_seconds = int(cfg.get('PLAY_CLOCK_SECONDS', 40))
    if game.clock_seconds > 0:
        return None
    if game.quarter >= quarters:
        return 'game_over'
    game.quarter += 1
    game.clock_seconds = quarter_seconds
    if game.quarter == quarters // 2 + 1:
        return 'halftime'
    return 'quarter_end'


def finalize_play_resolution(game, seq: int, rng=None) -> Play:
    rng = rng or _rng
    calls = _calls_for(game, seq)
    offense = calls.get('offense')
    defense = calls.get('defense')
    if offense is None or defense is None:
        raise ActionError('Missing play data.')

    inputs = PlayInputs(
        offense_play=offense.play_call or DEFAULT_OFFENSE_CALL,
        offense_difficulty=offense.difficulty or 'easy',
        defense_play=defense.play_call or DEFAULT_DEFENSE_CALL,
        offense_roll=offense.roll if offense.roll is not None else roll_by_difficulty(offense.difficulty or 'easy', rng),
        defense_roll=defense.roll if defense.roll is not None else defense_roll(rng),
        offense_correct=bool(offense.answer),
        defense_correct=bool(defense.answer),
    )
    yards = compute_yards(inputs, rng)
    offense_side = game.offense_side
    defense_side = game.defense_side
    outcome = advance_field(FieldState(
        down=game.down,
        distance=game.distance,
        yard_line=game.yard_line,
        offense_side=offense_side,
        score_home=game.score_home,
        score_away=game.score_away,
    ), yards)

    play = Play(
        game_id=game.id,
        seq=seq,
        quarter=game.quarter,
        offense_side=offense_side,
        defense_side=defense_side,
        call_offense=inputs.offense_play,
        call_defense=inputs.defense_play,
        difficulty=inputs.offense_difficulty,
        question_id=game.play_question_id,
        offense_roll=inputs.offense_roll,
        defense_roll=inputs.defense_roll,
        offense_correct=inputs.offense_correct,
        defense_correct=inputs.defense_correct,
        yards=outcome.gained,
        turnover=outcome.turnover,
        result_text=outcome.result_text,
    )
    db.session.add(play)

    game.down = outcome.down
    game.distance = outcome.distance
    game.yard_line = outcome.yard_line
    game.possession_side = outcome.offense_side
    game.offense_side = outcome.offense_side
    game.defense_side = outcome.defense_side
    game.score_home = outcome.score_home
    game.score_away = outcome.score_away
    game.current_play_seq = seq + 1
    game.play_question_id = None

    clock_event = _run_clock(game)
    if clock_event == 'game_over':
        move_phase(game, 'finished')
        game.status = 'completed'
    elif clock_event == 'halftime':
        receiver = game.second_half_kickoff_side or other_side(game.possession_side)
        game.possession_side = receiver
        game.offense_side = receiver
        game.defense_side = other_side(receiver)
        game.down = 1
        game.distance = 10
        game.yard_line = touchback_yard_line(receiver)
        move_phase(game, 'kickoff')
    elif outcome.kickoff:
        move_phase(game, 'kickoff')
    else:
        move_subphase(game, 'play_call')
    db.session.flush()
    game.last_play_id = play.id

    # Clear out any play calls for the next sequence to avoid stale submissions carrying over
    PlayCall.query.filter_by(game_id=game.id, seq=seq + 1).delete()
    db.session.commit()

    current_app.logger.info(
        f"[play-resolved] game={game.id} seq={seq} yards={outcome.gained} turnover={outcome.turnover} "
        f"touchdown={outcome.touchdown} safety={outcome.safety} score={game.score_home}-{game.score_away}"
    )
    log_game_event(game, 'play_resolved', {
        'seq': seq,
        'yards': outcome.gained,
        'turnover': outcome.turnover,
        'touchdown': outcome.touchdown,
        'safety': outcome.safety,
        'call_offense': inputs.offense_play,
        'call_defense': inputs.defense_play,
        'offense_correct': inputs.offense_correct,
        'defense_correct': inputs.defense_correct,
        'offense_roll': inputs.offense_roll,
        'defense_roll': inputs.defense_roll,
    })
    if clock_event:
        log_game_event(game, clock_event, {
            'quarter': game.quarter,
            'score_home': game.score_home,
            'score_away': game.score_away,
        })
    broadcast_state(game)
    return play
