"""Trivia mode: picker, seeded question blocks and round scoring.

A block of rounds is seeded when the picker chooses a category and
difficulty. Rounds move ``pending -> live -> locked -> revealed``; a round
is scored once, when it locks, so repeated lock requests never double
count.
"""

import random
from typing import Optional

from flask import current_app
from gridiron import db, socketio
from gridiron.models import Answer, Game, GameEvent, Play, PlayCall, Player, Question, Round, utcnow
from .errors import ActionError, NotAllowed, WrongPhase
from .events import broadcast_state, log_game_event, room_for, NAMESPACE
from .football import get_game_by_code
from .fsm import move_round
from .lobby import host_of, require_host, require_player
from .questions import OPENTDB_CATEGORY_MAP, QUESTION_DIFFICULTIES, try_import
from .scheduler import schedule_round_timer
from .store import upsert

POINTS_BY_DIFFICULTY = {'easy': 1, 'medium': 2, 'hard': 3}
# Fewer matching questions than this triggers the import/relaxation fallbacks
MIN_BLOCK_QUESTIONS = 5
AUTO_IMPORT_AMOUNT = 50
FALLBACK_IMPORT_AMOUNT = 30

_rng = random.Random()


def points_for(difficulty: Optional[str]) -> int:
    return POINTS_BY_DIFFICULTY.get(difficulty or 'medium', POINTS_BY_DIFFICULTY['medium'])


def _require_trivia(game):
    if game.mode != 'trivia':
        raise WrongPhase('Not a trivia game.')


def _require_playing(game):
    _require_trivia(game)
    if game.status != 'in_progress':
        raise WrongPhase('Trivia game is not in progress.')


def _block_size() -> int:
    return int(current_app.config.get('TRIVIA_BLOCK_SIZE', 20))


def _get_round(game, round_id) -> Round:
    round_ = Round.query.filter_by(id=round_id, game_id=game.id).first() if round_id is not None else None
    if round_ is None:
        raise ActionError('Round not found.', 404)
    return round_


def _next_pending(game) -> Optional[Round]:
    return Round.query.filter_by(game_id=game.id, status='pending').order_by(Round.seq.asc()).first()


def _live_round(game) -> Optional[Round]:
    return Round.query.filter_by(game_id=game.id, status='live').order_by(Round.seq.asc()).first()


def _go_live(game, round_, triggered: str = 'auto') -> Round:
    move_round(round_, 'live')
    round_.starts_at = utcnow()
    round_.ends_at = None
    db.session.commit()
    current_app.logger.info(f"[trivia-live] game={game.id} round={round_.id} seq={round_.seq} triggered={triggered}")
    log_game_event(game, 'trivia_round_started', {'round_id': round_.id, 'seq': round_.seq, 'triggered': triggered})
    schedule_round_timer(current_app._get_current_object(), round_.id)
    return round_


def start_trivia_game(game, requester_id, rng=None) -> Game:
    _require_trivia(game)
    require_host(game, requester_id, 'Only the host can start trivia.')
    if game.status == 'completed':
        raise WrongPhase('Game is finished. Reset it to play again.')
    participants = game.participants
    if not participants:
        raise ActionError('Need at least one player.')
    picker = (rng or _rng).choice(participants)

    # Top up a thin question bank before the first block is seeded
    if Question.query.count() < _block_size():
        try_import(AUTO_IMPORT_AMOUNT)

    for p in game.players:
        p.score = 0
        p.correct_count = 0
        p.incorrect_count = 0
        p.ready = False
    game.picker_player_id = picker.id
    game.current_block = 1
    game.winner_player_id = None
    game.status = 'in_progress'
    db.session.commit()
    current_app.logger.info(f"[trivia-start] game={game.id} picker={picker.id} players={len(participants)}")
    log_game_event(game, 'trivia_picker_assigned', {'picker': picker.id, 'block': 1})
    broadcast_state(game)
    return game


def _question_pool(difficulty, category=None, exclude=()):
    query = Question.query.filter(Question.difficulty == difficulty)
    if category:
        query = query.filter(db.func.lower(Question.category) == category.lower())
    if exclude:
        query = query.filter(~Question.id.in_(list(exclude)))
    return query.order_by(db.func.random()).limit(_block_size()).all()


def _seed_questions(category: str, difficulty: str, used_ids):
    """Pick questions for a block, relaxing the filters step by step so the
    picker is never left without a block while any question exists."""
    questions = _question_pool(difficulty, category, used_ids) if category else []
    if len(questions) >= MIN_BLOCK_QUESTIONS:
        return questions

    if category:
        try_import(FALLBACK_IMPORT_AMOUNT, difficulty, OPENTDB_CATEGORY_MAP.get(category.lower()))
        questions = _question_pool(difficulty, category, used_ids)
        if len(questions) >= MIN_BLOCK_QUESTIONS:
            return questions

    relaxed = _question_pool(difficulty, exclude=used_ids)
    questions = relaxed or questions
    if len(questions) < MIN_BLOCK_QUESTIONS:
        try_import(FALLBACK_IMPORT_AMOUNT, difficulty)
        questions = _question_pool(difficulty, exclude=used_ids) or questions
    if len(questions) < MIN_BLOCK_QUESTIONS:
        questions = _question_pool(difficulty) or questions
    return questions


def choose_category_difficulty(game, requester_id, category: str, difficulty: str) -> Round:
    """Seed the game's block of rounds and put the first one live."""
    _require_playing(game)
    player = require_player(game, requester_id)
    host = host_of(game)
    if player.id != game.picker_player_id and (host is None or player.id != host.id):
        raise NotAllowed('Only the picker (or host) can choose the category.')
    if difficulty not in QUESTION_DIFFICULTIES:
        raise ActionError('Difficulty must be easy, medium or hard.')
    category = (category or '').strip()
    if not player.is_official:
        game.picker_player_id = player.id

    existing = Round.query.filter_by(game_id=game.id).all()
    used_ids = {r.question_id for r in existing}
    # A game plays a single block; reseeding replaces it
    if existing:
        round_ids = [r.id for r in existing]
        Answer.query.filter(Answer.round_id.in_(round_ids)).delete(synchronize_session=False)
        Round.query.filter(Round.id.in_(round_ids)).delete(synchronize_session=False)
        db.session.commit()

    questions = _seed_questions(category, difficulty, used_ids)
    if not questions:
        raise ActionError('Not enough questions for that category/difficulty.')

    rounds = [
        Round(
            game_id=game.id,
            seq=idx + 1,
            question_id=q.id,
            status='pending',
            block=game.current_block,
            category=category or q.category,
            difficulty=difficulty,
        )
        for idx, q in enumerate(questions[:_block_size()])
    ]
    db.session.add_all(rounds)
    db.session.commit()
    current_app.logger.info(
        f"[trivia-seed] game={game.id} block={game.current_block} category={category!r} difficulty={difficulty} rounds={len(rounds)}"
    )
    log_game_event(game, 'trivia_block_seeded', {
        'block': game.current_block,
        'category': category,
        'difficulty': difficulty,
        'rounds': len(rounds),
    })
    first = _go_live(game, rounds[0], triggered='seeded')
    broadcast_state(game)
    return first


def start_trivia_round(game, requester_id, question_id, seq) -> Round:
    """Manually put a question live as round ``seq`` (host only)."""
    _require_playing(game)
    require_host(game, requester_id, 'Only host can start rounds.')
    question = db.session.get(Question, int(question_id)) if question_id is not None else None
    if question is None:
        raise ActionError('Question not found.', 404)
    seq = int(seq)
    if seq < 1:
        raise ActionError('Round number must be positive.')
    existing = Round.query.filter_by(game_id=game.id, seq=seq).first()
    if existing is not None and existing.status not in ('pending', 'live'):
        raise WrongPhase('That round has already been played.')

    round_ = upsert(Round, {'game_id': game.id, 'seq': seq},
                    question_id=question.id, status='live', starts_at=utcnow(), ends_at=None,
                    block=game.current_block, category=question.category, difficulty=question.difficulty)
    log_game_event(game, 'trivia_round_started', {'round_id': round_.id, 'seq': seq, 'question_id': question.id})
    schedule_round_timer(current_app._get_current_object(), round_.id)
    broadcast_state(game)
    return round_


def submit_trivia_answer(game, round_id, player_id, choice_index) -> Answer:
    _require_trivia(game)
    round_ = _get_round(game, round_id)
    if round_.status != 'live':
        raise WrongPhase('Round not accepting answers.')
    player = require_player(game, player_id)
    if player.is_official:
        raise NotAllowed('The host does not answer questions.')
    try:
        choice_index = int(choice_index)
    except (TypeError, ValueError):
        raise ActionError('choice_index must be a number.')
    if not 0 <= choice_index < len(round_.question.choices or []):
        raise ActionError('Choice is out of range.')

    answer = upsert(Answer, {'round_id': round_.id, 'player_id': player.id},
                    game_id=game.id, choice_index=choice_index)
    log_game_event(game, 'trivia_answer_submitted', {'round_id': round_.id, 'player_id': player.id})

    # Auto-lock once every player has answered
    eligible = {p.id for p in game.participants}
    answered = {a.player_id for a in round_.answers.filter(Answer.choice_index.isnot(None)).all()}
    if eligible and eligible <= answered:
        lock_and_score_round(game, round_)
    else:
        broadcast_state(game)
    return answer


def lock_round(game, requester_id, round_id) -> Round:
    """Host closes answering early."""
    _require_trivia(game)
    require_host(game, requester_id, 'Only the host can lock a round.')
    return lock_and_score_round(game, _get_round(game, round_id))


def lock_and_score_round(game, round_, rng=None) -> Round:
    if round_.status == 'revealed':
        return round_
    if round_.status == 'pending':
        raise WrongPhase('Round has not started.')
    if round_.status == 'live':
        move_round(round_, 'locked')
        db.session.commit()

    question = round_.question
    points = points_for(question.difficulty)
    scored = 0
    # Only answers without a verdict are scored
    for answer in round_.answers.filter(Answer.correct.is_(None)).all():
        answer.correct = answer.choice_index is not None and answer.choice_index == question.correct_index
        answer.points = points if answer.correct else 0
        player = answer.player
        if player is not None and not player.is_official:
            player.score += answer.points
            if answer.correct:
                player.correct_count += 1
            else:
                player.incorrect_count += 1
        scored += 1
    move_round(round_, 'revealed')
    round_.ends_at = utcnow()
    db.session.commit()
    current_app.logger.info(f"[trivia-reveal] game={game.id} round={round_.id} seq={round_.seq} scored={scored}")
    log_game_event(game, 'trivia_round_revealed', {'round_id': round_.id, 'seq': round_.seq})

    _check_for_winner(game, round_, rng or _rng)
    broadcast_state(game)
    return round_


def _finish(game, winner, score):
    game.status = 'completed'
    game.winner_player_id = winner.id if winner else None
    db.session.commit()
    current_app.logger.info(f"[trivia-complete] game={game.id} winner={game.winner_player_id} score={score}")
    log_game_event(game, 'trivia_completed', {'winner': game.winner_player_id, 'score': score})


def _check_for_winner(game, round_, rng):
    participants = game.participants
    reached = [p for p in participants if p.score >= game.target_score]
    if reached:
        top = max(p.score for p in reached)
        _finish(game, rng.choice([p for p in reached if p.score == top]), top)
        return

    remaining = Round.query.filter(
        Round.game_id == game.id,
        Round.block == round_.block,
        Round.status.in_(('pending', 'live', 'locked')),
    ).count()
    if remaining:
        return
    # Block played out: highest score wins, ties broken at random
    top = max((p.score for p in participants), default=0)
    leaders = [p for p in participants if p.score == top]
    log_game_event(game, 'trivia_block_completed', {'block': round_.block})
    _finish(game, rng.choice(leaders) if leaders else None, top)


def ensure_live_round(game) -> Round:
    """Return the live round, promoting the next pending one if none is live."""
    _require_playing(game)
    live = _live_round(game)
    if live is not None:
        return live
    nxt = _next_pending(game)
    if nxt is None:
        raise ActionError('No pending rounds to start.')
    _go_live(game, nxt)
    broadcast_state(game)
    return nxt


def start_next_pending_round(game, requester_id) -> Round:
    _require_playing(game)
    require_host(game, requester_id, 'Only the host can advance rounds.')
    if _live_round(game) is not None:
        raise WrongPhase('A round is already live.')
    nxt = _next_pending(game)
    if nxt is None:
        raise ActionError('No pending round to start.')
    _go_live(game, nxt, triggered='manual_start')
    broadcast_state(game)
    return nxt


def confirm_ready_next(game, round_id, player_id) -> dict:
    _require_trivia(game)
    player = require_player(game, player_id)
    if player.is_official:
        raise NotAllowed('Player not eligible.')
    round_ = _get_round(game, round_id)
    if round_.status != 'revealed':
        raise WrongPhase('Round is not revealed yet.')

    upsert(Answer, {'round_id': round_.id, 'player_id': player.id}, game_id=game.id, ready_next=True)
    eligible = {p.id for p in game.participants}
    ready = {a.player_id for a in round_.answers.filter_by(ready_next=True).all()}
    result = {'ready': len(ready & eligible), 'total': len(eligible), 'next_round_id': None}

    if eligible and eligible <= ready and game.status == 'in_progress' and _live_round(game) is None:
        nxt = _next_pending(game)
        if nxt is not None:
            _go_live(game, nxt)
            result['next_round_id'] = nxt.id
    broadcast_state(game)
    return result


def reset_trivia_game(game, requester_id) -> Game:
    _require_trivia(game)
    require_host(game, requester_id, 'Only the host can reset the game.')
    Answer.query.filter_by(game_id=game.id).delete()
    Round.query.filter_by(game_id=game.id).delete()
    for p in game.players:
        p.score = 0
        p.correct_count = 0
        p.incorrect_count = 0
    game.status = 'lobby_open'
    game.picker_player_id = None
    game.current_block = 1
    game.winner_player_id = None
    db.session.commit()
    log_game_event(game, 'trivia_reset', {})
    broadcast_state(game)
    return game


def close_trivia_game(game, requester_id) -> str:
    """Delete the game and everything that belongs to it (host only)."""
    if game.host_player_id:
        require_host(game, requester_id, 'Only the host can close this game.')
    code = game.code
    game_id = game.id
    Answer.query.filter_by(game_id=game_id).delete()
    Round.query.filter_by(game_id=game_id).delete()
    PlayCall.query.filter_by(game_id=game_id).delete()
    Play.query.filter_by(game_id=game_id).delete()
    GameEvent.query.filter_by(game_id=game_id).delete()
    Player.query.filter_by(game_id=game_id).delete()
    Game.query.filter_by(id=game_id).delete()
    db.session.commit()
    current_app.logger.info(f"[trivia-close] game={game_id} code={code}")
    socketio.emit('game_closed', {'game_code': code}, to=room_for(code), namespace=NAMESPACE)
    return code


def _pick_display_round(game) -> Optional[Round]:
    live = _live_round(game)
    if live is not None:
        return live
    revealed = Round.query.filter_by(game_id=game.id, status='revealed').order_by(Round.seq.desc()).first()
    if revealed is not None:
        return revealed
    return _next_pending(game)


def trivia_state(code: str) -> dict:
    """Snapshot for trivia clients: the round on screen, its question and
    answer progress. The correct answer is only included once revealed."""
    game = get_game_by_code(code)
    round_ = _pick_display_round(game)
    question = None
    counts = {'totalPlayers': 0, 'answersCount': 0, 'readyCount': 0, 'pendingCount': 0}
    summary = []
    if round_ is not None:
        if round_.question is not None:
            question = round_.question.to_dict(reveal=round_.status == 'revealed')
        answers = round_.answers.all()
        counts = {
            'totalPlayers': len(game.participants),
            'answersCount': len([a for a in answers if a.choice_index is not None]),
            'readyCount': len([a for a in answers if a.ready_next]),
            'pendingCount': Round.query.filter_by(game_id=game.id, status='pending').count(),
        }
        summary = [a.to_dict(reveal=round_.status == 'revealed') for a in answers]
    return {
        'game': game.to_dict(),
        'round': round_.to_dict() if round_ else None,
        'question': question,
        'counts': counts,
        'answersSummary': summary,
    }
