import time
from typing import Set

from gridiron import db, socketio
from gridiron.models import Round
from .errors import ActionError


_scheduled_round_ids: Set[int] = set()


def schedule_round_timer(app, round_id: int) -> None:
    """Schedule the answer timer for a live trivia round.

    - No-ops in TESTING mode (unless ENABLE_SCHEDULER_IN_TESTS)
    - No-ops when TRIVIA_ANSWER_DURATION_SEC is 0 and we are not testing
    - Ensures a single timer per round
    - When it fires on a round that is still live, locks and scores it
    """
    testing = app.config.get('TESTING')
    if testing and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    duration = int(app.config.get('TRIVIA_ANSWER_DURATION_SEC', 30))
    if duration <= 0 and not testing:
        return

    with app.app_context():
        round_ = db.session.get(Round, round_id)
        if round_ is None or round_.status != 'live':
            return
        if round_id in _scheduled_round_ids:
            app.logger.info(f"[timer-skip] round={round_id} already scheduled")
            return
        _scheduled_round_ids.add(round_id)
        app.logger.info(f"[timer-set] game={round_.game_id} round={round_id} seq={round_.seq} duration={duration}s")

    def _worker(rid: int, delay: int):
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
        if hb > 0:
            slept = 0
            while slept < delay:
                step = min(hb, delay - slept)
                time.sleep(step)
                slept += step
                app.logger.info(f"[timer-heartbeat] round={rid} remaining={max(0, delay - slept)}s")
        else:
            time.sleep(delay)
        with app.app_context():
            _scheduled_round_ids.discard(rid)
            r = db.session.get(Round, rid)
            if r is None:
                return
            app.logger.info(f"[timer-fire] game={r.game_id} round={rid} status={r.status}")
            if r.status != 'live' or r.game.status != 'in_progress':
                app.logger.info(f"[timer-abort] round={rid} no longer live")
                return
            from .trivia import lock_and_score_round
            try:
                lock_and_score_round(r.game, r)
            except ActionError as exc:
                # Host locked the round first
                db.session.rollback()
                app.logger.info(f"[timer-abort] round={rid} {exc.message}")

    if testing:
        _worker(round_id, duration)
    else:
        socketio.start_background_task(_worker, round_id, duration)
