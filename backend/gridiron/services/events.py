from flask import current_app
from gridiron import db, socketio
from gridiron.models import GameEvent

NAMESPACE = '/ws'


def room_for(game_code: str) -> str:
    return f"game:{game_code.upper()}"


def broadcast_state(game) -> None:
    """Tell every client in the game room to refetch state."""
    socketio.emit('state_update', {'game_code': game.code}, to=room_for(game.code), namespace=NAMESPACE)


def log_game_event(game, event_type: str, payload: dict = None) -> GameEvent:
    """Append a timeline event for ``game`` and push it to the room.

    Events feed the UI only; the game row stays authoritative.
    """
    event = GameEvent(game_id=game.id, type=event_type, payload=payload or {})
    db.session.add(event)
    db.session.commit()
    current_app.logger.info(f"[event] game={game.id} type={event_type}")
    socketio.emit('game_event', event.to_dict(), to=room_for(game.code), namespace=NAMESPACE)
    return event


def recent_events(game, limit: int = 50):
    """Return up to ``limit`` most recent events, oldest first."""
    rows = (
        GameEvent.query.filter_by(game_id=game.id)
        .order_by(GameEvent.created_at.desc(), GameEvent.id.desc())
        .limit(limit)
        .all()
    )
    rows.reverse()
    return rows
