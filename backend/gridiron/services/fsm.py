"""Phase and subphase transitions for football games and trivia rounds.

Every handler checks its move against these tables before touching the
game row, so an out-of-order request is rejected instead of silently
rewriting state.
"""

from typing import Dict, Iterable, Optional, Set

from .errors import WrongPhase

PHASE_TRANSITIONS: Dict[str, Set[str]] = {
    'lobby': {'coin_toss'},
    'coin_toss': {'coin_toss', 'coin_toss_choice', 'kickoff'},
    'coin_toss_choice': {'coin_toss', 'kickoff'},
    'kickoff': {'coin_toss', 'drive'},
    'drive': {'coin_toss', 'drive', 'kickoff', 'finished'},
    'finished': set(),
}

# None is the subphase outside of a drive (and right after a ref reset).
SUBPHASE_TRANSITIONS: Dict[Optional[str], Set[Optional[str]]] = {
    None: {'play_call'},
    'play_call': {'play_call', 'question'},
    'question': {'question', 'rolls'},
    'rolls': {'rolls_done'},
    'rolls_done': {'play_call', None},
}

ROUND_TRANSITIONS: Dict[str, Set[str]] = {
    'pending': {'live'},
    'live': {'live', 'locked'},
    'locked': {'revealed'},
    'revealed': set(),
}


def can_transition_phase(current: str, target: str) -> bool:
    return target in PHASE_TRANSITIONS.get(current, set())


def can_transition_subphase(current: Optional[str], target: Optional[str]) -> bool:
    return target in SUBPHASE_TRANSITIONS.get(current, set())


def can_transition_round(current: str, target: str) -> bool:
    return target in ROUND_TRANSITIONS.get(current, set())


def require_phase(game, phases: Iterable[str], message: str) -> None:
    if game.phase not in set(phases):
        raise WrongPhase(message)


def require_subphase(game, subphases: Iterable[Optional[str]], message: str) -> None:
    if game.phase != 'drive' or game.play_subphase not in set(subphases):
        raise WrongPhase(message)


def move_phase(game, target: str, subphase: Optional[str] = None) -> None:
    """Move ``game`` to ``target`` phase, resetting the subphase."""
    if not can_transition_phase(game.phase, target):
        raise WrongPhase(f'Cannot move from {game.phase} to {target}.')
    game.phase = target
    game.play_subphase = subphase


def move_subphase(game, target: Optional[str]) -> None:
    if game.phase != 'drive':
        raise WrongPhase('No drive in progress.')
    if not can_transition_subphase(game.play_subphase, target):
        raise WrongPhase(f'Cannot move play from {game.play_subphase} to {target}.')
    game.play_subphase = target


def move_round(round_, target: str) -> None:
    if not can_transition_round(round_.status, target):
        raise WrongPhase(f'Round cannot go from {round_.status} to {target}.')
    round_.status = target
