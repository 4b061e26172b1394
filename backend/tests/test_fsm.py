import pytest

from gridiron.models import Round
from gridiron.services.errors import WrongPhase
from gridiron.services.fsm import (
    can_transition_phase,
    can_transition_round,
    can_transition_subphase,
    move_phase,
    move_round,
    move_subphase,
)


class _Game:
    def __init__(self, phase, play_subphase=None):
        self.phase = phase
        self.play_subphase = play_subphase


def test_phase_table():
    assert can_transition_phase('lobby', 'coin_toss')
    assert can_transition_phase('coin_toss', 'coin_toss_choice')
    assert can_transition_phase('kickoff', 'drive')
    assert can_transition_phase('drive', 'finished')
    assert not can_transition_phase('lobby', 'drive')
    assert not can_transition_phase('finished', 'coin_toss')


def test_subphase_table():
    assert can_transition_subphase(None, 'play_call')
    assert can_transition_subphase('play_call', 'question')
    assert can_transition_subphase('rolls', 'rolls_done')
    assert not can_transition_subphase('play_call', 'rolls')
    assert not can_transition_subphase('rolls_done', 'question')


def test_round_table():
    assert can_transition_round('pending', 'live')
    assert can_transition_round('live', 'locked')
    assert can_transition_round('locked', 'revealed')
    assert not can_transition_round('pending', 'revealed')
    assert not can_transition_round('revealed', 'live')


def test_move_phase_resets_subphase():
    game = _Game('drive', 'rolls_done')
    move_phase(game, 'kickoff')
    assert game.phase == 'kickoff'
    assert game.play_subphase is None
    move_phase(game, 'drive', subphase='play_call')
    assert game.play_subphase == 'play_call'


def test_illegal_moves_raise():
    with pytest.raises(WrongPhase):
        move_phase(_Game('lobby'), 'kickoff')
    with pytest.raises(WrongPhase):
        move_subphase(_Game('kickoff'), 'play_call')
    with pytest.raises(WrongPhase):
        move_subphase(_Game('drive', 'question'), 'rolls_done')
    with pytest.raises(WrongPhase) as exc:
        move_round(Round(status='revealed'), 'locked')
    assert exc.value.status_code == 409
