"""Per-play resolution: dice, matchup modifiers, yardage and field position.

Everything here is arithmetic over plain values so the drive handlers stay
thin. Randomness comes from an injected ``random.Random``-like object
(anything with ``randint``), which keeps the formulas testable.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from gridiron.models import other_side

MIN_YARDS = -20
MAX_YARDS = 60
TOUCHDOWN_POINTS = 7
SAFETY_POINTS = 2
TOUCHBACK_YARDS = 25
FIRST_DOWN_DISTANCE = 10

OFFENSE_PLAYS = ('Run', 'Pass', 'Screen', 'Deep Pass', 'Trick', 'Hail Mary')
DEFENSE_PLAYS = ('Run stop', 'Pass D', 'Blitz', 'Zone')
DIFFICULTIES = ('easy', 'medium', 'hard', 'hail_mary')


def roll_by_difficulty(difficulty: str, rng) -> int:
    """Offense die: easy 1d4, medium 2d4, hard 1d10, hail_mary 1d20."""
    if difficulty == 'medium':
        return rng.randint(1, 4) + rng.randint(1, 4)
    if difficulty == 'hard':
        return rng.randint(1, 10)
    if difficulty == 'hail_mary':
        return rng.randint(1, 20)
    return rng.randint(1, 4)


def defense_roll(rng) -> int:
    return rng.randint(1, 4)


def matchup_modifier(offense: str, defense: str, offense_correct: bool, rng) -> Tuple[int, bool]:
    """Yardage modifier for an offense/defense pairing and whether the play
    risks a turnover. Calls are matched by keyword, case-insensitively."""
    o = offense.lower()
    d = defense.lower()
    mod = 0
    turnover_chance = False

    if 'run' in o:
        if 'run stop' in d:
            mod = rng.randint(-3, -1)
        elif 'pass' in d:
            mod = rng.randint(2, 4)
        elif 'blitz' in d:
            mod = rng.randint(3, 5) if offense_correct else rng.randint(-3, -1)
    elif 'screen' in o:
        if 'blitz' in d:
            mod = rng.randint(4, 6) if offense_correct else rng.randint(-2, 0)
        else:
            mod = rng.randint(0, 2)
    elif 'deep' in o or 'hail' in o:
        if 'pass' in d:
            mod = rng.randint(-5, -2)
        elif 'blitz' in d:
            mod = rng.randint(4, 7) if offense_correct else rng.randint(-6, -3)
        turnover_chance = True
    elif 'pass' in o:
        if 'pass' in d:
            mod = rng.randint(-3, -1)
        elif 'run' in d:
            mod = rng.randint(2, 4)
        elif 'blitz' in d:
            mod = rng.randint(3, 5) if offense_correct else rng.randint(-4, -2)
    elif 'trick' in o:
        mod = rng.randint(-2, 6)

    return mod, turnover_chance


@dataclass
class PlayInputs:
    offense_play: str
    offense_difficulty: str
    defense_play: str
    offense_roll: int
    defense_roll: int
    offense_correct: bool
    defense_correct: bool


def compute_yards(play: PlayInputs, rng) -> int:
    """Raw yards gained by the offense, clamped to [MIN_YARDS, MAX_YARDS]."""
    call = play.offense_play.lower()
    is_hail = 'hail' in call
    is_pass_like = 'pass' in call or 'screen' in call or is_hail
    roll_diff = play.defense_roll - play.offense_roll

    if is_hail:
        # Big upside when answered; otherwise incomplete unless the defense wins big below
        if play.offense_correct:
            yards = rng.randint(30, 50) if play.offense_roll >= 17 else rng.randint(12, 24)
        else:
            yards = 0
    elif is_pass_like:
        if play.offense_correct:
            yards = play.offense_roll + (3 if play.offense_difficulty == 'hard' else 1)
        else:
            yards = 0
    elif 'run' in call:
        yards = play.offense_roll + 1 if play.offense_correct else -rng.randint(1, 3)
    else:
        yards = play.offense_roll if play.offense_correct else -rng.randint(1, 2)

    mod, turnover_chance = matchup_modifier(play.offense_play, play.defense_play, play.offense_correct, rng)
    # A failed pass only loses yards when the defense earned it
    if is_pass_like and not play.offense_correct and not play.defense_correct:
        mod = max(0, mod)
    yards += mod

    if play.defense_correct:
        yards = yards // 2
        if not play.offense_correct:
            yards -= rng.randint(1, 3)
            if is_pass_like and roll_diff > 2:
                yards -= rng.randint(0, 2)
    elif play.offense_correct:
        yards += 2

    if is_hail and not play.offense_correct and play.offense_roll <= 3 and turnover_chance:
        yards = -rng.randint(5, 12)

    return max(MIN_YARDS, min(MAX_YARDS, yards))


def touchback_yard_line(receiving_side: str) -> int:
    """Absolute yard line of a touchback. Home drives toward 100, away toward 0."""
    return TOUCHBACK_YARDS if receiving_side == 'home' else 100 - TOUCHBACK_YARDS


@dataclass
class FieldState:
    down: int
    distance: int
    yard_line: int
    offense_side: str
    score_home: int = 0
    score_away: int = 0


@dataclass
class PlayOutcome:
    gained: int
    down: int
    distance: int
    yard_line: int
    offense_side: str
    score_home: int
    score_away: int
    turnover: bool = False
    touchdown: bool = False
    safety: bool = False

    @property
    def defense_side(self) -> str:
        return other_side(self.offense_side)

    @property
    def kickoff(self) -> bool:
        return self.touchdown or self.safety

    @property
    def result_text(self) -> str:
        if self.touchdown:
            return f"Touchdown! Gained {self.gained} yards"
        if self.safety:
            return "Safety"
        if self.turnover:
            return "Turnover on downs"
        return f"Gained {self.gained} yards"


def advance_field(state: FieldState, yards: int) -> PlayOutcome:
    """Apply ``yards`` to the field and work out downs, possession and score."""
    offense = state.offense_side
    defense = other_side(offense)
    direction = 1 if offense == 'home' else -1
    new_yard_line = min(100, max(0, state.yard_line + direction * yards))
    gained = (new_yard_line - state.yard_line) * direction
    remaining = state.distance - gained

    outcome = PlayOutcome(
        gained=gained,
        down=state.down + 1,
        distance=remaining if remaining > 0 else FIRST_DOWN_DISTANCE,
        yard_line=new_yard_line,
        offense_side=offense,
        score_home=state.score_home,
        score_away=state.score_away,
    )
    if remaining <= 0:
        outcome.down = 1
        outcome.distance = FIRST_DOWN_DISTANCE

    scored_side: Optional[str] = None
    goal_line = 100 if offense == 'home' else 0
    own_goal_line = 0 if offense == 'home' else 100
    if new_yard_line == goal_line:
        outcome.touchdown = True
        scored_side = offense
    elif new_yard_line == own_goal_line:
        outcome.safety = True
        scored_side = defense

    if scored_side is not None:
        points = TOUCHDOWN_POINTS if outcome.touchdown else SAFETY_POINTS
        if scored_side == 'home':
            outcome.score_home += points
        else:
            outcome.score_away += points
        # After a touchdown the scorer kicks; after a safety the scored-upon team kicks
        outcome.offense_side = defense
        outcome.down = 1
        outcome.distance = FIRST_DOWN_DISTANCE
        outcome.yard_line = touchback_yard_line(defense)
        return outcome

    if outcome.down > 4:
        outcome.turnover = True
        outcome.down = 1
        outcome.distance = FIRST_DOWN_DISTANCE
        outcome.offense_side = defense
    return outcome
