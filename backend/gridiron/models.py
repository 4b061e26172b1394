from gridiron import db
from datetime import datetime, timezone
import secrets
import string

SIDES = ('home', 'away')
ROLE_REF = 'ref'
ROLE_HOST = 'host'
ROLE_PLAYER = 'player'
# Roles that run the game rather than play it
OFFICIAL_ROLES = (ROLE_REF, ROLE_HOST)


def utcnow():
    return datetime.now(timezone.utc)


def other_side(side):
    return 'away' if side == 'home' else 'home'


def _iso(value):
    return value.isoformat() if value else None


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'display_name', name='unique_game_display_name'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    display_name = db.Column(db.String(64), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_PLAYER)
    side = db.Column(db.String(8), nullable=True)  # home, away
    ready = db.Column(db.Boolean, nullable=False, default=False)
    # Trivia tallies
    score = db.Column(db.Integer, nullable=False, default=0)
    correct_count = db.Column(db.Integer, nullable=False, default=0)
    incorrect_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    game = db.relationship('Game', back_populates='players')

    @property
    def is_official(self):
        return self.role in OFFICIAL_ROLES

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'display_name': self.display_name,
            'role': self.role,
            'side': self.side,
            'ready': self.ready,
            'score': self.score,
            'correct_count': self.correct_count,
            'incorrect_count': self.incorrect_count,
        }


def generate_game_code(length=6):
    """Generate a unique, short game code."""
    alphabet = string.ascii_uppercase + string.digits
    while True:
        code = ''.join(secrets.choice(alphabet) for _ in range(length))
        if not Game.query.filter_by(code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(12), unique=True, nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False, default='lobby_open')  # lobby_open, in_progress, completed
    mode = db.Column(db.String(16), nullable=False, default='football')  # football, trivia
    home_team_name = db.Column(db.String(64), default='Home')
    away_team_name = db.Column(db.String(64), default='Away')
    lobby_locked = db.Column(db.Boolean, nullable=False, default=False)
    # Player references are plain columns; the players are owned by the game
    host_player_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    # Football state
    phase = db.Column(db.String(32), nullable=False, default='lobby')  # lobby, coin_toss, coin_toss_choice, kickoff, drive, finished
    play_subphase = db.Column(db.String(32), nullable=True)  # play_call, question, rolls, rolls_done
    quarter = db.Column(db.Integer, nullable=False, default=1)
    clock_seconds = db.Column(db.Integer, nullable=False, default=900)
    play_clock_seconds = db.Column(db.Integer, nullable=False, default=40)
    possession_side = db.Column(db.String(8), nullable=True)
    offense_side = db.Column(db.String(8), nullable=True)
    defense_side = db.Column(db.String(8), nullable=True)
    down = db.Column(db.Integer, nullable=False, default=1)
    distance = db.Column(db.Integer, nullable=False, default=10)
    yard_line = db.Column(db.Integer, nullable=False, default=25)
    score_home = db.Column(db.Integer, nullable=False, default=0)
    score_away = db.Column(db.Integer, nullable=False, default=0)
    toss_result = db.Column(db.String(8), nullable=True)
    toss_winner_side = db.Column(db.String(8), nullable=True)
    toss_choice = db.Column(db.String(8), nullable=True)  # receive, kick, defer
    second_half_kickoff_side = db.Column(db.String(8), nullable=True)  # receives the second-half kickoff
    current_play_seq = db.Column(db.Integer, nullable=False, default=1)
    last_play_id = db.Column(db.Integer, nullable=True)
    play_question_id = db.Column(db.Integer, db.ForeignKey('question.id', ondelete='SET NULL'), nullable=True)

    # Trivia state
    picker_player_id = db.Column(db.Integer, nullable=True)
    target_score = db.Column(db.Integer, nullable=False, default=25)
    current_block = db.Column(db.Integer, nullable=False, default=1)
    winner_player_id = db.Column(db.Integer, nullable=True)

    players = db.relationship('Player', back_populates='game', order_by='Player.id')
    play_calls = db.relationship('PlayCall', backref='game', lazy='dynamic')
    plays = db.relationship('Play', backref='game', lazy='dynamic')
    rounds = db.relationship('Round', backref='game', lazy='dynamic')
    events = db.relationship('GameEvent', backref='game', lazy='dynamic')
    play_question = db.relationship('Question')

    def __init__(self, **kwargs):
        length = kwargs.pop('code_length', 6)
        super(Game, self).__init__(**kwargs)
        if not self.code:
            self.code = generate_game_code(length)

    @property
    def participants(self):
        return [p for p in self.players if not p.is_official]

    def find_player(self, player_id):
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def side_for_role(self, role):
        return self.offense_side if role == 'offense' else self.defense_side

    def to_dict(self):
        calls = []
        if self.phase == 'drive':
            calls = [c.to_dict() for c in self.play_calls.filter_by(seq=self.current_play_seq).all()]
        return {
            'id': self.id,
            'code': self.code,
            'status': self.status,
            'mode': self.mode,
            'home_team_name': self.home_team_name,
            'away_team_name': self.away_team_name,
            'lobby_locked': self.lobby_locked,
            'host_player_id': self.host_player_id,
            'players': [p.to_dict() for p in self.players],
            'phase': self.phase,
            'play_subphase': self.play_subphase,
            'quarter': self.quarter,
            'clock_seconds': self.clock_seconds,
            'play_clock_seconds': self.play_clock_seconds,
            'possession_side': self.possession_side,
            'offense_side': self.offense_side,
            'defense_side': self.defense_side,
            'down': self.down,
            'distance': self.distance,
            'yard_line': self.yard_line,
            'score_home': self.score_home,
            'score_away': self.score_away,
            'toss_result': self.toss_result,
            'toss_winner_side': self.toss_winner_side,
            'toss_choice': self.toss_choice,
            'second_half_kickoff_side': self.second_half_kickoff_side,
            'current_play_seq': self.current_play_seq,
            'last_play_id': self.last_play_id,
            'play_question': self.play_question.to_dict(reveal=False) if self.play_question else None,
            'current_play_calls': calls,
            'picker_player_id': self.picker_player_id,
            'target_score': self.target_score,
            'current_block': self.current_block,
            'winner_player_id': self.winner_player_id,
        }


class PlayCall(db.Model):
    __tablename__ = 'play_call'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'player_id', 'seq', name='unique_play_call_seq'),
        db.Index('idx_play_call_game_seq', 'game_id', 'seq'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False)
    side = db.Column(db.String(8), nullable=True)
    role = db.Column(db.String(8), nullable=False)  # offense, defense
    play_call = db.Column(db.String(64), nullable=True)
    difficulty = db.Column(db.String(16), nullable=True)
    seq = db.Column(db.Integer, nullable=False)
    answer = db.Column(db.Boolean, nullable=True)
    roll = db.Column(db.Integer, nullable=True)
    ready_after_roll = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    player = db.relationship('Player')

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'side': self.side,
            'role': self.role,
            'play_call': self.play_call,
            'difficulty': self.difficulty,
            'seq': self.seq,
            'answer': self.answer,
            'roll': self.roll,
            'ready_after_roll': self.ready_after_roll,
        }


class Play(db.Model):
    __tablename__ = 'play'
    __table_args__ = (
        db.Index('idx_play_game_seq', 'game_id', 'seq'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False)
    seq = db.Column(db.Integer, nullable=False)
    quarter = db.Column(db.Integer, nullable=True)
    offense_side = db.Column(db.String(8))
    defense_side = db.Column(db.String(8))
    call_offense = db.Column(db.String(64))
    call_defense = db.Column(db.String(64))
    difficulty = db.Column(db.String(16))
    question_id = db.Column(db.Integer, nullable=True)
    offense_roll = db.Column(db.Integer)
    defense_roll = db.Column(db.Integer)
    offense_correct = db.Column(db.Boolean)
    defense_correct = db.Column(db.Boolean)
    yards = db.Column(db.Integer)
    turnover = db.Column(db.Boolean, nullable=False, default=False)
    result_text = db.Column(db.String(128))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'seq': self.seq,
            'quarter': self.quarter,
            'offense_side': self.offense_side,
            'defense_side': self.defense_side,
            'call_offense': self.call_offense,
            'call_defense': self.call_defense,
            'difficulty': self.difficulty,
            'question_id': self.question_id,
            'offense_roll': self.offense_roll,
            'defense_roll': self.defense_roll,
            'offense_correct': self.offense_correct,
            'defense_correct': self.defense_correct,
            'yards': self.yards,
            'turnover': self.turnover,
            'result_text': self.result_text,
            'created_at': _iso(self.created_at),
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    text = db.Column(db.Text, nullable=False)
    choices = db.Column(db.JSON, nullable=False)
    correct_index = db.Column(db.Integer, nullable=False)
    difficulty = db.Column(db.String(16), nullable=False, default='medium')
    category = db.Column(db.String(128), nullable=True)
    type = db.Column(db.String(32), nullable=True)
    source = db.Column(db.String(32), nullable=False, default='local')
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self, reveal=True):
        data = {
            'id': self.id,
            'text': self.text,
            'choices': list(self.choices or []),
            'difficulty': self.difficulty,
            'category': self.category,
        }
        if reveal:
            data['correct_index'] = self.correct_index
        return data


class Round(db.Model):
    __tablename__ = 'round'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'seq', name='unique_round_seq'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    seq = db.Column(db.Integer, nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(db.String(16), nullable=False, default='pending')  # pending, live, locked, revealed
    category = db.Column(db.String(128), nullable=True)
    difficulty = db.Column(db.String(16), nullable=True)
    block = db.Column(db.Integer, nullable=False, default=1)
    starts_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ends_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    question = db.relationship('Question')
    answers = db.relationship('Answer', backref='round', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'seq': self.seq,
            'status': self.status,
            'question_id': self.question_id,
            'category': self.category,
            'difficulty': self.difficulty,
            'block': self.block,
            'starts_at': _iso(self.starts_at),
            'ends_at': _iso(self.ends_at),
        }


class Answer(db.Model):
    __tablename__ = 'answer'
    __table_args__ = (
        db.UniqueConstraint('round_id', 'player_id', name='unique_round_answer'),
    )
    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.Integer, db.ForeignKey('round.id', ondelete='CASCADE'), nullable=False, index=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False)
    choice_index = db.Column(db.Integer, nullable=True)
    correct = db.Column(db.Boolean, nullable=True)
    points = db.Column(db.Integer, nullable=False, default=0)
    ready_next = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    player = db.relationship('Player')

    def to_dict(self, reveal=True):
        data = {
            'player_id': self.player_id,
            'display_name': self.player.display_name if self.player else None,
            'correct': self.correct,
            'points': self.points,
            'ready_next': self.ready_next,
        }
        if reveal:
            data['choice_index'] = self.choice_index
        return data


class GameEvent(db.Model):
    __tablename__ = 'game_event'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(64), nullable=False)
    payload = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'type': self.type,
            'payload': self.payload,
            'created_at': _iso(self.created_at),
        }
