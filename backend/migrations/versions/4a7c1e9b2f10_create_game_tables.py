"""create game, player, play, trivia and event tables

Revision ID: 4a7c1e9b2f10
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4a7c1e9b2f10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'question',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('choices', sa.JSON(), nullable=False),
        sa.Column('correct_index', sa.Integer(), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('type', sa.String(length=32), nullable=True),
        sa.Column('source', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=12), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('mode', sa.String(length=16), nullable=False),
        sa.Column('home_team_name', sa.String(length=64), nullable=True),
        sa.Column('away_team_name', sa.String(length=64), nullable=True),
        sa.Column('lobby_locked', sa.Boolean(), nullable=False),
        sa.Column('host_player_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('phase', sa.String(length=32), nullable=False),
        sa.Column('play_subphase', sa.String(length=32), nullable=True),
        sa.Column('quarter', sa.Integer(), nullable=False),
        sa.Column('clock_seconds', sa.Integer(), nullable=False),
        sa.Column('play_clock_seconds', sa.Integer(), nullable=False),
        sa.Column('possession_side', sa.String(length=8), nullable=True),
        sa.Column('offense_side', sa.String(length=8), nullable=True),
        sa.Column('defense_side', sa.String(length=8), nullable=True),
        sa.Column('down', sa.Integer(), nullable=False),
        sa.Column('distance', sa.Integer(), nullable=False),
        sa.Column('yard_line', sa.Integer(), nullable=False),
        sa.Column('score_home', sa.Integer(), nullable=False),
        sa.Column('score_away', sa.Integer(), nullable=False),
        sa.Column('toss_result', sa.String(length=8), nullable=True),
        sa.Column('toss_winner_side', sa.String(length=8), nullable=True),
        sa.Column('toss_choice', sa.String(length=8), nullable=True),
        sa.Column('second_half_kickoff_side', sa.String(length=8), nullable=True),
        sa.Column('current_play_seq', sa.Integer(), nullable=False),
        sa.Column('last_play_id', sa.Integer(), nullable=True),
        sa.Column('play_question_id', sa.Integer(), nullable=True),
        sa.Column('picker_player_id', sa.Integer(), nullable=True),
        sa.Column('target_score', sa.Integer(), nullable=False),
        sa.Column('current_block', sa.Integer(), nullable=False),
        sa.Column('winner_player_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['play_question_id'], ['question.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_game_code'), 'game', ['code'], unique=True)

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('side', sa.String(length=8), nullable=True),
        sa.Column('ready', sa.Boolean(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('correct_count', sa.Integer(), nullable=False),
        sa.Column('incorrect_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'display_name', name='unique_game_display_name'),
    )
    op.create_index(op.f('ix_player_game_id'), 'player', ['game_id'], unique=False)

    op.create_table(
        'play_call',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('side', sa.String(length=8), nullable=True),
        sa.Column('role', sa.String(length=8), nullable=False),
        sa.Column('play_call', sa.String(length=64), nullable=True),
        sa.Column('difficulty', sa.String(length=16), nullable=True),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('answer', sa.Boolean(), nullable=True),
        sa.Column('roll', sa.Integer(), nullable=True),
        sa.Column('ready_after_roll', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['player_id'], ['player.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'player_id', 'seq', name='unique_play_call_seq'),
    )
    op.create_index('idx_play_call_game_seq', 'play_call', ['game_id', 'seq'], unique=False)

    op.create_table(
        'play',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('quarter', sa.Integer(), nullable=True),
        sa.Column('offense_side', sa.String(length=8), nullable=True),
        sa.Column('defense_side', sa.String(length=8), nullable=True),
        sa.Column('call_offense', sa.String(length=64), nullable=True),
        sa.Column('call_defense', sa.String(length=64), nullable=True),
        sa.Column('difficulty', sa.String(length=16), nullable=True),
        sa.Column('question_id', sa.Integer(), nullable=True),
        sa.Column('offense_roll', sa.Integer(), nullable=True),
        sa.Column('defense_roll', sa.Integer(), nullable=True),
        sa.Column('offense_correct', sa.Boolean(), nullable=True),
        sa.Column('defense_correct', sa.Boolean(), nullable=True),
        sa.Column('yards', sa.Integer(), nullable=True),
        sa.Column('turnover', sa.Boolean(), nullable=False),
        sa.Column('result_text', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_play_game_seq', 'play', ['game_id', 'seq'], unique=False)

    op.create_table(
        'round',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('difficulty', sa.String(length=16), nullable=True),
        sa.Column('block', sa.Integer(), nullable=False),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['question.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'seq', name='unique_round_seq'),
    )
    op.create_index(op.f('ix_round_game_id'), 'round', ['game_id'], unique=False)

    op.create_table(
        'answer',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('round_id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('choice_index', sa.Integer(), nullable=True),
        sa.Column('correct', sa.Boolean(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('ready_next', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['player_id'], ['player.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['round_id'], ['round.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('round_id', 'player_id', name='unique_round_answer'),
    )
    op.create_index(op.f('ix_answer_round_id'), 'answer', ['round_id'], unique=False)

    op.create_table(
        'game_event',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=64), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_game_event_game_id'), 'game_event', ['game_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_game_event_game_id'), table_name='game_event')
    op.drop_table('game_event')
    op.drop_index(op.f('ix_answer_round_id'), table_name='answer')
    op.drop_table('answer')
    op.drop_index(op.f('ix_round_game_id'), table_name='round')
    op.drop_table('round')
    op.drop_index('idx_play_game_seq', table_name='play')
    op.drop_table('play')
    op.drop_index('idx_play_call_game_seq', table_name='play_call')
    op.drop_table('play_call')
    op.drop_index(op.f('ix_player_game_id'), table_name='player')
    op.drop_table('player')
    op.drop_index(op.f('ix_game_code'), table_name='game')
    op.drop_table('game')
    op.drop_table('question')
