"""create user, game and saved_blind_structure tables

Revision ID: 4c2d9e71b0a3
Revises:
Create Date: 2026-09-14 19:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2d9e71b0a3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_username'), 'user', ['username'], unique=True)

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_code', sa.String(length=8), nullable=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('game_date_time', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        sa.Column('tournament_status', sa.String(length=32), nullable=False, server_default='Registering'),
        sa.Column('blind_structure', sa.Text(), nullable=True),
        sa.Column('current_blind_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_remaining_seconds', sa.Integer(), nullable=True),
        sa.Column('timer_running', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('timer_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('timer_last_update', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['created_by_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_game_game_code'), 'game', ['game_code'], unique=True)

    op.create_table(
        'saved_blind_structure',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('levels', sa.Text(), nullable=False),
        sa.Column('enable_bb_antes', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'name', name='uq_saved_blind_structure_owner_name'),
    )
    op.create_index(op.f('ix_saved_blind_structure_owner_id'), 'saved_blind_structure', ['owner_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_saved_blind_structure_owner_id'), table_name='saved_blind_structure')
    op.drop_table('saved_blind_structure')
    op.drop_index(op.f('ix_game_game_code'), table_name='game')
    op.drop_table('game')
    op.drop_index(op.f('ix_user_username'), table_name='user')
    op.drop_table('user')
