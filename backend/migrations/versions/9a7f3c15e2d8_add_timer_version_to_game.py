"""add timer_version to game

Revision ID: 9a7f3c15e2d8
Revises: 4c2d9e71b0a3
Create Date: 2026-10-02 21:05:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9a7f3c15e2d8'
down_revision = '4c2d9e71b0a3'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('game')}
    with op.batch_alter_table('game') as batch_op:
        if 'timer_version' not in cols:
            batch_op.add_column(sa.Column('timer_version', sa.Integer(), nullable=False, server_default='0'))


def downgrade():
    with op.batch_alter_table('game') as batch_op:
        batch_op.drop_column('timer_version')
