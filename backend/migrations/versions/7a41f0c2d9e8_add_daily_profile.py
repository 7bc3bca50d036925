"""add daily_profile for the daily challenge modes

Revision ID: 7a41f0c2d9e8
Revises: 3c9d1e7a5b20
Create Date: 2026-09-20 16:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7a41f0c2d9e8'
down_revision = '3c9d1e7a5b20'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Databases bootstrapped with db-reset already have the table
    if 'daily_profile' in set(insp.get_table_names()):
        return

    op.create_table(
        'daily_profile',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('mode', sa.String(length=16), nullable=False),
        sa.Column('day', sa.String(length=10), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('tier', sa.String(length=2), nullable=False),
        sa.Column('rounds', sa.Integer(), nullable=False),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'mode', name='uq_daily_profile_user_mode'),
    )
    with op.batch_alter_table('daily_profile', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_daily_profile_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_daily_profile_updated_at'), ['updated_at'], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'daily_profile' not in set(insp.get_table_names()):
        return

    with op.batch_alter_table('daily_profile', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_daily_profile_updated_at'))
        batch_op.drop_index(batch_op.f('ix_daily_profile_user_id'))
    op.drop_table('daily_profile')
