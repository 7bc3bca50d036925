"""create private_session and leaderboard tables

Revision ID: 3c9d1e7a5b20
Revises:
Create Date: 2026-09-02 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9d1e7a5b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'private_session',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('target_shape', sa.String(length=16), nullable=False),
        sa.Column('sat_shape', sa.String(length=16), nullable=False),
        sa.Column('sat_color_idx', sa.Integer(), nullable=False),
        sa.Column('sat_dir_idx', sa.Integer(), nullable=False),
        sa.Column('target_color_idx', sa.Integer(), nullable=False),
        sa.Column('sat2_shape', sa.String(length=16), nullable=False),
        sa.Column('sat2_dir_idx', sa.Integer(), nullable=False),
        sa.Column('target_solid', sa.Boolean(), nullable=False),
        sa.Column('session_salt', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )
    op.create_table(
        'leaderboard',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('tier', sa.String(length=2), nullable=False),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('streak', sa.Integer(), nullable=False),
        sa.Column('pin_hash', sa.String(length=128), nullable=True),
        sa.Column('session_zone', sa.Integer(), nullable=False),
        sa.Column('profile_data', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )
    with op.batch_alter_table('leaderboard', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_leaderboard_updated_at'), ['updated_at'], unique=False)


def downgrade():
    with op.batch_alter_table('leaderboard', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_leaderboard_updated_at'))
    op.drop_table('leaderboard')
    op.drop_table('private_session')
