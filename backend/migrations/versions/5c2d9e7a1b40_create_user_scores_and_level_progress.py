"""create user, math_scores and level_progress

Revision ID: 5c2d9e7a1b40
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e7a1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('avatar_url', sa.String(length=512), nullable=True),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'math_scores' not in existing_tables:
        op.create_table(
            'math_scores',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('operation_type', sa.String(length=32), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_math_scores_user_id', 'math_scores', ['user_id'])
        op.create_index('ix_math_scores_operation_type', 'math_scores', ['operation_type'])

    if 'level_progress' not in existing_tables:
        op.create_table(
            'level_progress',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('owner_key', sa.String(length=64), nullable=False),
            sa.Column('operation', sa.String(length=32), nullable=False),
            sa.Column('level', sa.Integer(), nullable=False, server_default='0'),
            sa.UniqueConstraint('owner_key', 'operation', name='uq_level_progress_owner_operation'),
        )
        op.create_index('ix_level_progress_owner_key', 'level_progress', ['owner_key'])


def downgrade():
    op.drop_index('ix_level_progress_owner_key', table_name='level_progress')
    op.drop_table('level_progress')
    op.drop_index('ix_math_scores_operation_type', table_name='math_scores')
    op.drop_index('ix_math_scores_user_id', table_name='math_scores')
    op.drop_table('math_scores')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
