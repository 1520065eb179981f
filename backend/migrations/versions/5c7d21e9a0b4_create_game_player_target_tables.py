"""create user, game, player and target_assignment tables

Revision ID: 5c7d21e9a0b4
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c7d21e9a0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('email', sa.String(length=120), nullable=False),
            sa.Column('first_name', sa.String(length=64), nullable=False),
            sa.Column('surname', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_user_email', 'user', ['email'], unique=True)

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=120), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('admin_emails', sa.Text(), nullable=True),
            sa.Column('whitelist', sa.Text(), nullable=True),
        )

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('team_partner_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
            sa.Column('invited_ids', sa.Text(), nullable=True),
            sa.Column('invited_by_ids', sa.Text(), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False),
            sa.UniqueConstraint('game_id', 'user_id', name='uq_player_game_user'),
        )
        op.create_index('ix_player_game_id', 'player', ['game_id'])
        op.create_index('ix_player_user_id', 'player', ['user_id'])

    if 'target_assignment' not in existing_tables:
        op.create_table(
            'target_assignment',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
            sa.Column('target_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('version', sa.Integer(), nullable=False),
            sa.CheckConstraint('player_id <> target_id', name='ck_target_assignment_not_self'),
        )
        op.create_index('ix_target_assignment_game_id', 'target_assignment', ['game_id'])
        op.create_index('ix_target_assignment_player_id', 'target_assignment', ['player_id'])
        op.create_index('ix_target_assignment_target_id', 'target_assignment', ['target_id'])


def downgrade():
    op.drop_table('target_assignment')
    op.drop_table('player')
    op.drop_table('game')
    op.drop_table('user')
