"""create_automation_tables

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _amount(name: str, default: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(28, 9), nullable=True, server_default=default)


def upgrade() -> None:
    """
    Create automation tables

    Creates:
    - users (enrolled chat users and their wallet public keys)
    - user_settings (one row per user)
    - action_records (append-only ledger of executed actions)
    """
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform', sa.String(length=20), nullable=False, comment='Chat platform (telegram/discord)'),
        sa.Column('platform_user_id', sa.String(length=64), nullable=False, comment='User ID on the chat platform'),
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.Column('public_key', sa.String(length=64), nullable=True, comment='Wallet public key (base58)'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('platform', 'platform_user_id', name='uq_users_platform_user'),
    )
    op.create_index(op.f('ix_users_public_key'), 'users', ['public_key'], unique=False)

    op.create_table(
        'user_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform', sa.String(length=20), nullable=False),
        sa.Column('platform_user_id', sa.String(length=64), nullable=False),
        _amount('motherload_threshold', '5000'),
        _amount('sol_per_block', '0.001'),
        sa.Column('num_blocks', sa.Integer(), nullable=True, server_default='10'),
        sa.Column('automation_budget_percent', sa.Integer(), nullable=True, server_default='50'),
        _amount('auto_claim_sol_threshold', '0.01'),
        _amount('auto_claim_orb_threshold', '10000'),
        _amount('auto_claim_staking_threshold', '1'),
        sa.Column('auto_swap_enabled', sa.Boolean(), nullable=True, server_default=sa.false()),
        _amount('swap_threshold', '100'),
        _amount('min_orb_price', '0'),
        _amount('min_orb_to_keep', '10'),
        _amount('min_swap_amount', '1'),
        sa.Column('slippage_bps', sa.Integer(), nullable=True, server_default='300'),
        sa.Column('auto_stake_enabled', sa.Boolean(), nullable=True, server_default=sa.false()),
        _amount('stake_threshold', '50'),
        sa.Column('auto_transfer_enabled', sa.Boolean(), nullable=True, server_default=sa.false()),
        _amount('orb_transfer_threshold', '100'),
        sa.Column('transfer_recipient_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('platform', 'platform_user_id', name='uq_user_settings_platform_user'),
    )

    op.create_table(
        'action_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform', sa.String(length=20), nullable=False),
        sa.Column('platform_user_id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False, comment='claim_sol/claim_orb/claim_stake/swap/stake/transfer/deploy'),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('requested_amount', sa.BigInteger(), nullable=False),
        sa.Column('sol_amount', sa.BigInteger(), nullable=False),
        sa.Column('orb_amount', sa.BigInteger(), nullable=False),
        sa.Column('signature', sa.String(length=128), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_action_records_user_created',
        'action_records',
        ['platform', 'platform_user_id', 'created_at'],
        unique=False,
    )


def downgrade() -> None:
    """
    Drop automation tables

    WARNING: This deletes the action ledger!
    """
    op.drop_index('ix_action_records_user_created', table_name='action_records')
    op.drop_table('action_records')
    op.drop_table('user_settings')
    op.drop_index(op.f('ix_users_public_key'), table_name='users')
    op.drop_table('users')
