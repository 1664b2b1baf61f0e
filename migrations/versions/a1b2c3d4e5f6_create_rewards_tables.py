"""Create stars, rewards and stardust_transactions tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the marketplace tables."""
    op.create_table(
        'stars',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('star_name', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('avatar', sa.String(500), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('stardust', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('stardust >= 0', name='ck_stars_stardust_non_negative'),
        sa.PrimaryKeyConstraint('id', name='pk_stars'),
        sa.UniqueConstraint('email', name='uq_stars_email'),
        sa.UniqueConstraint('star_name', name='uq_stars_star_name')
    )

    op.create_table(
        'rewards',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('lister_id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.JSON(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('delivery_type', sa.String(10), nullable=False),
        sa.Column('usage_type', sa.String(20), nullable=False),
        sa.Column('delivery_data', sa.JSON(), nullable=True),
        sa.Column('delivery_instructions', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('stock_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('used_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('price > 0', name='ck_rewards_price_positive'),
        sa.ForeignKeyConstraint(['lister_id'], ['stars.id'], name='fk_rewards_lister_id_stars'),
        sa.PrimaryKeyConstraint('id', name='pk_rewards')
    )
    op.create_index('ix_rewards_active_price', 'rewards', ['is_active', 'price'])

    op.create_table(
        'stardust_transactions',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('star_id', sa.String(36), nullable=False),
        sa.Column('reward_id', sa.String(36), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(20), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('related_transaction_id', sa.String(36), nullable=True),
        sa.Column('reversed_at', sa.DateTime(), nullable=True),
        sa.Column('reversed_reason', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['star_id'], ['stars.id'], name='fk_stardust_transactions_star_id_stars'),
        sa.ForeignKeyConstraint(['reward_id'], ['rewards.id'], name='fk_stardust_transactions_reward_id_rewards'),
        sa.ForeignKeyConstraint(
            ['related_transaction_id'], ['stardust_transactions.id'],
            name='fk_stardust_transactions_related_transaction_id_stardust_transactions'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_stardust_transactions')
    )
    op.create_index(
        'ix_stardust_transactions_star_reward',
        'stardust_transactions',
        ['star_id', 'reward_id']
    )


def downgrade():
    """Drop the marketplace tables."""
    op.drop_index('ix_stardust_transactions_star_reward', table_name='stardust_transactions')
    op.drop_table('stardust_transactions')
    op.drop_index('ix_rewards_active_price', table_name='rewards')
    op.drop_table('rewards')
    op.drop_table('stars')
