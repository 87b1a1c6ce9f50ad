"""initial schema: merchants, delivery rules, fences, orders

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from geoalchemy2 import Geography


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _geography(geometry_type: str) -> Geography:
    # GiST indexes are created explicitly below
    return Geography(geometry_type=geometry_type, srid=4326, spatial_index=False)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        'merchants',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('center_location', _geography('POINT'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'delivery_rules',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('logic', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'fences',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('merchant_id', sa.String(length=64),
                  sa.ForeignKey('merchants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('fence_name', sa.String(length=255), nullable=False),
        sa.Column('fence_desc', sa.Text(), nullable=True),
        sa.Column('rule_id', sa.Integer(),
                  sa.ForeignKey('delivery_rules.id', ondelete='SET NULL'), nullable=True),
        sa.Column('shape_type', sa.String(length=16), nullable=False),
        sa.Column('radius', sa.Float(), nullable=False, server_default='0'),
        sa.Column('geom', _geography('GEOMETRY'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_fences_merchant_id', 'fences', ['merchant_id'])
    op.create_index('ix_fences_merchant_shape', 'fences', ['merchant_id', 'shape_type'])
    op.create_index('idx_fences_geom', 'fences', ['geom'], postgresql_using='gist')

    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('merchant_id', sa.String(length=64), sa.ForeignKey('merchants.id'), nullable=False),
        sa.Column('create_time', sa.DateTime(), nullable=False),
        sa.Column('amount', sa.DECIMAL(precision=10, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('rule_id', sa.Integer(), sa.ForeignKey('delivery_rules.id'), nullable=True),
        sa.Column('recipient_name', sa.String(length=255), nullable=False),
        sa.Column('recipient_address', sa.Text(), nullable=False),
        sa.Column('recipient_coords', _geography('POINT'), nullable=True),
        sa.Column('current_position', _geography('POINT'), nullable=True),
        sa.Column('route_path', sa.JSON(), nullable=True),
        sa.Column('last_update_time', sa.DateTime(), nullable=True),
        sa.Column('is_abnormal', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('abnormal_reason', sa.Text(), nullable=True),
    )
    op.create_index('ix_orders_merchant_id', 'orders', ['merchant_id'])
    op.create_index('ix_orders_merchant_status', 'orders', ['merchant_id', 'status'])
    op.create_index('ix_orders_merchant_created', 'orders', ['merchant_id', 'create_time'])
    op.create_index('ix_orders_merchant_user', 'orders', ['merchant_id', 'user_id'])
    op.create_index('idx_orders_recipient_coords', 'orders', ['recipient_coords'], postgresql_using='gist')


def downgrade() -> None:
    op.drop_index('idx_orders_recipient_coords', table_name='orders')
    op.drop_index('ix_orders_merchant_user', table_name='orders')
    op.drop_index('ix_orders_merchant_created', table_name='orders')
    op.drop_index('ix_orders_merchant_status', table_name='orders')
    op.drop_index('ix_orders_merchant_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('idx_fences_geom', table_name='fences')
    op.drop_index('ix_fences_merchant_shape', table_name='fences')
    op.drop_index('ix_fences_merchant_id', table_name='fences')
    op.drop_table('fences')
    op.drop_table('delivery_rules')
    op.drop_table('merchants')
