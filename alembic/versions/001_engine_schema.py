"""Engine schema

Revision ID: 001_engine_schema
Revises:
Create Date: 2026-10-19

Tables:
- resources: room inventory and venues with capacity / rate configuration
- reservations: stays and venue slots (never deleted)
- maintenance_windows: inclusive blackout dates
- pricing_rules: dynamic pricing rules by scope
- stay_rules: minimum / maximum stay
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_engine_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'resources',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('resource_key', sa.String(255), nullable=False),
        sa.Column('kind', sa.String(10), nullable=False),
        sa.Column('name', sa.String(200), nullable=False, server_default=''),
        sa.Column('property_id', sa.String(36), nullable=False),
        sa.Column('room_category_code', sa.String(50), nullable=True),
        sa.Column('plan_code', sa.String(10), nullable=True),
        sa.Column('occupancy_code', sa.String(10), nullable=True),
        sa.Column('venue_id', sa.String(36), nullable=True),
        sa.Column('category_id', sa.String(36), nullable=True),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('extra_guest_charge', sa.Numeric(12, 2), server_default='0'),
        sa.Column('tax_rate', sa.Numeric(5, 4), nullable=True),
        sa.Column('service_fee_rate', sa.Numeric(5, 4), nullable=True),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('inventory', sa.Integer, server_default='1'),
        sa.Column('capacities', sa.JSON, nullable=True),
        sa.Column('plan_rates', sa.JSON, nullable=True),
        sa.Column('meal_prices', sa.JSON, nullable=True),
        sa.Column('window_open', sa.Time, nullable=True),
        sa.Column('window_close', sa.Time, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_resources_resource_key', 'resources', ['resource_key'], unique=True)
    op.create_index('ix_resources_property_id', 'resources', ['property_id'])

    op.create_table(
        'reservations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('resource_id', sa.String(36), sa.ForeignKey('resources.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
        sa.Column('guest_name', sa.String(100), nullable=True),
        sa.Column('guest_count', sa.Integer, nullable=False, server_default='1'),
        sa.Column('rooms', sa.Integer, nullable=False, server_default='1'),
        sa.Column('date_from', sa.Date, nullable=True),
        sa.Column('date_to', sa.Date, nullable=True),
        sa.Column('event_date', sa.Date, nullable=True),
        sa.Column('start_time', sa.Time, nullable=True),
        sa.Column('end_time', sa.Time, nullable=True),
        sa.Column('layout_style', sa.String(50), nullable=True),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_reservation_resource_status', 'reservations', ['resource_id', 'status'])
    op.create_index('ix_reservation_resource_dates', 'reservations', ['resource_id', 'date_from', 'date_to'])
    op.create_index('ix_reservation_resource_event_date', 'reservations', ['resource_id', 'event_date'])

    op.create_table(
        'maintenance_windows',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('resource_id', sa.String(36), sa.ForeignKey('resources.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('reason', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_maintenance_windows_resource_id', 'maintenance_windows', ['resource_id'])

    op.create_table(
        'pricing_rules',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, server_default=''),
        sa.Column('scope', sa.String(20), nullable=False),
        sa.Column('scope_id', sa.String(255), nullable=False),
        sa.Column('rule_type', sa.String(20), nullable=False),
        sa.Column('adjustment_type', sa.String(20), nullable=False),
        sa.Column('adjustment_values', sa.JSON, nullable=False),
        sa.Column('priority', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('days_of_week', sa.JSON, nullable=True),
        sa.Column('start_date', sa.Date, nullable=True),
        sa.Column('end_date', sa.Date, nullable=True),
        sa.Column('min_advance_days', sa.Integer, nullable=True),
        sa.Column('max_advance_days', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_pricing_rule_scope', 'pricing_rules', ['scope', 'scope_id'])

    op.create_table(
        'stay_rules',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('property_id', sa.String(36), nullable=False),
        sa.Column('resource_id', sa.String(36), nullable=True),
        sa.Column('min_stay', sa.Integer, nullable=False, server_default='1'),
        sa.Column('max_stay', sa.Integer, nullable=True),
        sa.Column('start_date', sa.Date, nullable=True),
        sa.Column('end_date', sa.Date, nullable=True),
        sa.Column('priority', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_stay_rules_property_id', 'stay_rules', ['property_id'])
    op.create_index('ix_stay_rules_resource_id', 'stay_rules', ['resource_id'])


def downgrade() -> None:
    op.drop_table('stay_rules')
    op.drop_table('pricing_rules')
    op.drop_table('maintenance_windows')
    op.drop_table('reservations')
    op.drop_table('resources')
