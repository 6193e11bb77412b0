"""Initial schema - users, devices, sensor_data and schedules tables

Revision ID: 0001
Revises:
Create Date: 2025-11-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('whatsapp_number', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('user_id')
    )
    op.create_index('ix_users_whatsapp_number', 'users', ['whatsapp_number'], unique=True)

    # Create devices table
    op.create_table(
        'devices',
        sa.Column('device_id', sa.String(length=64), nullable=False),
        sa.Column('device_name', sa.String(length=100), nullable=True),
        sa.Column('threshold_temp', sa.Float(), nullable=True, server_default='35'),
        sa.Column('threshold_gas', sa.Float(), nullable=True, server_default='300'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('device_id')
    )
    op.create_index('ix_devices_user_id', 'devices', ['user_id'], unique=False)

    # Create sensor_data table (no FK: readings from unknown devices are kept)
    op.create_table(
        'sensor_data',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.String(length=64), nullable=False),
        sa.Column('temperature', sa.Float(), nullable=False),
        sa.Column('humidity', sa.Float(), nullable=True),
        sa.Column('gas_ppm', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sensor_data_device_id', 'sensor_data', ['device_id'], unique=False)
    op.create_index('ix_sensor_data_timestamp', 'sensor_data', ['timestamp'], unique=False)

    # Create schedules table (one row per device)
    op.create_table(
        'schedules',
        sa.Column('device_id', sa.String(length=64), nullable=False),
        sa.Column('times', postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('device_id')
    )


def downgrade() -> None:
    op.drop_table('schedules')
    op.drop_index('ix_sensor_data_timestamp', table_name='sensor_data')
    op.drop_index('ix_sensor_data_device_id', table_name='sensor_data')
    op.drop_table('sensor_data')
    op.drop_index('ix_devices_user_id', table_name='devices')
    op.drop_table('devices')
    op.drop_index('ix_users_whatsapp_number', table_name='users')
    op.drop_table('users')
