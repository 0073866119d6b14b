"""Initial migration

Revision ID: 0001_initial
Revises: 
Create Date: 2025-05-05 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create networks table (без колонки type: её добавляет 0002)
    op.create_table(
        'networks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('bssid', sa.String(), nullable=False, unique=True, comment="MAC-адрес или идентификатор LTE-соты"),
        sa.Column('ssid', sa.String(), nullable=True),
        sa.Column('encryption', sa.String(), nullable=True),
        sa.Column('channel', sa.Integer(), nullable=True),
        sa.Column('manufacturer', sa.String(), nullable=True),
        sa.Column('first_seen', sa.BigInteger(), nullable=False, comment="Миллисекунды Unix"),
        sa.Column('last_seen', sa.BigInteger(), nullable=False, comment="Миллисекунды Unix"),
        sa.Column('observation_count', sa.Integer(), server_default='1'),
        sa.Column('best_lat', sa.Float(), nullable=True),
        sa.Column('best_lon', sa.Float(), nullable=True),
        sa.Column('best_signal', sa.Integer(), nullable=True),
    )
    op.create_index('idx_networks_bssid', 'networks', ['bssid'])
    op.create_index('idx_networks_ssid', 'networks', ['ssid'])
    op.create_index('idx_networks_location', 'networks', ['best_lat', 'best_lon'])

    # Create observations table
    op.create_table(
        'observations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('network_id', sa.Integer(), sa.ForeignKey('networks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('signal_strength', sa.Integer(), nullable=True),
        sa.Column('timestamp', sa.BigInteger(), nullable=False, comment="Миллисекунды Unix"),
    )
    op.create_index('idx_observations_network', 'observations', ['network_id'])
    op.create_index('idx_observations_timestamp', 'observations', ['timestamp'])


def downgrade():
    op.drop_index('idx_observations_timestamp', table_name='observations')
    op.drop_index('idx_observations_network', table_name='observations')
    op.drop_table('observations')
    op.drop_index('idx_networks_location', table_name='networks')
    op.drop_index('idx_networks_ssid', table_name='networks')
    op.drop_index('idx_networks_bssid', table_name='networks')
    op.drop_table('networks')
