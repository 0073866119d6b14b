"""
Alembic migration: add type (WIFI / BLE / LTE) to networks
"""

# revision identifiers, used by Alembic.
revision = '0002_add_network_type'
down_revision = '0001_initial'
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade():
    # Существующие строки получают 'WIFI'
    op.add_column('networks', sa.Column('type', sa.String(), nullable=True, server_default='WIFI'))
    op.create_index('idx_networks_type', 'networks', ['type'])


def downgrade():
    op.drop_index('idx_networks_type', table_name='networks')
    with op.batch_alter_table('networks') as batch_op:
        batch_op.drop_column('type')
