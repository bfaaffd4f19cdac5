"""Add default flag to addresses

Revision ID: sf002_add_address_default
Revises: sf001_create_storefront_tables
Create Date: 2026-10-20

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'sf002_add_address_default'
down_revision = 'sf001_create_storefront_tables'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        'addresses',
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
    )


def downgrade() -> None:
    # SQLite 不支持直接删列，使用 batch 模式重建表
    with op.batch_alter_table('addresses') as batch_op:
        batch_op.drop_column('is_default')
