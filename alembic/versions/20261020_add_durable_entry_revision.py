"""add revision token to durable_entries

Revision ID: 20261020_add_durable_entry_revision
Revises: 20261019_create_durable_entries
Create Date: 2026-10-20
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261020_add_durable_entry_revision"
down_revision = "20261019_create_durable_entries"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("durable_entries") as batch_op:
        batch_op.add_column(sa.Column("revision", sa.String(length=32), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("durable_entries") as batch_op:
        batch_op.drop_column("revision")
