"""Convert legacy mode-less buckets to spend buckets

Revision ID: 0002_migrate_legacy_buckets
Revises: 0001_initial_ledger_schema
Create Date: 2025-10-20 09:30:00.000000

"""
from alembic import op

from bucketledger.modules.budget.migration import migrate_legacy_buckets

# revision identifiers, used by Alembic.
revision = '0002_migrate_legacy_buckets'
down_revision = '0001_initial_ledger_schema'
branch_labels = None
depends_on = None


def upgrade():
    migrated = migrate_legacy_buckets(op.get_bind())
    print(f"✓ Migrated {migrated} legacy buckets to spend mode")


def downgrade():
    # Data migration; the legacy allocation_value column is left untouched
    pass
