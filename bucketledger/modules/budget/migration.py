"""One-time migration of buckets written before modes existed.

Legacy rows have no ``mode`` and keep their plan in a single ``allocation_value``
column; their spendable money lived in ``current_balance``.
"""
import logging
from sqlalchemy import inspect, text

logger = logging.getLogger(__name__)


def migrate_legacy_buckets(connection) -> int:
    """Convert legacy rows to spend buckets. Safe to run repeatedly; returns rows migrated."""
    inspector = inspect(connection)
    if 'buckets' not in inspector.get_table_names():
        return 0
    columns = {col['name'] for col in inspector.get_columns('buckets')}
    if 'mode' not in columns:
        logger.warning('buckets table has no mode column; run the schema migration first')
        return 0

    has_legacy_value = 'allocation_value' in columns
    legacy_select = 'allocation_value' if has_legacy_value else 'NULL AS allocation_value'
    rows = connection.execute(text(
        f"SELECT id, allocation_type, {legacy_select}, current_balance, planned_amount, planned_percent "
        "FROM buckets WHERE mode IS NULL"
    )).mappings().all()

    for row in rows:
        allocation_type = row['allocation_type'] or 'amount'
        planned_amount = row['planned_amount']
        planned_percent = row['planned_percent']
        if row['allocation_value'] is not None:
            if allocation_type == 'percentage' and planned_percent is None:
                planned_percent = row['allocation_value']
            elif allocation_type == 'amount' and planned_amount is None:
                planned_amount = row['allocation_value']

        connection.execute(text(
            "UPDATE buckets SET mode = 'spend', allocation_type = :allocation_type, "
            "planned_amount = :planned_amount, planned_percent = :planned_percent, "
            "funded_amount = :funded_amount, carryover_balance = COALESCE(carryover_balance, 0), "
            "current_balance = NULL, is_active = COALESCE(is_active, :active) "
            "WHERE id = :id"
        ), {
            'id': row['id'],
            'allocation_type': allocation_type,
            'planned_amount': planned_amount,
            'planned_percent': planned_percent,
            'funded_amount': row['current_balance'] or 0,
            'active': True,
        })

    if rows:
        logger.info(f'Migrated {len(rows)} legacy buckets to spend mode')
    return len(rows)
