"""Legacy bucket migration tests."""
import pytest
from sqlalchemy import create_engine, text

from bucketledger.modules.budget.migration import migrate_legacy_buckets


@pytest.fixture
def legacy_engine():
    engine = create_engine('sqlite://')
    with engine.begin() as connection:
        connection.execute(text(
            "CREATE TABLE buckets ("
            " id INTEGER PRIMARY KEY, user_id INTEGER, name VARCHAR(100), mode VARCHAR(20),"
            " allocation_type VARCHAR(20), allocation_value NUMERIC(12, 2),"
            " planned_amount NUMERIC(12, 2), planned_percent NUMERIC(5, 2),"
            " funded_amount NUMERIC(12, 2), carryover_balance NUMERIC(12, 2),"
            " current_balance NUMERIC(12, 2), is_active BOOLEAN)"
        ))
        connection.execute(text(
            "INSERT INTO buckets (id, user_id, name, mode, allocation_type, allocation_value, current_balance) VALUES "
            "(1, 1, 'Rent', NULL, 'amount', 700, 650),"
            "(2, 1, 'Fun', NULL, 'percentage', 10, NULL),"
            "(3, 1, 'Goal', 'save', NULL, NULL, 300)"
        ))
    yield engine
    engine.dispose()


def _rows(connection):
    result = connection.execute(text(
        "SELECT id, mode, allocation_type, planned_amount, planned_percent, funded_amount, "
        "carryover_balance, current_balance, is_active FROM buckets ORDER BY id"
    ))
    return {row.id: row for row in result}


def test_moves_legacy_values_into_spend_fields(legacy_engine):
    with legacy_engine.begin() as connection:
        assert migrate_legacy_buckets(connection) == 2
        rows = _rows(connection)

    rent, fun, goal = rows[1], rows[2], rows[3]
    assert rent.mode == 'spend'
    assert float(rent.planned_amount) == 700
    assert float(rent.funded_amount) == 650
    assert rent.current_balance is None
    assert float(rent.carryover_balance) == 0
    assert fun.mode == 'spend'
    assert float(fun.planned_percent) == 10
    assert fun.planned_amount is None
    assert float(fun.funded_amount) == 0
    # Already-migrated rows are left alone
    assert goal.mode == 'save'
    assert float(goal.current_balance) == 300


def test_is_idempotent(legacy_engine):
    with legacy_engine.begin() as connection:
        migrate_legacy_buckets(connection)
    with legacy_engine.begin() as connection:
        assert migrate_legacy_buckets(connection) == 0


def test_without_mode_column_does_nothing():
    engine = create_engine('sqlite://')
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE buckets (id INTEGER PRIMARY KEY, name VARCHAR(100))"))
        assert migrate_legacy_buckets(connection) == 0
    engine.dispose()
