"""Carryover transition tests."""
from datetime import date, datetime
from decimal import Decimal

from bucketledger.modules.budget.carryover import available_balance, cycle_start, transition


def test_overspending_becomes_debt():
    state = transition(previous_carryover=0, previous_funded=100, spent=150, new_funded=100)

    assert state.total_available == Decimal('100.00')
    assert state.carryover == Decimal('-50.00')
    assert state.new_total_available == Decimal('50.00')


def test_debt_is_absorbed_by_later_underspending():
    first = transition(0, 100, 150, 100)
    second = transition(first.carryover, first.new_funded, 30, 100)

    assert second.total_available == Decimal('50.00')
    assert second.carryover == Decimal('20.00')


def test_carryover_is_independent_of_new_funding():
    low = transition(25, 100, 60, 10)
    high = transition(25, 100, 60, 900)

    assert low.carryover == high.carryover == Decimal('65.00')
    assert high.new_funded == Decimal('900.00')


def test_amounts_are_rounded_to_cents():
    state = transition('0.005', '10', '3.333', '416.666')

    assert state.previous_carryover == Decimal('0.01')
    assert state.spent == Decimal('3.33')
    assert state.new_funded == Decimal('416.67')


def test_cycle_start_is_first_of_rollover_month():
    assert cycle_start(datetime(2025, 3, 17, 8, 30)) == date(2025, 3, 1)
    assert cycle_start(None) is None


def test_available_balance():
    assert available_balance(Decimal('100'), Decimal('-50'), Decimal('30')) == Decimal('20.00')
    assert available_balance(None, None, Decimal('10')) == Decimal('-10.00')
