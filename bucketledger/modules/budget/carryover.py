"""Carryover ledger transition for spend buckets.

Carryover remembers past performance, funding is the new cycle's grant; the two are
computed independently. Negative carryover is debt and is never written off.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import NamedTuple, Optional
from bucketledger.core.money import quantize
from bucketledger.core.time import YearMonth


class CarryoverTransition(NamedTuple):
    previous_carryover: Decimal
    previous_funded: Decimal
    spent: Decimal
    carryover: Decimal
    new_funded: Decimal

    @property
    def total_available(self) -> Decimal:
        return self.previous_funded + self.previous_carryover

    @property
    def new_total_available(self) -> Decimal:
        return self.carryover + self.new_funded


def transition(previous_carryover, previous_funded, spent, new_funded) -> CarryoverTransition:
    """``carryover_next = funded + carryover_prev - spent``; may go negative."""
    previous_carryover = quantize(previous_carryover)
    previous_funded = quantize(previous_funded)
    spent = quantize(spent)
    return CarryoverTransition(
        previous_carryover=previous_carryover,
        previous_funded=previous_funded,
        spent=spent,
        carryover=previous_funded + previous_carryover - spent,
        new_funded=quantize(new_funded),
    )


def cycle_start(last_rollover_date: Optional[datetime]) -> Optional[date]:
    """First day of the cycle a bucket is currently in, or None if it never rolled over."""
    if last_rollover_date is None:
        return None
    return YearMonth.from_date(last_rollover_date).to_date()


def available_balance(funded, carryover, spent) -> Decimal:
    """What a spend bucket can still cover in the running cycle."""
    return quantize(funded) + quantize(carryover) - quantize(spent)
