"""Income and spend aggregation.

Neither total is ever stored: both are recomputed from the source records on every read
so edits and deletions are picked up without any bookkeeping.
"""
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from bucketledger.core.errors import SpendDerivationError
from bucketledger.core.extensions import db
from bucketledger.core.money import ZERO
from .models import Expense, Income


class IncomeAggregator:
    """Sums a user's recurring income into one monthly figure."""

    @staticmethod
    def total_monthly_income(user_id: int) -> Decimal:
        """Recurring records only; one-off income never inflates allocation."""
        total = db.session.query(func.sum(Income.amount)).filter(
            Income.user_id == user_id,
            Income.is_recurring.is_(True),
        ).scalar()
        return Decimal(total) if total is not None else ZERO


class SpendAggregator:
    """Derives spent-to-date for buckets from the expense log."""

    @staticmethod
    def _filtered(query, start: Optional[date], end: Optional[date]):
        if start is not None:
            query = query.filter(Expense.date >= start)
        if end is not None:
            query = query.filter(Expense.date < end)
        return query

    @staticmethod
    def spent(bucket_id: int, start: Optional[date] = None, end: Optional[date] = None) -> Decimal:
        """Sum of expenses for one bucket with ``start <= date < end``.

        Raises SpendDerivationError when the store cannot answer; the caller must not
        fall back to zero, which would report a false surplus.
        """
        try:
            query = db.session.query(func.sum(Expense.amount)).filter(Expense.bucket_id == bucket_id)
            total = SpendAggregator._filtered(query, start, end).scalar()
        except SQLAlchemyError as e:
            raise SpendDerivationError(f'Could not derive spend for bucket {bucket_id}') from e
        return Decimal(total) if total is not None else ZERO

    @staticmethod
    def spent_by_bucket(bucket_ids: Iterable[int], start: Optional[date] = None,
                        end: Optional[date] = None) -> Dict[int, Decimal]:
        """Spend for several buckets in one GROUP BY query."""
        bucket_ids = list(bucket_ids)
        if not bucket_ids:
            return {}
        try:
            query = db.session.query(
                Expense.bucket_id,
                func.sum(Expense.amount).label('total_amount'),
            ).filter(Expense.bucket_id.in_(bucket_ids))
            rows = SpendAggregator._filtered(query, start, end).group_by(Expense.bucket_id).all()
        except SQLAlchemyError as e:
            raise SpendDerivationError('Could not derive bucket spend') from e
        totals = {bucket_id: ZERO for bucket_id in bucket_ids}
        totals.update({bucket_id: Decimal(total) for bucket_id, total in rows})
        return totals
