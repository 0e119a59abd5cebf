"""Allocation planning and funding distribution.

When planned spending exceeds recurring income every spend and recurring bucket is
scaled down by the same ratio. There is deliberately no priority order between
buckets: degradation is proportional.
"""
from decimal import Decimal, ROUND_DOWN
from typing import Dict, Iterable, List, NamedTuple
from flask import current_app
from bucketledger.core.events import DistributionRecalculated, event_bus
from bucketledger.core.extensions import db
from bucketledger.core.money import CENT, ZERO, quantize
from .aggregates import IncomeAggregator
from .models import AllocatedBucket, Bucket

ONE = Decimal('1')


class BucketPlan(NamedTuple):
    bucket: AllocatedBucket
    planned: Decimal
    funded: Decimal


class AllocationPlan(NamedTuple):
    """One consistent snapshot of a user's income-based funding."""
    total_income: Decimal
    total_planned: Decimal
    funding_ratio: Decimal
    plans: List[BucketPlan]

    @property
    def is_over_planned(self) -> bool:
        return self.total_planned > self.total_income

    @property
    def over_planned_by(self) -> Decimal:
        return self.total_planned - self.total_income if self.is_over_planned else ZERO

    @property
    def total_funded(self) -> Decimal:
        return sum((plan.funded for plan in self.plans), ZERO)

    def funded_for(self, bucket_id: int) -> Decimal:
        for plan in self.plans:
            if plan.bucket.id == bucket_id:
                return plan.funded
        return ZERO

    def summary(self) -> Dict:
        return {
            'total_income': self.total_income,
            'total_planned': self.total_planned,
            'is_over_planned': self.is_over_planned,
            'over_planned_by': self.over_planned_by,
            'funding_ratio': self.funding_ratio,
        }


def compute_funding_ratio(total_income: Decimal, total_planned: Decimal) -> Decimal:
    """``income / planned`` when over-planned, else 1. Zero planned is always 1."""
    if total_planned <= 0:
        return ONE
    if total_planned > total_income:
        return Decimal(total_income) / Decimal(total_planned)
    return ONE


def _split_income(total_income: Decimal, shares: List[Decimal]) -> List[Decimal]:
    """Round scaled shares to cents without the total exceeding income.

    Shares are floored, then the leftover cents go to the largest remainders
    (earlier buckets win ties).
    """
    floored = [share.quantize(CENT, rounding=ROUND_DOWN) for share in shares]
    leftover = int((quantize(total_income) - sum(floored, ZERO)) / CENT)
    by_remainder = sorted(range(len(shares)), key=lambda i: shares[i] - floored[i], reverse=True)
    for i in by_remainder[:max(leftover, 0)]:
        floored[i] += CENT
    return floored


class AllocationPlanner:
    """Turns buckets and recurring income into funded amounts."""

    @staticmethod
    def plan(buckets: Iterable[Bucket], total_income: Decimal) -> AllocationPlan:
        allocated = [b for b in buckets if b.is_active and b.is_allocated]
        planned = [(bucket, bucket.planned(total_income)) for bucket in allocated]
        total_planned = sum((amount for _, amount in planned), ZERO)
        ratio = compute_funding_ratio(total_income, total_planned)
        if ratio < ONE:
            funded = _split_income(total_income, [amount * ratio for _, amount in planned])
        else:
            funded = [quantize(amount) for _, amount in planned]
        plans = [
            BucketPlan(bucket=bucket, planned=amount, funded=share)
            for (bucket, amount), share in zip(planned, funded)
        ]
        return AllocationPlan(
            total_income=total_income,
            total_planned=total_planned,
            funding_ratio=ratio,
            plans=plans,
        )

    @staticmethod
    def plan_for_user(user_id: int) -> AllocationPlan:
        buckets = Bucket.query.filter_by(user_id=user_id, is_active=True).order_by(Bucket.id).all()
        total_income = IncomeAggregator.total_monthly_income(user_id)
        return AllocationPlanner.plan(buckets, total_income)


class DistributionService:
    """Distribution operations exposed to the rest of the application."""

    @staticmethod
    def calculate_distribution(user_id: int, commit: bool = True) -> Dict:
        """Recompute and persist ``funded_amount`` for every active spend/recurring bucket."""
        plan = AllocationPlanner.plan_for_user(user_id)
        for bucket_plan in plan.plans:
            bucket_plan.bucket.funded_amount = bucket_plan.funded
        if commit:
            db.session.commit()

        current_app.logger.info(
            f'Distribution for user {user_id}: income={plan.total_income} '
            f'planned={plan.total_planned} ratio={plan.funding_ratio:.4f}'
        )
        event_bus.publish(DistributionRecalculated(user_id, plan.funding_ratio, plan.is_over_planned))
        return plan.summary()

    @staticmethod
    def get_distribution_status(user_id: int) -> Dict:
        """Read-only snapshot; reports what is currently funded without recomputing it."""
        plan = AllocationPlanner.plan_for_user(user_id)
        total_funded = sum(
            (Decimal(p.bucket.funded_amount or 0) for p in plan.plans), ZERO
        )
        return {
            'total_income': plan.total_income,
            'total_planned': plan.total_planned,
            'total_funded': total_funded,
            'unallocated': plan.total_income - total_funded,
            'is_over_planned': plan.is_over_planned,
            'over_planned_by': plan.over_planned_by,
        }
