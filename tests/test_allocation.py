"""Allocation planner, funding ratio and distribution tests."""
from decimal import Decimal

from bucketledger.core.extensions import db
from bucketledger.modules.budget.allocation import (
    AllocationPlanner, DistributionService, compute_funding_ratio,
)
from bucketledger.modules.budget.aggregates import IncomeAggregator


class TestFundingRatio:

    def test_ratio_is_one_when_income_covers_plan(self):
        assert compute_funding_ratio(Decimal('1000'), Decimal('800')) == 1
        assert compute_funding_ratio(Decimal('1000'), Decimal('1000')) == 1

    def test_ratio_scales_down_when_over_planned(self):
        ratio = compute_funding_ratio(Decimal('1000'), Decimal('1200'))
        assert ratio < 1
        assert round(ratio, 4) == Decimal('0.8333')
        assert ratio == Decimal('1000') / Decimal('1200')

    def test_zero_planned_never_divides(self):
        assert compute_funding_ratio(Decimal('0'), Decimal('0')) == 1
        assert compute_funding_ratio(Decimal('500'), Decimal('0')) == 1

    def test_zero_income_funds_nothing(self):
        assert compute_funding_ratio(Decimal('0'), Decimal('300')) == 0


def test_over_planned_buckets_are_scaled_proportionally(user, make_bucket, add_income):
    add_income(user.id, 1000)
    rent = make_bucket(user.id, 'Rent', planned_amount='700')
    food = make_bucket(user.id, 'Food', planned_amount='500')

    summary = DistributionService.calculate_distribution(user.id)

    assert summary['is_over_planned'] is True
    assert summary['over_planned_by'] == Decimal('200')
    assert round(summary['funding_ratio'], 4) == Decimal('0.8333')
    assert rent.funded_amount == Decimal('583.33')
    assert food.funded_amount == Decimal('416.67')
    assert rent.funded_amount + food.funded_amount == Decimal('1000.00')


def test_rounding_never_funds_more_than_income(user, make_bucket, add_income):
    add_income(user.id, 2)
    buckets = [make_bucket(user.id, name, planned_amount='1') for name in ('A', 'B', 'C')]

    funded = [b.funded_amount for b in buckets]

    # 0.6667 each would round up to 2.01 in total
    assert funded == [Decimal('0.67'), Decimal('0.67'), Decimal('0.66')]
    assert sum(funded) == Decimal('2.00')


def test_percentage_buckets_use_recurring_income_only(user, make_bucket, add_income):
    add_income(user.id, 2000)
    add_income(user.id, 5000, is_recurring=False)
    fun = make_bucket(user.id, 'Fun', allocation_type='percentage', planned_percent='10')

    assert IncomeAggregator.total_monthly_income(user.id) == Decimal('2000')
    assert fun.funded_amount == Decimal('200.00')


def test_save_buckets_are_not_planned(user, make_bucket, add_income):
    add_income(user.id, 1000)
    make_bucket(user.id, 'Food', planned_amount='400')
    make_bucket(user.id, 'Holiday', mode='save', target_amount='3000',
                contribution_type='amount', contribution_amount='900')

    plan = AllocationPlanner.plan_for_user(user.id)

    assert plan.total_planned == Decimal('400')
    assert plan.funding_ratio == 1
    assert len(plan.plans) == 1


def test_recurring_buckets_share_the_ratio(user, make_bucket, add_income):
    add_income(user.id, 600)
    food = make_bucket(user.id, 'Food', planned_amount='600')
    insurance = make_bucket(user.id, 'Insurance', mode='recurring', planned_amount='300')

    assert food.funded_amount == Decimal('400.00')
    assert insurance.funded_amount == Decimal('200.00')


def test_calculate_distribution_is_idempotent(user, make_bucket, add_income):
    add_income(user.id, 999)
    buckets = [make_bucket(user.id, f'B{i}', planned_amount=str(100 + i * 37)) for i in range(6)]

    DistributionService.calculate_distribution(user.id)
    first = [b.funded_amount for b in buckets]
    DistributionService.calculate_distribution(user.id)
    db.session.expire_all()
    second = [b.funded_amount for b in buckets]

    assert first == second


def test_distribution_status_does_not_mutate(user, make_bucket, add_income):
    add_income(user.id, 1000)
    food = make_bucket(user.id, 'Food', planned_amount='300')
    food.funded_amount = Decimal('1.00')
    db.session.commit()

    status = DistributionService.get_distribution_status(user.id)

    assert status['total_income'] == Decimal('1000')
    assert status['total_planned'] == Decimal('300')
    assert status['total_funded'] == Decimal('1.00')
    assert status['unallocated'] == Decimal('999.00')
    assert status['is_over_planned'] is False
    assert status['over_planned_by'] == 0
    db.session.expire_all()
    assert food.funded_amount == Decimal('1.00')


def test_inactive_buckets_leave_the_plan(user, make_bucket, add_income):
    from bucketledger.modules.budget.service import BucketService

    add_income(user.id, 1000)
    rent = make_bucket(user.id, 'Rent', planned_amount='700')
    food = make_bucket(user.id, 'Food', planned_amount='500')
    assert food.funded_amount == Decimal('416.67')

    BucketService.delete_bucket(rent.id)

    assert food.funded_amount == Decimal('500.00')
    assert rent.funded_amount == 0
    assert rent.is_active is False
