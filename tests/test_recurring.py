"""Recurring expense template tests."""
from datetime import date
from decimal import Decimal

import pytest

from bucketledger.core.errors import InvalidConfiguration, NotFound
from bucketledger.modules.budget.models import Expense
from bucketledger.modules.budget.service import BucketService, RecurringExpenseService


@pytest.fixture
def food(user, make_bucket, add_income):
    add_income(user.id, 100)
    return make_bucket(user.id, 'Food', planned_amount='100')


def _template(user, bucket, amount='60', day=15):
    return RecurringExpenseService.create_template(user.id, {
        'bucket_id': bucket.id, 'name': 'Gym', 'amount': amount, 'day_of_month': day,
    })


def test_posts_on_its_day_once_per_month(user, food):
    template = _template(user, food)

    assert RecurringExpenseService.process_due(date(2025, 1, 14))['posted'] == []
    assert RecurringExpenseService.process_due(date(2025, 1, 15))['posted'] == [template.id]
    assert RecurringExpenseService.process_due(date(2025, 1, 15))['posted'] == []

    expenses = Expense.query.filter_by(bucket_id=food.id).all()
    assert len(expenses) == 1
    assert expenses[0].amount == Decimal('60.00')
    assert expenses[0].is_auto_generated is True
    assert template.last_posted_date == date(2025, 1, 15)


def test_skips_when_balance_does_not_cover(user, food):
    _template(user, food)
    RecurringExpenseService.process_due(date(2025, 1, 15))

    result = RecurringExpenseService.process_due(date(2025, 2, 15))

    assert result['posted'] == []
    assert result['skipped'][0]['reason'] == 'insufficient_balance'
    assert Expense.query.filter_by(bucket_id=food.id).count() == 1


def test_skips_inactive_bucket(user, food):
    template = _template(user, food)
    BucketService.delete_bucket(food.id)

    result = RecurringExpenseService.process_due(date(2025, 1, 15))

    assert result['skipped'] == [{'id': template.id, 'reason': 'bucket_inactive'}]


def test_templates_need_a_spend_bucket(user, make_bucket):
    goal = make_bucket(user.id, 'Goal', mode='save', target_amount='10')
    bill = make_bucket(user.id, 'Bill', mode='recurring', planned_amount='10')

    for bucket in (goal, bill):
        with pytest.raises(InvalidConfiguration):
            _template(user, bucket)


@pytest.mark.parametrize('day', [0, 32])
def test_day_of_month_range(user, food, day):
    with pytest.raises(InvalidConfiguration):
        _template(user, food, day=day)


def test_update_and_delete(user, food):
    template = _template(user, food)

    updated = RecurringExpenseService.update_template(template.id, {'amount': '25', 'day_of_month': 3})
    assert updated.amount == Decimal('25.00')
    assert updated.day_of_month == 3

    RecurringExpenseService.delete_template(template.id)
    assert RecurringExpenseService.get_user_templates(user.id) == []
    with pytest.raises(NotFound):
        RecurringExpenseService.get_template(template.id)
