"""Savings contribution engine tests."""
from datetime import datetime
from decimal import Decimal

from bucketledger.core.events import SavingsGoalAlert, SavingsGoalReached
from bucketledger.core.extensions import db
from bucketledger.modules.savings.service import SavingsContributionEngine

FEB_1 = datetime(2025, 2, 1, 0, 1)
MAR_1 = datetime(2025, 3, 1, 0, 1)


def _save_bucket(make_bucket, user_id, balance='0', **fields):
    fields.setdefault('target_amount', '1000')
    bucket = make_bucket(user_id, 'Goal', mode='save', **fields)
    bucket.current_balance = Decimal(balance)
    db.session.commit()
    return bucket


def test_stop_clamps_to_target(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id, balance='950',
                          contribution_type='amount', contribution_amount='100')

    result = SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)

    assert result['applied'] is True
    assert result['contribution'] == Decimal('50.00')
    assert bucket.current_balance == Decimal('1000.00')
    assert bucket.last_contribution_date == FEB_1


def test_stop_contributes_nothing_once_target_met(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id, balance='1000',
                          contribution_type='amount', contribution_amount='100')

    result = SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)

    assert result['applied'] is False
    assert result['message'] == 'target reached'
    assert bucket.current_balance == Decimal('1000.00')


def test_unallocated_accrues_past_target(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id, balance='950', cap_behavior='unallocated',
                          contribution_type='amount', contribution_amount='100')

    SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)

    assert bucket.current_balance == Decimal('1050.00')


def test_open_ended_goal_is_never_capped(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id, balance='5000', target_amount=None,
                          contribution_type='amount', contribution_amount='100')

    result = SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)

    assert bucket.target_amount is None
    assert result['applied'] is True
    assert bucket.current_balance == Decimal('5100.00')
    assert bucket.percent_of_goal == 0


def test_reroute_behaviors_clamp_like_stop(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id, balance='990', cap_behavior='proportional',
                          contribution_type='amount', contribution_amount='100')

    result = SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)

    assert result['contribution'] == Decimal('10.00')
    assert bucket.current_balance == Decimal('1000.00')


def test_percentage_of_income(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id, contribution_type='percentage', contribution_percent='12.5')

    amount, reason = SavingsContributionEngine.compute_contribution(bucket, Decimal('3000'), now=FEB_1)

    assert reason is None
    assert amount == Decimal('375.00')


def test_none_never_contributes(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id)

    for now in (FEB_1, MAR_1):
        result = SavingsContributionEngine.apply(bucket, Decimal('5000'), now=now)
        assert result['applied'] is False

    assert bucket.current_balance == Decimal('0.00')
    assert bucket.last_contribution_date is None


def test_at_most_once_per_month(user, make_bucket):
    bucket = _save_bucket(make_bucket, user.id, contribution_type='amount', contribution_amount='100')

    SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)
    again = SavingsContributionEngine.apply(bucket, Decimal('0'), now=datetime(2025, 2, 20))
    SavingsContributionEngine.apply(bucket, Decimal('0'), now=MAR_1)

    assert again['message'] == 'already contributed this month'
    assert bucket.current_balance == Decimal('200.00')


def test_goal_events(user, make_bucket, captured_events):
    events = captured_events(SavingsGoalReached.event_type, SavingsGoalAlert.event_type)
    bucket = _save_bucket(make_bucket, user.id, balance='400', goal_alerts=[50, 75, 100],
                          contribution_type='amount', contribution_amount='400')

    SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)
    SavingsContributionEngine.apply(bucket, Decimal('0'), now=MAR_1)

    alerts = [e.threshold for e in events if isinstance(e, SavingsGoalAlert)]
    reached = [e for e in events if isinstance(e, SavingsGoalReached)]
    assert alerts == [50, 75, 100]
    assert len(reached) == 1
    assert reached[0].bucket_id == bucket.id


def test_goal_reached_respects_notify_flag(user, make_bucket, captured_events):
    events = captured_events(SavingsGoalReached.event_type)
    bucket = _save_bucket(make_bucket, user.id, balance='900', notify_on_complete=False,
                          contribution_type='amount', contribution_amount='100')

    SavingsContributionEngine.apply(bucket, Decimal('0'), now=FEB_1)

    assert bucket.current_balance == Decimal('1000.00')
    assert events == []
