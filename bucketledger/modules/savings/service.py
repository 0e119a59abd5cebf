"""Savings contribution engine."""
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple
from flask import current_app
from bucketledger.core.events import SavingsGoalAlert, SavingsGoalReached, event_bus
from bucketledger.core.money import ZERO, quantize
from bucketledger.core.time import YearMonth
from bucketledger.modules.budget.models import SaveBucket


class SavingsContributionEngine:
    """Applies monthly contributions to save buckets, at most once per calendar month.

    Save buckets are funded independently of the allocation planner; percentage
    contributions are taken from total recurring income.
    """

    @staticmethod
    def monthly_contribution(bucket: SaveBucket, total_income: Decimal) -> Decimal:
        """Configured contribution before any cap is applied."""
        if bucket.contribution_type == 'amount':
            return quantize(bucket.contribution_amount)
        if bucket.contribution_type == 'percentage' and bucket.contribution_percent is not None:
            return quantize(Decimal(total_income) * Decimal(bucket.contribution_percent) / Decimal(100))
        return ZERO

    @staticmethod
    def compute_contribution(bucket: SaveBucket, total_income: Decimal,
                             now: Optional[datetime] = None) -> Tuple[Decimal, Optional[str]]:
        """Return ``(amount, skip_reason)``; a non-None reason means nothing is applied."""
        now = now or datetime.now()
        if bucket.contribution_type in (None, 'none'):
            return ZERO, 'contributions disabled'
        if YearMonth.current(now).contains(bucket.last_contribution_date):
            return ZERO, 'already contributed this month'

        contribution = SavingsContributionEngine.monthly_contribution(bucket, total_income)
        if contribution <= 0:
            return ZERO, 'zero contribution'

        if bucket.cap_behavior == 'unallocated' or bucket.target_amount is None:
            return contribution, None

        if bucket.cap_behavior in ('bucket', 'proportional'):
            current_app.logger.warning(
                f'Cap behavior {bucket.cap_behavior} for bucket {bucket.id} has no reroute '
                f'implementation; clamping at target like stop'
            )

        room = quantize(bucket.target_amount) - quantize(bucket.current_balance)
        if room <= 0:
            return ZERO, 'target reached'
        return min(contribution, room), None

    @staticmethod
    def apply(bucket: SaveBucket, total_income: Decimal, now: Optional[datetime] = None) -> Dict:
        """Apply this month's contribution in the session; the caller commits."""
        now = now or datetime.now()
        previous_balance = quantize(bucket.current_balance)
        previous_percent = bucket.percent_of_goal
        amount, reason = SavingsContributionEngine.compute_contribution(bucket, total_income, now)

        result = {
            'bucket_id': bucket.id,
            'previous_balance': previous_balance,
            'contribution': amount,
            'new_balance': previous_balance,
            'applied': False,
            'message': reason,
        }
        if reason is not None:
            current_app.logger.debug(f'Skipped contribution for bucket {bucket.id}: {reason}')
            return result

        bucket.current_balance = previous_balance + amount
        bucket.last_contribution_date = now
        result.update(new_balance=bucket.current_balance, applied=True, message='contribution applied')
        current_app.logger.info(f'Added {amount} to save bucket {bucket.id} for user {bucket.user_id}')

        SavingsContributionEngine._publish_progress(bucket, previous_balance, previous_percent)
        return result

    @staticmethod
    def _publish_progress(bucket: SaveBucket, previous_balance: Decimal, previous_percent: Decimal) -> None:
        new_percent = bucket.percent_of_goal
        for threshold in bucket.goal_alerts or []:
            if previous_percent < threshold <= new_percent:
                event_bus.publish(SavingsGoalAlert(bucket.user_id, bucket.id, threshold, round(new_percent, 2)))

        target = bucket.target_amount
        if target is not None and previous_balance < target <= bucket.current_balance:
            current_app.logger.info(f'Save bucket {bucket.id} reached its target for user {bucket.user_id}!')
            if bucket.notify_on_complete:
                event_bus.publish(SavingsGoalReached(bucket.user_id, bucket.id, bucket.name, target))
