"""Rollover service layer.

A rollover opens the calendar month containing ``now``. Spend buckets close the cycle
that started at their last rollover, recurring buckets pay their bill, save buckets take
this month's contribution. Everything for one user is committed at once.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from flask import current_app
from bucketledger.core.errors import AlreadyProcessed, LedgerError
from bucketledger.core.events import RolloverCompleted, RolloverFailed, event_bus
from bucketledger.core.extensions import db
from bucketledger.core.money import ZERO, quantize
from bucketledger.core.time import YearMonth
from bucketledger.modules.budget.aggregates import IncomeAggregator, SpendAggregator
from bucketledger.modules.budget.allocation import AllocationPlan, AllocationPlanner
from bucketledger.modules.budget.carryover import cycle_start, transition
from bucketledger.modules.budget.models import Bucket, Expense, RecurringBucket, SaveBucket, SpendBucket
from bucketledger.modules.savings.service import SavingsContributionEngine
from bucketledger.modules.users.service import UserService
from .models import RolloverEntry, RolloverRun


class RolloverService:
    """Monthly rollover orchestration."""

    @staticmethod
    def perform_monthly_rollover(user_id: int, now: Optional[datetime] = None,
                                 trigger: str = 'manual') -> Dict:
        """Roll every active bucket of one user into the month of ``now``.

        Manual calls are not guarded; running twice in a month recomputes spend
        carryover from the stored snapshot and never contributes to a save bucket twice.
        """
        now = now or datetime.now()
        period = YearMonth.current(now)
        UserService.get_user(user_id)

        try:
            buckets = Bucket.query.filter_by(user_id=user_id, is_active=True).order_by(Bucket.id).all()
            total_income = IncomeAggregator.total_monthly_income(user_id)
            plan = AllocationPlanner.plan(buckets, total_income)

            run = RolloverRun.query.filter_by(user_id=user_id, period=str(period)).first()
            if run is None:
                run = RolloverRun(user_id=user_id, period=str(period), run_count=1)
                db.session.add(run)
            else:
                run.run_count += 1
            run.trigger = trigger
            run.performed_at = now
            db.session.flush()

            previous_entries = {entry.bucket_id: entry for entry in run.entries}
            results = []
            for bucket in buckets:
                entry = previous_entries.get(bucket.id)
                if entry is None:
                    entry = RolloverEntry(run_id=run.id, bucket_id=bucket.id,
                                          bucket_mode=bucket.mode, period=str(period))
                    db.session.add(entry)

                if isinstance(bucket, SpendBucket):
                    RolloverService._roll_spend(bucket, entry, plan, period)
                elif isinstance(bucket, RecurringBucket):
                    RolloverService._roll_recurring(bucket, entry, plan, now)
                elif isinstance(bucket, SaveBucket):
                    RolloverService._roll_save(bucket, entry, total_income, now)

                bucket.last_rollover_date = now
                result = entry.to_dict()
                result['bucket_name'] = bucket.name
                if isinstance(bucket, SaveBucket):
                    result['target_amount'] = float(bucket.target_amount) if bucket.target_amount is not None else None
                    result['percent_of_goal'] = float(round(bucket.percent_of_goal, 2))
                results.append(result)
                current_app.logger.debug(f'Rolled over bucket {bucket.id} ({bucket.mode}) into {period}')

            run.buckets_processed = len(buckets)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f'Rollover {period} for user {user_id}: {len(buckets)} buckets, '
            f'run {run.run_count}, trigger={trigger}'
        )
        event_bus.publish(RolloverCompleted(user_id, str(period), len(buckets), trigger))
        return {
            'rollover_date': now,
            'period': str(period),
            'buckets_processed': len(buckets),
            'funding_ratio': plan.funding_ratio,
            'results': results,
        }

    @staticmethod
    def _late_spend(bucket: SpendBucket, period: YearMonth) -> Decimal:
        """Spend that changed in already closed cycles since the bucket last closed one.

        The previous entry recorded the total spend dated before its period; the same
        total derived now differs by whatever was back-dated, edited or deleted since.
        """
        previous = (RolloverEntry.query
                    .filter(RolloverEntry.bucket_id == bucket.id,
                            RolloverEntry.period < str(period),
                            RolloverEntry.settled_spent.isnot(None))
                    .order_by(RolloverEntry.period.desc())
                    .first())
        if previous is None:
            return ZERO
        settled_before = YearMonth.from_string(previous.period).to_date()
        return SpendAggregator.spent(bucket.id, None, settled_before) - previous.settled_spent

    @staticmethod
    def _roll_spend(bucket: SpendBucket, entry: RolloverEntry, plan: AllocationPlan,
                    period: YearMonth) -> None:
        if entry.id is not None and entry.previous_funded is not None:
            # Same period again: start from the state before the first run
            previous_carryover = entry.previous_carryover
            previous_funded = entry.previous_funded
            start = entry.cycle_start
        else:
            previous_carryover = bucket.carryover_balance
            previous_funded = bucket.funded_amount
            start = cycle_start(bucket.last_rollover_date)

        new_funded = plan.funded_for(bucket.id)
        late = quantize(RolloverService._late_spend(bucket, period))
        if start is not None and start >= period.to_date():
            # Bucket already lives in this period; there is no closed cycle to carry over
            state = transition(previous_carryover, ZERO, late, new_funded)
            entry.message = 'no closed cycle'
        else:
            spent = SpendAggregator.spent(bucket.id, start, period.to_date())
            state = transition(previous_carryover, previous_funded, spent + late, new_funded)
            entry.message = None
        if late:
            note = f"includes {late} late spend from earlier cycles"
            entry.message = f"{entry.message}; {note}" if entry.message else note
            current_app.logger.info(f'Bucket {bucket.id} picked up {late} of late spend before {period}')

        entry.cycle_start = start
        entry.previous_carryover = state.previous_carryover
        entry.previous_funded = quantize(previous_funded)
        entry.spent = state.spent
        entry.late_adjustment = late
        entry.carryover = state.carryover
        entry.new_funded = state.new_funded
        entry.settled_spent = quantize(SpendAggregator.spent(bucket.id, None, period.to_date()))

        bucket.carryover_balance = state.carryover
        bucket.funded_amount = state.new_funded
        if state.carryover < 0:
            current_app.logger.info(f'Bucket {bucket.id} carries {state.carryover} of debt into {period}')

    @staticmethod
    def _roll_recurring(bucket: RecurringBucket, entry: RolloverEntry, plan: AllocationPlan,
                        now: datetime) -> None:
        """Fund the bill and pay it with one auto-generated expense per period."""
        amount = plan.funded_for(bucket.id)
        if entry.previous_funded is None:
            entry.previous_funded = quantize(bucket.funded_amount)
        entry.previous_carryover = quantize(bucket.carryover_balance)
        entry.carryover = entry.previous_carryover
        entry.new_funded = amount
        bucket.funded_amount = amount

        expense = db.session.get(Expense, entry.auto_expense_id) if entry.auto_expense_id else None
        if amount > 0:
            if expense is None:
                expense = Expense(user_id=bucket.user_id, bucket_id=bucket.id,
                                  date=now.date(), is_auto_generated=True)
                db.session.add(expense)
            expense.amount = amount
            expense.note = f'Automatic recurring payment - {bucket.name}'
            db.session.flush()
            entry.auto_expense_id = expense.id
            entry.message = f'Auto-paid {amount}'
        else:
            if expense is not None:
                db.session.delete(expense)
            entry.auto_expense_id = None
            entry.message = 'Nothing to pay'
        entry.spent = amount

    @staticmethod
    def _roll_save(bucket: SaveBucket, entry: RolloverEntry, total_income, now: datetime) -> None:
        outcome = SavingsContributionEngine.apply(bucket, total_income, now)
        if entry.previous_balance is None:
            entry.previous_balance = outcome['previous_balance']
            entry.contribution = ZERO
        if outcome['applied']:
            entry.contribution = quantize(entry.contribution) + outcome['contribution']
        entry.new_balance = quantize(bucket.current_balance)
        entry.message = outcome['message']

    @staticmethod
    def _ensure_not_processed(user_id: int, period: YearMonth) -> None:
        run = RolloverRun.query.filter_by(user_id=user_id, period=str(period)).first()
        if run is not None:
            raise AlreadyProcessed(
                f'Rollover for {period} already performed for user {user_id}',
                period=str(period),
                performed_at=run.performed_at,
            )

    @staticmethod
    def check_and_perform_rollover(user_id: int, now: Optional[datetime] = None,
                                   trigger: str = 'check', force: bool = False) -> Dict:
        """Guarded rollover used by the scheduler.

        Proceeds only on the configured rollover day (unless ``force``) and only when the
        user has no rollover recorded for the current month. Creating a bucket stamps its
        ``last_rollover_date``, so the recorded run is what marks a month as done.
        """
        now = now or datetime.now()
        period = YearMonth.current(now)
        rollover_day = current_app.config.get('ROLLOVER_DAY', 1)
        if not force and now.day != rollover_day:
            return {'performed': False, 'reason': 'not_rollover_day',
                    'message': f'Rollover runs on day {rollover_day} of the month'}

        UserService.get_user(user_id)
        if Bucket.query.filter_by(user_id=user_id, is_active=True).first() is None:
            return {'performed': False, 'reason': 'no_buckets', 'message': 'No active buckets'}

        try:
            RolloverService._ensure_not_processed(user_id, period)
        except AlreadyProcessed as e:
            current_app.logger.info(e.message)
            return {'performed': False, 'reason': e.code, 'message': e.message,
                    'performed_at': e.performed_at}

        result = RolloverService.perform_monthly_rollover(user_id, now=now, trigger=trigger)
        result['performed'] = True
        return result

    @staticmethod
    def run_scheduled_rollover(now: Optional[datetime] = None, force: bool = False) -> Dict:
        """Guarded rollover for every user; one user's failure never stops the batch."""
        now = now or datetime.now()
        results = []
        for user_id in UserService.list_user_ids():
            try:
                outcome = RolloverService.check_and_perform_rollover(
                    user_id, now=now, trigger='scheduled', force=force
                )
                results.append({
                    'user_id': user_id,
                    'success': True,
                    'performed': outcome['performed'],
                    'buckets_processed': outcome.get('buckets_processed', 0),
                    'message': outcome.get('message'),
                })
            except Exception as e:
                db.session.rollback()
                error = e.message if isinstance(e, LedgerError) else f'{type(e).__name__} during rollover'
                current_app.logger.error(f'Scheduled rollover failed for user {user_id}: {e}')
                event_bus.publish(RolloverFailed(user_id, error))
                results.append({'user_id': user_id, 'success': False, 'error': error})

        failed = sum(1 for r in results if not r['success'])
        current_app.logger.info(
            f'Scheduled rollover at {now}: {len(results)} users, {failed} failed'
        )
        return {
            'processed_at': now,
            'total_users': len(results),
            'succeeded': len(results) - failed,
            'failed': failed,
            'results': results,
        }

    @staticmethod
    def get_history(user_id: int, limit: int = 12) -> List[RolloverRun]:
        UserService.get_user(user_id)
        return (RolloverRun.query.filter_by(user_id=user_id)
                .order_by(RolloverRun.period.desc()).limit(limit).all())
