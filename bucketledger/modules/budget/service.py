"""Budget service layer.

Every bucket or income mutation ends with a full distribution recompute for the user;
no planned or funded total is cached anywhere.
"""
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from flask import current_app
from bucketledger.core.errors import InvalidConfiguration, NotFound
from bucketledger.core.events import BucketChanged, IncomeChanged, event_bus
from bucketledger.core.extensions import db
from bucketledger.core.money import ZERO
from bucketledger.core.time import YearMonth
from bucketledger.modules.users.service import UserService
from .aggregates import SpendAggregator
from .allocation import DistributionService
from .carryover import available_balance, cycle_start
from .models import (
    BUCKET_CLASSES, AllocatedBucket, Bucket, Expense, Income, RecurringExpense,
    SaveBucket, SpendBucket,
)
from .schemas import BucketData, ExpenseData, IncomeData, RecurringExpenseData


class BucketService:
    """Bucket business logic service."""

    @staticmethod
    def get_user_buckets(user_id: int, include_inactive: bool = False) -> List[Bucket]:
        query = Bucket.query.filter_by(user_id=user_id)
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.order_by(Bucket.id).all()

    @staticmethod
    def get_bucket(bucket_id: int, user_id: Optional[int] = None, active_only: bool = False) -> Bucket:
        bucket = db.session.get(Bucket, bucket_id)
        if bucket is None or (user_id is not None and bucket.user_id != user_id):
            raise NotFound(f'Bucket {bucket_id} not found')
        if active_only and not bucket.is_active:
            raise NotFound(f'Bucket {bucket_id} is inactive')
        return bucket

    @staticmethod
    def _check_reroute_target(user_id: int, bucket_id: Optional[int], cleaned: Dict) -> None:
        reroute_id = cleaned.get('cap_reroute_bucket_id')
        if reroute_id is None:
            return
        if reroute_id == bucket_id:
            raise InvalidConfiguration('A bucket cannot reroute to itself')
        target = db.session.get(Bucket, reroute_id)
        if target is None or target.user_id != user_id or not target.is_active:
            raise InvalidConfiguration(f'cap_reroute_bucket_id {reroute_id} is not an active bucket of this user')

    @staticmethod
    def create_bucket(user_id: int, data: Dict, now: Optional[datetime] = None) -> Bucket:
        """Create a bucket of the requested mode and redistribute funding."""
        UserService.get_user(user_id)
        cleaned = BucketData.validate(data)
        BucketService._check_reroute_target(user_id, None, cleaned)

        mode = cleaned.pop('mode')
        bucket = BUCKET_CLASSES[mode](
            user_id=user_id,
            is_active=True,
            last_rollover_date=now or datetime.now(),
            **cleaned
        )
        if isinstance(bucket, AllocatedBucket):
            bucket.funded_amount = ZERO
            bucket.carryover_balance = ZERO
        else:
            bucket.current_balance = ZERO
        db.session.add(bucket)
        db.session.flush()

        DistributionService.calculate_distribution(user_id, commit=False)
        db.session.commit()

        event_bus.publish(BucketChanged(user_id, bucket.id, 'created'))
        current_app.logger.info(f'Created {mode} bucket {bucket.name} for user {user_id}')
        return bucket

    @staticmethod
    def update_bucket(bucket_id: int, data: Dict, user_id: Optional[int] = None) -> Bucket:
        bucket = BucketService.get_bucket(bucket_id, user_id, active_only=True)
        cleaned = BucketData.validate(data, existing=bucket)
        BucketService._check_reroute_target(bucket.user_id, bucket.id, cleaned)

        for key, value in cleaned.items():
            setattr(bucket, key, value)

        DistributionService.calculate_distribution(bucket.user_id, commit=False)
        db.session.commit()

        event_bus.publish(BucketChanged(bucket.user_id, bucket.id, 'updated'))
        current_app.logger.info(f'Updated bucket {bucket_id} for user {bucket.user_id}')
        return bucket

    @staticmethod
    def delete_bucket(bucket_id: int, user_id: Optional[int] = None) -> Bucket:
        """Soft delete: history of expenses referencing the bucket is kept."""
        bucket = BucketService.get_bucket(bucket_id, user_id, active_only=True)
        bucket.is_active = False
        if isinstance(bucket, AllocatedBucket):
            bucket.funded_amount = ZERO

        DistributionService.calculate_distribution(bucket.user_id, commit=False)
        db.session.commit()

        event_bus.publish(BucketChanged(bucket.user_id, bucket.id, 'deleted'))
        current_app.logger.info(f'Deactivated bucket {bucket_id} for user {bucket.user_id}')
        return bucket

    @staticmethod
    def get_bucket_summary(bucket: Bucket, start: Optional[date] = None,
                           end: Optional[date] = None) -> Dict:
        """Bucket fields plus the derived spend for the current cycle (or given range)."""
        data = bucket.to_dict()
        if isinstance(bucket, AllocatedBucket):
            if start is None and end is None:
                start = cycle_start(bucket.last_rollover_date)
            spent = SpendAggregator.spent(bucket.id, start, end)
            data['spent_amount'] = float(spent)
            data['available'] = float(available_balance(bucket.funded_amount, bucket.carryover_balance, spent))
        return data


class IncomeService:
    """Income business logic service."""

    @staticmethod
    def get_user_income(user_id: int) -> List[Income]:
        return Income.query.filter_by(user_id=user_id).order_by(Income.date.desc(), Income.id.desc()).all()

    @staticmethod
    def get_recurring_income(user_id: int) -> List[Income]:
        return Income.query.filter_by(user_id=user_id, is_recurring=True).order_by(Income.id).all()

    @staticmethod
    def get_income(income_id: int, user_id: Optional[int] = None) -> Income:
        income = db.session.get(Income, income_id)
        if income is None or (user_id is not None and income.user_id != user_id):
            raise NotFound(f'Income {income_id} not found')
        return income

    @staticmethod
    def add_income(user_id: int, data: Dict) -> Income:
        UserService.get_user(user_id)
        cleaned = IncomeData.validate(data)
        income = Income(user_id=user_id, **cleaned)
        db.session.add(income)
        db.session.flush()

        DistributionService.calculate_distribution(user_id, commit=False)
        db.session.commit()

        event_bus.publish(IncomeChanged(user_id, income.id, 'created'))
        current_app.logger.info(f'Added income {income.amount} for user {user_id}')
        return income

    @staticmethod
    def update_income(income_id: int, data: Dict, user_id: Optional[int] = None) -> Income:
        income = IncomeService.get_income(income_id, user_id)
        cleaned = IncomeData.validate(data, partial=True)
        for key, value in cleaned.items():
            setattr(income, key, value)

        DistributionService.calculate_distribution(income.user_id, commit=False)
        db.session.commit()

        event_bus.publish(IncomeChanged(income.user_id, income.id, 'updated'))
        current_app.logger.info(f'Updated income {income_id} for user {income.user_id}')
        return income

    @staticmethod
    def delete_income(income_id: int, user_id: Optional[int] = None) -> bool:
        income = IncomeService.get_income(income_id, user_id)
        owner_id = income.user_id
        db.session.delete(income)
        db.session.flush()

        DistributionService.calculate_distribution(owner_id, commit=False)
        db.session.commit()

        event_bus.publish(IncomeChanged(owner_id, income_id, 'deleted'))
        current_app.logger.info(f'Deleted income {income_id} for user {owner_id}')
        return True


class ExpenseService:
    """Expense business logic service.

    Overspending is allowed; the resulting negative balance becomes carryover debt.
    Expense writes never touch bucket fields, spend is derived on read.
    """

    @staticmethod
    def _expense_bucket(bucket_id: int, user_id: int) -> Bucket:
        bucket = BucketService.get_bucket(bucket_id, user_id, active_only=True)
        if isinstance(bucket, SaveBucket):
            raise InvalidConfiguration('Expenses cannot be recorded against save buckets')
        return bucket

    @staticmethod
    def get_expense(expense_id: int, user_id: Optional[int] = None) -> Expense:
        expense = db.session.get(Expense, expense_id)
        if expense is None or (user_id is not None and expense.user_id != user_id):
            raise NotFound(f'Expense {expense_id} not found')
        return expense

    @staticmethod
    def get_user_expenses(user_id: int, year_month: Optional[YearMonth] = None,
                          bucket_id: Optional[int] = None, limit: Optional[int] = None,
                          offset: int = 0) -> List[Expense]:
        query = Expense.query.filter(Expense.user_id == user_id)
        if year_month is not None:
            query = query.filter(
                Expense.date >= year_month.to_date(),
                Expense.date <= year_month.last_day(),
            )
        if bucket_id:
            query = query.filter(Expense.bucket_id == bucket_id)
        query = query.order_by(Expense.date.desc(), Expense.id.desc())
        if limit:
            query = query.offset(offset).limit(limit)
        return query.all()

    @staticmethod
    def add_expense(user_id: int, data: Dict, is_auto_generated: bool = False) -> Expense:
        cleaned = ExpenseData.validate(data)
        ExpenseService._expense_bucket(cleaned['bucket_id'], user_id)
        expense = Expense(user_id=user_id, is_auto_generated=is_auto_generated, **cleaned)
        db.session.add(expense)
        db.session.commit()
        current_app.logger.info(f'Added expense {expense.amount} to bucket {expense.bucket_id} for user {user_id}')
        return expense

    @staticmethod
    def update_expense(expense_id: int, data: Dict, user_id: Optional[int] = None) -> Expense:
        expense = ExpenseService.get_expense(expense_id, user_id)
        cleaned = ExpenseData.validate(data, partial=True)
        if 'bucket_id' in cleaned and cleaned['bucket_id'] != expense.bucket_id:
            ExpenseService._expense_bucket(cleaned['bucket_id'], expense.user_id)
        for key, value in cleaned.items():
            setattr(expense, key, value)
        db.session.commit()
        current_app.logger.info(f'Updated expense {expense_id} for user {expense.user_id}')
        return expense

    @staticmethod
    def delete_expense(expense_id: int, user_id: Optional[int] = None) -> bool:
        expense = ExpenseService.get_expense(expense_id, user_id)
        owner_id = expense.user_id
        db.session.delete(expense)
        db.session.commit()
        current_app.logger.info(f'Deleted expense {expense_id} for user {owner_id}')
        return True


class RecurringExpenseService:
    """Scheduled bill templates posted into spend buckets."""

    @staticmethod
    def get_user_templates(user_id: int) -> List[RecurringExpense]:
        return RecurringExpense.query.filter_by(user_id=user_id, is_active=True).order_by(RecurringExpense.id).all()

    @staticmethod
    def get_template(template_id: int, user_id: Optional[int] = None) -> RecurringExpense:
        template = db.session.get(RecurringExpense, template_id)
        if template is None or not template.is_active or (user_id is not None and template.user_id != user_id):
            raise NotFound(f'Recurring expense {template_id} not found')
        return template

    @staticmethod
    def _template_bucket(bucket_id: int, user_id: int) -> SpendBucket:
        bucket = BucketService.get_bucket(bucket_id, user_id, active_only=True)
        if not isinstance(bucket, SpendBucket):
            raise InvalidConfiguration('Recurring expenses can only target spend buckets')
        return bucket

    @staticmethod
    def create_template(user_id: int, data: Dict) -> RecurringExpense:
        cleaned = RecurringExpenseData.validate(data)
        RecurringExpenseService._template_bucket(cleaned['bucket_id'], user_id)
        template = RecurringExpense(user_id=user_id, is_active=True, **cleaned)
        db.session.add(template)
        db.session.commit()
        current_app.logger.info(f'Created recurring expense {template.name} for user {user_id}')
        return template

    @staticmethod
    def update_template(template_id: int, data: Dict, user_id: Optional[int] = None) -> RecurringExpense:
        template = RecurringExpenseService.get_template(template_id, user_id)
        cleaned = RecurringExpenseData.validate(data, partial=True)
        if 'bucket_id' in cleaned:
            RecurringExpenseService._template_bucket(cleaned['bucket_id'], template.user_id)
        for key, value in cleaned.items():
            setattr(template, key, value)
        db.session.commit()
        return template

    @staticmethod
    def delete_template(template_id: int, user_id: Optional[int] = None) -> bool:
        template = RecurringExpenseService.get_template(template_id, user_id)
        template.is_active = False
        db.session.commit()
        current_app.logger.info(f'Deactivated recurring expense {template_id}')
        return True

    @staticmethod
    def process_due(today: Optional[date] = None) -> Dict:
        """Post every template due today whose bucket can cover it.

        A template posts at most once per calendar month. Templates whose bucket lacks
        the balance are skipped, not failed.
        """
        today = today or date.today()
        period = YearMonth.from_date(today)
        due = RecurringExpense.query.filter_by(is_active=True, day_of_month=today.day).all()

        posted, skipped = [], []
        for template in due:
            if period.contains(template.last_posted_date):
                continue
            bucket = template.bucket
            if not isinstance(bucket, SpendBucket) or not bucket.is_active:
                skipped.append({'id': template.id, 'reason': 'bucket_inactive'})
                continue

            spent = SpendAggregator.spent(bucket.id, cycle_start(bucket.last_rollover_date))
            available = available_balance(bucket.funded_amount, bucket.carryover_balance, spent)
            if available < Decimal(template.amount):
                current_app.logger.warning(
                    f'Skipped recurring expense {template.id}: available {available} < {template.amount}'
                )
                skipped.append({'id': template.id, 'reason': 'insufficient_balance'})
                continue

            expense = Expense(
                user_id=template.user_id,
                bucket_id=bucket.id,
                amount=template.amount,
                date=today,
                note=f'Recurring: {template.name}',
                is_auto_generated=True,
            )
            db.session.add(expense)
            template.last_posted_date = today
            posted.append(template.id)

        db.session.commit()
        current_app.logger.info(f'Recurring expenses for {today}: posted={len(posted)} skipped={len(skipped)}')
        return {'date': today, 'posted': posted, 'skipped': skipped}
