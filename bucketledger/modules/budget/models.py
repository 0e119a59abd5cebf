"""Budget module models.

Buckets are a tagged union stored in one table: ``mode`` is the discriminator and each
mode's fields live only on its own class, so a spend bucket has no ``current_balance``
and a save bucket has no ``funded_amount``.
"""
from datetime import datetime
from decimal import Decimal
from bucketledger.core.extensions import db
from bucketledger.core.money import ZERO

BUCKET_MODES = ('spend', 'save', 'recurring')
ALLOCATION_TYPES = ('amount', 'percentage')
CONTRIBUTION_TYPES = ('amount', 'percentage', 'none')
CAP_BEHAVIORS = ('stop', 'unallocated', 'bucket', 'proportional')


class Bucket(db.Model):
    """Named allocation target for money."""
    __tablename__ = 'buckets'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    mode = db.Column(db.String(20), nullable=False)
    color = db.Column(db.String(20), default='#64748b')
    icon = db.Column(db.String(50), nullable=True)
    alert_threshold = db.Column(db.Integer, default=20)  # percent remaining
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_rollover_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __mapper_args__ = {
        'polymorphic_on': 'mode',
        'polymorphic_abstract': True,
    }

    def __repr__(self):
        return f'<{type(self).__name__} {self.name}>'

    @property
    def is_allocated(self) -> bool:
        """Funded from income through the allocation planner."""
        return False

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'mode': self.mode,
            'color': self.color,
            'icon': self.icon,
            'alert_threshold': self.alert_threshold,
            'is_active': self.is_active,
            'last_rollover_date': self.last_rollover_date.isoformat() if self.last_rollover_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class AllocatedBucket(Bucket):
    """Shared payload of spend and recurring buckets."""
    allocation_type = db.Column(db.String(20), nullable=True)
    planned_amount = db.Column(db.Numeric(12, 2), nullable=True)
    planned_percent = db.Column(db.Numeric(5, 2), nullable=True)
    funded_amount = db.Column(db.Numeric(12, 2), default=0)
    carryover_balance = db.Column(db.Numeric(12, 2), default=0)

    __mapper_args__ = {'polymorphic_abstract': True}

    @property
    def is_allocated(self) -> bool:
        return True

    def planned(self, total_income: Decimal) -> Decimal:
        """This cycle's planned contribution before funding-ratio scaling."""
        if self.allocation_type == 'percentage' and self.planned_percent is not None:
            return Decimal(total_income) * Decimal(self.planned_percent) / Decimal(100)
        if self.allocation_type == 'amount' and self.planned_amount is not None:
            return Decimal(self.planned_amount)
        return ZERO

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'allocation_type': self.allocation_type,
            'planned_amount': float(self.planned_amount) if self.planned_amount is not None else None,
            'planned_percent': float(self.planned_percent) if self.planned_percent is not None else None,
            'funded_amount': float(self.funded_amount or 0),
            'carryover_balance': float(self.carryover_balance or 0),
        })
        return data


class SpendBucket(AllocatedBucket):
    """Discretionary spending; unspent funds or debt carry forward."""
    __mapper_args__ = {'polymorphic_identity': 'spend'}


class RecurringBucket(AllocatedBucket):
    """Fixed bill paid automatically at rollover."""
    __mapper_args__ = {'polymorphic_identity': 'recurring'}


class SaveBucket(Bucket):
    """Goal-based savings funded by monthly contributions."""
    target_amount = db.Column(db.Numeric(12, 2), nullable=True)
    current_balance = db.Column(db.Numeric(12, 2), default=0)
    contribution_type = db.Column(db.String(20), default='none')
    contribution_amount = db.Column(db.Numeric(12, 2), nullable=True)
    contribution_percent = db.Column(db.Numeric(5, 2), nullable=True)
    cap_behavior = db.Column(db.String(20), default='stop')
    cap_reroute_bucket_id = db.Column(db.Integer, db.ForeignKey('buckets.id'), nullable=True)
    last_contribution_date = db.Column(db.DateTime, nullable=True)
    goal_alerts = db.Column(db.JSON, nullable=True)  # percent-of-goal thresholds
    notify_on_complete = db.Column(db.Boolean, default=True)

    __mapper_args__ = {'polymorphic_identity': 'save'}

    @property
    def percent_of_goal(self) -> Decimal:
        target = Decimal(self.target_amount or 0)
        if target <= 0:
            return ZERO
        return Decimal(self.current_balance or 0) / target * 100

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'target_amount': float(self.target_amount) if self.target_amount is not None else None,
            'current_balance': float(self.current_balance or 0),
            'contribution_type': self.contribution_type,
            'contribution_amount': float(self.contribution_amount) if self.contribution_amount is not None else None,
            'contribution_percent': float(self.contribution_percent) if self.contribution_percent is not None else None,
            'cap_behavior': self.cap_behavior,
            'cap_reroute_bucket_id': self.cap_reroute_bucket_id,
            'last_contribution_date': self.last_contribution_date.isoformat() if self.last_contribution_date else None,
            'goal_alerts': self.goal_alerts or [],
            'notify_on_complete': self.notify_on_complete,
            'percent_of_goal': float(round(self.percent_of_goal, 2)),
        })
        return data


BUCKET_CLASSES = {
    'spend': SpendBucket,
    'recurring': RecurringBucket,
    'save': SaveBucket,
}


class Income(db.Model):
    """Income record. Only recurring records feed allocation."""
    __tablename__ = 'income'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    date = db.Column(db.Date, nullable=False)
    note = db.Column(db.String(255), nullable=True)
    is_recurring = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Income {self.amount}>'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'amount': float(self.amount),
            'date': self.date.isoformat(),
            'note': self.note,
            'is_recurring': self.is_recurring,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Expense(db.Model):
    """Expense record. The engine only reads these to derive spend."""
    __tablename__ = 'expenses'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    bucket_id = db.Column(db.Integer, db.ForeignKey('buckets.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    date = db.Column(db.Date, nullable=False)
    note = db.Column(db.Text, default='')
    is_auto_generated = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bucket = db.relationship('Bucket')

    def __repr__(self):
        return f'<Expense {self.amount} bucket={self.bucket_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'bucket_id': self.bucket_id,
            'bucket_name': self.bucket.name if self.bucket else None,
            'amount': float(self.amount),
            'date': self.date.isoformat(),
            'note': self.note,
            'is_auto_generated': self.is_auto_generated,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class RecurringExpense(db.Model):
    """Bill template posted into a spend bucket on a fixed day of the month."""
    __tablename__ = 'recurring_expenses'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    bucket_id = db.Column(db.Integer, db.ForeignKey('buckets.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    day_of_month = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_posted_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    bucket = db.relationship('Bucket')

    def __repr__(self):
        return f'<RecurringExpense {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'bucket_id': self.bucket_id,
            'name': self.name,
            'amount': float(self.amount),
            'day_of_month': self.day_of_month,
            'is_active': self.is_active,
            'last_posted_date': self.last_posted_date.isoformat() if self.last_posted_date else None,
        }
