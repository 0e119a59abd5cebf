"""Rollover report models."""
from datetime import datetime
from bucketledger.core.extensions import db


class RolloverRun(db.Model):
    """One user's rollover into a period. Re-running the same period updates this row."""
    __tablename__ = 'rollover_runs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    period = db.Column(db.String(7), nullable=False)  # YYYY-MM of the cycle being opened
    trigger = db.Column(db.String(20), nullable=False, default='manual')  # manual|scheduled|check
    performed_at = db.Column(db.DateTime, nullable=False)
    buckets_processed = db.Column(db.Integer, nullable=False, default=0)
    run_count = db.Column(db.Integer, nullable=False, default=1)

    entries = db.relationship('RolloverEntry', backref='run', lazy='dynamic',
                              cascade='all, delete-orphan', order_by='RolloverEntry.bucket_id')

    __table_args__ = (db.UniqueConstraint('user_id', 'period'),)

    def __repr__(self):
        return f'<RolloverRun user={self.user_id} {self.period}>'

    def to_dict(self, include_entries: bool = False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'period': self.period,
            'trigger': self.trigger,
            'performed_at': self.performed_at.isoformat(),
            'buckets_processed': self.buckets_processed,
            'run_count': self.run_count,
        }
        if include_entries:
            data['entries'] = [entry.to_dict() for entry in self.entries]
        return data


def _money(value):
    return float(value) if value is not None else None


class RolloverEntry(db.Model):
    """Audit line for one bucket in one rollover.

    Spend and recurring buckets fill the carryover columns, save buckets the balance
    columns. ``previous_*`` and ``cycle_start`` are the state before the first run of the
    period and are reused if the period is rolled over again.
    ``settled_spent`` lets the next rollover charge expenses that were added, edited or
    deleted after this cycle closed.
    """
    __tablename__ = 'rollover_entries'

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.Integer, db.ForeignKey('rollover_runs.id', ondelete='CASCADE'), nullable=False)
    bucket_id = db.Column(db.Integer, db.ForeignKey('buckets.id'), nullable=False, index=True)
    bucket_mode = db.Column(db.String(20), nullable=False)
    period = db.Column(db.String(7), nullable=False)
    cycle_start = db.Column(db.Date, nullable=True)

    previous_carryover = db.Column(db.Numeric(12, 2), nullable=True)
    previous_funded = db.Column(db.Numeric(12, 2), nullable=True)
    spent = db.Column(db.Numeric(12, 2), nullable=True)
    carryover = db.Column(db.Numeric(12, 2), nullable=True)
    new_funded = db.Column(db.Numeric(12, 2), nullable=True)
    late_adjustment = db.Column(db.Numeric(12, 2), nullable=True)
    settled_spent = db.Column(db.Numeric(12, 2), nullable=True)  # spend dated before period, as of this run

    previous_balance = db.Column(db.Numeric(12, 2), nullable=True)
    contribution = db.Column(db.Numeric(12, 2), nullable=True)
    new_balance = db.Column(db.Numeric(12, 2), nullable=True)

    auto_expense_id = db.Column(db.Integer, db.ForeignKey('expenses.id', ondelete='SET NULL'), nullable=True)
    message = db.Column(db.String(255), nullable=True)

    __table_args__ = (db.UniqueConstraint('bucket_id', 'period'),)

    def __repr__(self):
        return f'<RolloverEntry bucket={self.bucket_id} {self.period}>'

    def to_dict(self):
        return {
            'bucket_id': self.bucket_id,
            'mode': self.bucket_mode,
            'period': self.period,
            'cycle_start': self.cycle_start.isoformat() if self.cycle_start else None,
            'previous_carryover': _money(self.previous_carryover),
            'previous_funded': _money(self.previous_funded),
            'spent': _money(self.spent),
            'carryover': _money(self.carryover),
            'new_funded': _money(self.new_funded),
            'late_adjustment': _money(self.late_adjustment),
            'previous_balance': _money(self.previous_balance),
            'contribution': _money(self.contribution),
            'new_balance': _money(self.new_balance),
            'auto_expense_id': self.auto_expense_id,
            'message': self.message,
        }
