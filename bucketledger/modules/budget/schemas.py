"""Budget module validation schemas.

Configuration errors are rejected here, at write time, so the rollover never has to
second-guess a bucket.
"""
from datetime import date
from decimal import Decimal
from bucketledger.core.errors import InvalidConfiguration
from bucketledger.core.money import to_decimal
from bucketledger.core.time import parse_date
from .models import ALLOCATION_TYPES, BUCKET_MODES, CAP_BEHAVIORS, CONTRIBUTION_TYPES


def _amount(data: dict, field: str, required: bool = False):
    value = data.get(field)
    if value is None or value == '':
        if required:
            raise InvalidConfiguration(f'Field {field} is required')
        return None
    try:
        amount = to_decimal(value, field)
    except ValueError as e:
        raise InvalidConfiguration(str(e))
    if amount < 0:
        raise InvalidConfiguration(f'{field} must be non-negative')
    return amount


def _percent(data: dict, field: str):
    value = _amount(data, field)
    if value is not None and value > 100:
        raise InvalidConfiguration(f'{field} cannot exceed 100%')
    return value


def _choice(data: dict, field: str, choices, default=None):
    value = data.get(field, default)
    if value is None:
        return None
    if value not in choices:
        raise InvalidConfiguration(f'Invalid {field}: {value}', details={'allowed': list(choices)})
    return value


class BucketData:
    """Bucket data validation schema."""

    SHARED_FIELDS = ('name', 'color', 'icon', 'alert_threshold')
    ALLOCATED_FIELDS = ('allocation_type', 'planned_amount', 'planned_percent')
    SAVE_FIELDS = (
        'target_amount', 'contribution_type', 'contribution_amount', 'contribution_percent',
        'cap_behavior', 'cap_reroute_bucket_id', 'goal_alerts', 'notify_on_complete',
    )

    @staticmethod
    def validate(data: dict, mode: str = None, existing=None) -> dict:
        """Validate create payloads, or updates when ``existing`` is given.

        For updates the payload is merged over the bucket's current values before the
        cross-field rules run, so a partial update cannot leave the bucket inconsistent.
        """
        if existing is not None:
            if 'mode' in data and data['mode'] != existing.mode:
                raise InvalidConfiguration('Bucket mode cannot be changed; create a new bucket instead')
            mode = existing.mode
        else:
            mode = data.get('mode', mode)
            if mode not in BUCKET_MODES:
                raise InvalidConfiguration(f'Invalid mode: {mode}', details={'allowed': list(BUCKET_MODES)})

        allowed = BucketData.SHARED_FIELDS + (
            BucketData.SAVE_FIELDS if mode == 'save' else BucketData.ALLOCATED_FIELDS
        )
        foreign = [key for key in data if key not in allowed and key != 'mode']
        if foreign:
            raise InvalidConfiguration(
                f'Fields not valid for {mode} buckets: {", ".join(sorted(foreign))}'
            )

        merged = {}
        if existing is not None:
            for key in allowed:
                merged[key] = getattr(existing, key, None)
        merged.update(data)

        cleaned = {}
        name = str(merged.get('name') or '').strip()
        if not (1 <= len(name) <= 100):
            raise InvalidConfiguration('Bucket name must be 1-100 characters')
        cleaned['name'] = name

        if merged.get('color') is not None:
            cleaned['color'] = str(merged['color'])[:20]
        if merged.get('icon') is not None:
            cleaned['icon'] = str(merged['icon'])[:50]
        threshold = merged.get('alert_threshold')
        if threshold is not None:
            try:
                threshold = int(threshold)
            except (TypeError, ValueError):
                raise InvalidConfiguration('alert_threshold must be an integer')
            if not 0 <= threshold <= 100:
                raise InvalidConfiguration('alert_threshold must be between 0 and 100')
            cleaned['alert_threshold'] = threshold

        if mode == 'save':
            cleaned.update(BucketData._validate_save(merged))
        else:
            cleaned.update(BucketData._validate_allocated(merged))

        if existing is not None:
            # Only report what the caller actually touched
            touched = set(data) - {'mode'}
            cleaned = {key: value for key, value in cleaned.items() if key in touched}
        else:
            cleaned['mode'] = mode
        return cleaned

    @staticmethod
    def _validate_allocated(data: dict) -> dict:
        allocation_type = _choice(data, 'allocation_type', ALLOCATION_TYPES)
        if allocation_type is None:
            raise InvalidConfiguration('allocation_type is required')
        planned_amount = _amount(data, 'planned_amount')
        planned_percent = _percent(data, 'planned_percent')
        if allocation_type == 'amount' and planned_amount is None:
            raise InvalidConfiguration('planned_amount is required when allocation_type is amount')
        if allocation_type == 'percentage' and planned_percent is None:
            raise InvalidConfiguration('planned_percent is required when allocation_type is percentage')
        return {
            'allocation_type': allocation_type,
            'planned_amount': planned_amount,
            'planned_percent': planned_percent,
        }

    @staticmethod
    def _validate_save(data: dict) -> dict:
        target_amount = _amount(data, 'target_amount')
        contribution_type = _choice(data, 'contribution_type', CONTRIBUTION_TYPES) or 'none'
        contribution_amount = _amount(data, 'contribution_amount')
        contribution_percent = _percent(data, 'contribution_percent')
        if contribution_type == 'amount' and contribution_amount is None:
            raise InvalidConfiguration('contribution_amount is required when contribution_type is amount')
        if contribution_type == 'percentage' and contribution_percent is None:
            raise InvalidConfiguration('contribution_percent is required when contribution_type is percentage')

        cap_behavior = _choice(data, 'cap_behavior', CAP_BEHAVIORS) or 'stop'
        reroute_id = data.get('cap_reroute_bucket_id')
        if reroute_id is not None:
            try:
                reroute_id = int(reroute_id)
            except (TypeError, ValueError):
                raise InvalidConfiguration('cap_reroute_bucket_id must be an integer')
        if cap_behavior == 'bucket' and reroute_id is None:
            raise InvalidConfiguration('cap_reroute_bucket_id is required when cap_behavior is bucket')

        goal_alerts = data.get('goal_alerts')
        if goal_alerts is not None:
            if not isinstance(goal_alerts, (list, tuple)):
                raise InvalidConfiguration('goal_alerts must be a list of percentages')
            try:
                goal_alerts = sorted({int(value) for value in goal_alerts})
            except (TypeError, ValueError):
                raise InvalidConfiguration('goal_alerts must be a list of percentages')
            if any(not 0 < value <= 100 for value in goal_alerts):
                raise InvalidConfiguration('goal_alerts values must be between 1 and 100')

        notify = data.get('notify_on_complete')
        return {
            'target_amount': target_amount,
            'contribution_type': contribution_type,
            'contribution_amount': contribution_amount,
            'contribution_percent': contribution_percent,
            'cap_behavior': cap_behavior,
            'cap_reroute_bucket_id': reroute_id,
            'goal_alerts': goal_alerts,
            'notify_on_complete': True if notify is None else bool(notify),
        }


class IncomeData:
    """Income data validation schema."""

    @staticmethod
    def validate(data: dict, partial: bool = False) -> dict:
        cleaned = {}
        if not partial or 'amount' in data:
            cleaned['amount'] = _amount(data, 'amount', required=True)
        if not partial or 'date' in data:
            try:
                cleaned['date'] = parse_date(data.get('date')) or date.today()
            except ValueError as e:
                raise InvalidConfiguration(str(e))
        if 'note' in data:
            cleaned['note'] = (str(data['note']).strip() or None) if data['note'] is not None else None
        if not partial or 'is_recurring' in data:
            value = data.get('is_recurring', True)
            if not isinstance(value, bool):
                raise InvalidConfiguration('is_recurring must be a boolean')
            cleaned['is_recurring'] = value
        return cleaned


class ExpenseData:
    """Expense data validation schema."""

    @staticmethod
    def validate(data: dict, partial: bool = False) -> dict:
        cleaned = {}
        if not partial or 'bucket_id' in data:
            try:
                cleaned['bucket_id'] = int(data['bucket_id'])
            except (KeyError, TypeError, ValueError):
                raise InvalidConfiguration('bucket_id is required')
        if not partial or 'amount' in data:
            amount = _amount(data, 'amount', required=True)
            if amount == Decimal('0'):
                raise InvalidConfiguration('amount must be greater than 0')
            cleaned['amount'] = amount
        if not partial or 'date' in data:
            try:
                cleaned['date'] = parse_date(data.get('date')) or date.today()
            except ValueError as e:
                raise InvalidConfiguration(str(e))
        if not partial or 'note' in data:
            note = str(data.get('note') or '').strip()
            if len(note) > 500:
                raise InvalidConfiguration('note must not exceed 500 characters')
            cleaned['note'] = note
        return cleaned


class RecurringExpenseData:
    """Recurring expense template validation schema."""

    @staticmethod
    def validate(data: dict, partial: bool = False) -> dict:
        cleaned = {}
        if not partial or 'bucket_id' in data:
            try:
                cleaned['bucket_id'] = int(data['bucket_id'])
            except (KeyError, TypeError, ValueError):
                raise InvalidConfiguration('bucket_id is required')
        if not partial or 'name' in data:
            name = str(data.get('name') or '').strip()
            if not (1 <= len(name) <= 100):
                raise InvalidConfiguration('name must be 1-100 characters')
            cleaned['name'] = name
        if not partial or 'amount' in data:
            amount = _amount(data, 'amount', required=True)
            if amount == Decimal('0'):
                raise InvalidConfiguration('amount must be greater than 0')
            cleaned['amount'] = amount
        if not partial or 'day_of_month' in data:
            try:
                day = int(data['day_of_month'])
            except (KeyError, TypeError, ValueError):
                raise InvalidConfiguration('day_of_month is required')
            if not 1 <= day <= 31:
                raise InvalidConfiguration('day_of_month must be between 1 and 31')
            cleaned['day_of_month'] = day
        return cleaned
