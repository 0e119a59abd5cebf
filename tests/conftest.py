"""Test configuration and fixtures."""
import pytest
from datetime import datetime
from decimal import Decimal

from bucketledger import create_app
from bucketledger.core.events import event_bus
from bucketledger.core.extensions import db
from bucketledger.modules.budget.service import BucketService, ExpenseService, IncomeService
from bucketledger.modules.users.service import UserService

JAN_5 = datetime(2025, 1, 5, 12, 0)


@pytest.fixture
def app():
    """Application on an in-memory database, one fresh schema per test."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
    event_bus.clear_handlers()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    return UserService.create_user('Test User')


@pytest.fixture
def make_user(app):
    def _make(name='Another User'):
        return UserService.create_user(name)
    return _make


@pytest.fixture
def make_bucket(app):
    """Create a bucket through the service; it starts its cycle on ``now`` (default Jan 5, 2025)."""
    def _make(user_id, name='Bucket', mode='spend', now=JAN_5, **fields):
        data = {'name': name, 'mode': mode}
        if mode != 'save' and 'allocation_type' not in fields:
            data['allocation_type'] = 'amount'
        data.update(fields)
        return BucketService.create_bucket(user_id, data, now=now)
    return _make


@pytest.fixture
def add_income(app):
    def _add(user_id, amount, is_recurring=True, on='2025-01-01'):
        return IncomeService.add_income(user_id, {
            'amount': Decimal(str(amount)), 'is_recurring': is_recurring, 'date': on,
        })
    return _add


@pytest.fixture
def add_expense(app):
    def _add(user_id, bucket_id, amount, on):
        return ExpenseService.add_expense(user_id, {
            'bucket_id': bucket_id, 'amount': Decimal(str(amount)), 'date': on,
        })
    return _add


@pytest.fixture
def captured_events():
    """Collect published events of the given types."""
    events = []

    def _capture(*event_types):
        for event_type in event_types:
            event_bus.subscribe(event_type, events.append)
        return events
    return _capture
