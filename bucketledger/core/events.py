"""Domain events system."""
from typing import Callable, Dict, List
from datetime import datetime
from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class DomainEvent(ABC):
    """Base domain event class."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        self.timestamp = datetime.utcnow()

    @property
    @abstractmethod
    def event_type(self) -> str:
        """Event type identifier."""

    def to_dict(self) -> Dict:
        return {
            'event_type': self.event_type,
            'user_id': self.user_id,
            'timestamp': self.timestamp.isoformat(),
            'data': self._get_data(),
        }

    def _get_data(self) -> Dict:
        return {}


class BucketChanged(DomainEvent):
    """A bucket was created, updated or soft-deleted."""
    event_type = 'bucket.changed'

    def __init__(self, user_id: int, bucket_id: int, action: str):
        super().__init__(user_id)
        self.bucket_id = bucket_id
        self.action = action

    def _get_data(self) -> Dict:
        return {'bucket_id': self.bucket_id, 'action': self.action}


class IncomeChanged(DomainEvent):
    """An income record was added, updated or deleted."""
    event_type = 'income.changed'

    def __init__(self, user_id: int, income_id: int, action: str):
        super().__init__(user_id)
        self.income_id = income_id
        self.action = action

    def _get_data(self) -> Dict:
        return {'income_id': self.income_id, 'action': self.action}


class DistributionRecalculated(DomainEvent):
    event_type = 'distribution.recalculated'

    def __init__(self, user_id: int, funding_ratio, is_over_planned: bool):
        super().__init__(user_id)
        self.funding_ratio = funding_ratio
        self.is_over_planned = is_over_planned

    def _get_data(self) -> Dict:
        return {'funding_ratio': str(self.funding_ratio), 'is_over_planned': self.is_over_planned}


class RolloverCompleted(DomainEvent):
    event_type = 'rollover.completed'

    def __init__(self, user_id: int, period: str, buckets_processed: int, trigger: str):
        super().__init__(user_id)
        self.period = period
        self.buckets_processed = buckets_processed
        self.trigger = trigger

    def _get_data(self) -> Dict:
        return {
            'period': self.period,
            'buckets_processed': self.buckets_processed,
            'trigger': self.trigger,
        }


class RolloverFailed(DomainEvent):
    event_type = 'rollover.failed'

    def __init__(self, user_id: int, error: str):
        super().__init__(user_id)
        self.error = error

    def _get_data(self) -> Dict:
        return {'error': self.error}


class SavingsGoalReached(DomainEvent):
    """A contribution brought a save bucket to its target."""
    event_type = 'savings.goal_reached'

    def __init__(self, user_id: int, bucket_id: int, name: str, target_amount):
        super().__init__(user_id)
        self.bucket_id = bucket_id
        self.name = name
        self.target_amount = target_amount

    def _get_data(self) -> Dict:
        return {'bucket_id': self.bucket_id, 'name': self.name, 'target_amount': str(self.target_amount)}


class SavingsGoalAlert(DomainEvent):
    """A configured progress threshold (percent of target) was crossed."""
    event_type = 'savings.goal_alert'

    def __init__(self, user_id: int, bucket_id: int, threshold: int, percent_of_goal):
        super().__init__(user_id)
        self.bucket_id = bucket_id
        self.threshold = threshold
        self.percent_of_goal = percent_of_goal

    def _get_data(self) -> Dict:
        return {
            'bucket_id': self.bucket_id,
            'threshold': self.threshold,
            'percent_of_goal': str(self.percent_of_goal),
        }


class EventBus:
    """Simple synchronous event bus."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable[[DomainEvent], None]]] = {}

    def subscribe(self, event_type: str, handler: Callable[[DomainEvent], None]) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Subscribed handler {handler.__name__} to event {event_type}")

    def publish(self, event: DomainEvent) -> None:
        """Deliver to every handler; a failing handler never aborts the publisher."""
        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in handler {handler.__name__} for event {event.event_type}: {e}")

    def get_handlers(self, event_type: str) -> List[Callable]:
        return list(self._handlers.get(event_type, []))

    def clear_handlers(self, event_type: str = None) -> None:
        if event_type:
            self._handlers.pop(event_type, None)
        else:
            self._handlers.clear()


# Global event bus instance
event_bus = EventBus()


def log_event(event: DomainEvent) -> None:
    logger.info(f"{event.event_type} user={event.user_id} {event._get_data()}")


def log_rollover_failure(event: RolloverFailed) -> None:
    logger.error(f"Rollover failed for user {event.user_id}: {event.error}")


def log_goal_reached(event: SavingsGoalReached) -> None:
    # TODO: deliver through a notification channel once one exists
    logger.info(f"Savings goal '{event.name}' reached by user {event.user_id}")


def register_default_handlers():
    """Register default event handlers."""
    for event_type in (
        BucketChanged.event_type,
        IncomeChanged.event_type,
        DistributionRecalculated.event_type,
        RolloverCompleted.event_type,
        SavingsGoalAlert.event_type,
    ):
        event_bus.subscribe(event_type, log_event)
    event_bus.subscribe(RolloverFailed.event_type, log_rollover_failure)
    event_bus.subscribe(SavingsGoalReached.event_type, log_goal_reached)
