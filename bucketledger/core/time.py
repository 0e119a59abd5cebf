"""Calendar period helpers.

Budget cycles are calendar months in platform-local time. Rollover guards compare
periods, never raw timestamps.
"""
from datetime import date, datetime
from typing import NamedTuple, Optional, Union
import calendar


class YearMonth(NamedTuple):
    """Immutable year-month pair identifying one budget cycle."""
    year: int
    month: int

    def __str__(self) -> str:
        return f"{self.year}-{self.month:02d}"

    @classmethod
    def current(cls, now: Optional[datetime] = None) -> 'YearMonth':
        now = now or datetime.now()
        return cls(now.year, now.month)

    @classmethod
    def from_date(cls, d: Union[date, datetime]) -> 'YearMonth':
        return cls(d.year, d.month)

    @classmethod
    def from_string(cls, s: str) -> 'YearMonth':
        """Parse '2025-01' or '2025-1'."""
        parts = s.split('-')
        if len(parts) != 2:
            raise ValueError(f"Invalid year-month format: {s}")
        try:
            year, month = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise ValueError(f"Invalid year-month format: {s}") from e
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be 1-12, got {month}")
        return cls(year, month)

    def to_date(self) -> date:
        """First day of the month."""
        return date(self.year, self.month, 1)

    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, value: Union[date, datetime, None]) -> bool:
        """True when the date or timestamp falls inside this month."""
        if value is None:
            return False
        return value.year == self.year and value.month == self.month


def parse_year_month(value: Optional[str]) -> YearMonth:
    """Parse a year-month from 'YYYY-MM' or 'YYYY-MM-DD'; empty means current month."""
    if not value:
        return YearMonth.current()

    try:
        return YearMonth.from_string(value)
    except ValueError:
        pass

    try:
        return YearMonth.from_date(datetime.strptime(value, '%Y-%m-%d').date())
    except ValueError:
        pass

    raise ValueError(f"Cannot parse year-month: {value}")


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Accept ISO dates or datetimes from API payloads."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError as e:
        raise ValueError(f"Invalid date: {value}") from e
