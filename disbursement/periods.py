"""Billing periods for a merchant's disbursement frequency.

A period is a closed ``[start, end]`` range of naive datetimes. Only periods
that have fully elapsed before ``today`` are produced.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, NamedTuple, Optional

from disbursement.models import Frequency

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(days=7)


class Period(NamedTuple):
    start: datetime
    end: datetime

    @property
    def disbursed_on(self) -> date:
        return self.end.date()


def span(first_day: date, last_day: date) -> Period:
    return Period(datetime.combine(first_day, time.min), datetime.combine(last_day, time.max))


def periods(frequency, start_date: date, today: Optional[date] = None) -> Iterator[Period]:
    """Return the periods to disburse, oldest first.

    The frequency is checked before anything is yielded, so an unknown value
    raises ``UnsupportedFrequencyError`` at call time.
    """
    frequency = Frequency.parse(frequency)
    if isinstance(start_date, datetime):
        start_date = start_date.date()
    today = today or date.today()

    if frequency is Frequency.DAILY:
        return _daily(start_date, today)
    return _weekly(start_date, today)


def _daily(start_date: date, today: date) -> Iterator[Period]:
    day = start_date
    while day < today:
        yield span(day, day)
        day += ONE_DAY


def _weekly(start_date: date, today: date) -> Iterator[Period]:
    current_week_start = today - timedelta(days=today.weekday())
    start = start_date
    while start < current_week_start:
        last_day = start + ONE_WEEK - ONE_DAY
        # A stride that is not week aligned can reach into the current week.
        if last_day >= today:
            return
        yield span(start, last_day)
        start += ONE_WEEK
