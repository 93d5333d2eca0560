"""Transaction and minimum monthly fees.

Amounts are integer cents. Rates are applied in ``Decimal`` so that results
such as ``30000 * 0.85%`` land exactly on 255 before rounding up.
"""

from datetime import datetime, timedelta
from decimal import ROUND_CEILING, Decimal

from sqlalchemy import func, select

from disbursement import db
from disbursement.models import Disbursement, Frequency

# (exclusive upper bound in cents, rate); None closes the last bracket.
FEE_BRACKETS = (
    (5000, Decimal("0.0100")),
    (30000, Decimal("0.0095")),
    (None, Decimal("0.0085")),
)

# Last day of the month a WEEKLY merchant can still be charged the monthly fee.
WEEKLY_FEE_WINDOW_DAYS = 7


def fee_rate(gross_amount):
    for upper, rate in FEE_BRACKETS:
        if upper is None or gross_amount < upper:
            return rate


def transaction_fee(gross_amount):
    """Fee owed on a period's gross amount, rounded up to the next cent."""
    if gross_amount <= 0:
        return 0
    fee = Decimal(gross_amount) * fee_rate(gross_amount)
    return int(fee.to_integral_value(rounding=ROUND_CEILING))


def eligible_for_monthly_fee(frequency, day):
    """DAILY merchants are charged on the 1st, WEEKLY ones in the first week."""
    frequency = Frequency.parse(frequency)
    if frequency is Frequency.DAILY:
        return day.day == 1
    return day.day <= WEEKLY_FEE_WINDOW_DAYS


def previous_month(day):
    """First and last day of the calendar month before ``day``."""
    last_day = day.replace(day=1) - timedelta(days=1)
    return last_day.replace(day=1), last_day


def total_fees_for_month(merchant_id, first_day, last_day):
    query = select(func.coalesce(func.sum(Disbursement.fee_cents), 0)).where(
        Disbursement.merchant_id == merchant_id,
        Disbursement.disbursed_on.between(first_day, last_day),
    )
    return db.session.scalar(query)


def monthly_fee_due(merchant, period_start):
    """Top-up needed for last month's transaction fees to reach the merchant's minimum."""
    day = period_start.date() if isinstance(period_start, datetime) else period_start
    if not eligible_for_monthly_fee(merchant.frequency, day):
        return 0

    first_day, last_day = previous_month(day)
    collected = total_fees_for_month(merchant.id, first_day, last_day)
    return max((merchant.minimum_monthly_fee_cents or 0) - collected, 0)
