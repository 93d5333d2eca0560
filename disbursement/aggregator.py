from sqlalchemy import func, select

from disbursement import db
from disbursement.models import Order


def _unlinked(merchant, *conditions):
    return (Order.merchant_id == merchant.id, Order.disbursement_id.is_(None)) + conditions


def unprocessed(merchant, period_start, period_end):
    """Unlinked orders of ``merchant`` created within ``[period_start, period_end]``."""
    query = (
        select(Order)
        .where(*_unlinked(merchant, Order.created_at.between(period_start, period_end)))
        .order_by(Order.created_at, Order.id)
    )
    return db.session.scalars(query).all()


def sum_unprocessed(merchant, period_start, period_end):
    """Return ``(gross_amount, order_ids)`` for the period's unlinked orders."""
    query = select(Order.id, Order.amount).where(
        *_unlinked(merchant, Order.created_at.between(period_start, period_end))
    )
    rows = db.session.execute(query).all()
    return sum(amount or 0 for _, amount in rows), {order_id for order_id, _ in rows}


def oldest_unprocessed_date(merchant):
    """Creation date of the merchant's oldest unlinked order, or None."""
    oldest = db.session.scalar(select(func.min(Order.created_at)).where(*_unlinked(merchant)))
    return oldest.date() if oldest is not None else None
