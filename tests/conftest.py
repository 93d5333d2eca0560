"""
Shared fixtures: an application on a throwaway SQLite file per test, and
factories for merchants, orders and disbursements.
"""

import itertools
from datetime import date, datetime, time

import pytest

from disbursement import create_app, db
from disbursement.models import Disbursement, Merchant, Order


@pytest.fixture
def app(tmp_path):
    app = create_app(
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'disbursements.db'}",
        TESTING=True,
        DISBURSEMENT_MAX_WORKERS=2,
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def make_merchant(app):
    counter = itertools.count(1)

    def _make(**fields):
        n = next(counter)
        values = {
            "reference": f"merchant_{n}",
            "email": f"merchant{n}@example.com",
            "live_on": date(2022, 1, 1),
            "disbursement_frequency": "DAILY",
            "minimum_monthly_fee_cents": 0,
            "currency": "EUR",
        }
        values.update(fields)
        merchant = Merchant(**values)
        db.session.add(merchant)
        db.session.commit()
        return merchant

    return _make


@pytest.fixture
def make_order(app):
    def _make(merchant, amount, created_at, **fields):
        if not isinstance(created_at, datetime):
            created_at = datetime.combine(created_at, time(12, 0))
        order = Order(merchant_id=merchant.id, amount=amount, created_at=created_at, **fields)
        db.session.add(order)
        db.session.commit()
        return order

    return _make


@pytest.fixture
def make_disbursement(app):
    def _make(merchant, disbursed_on, fee_cents=0, amount_cents=0, monthly_fee_cents=0, reference=None):
        disbursement = Disbursement(
            merchant_id=merchant.id,
            disbursed_on=disbursed_on,
            fee_cents=fee_cents,
            amount_cents=amount_cents,
            monthly_fee_cents=monthly_fee_cents,
            reference=reference,
        )
        disbursement.ensure_reference()
        db.session.add(disbursement)
        db.session.commit()
        return disbursement

    return _make
