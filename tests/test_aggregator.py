from datetime import date, datetime

from disbursement import aggregator
from disbursement.periods import span


def test_oldest_unprocessed_date_ignores_linked_orders(make_merchant, make_order, make_disbursement):
    merchant = make_merchant()
    disbursement = make_disbursement(merchant, date(2023, 1, 1))
    make_order(merchant, 100, date(2023, 1, 3))
    make_order(merchant, 100, date(2023, 1, 1), disbursement_id=disbursement.id)
    make_order(merchant, 100, datetime(2023, 1, 2, 23, 30))

    assert aggregator.oldest_unprocessed_date(merchant) == date(2023, 1, 2)


def test_oldest_unprocessed_date_is_none_without_open_orders(make_merchant, make_order, make_disbursement):
    idle = make_merchant()
    settled = make_merchant()
    disbursement = make_disbursement(settled, date(2023, 1, 1))
    make_order(settled, 100, date(2023, 1, 1), disbursement_id=disbursement.id)

    assert aggregator.oldest_unprocessed_date(idle) is None
    assert aggregator.oldest_unprocessed_date(settled) is None


def test_sum_unprocessed_covers_the_period_only(make_merchant, make_order, make_disbursement):
    merchant = make_merchant()
    other = make_merchant()
    disbursement = make_disbursement(merchant, date(2022, 12, 31))
    first = make_order(merchant, 100, datetime(2023, 1, 1, 0, 0))
    last = make_order(merchant, 200, datetime(2023, 1, 1, 23, 59, 59))
    make_order(merchant, 400, datetime(2023, 1, 2, 0, 0))
    make_order(merchant, 800, datetime(2023, 1, 1, 10, 0), disbursement_id=disbursement.id)
    make_order(other, 1600, datetime(2023, 1, 1, 10, 0))
    period = span(date(2023, 1, 1), date(2023, 1, 1))

    gross_amount, order_ids = aggregator.sum_unprocessed(merchant, period.start, period.end)

    assert gross_amount == 300
    assert order_ids == {first.id, last.id}


def test_sum_unprocessed_of_an_empty_period(make_merchant):
    merchant = make_merchant()
    period = span(date(2023, 1, 1), date(2023, 1, 7))

    assert aggregator.sum_unprocessed(merchant, period.start, period.end) == (0, set())


def test_unprocessed_returns_orders_oldest_first(make_merchant, make_order):
    merchant = make_merchant()
    later = make_order(merchant, 300, datetime(2023, 1, 5, 18, 0))
    earlier = make_order(merchant, 100, datetime(2023, 1, 2, 9, 0))
    period = span(date(2023, 1, 1), date(2023, 1, 7))

    orders = aggregator.unprocessed(merchant, period.start, period.end)

    assert [order.id for order in orders] == [earlier.id, later.id]
