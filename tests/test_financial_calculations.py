from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.utils.financial_calculations import (
    money,
    user_share,
    paid_total,
    installment_status,
    calculate_penalty,
    allocate_payment,
    financial_summary,
    percentage,
)


def test_money_rounds_half_up():
    assert money("10.005") == Decimal("10.01")
    assert money(None) == Decimal("0.00")


def test_user_share_by_area():
    assert user_share(1000, 50, 200) == Decimal("250.00")
    assert user_share(1000, 60, 100) == Decimal("600.00")


def test_user_share_without_area_is_zero():
    assert user_share(1000, 50, 0) == Decimal("0.00")


def test_paid_total_skips_receipt_only_rows():
    payments = [
        SimpleNamespace(amount=Decimal("100"), receipt_image_path=None),
        SimpleNamespace(amount=Decimal("50"), receipt_image_path="receipts/1.jpg"),
        SimpleNamespace(amount=Decimal("0"), receipt_image_path=None),
    ]
    assert paid_total(payments) == Decimal("100.00")


@pytest.mark.parametrize(
    "share, paid, due, expected",
    [
        (100, 100, date(2020, 1, 1), "PAID"),
        (100, 40, date(2020, 1, 1), "PARTIAL"),
        (100, 0, date(2020, 1, 1), "OVERDUE"),
        (100, 0, date(2099, 1, 1), "PENDING"),
        (0, 0, date(2020, 1, 1), "PENDING"),
    ],
)
def test_installment_status(share, paid, due, expected):
    assert installment_status(share, paid, due, today=date(2024, 6, 1)) == expected


def test_penalty_after_grace():
    assert calculate_penalty(date(2024, 1, 1), date(2024, 1, 15), 10, 5) == (9, Decimal("90.00"))


def test_penalty_within_grace_is_zero():
    assert calculate_penalty(date(2024, 1, 1), date(2024, 1, 6), 10, 5) == (0, Decimal("0.00"))
    assert calculate_penalty(date(2024, 1, 1), None, 10, 5) == (0, Decimal("0.00"))


def test_allocate_payment_earliest_first():
    allocations, leftover = allocate_payment(
        1000,
        [("d1", 600, 0), ("d2", 1200, 0), ("d3", 300, 0)],
    )
    assert allocations == [("d1", Decimal("600.00")), ("d2", Decimal("400.00"))]
    assert leftover == Decimal("0.00")


def test_allocate_payment_skips_paid_and_returns_leftover():
    allocations, leftover = allocate_payment(500, [("d1", 100, 100), ("d2", 200, 50)])
    assert allocations == [("d2", Decimal("150.00"))]
    assert leftover == Decimal("350.00")


def test_allocate_payment_rejects_non_positive():
    with pytest.raises(ValueError):
        allocate_payment(0, [("d1", 100, 0)])


def test_financial_summary():
    summary = financial_summary(
        [
            {"share_amount": 600, "paid_amount": 600, "penalty_amount": 90},
            {"share_amount": 1200, "paid_amount": 400},
        ]
    )
    assert summary["installment_count"] == 2
    assert summary["paid_installment_count"] == 1
    assert summary["total_share"] == Decimal("1800.00")
    assert summary["total_remaining"] == Decimal("800.00")
    assert summary["total_penalty"] == Decimal("90.00")
    assert summary["paid_percentage"] == 55.56


def test_percentage_of_zero_is_zero():
    assert percentage(10, 0) == 0.0
