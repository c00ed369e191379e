from __future__ import annotations

from decimal import Decimal

import pytest

from offplan_calc.dscr import analyze_dscr, annuity_payment, annuity_principal, dscr_rating
from offplan_calc.errors import InvalidInputError


def test_zero_rate_annuity_is_straight_line():
    assert annuity_payment(Decimal("120000"), Decimal(0), 120) == Decimal("1000")
    assert annuity_principal(Decimal("1000"), Decimal(0), 120) == Decimal("120000")


def test_annuity_principal_inverts_payment():
    rate = Decimal("0.05") / 12
    payment = annuity_payment(Decimal("700000"), rate, 300)

    assert abs(annuity_principal(payment, rate, 300) - Decimal("700000")) < Decimal("0.01")


def test_analyze_dscr_basic():
    analysis = analyze_dscr(
        noi=Decimal("120000"),
        property_price=Decimal("1000000"),
        loan_to_value_percent=70,
        annual_rate_percent=5,
        term_years=25,
    )

    assert analysis.loan_amount == Decimal("700000")
    assert analysis.down_payment == Decimal("300000")
    assert analysis.dscr == Decimal("120000") / analysis.annual_debt_service
    assert analysis.dscr > Decimal("2")
    assert analysis.rating == "Excellent"
    assert analysis.max_loan_amount > analysis.loan_amount
    assert abs(analysis.break_even_occupancy_percent * analysis.dscr - 100) < Decimal("0.0001")


@pytest.mark.parametrize(
    "value,expected",
    [("1.6", "Excellent"), ("1.3", "Good"), ("1.0", "Acceptable"), ("0.8", "Poor")],
)
def test_ratings(value, expected):
    assert dscr_rating(Decimal(value)) == expected


@pytest.mark.parametrize(
    "kwargs",
    [
        {"noi": 0},
        {"property_price": -1},
        {"loan_to_value_percent": 100},
        {"annual_rate_percent": -1},
        {"term_years": 0},
        {"target_dscr": 0},
    ],
)
def test_invalid_inputs(kwargs):
    params = {
        "noi": 100000,
        "property_price": 1000000,
        "loan_to_value_percent": 70,
        "annual_rate_percent": 5,
        "term_years": 25,
        "target_dscr": "1.25",
    }
    params.update(kwargs)
    with pytest.raises(InvalidInputError):
        analyze_dscr(**params)
