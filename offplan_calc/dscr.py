"""Debt service coverage ratio (DSCR) calculator.

A sibling of the payment plan engine for income-producing property: given the
net operating income and the financing terms it reports how comfortably the
income covers the loan, and how large a loan a target DSCR would allow.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .errors import InvalidInputError
from .utils import Number, to_decimal

HUNDRED = Decimal(100)
TWELVE = Decimal(12)


@dataclass(frozen=True)
class DSCRAnalysis:
    loan_amount: Decimal
    monthly_payment: Decimal
    annual_debt_service: Decimal
    dscr: Decimal
    annual_cash_flow: Decimal
    monthly_cash_flow: Decimal
    down_payment: Decimal
    cash_on_cash_percent: Decimal
    max_loan_amount: Decimal
    max_ltv_percent: Decimal
    break_even_occupancy_percent: Decimal
    rating: str


def annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise InvalidInputError("Term must be positive")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def annuity_principal(payment: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Inverse of ``annuity_payment``: the principal a given payment services."""
    if term <= 0:
        raise InvalidInputError("Term must be positive")
    if rate_per_month == 0:
        return payment * Decimal(term)
    factor = (1 + rate_per_month) ** term
    return payment * (factor - 1) / (rate_per_month * factor)


def dscr_rating(dscr: Decimal) -> str:
    if dscr >= Decimal("1.5"):
        return "Excellent"
    if dscr >= Decimal("1.25"):
        return "Good"
    if dscr >= 1:
        return "Acceptable"
    return "Poor"


def analyze_dscr(
    noi: Number,
    property_price: Number,
    loan_to_value_percent: Number,
    annual_rate_percent: Number,
    term_years: int,
    target_dscr: Number = Decimal("1.25"),
) -> DSCRAnalysis:
    """Compute coverage, cash flow and borrowing capacity for a financed property."""
    try:
        noi_d = to_decimal(noi)
        price = to_decimal(property_price)
        ltv = to_decimal(loan_to_value_percent)
        rate = to_decimal(annual_rate_percent)
        target = to_decimal(target_dscr)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc

    if noi_d <= 0:
        raise InvalidInputError("Net operating income must be positive")
    if price <= 0:
        raise InvalidInputError("Property price must be positive")
    if ltv <= 0 or ltv >= 100:
        raise InvalidInputError("Loan to value must be between 0 and 100 (exclusive)")
    if rate < 0:
        raise InvalidInputError("Interest rate cannot be negative")
    if not isinstance(term_years, int) or term_years < 1:
        raise InvalidInputError("Loan term must be at least one year")
    if target <= 0:
        raise InvalidInputError("Target DSCR must be positive")

    loan_amount = price * ltv / HUNDRED
    rate_per_month = rate / HUNDRED / TWELVE
    payments = term_years * 12

    monthly_payment = annuity_payment(loan_amount, rate_per_month, payments)
    annual_debt_service = monthly_payment * TWELVE
    dscr = noi_d / annual_debt_service

    annual_cash_flow = noi_d - annual_debt_service
    down_payment = price - loan_amount

    max_monthly_payment = noi_d / target / TWELVE
    max_loan_amount = annuity_principal(max_monthly_payment, rate_per_month, payments)

    return DSCRAnalysis(
        loan_amount=loan_amount,
        monthly_payment=monthly_payment,
        annual_debt_service=annual_debt_service,
        dscr=dscr,
        annual_cash_flow=annual_cash_flow,
        monthly_cash_flow=annual_cash_flow / TWELVE,
        down_payment=down_payment,
        cash_on_cash_percent=annual_cash_flow / down_payment * HUNDRED,
        max_loan_amount=max_loan_amount,
        max_ltv_percent=max_loan_amount / price * HUNDRED,
        break_even_occupancy_percent=annual_debt_service / noi_d * HUNDRED,
        rating=dscr_rating(dscr),
    )
