"""Output helpers for the off-plan calculator.

This module provides simple functions to render calculation results, cash-flow
timelines and plan comparisons in a tabular text format using built-in
printing and string formatting.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from .data_models import CalculationResult, CashFlowEvent, PaymentPlanTemplate
from .dscr import DSCRAnalysis
from .utils import add_months


def format_aed(amount: Decimal) -> str:
    """Render an amount the way the calculator displays prices: ``AED 1,234,567``."""
    whole = Decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return f"AED {whole:,.0f}"


def print_plans(plans: Iterable[PaymentPlanTemplate]) -> None:
    """Print the payment plan catalog."""
    print(f"{'Id':12s} {'Name':22s} {'During':>7s} {'Handover':>9s} {'Post':>5s} {'Months':>7s}")
    print("-" * 72)
    for plan in plans:
        marker = " *" if plan.popular else ""
        print(
            f"{plan.id:12s} {plan.name:22s} {plan.during_construction_percent:>6d}%"
            f" {plan.on_handover_percent:>8d}% {plan.post_handover_percent:>4d}%"
            f" {plan.effective_post_handover_months:>7d}{marker}"
        )
    print("-" * 72)
    print("* popular")


def print_summary(result: CalculationResult) -> None:
    """Print the phase amounts, fees and equity projection of a result."""
    plan = result.plan
    print(f"Summary: {plan.name}")
    print("-" * 72)
    print(f"Property price        : {format_aed(result.inputs.property_price)}")
    print(f"Booking deposit       : {format_aed(result.booking_amount)}")
    print(f"During construction   : {format_aed(result.during_construction_amount)}"
          f" ({plan.during_construction_percent}%)")
    print(f"Monthly (construction): {format_aed(result.monthly_construction_payment)}")
    if result.on_handover_amount > 0:
        print(f"On handover           : {format_aed(result.on_handover_amount)}"
              f" ({plan.on_handover_percent}%)")
    if result.post_handover_amount > 0:
        print(f"Post-handover         : {format_aed(result.post_handover_amount)}"
              f" ({plan.post_handover_percent}% over {plan.effective_post_handover_months} months)")
        print(f"Monthly (post)        : {format_aed(result.monthly_post_handover_payment)}")
    print(f"Oqood registration    : {format_aed(result.registration_fee)}")
    print(f"Admin fees            : {format_aed(result.administrative_fee)}")
    print(f"Transfer at handover  : {format_aed(result.transfer_fee)}")
    print(f"Total fees            : {format_aed(result.total_fees)}")
    print(f"Paid by handover      : {format_aed(result.paid_by_handover)}")
    if result.paid_after_handover > 0:
        print(f"Paid after handover   : {format_aed(result.paid_after_handover)}")
    print(f"Grand total           : {format_aed(result.grand_total)}")
    print(f"Value at handover     : {format_aed(result.appreciated_value)}")
    print(f"Equity at handover    : {format_aed(result.equity_at_handover)}")
    print("-" * 72)


def print_timeline(timeline: Iterable[CashFlowEvent], booking_date: Optional[date] = None) -> None:
    """Print the cash-flow timeline as a simple table.

    When ``booking_date`` is given, each row also shows the calendar month of
    the payment.
    """
    headers = ["Month", "Label", "Phase", "Payment", "Cumulative"]
    if booking_date is not None:
        headers.insert(1, "Date")
    print("\t".join(headers))
    for event in timeline:
        row = [str(event.month_offset), event.label, event.phase.value]
        if booking_date is not None:
            row.insert(1, add_months(booking_date, event.month_offset).strftime("%Y-%m"))
        row.append(f"{event.payment_amount:.2f}")
        row.append(f"{event.cumulative_paid:.2f}")
        print("\t".join(row))


def print_comparison(r1: CalculationResult, r2: CalculationResult) -> None:
    """Print two results side by side.

    The difference column is (second - first); a negative value means the
    second plan asks for less money at that point.
    """
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':22s} {r1.plan.id:>15s} {r2.plan.id:>15s} {'Difference':>15s}")
    rows = [
        ("booking_payment", r1.timeline[0].payment_amount, r2.timeline[0].payment_amount),
        ("monthly_construction", r1.monthly_construction_payment, r2.monthly_construction_payment),
        ("on_handover", r1.on_handover_amount, r2.on_handover_amount),
        ("paid_by_handover", r1.paid_by_handover, r2.paid_by_handover),
        ("monthly_post_handover", r1.monthly_post_handover_payment, r2.monthly_post_handover_payment),
        ("grand_total", r1.grand_total, r2.grand_total),
    ]
    for key, v1, v2 in rows:
        diff = v2 - v1
        print(f"{key:22s} {v1:15.2f} {v2:15.2f} {diff:15.2f}")
    print("=" * 72)


def print_dscr(analysis: DSCRAnalysis) -> None:
    print("DSCR analysis")
    print("-" * 72)
    print(f"Loan amount           : {format_aed(analysis.loan_amount)}")
    print(f"Monthly payment       : {format_aed(analysis.monthly_payment)}")
    print(f"Annual debt service   : {format_aed(analysis.annual_debt_service)}")
    print(f"DSCR                  : {analysis.dscr:.2f} ({analysis.rating})")
    print(f"Annual cash flow      : {format_aed(analysis.annual_cash_flow)}")
    print(f"Cash on cash          : {analysis.cash_on_cash_percent:.2f}%")
    print(f"Max loan at target    : {format_aed(analysis.max_loan_amount)}")
    print(f"Max LTV at target     : {analysis.max_ltv_percent:.2f}%")
    print(f"Break-even occupancy  : {analysis.break_even_occupancy_percent:.2f}%")
    print("-" * 72)
