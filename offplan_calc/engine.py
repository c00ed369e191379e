"""Core calculation engine for the off-plan calculator.

This module implements the payment plan logic for off-plan purchases: it
resolves a plan into absolute amounts per phase, layers the jurisdiction fees
on top, expands everything into a cumulative cash-flow timeline and projects
paper equity at handover. ``compute`` ties the stages together and returns a
single immutable ``CalculationResult``.

All validation happens before any amount is computed, so a call either
returns a complete result or raises ``InvalidPlanError`` /
``InvalidInputError``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from .catalog import resolve_plan
from .data_models import (
    CalculationInputs,
    CalculationResult,
    CashFlowEvent,
    EquityProjection,
    FeeBreakdown,
    FeeSchedule,
    PaymentPlanTemplate,
    Phase,
    PhaseAmounts,
    PlanSelection,
)
from .errors import InvalidInputError
from .utils import Number, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)
ZERO = Decimal(0)

# Reporting granularity of the timeline: one event per quarter during
# construction and one per half year after handover.
CONSTRUCTION_SAMPLE_MONTHS = 3
POST_HANDOVER_SAMPLE_MONTHS = 6

SAMPLED = "sampled"
MONTHLY = "monthly"
GRANULARITIES = (SAMPLED, MONTHLY)


def _as_decimal(value: Number, name: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise InvalidInputError(f"{name} must be a number; got {value!r}") from exc


def _check_price(price: Decimal) -> None:
    if price <= 0:
        raise InvalidInputError("Property price must be positive")


def _check_construction_months(construction_months: int) -> None:
    if not isinstance(construction_months, int) or isinstance(construction_months, bool):
        raise InvalidInputError("Construction months must be a whole number")
    if construction_months < 1:
        raise InvalidInputError("Construction months must be at least 1")


def _check_booking_deposit(booking_deposit_percent: Decimal, plan: PaymentPlanTemplate) -> None:
    if booking_deposit_percent < 0:
        raise InvalidInputError("Booking deposit cannot be negative")
    if booking_deposit_percent > plan.during_construction_percent:
        raise InvalidInputError(
            f"Booking deposit of {booking_deposit_percent}% exceeds the plan's "
            f"{plan.during_construction_percent}% during-construction share"
        )


def construction_installment_months(construction_months: int) -> int:
    """Number of monthly construction installments after the booking month.

    Month 0 is covered by the booking payment, hence the ``- 1``. The floor of
    one keeps a one-month construction period from dividing by zero.
    """
    return max(construction_months - 1, 1)


def resolve_plan_amounts(
    property_price: Number,
    plan: PaymentPlanTemplate,
    booking_deposit_percent: Number,
) -> PhaseAmounts:
    """Split the property price into absolute amounts per phase.

    Raises
    ------
    InvalidPlanError
        If the plan percentages do not sum to exactly 100.
    InvalidInputError
        If the price is not positive or the booking deposit exceeds the
        during-construction share.
    """
    plan.validate()
    price = _as_decimal(property_price, "Property price")
    booking_percent = _as_decimal(booking_deposit_percent, "Booking deposit")
    _check_price(price)
    _check_booking_deposit(booking_percent, plan)

    during_construction = price * Decimal(plan.during_construction_percent) / HUNDRED
    booking = price * booking_percent / HUNDRED
    return PhaseAmounts(
        during_construction_amount=during_construction,
        booking_amount=booking,
        remaining_construction_amount=during_construction - booking,
        on_handover_amount=price * Decimal(plan.on_handover_percent) / HUNDRED,
        post_handover_amount=price * Decimal(plan.post_handover_percent) / HUNDRED,
    )


def calculate_fees(property_price: Number, fee_schedule: FeeSchedule) -> FeeBreakdown:
    """Compute the one-time fees for a purchase.

    The registration and administrative fees are due at booking (month 0);
    the transfer fee is due at handover. ``build_timeline`` relies on that
    timing.
    """
    price = _as_decimal(property_price, "Property price")
    _check_price(price)
    registration = price * fee_schedule.registration_fee_rate
    administrative = fee_schedule.fixed_administrative_fee
    transfer = price * fee_schedule.transfer_fee_rate
    return FeeBreakdown(
        registration_fee=registration,
        administrative_fee=administrative,
        transfer_fee=transfer,
        total_fees=registration + administrative + transfer,
    )


def monthly_rates(
    amounts: PhaseAmounts,
    construction_months: int,
    post_handover_months: int,
) -> Tuple[Decimal, Decimal]:
    """Return the monthly construction and post-handover installments."""
    _check_construction_months(construction_months)
    construction_rate = amounts.remaining_construction_amount / Decimal(
        construction_installment_months(construction_months)
    )
    if amounts.post_handover_amount > 0 and post_handover_months > 0:
        post_rate = amounts.post_handover_amount / Decimal(post_handover_months)
    else:
        post_rate = ZERO
    return construction_rate, post_rate


def _installment_events(
    months: int,
    monthly_rate: Decimal,
    step: int,
    first_month_offset: int,
    phase: Phase,
    cumulative: Decimal,
) -> Tuple[List[CashFlowEvent], Decimal]:
    """Sample a run of equal monthly installments every ``step`` months.

    The last month is always sampled. Each event pays the installments
    accumulated since the previous sample.
    """
    events: List[CashFlowEvent] = []
    last_sampled = 0
    for m in range(1, months + 1):
        if m % step == 0 or m == months:
            payment = monthly_rate * (m - last_sampled)
            cumulative += payment
            events.append(
                CashFlowEvent(
                    month_offset=first_month_offset + m,
                    phase=phase,
                    payment_amount=payment,
                    cumulative_paid=cumulative,
                )
            )
            last_sampled = m
    return events, cumulative


def build_timeline(
    amounts: PhaseAmounts,
    fees: FeeBreakdown,
    construction_months: int,
    post_handover_months: int,
    granularity: str = SAMPLED,
) -> Tuple[CashFlowEvent, ...]:
    """Expand phase amounts and fees into a chronological cash-flow timeline.

    Parameters
    ----------
    amounts: PhaseAmounts
        Output of ``resolve_plan_amounts``.
    fees: FeeBreakdown
        Output of ``calculate_fees``.
    construction_months: int
        Months from booking to handover; the handover event sits at this
        offset.
    post_handover_months: int
        Length of the post-handover installment period. Ignored when there is
        no post-handover amount.
    granularity: str
        ``"sampled"`` (quarterly during construction, semi-annual after
        handover) or ``"monthly"`` (one event per month). Totals are the same.

    Returns
    -------
    tuple of CashFlowEvent
        Events ordered by month with a non-decreasing ``cumulative_paid``
        whose last value is the price plus all fees.
    """
    _check_construction_months(construction_months)
    if granularity not in GRANULARITIES:
        raise InvalidInputError(
            f"Granularity must be one of {', '.join(GRANULARITIES)}; got {granularity}"
        )
    if granularity == MONTHLY:
        construction_step = post_step = 1
    else:
        construction_step = CONSTRUCTION_SAMPLE_MONTHS
        post_step = POST_HANDOVER_SAMPLE_MONTHS

    construction_rate, post_rate = monthly_rates(amounts, construction_months, post_handover_months)

    booking_payment = amounts.booking_amount + fees.registration_fee + fees.administrative_fee
    cumulative = booking_payment
    timeline: List[CashFlowEvent] = [
        CashFlowEvent(
            month_offset=0,
            phase=Phase.BOOKING,
            payment_amount=booking_payment,
            cumulative_paid=cumulative,
        )
    ]

    construction_events, cumulative = _installment_events(
        construction_installment_months(construction_months),
        construction_rate,
        construction_step,
        0,
        Phase.CONSTRUCTION,
        cumulative,
    )
    timeline.extend(construction_events)

    handover_payment = amounts.on_handover_amount + fees.transfer_fee
    if handover_payment > 0:
        cumulative += handover_payment
        timeline.append(
            CashFlowEvent(
                month_offset=construction_months,
                phase=Phase.HANDOVER,
                payment_amount=handover_payment,
                cumulative_paid=cumulative,
            )
        )

    if amounts.post_handover_amount > 0 and post_handover_months > 0:
        post_events, cumulative = _installment_events(
            post_handover_months,
            post_rate,
            post_step,
            construction_months,
            Phase.POST_HANDOVER,
            cumulative,
        )
        timeline.extend(post_events)

    return tuple(timeline)


def project_equity(property_price: Number, expected_appreciation_percent: Number) -> EquityProjection:
    """Estimate paper equity at handover.

    This is a flat projection: the appreciation percentage is the total gain
    expected by handover, applied once. It is not compounded and carries no
    time component, so it must not be read as a growth forecast.
    """
    price = _as_decimal(property_price, "Property price")
    appreciation = _as_decimal(expected_appreciation_percent, "Expected appreciation")
    _check_price(price)
    if appreciation < 0:
        raise InvalidInputError("Expected appreciation cannot be negative")
    appreciated_value = price * (1 + appreciation / HUNDRED)
    return EquityProjection(
        appreciated_value=appreciated_value,
        equity_at_handover=appreciated_value - price,
    )


def compute(
    property_price: Number,
    construction_months: int,
    booking_deposit_percent: Number,
    expected_appreciation_percent: Number,
    plan: PlanSelection,
    fee_schedule: FeeSchedule,
    granularity: str = SAMPLED,
    catalog: Optional[Tuple[PaymentPlanTemplate, ...]] = None,
) -> CalculationResult:
    """Compute the full payment breakdown for an off-plan purchase.

    ``plan`` may be a ``PaymentPlanTemplate``, a ``CustomPlan`` or a
    ``PresetPlan`` (looked up in ``catalog``, the built-in presets by
    default). The function is pure: identical arguments give equal results.
    """
    template = resolve_plan(plan, catalog)
    inputs = CalculationInputs(
        property_price=_as_decimal(property_price, "Property price"),
        construction_months=construction_months,
        booking_deposit_percent=_as_decimal(booking_deposit_percent, "Booking deposit"),
        expected_appreciation_percent=_as_decimal(
            expected_appreciation_percent, "Expected appreciation"
        ),
    )
    # Validate everything up front so no stage runs on bad input.
    _check_price(inputs.property_price)
    _check_construction_months(inputs.construction_months)
    _check_booking_deposit(inputs.booking_deposit_percent, template)
    if inputs.expected_appreciation_percent < 0:
        raise InvalidInputError("Expected appreciation cannot be negative")
    if granularity not in GRANULARITIES:
        raise InvalidInputError(
            f"Granularity must be one of {', '.join(GRANULARITIES)}; got {granularity}"
        )

    post_handover_months = template.effective_post_handover_months
    amounts = resolve_plan_amounts(inputs.property_price, template, inputs.booking_deposit_percent)
    fees = calculate_fees(inputs.property_price, fee_schedule)
    construction_rate, post_rate = monthly_rates(
        amounts, inputs.construction_months, post_handover_months
    )
    timeline = build_timeline(
        amounts, fees, inputs.construction_months, post_handover_months, granularity
    )
    equity = project_equity(inputs.property_price, inputs.expected_appreciation_percent)

    grand_total = inputs.property_price + fees.total_fees
    paid_by_handover = amounts.during_construction_amount + amounts.on_handover_amount + fees.total_fees

    logger.debug(
        "Computed plan %s for price %s: %d events, grand total %s",
        template.id,
        inputs.property_price,
        len(timeline),
        grand_total,
    )

    return CalculationResult(
        inputs=inputs,
        plan=template,
        amounts=amounts,
        fees=fees,
        monthly_construction_payment=construction_rate,
        monthly_post_handover_payment=post_rate,
        appreciated_value=equity.appreciated_value,
        equity_at_handover=equity.equity_at_handover,
        grand_total=grand_total,
        paid_by_handover=paid_by_handover,
        paid_after_handover=amounts.post_handover_amount,
        timeline=timeline,
    )
