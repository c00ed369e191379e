from __future__ import annotations

from decimal import Decimal

import pytest

from offplan_calc.catalog import DEFAULT_FEE_SCHEDULE, get_plan
from offplan_calc.data_models import (
    CustomPlan,
    FeeSchedule,
    PaymentPlanTemplate,
    Phase,
    PresetPlan,
)
from offplan_calc.engine import (
    MONTHLY,
    build_timeline,
    calculate_fees,
    compute,
    construction_installment_months,
    project_equity,
    resolve_plan_amounts,
)
from offplan_calc.errors import InvalidInputError, InvalidPlanError

PRICE = Decimal("2000000")
ONE_UNIT = Decimal("1")


def run(plan, construction_months=36, booking=10, appreciation=15, fees=DEFAULT_FEE_SCHEDULE, **kwargs):
    return compute(PRICE, construction_months, booking, appreciation, plan, fees, **kwargs)


def events_in(result, phase):
    return [event for event in result.timeline if event.phase == phase]


def test_twenty_eighty_plan_amounts(plan_20_80):
    result = run(plan_20_80)

    assert result.booking_amount == Decimal("200000")
    assert result.during_construction_amount == Decimal("400000")
    assert result.remaining_construction_amount == Decimal("200000")
    assert result.on_handover_amount == Decimal("1600000")
    assert result.post_handover_amount == 0
    assert result.registration_fee == Decimal("80000")
    assert result.administrative_fee == Decimal("10460")
    assert result.transfer_fee == Decimal("80000")
    assert result.total_fees == Decimal("170460")
    assert result.appreciated_value == Decimal("2300000")
    assert result.equity_at_handover == Decimal("300000")
    assert result.grand_total == Decimal("2170460")


def test_twenty_eighty_timeline_shape(plan_20_80):
    result = run(plan_20_80)
    months = [event.month_offset for event in result.timeline]

    # booking, quarterly construction samples up to month 33, final month 35, handover
    assert months == [0, 3, 6, 9, 12, 15, 18, 21, 24, 27, 30, 33, 35, 36]
    assert result.timeline[0].phase == Phase.BOOKING
    assert result.timeline[-1].phase == Phase.HANDOVER
    assert not events_in(result, Phase.POST_HANDOVER)


def test_construction_samples_pay_for_months_covered(plan_20_80):
    result = run(plan_20_80)
    rate = result.monthly_construction_payment
    construction = events_in(result, Phase.CONSTRUCTION)

    assert rate == Decimal("200000") / Decimal(35)
    assert all(event.payment_amount == rate * 3 for event in construction[:-1])
    # months 34 and 35 are covered by the final sample
    assert construction[-1].month_offset == 35
    assert construction[-1].payment_amount == rate * 2


def test_post_handover_plan(plan_60_40_post):
    result = run(plan_60_40_post)

    assert result.post_handover_amount == Decimal("800000")
    assert result.monthly_post_handover_payment.quantize(Decimal("0.01")) == Decimal("33333.33")
    post = events_in(result, Phase.POST_HANDOVER)
    assert [event.month_offset for event in post] == [42, 48, 54, 60]
    assert all(abs(event.payment_amount - Decimal("200000")) < ONE_UNIT for event in post)
    assert abs(result.final_cumulative_paid - result.grand_total) < ONE_UNIT
    assert result.grand_total == Decimal("2170460")


def test_handover_event_carries_only_transfer_fee_when_nothing_due_on_handover(plan_60_40_post):
    result = run(plan_60_40_post)
    handover = events_in(result, Phase.HANDOVER)

    assert len(handover) == 1
    assert handover[0].month_offset == 36
    assert handover[0].payment_amount == result.transfer_fee


def test_post_handover_partial_final_interval():
    plan = CustomPlan(during_construction_percent=50, on_handover_percent=30, post_handover_months=20)
    result = run(plan)
    post = events_in(result, Phase.POST_HANDOVER)
    rate = result.monthly_post_handover_payment

    assert [event.month_offset for event in post] == [42, 48, 54, 56]
    assert post[-1].payment_amount == rate * 2
    assert abs(sum(event.payment_amount for event in post) - result.post_handover_amount) < ONE_UNIT


def test_single_construction_month_does_not_divide_by_zero(plan_20_80):
    result = run(plan_20_80, construction_months=1)
    construction = events_in(result, Phase.CONSTRUCTION)

    assert construction_installment_months(1) == 1
    assert result.monthly_construction_payment == result.remaining_construction_amount
    assert len(construction) == 1
    assert construction[0].month_offset == 1
    assert construction[0].payment_amount == Decimal("200000")
    assert abs(result.timeline[-1].cumulative_paid - result.grand_total) < ONE_UNIT


def test_invalid_plan_sum_raises():
    plan = PaymentPlanTemplate(
        id="broken",
        name="Broken",
        during_construction_percent=50,
        on_handover_percent=30,
        post_handover_percent=10,
        post_handover_months=12,
    )
    with pytest.raises(InvalidPlanError):
        run(plan)


def test_booking_deposit_above_construction_share_raises(plan_20_80):
    with pytest.raises(InvalidInputError):
        run(plan_20_80, booking=25)


@pytest.mark.parametrize("price", [0, -1, "abc"])
def test_non_positive_or_bad_price_raises(plan_20_80, price):
    with pytest.raises(InvalidInputError):
        compute(price, 36, 10, 15, plan_20_80, DEFAULT_FEE_SCHEDULE)


@pytest.mark.parametrize("value", [Decimal("NaN"), Decimal("Infinity"), Decimal("-Infinity")])
@pytest.mark.parametrize("field", ["price", "booking", "appreciation"])
def test_non_finite_decimal_inputs_raise(plan_20_80, field, value):
    args = {"price": PRICE, "booking": 10, "appreciation": 15}
    args[field] = value

    with pytest.raises(InvalidInputError):
        compute(args["price"], 36, args["booking"], args["appreciation"], plan_20_80, DEFAULT_FEE_SCHEDULE)


@pytest.mark.parametrize("months", [0, -3, 2.5])
def test_bad_construction_months_raise(plan_20_80, months):
    with pytest.raises(InvalidInputError):
        run(plan_20_80, construction_months=months)


def test_negative_appreciation_raises(plan_20_80):
    with pytest.raises(InvalidInputError):
        run(plan_20_80, appreciation=-5)


def test_unknown_granularity_raises(plan_20_80):
    with pytest.raises(InvalidInputError):
        run(plan_20_80, granularity="weekly")


def test_post_handover_share_without_months_is_invalid():
    plan = PaymentPlanTemplate(
        id="no-months",
        name="No months",
        during_construction_percent=60,
        on_handover_percent=0,
        post_handover_percent=40,
        post_handover_months=0,
    )
    with pytest.raises(InvalidPlanError):
        run(plan)


def test_zero_post_handover_share_ignores_stored_months():
    plan = PaymentPlanTemplate(
        id="stale-months",
        name="Stale months",
        during_construction_percent=20,
        on_handover_percent=80,
        post_handover_percent=0,
        post_handover_months=24,
    )
    result = run(plan)

    assert not events_in(result, Phase.POST_HANDOVER)
    assert result.monthly_post_handover_payment == 0
    assert plan.effective_post_handover_months == 0


@pytest.mark.parametrize("plan_id", ["20-80", "40-60", "50-50", "60-40-post", "30-70-post", "custom"])
@pytest.mark.parametrize("construction_months", [1, 2, 12, 37])
def test_cumulative_is_monotonic_and_ends_at_grand_total(plan_id, construction_months):
    result = run(PresetPlan(plan_id), construction_months=construction_months)
    cumulative = [event.cumulative_paid for event in result.timeline]

    assert cumulative == sorted(cumulative)
    assert abs(cumulative[-1] - (PRICE + result.total_fees)) < ONE_UNIT
    assert [e.month_offset for e in result.timeline] == sorted(e.month_offset for e in result.timeline)


def test_fee_timing(plan_20_80):
    result = run(plan_20_80)
    booking = result.timeline[0]
    handover = [e for e in result.timeline if e.month_offset == 36 and e.phase == Phase.HANDOVER][0]

    assert booking.month_offset == 0
    assert booking.payment_amount - result.booking_amount == result.registration_fee + result.administrative_fee
    assert handover.payment_amount - result.on_handover_amount == result.transfer_fee


def test_handover_event_omitted_when_nothing_due(plan_60_40_post):
    no_transfer = FeeSchedule(
        registration_fee_rate=Decimal("0.04"),
        fixed_administrative_fee=Decimal("10460"),
        transfer_fee_rate=Decimal("0"),
    )
    result = run(plan_60_40_post, fees=no_transfer)

    assert not events_in(result, Phase.HANDOVER)
    assert abs(result.timeline[-1].cumulative_paid - result.grand_total) < ONE_UNIT


def test_compute_is_idempotent(plan_60_40_post):
    first = run(plan_60_40_post)
    second = run(plan_60_40_post)

    assert first == second


def test_monthly_granularity_has_same_total(plan_20_80):
    sampled = run(plan_20_80)
    monthly = run(plan_20_80, granularity=MONTHLY)
    construction = events_in(monthly, Phase.CONSTRUCTION)

    assert [event.month_offset for event in construction] == list(range(1, 36))
    assert abs(monthly.timeline[-1].cumulative_paid - sampled.timeline[-1].cumulative_paid) < ONE_UNIT


def test_paid_by_and_after_handover(plan_60_40_post):
    result = run(plan_60_40_post)
    handover = events_in(result, Phase.HANDOVER)[0]

    assert result.paid_after_handover == Decimal("800000")
    # the transfer fee is due at handover and counts towards paid_by_handover
    assert result.paid_by_handover == Decimal("1200000") + result.total_fees
    assert abs(result.paid_by_handover - handover.cumulative_paid) < ONE_UNIT
    assert result.paid_by_handover + result.paid_after_handover == result.grand_total


def test_event_labels(plan_20_80):
    result = run(plan_20_80)

    assert result.timeline[0].label == "Booking"
    assert result.timeline[1].label == "Month 3"


def test_resolve_plan_amounts_sums():
    amounts = resolve_plan_amounts(PRICE, get_plan("50-50"), 20)

    assert amounts.booking_amount + amounts.remaining_construction_amount == amounts.during_construction_amount
    assert amounts.during_construction_amount + amounts.on_handover_amount + amounts.post_handover_amount == PRICE


def test_calculate_fees_uses_schedule():
    schedule = FeeSchedule(
        registration_fee_rate=Decimal("0.02"),
        fixed_administrative_fee=Decimal("500"),
        transfer_fee_rate=Decimal("0.01"),
    )
    fees = calculate_fees(Decimal("1000000"), schedule)

    assert fees.registration_fee == Decimal("20000")
    assert fees.transfer_fee == Decimal("10000")
    assert fees.total_fees == Decimal("30500")


def test_build_timeline_rejects_zero_construction_months(plan_20_80):
    amounts = resolve_plan_amounts(PRICE, plan_20_80, 10)
    fees = calculate_fees(PRICE, DEFAULT_FEE_SCHEDULE)

    with pytest.raises(InvalidInputError):
        build_timeline(amounts, fees, 0, 0)


def test_equity_projection_is_flat():
    projection = project_equity(Decimal("1000000"), 30)

    assert projection.appreciated_value == Decimal("1300000")
    assert projection.equity_at_handover == Decimal("300000")


def test_zero_booking_deposit_allowed(plan_20_80):
    result = run(plan_20_80, booking=0)

    assert result.timeline[0].payment_amount == result.registration_fee + result.administrative_fee
    assert result.remaining_construction_amount == Decimal("400000")
