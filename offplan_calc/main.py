"""Command-line interface for the off-plan calculator.

This module uses the ``click`` library to implement a multi-command interface.
Users can list the payment plan presets, compute a full payment breakdown and
cash-flow timeline, view only the summary, compare two plans for the same
property, or run the DSCR calculator. Results can be printed to the terminal
or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import click

from .catalog import DEFAULT_FEE_SCHEDULE, PAYMENT_PLANS, get_plan
from .data_models import (
    CalculationResult,
    CashFlowEvent,
    CustomPlan,
    FeeSchedule,
    PlanSelection,
    PresetPlan,
)
from .dscr import analyze_dscr
from .engine import GRANULARITIES, SAMPLED, compute
from .errors import OffPlanError
from .formatter import print_comparison, print_dscr, print_plans, print_summary, print_timeline
from .utils import add_months, decimal_from_str, parse_year_month, round_currency

PLAN_IDS = [plan.id for plan in PAYMENT_PLANS]


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("2000000"), thousands separators ("2,000,000") and
    shorthand with ``k``/``m`` suffixes (e.g., "2m" meaning 2_000_000).
    """
    value = str(value).strip().lower()
    value = value.replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse a percentage in percent points ("10" or "10%")."""
    value = str(value).strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return decimal_from_str(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def parse_rate(value: str) -> Decimal:
    """Parse a fee rate given either as a fraction ("0.04") or in percent ("4", "4%")."""
    text = str(value).strip()
    is_percent = text.endswith("%")
    rate = parse_percent(text)
    # If the user enters a number like 4, treat it as 4%
    if is_percent or rate > 1:
        rate = rate / 100
    return rate


def build_plan_selection(
    plan_id: str,
    during: Optional[int] = None,
    on_handover: Optional[int] = None,
    post_months: Optional[int] = None,
) -> PlanSelection:
    """Return the plan selection for a preset id or the custom split.

    For the ``custom`` plan any share left unspecified falls back to the
    catalog's custom defaults.
    """
    if plan_id != "custom":
        return PresetPlan(plan_id)
    defaults = get_plan("custom")
    return CustomPlan(
        during_construction_percent=(
            during if during is not None else defaults.during_construction_percent
        ),
        on_handover_percent=(
            on_handover if on_handover is not None else defaults.on_handover_percent
        ),
        post_handover_months=(
            post_months if post_months is not None else defaults.post_handover_months
        ),
    )


def build_fee_schedule(
    registration_rate: Optional[str] = None,
    admin_fee: Optional[str] = None,
    transfer_rate: Optional[str] = None,
    base: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> FeeSchedule:
    """Start from ``base`` and override any fee given on the command line."""
    return FeeSchedule(
        registration_fee_rate=(
            parse_rate(registration_rate) if registration_rate else base.registration_fee_rate
        ),
        fixed_administrative_fee=(
            parse_amount(admin_fee) if admin_fee else base.fixed_administrative_fee
        ),
        transfer_fee_rate=(
            parse_rate(transfer_rate) if transfer_rate else base.transfer_fee_rate
        ),
    )


def build_result_from_options(
    price: str,
    plan_id: str,
    construction_months: int,
    booking_deposit: str,
    appreciation: str,
    during: Optional[int] = None,
    on_handover: Optional[int] = None,
    post_months: Optional[int] = None,
    registration_rate: Optional[str] = None,
    admin_fee: Optional[str] = None,
    transfer_rate: Optional[str] = None,
    granularity: str = SAMPLED,
    fee_schedule: Optional[FeeSchedule] = None,
) -> CalculationResult:
    """Parse raw option values and run the engine.

    Engine validation errors are re-raised as ``click.BadParameter`` so both
    the CLI and the web form can show the message as-is.
    """
    selection = build_plan_selection(plan_id, during, on_handover, post_months)
    fees = build_fee_schedule(
        registration_rate,
        admin_fee,
        transfer_rate,
        base=fee_schedule or DEFAULT_FEE_SCHEDULE,
    )
    try:
        return compute(
            property_price=parse_amount(price),
            construction_months=construction_months,
            booking_deposit_percent=parse_percent(booking_deposit),
            expected_appreciation_percent=parse_percent(appreciation),
            plan=selection,
            fee_schedule=fees,
            granularity=granularity,
        )
    except OffPlanError as exc:
        raise click.BadParameter(str(exc))


def serialize_event(event: CashFlowEvent, booking_date=None) -> Dict[str, Any]:
    row = {
        "month": event.month_offset,
        "label": event.label,
        "phase": event.phase.value,
        "payment": float(round_currency(event.payment_amount)),
        "cumulative": float(round_currency(event.cumulative_paid)),
    }
    if booking_date is not None:
        row["date"] = add_months(booking_date, event.month_offset).strftime("%Y-%m")
    return row


def serialize_summary(result: CalculationResult) -> Dict[str, Any]:
    """Flatten a result's figures into JSON-serialisable values."""
    plan = result.plan

    def money(value: Decimal) -> float:
        return float(round_currency(value))

    return {
        "plan_id": plan.id,
        "plan_name": plan.name,
        "plan_breakdown": {
            "during_construction": plan.during_construction_percent,
            "on_handover": plan.on_handover_percent,
            "post_handover": plan.post_handover_percent,
            "post_handover_months": plan.effective_post_handover_months,
        },
        "property_price": money(result.inputs.property_price),
        "construction_months": result.inputs.construction_months,
        "booking_deposit_percent": float(result.inputs.booking_deposit_percent),
        "expected_appreciation_percent": float(result.inputs.expected_appreciation_percent),
        "booking_amount": money(result.booking_amount),
        "during_construction_amount": money(result.during_construction_amount),
        "remaining_construction_amount": money(result.remaining_construction_amount),
        "on_handover_amount": money(result.on_handover_amount),
        "post_handover_amount": money(result.post_handover_amount),
        "monthly_construction_payment": money(result.monthly_construction_payment),
        "monthly_post_handover_payment": money(result.monthly_post_handover_payment),
        "registration_fee": money(result.registration_fee),
        "administrative_fee": money(result.administrative_fee),
        "transfer_fee": money(result.transfer_fee),
        "total_fees": money(result.total_fees),
        "paid_by_handover": money(result.paid_by_handover),
        "paid_after_handover": money(result.paid_after_handover),
        "grand_total": money(result.grand_total),
        "appreciated_value": money(result.appreciated_value),
        "equity_at_handover": money(result.equity_at_handover),
    }


def serialize_timeline(result: CalculationResult, booking_date=None) -> List[Dict[str, Any]]:
    return [serialize_event(event, booking_date) for event in result.timeline]


def export_to_json(path: Path, result: CalculationResult, booking_date=None) -> None:
    """Export summary and timeline to a JSON file."""
    data = {
        "summary": serialize_summary(result),
        "timeline": serialize_timeline(result, booking_date),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: CalculationResult, booking_date=None) -> None:
    """Export the timeline to a CSV file."""
    header = ["Month", "Label", "Phase", "Payment", "Cumulative"]
    if booking_date is not None:
        header.append("Date")
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in serialize_timeline(result, booking_date):
            values = [row["month"], row["label"], row["phase"], row["payment"], row["cumulative"]]
            if booking_date is not None:
                values.append(row["date"])
            writer.writerow(values)


def _parse_booking_date(value: Optional[str]):
    if not value:
        return None
    try:
        return parse_year_month(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def scenario_options(include_plan: bool = True) -> Callable:
    """Attach the options shared by every payment plan command."""
    options = [
        click.option("--price", "-p", "price", required=True, help="Property price (e.g. 2m, 1,500,000)"),
        click.option("--construction-months", "-c", "construction_months", type=int, default=36, show_default=True, help="Months from booking to handover"),
        click.option("--booking-deposit", "-b", "booking_deposit", default="10", show_default=True, help="Booking deposit in percent of price"),
        click.option("--appreciation", "-a", "appreciation", default="15", show_default=True, help="Total expected appreciation by handover (percent)"),
        click.option("--during", "during", type=int, help="Custom plan: percent paid during construction"),
        click.option("--on-handover", "on_handover", type=int, help="Custom plan: percent paid on handover"),
        click.option("--post-months", "post_months", type=int, help="Custom plan: post-handover installment months"),
        click.option("--registration-rate", "registration_rate", help="Registration (Oqood) fee rate, e.g. 4% or 0.04"),
        click.option("--admin-fee", "admin_fee", help="Fixed administrative fee amount"),
        click.option("--transfer-rate", "transfer_rate", help="Transfer fee rate due at handover"),
        click.option("--granularity", "granularity", type=click.Choice(list(GRANULARITIES)), default=SAMPLED, show_default=True, help="Timeline resolution"),
    ]
    if include_plan:
        options.insert(
            0,
            click.option("--plan", "plan_id", type=click.Choice(PLAN_IDS), default="20-80", show_default=True, help="Payment plan preset"),
        )

    def decorator(func: Callable) -> Callable:
        for option in reversed(options):
            func = option(func)
        return func

    return decorator


@click.group()
def cli() -> None:
    """An off-plan property payment plan calculator."""
    pass


@cli.command()
def plans() -> None:
    """List the payment plan presets."""
    print_plans(PAYMENT_PLANS)


@cli.command()
@scenario_options()
@click.option("--booking-date", "booking_date", help="Booking month (YYYY-MM) used to date each payment")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(output: Optional[str], booking_date: Optional[str], **options: Any) -> None:
    """Compute and print the payment breakdown and cash-flow timeline."""
    booking = _parse_booking_date(booking_date)
    result = build_result_from_options(**options)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result, booking)
            click.echo(f"Timeline exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result, booking)
            click.echo(f"Timeline exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_summary(result)
        print_timeline(result.timeline, booking)


@cli.command()
@scenario_options()
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options: Any) -> None:
    """Compute and print only the summary figures."""
    result = build_result_from_options(**options)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": serialize_summary(result)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@click.option("--plan-a", "plan_a", type=click.Choice(PLAN_IDS), required=True, help="First payment plan")
@click.option("--plan-b", "plan_b", type=click.Choice(PLAN_IDS), required=True, help="Second payment plan")
@scenario_options(include_plan=False)
def compare(plan_a: str, plan_b: str, **options: Any) -> None:
    """Compare two payment plans for the same property.

    Example:

        offplan-calc compare --plan-a 20-80 --plan-b 60-40-post -p 2m
    """
    result_a = build_result_from_options(plan_id=plan_a, **options)
    result_b = build_result_from_options(plan_id=plan_b, **options)
    print_comparison(result_a, result_b)


@cli.command()
@click.option("--noi", "noi", required=True, help="Annual net operating income")
@click.option("--price", "-p", "price", required=True, help="Property price")
@click.option("--ltv", "ltv", default="70", show_default=True, help="Loan to value (percent)")
@click.option("--rate", "-r", "rate", default="5", show_default=True, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", type=int, default=25, show_default=True, help="Loan term in years")
@click.option("--target", "target", default="1.25", show_default=True, help="Target DSCR")
def dscr(noi: str, price: str, ltv: str, rate: str, term: int, target: str) -> None:
    """Compute the debt service coverage ratio of a financed property."""
    try:
        analysis = analyze_dscr(
            noi=parse_amount(noi),
            property_price=parse_amount(price),
            loan_to_value_percent=parse_percent(ltv),
            annual_rate_percent=parse_percent(rate),
            term_years=term,
            target_dscr=parse_percent(target),
        )
    except OffPlanError as exc:
        raise click.BadParameter(str(exc))
    print_dscr(analysis)


if __name__ == "__main__":
    cli()
