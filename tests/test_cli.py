from __future__ import annotations

import csv
import json
from decimal import Decimal

import click
import pytest
from click.testing import CliRunner

from offplan_calc.main import (
    build_fee_schedule,
    build_plan_selection,
    build_result_from_options,
    cli,
    parse_amount,
    parse_rate,
)
from offplan_calc.data_models import CustomPlan, PresetPlan
from offplan_calc.formatter import format_aed


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.mark.parametrize(
    "raw,expected",
    [("2m", Decimal("2000000")), ("500k", Decimal("500000")), ("1,250,000", Decimal("1250000"))],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_parse_amount_rejects_garbage():
    with pytest.raises(click.BadParameter):
        parse_amount("lots")


@pytest.mark.parametrize("raw", ["4", "4%", "0.04"])
def test_parse_rate(raw):
    assert parse_rate(raw) == Decimal("0.04")


def test_fee_overrides():
    fees = build_fee_schedule(registration_rate="2%", admin_fee="5k")
    assert fees.registration_fee_rate == Decimal("0.02")
    assert fees.fixed_administrative_fee == Decimal("5000")
    assert fees.transfer_fee_rate == Decimal("0.04")


def test_plan_selection():
    assert build_plan_selection("40-60") == PresetPlan("40-60")
    assert build_plan_selection("custom", during=60) == CustomPlan(
        during_construction_percent=60, on_handover_percent=30, post_handover_months=12
    )


def test_engine_errors_become_bad_parameter():
    with pytest.raises(click.BadParameter):
        build_result_from_options("2m", "20-80", 36, "25", "15")


def test_format_aed():
    assert format_aed(Decimal("2170460.4")) == "AED 2,170,460"


def test_plans_command(runner):
    result = runner.invoke(cli, ["plans"])

    assert result.exit_code == 0
    assert "60-40-post" in result.output
    assert "30/70 Post-Handover" in result.output


def test_schedule_command_prints_summary_and_timeline(runner):
    result = runner.invoke(cli, ["schedule", "-p", "2m", "--plan", "20-80"])

    assert result.exit_code == 0, result.output
    assert "AED 2,170,460" in result.output
    assert "Handover" in result.output
    assert "Booking" in result.output


def test_schedule_with_booking_date(runner):
    result = runner.invoke(cli, ["schedule", "-p", "2m", "--booking-date", "2025-01"])

    assert result.exit_code == 0, result.output
    assert "2028-01" in result.output  # handover 36 months after booking


def test_schedule_json_export(runner, tmp_path):
    out = tmp_path / "plan.json"
    result = runner.invoke(
        cli, ["schedule", "-p", "2m", "--plan", "60-40-post", "--output", str(out)]
    )

    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["summary"]["post_handover_amount"] == 800000.0
    assert data["summary"]["monthly_post_handover_payment"] == 33333.33
    assert data["timeline"][-1]["phase"] == "PostHandover"
    assert abs(data["timeline"][-1]["cumulative"] - data["summary"]["grand_total"]) < 1


def test_schedule_csv_export(runner, tmp_path):
    out = tmp_path / "plan.csv"
    result = runner.invoke(cli, ["schedule", "-p", "2m", "--output", str(out)])

    assert result.exit_code == 0, result.output
    with out.open(encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["Month", "Label", "Phase", "Payment", "Cumulative"]
    assert rows[1][:3] == ["0", "Booking", "Booking"]


def test_schedule_rejects_unknown_extension(runner, tmp_path):
    result = runner.invoke(cli, ["schedule", "-p", "2m", "--output", str(tmp_path / "plan.txt")])

    assert result.exit_code != 0
    assert "Unsupported output format" in result.output


def test_custom_plan_via_cli(runner):
    result = runner.invoke(
        cli,
        ["summary", "-p", "1m", "--plan", "custom", "--during", "40", "--on-handover", "40", "--post-months", "12"],
    )

    assert result.exit_code == 0, result.output
    assert "20% over 12 months" in result.output


def test_summary_invalid_deposit(runner):
    result = runner.invoke(cli, ["summary", "-p", "2m", "--plan", "20-80", "-b", "25"])

    assert result.exit_code != 0
    assert "exceeds" in result.output


def test_compare_command(runner):
    result = runner.invoke(cli, ["compare", "--plan-a", "20-80", "--plan-b", "60-40-post", "-p", "2m"])

    assert result.exit_code == 0, result.output
    assert "paid_by_handover" in result.output
    assert "grand_total" in result.output


def test_dscr_command(runner):
    result = runner.invoke(cli, ["dscr", "--noi", "120k", "-p", "1m"])

    assert result.exit_code == 0, result.output
    assert "Excellent" in result.output
