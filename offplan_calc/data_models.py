"""Data models for the off-plan calculator.

This module defines dataclasses representing the entities used by the
calculator: payment plan templates (and the custom plan variant), the caller's
scenario inputs, the jurisdiction fee schedule, the intermediate phase and fee
amounts, individual cash-flow events and the final calculation result. All of
them are frozen so a result can be handed out without anyone mutating it.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple, Union

from .errors import InvalidPlanError


class Phase(str, Enum):
    """Stage of the purchase a cash-flow event belongs to."""

    BOOKING = "Booking"
    CONSTRUCTION = "Construction"
    HANDOVER = "Handover"
    POST_HANDOVER = "PostHandover"


@dataclass(frozen=True)
class PaymentPlanTemplate:
    """A named preset describing how a property's price is split over time.

    Attributes
    ----------
    id: str
        Unique key of the plan in its catalog (e.g. ``"20-80"``).
    name: str
        Display name.
    during_construction_percent: int
        Share of the price paid from booking until handover, booking deposit
        included.
    on_handover_percent: int
        Share of the price paid in one lump sum at handover.
    post_handover_percent: int
        Share of the price paid in monthly installments after handover.
    post_handover_months: int
        Length of the post-handover installment period. Meaningless (and
        treated as zero) when ``post_handover_percent`` is zero.
    description: str
        Short human readable summary of the split.
    popular: bool
        Display hint for front ends.
    """

    id: str
    name: str
    during_construction_percent: int
    on_handover_percent: int
    post_handover_percent: int
    post_handover_months: int = 0
    description: str = ""
    popular: bool = False

    @property
    def total_percent(self) -> int:
        return (
            self.during_construction_percent
            + self.on_handover_percent
            + self.post_handover_percent
        )

    @property
    def effective_post_handover_months(self) -> int:
        """Post-handover months, zeroed when there is nothing to pay after handover."""
        if self.post_handover_percent == 0:
            return 0
        return self.post_handover_months

    def validate(self) -> None:
        """Raise ``InvalidPlanError`` if the plan cannot be used for a calculation."""
        percents = (
            self.during_construction_percent,
            self.on_handover_percent,
            self.post_handover_percent,
        )
        if any(not isinstance(p, int) or isinstance(p, bool) for p in percents):
            raise InvalidPlanError(f"Plan '{self.id}' percentages must be whole numbers")
        if any(p < 0 or p > 100 for p in percents):
            raise InvalidPlanError(f"Plan '{self.id}' percentages must be between 0 and 100")
        if self.total_percent != 100:
            raise InvalidPlanError(
                f"Plan '{self.id}' percentages sum to {self.total_percent}, expected 100"
            )
        if self.post_handover_months < 0:
            raise InvalidPlanError(f"Plan '{self.id}' post-handover months cannot be negative")
        if self.post_handover_percent > 0 and self.post_handover_months == 0:
            raise InvalidPlanError(
                f"Plan '{self.id}' has a post-handover share but no post-handover months"
            )


@dataclass(frozen=True)
class PresetPlan:
    """Selection of a catalog plan by its id."""

    plan_id: str


@dataclass(frozen=True)
class CustomPlan:
    """A caller-configured split.

    Only the during-construction and on-handover shares are settable; the
    post-handover share is always the remainder so the three add up to 100.
    """

    during_construction_percent: int
    on_handover_percent: int
    post_handover_months: int = 0

    @property
    def post_handover_percent(self) -> int:
        return 100 - self.during_construction_percent - self.on_handover_percent

    def to_template(self) -> PaymentPlanTemplate:
        for label, value in (
            ("during construction", self.during_construction_percent),
            ("on handover", self.on_handover_percent),
        ):
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidPlanError(f"Custom plan {label} share must be a whole number")
            if value < 0 or value > 100:
                raise InvalidPlanError(f"Custom plan {label} share must be between 0 and 100")
        if self.post_handover_percent < 0:
            raise InvalidPlanError(
                "Custom plan during construction and on handover shares exceed 100"
            )
        return PaymentPlanTemplate(
            id="custom",
            name="Custom Plan",
            during_construction_percent=self.during_construction_percent,
            on_handover_percent=self.on_handover_percent,
            post_handover_percent=self.post_handover_percent,
            post_handover_months=self.post_handover_months,
            description="Configure your own payment structure",
        )


PlanSelection = Union[PaymentPlanTemplate, PresetPlan, CustomPlan]


@dataclass(frozen=True)
class CalculationInputs:
    """The caller-supplied scenario.

    ``expected_appreciation_percent`` is the total appreciation expected by
    handover, not an annual rate.
    """

    property_price: Decimal
    construction_months: int
    booking_deposit_percent: Decimal
    expected_appreciation_percent: Decimal


@dataclass(frozen=True)
class FeeSchedule:
    """Jurisdiction fee constants.

    Attributes
    ----------
    registration_fee_rate: Decimal
        Fraction of the price paid at booking (Dubai Oqood registration).
    fixed_administrative_fee: Decimal
        Flat amount paid at booking.
    transfer_fee_rate: Decimal
        Fraction of the price paid at handover (title registration).
    """

    registration_fee_rate: Decimal
    fixed_administrative_fee: Decimal
    transfer_fee_rate: Decimal


@dataclass(frozen=True)
class PhaseAmounts:
    """Absolute amounts due per phase of a payment plan."""

    during_construction_amount: Decimal
    booking_amount: Decimal
    remaining_construction_amount: Decimal
    on_handover_amount: Decimal
    post_handover_amount: Decimal


@dataclass(frozen=True)
class FeeBreakdown:
    """One-time fees. Registration and administrative fees are due at booking,
    the transfer fee at handover."""

    registration_fee: Decimal
    administrative_fee: Decimal
    transfer_fee: Decimal
    total_fees: Decimal


@dataclass(frozen=True)
class CashFlowEvent:
    """One row of the cash-flow timeline.

    ``payment_amount`` is what is paid over the sampled interval ending at
    ``month_offset``; ``cumulative_paid`` is the running total including it.
    """

    month_offset: int
    phase: Phase
    payment_amount: Decimal
    cumulative_paid: Decimal

    @property
    def label(self) -> str:
        return "Booking" if self.month_offset == 0 else f"Month {self.month_offset}"


@dataclass(frozen=True)
class EquityProjection:
    """Flat (non-compounding) value estimate at handover."""

    appreciated_value: Decimal
    equity_at_handover: Decimal


@dataclass(frozen=True)
class CalculationResult:
    """Everything the engine computes for one scenario.

    Attributes
    ----------
    paid_by_handover : Decimal
        Cash due up to and including the handover event: the during-construction
        and on-handover shares plus every fee. The transfer fee falls due at
        handover, so it is counted here.
    paid_after_handover : Decimal
        The post-handover share only. It never includes fees, so
        ``paid_by_handover + paid_after_handover == grand_total``.
    """

    inputs: CalculationInputs
    plan: PaymentPlanTemplate
    amounts: PhaseAmounts
    fees: FeeBreakdown
    monthly_construction_payment: Decimal
    monthly_post_handover_payment: Decimal
    appreciated_value: Decimal
    equity_at_handover: Decimal
    grand_total: Decimal
    paid_by_handover: Decimal
    paid_after_handover: Decimal
    timeline: Tuple[CashFlowEvent, ...]

    # Convenience accessors mirroring the flat result layout front ends use.
    @property
    def booking_amount(self) -> Decimal:
        return self.amounts.booking_amount

    @property
    def during_construction_amount(self) -> Decimal:
        return self.amounts.during_construction_amount

    @property
    def remaining_construction_amount(self) -> Decimal:
        return self.amounts.remaining_construction_amount

    @property
    def on_handover_amount(self) -> Decimal:
        return self.amounts.on_handover_amount

    @property
    def post_handover_amount(self) -> Decimal:
        return self.amounts.post_handover_amount

    @property
    def registration_fee(self) -> Decimal:
        return self.fees.registration_fee

    @property
    def administrative_fee(self) -> Decimal:
        return self.fees.administrative_fee

    @property
    def transfer_fee(self) -> Decimal:
        return self.fees.transfer_fee

    @property
    def total_fees(self) -> Decimal:
        return self.fees.total_fees

    @property
    def final_cumulative_paid(self) -> Optional[Decimal]:
        return self.timeline[-1].cumulative_paid if self.timeline else None
