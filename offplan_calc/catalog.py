"""Static configuration: payment plan presets and the default fee schedule.

These are plain immutable values. The engine never reads them implicitly;
callers pass the plan and fee schedule they want into ``compute`` so tests and
other jurisdictions can substitute their own.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Tuple

from .data_models import (
    CustomPlan,
    FeeSchedule,
    PaymentPlanTemplate,
    PlanSelection,
    PresetPlan,
)
from .errors import InvalidPlanError

# Payment plan presets common in Dubai
PAYMENT_PLANS: Tuple[PaymentPlanTemplate, ...] = (
    PaymentPlanTemplate(
        id="20-80",
        name="20/80 Plan",
        description="20% during construction, 80% on handover",
        during_construction_percent=20,
        on_handover_percent=80,
        post_handover_percent=0,
        post_handover_months=0,
        popular=True,
    ),
    PaymentPlanTemplate(
        id="40-60",
        name="40/60 Plan",
        description="40% during construction, 60% on handover",
        during_construction_percent=40,
        on_handover_percent=60,
        post_handover_percent=0,
        post_handover_months=0,
    ),
    PaymentPlanTemplate(
        id="50-50",
        name="50/50 Plan",
        description="50% during construction, 50% on handover",
        during_construction_percent=50,
        on_handover_percent=50,
        post_handover_percent=0,
        post_handover_months=0,
    ),
    PaymentPlanTemplate(
        id="60-40-post",
        name="60/40 Post-Handover",
        description="10% booking, 50% during, 40% post-handover (24 months)",
        during_construction_percent=60,
        on_handover_percent=0,
        post_handover_percent=40,
        post_handover_months=24,
        popular=True,
    ),
    PaymentPlanTemplate(
        id="30-70-post",
        name="30/70 Post-Handover",
        description="30% during construction, 70% over 3 years post-handover",
        during_construction_percent=30,
        on_handover_percent=0,
        post_handover_percent=70,
        post_handover_months=36,
    ),
    PaymentPlanTemplate(
        id="custom",
        name="Custom Plan",
        description="Configure your own payment structure",
        during_construction_percent=50,
        on_handover_percent=30,
        post_handover_percent=20,
        post_handover_months=12,
    ),
)

# DLD fees for off-plan purchases. The administrative fee combines the Oqood
# admin charge (AED 5,460) with a typical developer admin fee (AED 5,000).
DEFAULT_FEE_SCHEDULE = FeeSchedule(
    registration_fee_rate=Decimal("0.04"),
    fixed_administrative_fee=Decimal("10460"),
    transfer_fee_rate=Decimal("0.04"),
)


def get_plan(plan_id: str, catalog: Iterable[PaymentPlanTemplate] = PAYMENT_PLANS) -> PaymentPlanTemplate:
    """Return the catalog plan with ``plan_id``.

    Raises
    ------
    InvalidPlanError
        If no plan with that id exists.
    """
    for plan in catalog:
        if plan.id == plan_id:
            return plan
    raise InvalidPlanError(f"Unknown payment plan: {plan_id}")


def resolve_plan(
    selection: PlanSelection,
    catalog: Optional[Iterable[PaymentPlanTemplate]] = None,
) -> PaymentPlanTemplate:
    """Turn any plan selection into a validated template."""
    if isinstance(selection, PresetPlan):
        plan = get_plan(selection.plan_id, catalog if catalog is not None else PAYMENT_PLANS)
    elif isinstance(selection, CustomPlan):
        plan = selection.to_template()
    elif isinstance(selection, PaymentPlanTemplate):
        plan = selection
    else:
        raise InvalidPlanError(f"Unsupported plan selection: {selection!r}")
    plan.validate()
    return plan
