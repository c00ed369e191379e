"""
Configuration for the off-plan calculator web app.

Settings are read from environment variables with defaults suitable for
local development. Fee overrides let a deployment price another jurisdiction
without code changes; anything unset keeps the Dubai defaults.
"""

import os

from offplan_calc.catalog import DEFAULT_FEE_SCHEDULE
from offplan_calc.data_models import FeeSchedule
from offplan_calc.utils import decimal_from_str


class Config:
    """Application configuration."""

    # --- Flask ---
    SECRET_KEY: str = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")

    # --- Comparison store ---
    COMPARISON_DATABASE_URL: str = os.environ.get(
        "COMPARISON_DATABASE_URL", "sqlite:///comparison_data.sqlite3"
    )
    MAX_SCENARIOS_PER_USER: int = int(os.environ.get("MAX_SCENARIOS_PER_USER", "10"))

    # --- Timeline preview ---
    TIMELINE_PREVIEW_ROWS: int = 120

    # --- Fee overrides (unset means default schedule) ---
    REGISTRATION_FEE_RATE: str = os.environ.get("OFFPLAN_REGISTRATION_FEE_RATE", "")
    ADMIN_FEE: str = os.environ.get("OFFPLAN_ADMIN_FEE", "")
    TRANSFER_FEE_RATE: str = os.environ.get("OFFPLAN_TRANSFER_FEE_RATE", "")

    @classmethod
    def fee_schedule(cls) -> FeeSchedule:
        """Return the fee schedule with any environment overrides applied."""
        base = DEFAULT_FEE_SCHEDULE
        return FeeSchedule(
            registration_fee_rate=(
                decimal_from_str(cls.REGISTRATION_FEE_RATE)
                if cls.REGISTRATION_FEE_RATE
                else base.registration_fee_rate
            ),
            fixed_administrative_fee=(
                decimal_from_str(cls.ADMIN_FEE) if cls.ADMIN_FEE else base.fixed_administrative_fee
            ),
            transfer_fee_rate=(
                decimal_from_str(cls.TRANSFER_FEE_RATE)
                if cls.TRANSFER_FEE_RATE
                else base.transfer_fee_rate
            ),
        )
