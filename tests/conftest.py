from __future__ import annotations

import os

# The web app builds its comparison store at import time.
os.environ.setdefault("COMPARISON_DATABASE_URL", "sqlite://")

import pytest

from offplan_calc.catalog import DEFAULT_FEE_SCHEDULE, get_plan


@pytest.fixture()
def fees():
    return DEFAULT_FEE_SCHEDULE


@pytest.fixture()
def plan_20_80():
    return get_plan("20-80")


@pytest.fixture()
def plan_60_40_post():
    return get_plan("60-40-post")
