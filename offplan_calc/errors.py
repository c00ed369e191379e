"""Exceptions raised by the off-plan calculator.

Both error kinds are validation errors: they are raised before any
computation starts and the caller is expected to fix its inputs. They derive
from ``ValueError`` so callers that only care about "bad input" can catch that.
"""


class OffPlanError(ValueError):
    """Base class for calculator validation errors."""


class InvalidPlanError(OffPlanError):
    """The payment plan percentages or post-handover period are inconsistent."""


class InvalidInputError(OffPlanError):
    """A scenario input (price, construction length, deposit...) is out of range."""
