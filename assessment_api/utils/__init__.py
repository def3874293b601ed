"""Utility modules."""
from assessment_api.utils.time_utils import (
    as_utc,
    minutes_between,
    utc_now,
)
from assessment_api.utils.validation import validate_id

__all__ = [
    "as_utc",
    "minutes_between",
    "utc_now",
    "validate_id",
]
