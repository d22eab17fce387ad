"""Aggregate figures for a cost breakdown."""

import math
from typing import Any, Sequence

from fabbill.domain.entities import AdjustedServiceLineItem, BillingSummary


def safe_minutes(value: Any) -> int:
    """Return a minutes value usable in a sum; missing or non-finite is 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return int(number)


def summarize(lines: Sequence[AdjustedServiceLineItem]) -> BillingSummary:
    """Sum minute figures over the adjusted service lines."""
    return BillingSummary(
        total_actual_minutes=sum(safe_minutes(line.actual_minutes) for line in lines),
        total_rounded_minutes=sum(safe_minutes(line.rounded_minutes) for line in lines),
        total_booked_minutes=sum(safe_minutes(line.booked_minutes) for line in lines),
        total_rounded_booked_minutes=sum(
            safe_minutes(line.rounded_booked_minutes) for line in lines
        ),
        total_downtime_minutes=sum(safe_minutes(line.downtime_minutes) for line in lines),
    )


def format_hours(minutes: Any) -> str:
    """Format minutes as hours with one decimal place, for display only."""
    return f"{safe_minutes(minutes) / 60:.1f}"


def format_minutes(minutes: Any) -> str:
    """Format minutes as "<N> mins (<H> hrs)"."""
    return f"{safe_minutes(minutes)} mins ({format_hours(minutes)} hrs)"
