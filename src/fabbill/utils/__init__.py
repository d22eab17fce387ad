"""Utility functions for fabbill."""

from fabbill.utils.date_parser import parse_date
from fabbill.utils.amount_parser import parse_amount, parse_cost, format_price
from fabbill.utils.time_parser import parse_time_of_day, normalize_time

__all__ = [
    "parse_date",
    "parse_amount",
    "parse_cost",
    "format_price",
    "parse_time_of_day",
    "normalize_time",
]
