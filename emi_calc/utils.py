"""Utility functions for the EMI calculator.

This module provides helpers for parsing user input into Python data types,
for handling dates (adding months, normalizing year-month strings) and for
rounding amounts to whole currency units at reporting boundaries.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[int, float, Decimal]


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (ValueError, TypeError, AttributeError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: str) -> date:
    """Parse an ISO ``YYYY-MM-DD`` date; a bare ``YYYY-MM`` means the 1st."""
    value = value.strip()
    if len(value) <= 7:
        return parse_year_month(value)
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    Grouping commas, spaces and a leading rupee sign are ignored, so both
    ``"10,00,000"`` and ``"₹ 1000000"`` parse. Raises ``ValueError`` if
    conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").replace("₹", "").replace(" ", "")
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value: Number) -> Decimal:
    """Return ``value`` as a ``Decimal`` without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_unit(value: Number) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def years_to_months(years: Number) -> int:
    """Convert a (possibly fractional) number of years to whole months.

    ``2.5`` years is 30 months; ``1.04`` years (12.48 months) is 12 months.
    Raises ``ValueError`` for NaN, infinity or a value too large to count.
    """
    months = to_decimal(years) * 12
    if not months.is_finite():
        raise ValueError(f"Invalid number of years: {years}")
    try:
        return round_unit(months)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid number of years: {years}") from exc
