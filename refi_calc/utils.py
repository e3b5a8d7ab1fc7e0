"""Utility functions for the refinance calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding months, normalizing year-month strings to
``datetime.date`` instances and labelling schedule rows with calendar months.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Optional

from .data_models import RateSegment

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.001")


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Returns
    -------
    date
        A date object representing the first day of the specified month.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.strip().split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_label(start: date, offset: int) -> str:
    """Label the row ``offset`` months after ``start``, e.g. ``"Jan 2026"``."""
    return add_months(start, offset).strftime("%b %Y")


def parse_money(value: str) -> Decimal:
    """Convert money text such as ``"2,623,000.50"`` into a ``Decimal``.

    Thousands separators are stripped and ``k``/``m`` suffixes are accepted as
    shorthand (``"500k"`` means 500,000). The result is rounded to cents.
    """
    cleaned = str(value).strip().lower().replace(",", "").replace(" ", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    try:
        amount = Decimal(cleaned) * factor
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value}")
    return amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def parse_optional_money(value: Optional[str]) -> Optional[Decimal]:
    """Like ``parse_money`` but blank input means "not set"."""
    if value is None or not str(value).strip():
        return None
    return parse_money(value)


def parse_rate(value: str) -> Decimal:
    """Parse an annual rate in percent (``"5.37"`` or ``"5.37%"``) to 3 places."""
    cleaned = str(value).strip().rstrip("%").strip()
    try:
        rate = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid rate: {value}") from exc
    if not rate.is_finite():
        raise ValueError(f"Invalid rate: {value}")
    return rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def parse_rate_segment(value: str) -> RateSegment:
    """Parse a ``MONTHS:RATE`` pair such as ``"12:1.99"``."""
    parts = value.split(":")
    if len(parts) != 2:
        raise ValueError(f"Rate segment must be in MONTHS:RATE format; got {value}")
    months_str, rate_str = parts
    try:
        months = int(months_str.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid segment length: {months_str}") from exc
    return RateSegment(duration_months=months, annual_rate_percent=parse_rate(rate_str))
