"""Report filters and date-window resolution.

Windows are half-open ``[start, end)`` in the report timezone. ``None`` on
either side means unbounded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Any, Mapping, Optional

import pandas as pd

from pos_settlement.reporting.fields import payment_methods, sale_id, sale_items
from pos_settlement.reporting.timestamps import format_local_date

ALL = "all"

# Named ranges and how far back each reaches from "now"
RELATIVE_RANGES = {
    "week": pd.Timedelta(days=7),
    "month": pd.Timedelta(days=30),
    "3months": pd.Timedelta(days=90),
    "6months": pd.Timedelta(days=180),
    "year": pd.Timedelta(days=365),
}

DATE_RANGES = ("today", "custom", ALL) + tuple(RELATIVE_RANGES)


@dataclass(frozen=True)
class AggregationFilter:
    """What the operator asked to see.

    Attributes:
        date_range: One of "today", "week", "month", "3months", "6months",
            "year", "custom" or "all".
        custom_start: First day (YYYY-MM-DD) when date_range is "custom".
        custom_end: Last day (YYYY-MM-DD, inclusive) when date_range is "custom".
        start_time: Optional HH:MM clock time replacing the window's start time.
        end_time: Optional HH:MM clock time (inclusive minute) replacing the
            window's end time. Only applied when both times are given.
        search: Free-text term matched against sale id, product names and
            the localized sale date.
        payment_method: Instrument value to keep, or "all".
        salesperson: Salesperson id to keep, or "all".
        compare_previous: Also compute the preceding window of equal length.
    """

    date_range: str = "today"
    custom_start: Optional[str] = None
    custom_end: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    search: str = ""
    payment_method: str = ALL
    salesperson: str = ALL
    compare_previous: bool = False

    def __post_init__(self) -> None:
        if self.date_range not in DATE_RANGES:
            raise ValueError(
                f"Invalid date_range '{self.date_range}'. Must be one of {DATE_RANGES}."
            )

    @property
    def is_search(self) -> bool:
        return bool(self.search.strip())

    @property
    def custom_incomplete(self) -> bool:
        return self.date_range == "custom" and not (self.custom_start and self.custom_end)


@dataclass(frozen=True)
class DateWindow:
    start: Optional[pd.Timestamp] = None
    end: Optional[pd.Timestamp] = None

    @property
    def bounded(self) -> bool:
        return self.start is not None and self.end is not None


def _parse_clock(value: str) -> time:
    hours, minutes = (int(part) for part in value.split(":")[:2])
    return time(hours, minutes)


def _at(day: pd.Timestamp, clock: time) -> pd.Timestamp:
    return day.normalize() + pd.Timedelta(hours=clock.hour, minutes=clock.minute)


def resolve_window(flt: AggregationFilter, now: pd.Timestamp) -> Optional[DateWindow]:
    """Turn a filter's named or custom range into concrete bounds.

    Args:
        flt: The report filter.
        now: Current instant, timezone-aware in the report timezone.

    Returns:
        DateWindow, or None when a custom range is missing either date
        (the report is empty and nothing needs to be read).

    Raises:
        ValueError: If custom dates or clock times are malformed.

    Examples:
        >>> now = pd.Timestamp("2025-03-10 15:00", tz="America/Bogota")
        >>> w = resolve_window(AggregationFilter("today"), now)
        >>> w.start
        Timestamp('2025-03-10 00:00:00-0500', tz='America/Bogota')
        >>> w.end
        Timestamp('2025-03-11 00:00:00-0500', tz='America/Bogota')
    """
    if flt.custom_incomplete:
        return None

    tz = now.tz
    if flt.date_range == "today":
        start: Optional[pd.Timestamp] = now.normalize()
        end: Optional[pd.Timestamp] = start + pd.Timedelta(days=1)
    elif flt.date_range == "custom":
        start = pd.Timestamp(flt.custom_start).tz_localize(tz).normalize()
        end = pd.Timestamp(flt.custom_end).tz_localize(tz).normalize() + pd.Timedelta(days=1)
        if end <= start:
            raise ValueError(
                f"Custom range ends before it starts: {flt.custom_start} to {flt.custom_end}"
            )
    elif flt.date_range == ALL:
        return DateWindow()
    else:
        # Relative ranges reach back from now with no upper bound
        return DateWindow(start=now - RELATIVE_RANGES[flt.date_range])

    if flt.start_time and flt.end_time:
        start = _at(start, _parse_clock(flt.start_time))
        last_day = end - pd.Timedelta(days=1)
        end = _at(last_day, _parse_clock(flt.end_time)) + pd.Timedelta(minutes=1)

    return DateWindow(start=start, end=end)


def previous_window(window: DateWindow, now: pd.Timestamp) -> Optional[DateWindow]:
    """The window of equal length immediately before ``window``.

    Open-ended windows are measured up to ``now``. Windows without a start
    have no predecessor.
    """
    if window.start is None:
        return None
    end = window.end if window.end is not None else now
    length = end - window.start
    return DateWindow(start=window.start - length, end=window.start)


def in_window(instant: pd.Timestamp, window: DateWindow) -> bool:
    if window.start is not None and instant < window.start:
        return False
    if window.end is not None and instant >= window.end:
        return False
    return True


def matches_search(sale: Mapping[str, Any], instant: Optional[pd.Timestamp], term: str) -> bool:
    """Case-insensitive match on sale id, any product name, or the local date."""
    term = term.strip().lower()
    if not term:
        return True
    if term in sale_id(sale).lower():
        return True
    for item in sale_items(sale):
        if term in str(item.get("productName") or "").lower():
            return True
    return instant is not None and term in format_local_date(instant).lower()


def matches_attributes(sale: Mapping[str, Any], flt: AggregationFilter) -> bool:
    """Payment-method and salesperson equality filters."""
    if flt.payment_method != ALL and flt.payment_method not in payment_methods(sale):
        return False
    if flt.salesperson != ALL and str(sale.get("salesPersonId") or "") != flt.salesperson:
        return False
    return True
