"""Month grid projection of the booking map."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterator, Mapping, Optional

from bookings import DayBookingSet, DayStatus, day_status
from config import BookingRules

# Weeks start on Sunday, matching the S M T W T F S header of the grid.
FIRST_WEEKDAY = calendar.SUNDAY

# The grid pads each month with days from its neighbours, which must stay
# inside the range datetime.date can represent.
MIN_YEAR = 2
MAX_YEAR = 9998


class ViewMode(str, Enum):
    PUBLIC = "public"
    MANAGEMENT = "management"


@dataclass(frozen=True)
class CalendarCell:
    date: date
    in_month: bool
    status: DayStatus
    booking_count: int
    is_today: bool
    is_past: bool
    summary: Optional[str]
    interactive: bool
    editable: bool


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


class MonthView:
    """Cells for one navigated month.

    Iterating recomputes every cell from ``days``; nothing is cached, so the
    same view can be iterated again after the map changes.
    """

    def __init__(
        self,
        year: int,
        month: int,
        days: Mapping[date, DayBookingSet],
        today: date,
        rules: BookingRules,
        mode: ViewMode = ViewMode.PUBLIC,
    ):
        if not 1 <= month <= 12:
            raise ValueError(f"month must be in 1..12, got {month}")
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise ValueError(f"year must be in {MIN_YEAR}..{MAX_YEAR}, got {year}")
        self.year = year
        self.month = month
        self.days = days
        self.today = today
        self.rules = rules
        self.mode = ViewMode(mode)

    @property
    def month_title(self) -> str:
        return date(self.year, self.month, 1).strftime("%b %Y")

    @property
    def previous_month(self) -> Optional[tuple[int, int]]:
        return self._neighbour(-1)

    @property
    def next_month(self) -> Optional[tuple[int, int]]:
        return self._neighbour(1)

    def _neighbour(self, delta: int) -> Optional[tuple[int, int]]:
        year, month = shift_month(self.year, self.month, delta)
        if not MIN_YEAR <= year <= MAX_YEAR:
            return None
        return year, month

    def __iter__(self) -> Iterator[CalendarCell]:
        grid = calendar.Calendar(firstweekday=FIRST_WEEKDAY)
        for day in grid.itermonthdates(self.year, self.month):
            yield self._cell(day)

    def _cell(self, day: date) -> CalendarCell:
        in_month = day.month == self.month
        day_set = self.days.get(day)
        count = len(day_set) if day_set is not None else 0
        status = day_status(count, self.rules.max_events)
        is_past = day < self.today

        # Past days with nothing booked are inert; booked ones stay open so
        # their history can still be viewed (and corrected by management).
        interactive = in_month and (not is_past or count > 0)
        summary = None
        if status is DayStatus.PARTIALLY_BOOKED and day_set is not None:
            summary = day_set.first_slot

        return CalendarCell(
            date=day,
            in_month=in_month,
            status=status,
            booking_count=count,
            is_today=day == self.today,
            is_past=is_past,
            summary=summary,
            interactive=interactive,
            editable=interactive and self.mode is ViewMode.MANAGEMENT,
        )
