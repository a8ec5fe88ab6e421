"""Booking rules for a single calendar day.

A day holds a handful of bookings, each tagged with a slot from the venue's
vocabulary. ``DayBookingSet`` is immutable: ``add`` and ``remove`` return a
new set and leave the original untouched, so a caller can validate a change
and still fall back to the previous state if persisting it fails.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Iterator, Optional

from config import BookingRules


def new_booking_id() -> str:
    return uuid.uuid4().hex


class DayStatus(str, Enum):
    AVAILABLE = "available"
    PARTIALLY_BOOKED = "partially-booked"
    FULLY_BOOKED = "fully-booked"


def day_status(count: int, max_events: int) -> DayStatus:
    if count <= 0:
        return DayStatus.AVAILABLE
    if count >= max_events:
        return DayStatus.FULLY_BOOKED
    return DayStatus.PARTIALLY_BOOKED


class ConflictError(Exception):
    """A booking draft was rejected by the day's rules. Nothing was changed."""

    code = "Conflict"


class EmptyName(ConflictError):
    code = "EmptyName"


class UnknownSlot(ConflictError):
    code = "UnknownSlot"


class AllDayConflict(ConflictError):
    code = "AllDayConflict"


class SlotTaken(ConflictError):
    code = "SlotTaken"


class CapacityExceeded(ConflictError):
    code = "CapacityExceeded"


@dataclass(frozen=True)
class Booking:
    id: str
    name: str
    slot: str


@dataclass(frozen=True)
class BookingDraft:
    name: str
    slot: str
    # Only set when re-committing a booking that already exists on the day.
    id: Optional[str] = None


@dataclass(frozen=True)
class DayBookingSet:
    day: date
    rules: BookingRules
    bookings: tuple[Booking, ...] = ()
    id_factory: Callable[[], str] = field(default=new_booking_id, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.bookings)

    def __iter__(self) -> Iterator[Booking]:
        return iter(self.bookings)

    def __contains__(self, booking_id: object) -> bool:
        return any(b.id == booking_id for b in self.bookings)

    @property
    def has_all_day(self) -> bool:
        return any(b.slot == self.rules.all_day_slot for b in self.bookings)

    @property
    def first_slot(self) -> Optional[str]:
        return self.bookings[0].slot if self.bookings else None

    def status(self) -> DayStatus:
        return day_status(len(self.bookings), self.rules.max_events)

    def validate(self, draft: BookingDraft) -> str:
        """Check a draft against this day's bookings and return its cleaned name.

        Checks run in a fixed order so the reported error is predictable when
        more than one rule is broken.
        """
        name = (draft.name or "").strip()
        if not name:
            raise EmptyName("Booking name must not be empty")

        rules = self.rules
        if draft.slot not in rules.time_slots:
            raise UnknownSlot(f"Unknown slot {draft.slot!r}. Expected one of: {', '.join(rules.time_slots)}")

        if self.has_all_day:
            raise AllDayConflict(f"{self.day.isoformat()} is already booked for the whole day")

        if draft.slot == rules.all_day_slot and self.bookings:
            raise AllDayConflict(f"{self.day.isoformat()} already has bookings; an all-day booking needs an empty day")

        if rules.unique_slots and any(b.slot == draft.slot for b in self.bookings):
            raise SlotTaken(f"{draft.slot} on {self.day.isoformat()} is already booked")

        if len(self.bookings) >= rules.max_events:
            raise CapacityExceeded(
                f"{self.day.isoformat()} already has the maximum of {rules.max_events} bookings"
            )

        return name

    def add(self, draft: BookingDraft, booking_id: Optional[str] = None) -> "DayBookingSet":
        name = self.validate(draft)
        booking = Booking(id=booking_id or self.id_factory(), name=name, slot=draft.slot)
        return self._replace(self.bookings + (booking,))

    def remove(self, booking_id: str) -> "DayBookingSet":
        if booking_id not in self:
            return self
        return self._replace(tuple(b for b in self.bookings if b.id != booking_id))

    def _replace(self, bookings: tuple[Booking, ...]) -> "DayBookingSet":
        return DayBookingSet(day=self.day, rules=self.rules, bookings=bookings, id_factory=self.id_factory)
