"""Management operations on the booking calendar.

The editor owns the in-memory ``date -> DayBookingSet`` map. Every mutation
is validated against the day's rules, written to the store as a full-day
replace, and only then applied to the map, so the calendar never shows a
change the store did not accept.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from access import AccessGate, AccessToken
from availability import MonthView, ViewMode
from bookings import Booking, BookingDraft, ConflictError, DayBookingSet, new_booking_id
from config import BookingRules
from store import BookingStore

logger = logging.getLogger(__name__)


class BookingEditor:
    def __init__(
        self,
        store: BookingStore,
        gate: AccessGate,
        rules: BookingRules,
        id_factory: Callable[[], str] = new_booking_id,
    ):
        self.store = store
        self.gate = gate
        self.rules = rules
        self._id_factory = id_factory
        self._days: Dict[date, DayBookingSet] = {}

    @property
    def days(self) -> Mapping[date, DayBookingSet]:
        return MappingProxyType(self._days)

    async def load(self) -> None:
        rows = await self.store.select_all()

        grouped: Dict[date, List[Booking]] = defaultdict(list)
        for row in sorted(rows, key=lambda r: (r.event_date, r.position)):
            grouped[row.event_date].append(Booking(id=row.id, name=row.name, slot=row.slot))

        # Stored days are trusted as-is; the rules only gate new changes.
        self._days = {
            day: DayBookingSet(day=day, rules=self.rules, bookings=tuple(items), id_factory=self._id_factory)
            for day, items in grouped.items()
        }
        logger.info("Loaded %d bookings across %d days", len(rows), len(self._days))

    def day(self, day: date) -> DayBookingSet:
        existing = self._days.get(day)
        if existing is not None:
            return existing
        return DayBookingSet(day=day, rules=self.rules, id_factory=self._id_factory)

    def month(self, year: int, month: int, today: date, mode: ViewMode = ViewMode.PUBLIC) -> MonthView:
        return MonthView(year, month, self.days, today=today, rules=self.rules, mode=mode)

    async def add_booking(self, token: Optional[AccessToken], day: date, name: str, slot: str) -> Booking:
        self.gate.require(token)
        current = self.day(day)
        try:
            updated = current.add(BookingDraft(name=name, slot=slot))
        except ConflictError as e:
            logger.info("Rejected booking on %s: %s", day.isoformat(), e.code)
            raise

        await self._commit(updated)
        booking = updated.bookings[-1]
        logger.info("Added booking %s (%s) on %s", booking.id, booking.slot, day.isoformat())
        return booking

    async def remove_booking(self, token: Optional[AccessToken], day: date, booking_id: str) -> DayBookingSet:
        self.gate.require(token)
        current = self.day(day)
        if booking_id not in current:
            return current

        updated = current.remove(booking_id)
        await self._commit(updated)
        logger.info("Removed booking %s on %s", booking_id, day.isoformat())
        return updated

    async def commit_day(
        self, token: Optional[AccessToken], day: date, drafts: Iterable[BookingDraft]
    ) -> DayBookingSet:
        """Replace a whole day with ``drafts``, validating them in order.

        Drafts that carry the id of a booking already on the day keep it; any
        other draft gets a fresh id.
        """
        self.gate.require(token)
        current = self.day(day)

        updated = DayBookingSet(day=day, rules=self.rules, id_factory=self._id_factory)
        try:
            for draft in drafts:
                keep_id = draft.id if draft.id in current and draft.id not in updated else None
                updated = updated.add(draft, booking_id=keep_id)
        except ConflictError as e:
            logger.info("Rejected day commit for %s: %s", day.isoformat(), e.code)
            raise

        await self._commit(updated)
        logger.info("Committed %d bookings on %s", len(updated), day.isoformat())
        return updated

    async def _commit(self, updated: DayBookingSet) -> None:
        # PersistenceError propagates before the map is touched.
        await self.store.replace_day(updated.day, updated.bookings)
        if len(updated):
            self._days[updated.day] = updated
        else:
            self._days.pop(updated.day, None)
