"""Booking Store: the ``bookings`` table seen as list / delete-by-date / insert."""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Sequence

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from bookings import Booking
from models import BookingRow

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """The store did not acknowledge an operation; callers may retry."""


def rows_for_day(day: date, bookings: Sequence[Booking]) -> List[BookingRow]:
    return [
        BookingRow(id=b.id, event_date=day, name=b.name, slot=b.slot, position=i)
        for i, b in enumerate(bookings)
    ]


class BookingStore:
    def __init__(self, session_maker: sessionmaker):
        self._session_maker = session_maker

    async def select_all(self) -> List[BookingRow]:
        statement = select(BookingRow).order_by(BookingRow.event_date, BookingRow.position)
        try:
            async with self._session_maker() as session:
                result = await session.execute(statement)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("Loading bookings failed")
            raise PersistenceError("Could not load bookings") from e

    async def delete_by_date(self, day: date) -> None:
        await self._write(day, delete_day=True, rows=[])

    async def insert_many(self, rows: Iterable[BookingRow]) -> None:
        rows = list(rows)
        if not rows:
            return
        await self._write(rows[0].event_date, delete_day=False, rows=rows)

    async def replace_day(self, day: date, bookings: Sequence[Booking]) -> None:
        """Delete every row for ``day`` and insert ``bookings`` in their place."""
        await self._write(day, delete_day=True, rows=rows_for_day(day, bookings))

    async def _write(self, day: date, *, delete_day: bool, rows: List[BookingRow]) -> None:
        async with self._session_maker() as session:
            try:
                if delete_day:
                    await session.execute(delete(BookingRow).where(BookingRow.event_date == day))
                session.add_all(rows)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.exception("Writing bookings for %s failed", day.isoformat())
                raise PersistenceError(f"Could not save bookings for {day.isoformat()}") from e
