import asyncio
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from access import AccessGate
from bookings import Booking
from database import create_engine, init_db, session_factory
from editor import BookingEditor
from models import BookingRow
from store import BookingStore, PersistenceError

DAY = date(2026, 1, 26)


def _url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"


async def _with_store(url, body):
    engine = create_engine(url)
    try:
        await init_db(engine)
        return await body(BookingStore(session_factory(engine)))
    finally:
        await engine.dispose()


def test_booking_survives_a_full_reload(tmp_path, rules):
    gate = AccessGate("2025")
    token = gate.verify("2025")

    async def write(store):
        editor = BookingEditor(store, gate, rules)
        await editor.load()
        await editor.add_booking(token, DAY, "Wedding", "Morning")

    async def reload(store):
        editor = BookingEditor(store, gate, rules)
        await editor.load()
        return editor.day(DAY)

    asyncio.run(_with_store(_url(tmp_path), write))
    day = asyncio.run(_with_store(_url(tmp_path), reload))

    assert [(b.name, b.slot) for b in day] == [("Wedding", "Morning")]


def test_replace_day_swaps_rows_and_keeps_order(tmp_path):
    async def body(store):
        await store.replace_day(DAY, [Booking("a", "Wedding", "Morning"), Booking("b", "Gala", "Evening")])
        await store.replace_day(DAY, [Booking("b", "Gala", "Evening"), Booking("c", "Party", "Afternoon")])
        return await store.select_all()

    rows = asyncio.run(_with_store(_url(tmp_path), body))
    assert [(r.id, r.position) for r in rows] == [("b", 0), ("c", 1)]


def test_replace_day_with_nothing_deletes_the_day(tmp_path):
    other = date(2026, 1, 27)

    async def body(store):
        await store.replace_day(DAY, [Booking("a", "Wedding", "Morning")])
        await store.replace_day(other, [Booking("b", "Gala", "Evening")])
        await store.replace_day(DAY, [])
        return await store.select_all()

    rows = asyncio.run(_with_store(_url(tmp_path), body))
    assert [r.event_date for r in rows] == [other]


def test_delete_by_date_and_insert_many(tmp_path):
    async def body(store):
        await store.insert_many(
            [
                BookingRow(id="a", event_date=DAY, name="Wedding", slot="Morning", position=0),
                BookingRow(id="b", event_date=DAY, name="Gala", slot="Evening", position=1),
            ]
        )
        await store.insert_many([])
        first = await store.select_all()
        await store.delete_by_date(DAY)
        return first, await store.select_all()

    first, after = asyncio.run(_with_store(_url(tmp_path), body))
    assert [r.name for r in first] == ["Wedding", "Gala"]
    assert after == []


def test_duplicate_id_surfaces_as_persistence_error(tmp_path):
    async def body(store):
        await store.replace_day(DAY, [Booking("a", "Wedding", "Morning")])
        await store.replace_day(date(2026, 1, 27), [Booking("a", "Gala", "Evening")])

    with pytest.raises(PersistenceError) as excinfo:
        asyncio.run(_with_store(_url(tmp_path), body))
    assert excinfo.value.__cause__ is not None


def test_missing_table_surfaces_as_persistence_error(tmp_path):
    async def body():
        engine = create_engine(_url(tmp_path))
        try:
            await BookingStore(session_factory(engine)).select_all()
        finally:
            await engine.dispose()

    with pytest.raises(PersistenceError) as excinfo:
        asyncio.run(body())
    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_engine_requires_a_url():
    with pytest.raises(ValueError):
        create_engine("")
