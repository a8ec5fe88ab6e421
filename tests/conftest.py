import itertools

import pytest

from access import AccessGate
from config import BookingRules, Settings
from editor import BookingEditor
from fakes import FakeStore

PIN = "2025"


@pytest.fixture
def rules() -> BookingRules:
    return BookingRules()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"b{next(counter)}"


@pytest.fixture
def gate() -> AccessGate:
    return AccessGate(PIN)


@pytest.fixture
def token(gate):
    return gate.verify(PIN)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def editor(fake_store, gate, rules, id_factory) -> BookingEditor:
    return BookingEditor(fake_store, gate, rules, id_factory=id_factory)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        admin_pin=PIN,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}",
    )
