from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_TIME_SLOTS = ("Morning", "Afternoon", "Evening", "All Day")
DEFAULT_ALL_DAY_SLOT = "All Day"
DEFAULT_MAX_EVENTS = 2


@dataclass(frozen=True)
class BookingRules:
    """Venue limits applied to every day of the calendar."""

    time_slots: tuple[str, ...] = DEFAULT_TIME_SLOTS
    all_day_slot: str = DEFAULT_ALL_DAY_SLOT
    max_events: int = DEFAULT_MAX_EVENTS
    # At most one booking per slot on a day ("All Day" is exclusive anyway).
    unique_slots: bool = True


@dataclass(frozen=True)
class Settings:
    admin_pin: str
    database_url: str

    max_events: int = DEFAULT_MAX_EVENTS
    time_slots: tuple[str, ...] = DEFAULT_TIME_SLOTS
    all_day_slot: str = DEFAULT_ALL_DAY_SLOT
    unique_slots: bool = True

    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @property
    def rules(self) -> BookingRules:
        return BookingRules(
            time_slots=self.time_slots,
            all_day_slot=self.all_day_slot,
            max_events=self.max_events,
            unique_slots=self.unique_slots,
        )


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _split_csv(raw: str) -> tuple[str, ...]:
    parts = [p.strip() for p in raw.split(",")]

    seen: set[str] = set()
    result: list[str] = []
    for p in parts:
        if not p or p in seen:
            continue
        seen.add(p)
        result.append(p)
    return tuple(result)


def _parse_pin(raw: str) -> str:
    pin = raw.strip()
    if not pin.isdigit():
        raise RuntimeError("ADMIN_PIN must contain digits only")
    return pin


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() not in {"0", "false", "no"}


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    try:
        max_events = int(os.getenv("MAX_EVENTS", str(DEFAULT_MAX_EVENTS)))
    except ValueError as e:
        raise RuntimeError(f"Invalid MAX_EVENTS value: {os.getenv('MAX_EVENTS')!r}") from e
    if max_events < 1:
        raise RuntimeError("MAX_EVENTS must be >= 1")

    time_slots = _split_csv(os.getenv("TIME_SLOTS", ",".join(DEFAULT_TIME_SLOTS)))
    if not time_slots:
        raise RuntimeError("TIME_SLOTS is empty. Provide at least one slot label.")

    all_day_slot = os.getenv("ALL_DAY_SLOT", DEFAULT_ALL_DAY_SLOT).strip()
    if all_day_slot not in time_slots:
        raise RuntimeError(f"ALL_DAY_SLOT {all_day_slot!r} is not one of TIME_SLOTS {time_slots!r}")

    cors_origins = _split_csv(os.getenv("CORS_ORIGINS", "*")) or ("*",)

    return Settings(
        admin_pin=_parse_pin(_require("ADMIN_PIN")),
        database_url=_require("DATABASE_URL"),
        max_events=max_events,
        time_slots=time_slots,
        all_day_slot=all_day_slot,
        unique_slots=_parse_bool(os.getenv("UNIQUE_SLOTS", "1")),
        cors_origins=cors_origins,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
