from datetime import date
from sqlmodel import SQLModel, Field


class BookingRow(SQLModel, table=True):
    __tablename__ = "bookings"

    id: str = Field(primary_key=True, max_length=32)
    event_date: date = Field(index=True)
    name: str
    slot: str
    # Insertion order within the day; the first booking gives the calendar summary.
    position: int = Field(default=0)
