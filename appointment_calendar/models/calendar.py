from datetime import UTC, date, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class SlotStatus(str, Enum):
    OPEN = "open"
    BREAK = "break"
    BOOKED = "booked"


class CalendarDay(SQLModel, table=True):
    __tablename__ = "calendar_days"
    id: int | None = Field(default=None, primary_key=True)
    day: date = Field(unique=True, index=True)


class TimeSlot(SQLModel, table=True):
    __tablename__ = "time_slots"
    __table_args__ = (UniqueConstraint("day_id", "time", name="uq_time_slots_day_time"),)
    id: int | None = Field(default=None, primary_key=True)
    day_id: int = Field(foreign_key="calendar_days.id", index=True, ondelete="CASCADE")
    time: str = Field(max_length=5)  # HH:MM, sorts chronologically
    status: str = Field(default=SlotStatus.OPEN.value, max_length=16)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    id: int | None = Field(default=None, primary_key=True)
    slot_id: int = Field(foreign_key="time_slots.id", unique=True, index=True, ondelete="CASCADE")  # one booking per slot
    user_id: int = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False))


class DayRecord(SQLModel, table=True):
    """Permanent archive of a calendar day's occupancy."""

    __tablename__ = "day_records"
    id: int | None = Field(default=None, primary_key=True)
    day: date = Field(unique=True, index=True)
    total_slots: int = 0
    booked_slots: int = 0
    archived_at: datetime = Field(default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False))
