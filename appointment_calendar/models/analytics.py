from datetime import UTC, datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class UserAnalytics(SQLModel, table=True):
    __tablename__ = "user_analytics"
    user_id: int = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    login_count: int = 0
    last_login_at: datetime | None = Field(default=None, sa_column=Column(DateTime(), nullable=True))
    bookings_total: int = 0
    registered_at: datetime = Field(default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False))


class UsageCounter(SQLModel, table=True):
    """Named aggregate counter, e.g. total registrations."""

    __tablename__ = "usage_counters"
    name: str = Field(primary_key=True, max_length=64)
    value: int = 0
