from sqlmodel import Field, SQLModel


class ScheduleSlot(SQLModel, table=True):
    """A time of day in the weekly template, either a working hour or a break."""

    __tablename__ = "schedule_slots"
    id: int | None = Field(default=None, primary_key=True)
    time: str = Field(unique=True, index=True, max_length=5)
    is_break: bool = False


class ScheduledDayOff(SQLModel, table=True):
    __tablename__ = "scheduled_days_off"
    id: int | None = Field(default=None, primary_key=True)
    weekday: int = Field(unique=True, index=True)  # 0 = Monday
