from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from appointment_calendar.models.schedule import ScheduledDayOff, ScheduleSlot
from appointment_calendar.utils.dates import WEEKDAY_NAMES, normalize_time, parse_weekday


def template_times(start_hour: int, end_hour: int, slot_duration_minutes: int) -> list[str]:
    """Generate HH:MM slot starts from start_hour up to (not including) end_hour."""
    times: list[str] = []
    current = datetime(2000, 1, 1, start_hour, 0, 0)
    end = datetime(2000, 1, 1, 0, 0, 0) + timedelta(hours=end_hour)
    delta = timedelta(minutes=slot_duration_minutes)
    while current < end:
        times.append(current.strftime("%H:%M"))
        current += delta
    return times


async def list_template(session: AsyncSession) -> list[ScheduleSlot]:
    result = await session.execute(select(ScheduleSlot).order_by(ScheduleSlot.time))
    return list(result.scalars().all())


async def get_working_hours(session: AsyncSession) -> list[str]:
    return [s.time for s in await list_template(session) if not s.is_break]


async def get_daily_breaks(session: AsyncSession) -> list[str]:
    return [s.time for s in await list_template(session) if s.is_break]


async def _set_break(session: AsyncSession, time_value: str, is_break: bool) -> ScheduleSlot:
    time_value = normalize_time(time_value)
    result = await session.execute(select(ScheduleSlot).where(ScheduleSlot.time == time_value))
    slot = result.scalar_one_or_none()
    if slot is None:
        slot = ScheduleSlot(time=time_value)
    slot.is_break = is_break
    session.add(slot)
    await session.flush()
    return slot


async def schedule_break(session: AsyncSession, time_value: str) -> ScheduleSlot:
    return await _set_break(session, time_value, True)


async def schedule_non_break(session: AsyncSession, time_value: str) -> ScheduleSlot:
    return await _set_break(session, time_value, False)


async def get_days_off(session: AsyncSession) -> list[int]:
    result = await session.execute(select(ScheduledDayOff.weekday).order_by(ScheduledDayOff.weekday))
    return [row[0] for row in result.all()]


async def get_days_off_schedule(session: AsyncSession) -> list[str]:
    return [WEEKDAY_NAMES[w] for w in await get_days_off(session)]


async def is_day_off(session: AsyncSession, d: date) -> bool:
    result = await session.execute(select(ScheduledDayOff).where(ScheduledDayOff.weekday == d.weekday()))
    return result.scalar_one_or_none() is not None


async def schedule_day_off(session: AsyncSession, weekday: str) -> None:
    index = parse_weekday(weekday)
    result = await session.execute(select(ScheduledDayOff).where(ScheduledDayOff.weekday == index))
    if result.scalar_one_or_none() is None:
        session.add(ScheduledDayOff(weekday=index))
        await session.flush()


async def schedule_work_day(session: AsyncSession, weekday: str) -> None:
    index = parse_weekday(weekday)
    result = await session.execute(select(ScheduledDayOff).where(ScheduledDayOff.weekday == index))
    row = result.scalar_one_or_none()
    if row is not None:
        await session.delete(row)
        await session.flush()


async def ensure_template(
    session: AsyncSession,
    working_times: list[str],
    break_times: list[str],
    days_off: list[str],
) -> bool:
    """Seed the weekly template if it is empty. Returns True if anything was seeded."""
    if await list_template(session) or await get_days_off(session):
        return False
    breaks = {normalize_time(t) for t in break_times}
    working = {normalize_time(t) for t in working_times}
    for t in sorted(working | breaks):
        session.add(ScheduleSlot(time=t, is_break=t in breaks))
    for name in days_off:
        session.add(ScheduledDayOff(weekday=parse_weekday(name)))
    await session.flush()
    return True
