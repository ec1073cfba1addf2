from datetime import UTC, datetime

from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession

from appointment_calendar.models.analytics import UsageCounter, UserAnalytics

REGISTRATIONS = "registrations"

# Counters change through a single UPDATE ... SET col = col + delta so that
# concurrent requests never overwrite each other's increments.


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


async def get_user_analytics(session: AsyncSession, user_id: int) -> UserAnalytics | None:
    return await session.get(UserAnalytics, user_id)


async def get_counter(session: AsyncSession, name: str) -> int:
    row = await session.get(UsageCounter, name)
    return row.value if row else 0


async def ensure_counter(session: AsyncSession, name: str) -> bool:
    """Create the counter row at zero if missing. Returns True if it was created."""
    if await session.get(UsageCounter, name) is not None:
        return False
    session.add(UsageCounter(name=name, value=0))
    await session.flush()
    return True


async def _increment(session: AsyncSession, statement) -> int:
    result = await session.execute(statement.execution_options(synchronize_session=False))
    return result.rowcount


async def _adjust_counter(session: AsyncSession, name: str, delta: int) -> None:
    statement = update(UsageCounter).where(UsageCounter.name == name).values(value=UsageCounter.value + delta)
    if await _increment(session, statement) == 0:
        await ensure_counter(session, name)
        await _increment(session, statement)


async def _update_user_analytics(session: AsyncSession, user_id: int, **values) -> None:
    statement = update(UserAnalytics).where(UserAnalytics.user_id == user_id).values(**values)
    if await _increment(session, statement) == 0:
        # Users registered before analytics existed get their row on first use
        session.add(UserAnalytics(user_id=user_id))
        await session.flush()
        await _increment(session, statement)


async def record_registration(session: AsyncSession, user_id: int) -> None:
    session.add(UserAnalytics(user_id=user_id))
    await session.flush()
    await _adjust_counter(session, REGISTRATIONS, 1)


async def record_login(session: AsyncSession, user_id: int, at: datetime | None = None) -> None:
    await _update_user_analytics(
        session,
        user_id,
        login_count=UserAnalytics.login_count + 1,
        last_login_at=at or _utc_naive_now(),
    )


async def adjust_bookings_total(session: AsyncSession, user_id: int, delta: int) -> None:
    # Never go below zero, e.g. for bookings made before analytics existed
    new_total = UserAnalytics.bookings_total + delta
    await _update_user_analytics(session, user_id, bookings_total=case((new_total < 0, 0), else_=new_total))
