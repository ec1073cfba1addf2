from datetime import date

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from appointment_calendar.core.errors import ConflictError, DuplicateDay, NotFoundError, ParseError, SlotUnavailable
from appointment_calendar.models.calendar import Booking, CalendarDay, DayRecord, SlotStatus, TimeSlot
from appointment_calendar.models.user import User
from appointment_calendar.services.schedule_service import is_day_off, list_template
from appointment_calendar.utils.dates import format_day, normalize_time

SLOT_ENTRY_SEPARATOR = ","
SLOT_STATUS_SEPARATOR = "="
# Booked is reached only through booking, never by bulk edit
_SETTABLE_STATUSES = {SlotStatus.OPEN.value, SlotStatus.BREAK.value}


def parse_slot_encoding(encoded: str) -> list[tuple[str, SlotStatus]]:
    """Parse ``"09:00=open,12:00=break"`` into (time, status) pairs."""
    entries: list[tuple[str, SlotStatus]] = []
    seen: set[str] = set()
    for raw in encoded.split(SLOT_ENTRY_SEPARATOR):
        raw = raw.strip()
        if not raw:
            continue
        if SLOT_STATUS_SEPARATOR not in raw:
            raise ParseError(f"Missing '{SLOT_STATUS_SEPARATOR}' in slot entry: {raw!r}")
        time_part, _, status_part = raw.partition(SLOT_STATUS_SEPARATOR)
        slot_time = normalize_time(time_part)
        status_value = status_part.strip().lower()
        if status_value not in _SETTABLE_STATUSES:
            raise ParseError(f"Unsupported slot status {status_part!r} for {slot_time}")
        if slot_time in seen:
            raise ParseError(f"Slot {slot_time} listed twice")
        seen.add(slot_time)
        entries.append((slot_time, SlotStatus(status_value)))
    if not entries:
        raise ParseError("No slot entries given")
    return entries


def encode_slot(slot: TimeSlot) -> str:
    return f"{slot.time}{SLOT_STATUS_SEPARATOR}{slot.status}"


async def get_day(session: AsyncSession, d: date) -> CalendarDay | None:
    result = await session.execute(select(CalendarDay).where(CalendarDay.day == d))
    return result.scalar_one_or_none()


async def _require_day(session: AsyncSession, d: date) -> CalendarDay:
    day = await get_day(session, d)
    if day is None:
        raise NotFoundError(f"Day not in calendar: {format_day(d)}")
    return day


async def add_day(session: AsyncSession, d: date) -> CalendarDay:
    """Create a day and seed its slots from the weekly template.

    Template breaks become Break slots and working hours Open slots. On a
    scheduled day off every slot is seeded as Break.
    """
    if await get_day(session, d):
        raise DuplicateDay(f"Day already in calendar: {format_day(d)}")
    day = CalendarDay(day=d)
    session.add(day)
    try:
        await session.flush()
    except IntegrityError as e:
        raise DuplicateDay(f"Day already in calendar: {format_day(d)}") from e
    day_off = await is_day_off(session, d)
    for template_slot in await list_template(session):
        status = SlotStatus.BREAK if day_off or template_slot.is_break else SlotStatus.OPEN
        session.add(TimeSlot(day_id=day.id, time=template_slot.time, status=status.value))
    await session.flush()
    return day


async def delete_day(session: AsyncSession, d: date) -> list[int]:
    """Remove a day with its slots and bookings. Returns the user id of each removed booking."""
    day = await _require_day(session, d)
    slot_ids = select(TimeSlot.id).where(TimeSlot.day_id == day.id)
    result = await session.execute(select(Booking.user_id).where(Booking.slot_id.in_(slot_ids)))
    affected = [row[0] for row in result.all()]
    await session.execute(delete(Booking).where(Booking.slot_id.in_(slot_ids)))
    await session.execute(delete(TimeSlot).where(TimeSlot.day_id == day.id))
    await session.delete(day)
    await session.flush()
    return affected


async def list_days(session: AsyncSession) -> list[date]:
    result = await session.execute(select(CalendarDay.day).order_by(CalendarDay.day))
    return [row[0] for row in result.all()]


async def list_slots(session: AsyncSession, d: date) -> list[TimeSlot]:
    day = await _require_day(session, d)
    result = await session.execute(select(TimeSlot).where(TimeSlot.day_id == day.id).order_by(TimeSlot.time))
    return list(result.scalars().all())


async def list_open_times(session: AsyncSession, d: date) -> list[str]:
    return [s.time for s in await list_slots(session, d) if s.status == SlotStatus.OPEN.value]


async def set_slot_statuses(session: AsyncSession, d: date, entries: list[tuple[str, SlotStatus]]) -> None:
    """Overwrite the status of the listed slots, creating slots the day lacks.

    Rejects the whole update if any listed slot is currently booked.
    """
    day = await _require_day(session, d)
    existing = {s.time: s for s in await list_slots(session, d)}
    booked = [t for t, _ in entries if t in existing and existing[t].status == SlotStatus.BOOKED.value]
    if booked:
        raise ConflictError(f"Cannot change booked slot(s) {', '.join(booked)} on {format_day(d)}")
    for slot_time, status in entries:
        slot = existing.get(slot_time)
        if slot is None:
            slot = TimeSlot(day_id=day.id, time=slot_time)
        slot.status = status.value
        session.add(slot)
    await session.flush()


async def _get_slot(session: AsyncSession, d: date, slot_time: str) -> TimeSlot | None:
    result = await session.execute(
        select(TimeSlot)
        .join(CalendarDay, CalendarDay.id == TimeSlot.day_id)
        .where(CalendarDay.day == d, TimeSlot.time == slot_time)
    )
    return result.scalar_one_or_none()


async def book_slot(session: AsyncSession, d: date, slot_time: str, user_id: int) -> Booking:
    slot_time = normalize_time(slot_time)
    slot = await _get_slot(session, d, slot_time)
    if slot is None or slot.status != SlotStatus.OPEN.value:
        raise SlotUnavailable(f"Slot not available: {format_day(d)} @ {slot_time}")
    # Compare-and-set so that only one of two concurrent bookings wins
    result = await session.execute(
        update(TimeSlot)
        .where(TimeSlot.id == slot.id, TimeSlot.status == SlotStatus.OPEN.value)
        .values(status=SlotStatus.BOOKED.value)
    )
    if result.rowcount != 1:
        raise SlotUnavailable(f"Slot not available: {format_day(d)} @ {slot_time}")
    booking = Booking(slot_id=slot.id, user_id=user_id)
    session.add(booking)
    try:
        await session.flush()
    except IntegrityError as e:
        raise SlotUnavailable(f"Slot already booked: {format_day(d)} @ {slot_time}") from e
    await session.refresh(booking)
    return booking


async def cancel_booking(session: AsyncSession, d: date, slot_time: str, user_id: int) -> None:
    slot_time = normalize_time(slot_time)
    slot = await _get_slot(session, d, slot_time)
    booking = None
    if slot is not None:
        result = await session.execute(
            select(Booking).where(Booking.slot_id == slot.id, Booking.user_id == user_id)
        )
        booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError(f"No booking for this user at {format_day(d)} @ {slot_time}")
    await session.delete(booking)
    slot.status = SlotStatus.OPEN.value
    session.add(slot)
    await session.flush()


async def list_bookings_for_user(session: AsyncSession, user_id: int) -> list[tuple[date, str]]:
    result = await session.execute(
        select(CalendarDay.day, TimeSlot.time)
        .join(TimeSlot, TimeSlot.day_id == CalendarDay.id)
        .join(Booking, Booking.slot_id == TimeSlot.id)
        .where(Booking.user_id == user_id)
        .order_by(CalendarDay.day, TimeSlot.time)
    )
    return [(row[0], row[1]) for row in result.all()]


async def list_bookings_for_day(session: AsyncSession, d: date) -> list[tuple[int, str]]:
    """(user_id, time) for every booking on the day, chronological."""
    day = await _require_day(session, d)
    result = await session.execute(
        select(Booking.user_id, TimeSlot.time)
        .join(TimeSlot, TimeSlot.id == Booking.slot_id)
        .where(TimeSlot.day_id == day.id)
        .order_by(TimeSlot.time)
    )
    return [(row[0], row[1]) for row in result.all()]


async def list_upcoming_bookings(
    session: AsyncSession, from_day: date, from_time: str, limit: int
) -> list[tuple[date, int, str]]:
    """(day, user_id, time) for the next ``limit`` bookings at or after from_day/from_time."""
    result = await session.execute(
        select(CalendarDay.day, Booking.user_id, TimeSlot.time)
        .join(TimeSlot, TimeSlot.day_id == CalendarDay.id)
        .join(Booking, Booking.slot_id == TimeSlot.id)
        .where(
            (CalendarDay.day > from_day)
            | ((CalendarDay.day == from_day) & (TimeSlot.time >= from_time))
        )
        .order_by(CalendarDay.day, TimeSlot.time)
        .limit(limit)
    )
    return [(row[0], row[1], row[2]) for row in result.all()]


async def list_booked_emails(session: AsyncSession, d: date) -> list[str]:
    result = await session.execute(
        select(User.email)
        .join(Booking, Booking.user_id == User.id)
        .join(TimeSlot, TimeSlot.id == Booking.slot_id)
        .join(CalendarDay, CalendarDay.id == TimeSlot.day_id)
        .where(CalendarDay.day == d)
        .order_by(TimeSlot.time)
    )
    return [row[0] for row in result.all()]


async def store_day_record(session: AsyncSession, d: date) -> DayRecord:
    day = await _require_day(session, d)
    existing = await session.execute(select(DayRecord).where(DayRecord.day == d))
    if existing.scalar_one_or_none():
        raise DuplicateDay(f"Day already archived: {format_day(d)}")
    total = await session.execute(select(func.count()).select_from(TimeSlot).where(TimeSlot.day_id == day.id))
    booked = await session.execute(
        select(func.count())
        .select_from(TimeSlot)
        .where(TimeSlot.day_id == day.id, TimeSlot.status == SlotStatus.BOOKED.value)
    )
    record = DayRecord(day=d, total_slots=total.scalar_one(), booked_slots=booked.scalar_one())
    session.add(record)
    await session.flush()
    await session.refresh(record)
    return record
