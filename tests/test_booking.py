"""
Tests for booking, cancellation and appointment listings.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from appointment_calendar.core.errors import Status
from appointment_calendar.models.calendar import Booking, DayRecord, SlotStatus, TimeSlot
from appointment_calendar.services import analytics_service, calendar_service

MONDAY = date(2024, 6, 3)
MONDAY_STR = "Mon 3 June 2024"


async def test_book_and_cancel_scenario(service, alice):
    await service.add_day(MONDAY)
    assert "14:00" in await service.list_available_times(MONDAY_STR)

    assert await service.book(MONDAY_STR, "14:00", alice) == Status.OK

    assert await service.list_appointments_for_user(alice.email) == ["Mon 3 June 2024 @ 14:00"]
    assert "14:00" not in await service.list_available_times(MONDAY_STR)
    assert "14:00=booked" in await service.get_time_slots(MONDAY_STR)
    assert await service.list_appointments_for_day(MONDAY_STR) == ["Alice Smith @ 14:00"]
    assert (await service.get_user_analytics(alice.email)).bookings_total == 1

    assert await service.cancel("Mon 3 June 2024 @ 14:00", alice) == Status.OK

    assert await service.list_appointments_for_user(alice.email) == []
    assert await service.list_appointments_for_day(MONDAY_STR) == []
    assert "14:00" in await service.list_available_times(MONDAY_STR)
    assert (await service.get_user_analytics(alice.email)).bookings_total == 0


async def test_booking_a_booked_slot_keeps_first_booking(service, alice, bob):
    await service.add_day(MONDAY)
    await service.book(MONDAY_STR, "10:00", alice)

    assert await service.book(MONDAY_STR, "10:00", bob) == Status.CONFLICT

    assert await service.list_appointments_for_day(MONDAY_STR) == ["Alice Smith @ 10:00"]
    assert await service.list_appointments_for_user(bob.email) == []
    assert (await service.get_user_analytics(bob.email)).bookings_total == 0


async def test_break_and_unknown_slots_are_unavailable(service, alice):
    await service.add_day(MONDAY)

    assert await service.book(MONDAY_STR, "12:00", alice) == Status.CONFLICT
    assert await service.book(MONDAY_STR, "20:00", alice) == Status.CONFLICT
    assert await service.book("Tue 4 June 2024", "10:00", alice) == Status.CONFLICT
    assert await service.list_appointments_for_user(alice.email) == []


async def test_cancel_without_separator_leaves_store_unchanged(service, alice):
    await service.add_day(MONDAY)
    await service.book(MONDAY_STR, "14:00", alice)

    assert await service.cancel("Mon 3 June 2024 14:00", alice) == Status.VALIDATION_ERROR

    assert await service.list_appointments_for_user(alice.email) == ["Mon 3 June 2024 @ 14:00"]
    assert (await service.get_user_analytics(alice.email)).bookings_total == 1


async def test_cancel_someone_elses_booking_is_not_found(service, alice, bob):
    await service.add_day(MONDAY)
    await service.book(MONDAY_STR, "14:00", alice)

    assert await service.cancel("Mon 3 June 2024 @ 14:00", bob) == Status.NOT_FOUND
    assert await service.cancel("Mon 3 June 2024 @ 15:00", alice) == Status.NOT_FOUND
    assert await service.list_appointments_for_day(MONDAY_STR) == ["Alice Smith @ 14:00"]


async def test_appointments_for_user_are_chronological(service, alice):
    await service.add_day(date(2024, 6, 4))
    await service.add_day(MONDAY)
    await service.book("Tue 4 June 2024", "09:00", alice)
    await service.book(MONDAY_STR, "16:00", alice)
    await service.book(MONDAY_STR, "09:00", alice)

    assert await service.list_appointments_for_user(alice.email) == [
        "Mon 3 June 2024 @ 09:00",
        "Mon 3 June 2024 @ 16:00",
        "Tue 4 June 2024 @ 09:00",
    ]
    assert await service.list_appointments_for_user("nobody@example.com") == []


async def test_next_appointments_uses_corrected_hour(service, alice, bob):
    await service.add_day(MONDAY)
    await service.add_day(date(2024, 6, 4))
    await service.book(MONDAY_STR, "09:00", alice)
    await service.book(MONDAY_STR, "14:00", bob)
    await service.book(MONDAY_STR, "15:00", alice)
    await service.book("Tue 4 June 2024", "10:00", bob)

    # 16:30 on the server is 14:30 locally, truncated to 14:00
    now = datetime(2024, 6, 3, 16, 30)

    assert await service.next_appointments(10, now=now) == [
        "Bob Jones @ 14:00",
        "Alice Smith @ 15:00",
        "Bob Jones @ 10:00",
    ]
    assert await service.next_appointments(1, now=now) == ["Bob Jones @ 14:00"]
    assert await service.next_appointments(0, now=now) == []


async def test_delete_day_removes_bookings_and_counters(service, alice, bob):
    await service.add_day(MONDAY)
    await service.book(MONDAY_STR, "09:00", alice)
    await service.book(MONDAY_STR, "10:00", bob)
    assert await service.users_booked_on_day(MONDAY) == [alice.email, bob.email]

    assert await service.delete_day(MONDAY) == Status.OK

    assert await service.list_appointments_for_user(alice.email) == []
    assert await service.users_booked_on_day(MONDAY) == []
    assert (await service.get_user_analytics(alice.email)).bookings_total == 0
    assert (await service.get_user_analytics(bob.email)).bookings_total == 0


async def test_booked_slot_cannot_be_bulk_edited(service, alice):
    await service.add_day(MONDAY)
    await service.book(MONDAY_STR, "09:00", alice)

    assert await service.set_slot_statuses(MONDAY_STR, "09:00=break,10:00=break") == Status.CONFLICT
    assert "10:00" in await service.list_available_times(MONDAY_STR)
    assert await service.list_appointments_for_day(MONDAY_STR) == ["Alice Smith @ 09:00"]


async def test_failed_counter_update_rolls_back_booking(service, alice, monkeypatch):
    await service.add_day(MONDAY)

    async def fail(session, user_id, delta):
        raise OperationalError("UPDATE user_analytics", {}, Exception("disk I/O error"))

    monkeypatch.setattr(analytics_service, "adjust_bookings_total", fail)

    assert await service.book(MONDAY_STR, "14:00", alice) == Status.PERSISTENCE_ERROR

    assert "14:00" in await service.list_available_times(MONDAY_STR)
    assert "14:00=open" in await service.get_time_slots(MONDAY_STR)
    assert await service.list_appointments_for_user(alice.email) == []


async def test_slot_taken_after_read_is_a_conflict(service, alice, monkeypatch):
    await service.add_day(MONDAY)
    get_slot = calendar_service._get_slot

    async def taken_after_read(session, d, slot_time):
        slot = await get_slot(session, d, slot_time)
        # another request books the slot between our read and our write
        await session.execute(
            update(TimeSlot)
            .where(TimeSlot.id == slot.id)
            .values(status=SlotStatus.BOOKED.value)
            .execution_options(synchronize_session=False)
        )
        return slot

    monkeypatch.setattr(calendar_service, "_get_slot", taken_after_read)

    assert await service.book(MONDAY_STR, "14:00", alice) == Status.CONFLICT

    assert await service.list_appointments_for_user(alice.email) == []
    assert (await service.get_user_analytics(alice.email)).bookings_total == 0


async def test_timestamps_are_stored_naive(service, session_maker, alice):
    await service.add_day(MONDAY)
    await service.book(MONDAY_STR, "09:00", alice)
    await service.store_day_record(MONDAY)

    async with session_maker() as session:
        booking = (await session.execute(select(Booking))).scalar_one()
        record = (await session.execute(select(DayRecord))).scalar_one()

    assert booking.created_at.tzinfo is None
    assert record.archived_at.tzinfo is None
    assert record.booked_slots == 1
