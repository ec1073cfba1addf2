"""Caller-facing booking workflow.

``BookingService`` is the boundary between the web tier and the stores. Every
public method runs in its own session and transaction: stores raise
``CalendarError`` subclasses, which are logged here, rolled back, and turned
into a status code or an empty result. Booking and cancellation commit the slot
change and the user's booking counter together.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from enum import IntEnum
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from appointment_calendar.core.config import settings
from appointment_calendar.core.errors import (
    AccessDenied,
    CalendarError,
    DuplicateEmail,
    NotFoundError,
    PersistenceError,
    Status,
)
from appointment_calendar.models.analytics import UserAnalytics
from appointment_calendar.models.user import User, UserCreate, UserRole
from appointment_calendar.services import analytics_service, calendar_service, schedule_service, user_service
from appointment_calendar.services.user_service import CredentialCheck
from appointment_calendar.utils.dates import format_day, format_label, hour_floor, parse_day, parse_label

logger = logging.getLogger(__name__)

T = TypeVar("T")
Operation = Callable[[AsyncSession], Awaitable[Any]]


class RegistrationStatus(IntEnum):
    SUCCESS = 1
    DUPLICATE_EMAIL = 2
    PERSISTENCE_ERROR = 3
    ACCESS_DENIED = 4


class LoginStatus(IntEnum):
    FAILED = 0
    SUCCESS = 1
    WRONG_PASSWORD = 2
    UNKNOWN_EMAIL = 3
    ADMIN_SUCCESS = 4


_CREDENTIAL_TO_LOGIN = {
    CredentialCheck.SUCCESS: LoginStatus.SUCCESS,
    CredentialCheck.WRONG_PASSWORD: LoginStatus.WRONG_PASSWORD,
    CredentialCheck.UNKNOWN_EMAIL: LoginStatus.UNKNOWN_EMAIL,
    CredentialCheck.ADMIN_SUCCESS: LoginStatus.ADMIN_SUCCESS,
}


def _log_failure(action: str, exc: CalendarError) -> None:
    if isinstance(exc, PersistenceError):
        logger.error("%s failed: %s", action, exc, exc_info=exc.__cause__ or exc)
    else:
        logger.warning("%s rejected: %s", action, exc)


class BookingService:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession] | None = None) -> None:
        if session_maker is None:
            from appointment_calendar.core.db import async_session_maker

            session_maker = async_session_maker
        self._session_maker = session_maker

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """One session per operation; commit on success, rollback on any error.

        SQLAlchemy errors surface as ``PersistenceError``.
        """
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError(f"{type(e).__name__}: {e}") from e
            except Exception:
                await session.rollback()
                raise

    async def _run(self, action: str, operation: Operation) -> Status:
        try:
            async with self._transaction() as session:
                await operation(session)
        except CalendarError as e:
            _log_failure(action, e)
            return e.status
        return Status.OK

    async def _query(self, action: str, operation: Callable[[AsyncSession], Awaitable[T]], default: T) -> T:
        try:
            async with self._transaction() as session:
                return await operation(session)
        except CalendarError as e:
            _log_failure(action, e)
            return default

    # Setup

    async def ensure_defaults(self) -> bool:
        """Seed the work-schedule template, access code and counters where none exist."""

        async def op(session: AsyncSession) -> bool:
            working = schedule_service.template_times(
                settings.business_start_hour, settings.business_end_hour, settings.slot_duration_minutes
            )
            seeded_template = await schedule_service.ensure_template(
                session, working, settings.default_break_times_list, settings.default_days_off_list
            )
            seeded_code = await user_service.ensure_access_code(session, settings.default_access_code)
            seeded_counter = await analytics_service.ensure_counter(session, analytics_service.REGISTRATIONS)
            return seeded_template or seeded_code or seeded_counter

        seeded = await self._query("Seed defaults", op, False)
        if seeded:
            logger.info("Seeded default work schedule and access code")
        return seeded

    # Users

    async def register(
        self, first_name: str, last_name: str, email: str, password: str, supplied_code: str
    ) -> RegistrationStatus:
        role = UserRole.ADMIN if user_service.normalize_email(email) in settings.admin_emails_list else UserRole.NORMAL
        data = UserCreate(email=email, password=password, first_name=first_name, last_name=last_name, role=role)
        try:
            async with self._transaction() as session:
                await user_service.verify_access_code(session, supplied_code)
                user = await user_service.create_user(session, data)
                await analytics_service.record_registration(session, user.id)
        except AccessDenied as e:
            _log_failure("Registration", e)
            return RegistrationStatus.ACCESS_DENIED
        except DuplicateEmail as e:
            _log_failure("Registration", e)
            return RegistrationStatus.DUPLICATE_EMAIL
        except CalendarError as e:
            _log_failure("Registration", e)
            return RegistrationStatus.PERSISTENCE_ERROR
        logger.info("User registered: %s (%s)", user.email, user.role)
        return RegistrationStatus.SUCCESS

    async def authenticate(self, email: str, password: str) -> LoginStatus:
        try:
            async with self._transaction() as session:
                check, user = await user_service.check_credentials(session, email, password)
        except CalendarError as e:
            _log_failure("Credential check", e)
            return LoginStatus.FAILED
        if check in (CredentialCheck.SUCCESS, CredentialCheck.ADMIN_SUCCESS):
            await self._record_login(user)
        return _CREDENTIAL_TO_LOGIN[check]

    async def _record_login(self, user: User) -> None:
        """Login analytics are best effort; a failure never fails the login."""
        try:
            async with self._transaction() as session:
                await analytics_service.record_login(session, user.id)
        except CalendarError as e:
            _log_failure(f"Login analytics for {user.email}", e)

    async def lookup_user(self, email: str) -> User | None:
        return await self._query("User lookup", lambda s: user_service.get_user_by_email(s, email), None)

    async def get_user_analytics(self, email: str) -> UserAnalytics | None:
        async def op(session: AsyncSession) -> UserAnalytics | None:
            user = await user_service.get_user_by_email(session, email)
            if user is None:
                return None
            return await analytics_service.get_user_analytics(session, user.id)

        return await self._query("Analytics lookup", op, None)

    async def registration_count(self) -> int:
        return await self._query(
            "Registration count", lambda s: analytics_service.get_counter(s, analytics_service.REGISTRATIONS), 0
        )

    # Calendar days

    async def add_day(self, d: date) -> Status:
        status = await self._run("Add day", lambda s: calendar_service.add_day(s, d))
        if status == Status.OK:
            logger.info("Day added: %s", format_day(d))
        return status

    async def delete_day(self, d: date) -> Status:
        async def op(session: AsyncSession) -> None:
            affected = await calendar_service.delete_day(session, d)
            for user_id in affected:
                await analytics_service.adjust_bookings_total(session, user_id, -1)

        status = await self._run("Delete day", op)
        if status == Status.OK:
            logger.info("Day deleted: %s", format_day(d))
        return status

    async def list_available_dates(self) -> list[date]:
        return await self._query("List days", calendar_service.list_days, [])

    async def list_available_days(self) -> list[str]:
        return [format_day(d) for d in await self.list_available_dates()]

    async def list_available_times(self, day: str) -> list[str]:
        return await self._query(
            "List available times", lambda s: calendar_service.list_open_times(s, parse_day(day)), []
        )

    async def get_time_slots(self, day: str) -> list[str]:
        async def op(session: AsyncSession) -> list[str]:
            return [calendar_service.encode_slot(s) for s in await calendar_service.list_slots(session, parse_day(day))]

        return await self._query("List time slots", op, [])

    async def set_slot_statuses(self, day: str, encoded: str) -> Status:
        async def op(session: AsyncSession) -> None:
            d = parse_day(day)
            entries = calendar_service.parse_slot_encoding(encoded)
            await calendar_service.set_slot_statuses(session, d, entries)

        status = await self._run("Set time slots", op)
        if status == Status.OK:
            logger.info("Time slots edited for %s", day)
        return status

    async def store_day_record(self, d: date) -> bool:
        status = await self._run("Archive day", lambda s: calendar_service.store_day_record(s, d))
        return status == Status.OK

    # Bookings

    async def book(self, day: str, time: str, user: User) -> Status:
        async def op(session: AsyncSession) -> None:
            await calendar_service.book_slot(session, parse_day(day), time, user.id)
            await analytics_service.adjust_bookings_total(session, user.id, 1)

        status = await self._run("Booking", op)
        if status == Status.OK:
            logger.info("Appointment booked: %s = %s @ %s", user.email, day, time)
        return status

    async def cancel(self, label: str, user: User) -> Status:
        async def op(session: AsyncSession) -> None:
            d, slot_time = parse_label(label)
            await calendar_service.cancel_booking(session, d, slot_time, user.id)
            await analytics_service.adjust_bookings_total(session, user.id, -1)

        status = await self._run("Cancellation", op)
        if status == Status.OK:
            logger.info("Appointment cancelled: %s = %s", user.email, label)
        return status

    async def list_appointments_for_user(self, email: str) -> list[str]:
        async def op(session: AsyncSession) -> list[str]:
            user = await user_service.get_user_by_email(session, email)
            if user is None:
                raise NotFoundError(f"Unknown user: {email}")
            return [format_label(d, t) for d, t in await calendar_service.list_bookings_for_user(session, user.id)]

        return await self._query("List user appointments", op, [])

    async def list_appointments_for_day(self, day: str) -> list[str]:
        async def op(session: AsyncSession) -> list[str]:
            bookings = await calendar_service.list_bookings_for_day(session, parse_day(day))
            return await self._format_bookings(session, bookings)

        return await self._query("List day appointments", op, [])

    async def next_appointments(self, n: int, now: datetime | None = None) -> list[str]:
        """The next ``n`` bookings from the corrected current hour onwards."""
        reference = hour_floor((now or datetime.now()) - timedelta(hours=settings.server_time_correction_hours))

        async def op(session: AsyncSession) -> list[str]:
            upcoming = await calendar_service.list_upcoming_bookings(
                session, reference.date(), reference.strftime("%H:%M"), n
            )
            return await self._format_bookings(session, [(user_id, t) for _, user_id, t in upcoming])

        if n <= 0:
            return []
        return await self._query("List next appointments", op, [])

    async def users_booked_on_day(self, d: date) -> list[str]:
        return await self._query("List booked users", lambda s: calendar_service.list_booked_emails(s, d), [])

    @staticmethod
    async def _format_bookings(session: AsyncSession, bookings: list[tuple[int, str]]) -> list[str]:
        """Render (user_id, time) pairs as ``"First Last @ HH:MM"``."""
        users = await user_service.get_users_by_ids(session, {user_id for user_id, _ in bookings})
        formatted: list[str] = []
        for user_id, slot_time in bookings:
            user = users.get(user_id)
            if user is None:
                logger.warning("Booking at %s references missing user id %s, skipped", slot_time, user_id)
                continue
            formatted.append(f"{user.display_name} @ {slot_time}")
        return formatted

    # Work schedule

    async def get_working_hours(self) -> list[str]:
        return await self._query("List working hours", schedule_service.get_working_hours, [])

    async def get_daily_breaks(self) -> list[str]:
        return await self._query("List daily breaks", schedule_service.get_daily_breaks, [])

    async def get_days_off_schedule(self) -> list[str]:
        return await self._query("List days off", schedule_service.get_days_off_schedule, [])

    async def schedule_break(self, time: str) -> Status:
        return await self._run("Schedule break", lambda s: schedule_service.schedule_break(s, time))

    async def schedule_non_break(self, time: str) -> Status:
        return await self._run("Schedule working hour", lambda s: schedule_service.schedule_non_break(s, time))

    async def schedule_day_off(self, weekday: str) -> Status:
        status = await self._run("Schedule day off", lambda s: schedule_service.schedule_day_off(s, weekday))
        if status == Status.OK:
            logger.info("Work days edited: %s off", weekday)
        return status

    async def schedule_work_day(self, weekday: str) -> Status:
        status = await self._run("Schedule work day", lambda s: schedule_service.schedule_work_day(s, weekday))
        if status == Status.OK:
            logger.info("Work days edited: %s on", weekday)
        return status

    # Access code

    async def get_access_code(self) -> str | None:
        return await self._query("Read access code", user_service.get_access_code, None)

    async def set_access_code(self, code: str) -> Status:
        status = await self._run("Set access code", lambda s: user_service.set_access_code(s, code))
        if status == Status.OK:
            logger.info("Access code changed")
        return status
