from appointment_calendar.models.user import AccessCode, User, UserCreate, UserRole
from appointment_calendar.models.schedule import ScheduledDayOff, ScheduleSlot
from appointment_calendar.models.calendar import Booking, CalendarDay, DayRecord, SlotStatus, TimeSlot
from appointment_calendar.models.analytics import UsageCounter, UserAnalytics

__all__ = [
    "AccessCode",
    "User",
    "UserCreate",
    "UserRole",
    "ScheduleSlot",
    "ScheduledDayOff",
    "Booking",
    "CalendarDay",
    "DayRecord",
    "SlotStatus",
    "TimeSlot",
    "UsageCounter",
    "UserAnalytics",
]
