import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from appointment_calendar.core.config import _ENV_FILE, settings
from appointment_calendar.core.db import engine, init_db, make_session_maker
from appointment_calendar.core.logging_config import configure_logging
from appointment_calendar.services.booking_service import BookingService

logger = logging.getLogger(__name__)


async def startup(bind: AsyncEngine | None = None) -> BookingService:
    """Configure logging, create tables, seed defaults and return a ready service.

    Uses the engine built from DATABASE_URL unless ``bind`` is given.
    """
    configure_logging()
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    bind = bind or engine
    await init_db(bind)
    service = BookingService(make_session_maker(bind))
    await service.ensure_defaults()
    logger.info(
        "Work schedule defaults: %02d:00-%02d:00 every %d min, breaks %s, days off %s",
        settings.business_start_hour,
        settings.business_end_hour,
        settings.slot_duration_minutes,
        settings.default_break_times_list,
        settings.default_days_off_list,
    )
    if settings.admin_emails_list:
        logger.info("Admin emails configured: %d", len(settings.admin_emails_list))
    else:
        logger.warning("No ADMIN_EMAILS configured; every registration gets the normal role")
    return service
