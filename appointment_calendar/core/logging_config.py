import logging

from appointment_calendar.core.config import settings

_JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'


def configure_logging() -> None:
    """Debug logging outside production, one JSON-shaped line per record in production."""
    if settings.env != "production":
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO, format=_JSON_FORMAT)
    # Statement echo is already controlled by the engine's echo flag
    logging.getLogger("aiosqlite").setLevel(logging.INFO)
