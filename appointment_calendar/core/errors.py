"""Domain errors raised by the stores.

Each error carries a coarse ``status`` so the service boundary can turn it into
a result code without inspecting the message.
"""

from enum import IntEnum


class Status(IntEnum):
    FAILED = 0
    OK = 1
    VALIDATION_ERROR = 2
    CONFLICT = 3
    NOT_FOUND = 4
    PERSISTENCE_ERROR = 5


class CalendarError(Exception):
    status: Status = Status.FAILED


class ValidationError(CalendarError):
    status = Status.VALIDATION_ERROR


class AccessDenied(ValidationError):
    pass


class ParseError(ValidationError):
    pass


class ConflictError(CalendarError):
    status = Status.CONFLICT


class DuplicateEmail(ConflictError):
    pass


class DuplicateDay(ConflictError):
    pass


class SlotUnavailable(ConflictError):
    pass


class NotFoundError(CalendarError):
    status = Status.NOT_FOUND


class PersistenceError(CalendarError):
    status = Status.PERSISTENCE_ERROR
