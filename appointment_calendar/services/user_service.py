from enum import IntEnum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from appointment_calendar.core.errors import AccessDenied, DuplicateEmail, ValidationError
from appointment_calendar.core.security import hash_password, verify_password
from appointment_calendar.models.user import AccessCode, User, UserCreate


class CredentialCheck(IntEnum):
    SUCCESS = 1
    WRONG_PASSWORD = 2
    UNKNOWN_EMAIL = 3
    ADMIN_SUCCESS = 4


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_users_by_ids(session: AsyncSession, user_ids: set[int]) -> dict[int, User]:
    if not user_ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(user_ids)))
    return {u.id: u for u in result.scalars().all()}


async def create_user(session: AsyncSession, data: UserCreate) -> User:
    email = normalize_email(data.email)
    if await get_user_by_email(session, email):
        raise DuplicateEmail(f"Email already registered: {email}")
    user = User(
        email=email,
        first_name=data.first_name,
        last_name=data.last_name,
        hashed_password=hash_password(data.password),
        role=data.role.value,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email
        raise DuplicateEmail(f"Email already registered: {email}") from e
    await session.refresh(user)
    return user


async def check_credentials(session: AsyncSession, email: str, password: str) -> tuple[CredentialCheck, User | None]:
    user = await get_user_by_email(session, email)
    if not user:
        return CredentialCheck.UNKNOWN_EMAIL, None
    if not verify_password(password, user.hashed_password):
        return CredentialCheck.WRONG_PASSWORD, user
    if user.is_admin:
        return CredentialCheck.ADMIN_SUCCESS, user
    return CredentialCheck.SUCCESS, user


async def _access_code_row(session: AsyncSession) -> AccessCode | None:
    result = await session.execute(select(AccessCode).order_by(AccessCode.id).limit(1))
    return result.scalar_one_or_none()


async def get_access_code(session: AsyncSession) -> str | None:
    row = await _access_code_row(session)
    return row.code if row else None


async def set_access_code(session: AsyncSession, code: str) -> None:
    code = code.strip()
    if not code:
        raise ValidationError("Access code must not be empty")
    row = await _access_code_row(session)
    if row:
        row.code = code
    else:
        row = AccessCode(code=code)
    session.add(row)
    await session.flush()


async def ensure_access_code(session: AsyncSession, default_code: str) -> bool:
    """Store ``default_code`` when no code exists yet. Returns True if it was stored."""
    if await _access_code_row(session):
        return False
    await set_access_code(session, default_code)
    return True


async def verify_access_code(session: AsyncSession, supplied_code: str) -> None:
    stored = await get_access_code(session)
    if stored is None or supplied_code.strip().lower() != stored.lower():
        raise AccessDenied("Incorrect access code")
