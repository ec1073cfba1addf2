from enum import Enum

from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    NORMAL = "normal"
    ADMIN = "admin"


class UserBase(SQLModel):
    email: str = Field(unique=True, index=True)
    first_name: str
    last_name: str


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    role: str = Field(default=UserRole.NORMAL.value, max_length=16)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class UserCreate(SQLModel):
    email: str
    password: str
    first_name: str
    last_name: str
    role: UserRole = UserRole.NORMAL


class AccessCode(SQLModel, table=True):
    """Single row holding the registration access code."""

    __tablename__ = "access_codes"
    id: int | None = Field(default=None, primary_key=True)
    code: str
