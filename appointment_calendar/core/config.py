from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./appointment_calendar.db"

    # Password hashing
    bcrypt_rounds: int = 12

    # Work-schedule template defaults, applied only to an empty template
    slot_duration_minutes: int = 60
    business_start_hour: int = 9
    business_end_hour: int = 17  # exclusive, so last slot starts at 16:00
    default_break_times: str = "12:00"
    default_days_off: str = "Saturday,Sunday"

    # Registration
    default_access_code: str = "welcome"
    # Users registering with one of these emails get the admin role
    admin_emails: str = ""

    # The server clock runs ahead of the business time zone by this many hours
    server_time_correction_hours: int = 2

    # Env
    env: str = "development"

    @property
    def default_break_times_list(self) -> list[str]:
        return [t.strip() for t in self.default_break_times.split(",") if t.strip()]

    @property
    def default_days_off_list(self) -> list[str]:
        return [d.strip() for d in self.default_days_off.split(",") if d.strip()]

    @property
    def admin_emails_list(self) -> list[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]


settings = Settings()
