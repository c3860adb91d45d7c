"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.3.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # Deep links in reminder emails point at <APP_BASE_URL>/task/<id>
    APP_BASE_URL: str = "http://localhost:3000"

    # Deadline reminders
    REMINDER_TIMEZONE: str = "Asia/Singapore"
    REMINDER_TERMINAL_STATUSES: str = "completed,done"
    REMINDER_SEND_CONCURRENCY: int = 5

    # Daily digest: tasks due within this many days are listed as upcoming
    DIGEST_UPCOMING_DAYS: int = 14

    # Outbound email (Resend). Empty API key = dry run, sends are only logged.
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Task Reminder Bot <noreply@example.com>"
    EMAIL_TIMEOUT_SECONDS: float = 20.0
    EMAIL_MAX_ATTEMPTS: int = 3

    @property
    def terminal_statuses(self) -> set[str]:
        """Parse REMINDER_TERMINAL_STATUSES into a lowercase set."""
        return {
            s.strip().lower()
            for s in self.REMINDER_TERMINAL_STATUSES.split(",")
            if s.strip()
        }

    @property
    def app_base_url(self) -> str:
        return self.APP_BASE_URL.rstrip("/")

    @property
    def email_dry_run(self) -> bool:
        return not self.RESEND_API_KEY


settings = Settings()
