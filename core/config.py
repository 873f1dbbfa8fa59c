from functools import lru_cache

from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Roundtable Programme Engine"
    environment: str = "development"
    log_level: str = "INFO"

    postgres_host: str = "db"
    postgres_port: int = 5432
    postgres_db: str = "roundtable"
    postgres_user: str = "roundtable"
    postgres_password: str = "roundtablepwd"
    database_url_override: str | None = None
    redis_url: str = "redis://redis:6379/0"

    secrets_key: str
    public_base_url: AnyHttpUrl = "http://localhost:8000"
    voting_token_ttl_days: int = 7

    selection_size: int = 8
    voting_quorum_ratio: float = 0.8
    enforce_voting_quorum: bool = False
    default_session_hour: int = 14
    default_session_minute: int = 0
    trainer_conflict_window_minutes: int = 90
    trainer_reminder_lead_days: int = 7
    questions_min_default: int = 3
    questions_max_default: int = 5
    coordinator_emails: str = ""

    @field_validator("voting_quorum_ratio")
    @classmethod
    def check_ratio(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("voting_quorum_ratio must be in (0, 1]")
        return value

    @property
    def coordinator_email_list(self) -> list[str]:
        return [email.strip() for email in self.coordinator_emails.split(",") if email.strip()]

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override

        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def voting_url(self, roundtable_id: str) -> str:
        return f"{str(self.public_base_url).rstrip('/')}/vote/{roundtable_id}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
