from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Nudge Reminder Worker"
    environment: str = "dev"

    database_url: str = "sqlite:///./nudge.db"

    # Base URL for backend API (used by integrations)
    api_base_url: str = "http://localhost:8000"

    # Worker cadence and reminder behaviour
    tick_interval_seconds: int = 30
    default_snooze_minutes: int = 5
    reprompt_after_seconds: int = 300  # 0 disables re-prompting

    # Where the webhook relay pushes notifications
    push_webhook_url: str | None = None
    relay_poll_interval_seconds: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
