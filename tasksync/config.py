"""Runtime settings, read from ``TASKSYNC_*`` environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "data/tasksync.db"
    host: str = "0.0.0.0"
    port: int = 8000
    sqlite_busy_timeout_seconds: int = 30

    # Balance granted at registration, in dollars
    initial_balance: float = 0.0
    default_ledger_limit: int = 50

    # Push gateway (legacy FCM-style HTTP endpoint); unset disables pushes
    push_gateway_url: str | None = None
    push_server_key: str | None = None
    push_timeout_seconds: float = 10.0

    rate_limit_enabled: bool = True
    rate_limit_register: str = "5/hour"
    rate_limit_create: str = "30/minute"
    rate_limit_respond: str = "60/minute"
    rate_limit_read: str = "120/minute"

    model_config = {"env_prefix": "TASKSYNC_"}


settings = Settings()
