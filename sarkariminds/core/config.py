from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SARKARIMINDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str
    redis_url: str
    app_env: str = "development"
    db_pool_pre_ping: bool = True
    account_deletion_grace_days: int = 30
    queue_name: str = "sarkariminds:jobs"


settings = Settings()
