from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NOTIFICATION_API_")

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    default_country: str | None = None
