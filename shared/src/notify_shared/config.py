from pydantic_settings import BaseSettings, SettingsConfigDict

from notify_shared.phone import PhoneFormat


class RedisConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = "localhost"
    port: int = 6379
    db: int = 0


class CeleryConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CELERY_")

    broker_url: str = "redis://localhost:6379/0"
    result_backend: str = "redis://localhost:6379/1"


class PhoneSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PHONE_")

    country_code: str = "54"
    mobile_marker: str = "9"
    iso_country: str = "AR"

    def to_format(self) -> PhoneFormat:
        return PhoneFormat(
            country_code=self.country_code,
            mobile_marker=self.mobile_marker,
            iso_country=self.iso_country,
        )
