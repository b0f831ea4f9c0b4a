from pydantic import Field, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from notify_shared.enums import Channel
from notify_shared.models import ProviderConfig


class DeliveryConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DELIVERY_")

    log_level: str = "INFO"
    provider_timeout_seconds: float = 10.0
    max_attempts_per_provider: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=1.0, ge=0)
    backoff_max_seconds: float = Field(default=30.0, ge=0)
    pool_size: int = Field(default=4, ge=1)


class RateLimitConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")

    backend: str = "memory"
    window_seconds: PositiveInt = 60
    default_per_window: PositiveInt = 60
    per_provider: dict[str, PositiveInt] = Field(default_factory=dict)
    poll_interval_seconds: float = Field(default=0.25, gt=0)

    def limit_for_provider(self, provider_id: str) -> int:
        """Return the per-window limit for a provider identifier."""
        return self.per_provider.get(provider_id, self.default_per_window)


class ProviderOrderConfig(BaseSettings):
    """Explicit per-channel fallback order, most preferred first."""

    model_config = SettingsConfigDict(env_prefix="NOTIFY_")

    whatsapp_providers: list[str] = ["greenapi", "callmebot", "meta", "twilio"]
    sms_providers: list[str] = ["twilio"]
    email_providers: list[str] = ["resend", "sendgrid"]
    push_providers: list[str] = ["fcm"]
    in_app_providers: list[str] = ["inbox"]
    disabled_providers: list[str] = []

    def order_for(self, channel: str) -> list[str]:
        orders = {
            Channel.WHATSAPP: self.whatsapp_providers,
            Channel.SMS: self.sms_providers,
            Channel.EMAIL: self.email_providers,
            Channel.PUSH: self.push_providers,
            Channel.IN_APP: self.in_app_providers,
        }
        order = orders.get(channel)
        if order is None:
            raise ValueError(f"Unknown channel: {channel!r}")
        return order


class GreenApiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GREEN_API_")

    instance_id: str = ""
    token: str = ""
    base_url: str = "https://api.green-api.com"


class CallMeBotSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CALLMEBOT_")

    api_key: str = ""
    base_url: str = "https://api.callmebot.com"


class MetaWhatsAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="META_WHATSAPP_")

    access_token: str = ""
    phone_number_id: str = ""
    base_url: str = "https://graph.facebook.com/v18.0"


class TwilioSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TWILIO_")

    account_sid: str = ""
    auth_token: str = ""
    sms_from: str = ""
    whatsapp_from: str = "whatsapp:+14155238886"
    base_url: str = "https://api.twilio.com/2010-04-01"


class SendGridSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SENDGRID_")

    api_key: str = ""
    from_email: str = ""
    from_name: str = ""
    base_url: str = "https://api.sendgrid.com/v3"


class ResendSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RESEND_")

    api_key: str = ""
    from_email: str = ""
    from_name: str = ""
    base_url: str = "https://api.resend.com"


class FcmSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FCM_")

    server_key: str = ""
    base_url: str = "https://fcm.googleapis.com"


class InboxSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INBOX_")

    endpoint: str = ""
    api_key: str = ""


def load_provider_configs(disabled: list[str] | None = None) -> list[ProviderConfig]:
    """Build one ProviderConfig per (channel, vendor) from the environment.

    Providers listed in *disabled* (by provider id or vendor name) are
    loaded but marked unavailable.
    """
    disabled_set = set(disabled or ())
    green = GreenApiSettings()
    callmebot = CallMeBotSettings()
    meta = MetaWhatsAppSettings()
    twilio = TwilioSettings()
    sendgrid = SendGridSettings()
    resend = ResendSettings()
    fcm = FcmSettings()
    inbox = InboxSettings()

    twilio_credentials = {
        "account_sid": twilio.account_sid,
        "auth_token": twilio.auth_token,
    }
    raw = [
        (
            Channel.WHATSAPP,
            "greenapi",
            {"instance_id": green.instance_id, "api_token": green.token},
            {"base_url": green.base_url},
        ),
        (
            Channel.WHATSAPP,
            "callmebot",
            {"api_key": callmebot.api_key},
            {"base_url": callmebot.base_url},
        ),
        (
            Channel.WHATSAPP,
            "meta",
            {"access_token": meta.access_token},
            {"phone_number_id": meta.phone_number_id, "base_url": meta.base_url},
        ),
        (
            Channel.WHATSAPP,
            "twilio",
            twilio_credentials,
            {"from": twilio.whatsapp_from, "base_url": twilio.base_url},
        ),
        (
            Channel.SMS,
            "twilio",
            twilio_credentials,
            {"from": twilio.sms_from, "base_url": twilio.base_url},
        ),
        (
            Channel.EMAIL,
            "sendgrid",
            {"api_key": sendgrid.api_key},
            {
                "from_email": sendgrid.from_email,
                "from_name": sendgrid.from_name,
                "base_url": sendgrid.base_url,
            },
        ),
        (
            Channel.EMAIL,
            "resend",
            {"api_key": resend.api_key},
            {
                "from_email": resend.from_email,
                "from_name": resend.from_name,
                "base_url": resend.base_url,
            },
        ),
        (
            Channel.PUSH,
            "fcm",
            {"server_key": fcm.server_key},
            {"base_url": fcm.base_url},
        ),
        (
            Channel.IN_APP,
            "inbox",
            {"api_key": inbox.api_key},
            {"endpoint": inbox.endpoint},
        ),
    ]

    configs = []
    for channel, vendor, credentials, options in raw:
        provider_id = f"{vendor}-{channel}"
        configs.append(
            ProviderConfig(
                channel=channel,
                vendor=vendor,
                credentials={k: v for k, v in credentials.items() if v},
                options={k: v for k, v in options.items() if v},
                enabled=vendor not in disabled_set and provider_id not in disabled_set,
            )
        )
    return configs
