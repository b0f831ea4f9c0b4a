"""Immutable payload and provider configuration models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notify_shared.enums import Channel


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    content: str  # base64
    content_type: str = "application/octet-stream"


class NotificationPayload(BaseModel):
    """A single logical notification, read-only to the delivery core.

    ``to`` is channel dependent: email address, phone number or device
    token.  Template variables are keyed by name.
    """

    model_config = ConfigDict(frozen=True)

    to: str = Field(min_length=1)
    content: str
    subject: str | None = None
    html_content: str | None = None
    template_id: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)
    attachments: tuple[Attachment, ...] = ()

    def with_recipient(self, to: str) -> "NotificationPayload":
        """Return a copy addressed to *to*; the original is untouched."""
        return self.model_copy(update={"to": to})


class ProviderConfig(BaseModel):
    """Credentials and sender identity for one (channel, vendor) pair.

    Loaded once at process start from the environment.
    """

    model_config = ConfigDict(frozen=True)

    channel: Channel
    vendor: str
    credentials: dict[str, str] = Field(default_factory=dict)
    options: dict[str, str] = Field(default_factory=dict)
    enabled: bool = True

    @property
    def provider_id(self) -> str:
        return f"{self.vendor}-{self.channel}"

    def credential(self, key: str) -> str:
        """Return a credential value, or an empty string when unset."""
        return self.credentials.get(key, "")

    def missing(self, required: tuple[str, ...]) -> list[str]:
        """Names of required credentials/options that are unset."""
        return [
            key
            for key in required
            if not (self.credentials.get(key) or self.options.get(key))
        ]
