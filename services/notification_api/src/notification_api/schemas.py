"""Request body models for the HTTP routes."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from notify_shared.enums import Channel, DeliveryStatus
from notify_shared.models import NotificationPayload


class WhatsAppRequest(BaseModel):
    to: str = Field(min_length=1, validation_alias=AliasChoices("to", "phone"))
    message: str = Field(min_length=1)
    title: str | None = None

    def to_payload(self) -> NotificationPayload:
        return NotificationPayload(to=self.to, content=self.message, subject=self.title)


class SendRequest(BaseModel):
    channel: Channel
    to: str = Field(min_length=1)
    content: str = ""
    subject: str | None = None
    html_content: str | None = None
    template_id: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> NotificationPayload:
        return NotificationPayload(
            to=self.to,
            content=self.content,
            subject=self.subject,
            html_content=self.html_content,
            template_id=self.template_id,
            variables=self.variables,
        )


class BatchRequest(BaseModel):
    items: list[SendRequest] = Field(min_length=1)


class StatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str = Field(min_length=1)
    message_id: str = Field(min_length=1, alias="messageId")
    previous: DeliveryStatus = DeliveryStatus.SENT


class CallbackRequest(StatusRequest):
    status: str = Field(min_length=1)


class EstimateQuery(BaseModel):
    channel: Channel
    provider: str = Field(min_length=1)
    recipients: int = Field(default=1, ge=0)
    country: str | None = None
