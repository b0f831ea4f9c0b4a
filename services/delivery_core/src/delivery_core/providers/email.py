"""Email vendor adapters."""

from typing import Any

from notify_shared.enums import Channel
from notify_shared.errors import TransientProviderError
from notify_shared.models import NotificationPayload, ProviderConfig

from delivery_core.providers.base import HttpProviderAdapter, SendReceipt


def _sender(config: ProviderConfig) -> tuple[str, str]:
    return config.options["from_email"], config.options.get("from_name", "")


class ResendAdapter(HttpProviderAdapter):
    channel = Channel.EMAIL
    vendor = "resend"
    required = ("api_key", "from_email")

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        email, name = _sender(config)
        body: dict[str, Any] = {
            "from": f"{name} <{email}>" if name else email,
            "to": [payload.to],
            "subject": payload.subject or "",
            "text": payload.content,
        }
        if payload.html_content:
            body["html"] = payload.html_content
        if payload.attachments:
            body["attachments"] = [
                {"filename": a.filename, "content": a.content}
                for a in payload.attachments
            ]

        base = config.options.get("base_url", "https://api.resend.com").rstrip("/")
        response = self._request(
            config,
            "POST",
            f"{base}/emails",
            headers={"Authorization": f"Bearer {config.credential('api_key')}"},
            json=body,
        )
        data = self._json(config, response)
        if not data.get("id"):
            raise TransientProviderError(
                "Resend response had no message id", provider_id=config.provider_id
            )
        return SendReceipt(message_id=str(data["id"]))


class SendGridAdapter(HttpProviderAdapter):
    """SendGrid v3 mail send.  Supports native dynamic templates."""

    channel = Channel.EMAIL
    vendor = "sendgrid"
    required = ("api_key", "from_email")
    supports_templates = True

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        email, name = _sender(config)
        personalization: dict[str, Any] = {"to": [{"email": payload.to}]}
        body: dict[str, Any] = {
            "personalizations": [personalization],
            "from": {"email": email, **({"name": name} if name else {})},
        }
        if payload.template_id:
            body["template_id"] = payload.template_id
            personalization["dynamic_template_data"] = payload.variables
        else:
            body["subject"] = payload.subject or ""
            content = [{"type": "text/plain", "value": payload.content}]
            if payload.html_content:
                content.append({"type": "text/html", "value": payload.html_content})
            body["content"] = content
        if payload.attachments:
            body["attachments"] = [
                {"content": a.content, "filename": a.filename, "type": a.content_type}
                for a in payload.attachments
            ]

        base = config.options.get("base_url", "https://api.sendgrid.com/v3").rstrip("/")
        response = self._request(
            config,
            "POST",
            f"{base}/mail/send",
            headers={"Authorization": f"Bearer {config.credential('api_key')}"},
            json=body,
        )
        message_id = response.headers.get("x-message-id")
        if not message_id:
            raise TransientProviderError(
                "SendGrid response had no message id", provider_id=config.provider_id
            )
        return SendReceipt(message_id=message_id)
