"""WhatsApp vendor adapters."""

import logging
import uuid

from notify_shared.enums import Channel, CostTier, DeliveryStatus
from notify_shared.errors import PermanentProviderError, TransientProviderError
from notify_shared.models import NotificationPayload, ProviderConfig

from delivery_core.providers.base import (
    HttpProviderAdapter,
    SendReceipt,
    compose_text,
    phone_digits,
)

logger = logging.getLogger(__name__)


class GreenApiAdapter(HttpProviderAdapter):
    """Green API: WhatsApp through a linked phone instance."""

    channel = Channel.WHATSAPP
    vendor = "greenapi"
    required = ("instance_id", "api_token")
    cost_tier = CostTier.FREE
    limitations = "3000 free messages/month"
    status_map = {
        "pending": DeliveryStatus.SENT,
        "sent": DeliveryStatus.SENT,
        "delivered": DeliveryStatus.DELIVERED,
        "read": DeliveryStatus.READ,
        "failed": DeliveryStatus.FAILED,
        "noaccount": DeliveryStatus.FAILED,
    }

    def _url(self, config: ProviderConfig, method: str) -> str:
        base = config.options.get("base_url", "https://api.green-api.com").rstrip("/")
        return (
            f"{base}/waInstance{config.credential('instance_id')}"
            f"/{method}/{config.credential('api_token')}"
        )

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        response = self._request(
            config,
            "POST",
            self._url(config, "sendMessage"),
            json={
                "chatId": f"{phone_digits(payload.to)}@c.us",
                "message": compose_text(payload, bold_subject=True),
            },
        )
        body = self._json(config, response)
        if body.get("idMessage"):
            return SendReceipt(message_id=str(body["idMessage"]))
        if body.get("error"):
            raise PermanentProviderError(
                f"Green API rejected message: {body['error']}",
                provider_id=config.provider_id,
            )
        raise TransientProviderError(
            "Green API response had no message id", provider_id=config.provider_id
        )

    def probe_status(self, config: ProviderConfig) -> str:
        if not self.is_configured(config):
            return "not_configured"
        try:
            response = self._request(config, "GET", self._url(config, "getStateInstance"))
            body = self._json(config, response)
        except (TransientProviderError, PermanentProviderError) as exc:
            logger.warning(
                "Green API status probe failed",
                extra={"provider": config.provider_id, "reason": exc.message},
            )
            return "error"
        return str(body.get("stateInstance", "unknown"))


class CallMeBotAdapter(HttpProviderAdapter):
    """CallMeBot: free WhatsApp API for numbers that registered with the bot."""

    channel = Channel.WHATSAPP
    vendor = "callmebot"
    required = ("api_key",)
    cost_tier = CostTier.FREE
    limitations = "Only numbers registered with CallMeBot"

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        base = config.options.get("base_url", "https://api.callmebot.com").rstrip("/")
        response = self._request(
            config,
            "GET",
            f"{base}/whatsapp.php",
            params={
                "phone": phone_digits(payload.to),
                "text": compose_text(payload, bold_subject=True),
                "apikey": config.credential("api_key"),
            },
        )
        # Failures come back as 200 with an HTML error page
        if "error" in response.text.lower():
            raise PermanentProviderError(
                f"CallMeBot rejected message: {response.text[:200]}",
                provider_id=config.provider_id,
            )
        # The vendor returns no message id
        return SendReceipt(message_id=f"callmebot-{uuid.uuid4().hex}")


class MetaWhatsAppAdapter(HttpProviderAdapter):
    """WhatsApp Business Cloud API."""

    channel = Channel.WHATSAPP
    vendor = "meta"
    required = ("access_token", "phone_number_id")
    status_map = {
        "sent": DeliveryStatus.SENT,
        "delivered": DeliveryStatus.DELIVERED,
        "read": DeliveryStatus.READ,
        "failed": DeliveryStatus.FAILED,
    }

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        base = config.options.get(
            "base_url", "https://graph.facebook.com/v18.0"
        ).rstrip("/")
        response = self._request(
            config,
            "POST",
            f"{base}/{config.options.get('phone_number_id')}/messages",
            headers={"Authorization": f"Bearer {config.credential('access_token')}"},
            json={
                "messaging_product": "whatsapp",
                "to": phone_digits(payload.to),
                "type": "text",
                "text": {"body": compose_text(payload, bold_subject=True)},
            },
        )
        body = self._json(config, response)
        messages = body.get("messages") or []
        if not messages or not messages[0].get("id"):
            raise TransientProviderError(
                "Meta response had no message id", provider_id=config.provider_id
            )
        return SendReceipt(message_id=str(messages[0]["id"]))
