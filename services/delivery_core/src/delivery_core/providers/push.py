"""Push and in-app adapters."""

from typing import Any

from notify_shared.enums import Channel, CostTier
from notify_shared.errors import PermanentProviderError, TransientProviderError
from notify_shared.models import NotificationPayload, ProviderConfig

from delivery_core.providers.base import HttpProviderAdapter, SendReceipt

# FCM per-message error codes that will not succeed on retry
_FCM_PERMANENT_ERRORS = frozenset(
    {"NotRegistered", "InvalidRegistration", "MismatchSenderId", "MessageTooBig"}
)


class FcmAdapter(HttpProviderAdapter):
    """Firebase Cloud Messaging, legacy HTTP send with a server key."""

    channel = Channel.PUSH
    vendor = "fcm"
    required = ("server_key",)
    cost_tier = CostTier.FREE

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        base = config.options.get("base_url", "https://fcm.googleapis.com").rstrip("/")
        message: dict[str, Any] = {
            "to": payload.to,
            "notification": {"title": payload.subject or "", "body": payload.content},
        }
        if payload.variables:
            message["data"] = {k: str(v) for k, v in payload.variables.items()}

        response = self._request(
            config,
            "POST",
            f"{base}/fcm/send",
            headers={"Authorization": f"key={config.credential('server_key')}"},
            json=message,
        )
        body = self._json(config, response)
        results = body.get("results") or [{}]
        result = results[0]
        if result.get("message_id"):
            return SendReceipt(message_id=str(result["message_id"]))

        error = result.get("error", "unknown error")
        error_cls = (
            PermanentProviderError
            if error in _FCM_PERMANENT_ERRORS
            else TransientProviderError
        )
        raise error_cls(f"FCM error: {error}", provider_id=config.provider_id)


class InboxAdapter(HttpProviderAdapter):
    """In-app inbox: posts the message to the application's inbox service."""

    channel = Channel.IN_APP
    vendor = "inbox"
    required = ("endpoint",)
    cost_tier = CostTier.FREE

    def _send(
        self, config: ProviderConfig, payload: NotificationPayload
    ) -> SendReceipt:
        headers = {}
        if config.credential("api_key"):
            headers["Authorization"] = f"Bearer {config.credential('api_key')}"
        response = self._request(
            config,
            "POST",
            config.options["endpoint"],
            headers=headers,
            json={
                "recipient_id": payload.to,
                "title": payload.subject,
                "message": payload.content,
                "variables": payload.variables,
            },
        )
        body = self._json(config, response)
        if not body.get("id"):
            raise TransientProviderError(
                "Inbox response had no message id", provider_id=config.provider_id
            )
        return SendReceipt(message_id=str(body["id"]))
