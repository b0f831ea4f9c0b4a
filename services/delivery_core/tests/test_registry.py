"""Tests for the provider registry and selector."""

import httpx
import pytest

from notify_shared.enums import Channel
from notify_shared.models import ProviderConfig

from delivery_core.config import ProviderOrderConfig
from delivery_core.providers import ProviderRegistry, create_default_registry
from delivery_core.providers.base import SendReceipt
from delivery_core.providers.twilio import TwilioSmsAdapter, TwilioWhatsAppAdapter
from delivery_core.providers.whatsapp import GreenApiAdapter


class TestSelection:
    def test_next_follows_registration_order(self, registry, add_provider) -> None:
        add_provider("p1", [SendReceipt("1")])
        add_provider("p2", [SendReceipt("2")])

        assert registry.next(Channel.WHATSAPP).provider_id == "p1-whatsapp"
        assert registry.next(Channel.WHATSAPP, {"p1-whatsapp"}).provider_id == "p2-whatsapp"

    def test_next_returns_none_when_exhausted(self, registry, add_provider) -> None:
        add_provider("p1", [SendReceipt("1")])

        assert registry.next(Channel.WHATSAPP, {"p1-whatsapp"}) is None
        assert registry.next(Channel.SMS) is None

    def test_unavailable_provider_is_skipped(self, registry, add_provider) -> None:
        add_provider("p1", [SendReceipt("1")], enabled=False)
        add_provider("p2", [SendReceipt("2")])

        assert registry.next(Channel.WHATSAPP).provider_id == "p2-whatsapp"

    def test_channels_are_independent(self, registry, add_provider) -> None:
        add_provider("p1", [SendReceipt("1")], channel=Channel.SMS)

        assert registry.next(Channel.WHATSAPP) is None
        assert registry.next(Channel.SMS).provider_id == "p1-sms"


class TestRegistration:
    def test_channel_mismatch_rejected(self, registry) -> None:
        config = ProviderConfig(channel=Channel.EMAIL, vendor="twilio")

        with pytest.raises(ValueError, match="cannot serve"):
            registry.register(config, TwilioSmsAdapter(httpx.Client()))

    def test_duplicate_rejected(self, registry, add_provider) -> None:
        add_provider("p1", [SendReceipt("1")])

        with pytest.raises(ValueError, match="already registered"):
            add_provider("p1", [SendReceipt("1")])

    def test_get_unknown_raises_key_error(self, registry) -> None:
        with pytest.raises(KeyError):
            registry.get("nope")


class TestSnapshot:
    def test_rows_describe_each_provider(self) -> None:
        registry = ProviderRegistry()
        registry.register(
            ProviderConfig(channel=Channel.WHATSAPP, vendor="greenapi"),
            GreenApiAdapter(httpx.Client()),
        )
        registry.register(
            ProviderConfig(
                channel=Channel.WHATSAPP,
                vendor="twilio",
                credentials={"account_sid": "AC1", "auth_token": "t"},
                options={"from": "whatsapp:+14155238886"},
                enabled=False,
            ),
            TwilioWhatsAppAdapter(httpx.Client()),
        )

        rows = registry.snapshot(Channel.WHATSAPP)

        assert [r["provider"] for r in rows] == ["greenapi-whatsapp", "twilio-whatsapp"]
        assert rows[0]["configured"] is False
        assert rows[0]["status"] == "not_configured"
        assert rows[0]["limitations"] == "3000 free messages/month"
        assert rows[1]["configured"] is True
        assert rows[1]["available"] is False
        assert rows[1]["status"] == "disabled"
        assert rows[1]["unit_cost"] == 0.005


class TestCreateDefaultRegistry:
    def test_builds_chains_in_configured_order(self) -> None:
        order = ProviderOrderConfig(
            whatsapp_providers=["meta", "greenapi"],
            sms_providers=["twilio"],
            email_providers=[],
            push_providers=[],
            in_app_providers=[],
        )
        configs = [
            ProviderConfig(
                channel=Channel.WHATSAPP,
                vendor="greenapi",
                credentials={"instance_id": "1", "api_token": "t"},
            )
        ]

        registry = create_default_registry(configs, order, http_client=httpx.Client())

        whatsapp = [e.provider_id for e in registry.candidates(Channel.WHATSAPP)]
        assert whatsapp == ["meta-whatsapp", "greenapi-whatsapp"]
        # meta has no credentials, so greenapi is selected first
        assert registry.next(Channel.WHATSAPP).provider_id == "greenapi-whatsapp"
        assert registry.next(Channel.SMS) is None

    def test_unknown_vendor_rejected(self) -> None:
        order = ProviderOrderConfig(whatsapp_providers=["carrier-pigeon"])

        with pytest.raises(ValueError, match="No adapter"):
            create_default_registry([], order, http_client=httpx.Client())
