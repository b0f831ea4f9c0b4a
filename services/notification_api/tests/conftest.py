from unittest.mock import MagicMock

import httpx
import pytest
from flask import Flask
from flask.testing import FlaskClient

from notify_shared.enums import Channel
from notify_shared.models import ProviderConfig

from delivery_core.bootstrap import DeliveryServices
from delivery_core.orchestrator import Orchestrator
from delivery_core.pool import DispatchPool
from delivery_core.providers import ProviderRegistry
from delivery_core.providers.twilio import TwilioWhatsAppAdapter
from delivery_core.providers.whatsapp import GreenApiAdapter
from delivery_core.tracker import DeliveryTracker

from notification_api.app import create_app
from notification_api.config import ApiConfig


@pytest.fixture()
def registry() -> ProviderRegistry:
    """Green API configured and live; Twilio WhatsApp without credentials."""
    client = httpx.Client(
        transport=httpx.MockTransport(
            lambda r: httpx.Response(200, json={"stateInstance": "authorized"})
        )
    )
    registry = ProviderRegistry()
    registry.register(
        ProviderConfig(
            channel=Channel.WHATSAPP,
            vendor="greenapi",
            credentials={"instance_id": "1101", "api_token": "tok"},
        ),
        GreenApiAdapter(client),
    )
    registry.register(
        ProviderConfig(channel=Channel.WHATSAPP, vendor="twilio"),
        TwilioWhatsAppAdapter(client),
    )
    return registry


@pytest.fixture()
def mock_services(registry: ProviderRegistry) -> MagicMock:
    services = MagicMock(spec=DeliveryServices)
    services.orchestrator = MagicMock(spec=Orchestrator)
    services.pool = MagicMock(spec=DispatchPool)
    services.tracker = MagicMock(spec=DeliveryTracker)
    services.registry = registry
    return services


@pytest.fixture()
def app(mock_services: MagicMock) -> Flask:
    app = create_app(mock_services, ApiConfig(default_country="AR"))
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    return app.test_client()
