"""End-to-end delivery through the HTTP API against fake vendor servers."""

import pytest
from flask.testing import FlaskClient

from delivery_core.bootstrap import DeliveryServices

from notification_api.app import create_app
from notification_api.config import ApiConfig

from tests.integration.helpers import VendorState

CANONICAL = "+5491112345678"


@pytest.fixture()
def client(services: DeliveryServices) -> FlaskClient:
    app = create_app(services, ApiConfig())
    app.config["TESTING"] = True
    return app.test_client()


class TestWhatsAppFlow:
    def test_first_provider_delivers(self, client: FlaskClient, vendors: VendorState) -> None:
        resp = client.post(
            "/notifications/whatsapp",
            json={"to": "011 1234-5678", "message": "Tu pedido salió", "title": "Envío"},
        )

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["provider"] == "greenapi-whatsapp"
        assert data["fallbackUsed"] is False
        assert vendors.vendors_called() == ["greenapi"]
        _, body = vendors.calls[0]
        assert body == {
            "chatId": "5491112345678@c.us",
            "message": "*Envío*\n\nTu pedido salió",
        }

    def test_falls_back_after_transient_failures(
        self, client: FlaskClient, vendors: VendorState
    ) -> None:
        vendors.green_status = 503

        resp = client.post(
            "/notifications/whatsapp", json={"to": CANONICAL, "message": "Hola"}
        )

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["provider"] == "twilio-whatsapp"
        assert data["fallbackUsed"] is True
        assert data["cost"] == 0.005
        assert vendors.vendors_called() == ["greenapi", "greenapi", "twilio"]
        _, form = vendors.calls[-1]
        assert form["To"] == f"whatsapp:{CANONICAL}"

    def test_invalid_phone_contacts_no_vendor(
        self, client: FlaskClient, vendors: VendorState
    ) -> None:
        resp = client.post("/notifications/whatsapp", json={"to": "abc", "message": "Hola"})

        assert resp.status_code == 400
        assert resp.get_json()["errorKind"] == "validation"
        assert vendors.calls == []

    def test_provider_snapshot(self, client: FlaskClient, vendors: VendorState) -> None:
        resp = client.get("/notifications/whatsapp")

        providers = {p["name"]: p for p in resp.get_json()["providers"]}
        assert providers["greenapi-whatsapp"]["status"] == "authorized"
        assert providers["twilio-whatsapp"]["available"] is True


class TestSmsTracking:
    def test_send_then_poll_status(self, client: FlaskClient, vendors: VendorState) -> None:
        sent = client.post(
            "/notifications/send",
            json={"channel": "sms", "to": "011 1234-5678", "content": "Código 1234"},
        ).get_json()

        status = client.post(
            "/notifications/status",
            json={"provider": sent["provider"], "messageId": sent["messageId"]},
        ).get_json()

        assert sent["messageId"] == "SM100"
        assert status["status"] == "delivered"
        assert status["changed"] is True
