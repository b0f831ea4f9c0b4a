"""Fake vendor HTTP APIs for integration tests."""

from dataclasses import dataclass, field
from typing import Any

from flask import Flask, jsonify, request


@dataclass
class VendorState:
    green_status: int = 200
    twilio_status: str = "delivered"
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def reset(self) -> None:
        self.green_status = 200
        self.twilio_status = "delivered"
        self.calls.clear()

    def vendors_called(self) -> list[str]:
        return [vendor for vendor, _ in self.calls]


def fake_vendor_app(state: VendorState) -> Flask:
    """Green API and Twilio endpoints recording every send into *state*."""
    app = Flask("fake_vendors")

    @app.post("/waInstance<instance>/sendMessage/<token>")
    def green_send(instance: str, token: str):
        state.calls.append(("greenapi", request.get_json()))
        if state.green_status != 200:
            return jsonify({"message": "instance unavailable"}), state.green_status
        return jsonify({"idMessage": f"green-{len(state.calls)}"})

    @app.get("/waInstance<instance>/getStateInstance/<token>")
    def green_state(instance: str, token: str):
        return jsonify({"stateInstance": "authorized"})

    @app.post("/2010-04-01/Accounts/<sid>/Messages.json")
    def twilio_send(sid: str):
        state.calls.append(("twilio", request.form.to_dict()))
        return jsonify({"sid": "SM100", "status": "queued", "price": "-0.00500"}), 201

    @app.get("/2010-04-01/Accounts/<sid>/Messages/<message_sid>.json")
    def twilio_fetch(sid: str, message_sid: str):
        return jsonify({"sid": message_sid, "status": state.twilio_status})

    return app
