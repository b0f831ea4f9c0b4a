import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import BaseModel, ValidationError

from notify_shared.enums import Channel, ErrorKind
from notify_shared.errors import InternalDeliveryError

from delivery_core.bootstrap import DeliveryServices
from delivery_core.cost import CURRENCY, estimate_cost
from delivery_core.pool import DispatchItem
from delivery_core.providers.base import DeliveryResult

from notification_api.config import ApiConfig
from notification_api.schemas import (
    BatchRequest,
    CallbackRequest,
    EstimateQuery,
    SendRequest,
    StatusRequest,
    WhatsAppRequest,
)

logger = logging.getLogger(__name__)

bp = Blueprint("notifications", __name__)

M = TypeVar("M", bound=BaseModel)

_SERVER_ERROR_KINDS = frozenset({ErrorKind.INTERNAL})


class _BadRequest(Exception):
    def __init__(self, response: tuple[Response, int]) -> None:
        super().__init__("bad request")
        self.response = response


def _error(message: str, status: int, **extra: Any) -> tuple[Response, int]:
    body: dict[str, Any] = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


def _services() -> DeliveryServices:
    return current_app.extensions["delivery_services"]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse(model: type[M], data: Any) -> M:
    if data is None:
        raise _BadRequest(_error("Request body must be valid JSON", 400))
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise _BadRequest(
            _error(
                "Request validation failed",
                400,
                details=exc.errors(include_url=False, include_context=False),
            )
        ) from exc


@bp.errorhandler(_BadRequest)
def _handle_bad_request(exc: _BadRequest) -> tuple[Response, int]:
    return exc.response


def _result_body(result: DeliveryResult) -> dict[str, Any]:
    attempts = [
        {
            "provider": a.provider_id,
            "success": a.success,
            "attempt": a.attempt,
            "errorKind": a.error_kind,
            "error": a.error,
        }
        for a in result.attempts
    ]
    if result.success:
        return {
            "success": True,
            "messageId": result.message_id,
            "provider": result.provider_id,
            "cost": result.cost,
            "timestamp": result.timestamp.isoformat(),
            "fallbackUsed": result.fallback_used,
            "attempts": attempts,
        }
    body: dict[str, Any] = {
        "success": False,
        "error": result.error,
        "errorKind": result.error_kind,
        "attempts": attempts,
    }
    if result.provider_id:
        body["provider"] = result.provider_id
    return body


def _result_status(result: DeliveryResult) -> int:
    if result.success:
        return 200
    return 500 if result.error_kind in _SERVER_ERROR_KINDS else 400


def _deliver(channel: Channel, send: SendRequest | WhatsAppRequest) -> tuple[Response, int]:
    try:
        result = _services().orchestrator.deliver(channel, send.to_payload())
    except InternalDeliveryError as exc:
        return _error(exc.message, 500)
    return jsonify(_result_body(result)), _result_status(result)


@bp.post("/notifications/whatsapp")
def send_whatsapp() -> tuple[Response, int]:
    body = _parse(WhatsAppRequest, request.get_json(silent=True))
    return _deliver(Channel.WHATSAPP, body)


@bp.get("/notifications/whatsapp")
def whatsapp_providers() -> tuple[Response, int]:
    providers = []
    for row in _services().registry.snapshot(Channel.WHATSAPP):
        provider: dict[str, Any] = {
            "name": row["provider"],
            "configured": row["configured"],
            "available": row["available"],
            "cost": row["unit_cost"],
            "costTier": row["cost_tier"],
            "status": row["status"],
        }
        if row["limitations"]:
            provider["limitations"] = row["limitations"]
        providers.append(provider)
    return jsonify({"success": True, "providers": providers, "timestamp": _timestamp()}), 200


@bp.post("/notifications/send")
def send_notification() -> tuple[Response, int]:
    body = _parse(SendRequest, request.get_json(silent=True))
    return _deliver(body.channel, body)


@bp.post("/notifications/batch")
def send_batch() -> tuple[Response, int]:
    body = _parse(BatchRequest, request.get_json(silent=True))
    items = [DispatchItem(item.channel, item.to_payload()) for item in body.items]

    results = _services().pool.dispatch(items)

    succeeded = sum(1 for r in results if r.success)
    logger.info("Batch completed", extra={"items": len(items), "succeeded": succeeded})
    return jsonify({
        "success": succeeded == len(results),
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
        "results": [_result_body(r) for r in results],
    }), 200


@bp.get("/notifications/estimate")
def estimate() -> tuple[Response, int]:
    query = _parse(EstimateQuery, request.args.to_dict())
    config: ApiConfig = current_app.extensions["api_config"]
    try:
        cost = estimate_cost(
            query.channel,
            query.provider,
            query.recipients,
            query.country or config.default_country,
        )
    except ValueError as exc:
        return _error(str(exc), 400)
    return jsonify({"success": True, "cost": cost, "currency": CURRENCY}), 200


@bp.post("/notifications/status")
def poll_status() -> tuple[Response, int]:
    body = _parse(StatusRequest, request.get_json(silent=True))
    transition = _services().tracker.poll(body.provider, body.message_id, body.previous)
    return jsonify({"success": True, **transition.to_dict()}), 200


@bp.post("/notifications/status/callback")
def status_callback() -> tuple[Response, int]:
    body = _parse(CallbackRequest, request.get_json(silent=True))
    transition = _services().tracker.apply_callback(
        body.provider, body.message_id, body.status, body.previous
    )
    return jsonify({"success": True, **transition.to_dict()}), 200


@bp.get("/health")
def health() -> tuple[Response, int]:
    registry = _services().registry
    available = sum(
        1
        for channel in registry.channels()
        for entry in registry.candidates(channel)
        if entry.available
    )
    healthy = available > 0
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "checks": {"providers": available},
    }), 200 if healthy else 503
