import logging
from typing import Any, TypeVar
from uuid import UUID

from flask import Blueprint, Response, current_app, g, jsonify, request
from pydantic import BaseModel, ValidationError

from push_core.errors import (
    AttemptNotFoundError,
    DispatchFailedError,
    PayloadValidationError,
)
from push_core.service import PushService

from push_gateway.auth import require_credential
from push_gateway.config import GatewayConfig
from push_gateway.schemas import PushRequest, RegisterDeviceRequest

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

api_bp = Blueprint("push", __name__, url_prefix="/api/v1")
api_bp.before_request(require_credential)

health_bp = Blueprint("health", __name__)


def _error(message: str, code: int, **extra: Any) -> tuple[Response, int]:
    body: dict[str, Any] = {"error": message}
    body.update(extra)
    return jsonify(body), code


def _service() -> PushService:
    return current_app.extensions["push_service"]


def _parse(model: type[ModelT]) -> ModelT:
    """Validate a JSON body, or a form post, against *model*."""
    body = request.get_json(silent=True)
    if body is None:
        body = request.form.to_dict()
    return model.model_validate(body)


def _invalid(exc: ValidationError) -> tuple[Response, int]:
    return _error(
        "Request validation failed",
        422,
        details=exc.errors(
            include_url=False, include_context=False, include_input=False
        ),
    )


@api_bp.get("/push")
def list_pushes() -> tuple[Response, int]:
    config: GatewayConfig = current_app.extensions["gateway_config"]
    limit = request.args.get("limit", type=int) or config.default_page_size
    limit = max(1, min(limit, config.max_page_size))

    attempts = _service().latest(g.credential.id, limit)
    return jsonify({"data": [attempt.to_dict() for attempt in attempts]}), 200


@api_bp.get("/push/<push_uuid>")
def push_status(push_uuid: str) -> tuple[Response, int]:
    try:
        attempt = _service().status(g.credential.id, UUID(push_uuid))
    except (ValueError, AttemptNotFoundError):
        return _error("Push not found", 404, push_uuid=push_uuid)
    return jsonify(attempt.to_dict()), 200


@api_bp.post("/push/register")
def register_device() -> tuple[Response, int]:
    try:
        body = _parse(RegisterDeviceRequest)
    except ValidationError as exc:
        return _invalid(exc)

    device = _service().register_device(
        g.credential.id, body.platform, body.identity, body.regid
    )
    return jsonify({"device_uuid": device.id}), 200


@api_bp.post("/push/now")
def send_now() -> tuple[Response, int]:
    try:
        body = _parse(PushRequest)
    except ValidationError as exc:
        return _invalid(exc)

    try:
        attempt = _service().send_now(
            g.credential.id, body.to, body.payload, driver_key=body.driver
        )
    except PayloadValidationError as exc:
        return _error(str(exc), 422)
    except DispatchFailedError as exc:
        logger.error(
            "Synchronous dispatch failed",
            extra={"attempt_id": str(exc.attempt_id), "reason": str(exc)},
        )
        return _error(
            "Push backend unavailable",
            502,
            push_uuid=str(exc.attempt_id),
            status="failed",
        )

    return jsonify({
        "push_uuid": str(attempt.id),
        "status": attempt.status,
        "failures": list(attempt.failures),
    }), 200


@api_bp.post("/push/queue")
def queue_push() -> tuple[Response, int]:
    try:
        body = _parse(PushRequest)
    except ValidationError as exc:
        return _invalid(exc)

    try:
        attempt = _service().queue(
            g.credential.id, body.to, body.payload, driver_key=body.driver
        )
    except Exception:
        logger.exception("Failed to queue push")
        return _error("Queue unavailable", 503)

    return jsonify({"push_uuid": str(attempt.id), "status": attempt.status}), 200


@health_bp.get("/health")
def health() -> tuple[Response, int]:
    db_ok = _service().health_check()

    status = "healthy" if db_ok else "unhealthy"
    code = 200 if db_ok else 503

    return jsonify({
        "status": status,
        "checks": {"database": "ok" if db_ok else "unreachable"},
    }), code
