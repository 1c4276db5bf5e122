import logging

from flask import Response, current_app, g, jsonify, request

from push_core.service import PushService

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"


def require_credential() -> tuple[Response, int] | None:
    """Blueprint ``before_request`` hook: resolve the caller's credential.

    Stores it on ``g.credential``; a missing or unknown key ends the
    request with 403.
    """
    service: PushService = current_app.extensions["push_service"]
    credential = service.authenticate(request.headers.get(API_KEY_HEADER))
    if credential is None:
        logger.info(
            "Rejected request without valid API key", extra={"path": request.path}
        )
        return jsonify({"error": "Invalid or missing API key"}), 403
    g.credential = credential
    return None
