from __future__ import annotations

from flask import Blueprint, Response, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from app.batchverify.modules.batch_verification.errors import FailureReason
from app.batchverify.modules.batch_verification.models import VerificationRequest
from app.batchverify.modules.batch_verification.service import VerificationService

bp = Blueprint("batch_verification", __name__)

CORS_ALLOW_METHODS = "POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type"
CORS_MAX_AGE = "3600"


def _service() -> VerificationService:
    return current_app.extensions["batch_verification_service"]


@bp.after_request
def _cors_headers(response: Response) -> Response:
    # Public consumer endpoint: any origin, no credentials.
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Cache-Control"] = "no-store"
    return response


@bp.route("/verify-batch", methods=["POST", "OPTIONS"])
def verify_batch():
    if request.method == "OPTIONS":
        resp = current_app.response_class(status=204)
        resp.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
        resp.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
        resp.headers["Access-Control-Max-Age"] = CORS_MAX_AGE
        return resp

    meta = {
        "request_id": getattr(g, "request_id", None),
        "user_agent": request.headers.get("User-Agent"),
        "client_ip": request.remote_addr,
    }
    try:
        payload = request.get_json(silent=True)
    except RequestEntityTooLarge:
        result = _service().reject(VerificationRequest.from_payload(None, **meta), FailureReason.REQUEST_TOO_LARGE)
    else:
        result = _service().verify(VerificationRequest.from_payload(payload, **meta))
    status = 200 if result.success else result.reason.http_status
    return jsonify(result.to_response()), status


@bp.errorhandler(Exception)
def _api_error(e: Exception):
    if isinstance(e, HTTPException) and e.code is not None and e.code < 500:
        return jsonify({"success": False, "error": e.description}), e.code
    current_app.logger.exception("Unhandled API error (request_id=%s)", getattr(g, "request_id", None))
    reason = FailureReason.SYSTEM_ERROR
    return jsonify({"success": False, "error": reason.message, "code": reason.value}), reason.http_status
