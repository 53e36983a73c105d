from __future__ import annotations

import hmac

from flask import Blueprint, abort, current_app, jsonify, request

from app.batchverify.modules.batch_verification.errors import RegistryLoadError
from app.batchverify.modules.batch_verification.registry import RegistryHolder, load_registry
from app.batchverify.storage import storage_from_config

bp = Blueprint("batch_verification_admin", __name__)


def _has_admin_token() -> bool:
    """
    Headless admin access for registry operations.

    Configure via env var: ADMIN_TOKEN
    Use via request header: X-Admin-Token
    """
    expected = (current_app.config.get("ADMIN_TOKEN") or "").strip()
    if not expected:
        return False
    provided = (request.headers.get("X-Admin-Token") or "").strip()
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@bp.post("/registry/reload")
def registry_reload():
    if not (current_app.config.get("ADMIN_TOKEN") or "").strip():
        abort(404)
    if not _has_admin_token():
        abort(403)

    holder: RegistryHolder = current_app.extensions["batch_registry"]
    key = current_app.config["REGISTRY_INDEX_KEY"]
    try:
        registry = load_registry(storage_from_config(current_app.config), key)
    except RegistryLoadError as e:
        # Keep serving the previous registry.
        current_app.logger.error("Registry reload failed; keeping previous registry: %s", e)
        return jsonify({"ok": False, "error": "Registry reload failed; previous registry still active."}), 500

    previous = holder.swap(registry)
    current_app.logger.warning(
        "Registry reloaded: %d batch codes (was %s)", len(registry), len(previous) if previous is not None else "none"
    )
    return jsonify({"ok": True, "batch_codes": len(registry), "loaded_at": holder.loaded_at.isoformat() + "Z"})


@bp.get("/registry")
def registry_status():
    if not _has_admin_token():
        abort(404)
    holder: RegistryHolder = current_app.extensions["batch_registry"]
    registry = holder.current()
    return jsonify({"batch_codes": registry.codes(), "loaded_at": holder.loaded_at.isoformat() + "Z"})
