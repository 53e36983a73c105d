from flask import Blueprint, abort, current_app, send_file

from app.batchverify.storage import InvalidDownloadToken, LocalStorage, StorageError, storage_from_config

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    holder = current_app.extensions.get("batch_registry")
    loaded = bool(holder and holder.is_loaded)
    return {"ok": loaded, "registry_batch_codes": len(holder.current()) if loaded else 0}, (200 if loaded else 503)


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No storage or DB access.
    """
    return "ok", 200


@bp.get("/files/<token>")
def signed_download(token: str):
    """
    Serves a report for a link minted by LocalStorage.signed_download_url.
    Only the local backend uses this; S3 links go straight to the bucket.
    """
    storage = storage_from_config(current_app.config)
    if not isinstance(storage, LocalStorage):
        abort(404)
    try:
        key, filename = storage.resolve_download_token(token)
    except InvalidDownloadToken as e:
        current_app.logger.info("Rejected download link: %s", e)
        abort(403)
    try:
        if not storage.exists(key):
            abort(404)
        fobj = storage.open(key)
    except StorageError as e:
        current_app.logger.error("Signed download failed for %s: %s", key, e)
        abort(404)
    resp = send_file(fobj, mimetype="application/pdf", as_attachment=True, download_name=filename, max_age=0)
    resp.headers["Cache-Control"] = "no-store"
    return resp
