import logging
import uuid
from datetime import timedelta

from flask import Flask, g, request
from dotenv import load_dotenv

from app.batchverify.audit import audit_sink_from_app
from app.batchverify.config import load_config
from app.batchverify.db import init_db
from app.batchverify.routes import bp as routes_bp
from app.batchverify.modules.batch_verification.admin import bp as batch_admin_bp
from app.batchverify.modules.batch_verification.api import bp as batch_api_bp
from app.batchverify.modules.batch_verification.errors import RegistryLoadError
from app.batchverify.modules.batch_verification.issuer import CredentialIssuer
from app.batchverify.modules.batch_verification.registry import RegistryHolder, load_registry
from app.batchverify.modules.batch_verification.service import VerificationService
from app.batchverify.storage import S3Storage, StorageError, storage_from_config


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())

    # No-op when the root logger already has handlers (e.g. under pytest).
    logging.basicConfig(level=app.config["LOG_LEVEL"], format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    # Audit trail is always emitted, whatever LOG_LEVEL says.
    audit_trail = logging.getLogger("app.batchverify.audit.trail")
    if audit_trail.level == logging.NOTSET or audit_trail.level > logging.INFO:
        audit_trail.setLevel(logging.INFO)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if app.config.get("AUDIT_SINK") == "db" and str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")

    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [k for k in ("S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY") if not app.config.get(k)]
        if missing_s3:
            raise RuntimeError(f"STORAGE CONFIG ERROR: Missing required S3 env vars: {', '.join(missing_s3)}")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    storage = storage_from_config(app.config)
    if isinstance(storage, S3Storage):
        try:
            storage._client().head_bucket(Bucket=storage.bucket)
            app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)
        except Exception as e:
            app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    # The registry must load before we serve anything.
    try:
        registry = load_registry(storage, app.config["REGISTRY_INDEX_KEY"])
    except (RegistryLoadError, StorageError) as e:
        app.logger.error("REGISTRY LOAD FAILED (%s): %s", app.config["REGISTRY_INDEX_KEY"], e)
        raise RuntimeError(f"Traceability registry could not be loaded: {e}") from e

    holder = RegistryHolder(registry)
    issuer = CredentialIssuer(storage, ttl=timedelta(seconds=int(app.config["CREDENTIAL_TTL_SECONDS"])))
    app.extensions["batch_registry"] = holder
    app.extensions["batch_verification_service"] = VerificationService(holder, issuer, audit_sink_from_app(app))

    @app.before_request
    def _assign_request_id():
        g.request_id = (request.headers.get("X-Request-ID") or "").strip()[:64] or uuid.uuid4().hex

    app.register_blueprint(routes_bp)
    app.register_blueprint(batch_api_bp, url_prefix="/api")
    app.register_blueprint(batch_admin_bp, url_prefix="/admin")

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return {"success": False, "error": "Internal server error."}, 500

    logging.getLogger(__name__).info("create_app() complete; %d batch codes loaded", len(registry))

    return app
