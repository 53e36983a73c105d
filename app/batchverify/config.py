import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    storage_root: str
    storage_timeout_seconds: float
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    registry_index_key: str
    credential_ttl_seconds: int
    audit_sink: str
    admin_token: str
    public_base_url: str
    log_level: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_number(name: str, default: float) -> float:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be numeric (got {raw!r}).") from e


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///batchverify.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_root=_getenv("STORAGE_ROOT", ""),
        storage_timeout_seconds=_getenv_number("STORAGE_TIMEOUT_SECONDS", 5.0),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        registry_index_key=_getenv("REGISTRY_INDEX_KEY", "batch-index.json"),
        credential_ttl_seconds=int(_getenv_number("CREDENTIAL_TTL_SECONDS", 15 * 60)),
        audit_sink=_getenv("AUDIT_SINK", "db").lower(),
        admin_token=_getenv("ADMIN_TOKEN", ""),
        public_base_url=_getenv("PUBLIC_BASE_URL", ""),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_ROOT": s.storage_root,
        "STORAGE_TIMEOUT_SECONDS": s.storage_timeout_seconds,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "REGISTRY_INDEX_KEY": s.registry_index_key,
        "CREDENTIAL_TTL_SECONDS": s.credential_ttl_seconds,
        "AUDIT_SINK": s.audit_sink,
        "ADMIN_TOKEN": s.admin_token,
        "PUBLIC_BASE_URL": s.public_base_url,
        "LOG_LEVEL": s.log_level,
        # JSON API only; request bodies are a handful of short fields.
        "MAX_CONTENT_LENGTH": 64 * 1024,
    }
