from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from flask import has_request_context, url_for
from itsdangerous import BadSignature, SignatureExpired, TimestampSigner, URLSafeTimedSerializer


class StorageError(RuntimeError):
    pass


class InvalidDownloadToken(StorageError):
    pass


_TOKEN_SALT = "batchverify.local-download"


class _ClockTimestampSigner(TimestampSigner):
    """TimestampSigner that can sign and check ages against a supplied time."""

    def __init__(self, *args, now: datetime | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.now = now

    def get_timestamp(self) -> int:
        if self.now is None:
            return super().get_timestamp()
        return int(self.now.timestamp())


def content_disposition(filename: str) -> str:
    return f'attachment; filename="{filename}"'


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def signed_download_url(self, key: str, *, expires_in: int, download_name: str, now: datetime | None = None) -> str:
        """
        Mint a time-bounded GET-only URL for exactly one object, served as an attachment.
        """
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path
    secret_key: str = "change-me"
    base_url: str = ""

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        p = (self.root / safe_key).resolve()
        if self.root.resolve() not in p.parents:
            raise StorageError(f"Key escapes storage root: {key!r}")
        return p

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def open(self, key: str) -> BinaryIO:
        p = self._path(key)
        try:
            return p.open("rb")
        except OSError as e:
            raise StorageError(f"Cannot open {key!r}: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def _serializer(self, now: datetime | None = None) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(
            self.secret_key,
            salt=_TOKEN_SALT,
            signer=_ClockTimestampSigner,
            signer_kwargs={"now": now},
        )

    def signed_download_url(self, key: str, *, expires_in: int, download_name: str, now: datetime | None = None) -> str:
        token = self._serializer(now or datetime.now(timezone.utc)).dumps(
            {"k": key, "f": download_name, "ttl": int(expires_in)}
        )
        if self.base_url:
            return f"{self.base_url.rstrip('/')}/files/{token}"
        if has_request_context():
            return url_for("routes.signed_download", token=token, _external=True)
        return f"/files/{token}"

    def resolve_download_token(self, token: str, *, now: datetime | None = None) -> tuple[str, str]:
        """
        Return (key, download_name) for a token minted by signed_download_url.
        Raises InvalidDownloadToken on a bad signature or an expired token.
        """
        serializer = self._serializer(now)
        # ttl travels inside the signed payload; loads() below re-verifies it.
        _, unverified = serializer.loads_unsafe(token)
        ttl = unverified.get("ttl") if isinstance(unverified, dict) else None
        try:
            payload = serializer.loads(token, max_age=ttl if isinstance(ttl, int) else None)
        except SignatureExpired as e:
            raise InvalidDownloadToken("Download link has expired.") from e
        except BadSignature as e:
            raise InvalidDownloadToken("Download link signature is invalid.") from e
        if not isinstance(payload, dict) or not {"k", "f", "ttl"} <= payload.keys():
            raise InvalidDownloadToken("Download link payload is malformed.")
        return str(payload["k"]), str(payload["f"])


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    timeout_seconds: float = 5.0

    def _client(self):
        try:
            import boto3  # type: ignore
            from botocore.config import Config  # type: ignore
        except Exception as e:  # pragma: no cover
            raise StorageError("boto3 required for S3 storage. Install boto3.") from e
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=Config(
                signature_version="s3v4",
                connect_timeout=self.timeout_seconds,
                read_timeout=self.timeout_seconds,
                # one attempt total; callers decide whether to retry
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        extra: dict[str, object] = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client().put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 put_object failed for {key!r}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            obj = self._client().get_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 get_object failed for {key!r}: {e}") from e
        return obj["Body"]  # type: ignore[return-value]

    def exists(self, key: str) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client().head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"S3 head_object failed for {key!r}: {code or e}") from e
        except BotoCoreError as e:
            raise StorageError(f"S3 unreachable checking {key!r}: {e}") from e

    def signed_download_url(self, key: str, *, expires_in: int, download_name: str, now: datetime | None = None) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            return self._client().generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ResponseContentDisposition": content_disposition(download_name),
                    "ResponseContentType": "application/pdf",
                    "ResponseCacheControl": "no-store",
                },
                ExpiresIn=int(expires_in),
                HttpMethod="GET",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Presigning failed for {key!r}: {e}") from e


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "nyc3").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
            timeout_seconds=float(config.get("STORAGE_TIMEOUT_SECONDS") or 5.0),
        )
    # default local
    root_setting = (config.get("STORAGE_ROOT") or "").strip()
    root = Path(root_setting) if root_setting else Path(os.getcwd()) / "storage"
    return LocalStorage(
        root=root,
        secret_key=str(config.get("SECRET_KEY") or "change-me"),
        base_url=(config.get("PUBLIC_BASE_URL") or "").strip(),
    )
