from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from werkzeug.utils import secure_filename

from app.batchverify.modules.batch_verification.errors import ArtifactMissingError
from app.batchverify.modules.batch_verification.models import BatchRecord, Collection, RetrievableArtifact, SingleFile
from app.batchverify.storage import Storage

DEFAULT_TTL = timedelta(minutes=15)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def report_filename(product_name: str | None) -> str:
    """'Tomato Pulp' -> 'Tomato_Pulp.pdf'."""
    stem = secure_filename(re.sub(r"\s+", "_", (product_name or "").strip()))
    return f"{stem or 'report'}.pdf"


def is_external(locator: str) -> bool:
    return urlparse(locator).scheme in ("http", "https")


def is_folder_reference(locator: str) -> bool:
    """External collection links, e.g. https://drive.google.com/drive/folders/<id>."""
    parsed = urlparse(locator)
    return parsed.scheme in ("http", "https") and "/folders/" in parsed.path


class CredentialIssuer:
    def __init__(
        self,
        storage: Storage,
        *,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.storage = storage
        self.ttl = ttl
        self.clock = clock

    def issue(self, record: BatchRecord) -> RetrievableArtifact:
        """
        Resolve a record to something the caller can retrieve.

        Storage objects get a signed, GET-only, attachment-forcing URL valid for `ttl`.
        External folder links come back as a Collection; other external links are
        returned unchanged. Raises ArtifactMissingError when the object is absent;
        StorageError propagates.
        """
        locator = record.report_locator.strip()
        if is_folder_reference(locator):
            return Collection(url=locator)

        filename = report_filename(record.product_name)
        if is_external(locator):
            return SingleFile(url=locator, filename=filename)

        if not self.storage.exists(locator):
            raise ArtifactMissingError(record.code, locator)

        issued_at = self.clock()
        url = self.storage.signed_download_url(
            locator,
            expires_in=int(self.ttl.total_seconds()),
            download_name=filename,
            now=issued_at,
        )
        return SingleFile(url=url, filename=filename, expires_at=issued_at + self.ttl)
