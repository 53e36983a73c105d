from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from app.batchverify.modules.batch_verification.errors import RegistryLoadError, RegistryUnavailable
from app.batchverify.modules.batch_verification.models import BatchRecord, Traceability
from app.batchverify.storage import Storage, StorageError

logger = logging.getLogger(__name__)


def normalize_batch_code(code: str | None) -> str:
    return (code or "").strip().upper()


class BatchRegistry:
    """
    Read-only code -> BatchRecord mapping. Keys are normalized codes and always
    equal their record's normalized `code`.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[BatchRecord]) -> None:
        by_code: dict[str, BatchRecord] = {}
        for rec in records:
            key = normalize_batch_code(rec.code)
            if not key:
                raise RegistryLoadError("Batch record with empty code.")
            if key in by_code:
                raise RegistryLoadError(f"Duplicate batch code after normalization: {key}")
            by_code[key] = rec
        self._records: Mapping[str, BatchRecord] = MappingProxyType(by_code)

    def lookup(self, code: str | None) -> BatchRecord | None:
        return self._records.get(normalize_batch_code(code))

    def codes(self) -> list[str]:
        return sorted(self._records)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_batch_code(code) in self._records

    def __len__(self) -> int:
        return len(self._records)


def _required(raw: Mapping[str, Any], field: str, key: str) -> str:
    v = raw.get(field)
    if not isinstance(v, str) or not v.strip():
        raise RegistryLoadError(f"Batch index entry {key!r} is missing {field!r}.")
    return v.strip()


def parse_batch_index(payload: Any) -> BatchRegistry:
    """
    Build a registry from the decoded batch-index.json object.
    """
    if not isinstance(payload, dict):
        raise RegistryLoadError("Batch index must be a JSON object keyed by batch code.")

    records: list[BatchRecord] = []
    for key, raw in payload.items():
        if not isinstance(raw, dict):
            raise RegistryLoadError(f"Batch index entry {key!r} must be an object.")
        code = normalize_batch_code(_required(raw, "code", key))
        if normalize_batch_code(key) != code:
            raise RegistryLoadError(f"Batch index key {key!r} does not match its record code {code!r}.")
        trace_raw = raw.get("traceability")
        if trace_raw is not None and not isinstance(trace_raw, dict):
            raise RegistryLoadError(f"Batch index entry {key!r} has a non-object 'traceability'.")
        records.append(
            BatchRecord(
                code=code,
                product_name=_required(raw, "productName", key),
                test_date=str(raw.get("testDate") or ""),
                lab_name=str(raw.get("labName") or ""),
                report_number=str(raw.get("reportNumber") or ""),
                report_locator=_required(raw, "reportPath", key),
                traceability=Traceability.from_index(trace_raw) if trace_raw else None,
            )
        )
    return BatchRegistry(records)


def parse_batch_index_bytes(raw: bytes) -> BatchRegistry:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RegistryLoadError(f"Batch index is not valid JSON: {e}") from e
    return parse_batch_index(payload)


def load_registry(storage: Storage, key: str) -> BatchRegistry:
    """Fetch and parse the batch index object. Any failure is a RegistryLoadError."""
    try:
        fobj = storage.open(key)
        try:
            raw = fobj.read()
        finally:
            fobj.close()
    except StorageError as e:
        raise RegistryLoadError(f"Cannot fetch batch index {key!r}: {e}") from e
    registry = parse_batch_index_bytes(raw)
    logger.info("Registry loaded from %s: %d batch codes", key, len(registry))
    return registry


class RegistryHolder:
    """
    Process-wide slot for the current registry. Readers take a reference once per
    request; swap() replaces the whole registry in one assignment.
    """

    def __init__(self, registry: BatchRegistry | None = None) -> None:
        self._lock = threading.Lock()
        self._registry = registry
        self.loaded_at: datetime | None = datetime.utcnow() if registry is not None else None

    def current(self) -> BatchRegistry:
        registry = self._registry
        if registry is None:
            raise RegistryUnavailable("Traceability registry has not been loaded.")
        return registry

    @property
    def is_loaded(self) -> bool:
        return self._registry is not None

    def swap(self, registry: BatchRegistry) -> BatchRegistry | None:
        with self._lock:
            previous = self._registry
            self._registry = registry
            self.loaded_at = datetime.utcnow()
        return previous
