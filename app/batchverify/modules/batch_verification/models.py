from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Union

from app.batchverify.modules.batch_verification.errors import FailureReason


def _text(value: Any) -> str:
    # Integers are kept as their digits (a mobile sent as a JSON number); null, floats and objects are absent.
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


@dataclass(frozen=True)
class VerificationRequest:
    full_name: str
    mobile: str
    batch_code: str
    location: str
    email: str = ""
    request_id: str | None = None
    user_agent: str | None = None
    client_ip: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None, **meta: Any) -> "VerificationRequest":
        p = payload if isinstance(payload, Mapping) else {}
        return cls(
            full_name=_text(p.get("fullName")),
            mobile=_text(p.get("mobile")),
            email=_text(p.get("email")),
            batch_code=_text(p.get("batchCode")),
            location=_text(p.get("location")),
            **meta,
        )


@dataclass(frozen=True)
class Traceability:
    producer: str = ""  # L1
    product: str = ""  # L2
    source: str = ""  # L3
    lab: str = ""  # L4

    @classmethod
    def from_index(cls, raw: Mapping[str, Any]) -> "Traceability":
        return cls(
            producer=str(raw.get("l1_producer") or ""),
            product=str(raw.get("l2_product") or ""),
            source=str(raw.get("l3_source") or ""),
            lab=str(raw.get("l4_lab") or ""),
        )


@dataclass(frozen=True)
class BatchRecord:
    code: str
    product_name: str
    test_date: str
    lab_name: str
    report_number: str
    report_locator: str
    traceability: Traceability | None = None


@dataclass(frozen=True)
class SingleFile:
    url: str
    filename: str
    expires_at: datetime | None = None  # None for external links we cannot sign

    is_folder = False


@dataclass(frozen=True)
class Collection:
    url: str

    is_folder = True


RetrievableArtifact = Union[SingleFile, Collection]


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    record: BatchRecord | None = None
    artifact: RetrievableArtifact | None = None
    reason: FailureReason | None = None

    @classmethod
    def succeeded(cls, record: BatchRecord, artifact: RetrievableArtifact) -> "VerificationResult":
        return cls(success=True, record=record, artifact=artifact)

    @classmethod
    def failed(cls, reason: FailureReason) -> "VerificationResult":
        return cls(success=False, reason=reason)

    @property
    def message(self) -> str | None:
        return self.reason.message if self.reason else None

    def to_response(self) -> dict[str, Any]:
        if not self.success:
            assert self.reason is not None
            return {"success": False, "error": self.reason.message, "code": self.reason.value}
        assert self.record is not None and self.artifact is not None
        expires_at = getattr(self.artifact, "expires_at", None)
        return {
            "success": True,
            "data": {
                "code": self.record.code,
                "productName": self.record.product_name,
                "testDate": self.record.test_date,
                "labName": self.record.lab_name,
                "reportNumber": self.record.report_number,
                "reportUrl": self.artifact.url,
                "downloadUrl": self.artifact.url,
                "isFolder": self.artifact.is_folder,
                "expiresAt": expires_at.isoformat() if expires_at else None,
            },
        }
