from __future__ import annotations

import re
from dataclasses import dataclass

from app.batchverify.modules.batch_verification.errors import FailureReason
from app.batchverify.modules.batch_verification.models import VerificationRequest

# Indian mobile numbering: 10 digits, leading 6-9.
MOBILE_RE = re.compile(r"^[6-9]\d{9}$", re.ASCII)
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class ValidationOutcome:
    reason: FailureReason | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> str | None:
        return self.reason.message if self.reason else None


def normalize_text(s: str | None) -> str:
    return (s or "").strip()


def validate_mobile(mobile: str) -> bool:
    return bool(MOBILE_RE.fullmatch(mobile or ""))


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.fullmatch(normalize_text(email)))


def validate_request(req: VerificationRequest) -> ValidationOutcome:
    """
    Shape checks only, first failure wins:
    required fields -> mobile -> email (optional) -> location (compliance gate).
    """
    if not (normalize_text(req.full_name) and normalize_text(req.mobile) and normalize_text(req.batch_code)):
        return ValidationOutcome(FailureReason.MISSING_FIELD)
    if not validate_mobile(req.mobile):
        return ValidationOutcome(FailureReason.INVALID_MOBILE)
    if normalize_text(req.email) and not validate_email(req.email):
        return ValidationOutcome(FailureReason.INVALID_EMAIL)
    if not normalize_text(req.location):
        return ValidationOutcome(FailureReason.LOCATION_REQUIRED)
    return ValidationOutcome()
