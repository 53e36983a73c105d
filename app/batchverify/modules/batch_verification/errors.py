from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    ARTIFACT = "artifact"
    SYSTEM = "system"


class FailureReason(str, Enum):
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_MOBILE = "INVALID_MOBILE"
    INVALID_EMAIL = "INVALID_EMAIL"
    LOCATION_REQUIRED = "LOCATION_REQUIRED"
    REQUEST_TOO_LARGE = "REQUEST_TOO_LARGE"
    NOT_FOUND = "NOT_FOUND"
    ARTIFACT_MISSING = "ARTIFACT_MISSING"
    SYSTEM_ERROR = "SYSTEM_ERROR"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @property
    def http_status(self) -> int:
        return _STATUS[self]


_CATEGORIES = {
    FailureReason.MISSING_FIELD: ErrorCategory.VALIDATION,
    FailureReason.INVALID_MOBILE: ErrorCategory.VALIDATION,
    FailureReason.INVALID_EMAIL: ErrorCategory.VALIDATION,
    FailureReason.LOCATION_REQUIRED: ErrorCategory.VALIDATION,
    FailureReason.REQUEST_TOO_LARGE: ErrorCategory.VALIDATION,
    FailureReason.NOT_FOUND: ErrorCategory.NOT_FOUND,
    FailureReason.ARTIFACT_MISSING: ErrorCategory.ARTIFACT,
    FailureReason.SYSTEM_ERROR: ErrorCategory.SYSTEM,
}

# User-facing; never include storage paths or internal ids.
_MESSAGES = {
    FailureReason.MISSING_FIELD: "Please fill in your full name, mobile number and batch code.",
    FailureReason.INVALID_MOBILE: "Please enter a valid 10-digit Indian mobile number.",
    FailureReason.INVALID_EMAIL: "Please enter a valid email address.",
    FailureReason.LOCATION_REQUIRED: "Location access is required for verification compliance.",
    FailureReason.REQUEST_TOO_LARGE: "The submitted form is too large. Please shorten your details and try again.",
    FailureReason.NOT_FOUND: "Batch code not found. Please check the alphanumeric code printed on your pack.",
    FailureReason.ARTIFACT_MISSING: "The report for this batch is temporarily unavailable. Please try again later.",
    FailureReason.SYSTEM_ERROR: "Verification is temporarily unavailable. Please try again in a few minutes.",
}

_STATUS = {
    FailureReason.MISSING_FIELD: 400,
    FailureReason.INVALID_MOBILE: 400,
    FailureReason.INVALID_EMAIL: 400,
    FailureReason.LOCATION_REQUIRED: 400,
    FailureReason.REQUEST_TOO_LARGE: 413,
    FailureReason.NOT_FOUND: 404,
    FailureReason.ARTIFACT_MISSING: 500,
    FailureReason.SYSTEM_ERROR: 503,
}


class VerificationError(RuntimeError):
    pass


class ArtifactMissingError(VerificationError):
    """Registry points at a report object that does not exist in storage."""

    def __init__(self, code: str, locator: str) -> None:
        super().__init__(f"Report artifact missing for batch {code}: {locator}")
        self.code = code
        self.locator = locator


class RegistryLoadError(VerificationError):
    pass


class RegistryUnavailable(VerificationError):
    pass
