from __future__ import annotations

import logging

from app.batchverify.audit import (
    OUTCOME_ARTIFACT_MISSING,
    OUTCOME_FOUND,
    OUTCOME_NOT_FOUND,
    OUTCOME_SYSTEM_ERROR,
    OUTCOME_VALIDATION_FAILED,
    AuditEntry,
    AuditSink,
)
from app.batchverify.modules.batch_verification.errors import ArtifactMissingError, ErrorCategory, FailureReason
from app.batchverify.modules.batch_verification.issuer import CredentialIssuer
from app.batchverify.modules.batch_verification.models import VerificationRequest, VerificationResult
from app.batchverify.modules.batch_verification.registry import RegistryHolder, normalize_batch_code
from app.batchverify.modules.batch_verification.validation import validate_request

logger = logging.getLogger(__name__)

_OUTCOME_BY_CATEGORY = {
    ErrorCategory.VALIDATION: OUTCOME_VALIDATION_FAILED,
    ErrorCategory.NOT_FOUND: OUTCOME_NOT_FOUND,
    ErrorCategory.ARTIFACT: OUTCOME_ARTIFACT_MISSING,
    ErrorCategory.SYSTEM: OUTCOME_SYSTEM_ERROR,
}


class VerificationService:
    """
    validate -> resolve -> issue, with exactly one audit entry per call.
    verify() never raises; every failure comes back as a typed result.
    """

    def __init__(self, registry: RegistryHolder, issuer: CredentialIssuer, audit_sink: AuditSink) -> None:
        self.registry = registry
        self.issuer = issuer
        self.audit_sink = audit_sink

    def verify(self, req: VerificationRequest) -> VerificationResult:
        try:
            result = self._run(req)
        except Exception:
            logger.exception("VERIFY: unexpected failure code=%s request_id=%s", normalize_batch_code(req.batch_code), req.request_id)
            result = VerificationResult.failed(FailureReason.SYSTEM_ERROR)
        self._audit(req, result)
        return result

    def reject(self, req: VerificationRequest, reason: FailureReason) -> VerificationResult:
        """Audit and answer a request refused before its body could be read."""
        logger.info("VERIFY: rejected request reason=%s request_id=%s", reason.value, req.request_id)
        result = VerificationResult.failed(reason)
        self._audit(req, result)
        return result

    def _run(self, req: VerificationRequest) -> VerificationResult:
        outcome = validate_request(req)
        if not outcome.ok:
            logger.info("VERIFY: rejected input reason=%s request_id=%s", outcome.reason.value, req.request_id)
            return VerificationResult.failed(outcome.reason)

        code = normalize_batch_code(req.batch_code)
        record = self.registry.current().lookup(code)
        if record is None:
            logger.info("VERIFY: code=%s not found request_id=%s", code, req.request_id)
            return VerificationResult.failed(FailureReason.NOT_FOUND)

        try:
            artifact = self.issuer.issue(record)
        except ArtifactMissingError as e:
            # Registry and storage disagree; operator has to fix the data.
            logger.error("VERIFY: ARTIFACT MISSING code=%s locator=%s request_id=%s", e.code, e.locator, req.request_id)
            return VerificationResult.failed(FailureReason.ARTIFACT_MISSING)

        logger.info("VERIFY: code=%s issued folder=%s request_id=%s", code, artifact.is_folder, req.request_id)
        return VerificationResult.succeeded(record, artifact)

    def _audit(self, req: VerificationRequest, result: VerificationResult) -> None:
        entry = AuditEntry.build(
            batch_code=normalize_batch_code(req.batch_code),
            outcome=OUTCOME_FOUND if result.success else _OUTCOME_BY_CATEGORY[result.reason.category],
            reason=result.reason.value if result.reason else None,
            location=req.location,
            mobile=req.mobile,
            email=req.email,
            request_id=req.request_id,
            user_agent=req.user_agent,
            client_ip=req.client_ip,
        )
        try:
            self.audit_sink.append(entry)
        except Exception:
            logger.exception("AUDIT: entry lost request_id=%s entry=%s", req.request_id, entry.as_dict())
