"""
Batch Verification module.

Scope:
- Public endpoint: validate a consumer's submission, resolve the batch code in the
  traceability registry, hand back a short-lived download link for the lab report
- Traceability registry loaded once from the storage backend (batch-index.json),
  swapped atomically on admin reload
- Every attempt audited (masked contact details), success or failure

Hard constraints:
- Registry is read-only at request time
- Report links expire after CREDENTIAL_TTL_SECONDS (15 minutes) and force a download
"""
