from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from app.batchverify.models import VerificationAuditEvent

logger = logging.getLogger(__name__)

OUTCOME_FOUND = "found"
OUTCOME_NOT_FOUND = "not-found"
OUTCOME_VALIDATION_FAILED = "validation-failed"
OUTCOME_ARTIFACT_MISSING = "artifact-missing"
OUTCOME_SYSTEM_ERROR = "system-error"

LOCATION_NOT_PROVIDED = "not provided"


def mask_mobile(mobile: str | None) -> str | None:
    """Keep the first two and last two digits: 9876543210 -> 98******10."""
    m = (mobile or "").strip()
    if not m:
        return None
    if len(m) <= 4:
        return "*" * len(m)
    return m[:2] + "*" * (len(m) - 4) + m[-2:]


def mask_email(email: str | None) -> str | None:
    e = (email or "").strip()
    if not e:
        return None
    local, sep, domain = e.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return value[:limit]


@dataclass(frozen=True)
class AuditEntry:
    batch_code: str
    outcome: str
    location: str
    reason: str | None = None
    masked_mobile: str | None = None
    masked_email: str | None = None
    request_id: str | None = None
    user_agent: str | None = None
    client_ip: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def build(
        cls,
        *,
        batch_code: str,
        outcome: str,
        location: str | None,
        reason: str | None = None,
        mobile: str | None = None,
        email: str | None = None,
        request_id: str | None = None,
        user_agent: str | None = None,
        client_ip: str | None = None,
    ) -> "AuditEntry":
        loc = (location or "").strip() or LOCATION_NOT_PROVIDED
        return cls(
            batch_code=_clip(batch_code, 128) or "",
            outcome=outcome,
            location=_clip(loc, 512) or LOCATION_NOT_PROVIDED,
            reason=reason,
            masked_mobile=mask_mobile(mobile),
            masked_email=_clip(mask_email(email), 320),
            request_id=request_id,
            user_agent=_clip(user_agent, 512),
            client_ip=_clip(client_ip, 64),
        )

    def as_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["created_at"] = self.created_at.isoformat() + "Z"
        return d


class AuditSink:
    """Append-only destination for audit entries. append() is the unit of atomicity."""

    def append(self, entry: AuditEntry) -> None:
        raise NotImplementedError


class LogAuditSink(AuditSink):
    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logging.getLogger("app.batchverify.audit.trail")

    def append(self, entry: AuditEntry) -> None:
        # one record per entry; the logging handler lock keeps lines whole
        self.log.info(json.dumps(entry.as_dict(), sort_keys=True))


class DatabaseAuditSink(AuditSink):
    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def append(self, entry: AuditEntry) -> None:
        s: Session = self.session_factory()
        try:
            s.add(
                VerificationAuditEvent(
                    created_at=entry.created_at,
                    request_id=entry.request_id,
                    batch_code=entry.batch_code,
                    outcome=entry.outcome,
                    reason=entry.reason,
                    masked_mobile=entry.masked_mobile,
                    masked_email=entry.masked_email,
                    location=entry.location,
                    user_agent=entry.user_agent,
                    client_ip=entry.client_ip,
                )
            )
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()


class FallbackAuditSink(AuditSink):
    """
    Writes to `primary`; when that fails the entry goes to `fallback` so it is not lost.
    """

    def __init__(self, primary: AuditSink, fallback: AuditSink) -> None:
        self.primary = primary
        self.fallback = fallback

    def append(self, entry: AuditEntry) -> None:
        try:
            self.primary.append(entry)
        except Exception:
            logger.exception("AUDIT: primary sink failed (request_id=%s); writing to fallback", entry.request_id)
            self.fallback.append(entry)


def audit_sink_from_app(app) -> AuditSink:
    kind = (app.config.get("AUDIT_SINK") or "db").strip().lower()
    log_sink = LogAuditSink()
    if kind == "log":
        return log_sink
    if kind != "db":
        raise RuntimeError(f"Unknown AUDIT_SINK {kind!r}; expected 'db' or 'log'.")
    return FallbackAuditSink(DatabaseAuditSink(app.extensions["sqlalchemy_sessionmaker"]), log_sink)
