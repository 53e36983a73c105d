from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class VerificationAuditEvent(Base):
    """
    Append-only record of one batch verification attempt.
    Contact details are stored masked; rows are never updated or deleted by the app.
    """

    __tablename__ = "verification_audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    batch_code: Mapped[str] = mapped_column(String(128), nullable=False, index=True)  # normalized
    outcome: Mapped[str] = mapped_column(String(32), nullable=False)  # e.g. "found", "not-found"
    reason: Mapped[str | None] = mapped_column(String(64), nullable=True)  # e.g. "INVALID_MOBILE"

    masked_mobile: Mapped[str | None] = mapped_column(String(32), nullable=True)
    masked_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    location: Mapped[str] = mapped_column(String(512), nullable=False)

    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
