"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class SubmissionDB(Base):
    """
    A grading submission stored in the database.

    Keyed by the submission id; writing the same id twice replaces the row.
    Card line items are stored as JSON and never contain image bytes.
    """

    __tablename__ = "submissions"

    submission_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    grading_company: Mapped[str] = mapped_column(String(16), index=True)
    service_tier: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Submitter information
    submitter_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), index=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    cards: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    total_cards: Mapped[int] = mapped_column(Integer, default=0)
    total_declared_value: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<SubmissionDB(id={self.submission_id}, company={self.grading_company})>"


class ServiceTierDB(Base):
    """
    A service tier in a grading company's catalog.

    Unique per (company, tier_id).
    """

    __tablename__ = "service_tiers"
    __table_args__ = (UniqueConstraint("company", "tier_id", name="uq_company_tier"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company: Mapped[str] = mapped_column(String(16), index=True)
    tier_id: Mapped[str] = mapped_column(String(64))
    name: Mapped[str] = mapped_column(String(255))
    turnaround: Mapped[str] = mapped_column(String(255))
    price: Mapped[str] = mapped_column(String(64))
    description: Mapped[str] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ServiceTierDB(company={self.company}, tier_id={self.tier_id})>"


class ServiceTierAuditDB(Base):
    """
    One change to the service tier catalog.

    Old and new values are stored as JSON text snapshots of the tier.
    """

    __tablename__ = "service_tier_audit"

    audit_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    action: Mapped[str] = mapped_column(String(16))
    company: Mapped[str] = mapped_column(String(16), index=True)
    tier_id: Mapped[str] = mapped_column(String(64))

    user_id: Mapped[str] = mapped_column(String(255))
    user_email: Mapped[str] = mapped_column(String(255))
    user_name: Mapped[str] = mapped_column(String(255))
    user_groups: Mapped[str] = mapped_column(Text, default="")

    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ServiceTierAuditDB(action={self.action}, tier={self.company}/{self.tier_id})>"
