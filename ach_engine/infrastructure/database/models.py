"""SQLAlchemy ORM models for ACH batches, entries and audit trail"""

import uuid
from sqlalchemy import Column, String, BigInteger, DateTime, Date, Integer, ForeignKey, Text, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class ACHBatch(Base):
    """Disbursement batch header"""

    __tablename__ = "ach_batches"
    __table_args__ = (
        UniqueConstraint("company_id", "batch_number", name="uq_ach_batches_company_batch_number"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(Text, nullable=False, index=True)
    batch_number = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    batch_type = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default="draft")
    effective_date = Column(Date, nullable=False)
    scheduled_date = Column(Date, nullable=True)
    file_name = Column(Text, nullable=True)
    nacha_file_content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    entries = relationship(
        "ACHBatchEntry",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="ACHBatchEntry.position",
    )


class ACHBatchEntry(Base):
    """Single debit or credit owned by a batch"""

    __tablename__ = "ach_batch_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("ach_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    routing_number = Column(String(9), nullable=False)
    account_number = Column(Text, nullable=False)
    account_type = Column(String(16), nullable=False, default="checking")
    transaction_type = Column(String(8), nullable=False)
    reference_code = Column(Text, nullable=False)
    recipient_id = Column(Text, nullable=False)
    recipient_name = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    batch = relationship("ACHBatch", back_populates="entries")


class ACHAuditLog(Base):
    """Append-only record of lifecycle actions taken on a batch"""

    __tablename__ = "ach_audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Text, nullable=False, index=True)
    batch_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    action_type = Column(Text, nullable=False)
    action_details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
