"""Append-only credit ledger entries."""
import uuid
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Float, ForeignKey, Index, String, Uuid

from app.core.database import Base
from app.models.enums import TransactionStatus


class Transaction(Base):
    """
    One credit movement on exactly one account (a user or a provider).
    Created in the same unit of work as the balance change it documents;
    afterwards only `status` may move to reversed.
    """
    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    provider_id = Column(Uuid(as_uuid=True), ForeignKey("car_providers.id"), nullable=True)
    amount = Column(Float, nullable=False)  # signed: negative leaves the account
    description = Column(String(500), nullable=False)
    type = Column(String(20), nullable=False)
    status = Column(String(20), default=TransactionStatus.completed.value, nullable=False)
    reference = Column(String(255), nullable=True)
    rental_id = Column(Uuid(as_uuid=True), ForeignKey("rentals.id"), nullable=True)
    performed_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)
    transaction_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND provider_id IS NULL) OR (user_id IS NULL AND provider_id IS NOT NULL)",
            name="ck_transactions_single_account",
        ),
        CheckConstraint(
            "(type IN ('deposit', 'refund') AND amount >= 0)"
            " OR (type IN ('payment', 'withdrawal') AND amount <= 0)"
            " OR type IN ('system', 'payout')",
            name="ck_transactions_amount_sign",
        ),
        Index("ix_transactions_user_date", "user_id", "transaction_date"),
        Index("ix_transactions_provider_date", "provider_id", "transaction_date"),
        Index("ix_transactions_type", "type"),
        Index("ix_transactions_status", "status"),
        Index("ix_transactions_rental", "rental_id"),
    )
