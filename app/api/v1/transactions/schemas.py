from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from app.models.enums import TransactionStatus, TransactionType


class TransactionResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    provider_id: Optional[UUID] = None
    amount: float = Field(..., description="Signed amount; negative leaves the account")
    description: str
    type: str
    status: str
    reference: Optional[str] = None
    rental_id: Optional[UUID] = None
    performed_by: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("meta", "metadata"),
    )
    transaction_date: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionFilters(BaseModel):
    """Filters shared by history, admin listing, summary and export."""
    user_id: Optional[UUID] = None
    provider_id: Optional[UUID] = None
    type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    rental_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    search: Optional[str] = Field(None, description="Case-insensitive match on description")


class TypeTotal(BaseModel):
    count: int = 0
    total: float = 0


class TransactionSummary(BaseModel):
    """Aggregates over the filtered set. Totals are magnitudes; net_flow is signed."""
    count: int
    total_deposits: float
    total_payments: float
    total_refunds: float
    total_withdrawals: float
    net_flow: float = Field(..., description="deposits + refunds - payments - withdrawals")
    by_type: Dict[str, TypeTotal]


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    total: int
    summary: Optional[TransactionSummary] = None
