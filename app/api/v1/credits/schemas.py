from __future__ import annotations

from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.transactions.schemas import TransactionResponse
from app.models.enums import AccountType, CreditAction


class CreditAmountRequest(BaseModel):
    # Parsed and rounded by the service so bad input maps to invalid_amount
    amount: Union[float, str] = Field(..., description="Positive amount, rounded to 2 decimals")
    description: Optional[str] = Field(None, max_length=500, description="Shown in the transaction history")
    reference: Optional[str] = Field(None, max_length=255, description="Free-form correlation id")

    class Config:
        extra = "forbid"


class RefundRequest(CreditAmountRequest):
    account_id: UUID = Field(..., description="User or provider receiving the refund")
    account_type: AccountType = Field(AccountType.user, description="Kind of account")
    rental_id: Optional[UUID] = Field(None, description="Rental the refund relates to")


class AdminManageCreditsRequest(CreditAmountRequest):
    account_id: UUID = Field(..., description="Target user or provider")
    account_type: AccountType = Field(AccountType.user, description="Kind of account")
    action: CreditAction = Field(..., description="add | use | refund")
    note: Optional[str] = Field(None, max_length=500, description="Admin note stored in transaction metadata")


class BalanceResponse(BaseModel):
    account_id: UUID
    account_type: AccountType
    credits: float


class CreditOperationResponse(BaseModel):
    """Balance after the operation and the transaction documenting it."""
    account_id: UUID
    account_type: AccountType
    credits: float
    transaction: TransactionResponse
    message: str


class PayRentalResponse(BaseModel):
    rental_id: UUID
    amount: float
    remaining_credits: float
    rental_status: str
    transaction: TransactionResponse
    message: str
