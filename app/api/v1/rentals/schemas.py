from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CreateRentalRequest(BaseModel):
    """
    Booking input. Only these fields are accepted; status and final price
    are always derived by the server.
    """
    vehicle_id: UUID = Field(..., description="Vehicle to rent")
    user_id: Optional[UUID] = Field(None, description="Customer to book for (admin only; ignored for other callers)")
    start_date: datetime = Field(..., description="Pickup date-time")
    return_date: datetime = Field(..., description="Agreed return date-time")
    start_time: Optional[str] = Field(None, description="Pickup time of day (HH:MM), overrides the time in start_date")
    return_time: Optional[str] = Field(None, description="Return time of day (HH:MM), overrides the time in return_date")
    price: float = Field(..., gt=0, description="Base rental price")
    service_ids: List[UUID] = Field(default_factory=list, description="Selected add-on services")
    discount_amount: Optional[float] = Field(None, ge=0, description="Explicit discount replacing the tier discount")
    pay_deposit: bool = Field(False, description="Charge the deposit from the customer's credits at booking")
    notes: Optional[str] = Field(None, max_length=1000, description="Free-form notes")

    class Config:
        extra = "forbid"


class UpdateRentalRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000, description="Free-form notes")

    class Config:
        extra = "forbid"


class RateProviderRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Stars from 1 to 5")

    class Config:
        extra = "forbid"


class RentalResponse(BaseModel):
    id: UUID
    vehicle_id: UUID
    user_id: UUID
    start_date: datetime
    return_date: datetime
    actual_return_date: Optional[datetime]
    status: str
    price: float
    service_price: float
    discount_amount: float
    final_price: float
    deposit_amount: float
    additional_charges: Optional[Dict[str, float]] = None
    service_ids: List[UUID] = []
    notes: Optional[str] = None
    is_rated: bool
    created_by_admin: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RentalListResponse(BaseModel):
    items: List[RentalResponse]
    total: int


class CompleteRentalResponse(BaseModel):
    """Returned rental plus the charges applied at return."""
    rental: RentalResponse
    days_late: int = Field(0, description="Whole days past the agreed return date")
    late_fee: float = 0
    outstanding_amount: float = Field(0, description="Amount still to be paid with credits")
    vehicle_tier: int


class ProviderRatingSummary(BaseModel):
    provider_id: UUID
    average_rating: float
    total_reviews: int
    rating_distribution: Dict[str, int]


class RateProviderResponse(BaseModel):
    rental: RentalResponse
    provider: ProviderRatingSummary
