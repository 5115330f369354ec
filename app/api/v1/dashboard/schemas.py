from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class VehicleTypeCount(BaseModel):
    type: str
    count: int


class RentalBrief(BaseModel):
    """Open rental line on the provider dashboard."""
    id: UUID
    start_date: datetime
    return_date: datetime
    customer_name: str
    vehicle: str = Field(..., description="Brand and model, e.g. 'Toyota Camry'")


class RentalGroup(BaseModel):
    count: int
    rentals: List[RentalBrief]


class MonthlyRevenue(BaseModel):
    amount: float = Field(..., description="Final price of rentals completed since the first of this month")
    count: int


class RecentRental(BaseModel):
    id: UUID
    status: str
    start_date: datetime
    return_date: datetime
    price: float
    customer_name: str
    customer_email: str
    vehicle_brand: str
    vehicle_model: str
    license_plate: str


class RentalStats(BaseModel):
    """Statistics over all completed rentals."""
    total_rentals: int
    total_revenue: float
    avg_duration: float = Field(..., description="Average days, 1 decimal")
    avg_rental_value: float


class ProviderDashboardResponse(BaseModel):
    provider_id: UUID
    verified: bool
    complete_rent: int
    average_rating: float
    total_reviews: int
    rating_distribution: Dict[str, int]
    total_cars: int
    available_cars: int
    rented_cars: int
    car_types: List[VehicleTypeCount]
    active_rentals: RentalGroup
    pending_rentals: RentalGroup
    monthly_revenue: MonthlyRevenue
    recent_rentals: List[RecentRental]
    rental_stats: Optional[RentalStats] = None
