from typing import List, Optional
import logging
import math
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.api.v1.dashboard.schemas import (
    MonthlyRevenue,
    ProviderDashboardResponse,
    RecentRental,
    RentalBrief,
    RentalGroup,
    RentalStats,
    VehicleTypeCount,
)
from app.core.exceptions import AppException
from app.core.pricing import money
from app.models.enums import RentalStatus
from app.models.provider import CarProvider
from app.models.rental import Rental
from app.models.user import User
from app.models.vehicle import Vehicle


class ProviderDashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def get_dashboard_data(self, provider_id: UUID) -> ProviderDashboardResponse:
        """
        Provider dashboard: fleet counts, open rentals, revenue this month,
        recent rentals and statistics over completed rentals.
        """
        provider = await self.db.get(CarProvider, provider_id)
        if not provider:
            AppException().raise_404("Car provider not found")

        result = await self.db.execute(select(Vehicle).where(Vehicle.provider_id == provider_id))
        vehicles = list(result.scalars().all())
        total_cars = len(vehicles)
        available_cars = sum(1 for v in vehicles if v.available)

        type_counts: dict[str, int] = {}
        for vehicle in vehicles:
            type_counts[vehicle.type] = type_counts.get(vehicle.type, 0) + 1

        active = await self._open_rentals(provider_id, RentalStatus.active)
        pending = await self._open_rentals(provider_id, RentalStatus.pending)

        return ProviderDashboardResponse(
            provider_id=provider.id,
            verified=provider.verified,
            complete_rent=provider.complete_rent,
            average_rating=round(provider.average_rating or 0, 2),
            total_reviews=provider.total_reviews,
            rating_distribution=provider.rating_distribution,
            total_cars=total_cars,
            available_cars=available_cars,
            rented_cars=total_cars - available_cars,
            car_types=[VehicleTypeCount(type=t.capitalize(), count=c) for t, c in type_counts.items()],
            active_rentals=RentalGroup(count=len(active), rentals=active),
            pending_rentals=RentalGroup(count=len(pending), rentals=pending),
            monthly_revenue=await self.get_monthly_revenue(provider_id),
            recent_rentals=await self.get_recent_rentals(provider_id, limit=5),
            rental_stats=await self.get_rental_stats(provider_id),
        )

    async def _open_rentals(self, provider_id: UUID, status: RentalStatus) -> List[RentalBrief]:
        result = await self.db.execute(
            select(Rental, Vehicle, User)
            .join(Vehicle, Rental.vehicle_id == Vehicle.id)
            .join(User, Rental.user_id == User.id)
            .where(Vehicle.provider_id == provider_id, Rental.status == status.value)
            .order_by(Rental.start_date.asc())
        )
        return [
            RentalBrief(
                id=rental.id,
                start_date=rental.start_date,
                return_date=rental.return_date,
                customer_name=user.name,
                vehicle=vehicle.display_name,
            )
            for rental, vehicle, user in result.all()
        ]

    async def get_monthly_revenue(self, provider_id: UUID, now: Optional[datetime] = None) -> MonthlyRevenue:
        """Rentals completed since the first day of the current month."""
        now = now or datetime.utcnow()
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        result = await self.db.execute(
            select(func.count(Rental.id), func.coalesce(func.sum(Rental.final_price), 0))
            .join(Vehicle, Rental.vehicle_id == Vehicle.id)
            .where(
                Vehicle.provider_id == provider_id,
                Rental.status == RentalStatus.completed.value,
                Rental.actual_return_date >= start_of_month,
            )
        )
        count, amount = result.one()
        return MonthlyRevenue(amount=money(amount), count=count or 0)

    async def get_recent_rentals(self, provider_id: UUID, limit: int = 5) -> List[RecentRental]:
        result = await self.db.execute(
            select(Rental, Vehicle, User)
            .join(Vehicle, Rental.vehicle_id == Vehicle.id)
            .join(User, Rental.user_id == User.id)
            .where(
                Vehicle.provider_id == provider_id,
                Rental.status.in_(
                    [RentalStatus.completed.value, RentalStatus.active.value, RentalStatus.pending.value]
                ),
            )
            .order_by(Rental.created_at.desc())
            .limit(limit)
        )
        return [
            RecentRental(
                id=rental.id,
                status=rental.status,
                start_date=rental.start_date,
                return_date=rental.return_date,
                price=rental.final_price,
                customer_name=user.name,
                customer_email=user.email,
                vehicle_brand=vehicle.brand,
                vehicle_model=vehicle.model,
                license_plate=vehicle.license_plate,
            )
            for rental, vehicle, user in result.all()
        ]

    async def get_rental_stats(self, provider_id: UUID) -> Optional[RentalStats]:
        """None until the provider has a completed rental."""
        result = await self.db.execute(
            select(Rental.start_date, Rental.return_date, Rental.actual_return_date, Rental.final_price)
            .join(Vehicle, Rental.vehicle_id == Vehicle.id)
            .where(Vehicle.provider_id == provider_id, Rental.status == RentalStatus.completed.value)
        )
        rows = result.all()
        if not rows:
            return None

        total_revenue = sum(row.final_price or 0 for row in rows)
        total_days = 0
        for row in rows:
            end = row.actual_return_date or row.return_date
            # Returned before pickup still counts as one day
            total_days += max(math.ceil((end - row.start_date) / timedelta(days=1)), 1)
        total_rentals = len(rows)
        return RentalStats(
            total_rentals=total_rentals,
            total_revenue=money(total_revenue),
            avg_duration=round(total_days / total_rentals, 1),
            avg_rental_value=money(total_revenue / total_rentals),
        )
