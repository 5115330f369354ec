import logging
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.rentals.schemas import CreateRentalRequest, UpdateRentalRequest
from app.core.config import settings
from app.core.database import unit_of_work
from app.core.deps import AuthContext
from app.core.exceptions import AppException, ErrorCode
from app.core.ledger import AccountRef, Ledger
from app.core.pricing import (
    combine_date_time,
    days_late,
    final_price,
    late_fee,
    money,
    rental_duration,
    service_price,
    tier_discount,
    tier_from_spend,
    to_naive_utc,
)
from app.core.utils import ensure_non_negative_amount
from app.models.enums import OPEN_RENTAL_STATUSES, RentalStatus, TransactionType
from app.models.provider import CarProvider
from app.models.rental import Rental
from app.models.service import RentalService as AddOnService
from app.models.transaction import Transaction
from app.models.user import User
from app.models.vehicle import Vehicle

SETTLED_STATUSES = (RentalStatus.unpaid.value, RentalStatus.completed.value)
EDITABLE_STATUSES = (RentalStatus.pending.value, RentalStatus.active.value, RentalStatus.unpaid.value)
DELETABLE_STATUSES = (RentalStatus.pending.value, RentalStatus.cancelled.value)


class RentalService:
    """
    Rental state machine.

    pending -> active -> unpaid | completed, unpaid -> completed,
    pending | active -> cancelled. Every transition is a conditional UPDATE
    on the current status so a racing request is caught at write time.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = Ledger(db)
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Lookups and authorization
    # ------------------------------------------------------------------

    async def _get_rental(self, rental_id: uuid.UUID) -> Rental:
        rental = await self.db.get(Rental, rental_id)
        if not rental:
            AppException().raise_404(f"No rental with the id of {rental_id}")
        return rental

    async def _get_vehicle(self, vehicle_id: uuid.UUID) -> Vehicle:
        vehicle = await self.db.get(Vehicle, vehicle_id)
        if not vehicle:
            AppException().raise_404(f"Vehicle with id {vehicle_id} not found")
        return vehicle

    async def _current_status(self, rental_id: uuid.UUID) -> Optional[str]:
        result = await self.db.execute(select(Rental.status).where(Rental.id == rental_id))
        return result.scalar_one_or_none()

    @staticmethod
    def _is_renter(auth: AuthContext, rental: Rental) -> bool:
        return not auth.is_provider and rental.user_id == auth.caller_id

    @staticmethod
    def _owns_vehicle(auth: AuthContext, vehicle: Vehicle) -> bool:
        return auth.is_provider and vehicle.provider_id == auth.caller_id

    async def _load_services(self, service_ids: Sequence[uuid.UUID]) -> List[AddOnService]:
        unique_ids = list(dict.fromkeys(service_ids))
        if not unique_ids:
            return []
        result = await self.db.execute(select(AddOnService).where(AddOnService.id.in_(unique_ids)))
        services = list(result.scalars().all())
        found = {svc.id for svc in services}
        missing = [str(sid) for sid in unique_ids if sid not in found]
        if missing:
            AppException().raise_404(f"Service not found: {', '.join(missing)}")
        unavailable = [svc.name for svc in services if not svc.available]
        if unavailable:
            AppException().raise_409(f"Service not available: {', '.join(unavailable)}")
        return services

    async def _transition(self, rental_id: uuid.UUID, from_statuses: Sequence[str], **values) -> bool:
        """Apply `values` only if the rental is still in one of `from_statuses`."""
        result = await self.db.execute(
            update(Rental)
            .where(Rental.id == rental_id, Rental.status.in_(list(from_statuses)))
            .values(updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_rental(self, data: CreateRentalRequest, auth: AuthContext) -> Rental:
        start = combine_date_time(to_naive_utc(data.start_date), data.start_time)
        return_ = combine_date_time(to_naive_utc(data.return_date), data.return_time)
        if return_ <= start:
            AppException().raise_422("Return date must be after start date")

        # Only an administrator may book on behalf of someone else
        customer_id = data.user_id if auth.is_admin and data.user_id else auth.caller_id
        services = await self._load_services(data.service_ids)

        async with unit_of_work(self.db):
            now = datetime.utcnow()
            # Touch customer then vehicle first so competing bookings queue behind this one
            result = await self.db.execute(
                update(User)
                .where(User.id == customer_id)
                .values(updated_at=now)
                .returning(User.tier)
                .execution_options(synchronize_session=False)
            )
            customer_tier = result.scalar_one_or_none()
            if customer_tier is None:
                AppException().raise_404(f"User with id {customer_id} not found")

            result = await self.db.execute(
                update(Vehicle)
                .where(Vehicle.id == data.vehicle_id)
                .values(updated_at=now)
                .returning(Vehicle.tier, Vehicle.available)
                .execution_options(synchronize_session=False)
            )
            vehicle_row = result.one_or_none()
            if vehicle_row is None:
                AppException().raise_404(f"Vehicle with id {data.vehicle_id} not found")
            vehicle_tier, vehicle_available = vehicle_row

            if not auth.is_admin:
                open_count = await self._count_open_rentals(customer_id)
                if open_count >= settings.MAX_CONCURRENT_RENTALS:
                    AppException().raise_400(
                        f"The user with ID {customer_id} has already made {open_count} rentals",
                        code=ErrorCode.limit_exceeded,
                    )

            if not vehicle_available:
                AppException().raise_409("Vehicle is not available")
            if not auth.is_admin and customer_tier < vehicle_tier:
                AppException().raise_409(
                    f"Your tier ({customer_tier}) is too low to rent this vehicle (requires tier {vehicle_tier})"
                )
            if await self._is_vehicle_booked(data.vehicle_id, start, return_):
                AppException().raise_409("Vehicle is already booked for the requested period")

            duration = rental_duration(start, return_)
            services_total = service_price(services, duration)
            # Capped at the gross so price + service_price - discount_amount stays >= 0
            discount = min(
                tier_discount(customer_tier, data.price, services_total, data.discount_amount),
                data.price + services_total,
            )
            total = ensure_non_negative_amount(final_price(data.price, services_total, discount))

            rental = Rental(
                id=uuid.uuid4(),
                vehicle_id=data.vehicle_id,
                user_id=customer_id,
                start_date=start,
                return_date=return_,
                status=RentalStatus.pending.value,
                price=money(data.price),
                service_price=money(services_total),
                discount_amount=money(discount),
                final_price=money(total),
                deposit_amount=0,
                service_ids=[str(svc.id) for svc in services],
                notes=data.notes,
                created_by_admin=auth.is_admin,
            )
            self.db.add(rental)
            await self.db.flush()

            if data.pay_deposit:
                deposit = money(rental.final_price * settings.DEPOSIT_RATE)
                if deposit > 0:
                    await self.ledger.debit(
                        AccountRef.user(customer_id),
                        deposit,
                        TransactionType.payment,
                        f"Deposit for rental #{rental.id}",
                        reference=str(rental.id),
                        rental_id=rental.id,
                        performed_by=auth.caller_id if auth.caller_id != customer_id else None,
                        metadata={"kind": "deposit"},
                    )
                    rental.deposit_amount = deposit

            await self.db.flush()
            await self.db.refresh(rental)

        self.logger.info(
            "Rental %s created: user=%s vehicle=%s days=%s final_price=%.2f deposit=%.2f",
            rental.id,
            customer_id,
            data.vehicle_id,
            duration,
            rental.final_price,
            rental.deposit_amount,
        )
        return rental

    async def _count_open_rentals(self, customer_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Rental.id)).where(
                Rental.user_id == customer_id,
                Rental.status.in_(OPEN_RENTAL_STATUSES),
                Rental.created_by_admin.is_(False),
            )
        )
        return result.scalar_one() or 0

    async def _is_vehicle_booked(self, vehicle_id: uuid.UUID, start: datetime, return_: datetime) -> bool:
        query = select(Rental.id).where(
            Rental.vehicle_id == vehicle_id,
            Rental.status.in_(OPEN_RENTAL_STATUSES),
            Rental.return_date > start,
        )
        if settings.STRICT_RENTAL_OVERLAP:
            query = query.where(Rental.start_date < return_)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_rental(self, rental_id: uuid.UUID, auth: AuthContext) -> Rental:
        rental = await self._get_rental(rental_id)
        if auth.is_admin or self._is_renter(auth, rental):
            return rental
        vehicle = await self.db.get(Vehicle, rental.vehicle_id)
        if vehicle is None or not self._owns_vehicle(auth, vehicle):
            AppException().raise_403("Not authorized to view this rental")
        return rental

    async def _paginate(self, query, skip: int, limit: int) -> dict:
        total_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = total_result.scalar_one() or 0
        result = await self.db.execute(
            query.order_by(Rental.start_date.desc(), Rental.created_at.desc()).offset(skip).limit(limit)
        )
        return {"items": list(result.scalars().all()), "total": total}

    async def list_my_rentals(
        self,
        auth: AuthContext,
        skip: int = 0,
        limit: int = 100,
        status: Optional[RentalStatus] = None,
    ) -> dict:
        query = select(Rental).where(Rental.user_id == auth.caller_id)
        if status:
            query = query.where(Rental.status == status.value)
        return await self._paginate(query, skip, limit)

    async def list_all_rentals(
        self,
        skip: int = 0,
        limit: int = 100,
        status: Optional[RentalStatus] = None,
        user_id: Optional[uuid.UUID] = None,
        vehicle_id: Optional[uuid.UUID] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> dict:
        query = select(Rental)
        if status:
            query = query.where(Rental.status == status.value)
        if user_id:
            query = query.where(Rental.user_id == user_id)
        if vehicle_id:
            query = query.where(Rental.vehicle_id == vehicle_id)
        if start_from:
            query = query.where(Rental.start_date >= to_naive_utc(start_from))
        if start_to:
            query = query.where(Rental.start_date <= to_naive_utc(start_to))
        return await self._paginate(query, skip, limit)

    async def list_provider_rentals(
        self,
        auth: AuthContext,
        skip: int = 0,
        limit: int = 100,
        status: Optional[RentalStatus] = None,
    ) -> dict:
        query = (
            select(Rental)
            .join(Vehicle, Vehicle.id == Rental.vehicle_id)
            .where(Vehicle.provider_id == auth.caller_id)
        )
        if status:
            query = query.where(Rental.status == status.value)
        return await self._paginate(query, skip, limit)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def confirm_rental(self, rental_id: uuid.UUID, auth: AuthContext) -> Rental:
        rental = await self._get_rental(rental_id)
        vehicle = await self._get_vehicle(rental.vehicle_id)
        if not (auth.is_admin or self._owns_vehicle(auth, vehicle)):
            AppException().raise_403("Not authorized to confirm this rental")

        async with unit_of_work(self.db):
            if not await self._transition(rental.id, [RentalStatus.pending.value], status=RentalStatus.active.value):
                current = await self._current_status(rental.id)
                AppException().raise_400(
                    f"Rental cannot be confirmed from status '{current}'",
                    code=ErrorCode.invalid_transition,
                )
            await self.db.refresh(rental)

        self.logger.info("Rental %s confirmed by %s %s", rental.id, auth.role.value, auth.caller_id)
        return rental

    async def complete_rental(self, rental_id: uuid.UUID, auth: AuthContext) -> dict:
        """
        Return the vehicle. Late fees are folded into the final price; the rental
        becomes unpaid while an amount beyond the deposit is outstanding.
        """
        rental = await self._get_rental(rental_id)
        vehicle = await self._get_vehicle(rental.vehicle_id)
        if not (auth.is_admin or self._is_renter(auth, rental) or self._owns_vehicle(auth, vehicle)):
            AppException().raise_403("Not authorized to complete this rental")
        if rental.status in SETTLED_STATUSES:
            AppException().raise_400("Rental has already been completed", code=ErrorCode.already_completed)
        if rental.status != RentalStatus.active.value:
            AppException().raise_400(
                f"Rental cannot be completed from status '{rental.status}'",
                code=ErrorCode.invalid_transition,
            )

        now = datetime.utcnow()
        late_days = days_late(now, rental.return_date)
        fee = late_fee(vehicle.tier, late_days)
        charges = dict(rental.additional_charges or {})
        total = rental.final_price
        if fee > 0:
            charges["lateFee"] = money(fee)
            total = ensure_non_negative_amount(
                final_price(rental.price, rental.service_price, rental.discount_amount, fee)
            )
        total = money(total)
        outstanding = money(total - (rental.deposit_amount or 0))
        target = RentalStatus.unpaid if outstanding > 0 else RentalStatus.completed

        async with unit_of_work(self.db):
            moved = await self._transition(
                rental.id,
                [RentalStatus.active.value],
                status=target.value,
                actual_return_date=now,
                final_price=total,
                additional_charges=charges or None,
            )
            if not moved:
                current = await self._current_status(rental.id)
                if current in SETTLED_STATUSES:
                    AppException().raise_400("Rental has already been completed", code=ErrorCode.already_completed)
                AppException().raise_400(
                    f"Rental cannot be completed from status '{current}'",
                    code=ErrorCode.invalid_transition,
                )
            await self._record_spend(rental.user_id, total)
            await self._count_completed_rental(vehicle.provider_id)
            await self.db.refresh(rental)

        self.logger.info(
            "Rental %s returned: status=%s days_late=%s late_fee=%.2f final_price=%.2f",
            rental.id,
            rental.status,
            late_days,
            fee,
            rental.final_price,
        )
        return {
            "rental": rental,
            "days_late": late_days,
            "late_fee": fee,
            "outstanding_amount": max(outstanding, 0.0),
            "vehicle_tier": vehicle.tier,
        }

    async def _record_spend(self, user_id: uuid.UUID, amount: float) -> None:
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_spend=User.total_spend + amount)
            .returning(User.total_spend)
            .execution_options(synchronize_session=False)
        )
        total_spend = result.scalar_one_or_none()
        if total_spend is None:
            return
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(tier=tier_from_spend(total_spend))
            .execution_options(synchronize_session=False)
        )

    async def _count_completed_rental(self, provider_id: uuid.UUID) -> None:
        result = await self.db.execute(
            update(CarProvider)
            .where(CarProvider.id == provider_id)
            .values(complete_rent=CarProvider.complete_rent + 1)
            .returning(CarProvider.complete_rent)
            .execution_options(synchronize_session=False)
        )
        completed = result.scalar_one_or_none()
        # Exactly at the threshold: later completions never touch the flag again
        if completed == settings.PROVIDER_VERIFY_THRESHOLD:
            await self.db.execute(
                update(CarProvider)
                .where(CarProvider.id == provider_id, CarProvider.verified.is_(False))
                .values(verified=True)
                .execution_options(synchronize_session=False)
            )
            self.logger.info("Provider %s verified after %s completed rentals", provider_id, completed)

    async def cancel_rental(self, rental_id: uuid.UUID, auth: AuthContext) -> Rental:
        rental = await self._get_rental(rental_id)
        vehicle = await self._get_vehicle(rental.vehicle_id)
        if not (auth.is_admin or self._owns_vehicle(auth, vehicle)):
            AppException().raise_403("Not authorized to cancel this rental")

        async with unit_of_work(self.db):
            if not await self._transition(rental.id, OPEN_RENTAL_STATUSES, status=RentalStatus.cancelled.value):
                current = await self._current_status(rental.id)
                AppException().raise_400(
                    f"Rental has already been {current}",
                    code=ErrorCode.invalid_transition,
                )
            await self.db.refresh(rental)
            if rental.deposit_amount and rental.deposit_amount > 0:
                await self.ledger.credit(
                    AccountRef.user(rental.user_id),
                    rental.deposit_amount,
                    TransactionType.refund,
                    f"Deposit refund for cancelled rental #{rental.id}",
                    reference=str(rental.id),
                    rental_id=rental.id,
                    performed_by=auth.caller_id if auth.is_admin else None,
                    metadata={"kind": "deposit_refund", "cancelledBy": auth.role.value},
                )

        self.logger.info("Rental %s cancelled by %s %s", rental.id, auth.role.value, auth.caller_id)
        return rental

    async def mark_paid(self, rental_id: uuid.UUID, auth: AuthContext) -> Rental:
        """Settle an unpaid rental outside the credit system."""
        rental = await self._get_rental(rental_id)
        vehicle = await self._get_vehicle(rental.vehicle_id)
        if not (auth.is_admin or self._owns_vehicle(auth, vehicle)):
            AppException().raise_403("Not authorized to mark this rental as paid")

        async with unit_of_work(self.db):
            if not await self._transition(rental.id, [RentalStatus.unpaid.value], status=RentalStatus.completed.value):
                current = await self._current_status(rental.id)
                if current == RentalStatus.completed.value:
                    AppException().raise_400("Rental has already been paid", code=ErrorCode.already_paid)
                AppException().raise_400(
                    f"Only unpaid rentals can be marked as paid (current status: {current})",
                    code=ErrorCode.invalid_transition,
                )
            await self.db.refresh(rental)

        self.logger.info("Rental %s marked as paid by %s %s", rental.id, auth.role.value, auth.caller_id)
        return rental

    async def rate_provider(self, rental_id: uuid.UUID, rating: int, auth: AuthContext) -> dict:
        rental = await self._get_rental(rental_id)
        if not self._is_renter(auth, rental):
            AppException().raise_403("Only the renter can rate this rental")
        if rental.status != RentalStatus.completed.value:
            AppException().raise_400("Only completed rentals can be rated", code=ErrorCode.invalid_state)
        if rental.is_rated:
            AppException().raise_400("This rental has already been rated", code=ErrorCode.already_rated)
        vehicle = await self._get_vehicle(rental.vehicle_id)

        async with unit_of_work(self.db):
            result = await self.db.execute(
                update(Rental)
                .where(
                    Rental.id == rental.id,
                    Rental.status == RentalStatus.completed.value,
                    Rental.is_rated.is_(False),
                )
                .values(is_rated=True, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                AppException().raise_400("This rental has already been rated", code=ErrorCode.already_rated)

            # Right-hand sides see the pre-update row
            bucket = getattr(CarProvider, f"rating_{rating}")
            await self.db.execute(
                update(CarProvider)
                .where(CarProvider.id == vehicle.provider_id)
                .values(
                    {
                        CarProvider.average_rating: (
                            CarProvider.average_rating * CarProvider.total_reviews + rating
                        ) / (CarProvider.total_reviews + 1),
                        CarProvider.total_reviews: CarProvider.total_reviews + 1,
                        bucket: bucket + 1,
                    }
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.refresh(rental)
            provider = await self.db.get(CarProvider, vehicle.provider_id)
            if provider is None:
                AppException().raise_404("Car provider not found")
            await self.db.refresh(provider)

        self.logger.info("Rental %s rated %s for provider %s", rental.id, rating, provider.id)
        return {
            "rental": rental,
            "provider": {
                "provider_id": provider.id,
                "average_rating": round(provider.average_rating, 2),
                "total_reviews": provider.total_reviews,
                "rating_distribution": provider.rating_distribution,
            },
        }

    # ------------------------------------------------------------------
    # Edit / delete
    # ------------------------------------------------------------------

    async def update_rental(self, rental_id: uuid.UUID, data: UpdateRentalRequest, auth: AuthContext) -> Rental:
        rental = await self.get_rental(rental_id, auth)
        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            return rental

        async with unit_of_work(self.db):
            if not await self._transition(rental.id, EDITABLE_STATUSES, **update_data):
                current = await self._current_status(rental.id)
                AppException().raise_400(
                    f"A {current} rental cannot be modified",
                    code=ErrorCode.invalid_state,
                )
            await self.db.refresh(rental)
        return rental

    async def delete_rental(self, rental_id: uuid.UUID, auth: AuthContext) -> dict:
        rental = await self._get_rental(rental_id)
        if not (auth.is_admin or self._is_renter(auth, rental)):
            AppException().raise_403("Not authorized to delete this rental")
        if rental.status not in DELETABLE_STATUSES:
            AppException().raise_400(
                f"Only pending or cancelled rentals can be deleted (current status: {rental.status})",
                code=ErrorCode.invalid_state,
            )

        async with unit_of_work(self.db):
            entries = await self.db.execute(
                select(func.count(Transaction.id)).where(Transaction.rental_id == rental.id)
            )
            if entries.scalar_one():
                AppException().raise_400(
                    "Rental has credit transactions and cannot be deleted",
                    code=ErrorCode.invalid_state,
                )
            result = await self.db.execute(
                delete(Rental)
                .where(Rental.id == rental.id, Rental.status.in_(DELETABLE_STATUSES))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                AppException().raise_400("Rental can no longer be deleted", code=ErrorCode.invalid_state)
            self.db.expunge(rental)

        self.logger.info("Rental %s deleted by %s %s", rental_id, auth.role.value, auth.caller_id)
        return {"message": "Rental deleted successfully"}
