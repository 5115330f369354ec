from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.rentals.schemas import (
    CompleteRentalResponse,
    CreateRentalRequest,
    RateProviderRequest,
    RateProviderResponse,
    RentalListResponse,
    RentalResponse,
    UpdateRentalRequest,
)
from app.api.v1.rentals.service import RentalService
from app.core.deps import (
    AuthContext,
    get_auth_context,
    get_current_admin,
    get_current_customer,
    get_current_provider,
    get_db,
)
from app.models.enums import RentalStatus

router = APIRouter()


@router.post(
    "/",
    response_model=RentalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a vehicle",
    description=(
        "Create a pending rental. Price components are computed from the customer's tier and "
        "selected services. Admins may book for another customer and are exempt from the "
        "concurrent-rental limit and the tier check."
    ),
)
async def create_rental(
    rental_data: CreateRentalRequest,
    auth: AuthContext = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    rental = await rental_service.create_rental(rental_data, auth)
    return RentalResponse.model_validate(rental)


@router.get(
    "/",
    response_model=RentalListResponse,
    summary="List my rentals",
    description="Rentals booked for the authenticated customer.",
)
async def list_my_rentals(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    status: Optional[RentalStatus] = Query(None, description="Filter by rental status"),
    auth: AuthContext = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    result = await rental_service.list_my_rentals(auth, skip=skip, limit=limit, status=status)
    return RentalListResponse(
        items=[RentalResponse.model_validate(r) for r in result["items"]],
        total=result["total"],
    )


@router.get(
    "/all",
    response_model=RentalListResponse,
    summary="List all rentals",
    description="All rentals with optional filters. Admin only.",
    dependencies=[Depends(get_current_admin)],
)
async def list_all_rentals(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    status: Optional[RentalStatus] = Query(None, description="Filter by rental status"),
    user_id: Optional[UUID] = Query(None, description="Filter by customer"),
    vehicle_id: Optional[UUID] = Query(None, description="Filter by vehicle"),
    start_from: Optional[datetime] = Query(None, description="Start date on or after"),
    start_to: Optional[datetime] = Query(None, description="Start date on or before"),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    result = await rental_service.list_all_rentals(
        skip=skip,
        limit=limit,
        status=status,
        user_id=user_id,
        vehicle_id=vehicle_id,
        start_from=start_from,
        start_to=start_to,
    )
    return RentalListResponse(
        items=[RentalResponse.model_validate(r) for r in result["items"]],
        total=result["total"],
    )


@router.get(
    "/provider",
    response_model=RentalListResponse,
    summary="List rentals of my vehicles",
    description="Rentals of vehicles owned by the authenticated provider.",
)
async def list_provider_rentals(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    status: Optional[RentalStatus] = Query(None, description="Filter by rental status"),
    auth: AuthContext = Depends(get_current_provider),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    result = await rental_service.list_provider_rentals(auth, skip=skip, limit=limit, status=status)
    return RentalListResponse(
        items=[RentalResponse.model_validate(r) for r in result["items"]],
        total=result["total"],
    )


@router.get(
    "/{rental_id}",
    response_model=RentalResponse,
    summary="Get rental by ID",
    description="Visible to the renter, the owning provider and admins.",
)
async def get_rental(
    rental_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    rental = await rental_service.get_rental(rental_id, auth)
    return RentalResponse.model_validate(rental)


@router.put(
    "/{rental_id}",
    response_model=RentalResponse,
    summary="Update rental notes",
    description="Only notes can be changed, and only while the rental is not completed or cancelled.",
)
async def update_rental(
    rental_id: UUID,
    rental_data: UpdateRentalRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    rental = await rental_service.update_rental(rental_id, rental_data, auth)
    return RentalResponse.model_validate(rental)


@router.delete(
    "/{rental_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete rental",
    description="Renter or admin. Only pending or cancelled rentals without credit transactions.",
)
async def delete_rental(
    rental_id: UUID,
    auth: AuthContext = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    return await rental_service.delete_rental(rental_id, auth)


@router.put(
    "/{rental_id}/confirm",
    response_model=RentalResponse,
    summary="Confirm rental",
    description="pending -> active. Admin or the provider owning the vehicle.",
)
async def confirm_rental(
    rental_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    rental = await rental_service.confirm_rental(rental_id, auth)
    return RentalResponse.model_validate(rental)


@router.put(
    "/{rental_id}/complete",
    response_model=CompleteRentalResponse,
    summary="Return vehicle",
    description=(
        "active -> unpaid (amount outstanding) or completed (covered by the deposit). "
        "Applies late fees and updates the provider's completed-rental count."
    ),
)
async def complete_rental(
    rental_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    result = await rental_service.complete_rental(rental_id, auth)
    return CompleteRentalResponse(
        rental=RentalResponse.model_validate(result["rental"]),
        days_late=result["days_late"],
        late_fee=result["late_fee"],
        outstanding_amount=result["outstanding_amount"],
        vehicle_tier=result["vehicle_tier"],
    )


@router.put(
    "/{rental_id}/cancel",
    response_model=RentalResponse,
    summary="Cancel rental",
    description="pending|active -> cancelled. Admin or owning provider. A paid deposit is refunded.",
)
async def cancel_rental(
    rental_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    rental = await rental_service.cancel_rental(rental_id, auth)
    return RentalResponse.model_validate(rental)


@router.put(
    "/{rental_id}/paid",
    response_model=RentalResponse,
    summary="Mark rental as paid",
    description="unpaid -> completed without moving credits. Admin or owning provider.",
)
async def mark_rental_paid(
    rental_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    rental = await rental_service.mark_paid(rental_id, auth)
    return RentalResponse.model_validate(rental)


@router.post(
    "/{rental_id}/rate",
    response_model=RateProviderResponse,
    summary="Rate the provider",
    description="Renter only, once per completed rental.",
)
async def rate_provider(
    rental_id: UUID,
    rating_data: RateProviderRequest,
    auth: AuthContext = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    rental_service = RentalService(db)
    result = await rental_service.rate_provider(rental_id, rating_data.rating, auth)
    return RateProviderResponse(
        rental=RentalResponse.model_validate(result["rental"]),
        provider=result["provider"],
    )
