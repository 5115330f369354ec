from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.dashboard.schemas import ProviderDashboardResponse
from app.api.v1.dashboard.service import ProviderDashboardService
from app.core.deps import AuthContext, get_db, get_current_provider

router = APIRouter()


@router.get(
    "/provider",
    response_model=ProviderDashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Get provider dashboard data",
    description="Fleet counts, open rentals, revenue this month, recent rentals and completed-rental statistics. Provider only.",
    tags=["provider-dashboard"],
)
async def get_provider_dashboard(
    auth: AuthContext = Depends(get_current_provider),
    db: AsyncSession = Depends(get_db),
):
    """Dashboard of the authenticated car provider."""
    dashboard_service = ProviderDashboardService(db)
    return await dashboard_service.get_dashboard_data(auth.caller_id)
