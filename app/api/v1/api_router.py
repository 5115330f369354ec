from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.rentals.router import router as rentals_router
from app.api.v1.credits.router import router as credits_router
from app.api.v1.dashboard.router import router as dashboard_router

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(rentals_router, prefix="/rentals", tags=["rentals"])
api_router.include_router(credits_router, prefix="/credits", tags=["credits"])
api_router.include_router(dashboard_router, prefix="/dashboard")  # Tags are defined in the router itself
