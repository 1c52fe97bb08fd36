"""
API v1 router setup
Dashboard routes for calendar rules, availability and the appointment lifecycle
"""
from fastapi import APIRouter

from app.api.v1.dashboard import appointments, availability

api_v1_router = APIRouter()

# ============================================================================
# DASHBOARD ROUTES (tenant from X-Business-ID, authenticated upstream)
# ============================================================================
api_v1_router.include_router(
    availability.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    appointments.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """
    API information and available endpoints.
    """
    return {
        "version": "1.0",
        "tenant_header": "X-Business-ID",
        "endpoints": {
            "availability": "/api/v1/dashboard/availability",
            "appointments": "/api/v1/dashboard/appointments"
        }
    }
