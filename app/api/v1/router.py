"""
API v1 router setup
Organized into: public/customer routes, dashboard (professional, JWT +
active subscription), subscriptions and payment callbacks
"""
from fastapi import APIRouter

from app.api.v1 import appointments, payments, subscriptions
from app.api.v1.dashboard import appointments as dashboard_appointments, schedules

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC / CUSTOMER ROUTES (slots and guest booking need no authentication)
# ============================================================================
api_v1_router.include_router(appointments.router)

# ============================================================================
# DASHBOARD ROUTES (professional JWT + subscription gate)
# ============================================================================
api_v1_router.include_router(
    dashboard_appointments.router,
    prefix="/dashboard",
)

api_v1_router.include_router(
    schedules.router,
    prefix="/dashboard",
)

# ============================================================================
# SUBSCRIPTIONS (professional JWT, not gated)
# ============================================================================
api_v1_router.include_router(subscriptions.router)

# ============================================================================
# COLLABORATOR CALLBACKS (shared secret)
# ============================================================================
api_v1_router.include_router(payments.router)


@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """
    API information and available endpoints.
    Shows the structure of all API routes organized by authentication type.
    """
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required (slots, guest booking, plans)",
            "customer": "JWT Bearer token required",
            "dashboard": "JWT Bearer token of a professional with an active subscription",
            "payments": "X-Callback-Secret header required"
        }
    }
