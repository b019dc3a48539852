# ============================================================================
# FILE: app/api/v1/subscriptions.py
# Plans and the caller's subscription. Not behind the subscription gate:
# an expired professional must still be able to look at and renew it.
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.config.database import get_db
from app.core.context import RequestContext
from app.core.exceptions import NotFoundError
from app.api.dependencies import require_professional
from app.schemas.subscription import (
    SubscriptionCreate,
    SubscriptionPlanResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
)
from app.services.subscription.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _business_id(ctx: RequestContext) -> UUID:
    if not ctx.business_id:
        raise HTTPException(
            status_code=403,
            detail="User not associated with a business"
        )
    return ctx.business_id


# ============================================================================
# Plans (public)
# ============================================================================

@router.get("/plans", response_model=List[SubscriptionPlanResponse])
async def list_plans(db: Session = Depends(get_db)):
    """Active plans, cheapest first."""
    return SubscriptionService.get_plans(db)


@router.get("/plans/{plan_id}", response_model=SubscriptionPlanResponse)
async def get_plan(
        plan_id: UUID = Path(..., description="The plan ID"),
        db: Session = Depends(get_db)
):
    return SubscriptionService.get_plan_by_id(db, plan_id)


# ============================================================================
# Current subscription (professional)
# ============================================================================

@router.get("/current", response_model=SubscriptionResponse)
async def get_current_subscription(
        ctx: RequestContext = Depends(require_professional),
        db: Session = Depends(get_db)
):
    """
    The business's subscription. Reading it applies any expiry that is due,
    so the status returned is never stale.
    """
    subscription = SubscriptionService.get_current_subscription(db, _business_id(ctx))
    return SubscriptionResponse.model_validate(subscription)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
        ctx: RequestContext = Depends(require_professional),
        db: Session = Depends(get_db)
):
    business_id = _business_id(ctx)

    try:
        subscription = SubscriptionService.get_current_subscription(db, business_id)
    except NotFoundError:
        return SubscriptionStatusResponse(is_active=False)

    return SubscriptionStatusResponse(
        is_active=SubscriptionService.is_subscription_active(db, business_id),
        status=subscription.status,
        trial_days_remaining=SubscriptionService.get_trial_days_remaining(db, business_id),
    )


@router.post("", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
        data: SubscriptionCreate,
        ctx: RequestContext = Depends(require_professional),
        db: Session = Depends(get_db)
):
    """Start the trial. A business has at most one subscription."""
    subscription = SubscriptionService.create_subscription(db, _business_id(ctx), data.plan_id)
    return SubscriptionResponse.model_validate(subscription)


@router.post("/change-plan", response_model=SubscriptionResponse)
async def change_plan(
        data: SubscriptionCreate,
        ctx: RequestContext = Depends(require_professional),
        db: Session = Depends(get_db)
):
    subscription = SubscriptionService.change_plan(db, _business_id(ctx), data.plan_id)
    return SubscriptionResponse.model_validate(subscription)


@router.post("/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
        ctx: RequestContext = Depends(require_professional),
        db: Session = Depends(get_db)
):
    """Stop renewal. Access continues until the end of the current period."""
    subscription = SubscriptionService.cancel_subscription(db, _business_id(ctx))
    return SubscriptionResponse.model_validate(subscription)


@router.post("/reactivate", response_model=SubscriptionResponse)
async def reactivate_subscription(
        ctx: RequestContext = Depends(require_professional),
        db: Session = Depends(get_db)
):
    subscription = SubscriptionService.reactivate_subscription(db, _business_id(ctx))
    return SubscriptionResponse.model_validate(subscription)
