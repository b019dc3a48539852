# ============================================================================
# FILE: app/api/v1/dashboard/schedules.py
# Weekly working hours of the caller's business
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Path, Response
from sqlalchemy.orm import Session
from typing import List

from app.config.database import get_db
from app.core.context import RequestContext
from app.api.dependencies import require_active_subscription
from app.schemas.working_hours import (
    WorkingHoursBulkUpdate,
    WorkingHoursCreate,
    WorkingHoursResponse,
    WorkingHoursUpdate,
)
from app.services.schedule.working_hours_service import WorkingHoursService

router = APIRouter(prefix="/schedules", tags=["dashboard-schedules"])


def _business_id(ctx: RequestContext):
    if not ctx.business_id:
        raise HTTPException(
            status_code=403,
            detail="User not associated with a business"
        )
    return ctx.business_id


@router.get("", response_model=List[WorkingHoursResponse])
async def list_schedules(
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    """Working hours of your business, Sunday first."""
    return WorkingHoursService.list_working_hours(db, _business_id(ctx))


@router.post("", response_model=WorkingHoursResponse, status_code=201)
async def create_schedule(
        data: WorkingHoursCreate,
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    return WorkingHoursService.create_working_hours(db, ctx, _business_id(ctx), data)


@router.put("/bulk", response_model=List[WorkingHoursResponse])
async def replace_schedules(
        data: WorkingHoursBulkUpdate,
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    """Replace the whole week in one go. Days left out become closed."""
    return WorkingHoursService.bulk_replace(db, ctx, _business_id(ctx), data)


@router.patch("/{hours_id}", response_model=WorkingHoursResponse)
async def update_schedule(
        data: WorkingHoursUpdate,
        hours_id: int = Path(..., description="The working hours ID"),
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    return WorkingHoursService.update_working_hours(db, ctx, hours_id, data)


@router.delete("/{hours_id}", status_code=204)
async def delete_schedule(
        hours_id: int = Path(..., description="The working hours ID"),
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    WorkingHoursService.delete_working_hours(db, ctx, hours_id)
    return Response(status_code=204)
