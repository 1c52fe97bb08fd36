# ============================================================================
# FILE: app/api/v1/dashboard/availability.py
# Business hours, blocked dates and slot lookup - thin HTTP layer
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID
import logging

from app.api.dependencies import get_business_id, get_services
from app.config.database import get_db
from app.schemas.availability import (
    AvailabilityCheckRequest, AvailabilityResult, BlockedDateIn, DaySlotsResponse, WindowsUpdate,
)
from app.services.container import Services

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/availability", tags=["dashboard-availability"])


# ========== WINDOWS ==========

@router.get("/windows")
async def list_windows(
        day_of_week: Optional[int] = Query(None, ge=0, le=6, description="0=Monday ... 6=Sunday"),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    """List weekly availability windows."""
    windows = services.calendar_rules.list_windows(db, business_id, day_of_week)
    return {
        "business_id": str(business_id),
        "total": len(windows),
        "windows": [w.to_dict() for w in windows]
    }


@router.put("/windows/{day_of_week}")
def replace_windows(
        body: WindowsUpdate,
        day_of_week: int = Path(..., ge=0, le=6, description="0=Monday ... 6=Sunday"),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    """Replace every window of one weekday."""
    windows = services.calendar_rules.set_windows(db, business_id, day_of_week, body.windows)
    return {
        "business_id": str(business_id),
        "day_of_week": day_of_week,
        "windows": [w.to_dict() for w in windows]
    }


# ========== BLOCKED DATES ==========

@router.get("/blocked-dates")
async def list_blocked_dates(
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    blocks = services.calendar_rules.list_blocked_dates(db, business_id, start_date, end_date)
    return {
        "business_id": str(business_id),
        "total": len(blocks),
        "blocked_dates": [b.to_dict() for b in blocks]
    }


@router.post("/blocked-dates", status_code=201)
def block_date(
        body: BlockedDateIn,
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    block = services.calendar_rules.block_date(
        db,
        business_id,
        body.date,
        reason=body.reason,
        is_full_day=body.is_full_day,
        start_time=body.start_time,
        end_time=body.end_time,
    )
    return block.to_dict()


@router.delete("/blocked-dates/{blocked_date}")
def unblock_date(
        blocked_date: date = Path(..., description="Date to unblock (YYYY-MM-DD)"),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    removed = services.calendar_rules.unblock_date(db, business_id, blocked_date)
    return {"date": blocked_date.isoformat(), "removed": removed}


# ========== AVAILABILITY ==========

@router.post("/check", response_model=AvailabilityResult)
def check_availability(
        body: AvailabilityCheckRequest,
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    """Accept / reject a requested time, with alternatives when rejected."""
    return services.availability.check_availability(db, business_id, body.service_id, body.date, body.time)


@router.get("/slots", response_model=DaySlotsResponse)
def get_slots(
        service_id: UUID = Query(...),
        day: date = Query(..., alias="date"),
        step_minutes: Optional[int] = Query(None, ge=5, le=240),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    """Full slot grid for one day."""
    slots = services.availability.get_available_slots(db, business_id, service_id, day, step_minutes)
    return DaySlotsResponse(
        business_id=str(business_id),
        service_id=str(service_id),
        date=day,
        step_minutes=step_minutes or services.availability.slot_step_minutes,
        slots=slots,
    )
