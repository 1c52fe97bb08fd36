# ============================================================================
# FILE: app/api/v1/dashboard/appointments.py
# Appointment lifecycle endpoints - thin HTTP layer
# Engine errors (BookingError) are mapped to responses by the app-level handler
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from app.api.dependencies import get_business_id, get_services
from app.config.database import get_db
from app.models.enums import AppointmentStatus
from app.schemas.appointment import (
    AppointmentCreate, CancelRequest, ConfirmRequest, PaymentRequest, RecoveryResponseRequest,
    RescheduleRequest, ReviewRequest, StatusUpdateRequest,
)
from app.services.container import Services

router = APIRouter(prefix="/appointments", tags=["dashboard-appointments"])


def _detail(services: Services, appointment):
    return services.queries.serialize(appointment, detailed=True)


# ========== QUERIES ==========

@router.get("")
async def list_appointments(
        start_date: Optional[date] = Query(None, description="Filter appointments on or after this date"),
        end_date: Optional[date] = Query(None, description="Filter appointments on or before this date"),
        status: Optional[AppointmentStatus] = Query(None, description="Filter by status"),
        customer_ref: Optional[str] = Query(None, description="Filter by customer identifier"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    return services.queries.list_appointments(
        db=db,
        business_id=business_id,
        start_date=start_date,
        end_date=end_date,
        status=status,
        customer_ref=customer_ref,
        skip=skip,
        limit=limit
    )


@router.get("/today")
async def get_todays_appointments(
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    return services.queries.get_todays_appointments(db, business_id)


@router.get("/search")
async def search_by_phone(
        phone: str = Query(..., min_length=3, description="Customer phone number"),
        skip: int = Query(0, ge=0),
        limit: int = Query(20, ge=1, le=100),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    return services.queries.search_appointments_by_phone(db, business_id, phone, skip=skip, limit=limit)


@router.get("/customers/{customer_ref}/upcoming")
async def get_upcoming_by_customer(
        customer_ref: str = Path(..., description="Customer identifier"),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointments = services.queries.get_upcoming_by_customer(db, business_id, customer_ref)
    return {"customer_ref": customer_ref, "total": len(appointments), "appointments": appointments}


@router.get("/{appointment_id}")
async def get_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    return services.queries.get_appointment_by_id(db, business_id, appointment_id)


@router.get("/{appointment_id}/history")
async def get_status_history(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    history = services.queries.get_status_history(db, business_id, appointment_id)
    return {"appointment_id": str(appointment_id), "history": history}


# ========== LIFECYCLE ==========

@router.post("", status_code=201)
def create_appointment(
        body: AppointmentCreate,
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.create(db, business_id, body)
    return _detail(services, appointment)


@router.post("/{appointment_id}/confirm")
def confirm_appointment(
        body: ConfirmRequest,
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.confirm(db, business_id, appointment_id, body.party)
    return _detail(services, appointment)


@router.post("/{appointment_id}/cancel")
def cancel_appointment(
        body: CancelRequest,
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.cancel(db, business_id, appointment_id, body.reason, body.actor)
    return _detail(services, appointment)


@router.post("/{appointment_id}/reschedule")
def reschedule_appointment(
        body: RescheduleRequest,
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.reschedule(db, business_id, appointment_id, body.new_date, body.new_time)
    return _detail(services, appointment)


@router.patch("/{appointment_id}/status")
def update_status(
        body: StatusUpdateRequest,
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.update_status(
        db, business_id, appointment_id, body.status, actor=body.actor, reason=body.reason
    )
    return _detail(services, appointment)


@router.post("/{appointment_id}/arrival")
def register_arrival(
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.register_arrival(db, business_id, appointment_id)
    return _detail(services, appointment)


@router.post("/{appointment_id}/complete")
def complete_appointment(
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.complete(db, business_id, appointment_id)
    return _detail(services, appointment)


@router.post("/{appointment_id}/no-show")
def mark_no_show(
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.mark_no_show(db, business_id, appointment_id)
    return _detail(services, appointment)


@router.post("/{appointment_id}/payment")
def register_payment(
        body: PaymentRequest,
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.register_payment(db, business_id, appointment_id, body.amount, body.method)
    return _detail(services, appointment)


@router.post("/{appointment_id}/review")
def add_review(
        body: ReviewRequest,
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    appointment = services.appointments.add_review(db, business_id, appointment_id, body.rating, body.comment)
    return _detail(services, appointment)


# ========== CANCELLATION RECOVERY ==========

@router.get("/{appointment_id}/recovery")
async def get_recovery(
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    return services.recovery.get(db, business_id, appointment_id).to_dict()


@router.post("/{appointment_id}/recovery/response")
def record_recovery_response(
        body: RecoveryResponseRequest,
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    recovery = services.recovery.mark_response(db, business_id, appointment_id, rescheduled=body.rescheduled)
    return recovery.to_dict()


@router.post("/{appointment_id}/recovery/stop")
def stop_recovery(
        appointment_id: UUID = Path(...),
        business_id: UUID = Depends(get_business_id),
        services: Services = Depends(get_services),
        db: Session = Depends(get_db)
):
    return services.recovery.stop(db, business_id, appointment_id).to_dict()
