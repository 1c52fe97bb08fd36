# ============================================================================
# app/services/appointment/appointment_query_service.py
# Read-only appointment queries - no FastAPI dependencies, fully testable
# ============================================================================
from sqlalchemy.orm import Session
from sqlalchemy import desc
from datetime import date
from typing import Optional, Dict, Any, List
from uuid import UUID

from app.core.exceptions import NotFound
from app.models.appointment import Appointment, AppointmentStatusHistory
from app.models.enums import ACTIVE_STATUSES, AppointmentStatus
from app.services.availability.availability_service import AvailabilityService


class AppointmentQueryService:
    """Listing and lookup of appointments, always scoped to one business."""

    def __init__(self, availability_service: AvailabilityService):
        self.availability = availability_service

    def business_today(self, db: Session, business_id: UUID) -> date:
        """Current date in the business timezone"""
        tz = self.availability.business_timezone(db, business_id)
        return self.availability.local_now(tz).date()

    @staticmethod
    def list_appointments(
            db: Session,
            business_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[AppointmentStatus] = None,
            customer_ref: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Get paginated list of appointments with filters."""
        query = db.query(Appointment).filter(Appointment.business_id == business_id)

        if start_date:
            query = query.filter(Appointment.scheduled_date >= start_date)
        if end_date:
            query = query.filter(Appointment.scheduled_date <= end_date)
        if status:
            query = query.filter(Appointment.status == AppointmentStatus(status))
        if customer_ref:
            query = query.filter(Appointment.customer_ref == customer_ref)

        query = query.order_by(Appointment.scheduled_date.asc(), Appointment.scheduled_time.asc())
        total = query.count()
        appointments = query.offset(skip).limit(limit).all()

        return {
            "business_id": str(business_id),
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
                "status": AppointmentStatus(status).value if status else None,
                "customer_ref": customer_ref
            },
            "appointments": [AppointmentQueryService.serialize(appt) for appt in appointments]
        }

    @staticmethod
    def get_appointment_by_id(
            db: Session,
            business_id: UUID,
            appointment_id: UUID
    ) -> Dict[str, Any]:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == business_id
        ).first()

        if not appointment:
            raise NotFound("Appointment", appointment_id)

        return AppointmentQueryService.serialize(appointment, detailed=True)

    def get_todays_appointments(
            self,
            db: Session,
            business_id: UUID,
            today: Optional[date] = None
    ) -> Dict[str, Any]:
        """Pending, confirmed and in-service appointments for a day (default: today)."""
        today = today or self.business_today(db, business_id)

        appointments = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.scheduled_date == today,
            Appointment.status.in_(ACTIVE_STATUSES + (AppointmentStatus.IN_SERVICE,))
        ).order_by(Appointment.scheduled_time.asc()).all()

        return {
            "business_id": str(business_id),
            "date": today.isoformat(),
            "total_appointments": len(appointments),
            "appointments": [AppointmentQueryService.serialize(appt) for appt in appointments]
        }

    @staticmethod
    def get_upcoming_by_customer(
            db: Session,
            business_id: UUID,
            customer_ref: str,
            from_date: Optional[date] = None,
            limit: int = 20
    ) -> List[Dict[str, Any]]:
        """Pending/confirmed appointments of a customer from a date onward."""
        from_date = from_date or date.today()

        appointments = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.customer_ref == customer_ref,
            Appointment.scheduled_date >= from_date,
            Appointment.status.in_(ACTIVE_STATUSES)
        ).order_by(
            Appointment.scheduled_date.asc(), Appointment.scheduled_time.asc()
        ).limit(limit).all()

        return [AppointmentQueryService.serialize(appt) for appt in appointments]

    @staticmethod
    def get_status_history(
            db: Session,
            business_id: UUID,
            appointment_id: UUID
    ) -> List[Dict[str, Any]]:
        exists = db.query(Appointment.id).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == business_id
        ).first()
        if not exists:
            raise NotFound("Appointment", appointment_id)

        rows = db.query(AppointmentStatusHistory).filter(
            AppointmentStatusHistory.appointment_id == appointment_id,
            AppointmentStatusHistory.business_id == business_id
        ).order_by(AppointmentStatusHistory.created_at.asc()).all()

        return [row.to_dict() for row in rows]

    @staticmethod
    def search_appointments_by_phone(
            db: Session,
            business_id: UUID,
            phone: str,
            skip: int = 0,
            limit: int = 20
    ) -> Dict[str, Any]:
        """Search for all appointments for a specific phone number, newest first."""
        query = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.customer_phone == phone
        ).order_by(desc(Appointment.scheduled_date), desc(Appointment.scheduled_time))

        total = query.count()
        appointments = query.offset(skip).limit(limit).all()

        return {
            "business_id": str(business_id),
            "phone": phone,
            "total_appointments": total,
            "appointments": [AppointmentQueryService.serialize(appt) for appt in appointments]
        }

    @staticmethod
    def serialize(appointment: Appointment, detailed: bool = False) -> Dict[str, Any]:
        """Convert Appointment model to dictionary."""
        base = {
            "id": str(appointment.id),
            "service_id": str(appointment.service_id),
            "service_name": appointment.service_name,
            "customer_ref": appointment.customer_ref,
            "customer_name": appointment.customer_name,
            "customer_phone": appointment.customer_phone,
            "pet_name": appointment.pet_name,
            "pet_size": appointment.pet_size,
            "scheduled_date": appointment.scheduled_date.isoformat(),
            "scheduled_time": appointment.scheduled_time.strftime("%H:%M"),
            "scheduled_end_time": appointment.scheduled_end_time.strftime("%H:%M"),
            "duration_minutes": appointment.duration_minutes,
            "price": float(appointment.price) if appointment.price is not None else None,
            "status": AppointmentStatus(appointment.status).value,
            "confirmed_by_customer": appointment.confirmed_by_customer,
            "confirmed_by_company": appointment.confirmed_by_company,
            "booking_source": appointment.booking_source,
        }

        if detailed:
            base.update({
                "pet_ref": appointment.pet_ref,
                "notes": appointment.notes,
                "rebooked_from_id": str(appointment.rebooked_from_id) if appointment.rebooked_from_id else None,
                "confirmed_at": _iso(appointment.confirmed_at),
                "arrived_at": _iso(appointment.arrived_at),
                "started_at": _iso(appointment.started_at),
                "completed_at": _iso(appointment.completed_at),
                "no_show_at": _iso(appointment.no_show_at),
                "rescheduled_at": _iso(appointment.rescheduled_at),
                "cancelled_at": _iso(appointment.cancelled_at),
                "cancellation_reason": appointment.cancellation_reason,
                "cancelled_by": appointment.cancelled_by,
                "is_paid": appointment.is_paid,
                "amount_paid": float(appointment.amount_paid) if appointment.amount_paid is not None else None,
                "payment_method": appointment.payment_method,
                "rating": appointment.rating,
                "review_comment": appointment.review_comment,
                "created_at": _iso(appointment.created_at),
                "updated_at": _iso(appointment.updated_at)
            })

        return base


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None
