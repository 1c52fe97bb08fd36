# app/schemas/appointment.py
from datetime import date, time
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.enums import Actor, AppointmentStatus, ConfirmingParty, PaymentMethod


class AppointmentCreate(BaseModel):
    """Booking request"""
    service_id: UUID
    customer_ref: str = Field(..., min_length=1, max_length=100, description="Customer identifier (chat id, phone)")
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_phone: Optional[str] = Field(None, max_length=20)
    pet_ref: Optional[str] = Field(None, max_length=100)
    pet_name: Optional[str] = Field(None, max_length=100)
    pet_size: Optional[Literal["small", "medium", "large"]] = None
    scheduled_date: date
    scheduled_time: time
    notes: Optional[str] = None
    booking_source: str = Field("whatsapp", max_length=20)
    rebooked_from_id: Optional[UUID] = Field(None, description="Cancelled appointment this booking replaces")


class ConfirmRequest(BaseModel):
    party: ConfirmingParty


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    actor: Actor = Actor.CUSTOMER


class RescheduleRequest(BaseModel):
    new_date: date
    new_time: time


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus
    actor: Actor = Actor.COMPANY
    reason: Optional[str] = Field(None, max_length=500)


class PaymentRequest(BaseModel):
    amount: Decimal = Field(..., ge=0)
    method: PaymentMethod


class ReviewRequest(BaseModel):
    # Range is enforced by the lifecycle service so the error shape matches the engine
    rating: int
    comment: Optional[str] = Field(None, max_length=1000)


class RecoveryResponseRequest(BaseModel):
    rescheduled: bool = False
