from sqlalchemy import (
    Column, String, Integer, Text, DateTime, Date, Time, Boolean, Numeric, ForeignKey, Uuid,
    Enum as SAEnum, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.models.base import Base
from app.models.enums import AppointmentStatus
import uuid


def _status_column_type(name: str) -> SAEnum:
    return SAEnum(
        AppointmentStatus,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_appointments_duration_positive"),
        CheckConstraint("scheduled_time < scheduled_end_time", name="ck_appointments_start_before_end"),
        CheckConstraint("rating IS NULL OR rating BETWEEN 1 AND 5", name="ck_appointments_rating_range"),
        Index("ix_appointments_business_date_status", "business_id", "scheduled_date", "status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)
    rebooked_from_id = Column(Uuid(as_uuid=True), ForeignKey("appointments.id"), nullable=True)

    # Customer info
    customer_ref = Column(String(100), nullable=False, index=True)
    customer_name = Column(String, nullable=True)
    customer_phone = Column(String(20), nullable=True)

    # Pet info
    pet_ref = Column(String(100), nullable=True)
    pet_name = Column(String, nullable=True)
    pet_size = Column(String(10), nullable=True)  # small, medium, large

    # Service snapshot taken at creation
    service_name = Column(String(200), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=True)

    # Scheduling
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(Time, nullable=False)
    scheduled_end_time = Column(Time, nullable=False)  # scheduled_time + duration_minutes
    notes = Column(Text, nullable=True)

    # Status tracking
    status = Column(_status_column_type("appointment_status"), nullable=False, default=AppointmentStatus.PENDING)
    booking_source = Column(String, default="whatsapp")  # whatsapp, phone, web, walk_in

    # Two-party confirmation
    confirmed_by_customer = Column(Boolean, nullable=False, default=False)
    confirmed_by_company = Column(Boolean, nullable=False, default=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    # Lifecycle timestamps
    arrived_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    no_show_at = Column(DateTime(timezone=True), nullable=True)
    rescheduled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(20), nullable=True)

    # Payment (recorded only, never processed)
    is_paid = Column(Boolean, nullable=False, default=False)
    amount_paid = Column(Numeric(10, 2), nullable=True)
    payment_method = Column(String(20), nullable=True)

    # Review
    rating = Column(Integer, nullable=True)
    review_comment = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Optimistic lock, bumped by every UPDATE; a stale write raises StaleDataError
    version_id = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}

    status_history = relationship(
        "AppointmentStatusHistory",
        back_populates="appointment",
        order_by="AppointmentStatusHistory.created_at",
    )

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, {self.scheduled_date} {self.scheduled_time}, "
            f"status={self.status})>"
        )


class AppointmentStatusHistory(Base):
    """Append-only audit trail of status changes"""
    __tablename__ = "appointment_status_history"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    appointment_id = Column(Uuid(as_uuid=True), ForeignKey("appointments.id"), nullable=False, index=True)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)

    previous_status = Column(_status_column_type("appointment_previous_status"), nullable=True)
    new_status = Column(_status_column_type("appointment_new_status"), nullable=False)
    actor = Column(String(20), nullable=False)  # customer, company, system
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    appointment = relationship("Appointment", back_populates="status_history")

    def to_dict(self):
        return {
            "id": str(self.id),
            "previous_status": self.previous_status.value if self.previous_status else None,
            "new_status": self.new_status.value,
            "actor": self.actor,
            "reason": self.reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
