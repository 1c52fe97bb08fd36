from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.models.base import Base
from app.models.enums import RecoveryStatus, RecoveryAttemptStatus
import uuid


class CancellationRecovery(Base):
    """Re-engagement state for one cancelled appointment, persisted so restarts resume it"""
    __tablename__ = "cancellation_recoveries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    appointment_id = Column(Uuid(as_uuid=True), ForeignKey("appointments.id"), nullable=False, unique=True)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=RecoveryStatus.ACTIVE.value)
    attempts_sent = Column(Integer, nullable=False, default=0)
    responded = Column(Boolean, nullable=False, default=False)
    rescheduled = Column(Boolean, nullable=False, default=False)
    rebooked_appointment_id = Column(Uuid(as_uuid=True), ForeignKey("appointments.id"), nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    attempts = relationship(
        "RecoveryAttempt",
        back_populates="recovery",
        order_by="RecoveryAttempt.attempt_number",
    )

    def to_dict(self):
        return {
            "appointment_id": str(self.appointment_id),
            "status": self.status,
            "attempts_sent": self.attempts_sent,
            "responded": self.responded,
            "rescheduled": self.rescheduled,
            "attempts": [a.to_dict() for a in self.attempts],
        }


class RecoveryAttempt(Base):
    """One re-engagement message, scheduled for a point in time"""
    __tablename__ = "recovery_attempts"
    __table_args__ = (
        UniqueConstraint("appointment_id", "attempt_number", name="uq_recovery_attempts_appointment_attempt"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recovery_id = Column(Uuid(as_uuid=True), ForeignKey("cancellation_recoveries.id"), nullable=False)
    appointment_id = Column(Uuid(as_uuid=True), ForeignKey("appointments.id"), nullable=False)

    attempt_number = Column(Integer, nullable=False)  # 1 = immediate offer, 2 = delayed nudge
    status = Column(String(20), nullable=False, default=RecoveryAttemptStatus.SCHEDULED.value, index=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=False, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    message = Column(Text, nullable=True)
    error = Column(Text, nullable=True)

    recovery = relationship("CancellationRecovery", back_populates="attempts")

    def to_dict(self):
        return {
            "id": str(self.id),
            "attempt_number": self.attempt_number,
            "status": self.status,
            "scheduled_for": self.scheduled_for.isoformat() if self.scheduled_for else None,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }
