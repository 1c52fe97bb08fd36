from sqlalchemy import Column, String, Integer, Boolean, Time, Date, ForeignKey, Uuid, CheckConstraint, DateTime
from sqlalchemy.sql import func
from app.models.base import Base
import uuid


class AvailabilityWindow(Base):
    """Recurring weekly window in which bookings are accepted up to `capacity` at once"""
    __tablename__ = "availability_windows"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_availability_windows_start_before_end"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_windows_day_of_week"),
        CheckConstraint("capacity >= 1", name="ck_availability_windows_capacity"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False, index=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    capacity = Column(Integer, nullable=False, default=1)  # Simultaneous appointments

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return (
            f"<AvailabilityWindow(day={self.day_of_week}, {self.start_time}-{self.end_time}, "
            f"capacity={self.capacity})>"
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "day_of_week": self.day_of_week,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "capacity": self.capacity,
            "is_active": self.is_active,
        }


class BlockedDate(Base):
    """Specific date blocks (holidays, time-off); partial blocks carry a time range"""
    __tablename__ = "blocked_dates"
    __table_args__ = (
        CheckConstraint(
            "is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_blocked_dates_range",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    is_full_day = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String, nullable=True)  # "Holiday", "Vacation", etc.
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "date": self.date.isoformat(),
            "is_full_day": self.is_full_day,
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "reason": self.reason,
        }
