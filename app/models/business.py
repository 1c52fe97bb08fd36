# app/models/business.py
"""
Business Model - the tenant that owns services, calendar rules and appointments
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    phone_number = Column(String(20), nullable=True)
    business_type = Column(String(100), nullable=False, default="pet_grooming")

    # System configuration
    timezone = Column(String(50), default="UTC")
    # min_advance_hours, max_advance_days, cancellation_notice_hours
    booking_settings = Column(JSON, default=dict)

    services = relationship("Service", back_populates="business")

    # Technical fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"

    def booking_setting(self, key: str, default=None):
        """Value from booking_settings; the default applies only when the key is missing or null"""
        value = (self.booking_settings or {}).get(key)
        return default if value is None else value

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "name": self.name,
            "phone_number": self.phone_number,
            "business_type": self.business_type,
            "timezone": self.timezone,
            "booking_settings": self.booking_settings or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "is_active": self.is_active,
        }
