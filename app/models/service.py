# app/models/service.py
"""
Service Model - bookable service definitions
Each service belongs to one business. Appointments snapshot name, duration and
price at creation time, so edits here never change existing bookings.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base

PET_SIZES = ("small", "medium", "large")


class Service(Base):
    """
    Source of truth for price, duration and per-window capacity.
    """
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_services_duration_positive"),
        CheckConstraint("capacity_per_window >= 1", name="ck_services_capacity_positive"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core service details
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Duration in minutes
    duration = Column(Integer, nullable=False)
    capacity_per_window = Column(Integer, nullable=False, default=1)

    # Pricing: a fixed price wins, otherwise the pet-size tier applies
    price = Column(Numeric(10, 2), nullable=True)
    price_small = Column(Numeric(10, 2), nullable=True)
    price_medium = Column(Numeric(10, 2), nullable=True)
    price_large = Column(Numeric(10, 2), nullable=True)

    # Status and ordering
    is_active = Column(Boolean, default=True, index=True)
    display_order = Column(Integer, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    business = relationship("Business", back_populates="services")

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"

    def price_for(self, pet_size: Optional[str]) -> Optional[Decimal]:
        """Fixed price, or the tier price for the given pet size"""
        if self.price is not None:
            return self.price
        tiers = {
            "small": self.price_small,
            "medium": self.price_medium,
            "large": self.price_large,
        }
        return tiers.get(pet_size) if pet_size else None

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "business_id": str(self.business_id),
            "name": self.name,
            "description": self.description,
            "duration": self.duration,
            "capacity_per_window": self.capacity_per_window,
            "price": float(self.price) if self.price is not None else None,
            "price_small": float(self.price_small) if self.price_small is not None else None,
            "price_medium": float(self.price_medium) if self.price_medium is not None else None,
            "price_large": float(self.price_large) if self.price_large is not None else None,
            "is_active": self.is_active,
            "display_order": self.display_order,
        }

    @property
    def formatted_duration(self) -> str:
        """Return human-readable duration string"""
        hours = self.duration // 60
        minutes = self.duration % 60

        if hours > 0 and minutes > 0:
            return f"{hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h"
        else:
            return f"{minutes}m"
