from sqlalchemy import Column, String, Integer, DateTime, Numeric, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.sql import func
from app.models.base import Base
import uuid


class CustomerMetrics(Base):
    __tablename__ = "customer_metrics"
    __table_args__ = (
        UniqueConstraint("business_id", "customer_ref", name="uq_customer_metrics_business_customer"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)
    customer_ref = Column(String(100), nullable=False)

    visit_count = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(12, 2), nullable=False, default=0)
    last_visit_at = Column(DateTime(timezone=True), nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
