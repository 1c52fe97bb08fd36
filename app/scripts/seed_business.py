#!/usr/bin/env python3
"""
Script to create a demo grooming business with services and weekly windows
Usage: python -m app.scripts.seed_business
"""
import sys
from datetime import time
from decimal import Decimal

from sqlalchemy.orm import Session

from app.config.database import SessionLocal, create_tables
from app.models import AvailabilityWindow, Business, Service

DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

DEMO_SERVICES = [
    {"name": "Bath", "duration": 60, "price_small": Decimal("40.00"),
     "price_medium": Decimal("55.00"), "price_large": Decimal("70.00")},
    {"name": "Bath & Haircut", "duration": 90, "price_small": Decimal("70.00"),
     "price_medium": Decimal("90.00"), "price_large": Decimal("120.00")},
    {"name": "Nail Trim", "duration": 30, "price": Decimal("20.00")},
]

# (day_of_week, start, end, capacity); Monday=0
DEMO_WINDOWS = [
    *[(day, time(9, 0), time(12, 0), 2) for day in range(0, 5)],
    *[(day, time(13, 0), time(18, 0), 2) for day in range(0, 5)],
    (5, time(9, 0), time(13, 0), 1),  # Saturday mornings only
]


def seed_business(db: Session, name: str = "Happy Paws Grooming", timezone: str = "America/Sao_Paulo") -> Business:
    """Insert a business with its services and weekly windows, returns the business"""
    business = Business(
        name=name,
        phone_number="+5511999990000",
        business_type="pet_grooming",
        timezone=timezone,
        booking_settings={
            "min_advance_hours": 2,
            "max_advance_days": 30,
            "cancellation_notice_hours": 12,
            "allow_cancellation": True,
        },
    )
    db.add(business)
    db.flush()  # Get the ID without committing

    for order, data in enumerate(DEMO_SERVICES):
        db.add(Service(business_id=business.id, display_order=order, **data))

    for day_of_week, start, end, capacity in DEMO_WINDOWS:
        db.add(AvailabilityWindow(
            business_id=business.id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            capacity=capacity,
            is_active=True,
        ))

    db.commit()
    db.refresh(business)
    return business


def main():
    create_tables()
    db: Session = SessionLocal()

    try:
        business = seed_business(db)

        print("\n" + "=" * 60)
        print("BUSINESS CREATED SUCCESSFULLY!")
        print("=" * 60)
        print(f"\nBusiness ID: {business.id}")
        print(f"Name: {business.name}")
        print(f"Timezone: {business.timezone}")
        print("\nServices:")
        for service in business.services:
            print(f"  - {service.name} ({service.formatted_duration})")
        print("\nWindows:")
        for day_of_week, start, end, capacity in DEMO_WINDOWS:
            print(f"  {DAYS[day_of_week]}: {start:%H:%M} - {end:%H:%M} (capacity {capacity})")
        print(f"\nSend it as the X-Business-ID header on /api/v1/dashboard requests")

    except Exception as e:
        db.rollback()
        print(f"\nError creating business: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
