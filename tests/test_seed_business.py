"""The demo seed produces a bookable business"""
from datetime import date, time

from app.models import AvailabilityWindow, Service
from app.scripts.seed_business import DEMO_SERVICES, DEMO_WINDOWS, seed_business


def test_seed_creates_services_and_windows(db):
    business = seed_business(db, timezone="UTC")

    assert db.query(Service).filter(Service.business_id == business.id).count() == len(DEMO_SERVICES)
    assert db.query(AvailabilityWindow).filter(
        AvailabilityWindow.business_id == business.id
    ).count() == len(DEMO_WINDOWS)
    assert business.booking_setting("cancellation_notice_hours") == 12


def test_seeded_hours_follow_the_weekly_plan(db, services):
    business = seed_business(db, timezone="UTC")
    rules = services.calendar_rules
    monday, saturday, sunday = date(2030, 1, 7), date(2030, 1, 12), date(2030, 1, 13)

    assert rules.is_bookable(db, business.id, monday, time(9, 0), 90).eligible is True
    assert rules.is_bookable(db, business.id, monday, time(12, 0), 60).reason == "out_of_hours"
    assert rules.is_bookable(db, business.id, saturday, time(12, 0), 60).eligible is True
    assert rules.is_bookable(db, business.id, sunday, time(10, 0), 30).reason == "out_of_hours"
