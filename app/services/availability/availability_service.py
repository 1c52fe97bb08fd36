# ===== app/services/availability/availability_service.py =====
from typing import Callable, List, Optional, Tuple
from datetime import date, datetime, time, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from sqlalchemy.orm import Session
from app.models.appointment import Appointment
from app.models.business import Business
from app.models.enums import ACTIVE_STATUSES
from app.models.service import Service
from app.schemas.availability import AvailabilityResult, TimeSlot
from app.services.availability.capacity_service import CapacityChecker
from app.services.availability.slot_generator import SlotGenerator
from app.services.calendar.calendar_rules import CalendarRules
from app.core.exceptions import NotFound
from app.utils.time_utils import add_minutes, end_minutes, to_minutes, utcnow
import logging

logger = logging.getLogger(__name__)


class DaySnapshot:
    """Windows, blocks and active appointments of one day, read once and evaluated in memory"""

    def __init__(self, windows, blocks, appointments):
        self.windows = windows
        self.blocks = blocks
        self.appointments = appointments

    def evaluate(self, start: time, duration_minutes: int) -> Tuple[bool, int, int]:
        """(blocked, capacity, booked) for [start, start+duration)"""
        start_min = to_minutes(start)
        end_min = end_minutes(start, duration_minutes)
        blocked = CalendarRules.is_blocked(self.blocks, start_min, end_min)
        capacity = CapacityChecker.window_capacity(self.windows, start_min, end_min)
        booked = CapacityChecker.count_overlapping(self.appointments, start_min, end_min)
        return blocked, capacity, booked


class AvailabilityService:
    """Accept / reject / suggest-alternatives decisions for a service at a time"""

    def __init__(
            self,
            calendar_rules: CalendarRules,
            capacity_checker: CapacityChecker,
            slot_step_minutes: int = 30,
            suggestion_days: int = 7,
            suggestion_limit: int = 3,
            clock: Callable[[], datetime] = utcnow
    ):
        self.calendar_rules = calendar_rules
        self.capacity_checker = capacity_checker
        self.slot_step_minutes = slot_step_minutes
        self.suggestion_days = suggestion_days
        self.suggestion_limit = suggestion_limit
        self.clock = clock

    # ---------- lookups ----------

    @staticmethod
    def get_service(db: Session, business_id: UUID, service_id: UUID) -> Optional[Service]:
        """Active service of this business, or None"""
        return db.query(Service).filter(
            Service.id == service_id,
            Service.business_id == business_id,
            Service.is_active.is_(True),
        ).first()

    @staticmethod
    def business_timezone(db: Session, business_id: UUID) -> ZoneInfo:
        business = db.query(Business).filter(Business.id == business_id).first()
        name = business.timezone if business and business.timezone else "UTC"
        try:
            return ZoneInfo(name)
        except ZoneInfoNotFoundError:
            logger.warning(f"Unknown timezone {name!r} for business {business_id}, using UTC")
            return ZoneInfo("UTC")

    def local_now(self, tz: ZoneInfo) -> datetime:
        return self.clock().astimezone(tz)

    def load_day(self, db: Session, business_id: UUID, day: date) -> DaySnapshot:
        appointments = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.scheduled_date == day,
            Appointment.status.in_(ACTIVE_STATUSES),
        ).all()
        return DaySnapshot(
            windows=self.calendar_rules.active_windows(db, business_id, day),
            blocks=self.calendar_rules.blocks_for(db, business_id, day),
            appointments=appointments,
        )

    # ---------- decisions ----------

    def check_availability(
            self,
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date,
            start: time
    ) -> AvailabilityResult:
        """
        Decide whether `service_id` can start at `day` `start`.

        Order: service, calendar rules (blocked before out-of-hours), capacity.
        Every rejection except a missing service carries suggestions.
        """
        service = self.get_service(db, business_id, service_id)
        if not service:
            return AvailabilityResult(
                available=False,
                reason="service_not_found",
                message="Service not found or inactive",
            )

        eligibility = self.calendar_rules.is_bookable(db, business_id, day, start, service.duration)
        if not eligibility.eligible:
            return AvailabilityResult(
                available=False,
                reason=eligibility.reason,
                message=eligibility.message,
                remaining_capacity=0,
                suggestions=self.suggest_alternatives(db, business_id, service, day, exclude=(day, start)),
            )

        remaining = self.capacity_checker.remaining_capacity(db, business_id, day, start, service.duration)
        if remaining <= 0:
            return AvailabilityResult(
                available=False,
                reason="capacity",
                message="Time slot is fully booked",
                remaining_capacity=0,
                suggestions=self.suggest_alternatives(db, business_id, service, day, exclude=(day, start)),
            )

        return AvailabilityResult(available=True, remaining_capacity=remaining)

    def suggest_alternatives(
            self,
            db: Session,
            business_id: UUID,
            service: Service,
            from_date: date,
            limit: Optional[int] = None,
            days: Optional[int] = None,
            step_minutes: Optional[int] = None,
            per_day: Optional[int] = None,
            exclude: Optional[Tuple[date, time]] = None,
            duration_minutes: Optional[int] = None
    ) -> List[datetime]:
        """
        First `limit` free slots from `from_date` onward, ordered by date then time.

        An empty list means nothing is free in the horizon; it is not an error.
        Slots already in the past (business local time) are never suggested.
        """
        limit = self.suggestion_limit if limit is None else limit
        days = self.suggestion_days if days is None else days
        step_minutes = step_minutes or self.slot_step_minutes
        duration = duration_minutes or service.duration

        tz = self.business_timezone(db, business_id)
        now = self.local_now(tz)
        suggestions: List[datetime] = []

        for offset in range(days):
            if len(suggestions) >= limit:
                break
            day = from_date + timedelta(days=offset)
            if day < now.date():
                continue

            snapshot = self.load_day(db, business_id, day)
            if not snapshot.windows:
                continue

            taken_today = 0
            for candidate in SlotGenerator.day_candidates(snapshot.windows, duration, step_minutes):
                if len(suggestions) >= limit or (per_day is not None and taken_today >= per_day):
                    break
                if exclude is not None and exclude == (day, candidate):
                    continue
                slot_at = datetime.combine(day, candidate, tzinfo=tz)
                if slot_at <= now:
                    continue

                blocked, capacity, booked = snapshot.evaluate(candidate, duration)
                if blocked or capacity - booked <= 0:
                    continue

                suggestions.append(slot_at)
                taken_today += 1

        logger.debug(
            f"Suggested {len(suggestions)} slot(s) for service {service.id} "
            f"from {from_date.isoformat()} over {days} day(s)"
        )
        return suggestions

    def get_available_slots(
            self,
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date,
            step_minutes: Optional[int] = None
    ) -> List[TimeSlot]:
        """Full grid of candidate slots for a day, each flagged available or not"""
        service = self.get_service(db, business_id, service_id)
        if not service:
            raise NotFound("Service", service_id)

        step_minutes = step_minutes or self.slot_step_minutes
        tz = self.business_timezone(db, business_id)
        now = self.local_now(tz)
        snapshot = self.load_day(db, business_id, day)

        slots = []
        for candidate in SlotGenerator.day_candidates(snapshot.windows, service.duration, step_minutes):
            blocked, capacity, booked = snapshot.evaluate(candidate, service.duration)
            in_past = datetime.combine(day, candidate, tzinfo=tz) <= now
            slots.append(TimeSlot(
                start=candidate,
                end=add_minutes(candidate, service.duration),
                available=not blocked and not in_past and capacity - booked > 0,
                booked=booked,
                capacity=capacity,
            ))

        logger.info(
            f"Generated {len(slots)} slot(s) for business {business_id} "
            f"service {service.id} on {day.isoformat()}"
        )
        return slots
