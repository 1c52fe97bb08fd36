# ===== app/services/availability/capacity_service.py =====
"""
Capacity Checker

Capacity is recomputed from live appointment rows on every call. Cancelled,
completed and no-show appointments simply stop matching the status filter, so
releasing capacity never needs a separate write.
"""
from datetime import date, time
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.models.appointment import Appointment
from app.models.availability import AvailabilityWindow
from app.models.enums import ACTIVE_STATUSES
from app.services.calendar.calendar_rules import CalendarRules
from app.utils.time_utils import (
    MINUTES_PER_DAY, add_minutes, end_minutes, intervals_overlap, to_minutes, validate_duration,
)

logger = logging.getLogger(__name__)


class CapacityChecker:

    def __init__(self, calendar_rules: CalendarRules):
        self.calendar_rules = calendar_rules

    @staticmethod
    def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
        return intervals_overlap(to_minutes(a_start), to_minutes(a_end), to_minutes(b_start), to_minutes(b_end))

    @staticmethod
    def overlapping_appointments(
            db: Session,
            business_id: UUID,
            day: date,
            start: time,
            end: time,
            exclude_appointment_id: Optional[UUID] = None
    ) -> List[Appointment]:
        """Pending/confirmed appointments on `day` whose [start, end) overlaps the interval"""
        query = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.scheduled_date == day,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.scheduled_time < end,
            Appointment.scheduled_end_time > start,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.all()

    @staticmethod
    def window_capacity(windows: List[AvailabilityWindow], start_min: int, end_min: int) -> int:
        """Sum of capacities of the windows containing the interval; overlapping windows add up"""
        return sum(
            w.capacity for w in CalendarRules.windows_covering(windows, start_min, end_min)
        )

    @staticmethod
    def count_overlapping(appointments: List[Appointment], start_min: int, end_min: int) -> int:
        return sum(
            1 for a in appointments
            if intervals_overlap(start_min, end_min, to_minutes(a.scheduled_time), to_minutes(a.scheduled_end_time))
        )

    def remaining_capacity(
            self,
            db: Session,
            business_id: UUID,
            day: date,
            start: time,
            duration_minutes: int,
            exclude_appointment_id: Optional[UUID] = None
    ) -> int:
        validate_duration(duration_minutes)
        start_min = to_minutes(start)
        end_min = end_minutes(start, duration_minutes)
        if end_min > MINUTES_PER_DAY:
            return 0

        windows = self.calendar_rules.active_windows(db, business_id, day)
        capacity = self.window_capacity(windows, start_min, end_min)
        if capacity == 0:
            return 0

        occupied = len(self.overlapping_appointments(
            db, business_id, day, start, add_minutes(start, duration_minutes),
            exclude_appointment_id=exclude_appointment_id,
        ))
        remaining = max(0, capacity - occupied)

        logger.debug(
            f"Capacity {day} {start}+{duration_minutes}m for business {business_id}: "
            f"{capacity} total, {occupied} occupied, {remaining} remaining"
        )
        return remaining
