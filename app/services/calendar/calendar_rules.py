# ===== app/services/calendar/calendar_rules.py =====
"""Weekly availability windows and one-off blocked dates for a business"""
from datetime import date, time
from typing import Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.availability import AvailabilityWindow, BlockedDate
from app.schemas.availability import Eligibility, WindowIn
from app.utils.time_utils import (
    MINUTES_PER_DAY, end_minutes, intervals_overlap, to_minutes, validate_duration,
)

logger = logging.getLogger(__name__)


class CalendarRules:
    """Answers whether an interval on a date falls inside business hours and outside blocks"""

    # ---------- queries ----------

    @staticmethod
    def active_windows(db: Session, business_id: UUID, day: date) -> List[AvailabilityWindow]:
        """Active windows for the weekday of `day`, ordered by start time"""
        return db.query(AvailabilityWindow).filter(
            AvailabilityWindow.business_id == business_id,
            AvailabilityWindow.day_of_week == day.weekday(),
            AvailabilityWindow.is_active.is_(True),
        ).order_by(AvailabilityWindow.start_time.asc()).all()

    @staticmethod
    def blocks_for(db: Session, business_id: UUID, day: date) -> List[BlockedDate]:
        return db.query(BlockedDate).filter(
            BlockedDate.business_id == business_id,
            BlockedDate.date == day,
        ).all()

    @staticmethod
    def windows_covering(
            windows: Iterable[AvailabilityWindow],
            start_min: int,
            end_min: int
    ) -> List[AvailabilityWindow]:
        """Windows that contain [start_min, end_min) entirely"""
        return [
            w for w in windows
            if to_minutes(w.start_time) <= start_min and end_min <= to_minutes(w.end_time)
        ]

    @staticmethod
    def is_blocked(blocks: Iterable[BlockedDate], start_min: int, end_min: int) -> bool:
        for block in blocks:
            if block.is_full_day:
                return True
            if intervals_overlap(start_min, end_min, to_minutes(block.start_time), to_minutes(block.end_time)):
                return True
        return False

    def is_bookable(
            self,
            db: Session,
            business_id: UUID,
            day: date,
            start: time,
            duration_minutes: int
    ) -> Eligibility:
        """Blocked dates are checked before business hours"""
        validate_duration(duration_minutes)
        start_min = to_minutes(start)
        end_min = end_minutes(start, duration_minutes)

        if self.is_blocked(self.blocks_for(db, business_id, day), start_min, end_min):
            return Eligibility(
                eligible=False,
                reason="blocked",
                message="Date/time is blocked for bookings",
            )

        if end_min > MINUTES_PER_DAY:
            return Eligibility(
                eligible=False,
                reason="out_of_hours",
                message="Service would run past midnight",
            )

        windows = self.active_windows(db, business_id, day)
        if not self.windows_covering(windows, start_min, end_min):
            return Eligibility(
                eligible=False,
                reason="out_of_hours",
                message="Outside business hours",
            )

        return Eligibility(eligible=True)

    # ---------- administration ----------

    @staticmethod
    def list_windows(
            db: Session,
            business_id: UUID,
            day_of_week: Optional[int] = None
    ) -> List[AvailabilityWindow]:
        query = db.query(AvailabilityWindow).filter(AvailabilityWindow.business_id == business_id)
        if day_of_week is not None:
            query = query.filter(AvailabilityWindow.day_of_week == day_of_week)
        return query.order_by(AvailabilityWindow.day_of_week.asc(), AvailabilityWindow.start_time.asc()).all()

    @staticmethod
    def set_windows(
            db: Session,
            business_id: UUID,
            day_of_week: int,
            windows: List[WindowIn]
    ) -> List[AvailabilityWindow]:
        """Replace every window of one weekday"""
        if not 0 <= day_of_week <= 6:
            raise ValidationError("day_of_week must be between 0 (Monday) and 6 (Sunday)", field="day_of_week")
        for window in windows:
            if window.start_time >= window.end_time:
                raise ValidationError("start_time must be before end_time", field="windows")
            if window.capacity < 1:
                raise ValidationError("capacity must be at least 1", field="windows")

        try:
            db.query(AvailabilityWindow).filter(
                AvailabilityWindow.business_id == business_id,
                AvailabilityWindow.day_of_week == day_of_week,
            ).delete(synchronize_session=False)

            created = [
                AvailabilityWindow(
                    business_id=business_id,
                    day_of_week=day_of_week,
                    start_time=w.start_time,
                    end_time=w.end_time,
                    capacity=w.capacity,
                    is_active=w.is_active,
                )
                for w in windows
            ]
            db.add_all(created)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Replaced windows for business {business_id} day {day_of_week}: {len(created)} window(s)")
        return created

    @staticmethod
    def list_blocked_dates(
            db: Session,
            business_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> List[BlockedDate]:
        query = db.query(BlockedDate).filter(BlockedDate.business_id == business_id)
        if start_date:
            query = query.filter(BlockedDate.date >= start_date)
        if end_date:
            query = query.filter(BlockedDate.date <= end_date)
        return query.order_by(BlockedDate.date.asc(), BlockedDate.start_time.asc()).all()

    @staticmethod
    def block_date(
            db: Session,
            business_id: UUID,
            day: date,
            reason: Optional[str] = None,
            is_full_day: bool = True,
            start_time: Optional[time] = None,
            end_time: Optional[time] = None
    ) -> BlockedDate:
        """Block a whole day or a time range; repeating an identical block is a no-op"""
        if is_full_day:
            start_time = end_time = None
        elif start_time is None or end_time is None or start_time >= end_time:
            raise ValidationError("Partial blocks need start_time before end_time", field="start_time")

        existing = db.query(BlockedDate).filter(
            BlockedDate.business_id == business_id,
            BlockedDate.date == day,
            BlockedDate.is_full_day.is_(is_full_day),
            BlockedDate.start_time == start_time if start_time else BlockedDate.start_time.is_(None),
            BlockedDate.end_time == end_time if end_time else BlockedDate.end_time.is_(None),
        ).first()
        if existing:
            return existing

        block = BlockedDate(
            business_id=business_id,
            date=day,
            is_full_day=is_full_day,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )
        try:
            db.add(block)
            db.commit()
            db.refresh(block)
        except Exception:
            db.rollback()
            raise

        logger.info(f"Blocked {day.isoformat()} for business {business_id} ({reason or 'no reason'})")
        return block

    @staticmethod
    def unblock_date(db: Session, business_id: UUID, day: date) -> int:
        """Remove every block on a date; returns how many were removed"""
        try:
            removed = db.query(BlockedDate).filter(
                BlockedDate.business_id == business_id,
                BlockedDate.date == day,
            ).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Unblocked {day.isoformat()} for business {business_id}: {removed} block(s) removed")
        return removed
