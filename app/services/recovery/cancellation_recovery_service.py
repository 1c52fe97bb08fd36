# ===== app/services/recovery/cancellation_recovery_service.py =====
"""
Cancellation recovery

After a cancellation the customer gets an immediate offer to rebook with a
few concrete slots, then one "still available" nudge a day later. Attempts
are persisted rows: the dispatcher only decides *when* deliver_attempt runs,
and resume_pending re-derives anything a restart may have dropped.
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound
from app.models.appointment import Appointment
from app.models.enums import AppointmentStatus, RecoveryAttemptStatus, RecoveryStatus
from app.models.recovery import CancellationRecovery, RecoveryAttempt
from app.services.availability.availability_service import AvailabilityService
from app.services.notification.notification_service import Notifier
from app.utils.time_utils import ensure_aware, utcnow

logger = logging.getLogger(__name__)

CLOSED_RECOVERY_STATUSES = (RecoveryStatus.RESCHEDULED.value, RecoveryStatus.STOPPED.value)


class RecoveryDispatcher(Protocol):
    def dispatch(self, attempt_id: UUID, scheduled_for: datetime) -> None:
        ...


class CeleryRecoveryDispatcher:
    """Schedules deliver_recovery_attempt on a worker at the attempt's due time"""

    def dispatch(self, attempt_id: UUID, scheduled_for: datetime) -> None:
        from app.tasks.recovery_tasks import deliver_recovery_attempt

        deliver_recovery_attempt.apply_async(
            kwargs={"attempt_id": str(attempt_id), "scheduled_for": scheduled_for.isoformat()},
            eta=scheduled_for,
        )
        logger.info(f"Recovery attempt {attempt_id} scheduled for {scheduled_for.isoformat()}")


class CancellationRecoveryService:

    def __init__(
            self,
            availability_service: AvailabilityService,
            notifier: Notifier,
            dispatcher: Optional[RecoveryDispatcher] = None,
            enabled: bool = True,
            max_attempts: int = 2,
            nudge_delay_hours: int = 24,
            suggestion_days: int = 3,
            suggestion_limit: int = 3,
            suggestions_per_day: int = 2,
            slot_step_minutes: int = 60,
            clock: Callable[[], datetime] = utcnow
    ):
        self.availability = availability_service
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.enabled = enabled
        self.max_attempts = max_attempts
        self.nudge_delay_hours = nudge_delay_hours
        self.suggestion_days = suggestion_days
        self.suggestion_limit = suggestion_limit
        self.suggestions_per_day = suggestions_per_day
        self.slot_step_minutes = slot_step_minutes
        self.clock = clock

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    @staticmethod
    def find(db: Session, business_id: UUID, appointment_id: UUID) -> Optional[CancellationRecovery]:
        return db.query(CancellationRecovery).filter(
            CancellationRecovery.appointment_id == appointment_id,
            CancellationRecovery.business_id == business_id,
        ).first()

    def get(self, db: Session, business_id: UUID, appointment_id: UUID) -> CancellationRecovery:
        recovery = self.find(db, business_id, appointment_id)
        if not recovery:
            raise NotFound("Recovery for appointment", appointment_id)
        return recovery

    def should_attempt(self, recovery: Optional[CancellationRecovery]) -> bool:
        if recovery is None:
            return True
        if recovery.rescheduled or recovery.status != RecoveryStatus.ACTIVE.value:
            return False
        return recovery.attempts_sent < self.max_attempts

    # ========================================================================
    # START
    # ========================================================================

    def start(self, db: Session, appointment: Appointment) -> Optional[CancellationRecovery]:
        """Persist the recovery plan for a cancelled appointment and dispatch its attempts"""
        if not self.enabled:
            return None
        if AppointmentStatus(appointment.status) != AppointmentStatus.CANCELLED:
            logger.warning(f"Recovery requested for appointment {appointment.id} which is not cancelled")
            return None

        recovery = self.find(db, appointment.business_id, appointment.id)
        if not self.should_attempt(recovery):
            logger.info(f"Recovery for appointment {appointment.id} is closed, not restarting")
            return recovery

        if recovery is None:
            cancelled_at = ensure_aware(appointment.cancelled_at) or self.clock()
            recovery = CancellationRecovery(
                appointment_id=appointment.id,
                business_id=appointment.business_id,
                status=RecoveryStatus.ACTIVE.value,
                attempts_sent=0,
                responded=False,
                rescheduled=False,
                started_at=self.clock(),
            )
            db.add(recovery)
            db.flush()

            due_times = [cancelled_at, cancelled_at + timedelta(hours=self.nudge_delay_hours)]
            for number, due in enumerate(due_times[:self.max_attempts], start=1):
                db.add(RecoveryAttempt(
                    recovery_id=recovery.id,
                    appointment_id=appointment.id,
                    attempt_number=number,
                    status=RecoveryAttemptStatus.SCHEDULED.value,
                    scheduled_for=due,
                ))
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise
            db.refresh(recovery)
            logger.info(f"Started recovery for appointment {appointment.id} with {len(recovery.attempts)} attempt(s)")

        self._dispatch_scheduled(db, recovery)
        return recovery

    def _dispatch_scheduled(self, db: Session, recovery: CancellationRecovery):
        pending = [a for a in recovery.attempts if a.status == RecoveryAttemptStatus.SCHEDULED.value]
        for attempt in pending:
            if self.dispatcher is not None:
                self.dispatcher.dispatch(attempt.id, ensure_aware(attempt.scheduled_for))
            elif ensure_aware(attempt.scheduled_for) <= self.clock():
                self.deliver_attempt(db, attempt.id)

    # ========================================================================
    # DELIVERY
    # ========================================================================

    def deliver_attempt(
            self,
            db: Session,
            attempt_id: UUID,
            now: Optional[datetime] = None
    ) -> Optional[RecoveryAttempt]:
        """
        Send one attempt if it is still scheduled and due.

        Safe to call repeatedly; the row is locked for the duration on PostgreSQL.
        Anything other than a due, scheduled attempt is returned untouched.
        """
        attempt = db.query(RecoveryAttempt).filter(
            RecoveryAttempt.id == attempt_id
        ).with_for_update().first()
        if not attempt:
            logger.warning(f"Recovery attempt {attempt_id} not found")
            return None
        if attempt.status != RecoveryAttemptStatus.SCHEDULED.value:
            return attempt

        now = now or self.clock()
        if ensure_aware(attempt.scheduled_for) > now:
            logger.debug(f"Recovery attempt {attempt.id} not due until {attempt.scheduled_for}")
            return attempt

        recovery = attempt.recovery
        appointment = db.query(Appointment).filter(
            Appointment.id == attempt.appointment_id,
            Appointment.business_id == recovery.business_id,
        ).first()

        if (
                appointment is None
                or recovery.rescheduled
                or recovery.status in CLOSED_RECOVERY_STATUSES
                or AppointmentStatus(appointment.status) != AppointmentStatus.CANCELLED
        ):
            attempt.status = RecoveryAttemptStatus.SKIPPED.value
            self._close_if_last(recovery, attempt)
            self._commit(db)
            logger.info(f"Skipped recovery attempt {attempt.attempt_number} for appointment {attempt.appointment_id}")
            return attempt

        message = self.build_message(db, appointment, attempt.attempt_number)
        attempt.message = message
        try:
            self.notifier.send(appointment.customer_phone, message)
            attempt.status = RecoveryAttemptStatus.SENT.value
            attempt.sent_at = now
            recovery.attempts_sent += 1
            logger.info(f"Recovery attempt {attempt.attempt_number} sent for appointment {appointment.id}")
        except Exception as e:
            attempt.status = RecoveryAttemptStatus.FAILED.value
            attempt.error = str(e)
            logger.error(
                f"Recovery attempt {attempt.attempt_number} failed for appointment {appointment.id}: {e}",
                exc_info=True
            )

        self._close_if_last(recovery, attempt)
        self._commit(db)
        return attempt

    def _close_if_last(self, recovery: CancellationRecovery, attempt: RecoveryAttempt):
        others_pending = any(
            a.status == RecoveryAttemptStatus.SCHEDULED.value
            for a in recovery.attempts if a.id != attempt.id
        )
        if not others_pending and recovery.status == RecoveryStatus.ACTIVE.value:
            recovery.status = RecoveryStatus.EXHAUSTED.value
            recovery.updated_at = self.clock()

    @staticmethod
    def _commit(db: Session):
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

    def build_message(self, db: Session, appointment: Appointment, attempt_number: int) -> str:
        pet_name = appointment.pet_name or "your pet"
        service_name = appointment.service_name

        if attempt_number > 1:
            return (
                f"Hi! Just a reminder that we can still book {service_name} for {pet_name}.\n\n"
                f"There are good times open this week and rebooking only takes a minute."
            )

        lines = [
            f"Sorry you had to cancel {service_name} for {pet_name}.",
            "",
            "Would you like to rebook now? "
        ]
        suggestions = self.suggest_slots(db, appointment)
        if not suggestions:
            lines[-1] += "There are no free times over the next few days, want us to let you know when one opens?"
            return "\n".join(lines)

        lines[-1] += "These times are available:"
        lines.append("")
        for index, slot in enumerate(suggestions, start=1):
            lines.append(f"{index}. {slot.strftime('%A %d/%m')} at {slot.strftime('%H:%M')}")
        lines.append("")
        lines.append("Which one works best for you?")
        return "\n".join(lines)

    def suggest_slots(self, db: Session, appointment: Appointment) -> List[datetime]:
        service = self.availability.get_service(db, appointment.business_id, appointment.service_id)
        if not service:
            return []
        tz = self.availability.business_timezone(db, appointment.business_id)
        return self.availability.suggest_alternatives(
            db,
            appointment.business_id,
            service,
            self.availability.local_now(tz).date(),
            limit=self.suggestion_limit,
            days=self.suggestion_days,
            step_minutes=self.slot_step_minutes,
            per_day=self.suggestions_per_day,
            duration_minutes=appointment.duration_minutes,
        )

    # ========================================================================
    # RESPONSES
    # ========================================================================

    def mark_response(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            rescheduled: bool = False,
            rebooked_appointment_id: Optional[UUID] = None
    ) -> CancellationRecovery:
        """A reply alone keeps the nudge scheduled; a reschedule closes the recovery"""
        recovery = self.get(db, business_id, appointment_id)
        recovery.responded = True
        recovery.updated_at = self.clock()

        if rescheduled:
            recovery.rescheduled = True
            recovery.status = RecoveryStatus.RESCHEDULED.value
            if rebooked_appointment_id is not None:
                recovery.rebooked_appointment_id = rebooked_appointment_id
            self._skip_remaining(recovery)

        self._commit(db)
        logger.info(
            f"Recovery response for appointment {appointment_id} "
            f"({'rescheduled' if rescheduled else 'no reschedule'})"
        )
        return recovery

    def mark_rescheduled(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            rebooked_appointment_id: UUID
    ) -> Optional[CancellationRecovery]:
        """Called when a new booking names this cancelled appointment as its origin"""
        if self.find(db, business_id, appointment_id) is None:
            return None
        return self.mark_response(
            db, business_id, appointment_id,
            rescheduled=True, rebooked_appointment_id=rebooked_appointment_id,
        )

    def stop(self, db: Session, business_id: UUID, appointment_id: UUID) -> CancellationRecovery:
        """Opt-out: no further attempts for this appointment"""
        recovery = self.get(db, business_id, appointment_id)
        if recovery.status == RecoveryStatus.ACTIVE.value:
            recovery.status = RecoveryStatus.STOPPED.value
            recovery.updated_at = self.clock()
            self._skip_remaining(recovery)
            self._commit(db)
            logger.info(f"Recovery stopped for appointment {appointment_id}")
        return recovery

    @staticmethod
    def _skip_remaining(recovery: CancellationRecovery):
        for attempt in recovery.attempts:
            if attempt.status == RecoveryAttemptStatus.SCHEDULED.value:
                attempt.status = RecoveryAttemptStatus.SKIPPED.value

    # ========================================================================
    # RESTART
    # ========================================================================

    def resume_pending(self, db: Session, now: Optional[datetime] = None) -> int:
        """Deliver every scheduled attempt that is already due; returns how many were processed"""
        now = now or self.clock()
        due_ids = [
            row.id for row in db.query(RecoveryAttempt.id).filter(
                RecoveryAttempt.status == RecoveryAttemptStatus.SCHEDULED.value,
                RecoveryAttempt.scheduled_for <= now,
            ).order_by(RecoveryAttempt.scheduled_for.asc()).all()
        ]

        processed = 0
        for attempt_id in due_ids:
            try:
                self.deliver_attempt(db, attempt_id, now=now)
                processed += 1
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to resume recovery attempt {attempt_id}: {e}", exc_info=True)

        if processed:
            logger.info(f"Resumed {processed} due recovery attempt(s)")
        return processed
