# ============================================================================
# app/services/appointment/appointment_service.py
# ============================================================================
"""Service for managing the appointment lifecycle"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import (
    AvailabilityConflict, ConcurrencyConflict, InvalidTransition, NotFound, ValidationError,
)
from app.models.appointment import Appointment
from app.models.business import Business
from app.models.enums import Actor, AppointmentStatus, ConfirmingParty, PaymentMethod, TERMINAL_STATUSES
from app.schemas.appointment import AppointmentCreate
from app.services.appointment.booking_lock import BookingLock
from app.services.appointment.state_machine import apply_transition, creation_history
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.capacity_service import CapacityChecker
from app.services.customer.customer_metrics_service import MetricsRecomputer
from app.services.events import appointment_events as events
from app.services.events.appointment_events import AppointmentEvent, AppointmentEventPublisher
from app.utils.time_utils import add_minutes, parse_time, utcnow, validate_duration

logger = logging.getLogger(__name__)

RESCHEDULABLE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

# Re-reads of an appointment after losing its version check
MAX_WRITE_ATTEMPTS = 3


class AppointmentService:
    """Creates appointments and drives them through the status transition table"""

    def __init__(
            self,
            availability_service: AvailabilityService,
            capacity_checker: CapacityChecker,
            booking_lock: BookingLock,
            publisher: AppointmentEventPublisher,
            recovery_service=None,
            metrics: Optional[MetricsRecomputer] = None,
            clock: Callable[[], datetime] = utcnow
    ):
        self.availability = availability_service
        self.capacity = capacity_checker
        self.booking_lock = booking_lock
        self.publisher = publisher
        self.recovery = recovery_service
        self.metrics = metrics
        self.clock = clock

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    @staticmethod
    def get(db: Session, business_id: UUID, appointment_id: UUID) -> Appointment:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == business_id,
        ).first()
        if not appointment:
            raise NotFound("Appointment", appointment_id)
        return appointment

    @staticmethod
    def _get_business(db: Session, business_id: UUID) -> Business:
        business = db.query(Business).filter(
            Business.id == business_id,
            Business.is_active.is_(True),
        ).first()
        if not business:
            raise NotFound("Business", business_id)
        return business

    def _hours_until(self, db: Session, business_id: UUID, day: date, start: time) -> float:
        tz = self.availability.business_timezone(db, business_id)
        starts_at = datetime.combine(day, start, tzinfo=tz)
        return (starts_at - self.clock()).total_seconds() / 3600

    def _check_booking_window(self, db: Session, business: Business, day: date, start: time):
        """Minimum / maximum booking advance from the business booking settings"""
        hours_until = self._hours_until(db, business.id, day, start)
        min_hours = business.booking_setting("min_advance_hours", 0)
        max_days = business.booking_setting("max_advance_days", 30)

        if hours_until < 0:
            raise ValidationError("Cannot book a time in the past", field="scheduled_time")
        if hours_until < min_hours:
            raise ValidationError(
                f"Bookings must be made at least {min_hours} hours in advance",
                field="scheduled_time"
            )
        if hours_until / 24 > max_days:
            raise ValidationError(
                f"Bookings can be made at most {max_days} days in advance",
                field="scheduled_date"
            )

    # ========================================================================
    # CREATE / RESCHEDULE
    # ========================================================================

    def create(
            self,
            db: Session,
            business_id: UUID,
            request: AppointmentCreate,
            actor: Actor = Actor.CUSTOMER
    ) -> Appointment:
        """
        Book a service at a date and time.

        A first capacity check runs without the lock so a plainly unavailable
        request gets suggestions cheaply. The check is repeated under the
        booking lock right before the insert; a slot lost in between raises
        ConcurrencyConflict so the client can retry the same slot.
        """
        business = self._get_business(db, business_id)
        start = parse_time(request.scheduled_time)

        service = self.availability.get_service(db, business_id, request.service_id)
        if not service:
            raise NotFound("Service", request.service_id)
        duration = validate_duration(service.duration, field="duration")

        if request.rebooked_from_id is not None:
            self.get(db, business_id, request.rebooked_from_id)

        self._check_booking_window(db, business, request.scheduled_date, start)

        result = self.availability.check_availability(
            db, business_id, service.id, request.scheduled_date, start
        )
        if not result.available:
            logger.info(
                f"Booking rejected for business {business_id} on {request.scheduled_date} {start}: {result.reason}"
            )
            raise AvailabilityConflict(result.reason, result.message, result.suggestions)

        now = self.clock()
        service_id, service_name = service.id, service.name
        price = service.price_for(request.pet_size)
        # The re-check under the lock must not reuse the snapshot of the checks above
        db.rollback()
        with self.booking_lock.hold(db, business_id, request.scheduled_date):
            remaining = self.capacity.remaining_capacity(
                db, business_id, request.scheduled_date, start, duration
            )
            if remaining <= 0:
                db.rollback()
                logger.warning(
                    f"Slot {request.scheduled_date} {start} filled concurrently for business {business_id}"
                )
                raise ConcurrencyConflict("The requested slot was just taken, please retry")

            appointment = Appointment(
                id=uuid4(),
                business_id=business_id,
                service_id=service_id,
                rebooked_from_id=request.rebooked_from_id,
                customer_ref=request.customer_ref,
                customer_name=request.customer_name,
                customer_phone=request.customer_phone,
                pet_ref=request.pet_ref,
                pet_name=request.pet_name,
                pet_size=request.pet_size,
                service_name=service_name,
                duration_minutes=duration,
                price=price,
                scheduled_date=request.scheduled_date,
                scheduled_time=start,
                scheduled_end_time=add_minutes(start, duration),
                notes=request.notes,
                booking_source=request.booking_source,
                status=AppointmentStatus.PENDING,
                confirmed_by_customer=False,
                confirmed_by_company=False,
                created_at=now,
                updated_at=now,
            )
            try:
                db.add(appointment)
                db.add(creation_history(appointment, actor, now))
                db.commit()
            except Exception:
                db.rollback()
                raise

        db.refresh(appointment)
        logger.info(
            f"Created appointment {appointment.id} for business {business_id} "
            f"on {appointment.scheduled_date} {appointment.scheduled_time}"
        )

        if request.rebooked_from_id is not None and self.recovery is not None:
            try:
                self.recovery.mark_rescheduled(db, business_id, request.rebooked_from_id, appointment.id)
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to close recovery for {request.rebooked_from_id}: {e}", exc_info=True)

        self._publish(events.APPOINTMENT_CREATED, appointment)
        return appointment

    def reschedule(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            new_date: date,
            new_time: time,
            actor: Actor = Actor.CUSTOMER
    ) -> Appointment:
        """
        Move a pending or confirmed appointment; status and confirmation flags are kept.

        The appointment's own slot is excluded from the occupied count, so moving
        it inside its current interval never conflicts with itself.
        """
        appointment = self.get(db, business_id, appointment_id)
        status = AppointmentStatus(appointment.status)
        if status not in RESCHEDULABLE_STATUSES:
            raise InvalidTransition(status, "rescheduled")

        business = self._get_business(db, business_id)
        start = parse_time(new_time)
        duration = appointment.duration_minutes
        self._check_booking_window(db, business, new_date, start)

        eligibility = self.availability.calendar_rules.is_bookable(db, business_id, new_date, start, duration)
        remaining = 0
        if eligibility.eligible:
            remaining = self.capacity.remaining_capacity(
                db, business_id, new_date, start, duration, exclude_appointment_id=appointment.id
            )
        if not eligibility.eligible or remaining <= 0:
            reason = eligibility.reason if not eligibility.eligible else "capacity"
            message = eligibility.message if not eligibility.eligible else "Time slot is fully booked"
            service = self.availability.get_service(db, business_id, appointment.service_id)
            suggestions = []
            if service:
                suggestions = self.availability.suggest_alternatives(
                    db, business_id, service, new_date,
                    exclude=(new_date, start), duration_minutes=duration,
                )
            raise AvailabilityConflict(reason, message, suggestions)

        db.rollback()
        with self.booking_lock.hold(db, business_id, new_date):
            db.refresh(appointment)
            status = AppointmentStatus(appointment.status)
            if status not in RESCHEDULABLE_STATUSES:
                db.rollback()
                raise InvalidTransition(status, "rescheduled")

            remaining = self.capacity.remaining_capacity(
                db, business_id, new_date, start, duration, exclude_appointment_id=appointment_id
            )
            if remaining <= 0:
                db.rollback()
                raise ConcurrencyConflict("The requested slot was just taken, please retry")

            now = self.clock()
            previous = (appointment.scheduled_date, appointment.scheduled_time)
            appointment.scheduled_date = new_date
            appointment.scheduled_time = start
            appointment.scheduled_end_time = add_minutes(start, duration)
            appointment.rescheduled_at = now
            appointment.updated_at = now
            self._commit(db, appointment_id)

        db.refresh(appointment)
        logger.info(
            f"Rescheduled appointment {appointment.id} from {previous[0]} {previous[1]} "
            f"to {new_date} {start} (by {Actor(actor).value})"
        )
        self._publish(
            events.APPOINTMENT_RESCHEDULED,
            appointment,
            previous_date=previous[0].isoformat(),
            previous_time=previous[1].strftime("%H:%M"),
        )
        return appointment

    # ========================================================================
    # STATUS TRANSITIONS
    # ========================================================================

    @staticmethod
    def _commit(db: Session, appointment_id: UUID):
        """Commit, turning a lost version check on the appointment into ConcurrencyConflict"""
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(f"Appointment {appointment_id} was modified concurrently")
            raise ConcurrencyConflict("The appointment was changed by another request, please retry")
        except Exception:
            db.rollback()
            raise

    def _transition(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            target: AppointmentStatus,
            actor: Actor,
            reason: Optional[str] = None,
            guard: Optional[Callable[[Appointment], None]] = None
    ) -> Appointment:
        """
        Apply one status change and its history row in a single commit.

        A write that loses the version check against a concurrent change is
        re-run on the freshly loaded row, so the transition table is always
        checked against the committed status.
        """
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            appointment = self.get(db, business_id, appointment_id)
            if guard is not None:
                guard(appointment)

            now = self.clock()
            previous = AppointmentStatus(appointment.status)
            history = apply_transition(appointment, target, actor, now, reason)
            appointment.updated_at = now
            db.add(history)
            try:
                self._commit(db, appointment_id)
            except ConcurrencyConflict:
                if attempt == MAX_WRITE_ATTEMPTS:
                    raise
                continue

            db.refresh(appointment)
            logger.info(
                f"Appointment {appointment_id}: {previous.value} -> {target.value} (by {Actor(actor).value})"
            )
            return appointment

    def confirm(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            party: ConfirmingParty
    ) -> Appointment:
        """
        Record one party's confirmation. Repeating it is a no-op; the status
        moves to confirmed only when the second party confirms.
        """
        party = ConfirmingParty(party)
        flag = "confirmed_by_customer" if party == ConfirmingParty.CUSTOMER else "confirmed_by_company"

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            appointment = self.get(db, business_id, appointment_id)
            status = AppointmentStatus(appointment.status)
            if status not in RESCHEDULABLE_STATUSES:
                raise InvalidTransition(status, AppointmentStatus.CONFIRMED)
            if getattr(appointment, flag):
                return appointment

            setattr(appointment, flag, True)
            now = self.clock()
            appointment.updated_at = now

            history = None
            if status == AppointmentStatus.PENDING and appointment.confirmed_by_customer and appointment.confirmed_by_company:
                history = apply_transition(appointment, AppointmentStatus.CONFIRMED, Actor(party.value), now)
                db.add(history)
            try:
                self._commit(db, appointment_id)
            except ConcurrencyConflict:
                # The other party may have confirmed meanwhile; re-read both flags
                if attempt == MAX_WRITE_ATTEMPTS:
                    raise
                continue

            db.refresh(appointment)
            logger.info(f"Appointment {appointment_id} confirmed by {party.value}")
            if history is not None:
                self._publish(events.APPOINTMENT_CONFIRMED, appointment)
            return appointment

    def _check_customer_cancellation(self, db: Session, business_id: UUID, appointment: Appointment):
        if AppointmentStatus(appointment.status) in TERMINAL_STATUSES:
            return
        business = self._get_business(db, business_id)
        if not business.booking_setting("allow_cancellation", True):
            raise ValidationError("Cancellations are not allowed for this business")
        notice_hours = business.booking_setting("cancellation_notice_hours", 0)
        hours_until = self._hours_until(db, business_id, appointment.scheduled_date, appointment.scheduled_time)
        if hours_until < notice_hours:
            raise ValidationError(
                f"Cancellations must be made at least {notice_hours} hours in advance"
            )

    def cancel(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            reason: Optional[str] = None,
            actor: Actor = Actor.CUSTOMER
    ) -> Appointment:
        actor = Actor(actor)
        guard = None
        if actor == Actor.CUSTOMER:
            def guard(appointment: Appointment):
                self._check_customer_cancellation(db, business_id, appointment)

        appointment = self._transition(
            db, business_id, appointment_id, AppointmentStatus.CANCELLED, actor, reason, guard=guard
        )

        if actor != Actor.SYSTEM and self.recovery is not None:
            try:
                self.recovery.start(db, appointment)
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to start recovery for appointment {appointment.id}: {e}", exc_info=True)

        self._publish(events.APPOINTMENT_CANCELLED, appointment, reason=reason, cancelled_by=actor.value)
        return appointment

    def register_arrival(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            actor: Actor = Actor.COMPANY
    ) -> Appointment:
        appointment = self._transition(db, business_id, appointment_id, AppointmentStatus.IN_SERVICE, Actor(actor))
        self._publish(events.APPOINTMENT_IN_SERVICE, appointment)
        return appointment

    def complete(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            actor: Actor = Actor.COMPANY
    ) -> Appointment:
        appointment = self._transition(db, business_id, appointment_id, AppointmentStatus.COMPLETED, Actor(actor))
        self._recompute_metrics(appointment)
        self._publish(events.APPOINTMENT_COMPLETED, appointment)
        return appointment

    def mark_no_show(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            actor: Actor = Actor.COMPANY
    ) -> Appointment:
        appointment = self._transition(db, business_id, appointment_id, AppointmentStatus.NO_SHOW, Actor(actor))
        self._publish(events.APPOINTMENT_NO_SHOW, appointment)
        return appointment

    def update_status(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            new_status: AppointmentStatus,
            actor: Actor = Actor.COMPANY,
            reason: Optional[str] = None
    ) -> Appointment:
        """
        Generic entry point. Confirmation through this path counts as the
        company's confirmation, so a pending appointment still needs the customer's.
        """
        new_status = AppointmentStatus(new_status)
        actor = Actor(actor)

        if new_status == AppointmentStatus.CONFIRMED:
            return self.confirm(db, business_id, appointment_id, ConfirmingParty.COMPANY)
        if new_status == AppointmentStatus.CANCELLED:
            return self.cancel(db, business_id, appointment_id, reason=reason, actor=actor)
        if new_status == AppointmentStatus.IN_SERVICE:
            return self.register_arrival(db, business_id, appointment_id, actor=actor)
        if new_status == AppointmentStatus.COMPLETED:
            return self.complete(db, business_id, appointment_id, actor=actor)
        if new_status == AppointmentStatus.NO_SHOW:
            return self.mark_no_show(db, business_id, appointment_id, actor=actor)

        appointment = self.get(db, business_id, appointment_id)
        raise InvalidTransition(appointment.status, new_status)

    # ========================================================================
    # PAYMENT / REVIEW
    # ========================================================================

    def register_payment(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            amount: Decimal,
            method: PaymentMethod
    ) -> Appointment:
        """Record that the customer paid; no money moves here"""
        amount = Decimal(str(amount))
        if amount < 0:
            raise ValidationError("Payment amount cannot be negative", field="amount")
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown payment method: {method}", field="method")

        appointment = self.get(db, business_id, appointment_id)
        if AppointmentStatus(appointment.status) == AppointmentStatus.CANCELLED:
            raise ValidationError("Cannot register payment for a cancelled appointment")

        appointment.is_paid = True
        appointment.amount_paid = amount
        appointment.payment_method = method.value
        appointment.updated_at = self.clock()
        self._commit(db, appointment_id)
        db.refresh(appointment)

        logger.info(f"Payment of {amount} ({method.value}) registered for appointment {appointment.id}")
        if AppointmentStatus(appointment.status) == AppointmentStatus.COMPLETED:
            self._recompute_metrics(appointment)
        return appointment

    def add_review(
            self,
            db: Session,
            business_id: UUID,
            appointment_id: UUID,
            rating: int,
            comment: Optional[str] = None
    ) -> Appointment:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be an integer between 1 and 5", field="rating")

        appointment = self.get(db, business_id, appointment_id)
        if AppointmentStatus(appointment.status) != AppointmentStatus.COMPLETED:
            raise ValidationError("Only completed appointments can be reviewed")

        appointment.rating = rating
        appointment.review_comment = comment
        appointment.updated_at = self.clock()
        self._commit(db, appointment_id)
        db.refresh(appointment)

        logger.info(f"Review {rating}/5 added to appointment {appointment.id}")
        return appointment

    # ========================================================================
    # SIDE EFFECTS
    # ========================================================================

    def _recompute_metrics(self, appointment: Appointment):
        if self.metrics is None:
            return
        try:
            self.metrics.recompute_customer_metrics(appointment.business_id, appointment.customer_ref)
        except Exception as e:
            logger.error(
                f"Metrics recompute failed for customer {appointment.customer_ref}: {e}",
                exc_info=True
            )

    def _publish(self, name: str, appointment: Appointment, **extra):
        payload = {
            "status": AppointmentStatus(appointment.status).value,
            "customer_ref": appointment.customer_ref,
            "customer_name": appointment.customer_name,
            "customer_phone": appointment.customer_phone,
            "pet_name": appointment.pet_name,
            "service_name": appointment.service_name,
            "scheduled_date": appointment.scheduled_date.isoformat(),
            "scheduled_time": appointment.scheduled_time.strftime("%H:%M"),
        }
        payload.update(extra)
        self.publisher.publish(AppointmentEvent(
            name=name,
            business_id=appointment.business_id,
            appointment_id=appointment.id,
            payload=payload,
        ))
