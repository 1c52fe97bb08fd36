# app/models/__init__.py
from .base import Base
from .business import Business
from .service import Service
from .availability import AvailabilityWindow, BlockedDate
from .appointment import Appointment, AppointmentStatusHistory
from .recovery import CancellationRecovery, RecoveryAttempt
from .customer_metrics import CustomerMetrics
from .enums import AppointmentStatus

__all__ = [
    "Base",
    "Business",
    "Service",
    "AvailabilityWindow",
    "BlockedDate",
    "Appointment",
    "AppointmentStatusHistory",
    "AppointmentStatus",
    "CancellationRecovery",
    "RecoveryAttempt",
    "CustomerMetrics",
]
