# app/models/enums.py
"""Enumerations shared by models, services and schemas"""
from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_SERVICE = "in_service"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that hold capacity in a window
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

TERMINAL_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)


class ConfirmingParty(str, Enum):
    CUSTOMER = "customer"
    COMPANY = "company"


class Actor(str, Enum):
    CUSTOMER = "customer"
    COMPANY = "company"
    SYSTEM = "system"


class RecoveryStatus(str, Enum):
    ACTIVE = "active"
    RESCHEDULED = "rescheduled"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"


class RecoveryAttemptStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    PIX = "pix"
    CREDIT = "credit"
    DEBIT = "debit"
