# app/schemas/__init__.py
from .availability import (
    Eligibility,
    AvailabilityResult,
    TimeSlot,
    AvailabilityCheckRequest,
    DaySlotsResponse,
    WindowIn,
    WindowsUpdate,
    BlockedDateIn
)

from .appointment import (
    AppointmentCreate,
    ConfirmRequest,
    CancelRequest,
    RescheduleRequest,
    StatusUpdateRequest,
    PaymentRequest,
    ReviewRequest,
    RecoveryResponseRequest
)

from .task_payloads import (
    SendCustomerMessagePayload,
    RecoveryAttemptPayload,
    RecomputeCustomerMetricsPayload
)
