"""Typed booking errors shared by the scheduling engine and the HTTP layer."""
from datetime import datetime
from typing import Any, Dict, List, Optional


class BookingError(Exception):
    """Base exception for booking engine errors."""

    status_code = 500
    code = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": self.message}


class NotFound(BookingError):
    """Service, appointment or other tenant resource does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found" if resource_id is None else f"{resource} {resource_id} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(BookingError):
    """Malformed input (bad duration, rating out of range, missing field)."""

    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class AvailabilityConflict(BookingError):
    """Requested slot is blocked, out of hours or full."""

    status_code = 409
    code = "availability_conflict"

    def __init__(self, reason: str, message: str, suggestions: Optional[List[datetime]] = None):
        super().__init__(message)
        self.reason = reason
        self.suggestions = list(suggestions or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        data["suggestions"] = [s.isoformat() for s in self.suggestions]
        return data


class InvalidTransition(BookingError):
    """Status change not present in the transition table."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, current: Any, target: Any):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(f"Invalid status transition: {current_value} -> {target_value}")
        self.current = current
        self.target = target

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["from"] = getattr(self.current, "value", self.current)
        data["to"] = getattr(self.target, "value", self.target)
        return data


class ConcurrencyConflict(BookingError):
    """Capacity re-check failed at commit time; the client should retry."""

    status_code = 409
    code = "concurrency_conflict"
    retryable = True

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data
