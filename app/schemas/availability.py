# app/schemas/availability.py
from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class Eligibility(BaseModel):
    """Calendar-rule verdict for one requested interval"""
    eligible: bool
    reason: Optional[str] = Field(None, description="blocked | out_of_hours")
    message: Optional[str] = None


class AvailabilityResult(BaseModel):
    """Accept / reject / suggest-alternatives decision"""
    available: bool
    reason: Optional[str] = Field(
        None, description="service_not_found | blocked | out_of_hours | capacity"
    )
    message: Optional[str] = None
    remaining_capacity: Optional[int] = None
    suggestions: List[datetime] = Field(default_factory=list)


class TimeSlot(BaseModel):
    start: time
    end: time
    available: bool
    booked: int = Field(..., description="Overlapping pending/confirmed appointments")
    capacity: int = Field(..., description="Summed capacity of windows covering the slot")


class AvailabilityCheckRequest(BaseModel):
    service_id: UUID
    date: date
    time: time


class DaySlotsResponse(BaseModel):
    business_id: str
    service_id: str
    date: date
    step_minutes: int
    slots: List[TimeSlot]


class WindowIn(BaseModel):
    start_time: time
    end_time: time
    capacity: int = Field(1, ge=1)
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class WindowsUpdate(BaseModel):
    windows: List[WindowIn]


class BlockedDateIn(BaseModel):
    date: date
    is_full_day: bool = True
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = Field(None, max_length=200)

    @model_validator(mode="after")
    def check_partial_range(self):
        if not self.is_full_day:
            if self.start_time is None or self.end_time is None:
                raise ValueError("partial blocks need start_time and end_time")
            if self.start_time >= self.end_time:
                raise ValueError("start_time must be before end_time")
        return self
