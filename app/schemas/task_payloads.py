from __future__ import annotations
# app/schemas/task_payloads.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone


class SendCustomerMessagePayload(BaseModel):
    """Payload for fire-and-forget customer messages"""
    to_phone: str = Field(..., description="Recipient phone number")
    message_body: str = Field(..., description="Message content")
    appointment_id: Optional[str] = Field(None, description="Related appointment")
    correlation_id: Optional[str] = Field(None, description="Request correlation ID")


class RecoveryAttemptPayload(BaseModel):
    """Payload for delivering one cancellation-recovery attempt"""
    attempt_id: str = Field(..., description="RecoveryAttempt ID")
    scheduled_for: datetime = Field(..., description="When the attempt becomes due")


class RecomputeCustomerMetricsPayload(BaseModel):
    """Payload for customer metric recomputation after a completed visit"""
    business_id: str = Field(..., description="Business identifier")
    customer_ref: str = Field(..., description="Customer identifier")
    requested_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
