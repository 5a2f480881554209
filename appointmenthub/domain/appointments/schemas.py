"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import APPOINTMENT_STATUSES, PAYMENT_METHODS
from ...shared.validators import validate_email


def _check_payment_method(v: str) -> str:
    method = (v or "").upper()
    if method not in PAYMENT_METHODS:
        raise ValueError("Invalid payment method. Must be CASH or ONLINE")
    return method


def _check_status(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    status = v.upper()
    if status not in APPOINTMENT_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
    return status


class AppointmentCreate(BaseModel):
    serviceId: int
    providerId: int
    clientId: Optional[int] = None
    startTime: datetime
    endTime: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    paymentMethod: str = "CASH"

    @field_validator("paymentMethod")
    @classmethod
    def validate_payment_method(cls, v):
        return _check_payment_method(v)


class AppointmentUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    serviceId: Optional[int] = None
    clientId: Optional[int] = None
    providerId: Optional[int] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class AppointmentStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class CancelAppointmentRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class PublicBookingRequest(BaseModel):
    """Booking made from a tenant's public booking page"""

    serviceId: int
    providerId: int
    startTime: datetime
    endTime: Optional[datetime] = None
    clientName: str = Field(min_length=1, max_length=200)
    clientEmail: str
    clientPhone: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    paymentMethod: str = "CASH"

    @field_validator("clientEmail")
    @classmethod
    def validate_client_email(cls, v):
        return validate_email(v)

    @field_validator("paymentMethod")
    @classmethod
    def validate_payment_method(cls, v):
        return _check_payment_method(v)
