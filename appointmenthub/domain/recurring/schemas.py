"""Recurring appointment schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models import PAYMENT_METHODS, RECURRENCE_FREQUENCIES
from ...shared.validators import parse_hhmm


def _check_frequency(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    frequency = v.upper()
    if frequency not in RECURRENCE_FREQUENCIES:
        raise ValueError(f"Frequency must be one of: {', '.join(RECURRENCE_FREQUENCIES)}")
    return frequency


def _check_days_of_week(v: Optional[list[int]]) -> Optional[list[int]]:
    if v is None:
        return v
    if any(day < 0 or day > 6 for day in v):
        raise ValueError("Days of week must be between 0 (Sunday) and 6 (Saturday)")
    return sorted(set(v))


def _check_payment_method(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    method = v.upper()
    if method not in PAYMENT_METHODS:
        raise ValueError("Invalid payment method. Must be CASH or ONLINE")
    return method


class RecurringAppointmentCreate(BaseModel):
    frequency: str
    interval: int = Field(default=1, ge=1)
    daysOfWeek: Optional[list[int]] = None  # 0=Sunday .. 6=Saturday
    dayOfMonth: Optional[int] = Field(default=None, ge=1, le=31)
    endDate: Optional[datetime] = None
    maxOccurrences: Optional[int] = Field(default=None, ge=1)
    duration: int = Field(ge=15)
    notes: Optional[str] = None
    serviceId: int
    providerId: Optional[int] = None
    paymentMethod: str = "CASH"
    paymentAmount: Optional[float] = Field(default=None, ge=0)
    startDate: datetime
    startTime: str  # HH:MM

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        return _check_frequency(v)

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days_of_week(cls, v):
        return _check_days_of_week(v)

    @field_validator("paymentMethod")
    @classmethod
    def validate_payment_method(cls, v):
        return _check_payment_method(v)

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        parse_hhmm(v)
        return v

    @model_validator(mode="after")
    def check_rule_fields(self):
        if self.frequency in ("WEEKLY", "BIWEEKLY") and not self.daysOfWeek:
            raise ValueError("daysOfWeek is required for weekly recurrence")
        if self.frequency == "MONTHLY" and not self.dayOfMonth:
            raise ValueError("dayOfMonth is required for monthly recurrence")
        return self


class RecurringAppointmentUpdate(BaseModel):
    frequency: Optional[str] = None
    interval: Optional[int] = Field(default=None, ge=1)
    daysOfWeek: Optional[list[int]] = None
    dayOfMonth: Optional[int] = Field(default=None, ge=1, le=31)
    endDate: Optional[datetime] = None
    maxOccurrences: Optional[int] = Field(default=None, ge=1)
    duration: Optional[int] = Field(default=None, ge=15)
    notes: Optional[str] = None
    paymentMethod: Optional[str] = None
    paymentAmount: Optional[float] = Field(default=None, ge=0)
    isActive: Optional[bool] = None

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        return _check_frequency(v)

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days_of_week(cls, v):
        return _check_days_of_week(v)

    @field_validator("paymentMethod")
    @classmethod
    def validate_payment_method(cls, v):
        return _check_payment_method(v)
