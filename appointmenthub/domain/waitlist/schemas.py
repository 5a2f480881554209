"""Waitlist schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import WAITLIST_STATUSES


class WaitlistCreate(BaseModel):
    serviceId: int
    providerId: Optional[int] = None
    preferredDate: Optional[datetime] = None
    preferredTimeSlot: Optional[str] = None  # morning, afternoon, evening or "HH:MM-HH:MM"
    flexibleDates: bool = False
    flexibleTimes: bool = False
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: int = Field(default=1, ge=1, le=10)


class WaitlistUpdate(BaseModel):
    status: Optional[str] = None
    preferredDate: Optional[datetime] = None
    preferredTimeSlot: Optional[str] = None
    flexibleDates: Optional[bool] = None
    flexibleTimes: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Optional[int] = Field(default=None, ge=1, le=10)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is None:
            return v
        status = v.upper()
        if status not in WAITLIST_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(WAITLIST_STATUSES)}")
        return status


class AvailableSlot(BaseModel):
    startTime: datetime
    endTime: Optional[datetime] = None


class WaitlistNotifyRequest(BaseModel):
    availableSlots: Optional[list[AvailableSlot]] = None
    serviceId: Optional[int] = None
    providerId: Optional[int] = None
