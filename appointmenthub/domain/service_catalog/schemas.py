"""Service catalog schemas - bookable offerings of a tenant"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    duration: int = Field(gt=0, le=24 * 60)  # minutes
    price: float = Field(gt=0)
    providerId: Optional[int] = None
    imageUrl: Optional[str] = None


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0, le=24 * 60)
    price: Optional[float] = Field(default=None, gt=0)
    providerId: Optional[int] = None
    imageUrl: Optional[str] = None
    isActive: Optional[bool] = None


class ProviderSummary(BaseModel):
    id: int
    name: str
    email: str


class ServiceResponse(BaseModel):
    id: int
    tenantId: int
    providerId: Optional[int] = None
    name: str
    description: Optional[str] = None
    duration: int
    price: float
    imageUrl: Optional[str] = None
    isActive: bool
    createdAt: Optional[datetime] = None
    provider: Optional[ProviderSummary] = None
