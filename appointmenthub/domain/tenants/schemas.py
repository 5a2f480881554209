"""Tenant domain schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...shared.validators import validate_slug


class TenantRegister(BaseModel):
    """Public self-service registration of a business"""

    name: str = Field(min_length=1)
    slug: str
    businessName: str = Field(min_length=1)
    businessEmail: EmailStr
    businessPhone: Optional[str] = None
    businessAddress: Optional[str] = None
    timeZone: Optional[str] = None
    adminName: str = Field(min_length=1)
    adminEmail: EmailStr
    adminPassword: str = Field(min_length=6)
    marketingOptIn: bool = False

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v):
        return validate_slug(v)


class TenantCreate(TenantRegister):
    """Tenant created by an administrator, optionally on a custom domain"""

    domain: Optional[str] = None


class SlugAvailabilityRequest(BaseModel):
    slug: str = Field(min_length=1)


class TenantResolveRequest(BaseModel):
    domain: Optional[str] = None
    slug: Optional[str] = None


class TenantSettingsUpdate(BaseModel):
    businessName: Optional[str] = None
    businessEmail: Optional[EmailStr] = None
    businessPhone: Optional[str] = None
    businessAddress: Optional[str] = None
    timeZone: Optional[str] = None
    workingHours: Optional[dict[str, Any]] = None
    bookingSettings: Optional[dict[str, Any]] = None
    emailSettings: Optional[dict[str, Any]] = None
    paymentSettings: Optional[dict[str, Any]] = None
    cancellationSettings: Optional[dict[str, Any]] = None
    stripeAccountId: Optional[str] = None
    commissionRate: Optional[float] = Field(default=None, ge=0, le=1)


class TenantUpdate(BaseModel):
    name: Optional[str] = None
    domain: Optional[str] = None
    isActive: Optional[bool] = None
    settings: Optional[TenantSettingsUpdate] = None


class TenantSettingsResponse(BaseModel):
    businessName: Optional[str] = None
    businessEmail: Optional[str] = None
    businessPhone: Optional[str] = None
    businessAddress: Optional[str] = None
    timeZone: Optional[str] = None
    workingHours: Optional[dict[str, Any]] = None
    bookingSettings: Optional[dict[str, Any]] = None
    emailSettings: Optional[dict[str, Any]] = None
    paymentSettings: Optional[dict[str, Any]] = None
    cancellationSettings: Optional[dict[str, Any]] = None
    commissionRate: Optional[float] = None
    paymentsEnabled: bool = False


class TenantResponse(BaseModel):
    id: int
    name: str
    slug: str
    domain: Optional[str] = None
    isActive: bool = True
    settings: Optional[TenantSettingsResponse] = None
    counts: Optional[dict[str, int]] = None
