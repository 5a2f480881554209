"""Tenant service - Business logic for tenant registration and administration"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import BASE_DOMAIN
from ...models import ROLE_ADMIN, Tenant, TenantSettings, User
from ...security_utils import hash_password_bcrypt
from ...shared.validators import slug_problem
from .repository import TenantRepository
from .schemas import (
    TenantCreate,
    TenantRegister,
    TenantResponse,
    TenantSettingsResponse,
    TenantSettingsUpdate,
    TenantUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKING_HOURS = {
    "monday": {"start": "09:00", "end": "17:00", "enabled": True},
    "tuesday": {"start": "09:00", "end": "17:00", "enabled": True},
    "wednesday": {"start": "09:00", "end": "17:00", "enabled": True},
    "thursday": {"start": "09:00", "end": "17:00", "enabled": True},
    "friday": {"start": "09:00", "end": "17:00", "enabled": True},
    "saturday": {"start": "09:00", "end": "13:00", "enabled": False},
    "sunday": {"start": "09:00", "end": "17:00", "enabled": False},
}

# camelCase request field -> TenantSettings column
SETTINGS_FIELDS = {
    "businessName": "business_name",
    "businessEmail": "business_email",
    "businessPhone": "business_phone",
    "businessAddress": "business_address",
    "timeZone": "time_zone",
    "workingHours": "working_hours",
    "bookingSettings": "booking_settings",
    "emailSettings": "email_settings",
    "paymentSettings": "payment_settings",
    "cancellationSettings": "cancellation_settings",
    "stripeAccountId": "stripe_account_id",
    "commissionRate": "commission_rate",
}


def build_default_settings(data: TenantRegister, require_confirmation: bool) -> TenantSettings:
    """Settings every new tenant starts with"""
    return TenantSettings(
        business_name=data.businessName,
        business_email=data.businessEmail,
        business_phone=data.businessPhone or None,
        business_address=data.businessAddress or None,
        time_zone=data.timeZone or "UTC",
        working_hours={day: dict(hours) for day, hours in DEFAULT_WORKING_HOURS.items()},
        booking_settings={
            "enableOnlineBooking": True,
            "requireConfirmation": require_confirmation,
            "allowCancellation": True,
            "cancellationDeadline": 24,  # hours
            "bufferTime": 15,  # minutes
            "maxAdvanceBooking": 30,  # days
        },
        email_settings={
            "sendConfirmation": True,
            "sendReminder": True,
            "reminderTime": 24,
            "fromName": data.businessName,
            "fromEmail": data.businessEmail,
        },
        payment_settings={
            "enablePayments": True,
            "acceptCash": True,
            "acceptOnline": False,
            "currency": "USD",
            "requirePaymentUpfront": False,
        },
        cancellation_settings={
            "allowCancellation": True,
            "cancellationDeadlineHours": 24,
            "refundPolicy": "full",
            "partialRefundPercentage": 50,
            "requireReason": True,
            "notifyProvider": True,
            "notifyClient": True,
        },
    )


def settings_to_response(settings: Optional[TenantSettings]) -> Optional[TenantSettingsResponse]:
    if settings is None:
        return None
    return TenantSettingsResponse(
        businessName=settings.business_name,
        businessEmail=settings.business_email,
        businessPhone=settings.business_phone,
        businessAddress=settings.business_address,
        timeZone=settings.time_zone,
        workingHours=settings.working_hours,
        bookingSettings=settings.booking_settings,
        emailSettings=settings.email_settings,
        paymentSettings=settings.payment_settings,
        cancellationSettings=settings.cancellation_settings,
        commissionRate=settings.commission_rate,
        paymentsEnabled=bool(settings.stripe_account_id),
    )


class TenantService:
    """Service layer for tenant business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TenantRepository()

    def to_response(self, tenant: Tenant, with_counts: bool = False) -> TenantResponse:
        return TenantResponse(
            id=tenant.id,
            name=tenant.name,
            slug=tenant.slug,
            domain=tenant.domain,
            isActive=tenant.is_active,
            settings=settings_to_response(tenant.settings),
            counts=self.repo.counts(self.db, tenant.id) if with_counts else None,
        )

    def _ensure_email_free(self, email: str, detail: str) -> None:
        if self.db.query(User.id).filter(User.email == email).first():
            raise HTTPException(status_code=400, detail=detail)

    def _create(
        self, data: TenantRegister, domain: Optional[str], require_confirmation: bool
    ) -> Tenant:
        tenant = Tenant(name=data.name, slug=data.slug, domain=domain)
        settings = build_default_settings(data, require_confirmation)
        admin = User(
            email=data.adminEmail.lower(),
            password_hash=hash_password_bcrypt(data.adminPassword),
            name=data.adminName,
            role=ROLE_ADMIN,
            is_active=True,
        )
        tenant = self.repo.create_with_settings_and_admin(self.db, tenant, settings, admin)
        logger.info(f"✅ Tenant {tenant.slug} created with admin {admin.email}")
        return tenant

    def register(self, data: TenantRegister) -> Tenant:
        """Public registration: tenant on {slug}.<base domain>, immediate booking enabled"""
        if self.repo.get_by_slug(self.db, data.slug):
            raise HTTPException(status_code=400, detail="Subdomain is already taken")
        self._ensure_email_free(data.adminEmail.lower(), "Email address is already registered")

        return self._create(data, f"{data.slug}.{BASE_DOMAIN}", require_confirmation=False)

    def create(self, data: TenantCreate) -> Tenant:
        """Administrator-created tenant, bookings require confirmation by default"""
        if self.repo.slug_or_domain_taken(self.db, data.slug, data.domain):
            raise HTTPException(status_code=400, detail="Tenant slug or domain already exists")
        self._ensure_email_free(data.adminEmail.lower(), "Admin email already exists")

        return self._create(data, data.domain or None, require_confirmation=True)

    def check_slug(self, slug: str) -> dict:
        problem = slug_problem(slug)
        if problem:
            return {"available": False, "error": problem}
        return {"available": self.repo.get_by_slug(self.db, slug) is None, "slug": slug}

    def resolve(self, domain: Optional[str], slug: Optional[str]) -> Tenant:
        if not domain and not slug:
            raise HTTPException(status_code=400, detail="Domain or slug is required")

        tenant = self.repo.find_by_domain_or_slug(self.db, domain=domain, slug=slug)
        if not tenant:
            target = f"domain: {domain}" if domain else f"slug: {slug}"
            raise HTTPException(status_code=404, detail=f"Tenant not found for {target}")
        return tenant

    def list_tenants(self) -> list[Tenant]:
        return self.repo.list_tenants(self.db)

    def get_tenant(self, tenant_id: int, user: User) -> Tenant:
        """Admins see any tenant, everyone else only their own"""
        if user.role != ROLE_ADMIN and user.tenant_id != tenant_id:
            raise HTTPException(status_code=403, detail="Access denied")

        tenant = self.repo.get_by_id(self.db, tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")
        return tenant

    def update_tenant(self, tenant_id: int, data: TenantUpdate, user: User) -> Tenant:
        tenant = self.get_tenant(tenant_id, user)

        if data.name:
            tenant.name = data.name
        if "domain" in data.model_fields_set:
            tenant.domain = data.domain or None
        if data.isActive is not None:
            if user.role != ROLE_ADMIN:
                raise HTTPException(status_code=403, detail="Access denied")
            tenant.is_active = data.isActive

        if data.settings is not None:
            self._upsert_settings(tenant, data.settings)

        logger.info(f"✅ Tenant {tenant.id} updated by user {user.id}")
        return self.repo.save(self.db, tenant)

    def _upsert_settings(self, tenant: Tenant, updates: TenantSettingsUpdate) -> None:
        settings = tenant.settings
        if settings is None:
            settings = TenantSettings(tenant_id=tenant.id, business_name=tenant.name)
            self.db.add(settings)
            tenant.settings = settings

        for field, column in SETTINGS_FIELDS.items():
            if field in updates.model_fields_set:
                setattr(settings, column, getattr(updates, field))

    def delete_tenant(self, tenant_id: int, user: User) -> dict:
        if user.role != ROLE_ADMIN:
            raise HTTPException(status_code=403, detail="Access denied")

        tenant = self.repo.get_by_id(self.db, tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")

        counts = self.repo.counts(self.db, tenant_id)
        if counts["users"] > 0 or counts["appointments"] > 0:
            raise HTTPException(
                status_code=400, detail="Cannot delete tenant with existing users or appointments"
            )

        self.repo.delete(self.db, tenant)
        logger.info(f"🗑️ Tenant {tenant_id} deleted by user {user.id}")
        return {"message": "Tenant deleted successfully"}
