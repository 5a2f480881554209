from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Roles
ROLE_ADMIN = "ADMIN"
ROLE_PROVIDER = "PROVIDER"
ROLE_CLIENT = "CLIENT"
USER_ROLES = (ROLE_ADMIN, ROLE_PROVIDER, ROLE_CLIENT)

# Appointment status
APPOINTMENT_STATUSES = ("PENDING", "CONFIRMED", "COMPLETED", "CANCELLED", "NO_SHOW")
PAYMENT_METHODS = ("CASH", "ONLINE")
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED")

# Waitlist status
WAITLIST_STATUSES = ("ACTIVE", "NOTIFIED", "BOOKED", "CANCELLED", "EXPIRED")

RECURRENCE_FREQUENCIES = ("DAILY", "WEEKLY", "BIWEEKLY", "MONTHLY", "QUARTERLY", "YEARLY")


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(30), unique=True, index=True, nullable=False)
    domain = Column(String(255), unique=True, nullable=True)  # custom or {slug}.<base domain>
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    settings = relationship(
        "TenantSettings", back_populates="tenant", uselist=False, cascade="all, delete-orphan"
    )
    users = relationship("User", back_populates="tenant")
    services = relationship("Service", back_populates="tenant")
    appointments = relationship("Appointment", back_populates="tenant")


class TenantSettings(Base):
    __tablename__ = "tenant_settings"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), unique=True, nullable=False)
    business_name = Column(String(255), nullable=True)
    business_email = Column(String(255), nullable=True)
    business_phone = Column(String(50), nullable=True)
    business_address = Column(String(500), nullable=True)
    time_zone = Column(String(64), default="UTC")
    # {"monday": {"start": "09:00", "end": "17:00", "enabled": true}, ...}
    working_hours = Column(JSON, nullable=True)
    booking_settings = Column(JSON, nullable=True)
    email_settings = Column(JSON, nullable=True)
    payment_settings = Column(JSON, nullable=True)
    cancellation_settings = Column(JSON, nullable=True)
    stripe_account_id = Column(String(255), nullable=True)  # Connected account for payouts
    commission_rate = Column(Float, nullable=True)  # Platform share, e.g. 0.05
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="settings")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # Null for clients created by public booking
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), default=ROLE_CLIENT, nullable=False)  # ADMIN, PROVIDER, CLIENT
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="users")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Float, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="services")
    provider = relationship("User")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_provider_start", "provider_id", "start_time"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    recurring_appointment_id = Column(
        Integer, ForeignKey("recurring_appointments.id"), nullable=True
    )
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)
    notes = Column(Text, nullable=True)

    # Payment
    payment_method = Column(String(20), default="CASH", nullable=False)  # CASH, ONLINE
    payment_status = Column(String(20), default="PENDING", nullable=False)
    payment_amount = Column(Float, nullable=True)
    payment_intent_id = Column(String(255), nullable=True, index=True)  # Stripe payment intent
    charge_id = Column(String(255), nullable=True)  # Stripe charge, used for refunds
    platform_commission = Column(Float, nullable=True)
    business_revenue = Column(Float, nullable=True)
    refund_amount = Column(Float, nullable=True)
    refund_reason = Column(String(500), nullable=True)

    cancellation_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Google Calendar event ID
    calendar_event_id = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="appointments")
    client = relationship("User", foreign_keys=[client_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service")
    recurring_appointment = relationship("RecurringAppointment", back_populates="appointments")


class RecurringAppointment(Base):
    __tablename__ = "recurring_appointments"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    frequency = Column(String(20), nullable=False)  # DAILY, WEEKLY, BIWEEKLY, MONTHLY, ...
    interval = Column(Integer, default=1, nullable=False)
    days_of_week = Column(JSON, nullable=True)  # [0..6], 0 = Sunday
    day_of_month = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    start_time = Column(String(5), nullable=True)  # HH:MM
    end_date = Column(DateTime, nullable=True)
    max_occurrences = Column(Integer, nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    payment_method = Column(String(20), default="CASH", nullable=False)
    payment_amount = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("User", foreign_keys=[client_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service")
    appointments = relationship("Appointment", back_populates="recurring_appointment")


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    preferred_date = Column(DateTime, nullable=True)
    preferred_time_slot = Column(String(20), nullable=True)  # morning, afternoon, evening or HH:MM-HH:MM
    flexible_dates = Column(Boolean, default=False, nullable=False)
    flexible_times = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    priority = Column(Integer, default=1, nullable=False)  # 1 (low) .. 10 (high)
    status = Column(String(20), default="ACTIVE", nullable=False)
    notification_sent = Column(Boolean, default=False, nullable=False)
    notified_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("User", foreign_keys=[client_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # waitlist_joined, recurring_appointment_created, ...
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    priority = Column(String(10), default="medium", nullable=False)  # low, medium, high
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User")
