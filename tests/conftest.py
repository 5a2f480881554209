import os

# Configure the app before any appointmenthub module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
for name in ("REDIS_URL", "RESEND_API_KEY", "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REFRESH_TOKEN"):
    os.environ[name] = ""

import hashlib  # noqa: E402
import hmac  # noqa: E402
import time  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from appointmenthub.database import Base, SessionLocal, engine  # noqa: E402
from appointmenthub.domain.appointments import service as appointment_service_module  # noqa: E402
from appointmenthub.domain.tenants.schemas import TenantRegister  # noqa: E402
from appointmenthub.domain.tenants.service import build_default_settings  # noqa: E402
from appointmenthub.main import app  # noqa: E402
from appointmenthub.models import (  # noqa: E402
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_PROVIDER,
    Appointment,
    Service,
    Tenant,
    User,
)
from appointmenthub.routes import contact as contact_module  # noqa: E402
from appointmenthub.routes import payments as payments_module  # noqa: E402
from appointmenthub.security_utils import create_session_token, hash_password_bcrypt  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Record emails and calendar calls instead of talking to Resend and Google"""
    sent = SimpleNamespace(emails=[], calendar=[])

    def recorder(kind):
        async def record(*args, **kwargs):
            sent.emails.append((kind, args, kwargs))
            return {"id": f"email_{len(sent.emails)}"}

        return record

    async def create_event(event):
        sent.calendar.append(("create", event))
        return f"evt_{len(sent.calendar)}"

    async def update_event(event_id, event):
        sent.calendar.append(("update", event_id))
        return True

    async def delete_event(event_id):
        sent.calendar.append(("delete", event_id))
        return True

    monkeypatch.setattr(
        appointment_service_module, "send_appointment_confirmation", recorder("confirmation")
    )
    monkeypatch.setattr(
        appointment_service_module, "send_appointment_cancellation", recorder("cancellation")
    )
    monkeypatch.setattr(appointment_service_module, "create_appointment_event", create_event)
    monkeypatch.setattr(appointment_service_module, "update_appointment_event", update_event)
    monkeypatch.setattr(appointment_service_module, "delete_appointment_event", delete_event)
    monkeypatch.setattr(payments_module, "send_payment_confirmation", recorder("payment_confirmation"))
    monkeypatch.setattr(payments_module, "send_payment_failure", recorder("payment_failure"))
    monkeypatch.setattr(contact_module, "send_email", recorder("contact"))
    return sent


def make_tenant(db, slug="acme", name="Acme Studio", require_confirmation=False) -> Tenant:
    tenant = Tenant(name=name, slug=slug, domain=f"{slug}.appointmenthub.com")
    db.add(tenant)
    db.flush()

    settings = build_default_settings(
        TenantRegister(
            name=name,
            slug=slug,
            businessName=name,
            businessEmail=f"hello@{slug}.example.com",
            adminName="Owner",
            adminEmail=f"owner@{slug}.example.com",
            adminPassword=PASSWORD,
        ),
        require_confirmation,
    )
    settings.tenant_id = tenant.id
    # Open every day so tests do not depend on the weekday they run on
    settings.working_hours = {
        day: {"start": "08:00", "end": "18:00", "enabled": True}
        for day in settings.working_hours
    }
    db.add(settings)
    db.commit()
    db.refresh(tenant)
    return tenant


def make_user(db, tenant, role, email, name=None, password=PASSWORD, is_active=True) -> User:
    user = User(
        tenant_id=tenant.id,
        email=email,
        name=name or email.split("@")[0].title(),
        role=role,
        password_hash=hash_password_bcrypt(password) if password else None,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_service(db, tenant, provider, name="Haircut", duration=60, price=50.0) -> Service:
    service = Service(
        tenant_id=tenant.id,
        provider_id=provider.id if provider else None,
        name=name,
        duration=duration,
        price=price,
        is_active=True,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_appointment(db, seed, start, minutes=60, status="CONFIRMED", **fields) -> Appointment:
    appointment = Appointment(
        tenant_id=seed.tenant.id,
        client_id=fields.pop("client_id", seed.client.id),
        provider_id=fields.pop("provider_id", seed.provider.id),
        service_id=fields.pop("service_id", seed.service.id),
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        status=status,
        payment_method=fields.pop("payment_method", "CASH"),
        payment_status=fields.pop("payment_status", "PENDING"),
        payment_amount=fields.pop("payment_amount", seed.service.price),
        **fields,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def auth(user) -> dict:
    return {"Authorization": f"Bearer {create_session_token(user)}"}


def future(days=3, hour=10, minute=0) -> datetime:
    """Naive UTC datetime a few days ahead at a fixed time of day"""
    base = datetime.utcnow() + timedelta(days=days)
    return base.replace(hour=hour, minute=minute, second=0, microsecond=0)


def stripe_signature(secret: str, payload: bytes, timestamp=None) -> str:
    """Stripe-Signature header value as Stripe would sign ``payload``"""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    return f"t={timestamp},v1={hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()}"


@pytest.fixture
def seed(db):
    """One tenant with an admin, a provider, a client and a service"""
    tenant = make_tenant(db)
    admin = make_user(db, tenant, ROLE_ADMIN, "owner@acme.example.com", name="Olivia Owner")
    provider = make_user(db, tenant, ROLE_PROVIDER, "pat@acme.example.com", name="Pat Provider")
    client = make_user(db, tenant, ROLE_CLIENT, "cora@acme.example.com", name="Cora Client")
    service = make_service(db, tenant, provider)
    return SimpleNamespace(
        tenant=tenant,
        admin=admin,
        provider=provider,
        client=client,
        service=service,
        tenant_header={"X-Tenant-ID": str(tenant.id)},
    )


@pytest.fixture
def other_seed(db, seed):
    """A second, unrelated tenant"""
    tenant = make_tenant(db, slug="globex", name="Globex Clinic")
    admin = make_user(db, tenant, ROLE_ADMIN, "owner@globex.example.com")
    provider = make_user(db, tenant, ROLE_PROVIDER, "doc@globex.example.com")
    client = make_user(db, tenant, ROLE_CLIENT, "gina@globex.example.com")
    service = make_service(db, tenant, provider, name="Checkup")
    return SimpleNamespace(tenant=tenant, admin=admin, provider=provider, client=client, service=service)
