import asyncio
import json
from types import SimpleNamespace

import pytest
import stripe
from conftest import future, make_appointment, stripe_signature

from appointmenthub.models import Appointment, TenantSettings
from appointmenthub.routes.payments import split_commission
from appointmenthub.services.payment_service import PaymentError, payment_service, stringify_metadata

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def connected(db, seed):
    """Tenant with a connected Stripe account"""
    settings = db.query(TenantSettings).filter(TenantSettings.tenant_id == seed.tenant.id).one()
    settings.stripe_account_id = "acct_123"
    db.commit()
    return settings


@pytest.fixture
def fake_stripe(monkeypatch):
    calls = []

    async def create_payment_intent(**kwargs):
        calls.append(kwargs)
        return {"id": "pi_123", "client_secret": "pi_123_secret"}

    monkeypatch.setattr(payment_service, "create_payment_intent", create_payment_intent)
    return calls


def post_event(client, event, secret=WEBHOOK_SECRET):
    body = json.dumps(event).encode("utf-8")
    return client.post(
        "/api/payments/webhook",
        content=body,
        headers={"Stripe-Signature": stripe_signature(secret, body), "Content-Type": "application/json"},
    )


@pytest.mark.parametrize(
    "amount, rate, expected",
    [
        (100.0, 0.05, (500, 9500)),
        (49.99, 0.05, (250, 4749)),
        (80.0, 0.0, (0, 8000)),
    ],
)
def test_split_commission(amount, rate, expected):
    assert split_commission(amount, rate) == expected


def test_metadata_values_are_strings():
    assert stringify_metadata({"appointmentId": 7, "fee": 0.5, "skip": None}) == {"appointmentId": "7", "fee": "0.5"}
    assert stringify_metadata(None) == {}


def test_payment_intent_goes_to_connected_account(monkeypatch):
    calls = []

    def create(**params):
        calls.append(params)
        return SimpleNamespace(id="pi_789", client_secret="pi_789_secret")

    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    intent = asyncio.run(
        payment_service.create_payment_intent(
            amount=49.99,
            currency="usd",
            destination_account="acct_123",
            application_fee=250,
            metadata={"appointmentId": 7},
        )
    )

    assert intent == {"id": "pi_789", "client_secret": "pi_789_secret"}
    params = calls[0]
    assert params["amount"] == 4999
    assert params["application_fee_amount"] == 250
    assert params["transfer_data"] == {"destination": "acct_123"}
    assert params["metadata"] == {"appointmentId": "7"}
    assert params["api_key"] == "sk_test_dummy"


def test_stripe_errors_become_payment_errors(monkeypatch):
    def bad_gateway(**params):
        raise stripe.APIError("<html>Bad Gateway</html>", http_status=502)

    monkeypatch.setattr(stripe.Refund, "create", bad_gateway)

    with pytest.raises(PaymentError):
        asyncio.run(payment_service.refund_charge("ch_1", 10.0))


def test_create_intent(client, db, seed, connected, fake_stripe):
    appointment = make_appointment(db, seed, future())

    response = client.post(
        "/api/payments/create-intent",
        headers=seed.tenant_header,
        json={"appointmentId": appointment.id, "amount": 100.0},
    )

    assert response.status_code == 200
    assert response.json() == {"clientSecret": "pi_123_secret", "paymentIntentId": "pi_123"}
    call = fake_stripe[0]
    assert call["destination_account"] == "acct_123"
    assert call["application_fee"] == 500
    assert call["currency"] == "usd"

    db.expire_all()
    stored = db.get(Appointment, appointment.id)
    assert stored.payment_intent_id == "pi_123"
    assert stored.payment_method == "ONLINE"
    assert stored.platform_commission == 5.0
    assert stored.business_revenue == 95.0


def test_create_intent_uses_tenant_commission(client, db, seed, connected, fake_stripe):
    connected.commission_rate = 0.1
    db.commit()
    appointment = make_appointment(db, seed, future())

    client.post(
        "/api/payments/create-intent", headers=seed.tenant_header, json={"appointmentId": appointment.id, "amount": 50}
    )
    assert fake_stripe[0]["application_fee"] == 500


def test_create_intent_guards(client, db, seed, fake_stripe):
    appointment = make_appointment(db, seed, future())
    payload = {"appointmentId": appointment.id, "amount": 50}

    no_account = client.post("/api/payments/create-intent", headers=seed.tenant_header, json=payload)
    no_tenant = client.post("/api/payments/create-intent", json=payload)
    missing = client.post(
        "/api/payments/create-intent", headers=seed.tenant_header, json={"appointmentId": 999, "amount": 50}
    )

    assert no_account.status_code == 400
    assert no_account.json()["detail"] == "Business has not set up payment processing yet"
    assert no_tenant.status_code == 400
    assert missing.status_code == 404


def test_create_intent_only_once(client, db, seed, connected, fake_stripe):
    appointment = make_appointment(db, seed, future(), payment_intent_id="pi_old")

    response = client.post(
        "/api/payments/create-intent", headers=seed.tenant_header, json={"appointmentId": appointment.id, "amount": 50}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Payment already exists for this appointment"


def test_stripe_failure_is_reported(client, db, seed, connected, monkeypatch):
    async def declined(**kwargs):
        raise PaymentError("account restricted")

    monkeypatch.setattr(payment_service, "create_payment_intent", declined)
    appointment = make_appointment(db, seed, future())

    response = client.post(
        "/api/payments/create-intent", headers=seed.tenant_header, json={"appointmentId": appointment.id, "amount": 50}
    )
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to create payment intent"


def test_webhook_payment_succeeded_confirms_booking(client, db, seed, outbox):
    appointment = make_appointment(
        db, seed, future(), status="PENDING", payment_method="ONLINE", payment_intent_id="pi_ok"
    )

    response = post_event(
        client,
        {"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_ok", "latest_charge": "ch_ok"}}},
    )

    assert response.json() == {"received": True}
    db.expire_all()
    paid = db.get(Appointment, appointment.id)
    assert paid.payment_status == "PAID"
    assert paid.charge_id == "ch_ok"
    assert paid.status == "CONFIRMED"
    assert [kind for kind, _, _ in outbox.emails] == ["payment_confirmation"]


def test_webhook_payment_failed(client, db, seed, outbox):
    appointment = make_appointment(db, seed, future(), payment_method="ONLINE", payment_intent_id="pi_bad")

    post_event(client, {"type": "payment_intent.payment_failed", "data": {"object": {"id": "pi_bad"}}})

    db.expire_all()
    assert db.get(Appointment, appointment.id).payment_status == "FAILED"
    assert [kind for kind, _, _ in outbox.emails] == ["payment_failure"]


def test_webhook_ignores_unknown_intents_and_events(client, seed, outbox):
    unknown_intent = post_event(
        client, {"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_nobody"}}}
    )
    other_event = post_event(client, {"type": "charge.refunded", "data": {"object": {"id": "ch_1"}}})

    assert unknown_intent.json() == {"received": True}
    assert other_event.json() == {"received": True}
    assert outbox.emails == []


def test_webhook_rejects_bad_signature(client, seed):
    response = post_event(client, {"type": "payment_intent.succeeded"}, secret="whsec_wrong")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"


def test_webhook_rejects_stale_timestamp(client, seed):
    body = b'{"type": "payment_intent.succeeded"}'
    header = stripe_signature(WEBHOOK_SECRET, body, timestamp=1_000_000_000)

    response = client.post("/api/payments/webhook", content=body, headers={"Stripe-Signature": header})
    assert response.status_code == 400
