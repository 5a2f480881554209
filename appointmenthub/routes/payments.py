"""
Stripe Payment Routes
Payment intents for online bookings and the Stripe webhook that settles them
"""

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_request_tenant_id
from ..config import DEFAULT_COMMISSION_RATE, STRIPE_WEBHOOK_SECRET
from ..database import get_db
from ..email_service import send_payment_confirmation, send_payment_failure
from ..models import Appointment
from ..services.notification_service import run_side_effect
from ..services.payment_service import PaymentError, payment_service, to_cents

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


class CreatePaymentIntentRequest(BaseModel):
    appointmentId: int
    amount: float = Field(gt=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)


def split_commission(amount: float, commission_rate: float) -> tuple[int, int]:
    """Platform commission and business share of an amount, both in cents"""
    commission = round(amount * commission_rate * 100)
    return commission, to_cents(amount) - commission


@router.post("/create-intent")
async def create_payment_intent(
    data: CreatePaymentIntentRequest,
    tenant_id: int = Depends(get_request_tenant_id),
    db: Session = Depends(get_db),
):
    """Start an online payment routed to the business's connected Stripe account"""
    appointment = (
        db.query(Appointment)
        .filter(Appointment.id == data.appointmentId, Appointment.tenant_id == tenant_id)
        .first()
    )
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")

    if appointment.payment_intent_id:
        raise HTTPException(status_code=400, detail="Payment already exists for this appointment")

    settings = appointment.tenant.settings
    if not settings or not settings.stripe_account_id:
        raise HTTPException(
            status_code=400, detail="Business has not set up payment processing yet"
        )

    commission_rate = settings.commission_rate or DEFAULT_COMMISSION_RATE
    commission, business_amount = split_commission(data.amount, commission_rate)

    try:
        intent = await payment_service.create_payment_intent(
            amount=data.amount,
            currency=data.currency.lower(),
            destination_account=settings.stripe_account_id,
            application_fee=commission,
            metadata={
                "appointmentId": appointment.id,
                "tenantId": tenant_id,
                "clientId": appointment.client_id,
                "providerId": appointment.provider_id,
                "serviceId": appointment.service_id,
                "platformCommission": commission / 100,
                "businessRevenue": business_amount / 100,
            },
            description=f"Payment for {appointment.service.name} appointment",
        )
    except PaymentError as e:
        logger.error(f"❌ Payment intent for appointment {appointment.id} failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to create payment intent") from e

    appointment.payment_intent_id = intent["id"]
    appointment.payment_amount = data.amount
    appointment.payment_method = "ONLINE"
    appointment.payment_status = "PENDING"
    appointment.platform_commission = commission / 100
    appointment.business_revenue = business_amount / 100
    db.commit()

    logger.info(f"💳 Payment intent {intent['id']} created for appointment {appointment.id}")
    return {"clientSecret": intent.get("client_secret"), "paymentIntentId": intent["id"]}


def _field(obj, key: str):
    """Value of ``key`` on a Stripe object or plain dict, None when absent"""
    return obj[key] if obj is not None and key in obj else None


def _appointment_for_intent(db: Session, intent_id: str):
    if not intent_id:
        return None
    return db.query(Appointment).filter(Appointment.payment_intent_id == intent_id).first()


async def handle_payment_succeeded(intent, db: Session) -> None:
    intent_id = _field(intent, "id")
    appointment = _appointment_for_intent(db, intent_id)
    if not appointment:
        logger.warning(f"⚠️ No appointment for succeeded payment intent {intent_id}")
        return

    appointment.payment_status = "PAID"
    appointment.charge_id = _field(intent, "latest_charge")
    # Paid bookings confirm themselves
    appointment.status = "CONFIRMED"
    db.commit()
    db.refresh(appointment)

    logger.info(f"✅ Payment succeeded for appointment {appointment.id}")
    await run_side_effect(
        f"Payment confirmation email for appointment {appointment.id}",
        send_payment_confirmation(appointment),
    )


async def handle_payment_failed(intent, db: Session) -> None:
    intent_id = _field(intent, "id")
    appointment = _appointment_for_intent(db, intent_id)
    if not appointment:
        logger.warning(f"⚠️ No appointment for failed payment intent {intent_id}")
        return

    appointment.payment_status = "FAILED"
    db.commit()
    db.refresh(appointment)

    logger.info(f"❌ Payment failed for appointment {appointment.id}")
    await run_side_effect(
        f"Payment failure email for appointment {appointment.id}",
        send_payment_failure(appointment),
    )


@router.post("/webhook")
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Handle Stripe webhook events

    Events handled:
    - payment_intent.succeeded - mark paid, store the charge, confirm the booking
    - payment_intent.payment_failed - mark the payment failed
    """
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature", "")

    if not STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET is not configured")
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        event = stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"🚫 Stripe webhook rejected: {e}")
        raise HTTPException(status_code=400, detail="Invalid signature") from None
    except ValueError:
        logger.error("❌ Invalid JSON payload")
        raise HTTPException(status_code=400, detail="Invalid JSON") from None

    event_type = _field(event, "type")
    intent = _field(_field(event, "data"), "object")
    logger.info(f"📥 Received Stripe webhook: {event_type}")

    try:
        if event_type == "payment_intent.succeeded":
            await handle_payment_succeeded(intent, db)
        elif event_type == "payment_intent.payment_failed":
            await handle_payment_failed(intent, db)
        else:
            logger.info(f"ℹ️ Unhandled event type: {event_type}")
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Webhook processing error: {str(e)}")
        raise HTTPException(status_code=500, detail="Webhook processing failed") from e

    return {"received": True}
