"""Stripe payments service - payment intents on connected accounts and refunds"""

import asyncio
import logging
from typing import Any, Optional

import stripe

from ..config import STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised when the payment processor rejects or fails a request"""

    pass


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def stringify_metadata(metadata: Optional[dict[str, Any]]) -> dict[str, str]:
    """Stripe metadata values must be strings; empty values are left out"""
    return {key: str(value) for key, value in (metadata or {}).items() if value is not None}


class StripePaymentService:
    """Service for Stripe API operations"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or STRIPE_SECRET_KEY
        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; payment endpoints will fail until configured")

    async def _call(self, description: str, method, **params):
        """Run a blocking Stripe SDK call off the event loop"""
        if not self.api_key:
            raise PaymentError("Stripe is not configured")

        try:
            return await asyncio.to_thread(method, api_key=self.api_key, **params)
        except stripe.StripeError as e:
            message = e.user_message or str(e)
            logger.error(f"❌ Stripe {description} failed (HTTP {e.http_status}): {message}")
            raise PaymentError(message) from e

    async def create_payment_intent(
        self,
        amount: float,
        currency: str,
        destination_account: str,
        application_fee: int,
        metadata: Optional[dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> dict:
        """
        Create a payment intent that routes funds to the tenant's connected account.

        Args:
            amount: Amount in major units (dollars)
            currency: ISO currency code
            destination_account: Connected account receiving the funds
            application_fee: Platform commission in cents

        Returns:
            {"id", "client_secret"} of the new intent
        """
        params = {
            "amount": to_cents(amount),
            "currency": currency,
            "application_fee_amount": application_fee,
            "transfer_data": {"destination": destination_account},
            "metadata": stringify_metadata(metadata),
            "automatic_payment_methods": {"enabled": True},
        }
        if description:
            params["description"] = description

        intent = await self._call("payment intent", stripe.PaymentIntent.create, **params)
        logger.info(f"✅ Payment intent created: {intent.id}")
        return {"id": intent.id, "client_secret": intent.client_secret}

    async def refund_charge(
        self, charge_id: str, amount: float, metadata: Optional[dict[str, Any]] = None
    ) -> dict:
        """Refund part or all of a charge; amount in major units"""
        refund = await self._call(
            f"refund of {charge_id}",
            stripe.Refund.create,
            charge=charge_id,
            amount=to_cents(amount),
            reason="requested_by_customer",
            metadata=stringify_metadata(metadata),
        )
        logger.info(f"✅ Refund {refund.id} issued for charge {charge_id}")
        return {"id": refund.id, "status": refund.status}


payment_service = StripePaymentService()
