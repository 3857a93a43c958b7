"""Payment gateway implementations"""
import asyncio
import logging
import secrets
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

import stripe

from domain.exceptions import UpstreamError, UpstreamTimeoutError
from domain.payments import PaymentGateway, PaymentIntent

logger = logging.getLogger("hotel.payments")


def to_minor_units(amount: Decimal) -> int:
    """Stripe expects amounts in the smallest currency unit (paise, cents)"""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentGateway(PaymentGateway):
    """Stripe PaymentIntents, each call bounded by a timeout.

    The stripe client is synchronous, so calls run in a worker thread.
    """

    def __init__(self, api_key: str, timeout_seconds: float = 10.0):
        self._api_key = api_key
        self._timeout = timeout_seconds

    async def _call(self, func, *args, **kwargs):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, api_key=self._api_key, **kwargs),
                timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Stripe call %s timed out after %ss", func.__qualname__, self._timeout)
            raise UpstreamTimeoutError("Payment provider did not respond in time")

    async def create_intent(self, amount: Decimal, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        try:
            intent = await self._call(
                stripe.PaymentIntent.create,
                amount=to_minor_units(amount),
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True}
            )
        except stripe.StripeError as e:
            logger.error("Stripe error creating payment intent: %s", e)
            raise UpstreamError("Payment processing failed")
        return PaymentIntent(id=intent.id, client_secret=intent.client_secret)

    async def confirm_intent(self, intent_id: str) -> bool:
        try:
            intent = await self._call(stripe.PaymentIntent.retrieve, intent_id)
        except stripe.StripeError as e:
            logger.error("Stripe confirmation error for %s: %s", intent_id, e)
            return False
        return intent.status == "succeeded"


class InMemoryPaymentGateway(PaymentGateway):
    """Local stand-in for Stripe used in development and tests.

    Intents succeed on confirmation unless an outcome was set explicitly.
    """

    def __init__(self, auto_succeed: bool = True):
        self.auto_succeed = auto_succeed
        self.intents: Dict[str, dict] = {}

    async def create_intent(self, amount: Decimal, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        intent_id = f"pi_{secrets.token_hex(12)}"
        self.intents[intent_id] = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "metadata": dict(metadata),
            "succeeded": None,
        }
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret_{secrets.token_hex(8)}")

    async def confirm_intent(self, intent_id: str) -> bool:
        intent = self.intents.get(intent_id)
        if intent is None:
            return False
        if intent["succeeded"] is None:
            return self.auto_succeed
        return intent["succeeded"]

    def set_outcome(self, intent_id: str, succeeded: bool) -> None:
        self.intents[intent_id]["succeeded"] = succeeded
