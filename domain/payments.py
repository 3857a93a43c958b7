"""Domain Payment Gateway Interface"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict

from pydantic import BaseModel


class PaymentIntent(BaseModel):
    """Handle returned by the gateway when a payment is opened"""
    id: str
    client_secret: str

    class Config:
        frozen = True


class PaymentGateway(ABC):
    """External payment provider: create an intent, later ask whether it succeeded"""

    @abstractmethod
    async def create_intent(self, amount: Decimal, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        """Open a payment for `amount` major currency units"""
        pass

    @abstractmethod
    async def confirm_intent(self, intent_id: str) -> bool:
        """True when the provider reports the payment as succeeded"""
        pass
